"""
Command tree behavioral tests (arena, lookup, registration).

Scope
- add/find/resolve over an arena of nodes, aliases, NotFound details.
- Rejections: duplicates, leaf parents, bad names.
- Registration of functions and classes, docstring metadata.
- Synopsis fallback scraped from long descriptions.

Conventions
- Test method names follow CamelCase per project convention.
"""
import unittest
from unittest import TestCase

from cmsctl.commands import CommandNode, CommandTree, NotFound
from cmsctl.synopsis import Kind


def noop(args, assoc_args):
    pass


class TestTree(TestCase):
    """Behavioral tests for CommandTree lookups."""

    def setUp(self):
        self.tree = CommandTree("cmsctl")
        self.tree.add((), CommandNode("term", descr="Manage terms."))
        self.tree.add("term", CommandNode("create", noop, synopsis="<taxonomy> <term>"))
        self.tree.add("term", CommandNode("delete", noop, alias="rm"))
        self.tree.add((), CommandNode("plugin"))

    def testFindByPath(self):
        node = self.tree.find("term create")
        self.assertEqual(node.name, "create")
        self.assertEqual(self.tree.path_of(node), ("term", "create"))
        self.assertIs(self.tree.find(["term", "create"]), node)

    def testFindRoot(self):
        self.assertIs(self.tree.find(()), self.tree.root)
        self.assertEqual(self.tree.path_of(self.tree.root), ())

    def testFindByAlias(self):
        self.assertEqual(self.tree.find("term rm").name, "delete")
        self.assertEqual(self.tree.find("term rm").get_alias(), "rm")

    def testNotFoundNamesLongestPrefix(self):
        missing = self.tree.find("term craete")
        self.assertIsInstance(missing, NotFound)
        self.assertFalse(missing)
        self.assertEqual(missing.matched, ("term",))
        self.assertEqual(missing.missing, "craete")
        self.assertEqual(missing.path, ("term", "craete"))
        self.assertEqual(missing.suggestions[0], "create")

    def testNotFoundAtRoot(self):
        missing = self.tree.find("user list")
        self.assertEqual(missing.matched, ())
        self.assertEqual(missing.missing, "user")

    def testArenaIndices(self):
        term = self.tree.find("term")
        create = self.tree.find("term create")
        self.assertEqual(create.parent, term.index)
        self.assertIs(self.tree[create.index], create)
        self.assertIs(self.tree.parent_of(create), term)
        self.assertIsNone(self.tree.parent_of(self.tree.root))
        self.assertEqual(len(self.tree), 5)

    def testChildrenKeepInsertionOrder(self):
        names = [node.name for node in self.tree.list_children(self.tree.find("term"))]
        self.assertEqual(names, ["create", "delete"])
        self.assertEqual([node.name for node in self.tree.list_children()], ["term", "plugin"])

    def testWalk(self):
        paths = [path for path, _ in self.tree.walk()]
        self.assertEqual(paths, [("term",), ("term", "create"), ("term", "delete"), ("plugin",)])

    def testResolveStopsAtLeaf(self):
        node, remaining = self.tree.resolve(["term", "create", "category", "create"])
        self.assertEqual(node.name, "create")
        self.assertEqual(remaining, ["category", "create"])

    def testResolveCompositeWhenTokensRunOut(self):
        node, remaining = self.tree.resolve(["term"])
        self.assertFalse(node.is_leaf)
        self.assertEqual(remaining, [])
        node, remaining = self.tree.resolve([])
        self.assertIs(node, self.tree.root)

    def testResolveUnknown(self):
        node, remaining = self.tree.resolve(["term", "update", "5"])
        self.assertIsInstance(node, NotFound)
        self.assertEqual(node.matched, ("term",))
        self.assertEqual(remaining, ["5"])

    def testDuplicateRejected(self):
        with self.assertRaises(ValueError):
            self.tree.add("term", CommandNode("create", noop))

    def testAliasClashRejected(self):
        with self.assertRaises(ValueError):
            self.tree.add("term", CommandNode("remove", noop, alias="delete"))

    def testLeafParentRejected(self):
        with self.assertRaises(ValueError):
            self.tree.add("term create", CommandNode("nested", noop))

    def testUnknownParentRejected(self):
        with self.assertRaises(ValueError):
            self.tree.add("user", CommandNode("list", noop))

    def testAttachedNodeRejected(self):
        node = self.tree.find("plugin")
        with self.assertRaises(ValueError):
            self.tree.add("term", node)

    def testUsage(self):
        self.assertEqual(self.tree.usage(self.tree.find("term create")), "usage: cmsctl term create <taxonomy> <term>")
        self.assertEqual(self.tree.usage(self.tree.find("term")), "usage: cmsctl term <command>")


class TestNode(TestCase):
    """Behavioral tests for CommandNode."""

    def testBadNames(self):
        for name in ("", "two words", " padded", 5):
            with self.assertRaises(ValueError):
                CommandNode(name)

    def testHandlerMustBeCallable(self):
        with self.assertRaises(TypeError):
            CommandNode("x", "not callable")

    def testSynopsisFallsBackToLongDescription(self):
        node = CommandNode("create", noop, longdesc="<taxonomy>\n: The taxonomy.\n\n[--slug=<slug>]\n: The slug.")
        self.assertEqual(node.get_synopsis(), "<taxonomy> [--slug=<slug>]")
        self.assertEqual([spec.kind for spec in node.specs], [Kind.POSITIONAL, Kind.ASSOC])

    def testDeclaredSynopsisWins(self):
        node = CommandNode("create", noop, synopsis="<a>", longdesc="<b>\n: ignored")
        self.assertEqual(node.get_synopsis(), "<a>")

    def testReadOnlyFields(self):
        node = CommandNode("create", noop)
        with self.assertRaises(AttributeError):
            node.name = "other"


class TestRegistration(TestCase):
    """Registration of functions and classes."""

    def setUp(self):
        self.tree = CommandTree()

    def testCommandDecoratorCreatesIntermediateNodes(self):
        @self.tree.command("core config create")
        def create(args, assoc_args):
            """
            Generate a config file.

            Longer explanation.

            @alias new
            @synopsis --dbname=<dbname> [--force]
            """

        node = self.tree.find("core config create")
        self.assertIs(node.handler, create)
        self.assertEqual(node.descr, "Generate a config file.")
        self.assertEqual(node.longdesc, "Longer explanation.")
        self.assertEqual(node.alias, "new")
        self.assertEqual(node.get_synopsis(), "--dbname=<dbname> [--force]")
        self.assertFalse(self.tree.find("core config").is_leaf)
        self.assertIs(self.tree.find("core config new"), node)

    def testCommandMetadataOverridesDocstring(self):
        self.tree.command("hello", noop, synopsis="<name>", descr="Say hello.")
        node = self.tree.find("hello")
        self.assertEqual(node.get_synopsis(), "<name>")
        self.assertEqual(node.descr, "Say hello.")

    def testRegisterClass(self):
        calls = []

        class Term:
            """
            Manage terms.
            """
            instances = 0

            def __init__(self):
                type(self).instances += 1

            def create(self, args, assoc_args):
                """
                Create a term.

                @synopsis <taxonomy> <term>
                """
                calls.append(("create", args, assoc_args))

            def list_(self, args, assoc_args):
                """
                List terms.
                """
                calls.append(("list", args, assoc_args))

            def get_all(self, args, assoc_args):
                """
                @subcommand everything
                """

            def _private(self, args, assoc_args):
                pass

        group = self.tree.register("term", Term)
        self.assertEqual(group.descr, "Manage terms.")
        self.assertEqual(list(group.children), ["create", "list", "everything"])

        self.tree.find("term create").handler(["category", "Fruit"], {})
        self.tree.find("term list").handler([], {"format": "json"})
        self.assertEqual(calls, [("create", ["category", "Fruit"], {}), ("list", [], {"format": "json"})])
        # one shared instance, created lazily
        self.assertEqual(Term.instances, 1)
        self.assertEqual(self.tree.find("term create").get_synopsis(), "<taxonomy> <term>")

    def testRegisterInheritedMethods(self):
        calls = []

        class Upgradable:
            def status(self, args, assoc_args):
                """
                Show the status.
                """
                calls.append(("status", type(self).__name__))

            def install(self, args, assoc_args):
                """
                Install from a slug.

                @synopsis <slug>
                """
                calls.append(("install", args))

        class Plugin(Upgradable):
            """
            Manage plugins.
            """

            def activate(self, args, assoc_args):
                pass

            def status(self, args, assoc_args):
                calls.append(("plugin status", type(self).__name__))

        group = self.tree.register("plugin", Plugin)
        self.assertEqual(list(group.children), ["status", "install", "activate"])
        self.assertEqual(self.tree.find("plugin install").get_synopsis(), "<slug>")

        self.tree.find("plugin install").handler(["akismet"], {})
        self.tree.find("plugin status").handler([], {})
        self.assertEqual(calls, [("install", ["akismet"]), ("plugin status", "Plugin")])

    def testRegisterCallableClassIsLeaf(self):
        class Eval:
            """
            Run code.
            """

            def __call__(self, args, assoc_args):
                """
                @synopsis <code>
                """

        node = self.tree.register("eval", Eval)
        self.assertTrue(node.is_leaf)
        self.assertEqual(node.get_synopsis(), "<code>")
        self.assertEqual(node.descr, "Run code.")

    def testRegisterFunction(self):
        node = self.tree.register("ping", noop)
        self.assertTrue(node.is_leaf)
        self.assertIs(node.handler, noop)


if __name__ == "__main__":
    unittest.main()
