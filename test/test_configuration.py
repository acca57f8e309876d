"""
Configuration resolver tests.

Scope
- Tokenizing --name / --no-name / --name=value.
- Classifying global options vs command associative arguments.
- Layer merging: files (YAML), environment, command line; multiple options.
- Relative paths in config files, extra config, ignored keys, lookup helpers.

Conventions
- Test method names follow CamelCase per project convention.
- Config files are written into a temporary directory per test.
"""
import os
import os.path
import tempfile
import textwrap
import unittest
from unittest import TestCase

from cmsctl.configuration import (
    SPEC,
    Configurator,
    Deprecation,
    Option,
    locate_global_config,
    locate_project_config,
    resolve,
    tokenize,
)
from cmsctl.faults import ConfigurationError


class TestTokenize(TestCase):
    """Behavioral tests for tokenize()."""

    def testForms(self):
        positionals, pairs = tokenize(["term", "--no-color", "--porcelain", "--slug=fruit", "Fruit"])
        self.assertEqual(positionals, ["term", "Fruit"])
        self.assertEqual(pairs, [("color", False), ("porcelain", True), ("slug", "fruit")])

    def testValueKeepsEverything(self):
        _, pairs = tokenize(["--content=line one\nline two=still value", "--title="])
        self.assertEqual(pairs, [("content", "line one\nline two=still value"), ("title", "")])

    def testSingleDashAndBareDoubleDashArePositional(self):
        positionals, pairs = tokenize(["-v", "--"])
        self.assertEqual(positionals, ["-v", "--"])
        self.assertEqual(pairs, [])


class TestParseArgs(TestCase):
    """Behavioral tests for Configurator.parse_args()."""

    def testGlobalAndCommandArguments(self):
        parsed = Configurator().parse_args(["user", "create", "bob", "--url=example.org", "--role=author", "--debug"])
        self.assertEqual(parsed.positionals, ["user", "create", "bob"])
        self.assertEqual(parsed.assoc, {"role": "author"})
        self.assertEqual(parsed.runtime, {"url": "example.org", "debug": True})
        self.assertEqual(parsed.deprecations, ())

    def testRuntimeDisabledKeyLandsInAssoc(self):
        spec = (*SPEC, Option("role", runtime=False, file="<role>"))
        parsed, config = resolve(["user", "create", "--role=author"], spec=spec)
        self.assertEqual(parsed.assoc, {"role": "author"})
        self.assertNotIn("role", parsed.runtime)
        self.assertIsNone(config["role"])

    def testFileOnlyOptionLandsInAssoc(self):
        parsed = Configurator().parse_args(["--disabled_commands=plugin"])
        self.assertEqual(parsed.assoc, {"disabled_commands": "plugin"})

    def testMultipleOptionsAccumulate(self):
        parsed = Configurator().parse_args(["--require=a.py", "--require=b.py"])
        self.assertEqual(parsed.runtime, {"require": ["a.py", "b.py"]})

    def testDeprecatedOptionIsClassified(self):
        parsed = Configurator().parse_args(["--blog=example.org"])
        self.assertEqual(parsed.deprecations, (Deprecation("blog", "Use --url instead."),))
        self.assertEqual(parsed.runtime, {"blog": "example.org"})


class TestLayers(TestCase):
    """Merging files, environment and command line."""

    def setUp(self):
        self.directory = tempfile.TemporaryDirectory()
        self.addCleanup(self.directory.cleanup)

    def write(self, name, content):
        path = os.path.join(self.directory.name, name)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "w", encoding="utf-8") as stream:
            stream.write(textwrap.dedent(content))
        return path

    def testDefaults(self):
        config = Configurator().freeze()
        self.assertEqual(config["color"], "auto")
        self.assertEqual(config["require"], ())
        self.assertEqual(config["skip-plugins"], "")
        self.assertIsNone(config["path"])

    def testMultipleOptionFromFileAndCommandLine(self):
        path = self.write("config.yml", """\
            require: file.py
        """)
        _, config = resolve(["--require=/abs/cli.py"], [path])
        self.assertEqual(config["require"], (os.path.join(self.directory.name, "file.py"), "/abs/cli.py"))

    def testSingularOptionIsReplaced(self):
        first = self.write("global.yml", "url: global.example\nuser: admin\n")
        second = self.write("project/cmsctl.yml", "url: project.example\n")
        _, config = resolve(["--user=editor"], [first, second])
        self.assertEqual(config["url"], "project.example")
        self.assertEqual(config["user"], "editor")

    def testRelativePathsFollowTheFile(self):
        path = self.write("site/cmsctl.yml", """\
            path: public
            require:
              - hooks/one.py
              - /abs/two.py
        """)
        _, config = resolve([], [path])
        base = os.path.join(self.directory.name, "site")
        self.assertEqual(config["path"], os.path.join(base, "public"))
        self.assertEqual(config["require"], (os.path.join(base, "hooks/one.py"), "/abs/two.py"))

    def testExtraConfigAndPerCommandDefaults(self):
        path = self.write("cmsctl.yml", """\
            term create:
              slug: fruit
            custom: value
            prompt: true
        """)
        _, config = resolve([], [path])
        self.assertEqual(config.for_command(("term", "create")), {"slug": "fruit"})
        self.assertEqual(config.for_command(("custom",)), {})
        self.assertEqual(config.extra["custom"], "value")
        self.assertFalse(config["prompt"])
        self.assertEqual([ignored.key for ignored in config.ignored], ["prompt"])
        self.assertEqual(config.ignored[0].source, path)

    def testEnvironmentLayer(self):
        environ = {
            "CMSCTL_URL": "env.example",
            "CMSCTL_DEBUG": "yes",
            "CMSCTL_QUIET": "0",
            "CMSCTL_REQUIRE": os.pathsep.join(("/a.py", "/b.py")),
            "CMSCTL_DISABLED_COMMANDS": "plugin",
        }
        _, config = resolve(["--url=cli.example"], environ=environ)
        self.assertEqual(config["url"], "cli.example")
        self.assertIs(config["debug"], True)
        self.assertIs(config["quiet"], False)
        self.assertEqual(config["require"], ("/a.py", "/b.py"))
        # file-only options are not read from the environment
        self.assertEqual(config["disabled_commands"], ())

    def testEmptyFileIsFine(self):
        path = self.write("cmsctl.yml", "")
        _, config = resolve([], [path])
        self.assertEqual(config["color"], "auto")

    def testNonMappingDocumentIsRejected(self):
        path = self.write("cmsctl.yml", "- one\n- two\n")
        with self.assertRaises(ConfigurationError):
            resolve([], [path])

    def testBrokenYamlIsRejected(self):
        path = self.write("cmsctl.yml", "url: [unclosed\n")
        with self.assertRaises(ConfigurationError) as context:
            resolve([], [path])
        self.assertEqual(context.exception.options["source"], path)

    def testMissingFileIsRejected(self):
        with self.assertRaises(ConfigurationError):
            resolve([], [os.path.join(self.directory.name, "missing.yml")])

    def testConfigurationIsReadOnly(self):
        _, config = resolve(["--url=example.org"])
        with self.assertRaises(TypeError):
            config["url"] = "other"  # type: ignore[index]
        with self.assertRaises(TypeError):
            config.config["url"] = "other"  # type: ignore[index]


class TestLocate(TestCase):
    """Config file lookup helpers."""

    def setUp(self):
        self.directory = tempfile.TemporaryDirectory()
        self.addCleanup(self.directory.cleanup)
        self.root = os.path.realpath(self.directory.name)

    def touch(self, *parts):
        path = os.path.join(self.root, *parts)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        open(path, "w").close()
        return path

    def testGlobalFromEnvironment(self):
        path = self.touch("custom.yml")
        self.assertEqual(locate_global_config({"CMSCTL_CONFIG_PATH": path}), path)

    def testGlobalMissing(self):
        self.assertIsNone(locate_global_config({"CMSCTL_CONFIG_PATH": os.path.join(self.root, "none.yml")}))

    def testGlobalOverride(self):
        path = self.touch("override.yml")
        other = self.touch("other.yml")
        self.assertEqual(locate_global_config({"CMSCTL_CONFIG_PATH": other}, path), path)

    def testProjectWalksUp(self):
        base = self.touch("site", "cmsctl.yml")
        local = self.touch("site", "cmsctl.local.yml")
        nested = os.path.join(self.root, "site", "a", "b")
        os.makedirs(nested)
        self.assertEqual(locate_project_config(nested), (base, local))

    def testProjectNearestDirectoryWins(self):
        self.touch("cmsctl.yml")
        nearest = self.touch("site", "cmsctl.local.yml")
        self.assertEqual(locate_project_config(os.path.join(self.root, "site")), (nearest,))


if __name__ == "__main__":
    unittest.main()
