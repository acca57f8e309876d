"""
cmsctl command tree: a namespace of named nodes.

What this module provides
- CommandNode: one named entry of the tree.
  • composite nodes (no handler) group subcommands;
  • leaf nodes bind a handler plus its synopsis, alias and descriptions.
- CommandTree: an arena of nodes. Every node knows its own index and the index
  of its parent; children are kept as name → index in insertion order, so the
  tree holds no reference cycles.
- NotFound: falsy lookup result naming the longest matched prefix and the
  segment that did not match, with close-match suggestions.

Registration
- tree.command("term create", handler) or @tree.command("term create"):
  intermediate composite nodes are created on demand.
- tree.register("term", TermCommand): a class becomes a composite node whose
  public methods, inherited ones included, become leaves ('list_' → 'list',
  'get_all' → 'get-all', overridable with an @subcommand tag). A class
  defining __call__ is a leaf. Functions register as leaves. Docstrings are read with DocParser.

Handler contract
- handler(args, assoc_args) -> None, where args is a list of strings and
  assoc_args a dict; failures are signalled with CommandError/CommandWarning.

Notes
- The tree never raises faults and never prints; lookups hand back NotFound
  and the invocation pipeline decides what to tell the user.
"""
import difflib
import functools
import inspect

from .docs import DocParser
from .synopsis import extract, parse
from .utils import Unset, mirror, rename


class CommandNode:
    """
    One node of the command tree.

    Fields (read-only once attached)
    - name: unique among siblings; no whitespace.
    - index / parent: arena index of this node and of its parent (None for the
      root, or while the node is detached).
    - children: name → index, insertion ordered.
    - handler: callable(args, assoc_args) for leaves, None for composites.
    - synopsis: the declared synopsis text (may be empty).
    - alias: optional alternative name.
    - descr / longdesc: short and long descriptions.
    """
    __introspectable__ = (
        "name",
        "index",
        "parent",
        "children",
        "handler",
        "synopsis",
        "alias",
        "descr",
        "longdesc",
    )

    name = mirror("name")
    index = mirror("index")
    parent = mirror("parent")
    children = mirror("children")
    handler = mirror("handler")
    synopsis = mirror("synopsis")
    alias = mirror("alias")
    descr = mirror("descr")
    longdesc = mirror("longdesc")

    def __init__(self, name, handler=None, /, *, synopsis="", alias=None, descr="", longdesc=""):
        if not isinstance(name, str) or not name or len(name.split()) != 1 or name != name.strip():
            raise ValueError("command name must be a non-empty word, got %r" % (name,))
        if handler is not None and not callable(handler):
            raise TypeError("command handler must be callable")

        self._name = name
        self._handler = handler
        self._synopsis = synopsis or ""
        self._alias = alias or None
        self._descr = descr or ""
        self._longdesc = longdesc or ""
        self._index = None
        self._parent = None
        self._children = {}

    @property
    def is_leaf(self):
        return self._handler is not None

    @functools.cached_property
    def specs(self):
        """
        parsed synopsis, computed on first use.
        """
        return parse(self.get_synopsis())

    def get_synopsis(self):
        """
        the declared synopsis, or one scraped from the long description.
        """
        return self._synopsis or extract(self._longdesc)

    def get_alias(self):
        return self._alias

    def __repr__(self):
        return "command-node(%s)" % ", ".join("%s=%r" % pair for pair in self.__rich_repr__())

    def __rich_repr__(self):
        yield "name", self._name
        yield "index", self._index
        yield "parent", self._parent
        if self._alias:
            yield "alias", self._alias
        if self.is_leaf:
            yield "synopsis", self.get_synopsis()
        else:
            yield "children", tuple(self._children)


class NotFound:
    """
    Failed lookup.

    - path: every segment that was searched.
    - matched: the longest prefix that did resolve (the last node reached).
    - missing: the first segment that did not match.
    - suggestions: close matches among the children of the matched node.

    Always falsy, so lookups read naturally: `if not (node := tree.find(...))`.
    """
    __introspectable__ = ("path", "matched", "missing", "suggestions")

    path = mirror("path")
    matched = mirror("matched")
    missing = mirror("missing")
    suggestions = mirror("suggestions")

    def __init__(self, path, matched, missing, suggestions=()):
        self._path = tuple(path)
        self._matched = tuple(matched)
        self._missing = missing
        self._suggestions = tuple(suggestions)

    def __bool__(self):
        return False

    def __repr__(self):
        return "not-found(%s)" % ", ".join("%s=%r" % (name, getattr(self, name)) for name in self.__introspectable__)


def _segments(path):
    if isinstance(path, str):
        return tuple(path.split())
    return tuple(path)


def _lazy(cls):
    # one shared instance per registered class, created on first invocation
    @functools.cache
    def instance():
        return cls()

    return instance


def _method_handler(instance, attribute, qualname):
    @rename(qualname)
    def handler(args, assoc_args):
        return getattr(instance(), attribute)(args, assoc_args)

    return handler


def _members(source):
    # base classes first, overrides keep the position of the overridden method
    members = {}
    for klass in reversed(source.__mro__[:-1]):
        members.update(vars(klass))
    return members


class CommandTree:
    """
    Arena of CommandNode objects rooted at a composite node named after the program.

    The tree is built once at startup (see cmsctl.__main__.create_application)
    and only read afterwards.
    """

    def __init__(self, name="cmsctl", /):
        self._nodes = []
        self._attach(CommandNode(name), None)

    @property
    def root(self):
        return self._nodes[0]

    @property
    def name(self):
        return self.root.name

    def __len__(self):
        return len(self._nodes)

    def __getitem__(self, index):
        return self._nodes[index]

    def _attach(self, node, parent):
        if node.index is not None:
            raise ValueError("command %r is already attached to a tree" % node.name)
        node._index = len(self._nodes)
        node._parent = None if parent is None else parent.index
        self._nodes.append(node)
        if parent is not None:
            parent._children[node.name] = node.index
        return node

    def _child(self, node, segment):
        if (index := node.children.get(segment)) is not None:
            return self._nodes[index]
        for index in node.children.values():
            if self._nodes[index].alias == segment:
                return self._nodes[index]
        return None

    def _names(self, node):
        for child in self.list_children(node):
            yield child.name
            if child.alias:
                yield child.alias

    def _not_found(self, node, path, missing):
        return NotFound(
            path,
            self.path_of(node),
            missing,
            difflib.get_close_matches(missing, list(self._names(node)), 5),
        )

    def add(self, path, node, /):
        """
        Attach node under the composite node found at path (a parent path,
        given as a sequence of names or a space-separated string).

        Raises
        - ValueError: parent not found, parent is a leaf, or the name (or alias)
          clashes with a sibling.
        """
        parent = self.find(path)
        if not parent:
            raise ValueError("cannot add %r: no command at %r" % (node.name, " ".join(_segments(path))))
        if parent.is_leaf:
            raise ValueError("cannot add %r under the leaf command %r" % (node.name, " ".join(self.path_of(parent))))
        for word in filter(None, (node.name, node.alias)):
            if self._child(parent, word) is not None:
                raise ValueError("duplicate command %r" % " ".join((*self.path_of(parent), word)))
        return self._attach(node, parent)

    def find(self, path, /):
        """
        Walk path segment by segment from the root, matching names or aliases.

        Returns the node, or NotFound naming the longest matched prefix.
        """
        node = self.root
        for segment in (segments := _segments(path)):
            if (child := self._child(node, segment)) is None:
                return self._not_found(node, segments, segment)
            node = child
        return node

    def resolve(self, tokens, /):
        """
        Greedy walk used by the dispatcher: descend while the current node is
        composite and tokens remain.

        Returns
        - (node, remaining tokens) on success; node may be composite when the
          tokens ran out.
        - (NotFound, remaining tokens after the missing segment) otherwise.
        """
        tokens = list(tokens)
        node = self.root
        consumed = 0
        while not node.is_leaf and consumed < len(tokens):
            segment = tokens[consumed]
            if (child := self._child(node, segment)) is None:
                return self._not_found(node, tokens[:consumed + 1], segment), tokens[consumed + 1:]
            node = child
            consumed += 1
        return node, tokens[consumed:]

    def list_children(self, node=Unset, /):
        node = self.root if node is Unset else node
        return tuple(self._nodes[index] for index in node.children.values())

    def parent_of(self, node, /):
        return None if node.parent is None else self._nodes[node.parent]

    def path_of(self, node, /):
        """
        names from the root (excluded) down to node.
        """
        names = []
        while node is not None and node.parent is not None:
            names.append(node.name)
            node = self._nodes[node.parent]
        return tuple(reversed(names))

    def walk(self, node=Unset, /):
        """
        Depth-first (path, node) pairs below node, children in insertion order.
        """
        for child in self.list_children(node):
            yield self.path_of(child), child
            yield from self.walk(child)

    def usage(self, node, /, prefix="usage: "):
        words = [self.name, *self.path_of(node)]
        if node.is_leaf:
            if synopsis := node.get_synopsis():
                words.append(synopsis)
        else:
            words.append("<command>")
        return prefix + " ".join(words)

    def _composite(self, segments):
        node = self.root
        for index, segment in enumerate(segments):
            if (child := self._child(node, segment)) is None:
                child = self.add(segments[:index], CommandNode(segment))
            node = child
        return node

    def command(self, path, handler=Unset, /, **metadata):
        """
        Register handler as the leaf at path, or return a decorator doing so.

        Metadata (synopsis, alias, descr, longdesc) defaults to what the
        handler's docstring declares. Intermediate composite nodes are created
        on demand.
        """
        segments = _segments(path)
        if not segments:
            raise ValueError("command path must not be empty")

        @rename("command")
        def wrapper(handler, /):
            if not callable(handler):
                raise TypeError("@command() must be applied to a callable")
            doc = DocParser(inspect.getdoc(handler))
            parent = self._composite(segments[:-1])
            self.add(self.path_of(parent), CommandNode(
                segments[-1],
                handler,
                synopsis=metadata.get("synopsis", doc.get_synopsis()),
                alias=metadata.get("alias", doc.get_tag("alias")),
                descr=metadata.get("descr", doc.short),
                longdesc=metadata.get("longdesc", doc.longdesc),
            ))
            return handler

        return wrapper(handler) if handler is not Unset else wrapper

    def register(self, name, source, /):
        """
        Register a function (leaf) or a class (composite of its public methods)
        under name, and return the created node.
        """
        if not inspect.isclass(source):
            self.command(name, source)
            return self.find(name)

        segments = _segments(name)
        doc = DocParser(inspect.getdoc(source))
        instance = _lazy(source)

        if callable(_members(source).get("__call__")):
            handler = _method_handler(instance, "__call__", source.__qualname__)
            call = DocParser(inspect.getdoc(source.__call__))
            self.command(
                segments,
                handler,
                synopsis=call.get_synopsis() or doc.get_synopsis(),
                alias=doc.get_tag("alias"),
                descr=doc.short,
                longdesc=call.longdesc or doc.longdesc,
            )
            return self.find(segments)

        parent = self._composite(segments[:-1])
        group = self.add(self.path_of(parent), CommandNode(
            segments[-1],
            alias=doc.get_tag("alias"),
            descr=doc.short,
            longdesc=doc.longdesc,
        ))

        for attribute, member in _members(source).items():
            if attribute.startswith("_") or not inspect.isfunction(member):
                continue
            method = DocParser(inspect.getdoc(member))
            subcommand = method.get_tag("subcommand") or attribute.rstrip("_").replace("_", "-")
            self.add(self.path_of(group), CommandNode(
                subcommand,
                _method_handler(instance, attribute, "%s.%s" % (source.__qualname__, attribute)),
                synopsis=method.get_synopsis(),
                alias=method.get_tag("alias"),
                descr=method.short,
                longdesc=method.longdesc,
            ))

        return group


__all__ = (
    "CommandNode",
    "CommandTree",
    "NotFound",
)
