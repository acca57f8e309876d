r"""
cmsctl synopsis grammar.

A synopsis is the compact, one-line description of what a command accepts:

    <taxonomy> <term> [--slug=<slug>] [--porcelain] [--<field>=<value>]

Overview
- ArgSpec: one parsed token (kind, name, token, optional, repeating, value).
- Kind: positional | assoc | flag | generic | unknown.
- parse(text): tokenize and classify; never fails. Tokens that do not fit the
  grammar are kept verbatim as `unknown` specs so that the validator can report
  them as warnings scoped to the command that declared them.
- render(specs): derive the display synopsis back from parsed specs.
- extract(longdesc): fallback scraping of a description written in the
  "OPTIONS" style, where each argument token sits on its own line and is
  followed by a line starting with ':'.

Grammar (one whitespace-separated token each)
- <name>                 positional, required
- [<name>]               positional, optional
- <name>... / [<name>...]  positional, repeating (consumes all remaining)
- --name=<value>         assoc, required; [--name=<value>] optional
- --name[=<value>]       assoc whose value may be omitted
- --name / [--name]      flag (boolean presence)
- [--<field>=<value>]    generic (any number of arbitrary key=value pairs)
"""
import re
from enum import StrEnum

from .utils import Unset, coalesce, mirror

_NAME = r"[a-zA-Z][\w-]*"
_VALUE = r"[\w|,-]+"


class Kind(StrEnum):
    POSITIONAL = "positional"
    ASSOC = "assoc"
    FLAG = "flag"
    GENERIC = "generic"
    UNKNOWN = "unknown"


class ArgSpec:
    """
    One entry of a parsed synopsis.

    Fields (read-only)
    - kind: Kind of the entry.
    - name: argument name ('taxonomy', 'slug', …); None for generic/unknown.
    - token: the source token, verbatim (brackets included).
    - optional: True when the token was wrapped in [...].
    - repeating: True for '<name>...' positionals.
    - value: placeholder name of an assoc value ('slug' in --slug=<slug>).
    - value_optional: True for '--name[=<value>]'.
    """
    __introspectable__ = (
        "kind",
        "name",
        "token",
        "optional",
        "repeating",
        "value",
        "value_optional",
    )

    kind = mirror("kind")
    name = mirror("name")
    token = mirror("token")
    optional = mirror("optional")
    repeating = mirror("repeating")
    value = mirror("value")
    value_optional = mirror("value_optional")

    def __init__(
            self,
            kind,
            /,
            name=None,
            token=Unset,
            *,
            optional=False,
            repeating=False,
            value=None,
            value_optional=False
    ):
        self._kind = Kind(kind)
        self._name = name
        self._optional = bool(optional)
        self._repeating = bool(repeating)
        self._value = value
        self._value_optional = bool(value_optional)
        self._token = coalesce(token, None) or self.render()

    @property
    def display(self):
        """
        the display form without optional brackets ('<user>', '--role=<role>').
        """
        match self.kind:
            case Kind.POSITIONAL:
                return "<%s>%s" % (self.name, "..." * self.repeating)
            case Kind.ASSOC:
                if self.value_optional:
                    return "--%s[=<%s>]" % (self.name, self.value)
                return "--%s=<%s>" % (self.name, self.value)
            case Kind.FLAG:
                return "--%s" % self.name
            case Kind.GENERIC:
                return "--<field>=<value>"
        return self.token

    def render(self):
        """
        the canonical synopsis token, brackets included.
        """
        if self.kind is Kind.UNKNOWN:
            return self.token
        return "[%s]" % self.display if self.optional else self.display

    def __eq__(self, other):
        if not isinstance(other, ArgSpec):
            return NotImplemented
        return all(getattr(self, name) == getattr(other, name) for name in self.__introspectable__)

    def __hash__(self):
        return hash(tuple(getattr(self, name) for name in self.__introspectable__))

    def __repr__(self):
        return "arg-spec(%s)" % ", ".join("%s=%r" % pair for pair in self.__rich_repr__())

    def __rich_repr__(self):
        for name in self.__introspectable__:
            yield name, getattr(self, name)

    def __replace__(self, **changes):
        fields = {name: getattr(self, name) for name in self.__introspectable__} | changes
        kind = fields.pop("kind")
        return type(self)(kind, fields.pop("name"), fields.pop("token"), **fields)


def _unwrap(token, opening, closing):
    if len(token) > 1 and token.startswith(opening) and token.endswith(closing):
        return True, token[len(opening):-len(closing)]
    return False, token


def _classify(token):
    optional, inner = _unwrap(token, "[", "]")
    repeating = inner.endswith("...")
    if repeating:
        inner = inner[:-3]

    if inner == "--<field>=<value>" and not repeating:
        return ArgSpec(Kind.GENERIC, None, token, optional=optional)

    if match := re.fullmatch(r"<(%s)>" % _VALUE, inner):
        return ArgSpec(Kind.POSITIONAL, match[1], token, optional=optional, repeating=repeating)

    if repeating:
        return ArgSpec(Kind.UNKNOWN, None, token)

    if match := re.fullmatch(r"--(%s)" % _NAME, inner):
        return ArgSpec(Kind.FLAG, match[1], token, optional=optional)

    if match := re.fullmatch(r"--(%s)(\[=<(%s)>\]|=<(%s)>)" % (_NAME, _VALUE, _VALUE), inner):
        return ArgSpec(
            Kind.ASSOC,
            match[1],
            token,
            optional=optional,
            value=match[3] or match[4],
            value_optional=match[3] is not None,
        )

    return ArgSpec(Kind.UNKNOWN, None, token)


def parse(text, /):
    """
    Parse a synopsis string into an ordered tuple of ArgSpec.

    Never raises on malformed input: every token that does not match the
    grammar becomes a Kind.UNKNOWN spec carrying its original token.
    None and empty strings parse to an empty tuple.
    """
    if not text:
        return ()
    if not isinstance(text, str):
        raise TypeError("parse() argument must be a string")
    return tuple(map(_classify, text.split()))


def render(specs, /):
    """
    Render parsed specs back to a synopsis string (single-space separated).
    """
    return " ".join(spec.render() for spec in specs)


def extract(longdesc, /):
    """
    Scrape a synopsis out of an "OPTIONS"-style description.

    Every line immediately followed by a line beginning with ':' is taken as an
    argument token:

        <taxonomy>
        : Taxonomy for the new term.

        [--slug=<slug>]
        : A unique slug for the new term.

    yields "<taxonomy> [--slug=<slug>]".
    """
    if not longdesc:
        return ""
    return " ".join(line.strip() for line in re.findall(r"^(.+?)[\r\n]+[ \t]*:", longdesc, re.MULTILINE))


__all__ = (
    "Kind",
    "ArgSpec",
    "parse",
    "render",
    "extract",
)
