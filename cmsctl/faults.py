"""
cmsctl faults (errors and warnings) and rendering.

Scope
- FaultCode: canonical, stable numeric identifiers for all user-facing issues
  (errors and warnings). Codes are grouped by domain to keep copy consistent
  and make logs/searches predictable.
- CommandException / CommandWarning: base types that carry message + options and
  know how to render themselves in a friendly, lowercased, and actionable way.
- CommandExit: an exception group bundling every fatal fault of one invocation,
  so users see all problems in a single pass.
- trigger(): central entry point to surface any fault (raise it, or render it in shell mode).

UX goals
- Soft but technical language: short titles, one-sentence bodies, a single clear hint.
- Lowercased tone with readable styling (overridable via __styles__ in __main__).

Integration
- Lower layers (grammar, validator, tree, resolver) only *build* faults and hand
  them back as data; the invocation pipeline is the single place that triggers them.
- Faults never terminate the process: in shell mode they are printed and the
  pipeline turns them into an exit status; otherwise they are raised (errors) or
  emitted through the warnings machinery (warnings).
"""
import copy
import inspect
import warnings
from abc import ABC
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType

from rich.console import Console, Group
from rich.panel import Panel
from rich.text import Text

from .utils import Unset

console = Console(stderr=True)


class FaultCode(IntEnum):
    """
    canonical fault codes used across the cli (stable identifiers).

    grouping (by high-level domain)
    - routing (1110x)
      • UNKNOWN_COMMAND, UNKNOWN_SUBCOMMAND, DISABLED_COMMAND
    - parameters (1111x)
      • UNKNOWN_PARAMETER, MISSING_PARAMETER, PARAMETER_VALUE
    - positionals (1112x)
      • NOT_ENOUGH_ARGUMENTS, TOO_MANY_POSITIONALS
    - delegated (1113x)
      • COMMAND_ERROR, DELEGATED_ERROR
    - process (1114x)
      • SUBPROCESS_EXIT
    - configuration (1115x)
      • CONFIGURATION_ERROR
    - interaction (1116x)
      • COMMAND_ABORTED
    - warnings (12xxx)
      • INVALID_SYNOPSIS, PARAMETER_VALUE_WARNING, DEPRECATED_OPTION,
        IGNORED_CONFIG, COMMAND_WARNING, DELEGATED_WARNING

    rationale
    - codes are discoverable (searchable in logs and docs) and normalized to a string
      via normalize() so hosts can remap them if desired.
    """
    # --- routing errors (11xxx) ---
    UNKNOWN_COMMAND             = 11101
    UNKNOWN_SUBCOMMAND          = 11102
    DISABLED_COMMAND            = 11103

    # --- parameter errors (11xxx) ---
    UNKNOWN_PARAMETER           = 11111
    MISSING_PARAMETER           = 11112
    PARAMETER_VALUE             = 11113

    # --- positional errors (11xxx) ---
    NOT_ENOUGH_ARGUMENTS        = 11121
    TOO_MANY_POSITIONALS        = 11122

    # --- delegated errors (11xxx) ---
    COMMAND_ERROR               = 11131
    DELEGATED_ERROR             = 11132

    # --- process errors (11xxx) ---
    SUBPROCESS_EXIT             = 11141

    # --- configuration errors (11xxx) ---
    CONFIGURATION_ERROR         = 11151

    # --- interaction (11xxx) ---
    COMMAND_ABORTED             = 11161

    # --- warnings (12xxx) ---
    INVALID_SYNOPSIS            = 12101
    PARAMETER_VALUE_WARNING     = 12111
    DEPRECATED_OPTION           = 12112
    IGNORED_CONFIG              = 12121
    COMMAND_WARNING             = 12131
    DELEGATED_WARNING           = 12132

    def normalize(self):
        """
        return a host-normalized string for this code.

        the host application can provide a __codes__ mapping in __main__
        to override numeric ids with friendlier labels. when no mapping
        is present, the numeric value is returned as a string.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


def _palette(defaults):
    # host overrides from __main__.__styles__ win over the built-in palette
    return defaultdict(str, defaults | getattr(__import__("__main__"), "__styles__", {}))


def _render(fault, styles, kind):
    """
    Shared renderer for CommandException and CommandWarning.

    layout
    - header: "[ <prog> — <code> | <Title> ]"
    - body:   the lowercased message
    - hint:   " → <hint>" when a hint is available
    - fancy:  the same content inside a rich Panel titled by the header
    """
    colorful = fault.options.get("colorful", False)
    fancy = fault.options.get("fancy", False)

    def styler(style):
        return styles[style] if colorful else ""

    def text(fragment, style=""):
        if not fragment:
            return Text("")
        if isinstance(fragment, Text):
            return fragment if colorful else Text(fragment.plain)
        return Text(str(fragment), style if colorful else "")

    header = Text.assemble(
        "[ ",
        text(fault.options.get("prog", "cmsctl"), styler("prog-name")),
        " — ",
        text(fault.code.normalize(), styler("code")),
        " | ",
        text(fault.title.title(), styler(kind + "-title")),
        " ]"
    )
    renders = [text(fault.message, styler(kind + "-message"))]
    if hint := fault.hint:
        renders.append(Text.assemble(text(" → ", styler("hint-arrow")), text(hint, styler("hint"))))

    if fancy:
        try:
            width = int((fault.options.get("console") or console).width * fault.options["ratio"])
        except KeyError:
            width = None
        return Panel(Group(*renders), title=header, title_align="left", width=width)

    return Group(header, *renders)


class CommandException(Exception):
    """
    base class of every fatal condition surfaced by the cli.

    construction
    - message: short, lowercased sentence (positional-only).
    - options: free-form context; recognized keys are title, code, hint and the
      rendering flags (prog, console, colorful, fancy, shell).

    class-level defaults
    - __title__ / __code__ / __hint__ provide the copy when the raiser did not
      pass them explicitly (handlers usually raise CommandError("...") bare).
    """
    __title__ = "command error"
    __code__ = FaultCode.COMMAND_ERROR
    __hint__ = None

    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        super().__init__(message if message is not Unset else self.__title__)
        self.message = message if message is not Unset else self.__title__
        self.options = MappingProxyType(options)

    @property
    def title(self):
        return self.options.get("title", self.__title__)

    @property
    def code(self):
        return self.options.get("code", self.__code__)

    @property
    def hint(self):
        return self.options.get("hint", self.__hint__)

    def __str__(self):
        return self.message

    def __rich__(self):
        return _render(self, _palette({
            # header parts
            "prog-name": "bold #E6E6F0",  # near-white program name
            "code": "bold #00E5FF",  # neon cyan fault code
            "error-title": "bold #FF4DA6",  # friendly pinky title

            # body
            "error-message": "#C8C8D0",  # soft light gray message
            "hint-arrow": "#9CE19C dim",  # gentle green arrow
            "hint": "italic #9CE19C",  # gentle green hint text
        }), "error")

    def __trigger__(self):
        if not self.options.get("shell"):
            raise self from self.__cause__
        (self.options.get("console") or console).print(self)

    def __replace__(self, *unused, **overrides):
        assert not unused, "unused arguments are not allowed"
        replica = type(self)(self.message, **{**self.options, **overrides})
        replica.__cause__ = self.__cause__
        return replica


class UnknownCommandError(CommandException):
    __title__ = "unknown command"
    __code__ = FaultCode.UNKNOWN_COMMAND


class UnknownSubcommandError(UnknownCommandError):
    __title__ = "unknown subcommand"
    __code__ = FaultCode.UNKNOWN_SUBCOMMAND


class DisabledCommandError(CommandException):
    __title__ = "disabled command"
    __code__ = FaultCode.DISABLED_COMMAND


class UnknownParameterError(CommandException):
    __title__ = "unknown parameter"
    __code__ = FaultCode.UNKNOWN_PARAMETER


class MissingParameterError(CommandException):
    __title__ = "missing parameter"
    __code__ = FaultCode.MISSING_PARAMETER


class ParameterValueError(CommandException):
    __title__ = "parameter needs a value"
    __code__ = FaultCode.PARAMETER_VALUE


class NotEnoughArgumentsError(CommandException):
    __title__ = "not enough arguments"
    __code__ = FaultCode.NOT_ENOUGH_ARGUMENTS


class TooManyPositionalsError(CommandException):
    __title__ = "too many positional arguments"
    __code__ = FaultCode.TOO_MANY_POSITIONALS


class CommandError(CommandException):
    """
    raised by command handlers to abort with a user-facing message (exit 1).
    """


class DelegatedCommandError(CommandException):
    __title__ = "delegated command error"
    __code__ = FaultCode.DELEGATED_ERROR
    __hint__ = "run again with --debug to see the full traceback"


class ConfigurationError(CommandException):
    __title__ = "configuration error"
    __code__ = FaultCode.CONFIGURATION_ERROR


class SubprocessExit(CommandException):
    """
    a delegated process ended with a non-zero status; the status becomes ours.
    """
    __title__ = "subprocess exit"
    __code__ = FaultCode.SUBPROCESS_EXIT

    @property
    def status(self):
        return self.options.get("status", 1)


class CommandAborted(CommandException):
    """
    the user declined a confirmation; the invocation ends without an error.
    """
    __title__ = "aborted"
    __code__ = FaultCode.COMMAND_ABORTED


class CommandWarning(ABC, Warning):
    """
    base class of every non-fatal condition surfaced by the cli.

    mirrors CommandException (message + read-only options, class-level copy
    defaults) but is emitted instead of raised: printed in shell mode, passed to
    warnings.warn otherwise.
    """
    __title__ = "command warning"
    __code__ = FaultCode.COMMAND_WARNING
    __hint__ = None

    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        super().__init__(message if message is not Unset else self.__title__)
        self.message = message if message is not Unset else self.__title__
        self.options = MappingProxyType(options)

    title = CommandException.title
    code = CommandException.code
    hint = CommandException.hint

    def __str__(self):
        return self.message

    def __rich__(self):
        return _render(self, _palette({
            # header parts
            "prog-name": "bold #E6E6F0",  # near-white program name
            "code": "bold #FFB400",  # amber fault code for warnings
            "warning-title": "bold #FFC2E0",  # softer pinky title for warnings

            # body
            "warning-message": "#D6D6DE",  # slightly lighter gray body
            "hint-arrow": "#B8EFAF dim",  # softer green arrow
            "hint": "italic #B8EFAF",  # softer green hint text
        }), "warning")

    def __trigger__(self):
        if not self.options.get("shell"):
            return warnings.warn(self, stacklevel=len(inspect.stack()))
        (self.options.get("console") or console).print(self)

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})


class SynopsisWarning(CommandWarning):
    __title__ = "invalid synopsis"
    __code__ = FaultCode.INVALID_SYNOPSIS


class ParameterValueWarning(CommandWarning):
    __title__ = "parameter needs a value"
    __code__ = FaultCode.PARAMETER_VALUE_WARNING


class DeprecatedOptionWarning(CommandWarning):
    __title__ = "deprecated option"
    __code__ = FaultCode.DEPRECATED_OPTION


class IgnoredConfigWarning(CommandWarning):
    __title__ = "ignored config option"
    __code__ = FaultCode.IGNORED_CONFIG


class DelegatedCommandWarning(CommandWarning):
    __title__ = "delegated command warning"
    __code__ = FaultCode.DELEGATED_WARNING


class CommandExit(ExceptionGroup[CommandException]):
    """
    every fatal fault of one invocation, reported together.

    options
    - usage: optional usage line rendered above the grouped faults.
    - the usual rendering flags (prog, console, colorful, fancy, shell).
    """

    def __new__(cls, exceptions, **options):
        return super().__new__(cls, "bad exit", tuple(exceptions))

    def __init__(self, exceptions, **options):
        super().__init__("bad exit", tuple(exceptions))
        self.options = MappingProxyType(options)

    def __rich__(self):
        styles = _palette({
            # header
            "prog-name": "bold #E6E6F0",  # near-white program name
            "title": "bold #FF4DA6",  # friendly pinky group title (Bad Exit)
            "usage": "#9CA3AF",
        })
        colorful = self.options.get("colorful", False)

        def text(fragment, style=""):
            return Text(str(fragment), styles[style] if colorful else "")

        header = Text.assemble(
            "[ ", text(self.options.get("prog", "cmsctl"), "prog-name"), " — ", text(self.message.title(), "title"), " ]"
        )

        renders = []
        if usage := self.options.get("usage"):
            renders.append(text(usage, "usage"))

        # nested faults inherit the group's rendering flags, narrowed for panels
        forwarded = {key: value for key, value in self.options.items() if key not in ("usage", "shell")}
        for exception in self.exceptions:
            renders.append(copy.replace(exception, **forwarded, ratio=2 / 3))

        if self.options.get("fancy"):
            return Panel(Group(*renders), title=header, title_align="left")

        return Group(header, *renders)

    def __trigger__(self):
        if not self.options.get("shell"):
            raise self from self.__cause__
        (self.options.get("console") or console).print(self)

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        return type(self)(self.exceptions, **{**self.options, **overrides})


def trigger(fault, /, **options):
    """
    surface a fault with the given runtime options.

    contract
    - fault must provide __trigger__ and __replace__ methods (see base classes).
    - options are merged into the fault via copy.replace(fault, **options) before triggering.
    - in shell mode, rendering happens via the rich console; otherwise errors are
      raised and warnings go through warnings.warn.

    typical options
    - prog, console, shell, fancy, colorful, title, code, hint, usage, and any
      other context the reporter may want to show.
    """
    if (
        not hasattr(fault, "__trigger__") or
        not callable(fault.__trigger__) or
        not hasattr(fault, "__replace__") or
        not callable(fault.__replace__)
    ):
        raise TypeError("trigger() argument must have a __trigger__ and __replace__ methods")
    copy.replace(fault, **options).__trigger__()


__all__ = (
    "CommandException",
    "UnknownCommandError",
    "UnknownSubcommandError",
    "DisabledCommandError",
    "UnknownParameterError",
    "MissingParameterError",
    "ParameterValueError",
    "NotEnoughArgumentsError",
    "TooManyPositionalsError",
    "CommandError",
    "DelegatedCommandError",
    "ConfigurationError",
    "SubprocessExit",
    "CommandAborted",
    "CommandWarning",
    "SynopsisWarning",
    "ParameterValueWarning",
    "DeprecatedOptionWarning",
    "IgnoredConfigWarning",
    "DelegatedCommandWarning",
    "CommandExit",
    "FaultCode",
    "trigger",
)
