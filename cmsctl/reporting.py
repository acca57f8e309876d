"""
cmsctl output surface.

Reporter wraps two rich consoles (standard output and the diagnostic stream)
and is the only thing the pipeline and command handlers print through:

- line(message)     plain line on stdout
- log(message)      informational line on stdout, silenced by `quiet`
- success(message)  "Success: …" on stdout, silenced by `quiet`
- warning(message)  "Warning: …" on stderr
- error(message)    "Error: …" on stderr (printing only, never exits)
- debug(message)    "Debug: …" on stderr, only with `debug`
- render(object)    any rich renderable (faults, tables, help)
- exception(error)  full rich traceback, only with `debug`

Colour follows the `color` option: "auto" lets rich detect the terminal, a
truthy value forces colour, a falsy one turns it off.
"""
from rich.console import Console
from rich.text import Text
from rich.traceback import Traceback

from .utils import Unset, coalesce


def _console(colorful, stderr):
    match colorful:
        case "auto" | None:
            return Console(stderr=stderr)
        case True | "1" | "true" | "yes" | "on" | "always":
            return Console(stderr=stderr, force_terminal=True)
    return Console(stderr=stderr, no_color=True, color_system=None)


class Reporter:
    def __init__(self, stdout=Unset, stderr=Unset, /, *, colorful="auto", quiet=False, debug=False):
        self._stdout = coalesce(stdout, None) or _console(colorful, False)
        self._stderr = coalesce(stderr, None) or _console(colorful, True)
        self._colorful = colorful
        self._quiet = bool(quiet)
        self._debug = bool(debug)

    @classmethod
    def from_config(cls, config, stdout=Unset, stderr=Unset, /):
        """
        reporter honoring the `color`, `quiet` and `debug` options of a resolved configuration.
        """
        return cls(
            stdout,
            stderr,
            colorful=config.get("color", "auto"),
            quiet=config.get("quiet", False),
            debug=config.get("debug", False),
        )

    @property
    def stdout(self):
        return self._stdout

    @property
    def stderr(self):
        return self._stderr

    @property
    def colorful(self):
        """
        whether styled output is wanted on the diagnostic stream.
        """
        if self._colorful in ("auto", None):
            return self._stderr.is_terminal and not self._stderr.no_color
        return self._stderr.color_system is not None and not self._stderr.no_color

    @property
    def quiet(self):
        return self._quiet

    @property
    def debugging(self):
        return self._debug

    def _say(self, console, label, style, message):
        text = Text.assemble((label, style if self.colorful else ""), " ", str(message))
        console.print(text, soft_wrap=True)

    def line(self, message="", /):
        self._stdout.print(Text(str(message)), soft_wrap=True)

    def log(self, message, /):
        if not self._quiet:
            self.line(message)

    def success(self, message, /):
        if not self._quiet:
            self._say(self._stdout, "Success:", "bold green", message)

    def warning(self, message, /):
        self._say(self._stderr, "Warning:", "bold yellow", message)

    def error(self, message, /):
        self._say(self._stderr, "Error:", "bold red", message)

    def debug(self, message, /):
        if self._debug:
            self._say(self._stderr, "Debug:", "dim", message)

    def render(self, renderable, /, *, stderr=False):
        (self._stderr if stderr else self._stdout).print(renderable)

    def exception(self, exception, /):
        if self._debug:
            self._stderr.print(Traceback.from_exception(
                type(exception), exception, exception.__traceback__, show_locals=False
            ))


__all__ = (
    "Reporter",
)
