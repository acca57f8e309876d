"""
cmsctl synopsis validator.

validate() checks what a user actually typed against a parsed synopsis and
answers with a Report; it never raises and never prints. The pipeline decides
what to do with the result (trigger the warnings, group the fatal faults into a
CommandExit, drop the discarded keys).

Checks, all collected in a single pass
- malformed synopsis parts           → SynopsisWarning
- fewer positionals than required    → NotEnoughArgumentsError
- more positionals than accepted     → TooManyPositionalsError (excess listed)
- assoc keys the synopsis never names → UnknownParameterError (one, aggregated),
  skipped entirely when a generic [--<field>=<value>] spec is present
- required assoc spec absent         → MissingParameterError
- value-taking assoc given bare      → ParameterValueError when required, else
  ParameterValueWarning and the key is reported in Report.discard
"""
import difflib
from collections import namedtuple

from .faults import (
    MissingParameterError,
    NotEnoughArgumentsError,
    ParameterValueError,
    ParameterValueWarning,
    SynopsisWarning,
    TooManyPositionalsError,
    UnknownParameterError,
)
from .synopsis import Kind, parse
from .utils import pluralize

Report = namedtuple("Report", ("fatal", "warnings", "discard"))
Report.__doc__ = """
Outcome of validate().

- fatal: tuple of CommandException, empty when the invocation may proceed.
- warnings: tuple of CommandWarning, to be surfaced before the handler runs.
- discard: frozenset of associative keys the pipeline must drop.
"""


def _helpline(prog, path):
    return "run '%s help %s' to see the synopsis" % (prog, " ".join(path)) if path else None


def _positionals(specs, args, options):
    positionals = [spec for spec in specs if spec.kind is Kind.POSITIONAL]
    required = [spec for spec in positionals if not spec.optional]

    if len(args) < len(required):
        missing = required[len(args)]
        yield NotEnoughArgumentsError(
            "not enough arguments: expected at least %d, got %d (missing %s)" % (
                len(required), len(args), missing.display
            ),
            expected=len(required),
            given=len(args),
            missing=missing.name,
            **options
        )

    if any(spec.repeating for spec in positionals):
        return

    if excess := list(args[len(positionals):]):
        yield TooManyPositionalsError(
            "too many positional arguments: %s" % " ".join(excess),
            excess=tuple(excess),
            **options
        )


def _associatives(specs, assoc_args, merged, options, discard):
    named = {spec.name: spec for spec in specs if spec.kind in (Kind.ASSOC, Kind.FLAG)}

    for spec in named.values():
        if spec.kind is not Kind.ASSOC:
            continue

        if merged.get(spec.name) is None:
            if not spec.optional:
                yield MissingParameterError(
                    "missing --%s parameter" % spec.name,
                    key=spec.name,
                    **options
                )
            continue

        # a bare --key for an option that needs --key=<value>
        if merged[spec.name] is True and not spec.value_optional:
            if not spec.optional:
                yield ParameterValueError(
                    "--%s parameter needs a value" % spec.name,
                    key=spec.name,
                    **options
                )
            else:
                discard.add(spec.name)
                yield ParameterValueWarning(
                    "--%s parameter needs a value, ignoring it" % spec.name,
                    key=spec.name,
                    **options
                )

    if any(spec.kind is Kind.GENERIC for spec in specs):
        return

    if unknown := [key for key in assoc_args if key not in named]:
        suggestions = difflib.get_close_matches(unknown[0], named.keys(), 3)
        hint = options.get("hint")
        if suggestions:
            hint = "did you mean --%s?" % suggestions[0]
        yield UnknownParameterError(
            "unknown %s %s" % (", ".join("--" + key for key in unknown), pluralize("parameter", len(unknown))),
            **options | {
                "keys": tuple(unknown),
                "suggestions": tuple(suggestions),
                "hint": hint,
            }
        )


def validate(specs, args, assoc_args, config=None, /, *, path=(), prog="cmsctl"):
    """
    Check an invocation against a synopsis.

    Parameters
    - specs: parsed ArgSpec sequence, or synopsis text (parsed on the fly).
    - args: positional arguments, in order.
    - assoc_args: associative arguments typed by the user.
    - config: resolved configuration merged with per-command defaults; required
      assoc specs may be satisfied from it.
    - path / prog: used for the hint attached to every fault.

    Returns
    - Report(fatal, warnings, discard). Arity and associative problems are all
      collected; nothing short-circuits.
    """
    if isinstance(specs, str):
        specs = parse(specs)

    options = {"command": " ".join(path), "hint": _helpline(prog, path)}
    merged = {**(config or {}), **assoc_args}
    discard = set()
    fatal = []
    warnings = []

    for spec in specs:
        if spec.kind is Kind.UNKNOWN:
            warnings.append(SynopsisWarning(
                "invalid synopsis part: %s" % spec.token,
                token=spec.token,
                command=options["command"],
                hint="fix the synopsis declared by the command",
            ))

    fatal.extend(_positionals(specs, args, options))

    for fault in _associatives(specs, assoc_args, merged, options, discard):
        (warnings if isinstance(fault, ParameterValueWarning) else fatal).append(fault)

    return Report(tuple(fatal), tuple(warnings), frozenset(discard))


__all__ = (
    "Report",
    "validate",
)
