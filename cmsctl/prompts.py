"""
cmsctl interactive prompter.

When the `prompt` option is on, the pipeline asks the user for every argument
of the synopsis before validating. Prompter.collect() walks the specs once, in
declaration order, one state per spec:

- positional      ask once; empty input is accepted only for optional specs
                  (required ones are asked again); the answer is the next
                  positional argument.
- repeating       ask once; the answer is split on whitespace and fills every
                  remaining positional slot.
- flag            '(y/N)' affordance; only y/yes sets the flag.
- assoc           ask once; a non-empty answer sets the key.
- generic         loop: ask a key, then its value, until the key is empty.

Cancelling (ctrl-c / end of input) at any question ends the walk; collect()
then returns what was gathered with cancelled=True and never raises, so the
validator can still explain what is missing.

Askers
- An asker is a callable(question) returning an Answer. Plain strings are
  accepted too ("" means skipped) and None means cancelled, which keeps
  scripted askers in tests short.
- console_ask(console) builds the default asker on top of rich.prompt.Prompt.
"""
from collections import namedtuple
from enum import Enum

from rich.console import Console
from rich.prompt import Prompt
from rich.text import Text

from .synopsis import Kind


class Outcome(Enum):
    VALUE = "value"
    SKIPPED = "skipped"
    CANCELLED = "cancelled"


Answer = namedtuple("Answer", ("outcome", "value"))

Collected = namedtuple("Collected", ("args", "assoc_args", "cancelled"))


def _answer(result):
    if isinstance(result, Answer):
        return result
    if result is None:
        return Answer(Outcome.CANCELLED, None)
    if not isinstance(result, str):
        raise TypeError("asker must return an Answer, a string or None")
    return Answer(Outcome.VALUE, result) if result.strip() else Answer(Outcome.SKIPPED, "")


def console_ask(console=None, /):
    """
    Default asker: one rich prompt per question on the given console.
    """
    console = console or Console()

    def ask(question):
        try:
            response = Prompt.ask(Text(question), console=console, default="", show_default=False)
        except (KeyboardInterrupt, EOFError):
            console.line()
            return Answer(Outcome.CANCELLED, None)
        return _answer(response.strip())

    return ask


class Prompter:
    def __init__(self, ask=None, /):
        self._ask = ask or console_ask()

    def ask(self, question, /, *, required=False):
        while True:
            answer = _answer(self._ask(question))
            if answer.outcome is not Outcome.SKIPPED or not required:
                return answer

    def collect(self, specs, assoc_args=None, /):
        """
        Collect arguments for specs interactively.

        Positional arguments are collected afresh; associative arguments given
        on the command line are kept unless answered again.

        Returns
        - Collected(args, assoc_args, cancelled)
        """
        specs = [spec for spec in specs if spec.kind is not Kind.UNKNOWN]
        args = []
        assoc = dict(assoc_args or {})

        for number, spec in enumerate(specs, 1):
            label = "%d/%d " % (number, len(specs))

            if spec.kind is Kind.GENERIC:
                prefix = label
                while True:
                    question = prefix + "--<field>"
                    key = self.ask(question)
                    if key.outcome is Outcome.CANCELLED:
                        return Collected(args, assoc, True)
                    if key.outcome is Outcome.SKIPPED:
                        break

                    value = self.ask(" " * len(question) + "=<value>")
                    if value.outcome is Outcome.CANCELLED:
                        return Collected(args, assoc, True)

                    assoc[key.value.strip().removeprefix("--")] = value.value
                    prefix = " " * len(label)
                continue

            if spec.kind is Kind.FLAG:
                answer = self.ask(label + spec.token + " (y/N)")
            else:
                answer = self.ask(label + spec.token, required=not spec.optional)

            match answer.outcome:
                case Outcome.CANCELLED:
                    return Collected(args, assoc, True)
                case Outcome.SKIPPED:
                    continue

            match spec.kind:
                case Kind.POSITIONAL if spec.repeating:
                    args.extend(answer.value.split())
                case Kind.POSITIONAL:
                    args.append(answer.value)
                case Kind.ASSOC:
                    assoc[spec.name] = answer.value
                case Kind.FLAG:
                    if answer.value.strip().lower() in ("y", "yes"):
                        assoc[spec.name] = True

        return Collected(args, assoc, False)


__all__ = (
    "Outcome",
    "Answer",
    "Collected",
    "Prompter",
    "console_ask",
)
