"""
cmsctl invocation pipeline.

Application is the explicit context of one program: the command tree, the
option-spec table, the before-invoke hooks, and (once bootstrapped) the
resolved configuration and the reporter. It is built once at startup; run()
resolves the configuration and is the only place where faults are surfaced.

Flow of run(arguments)
1. resolve configuration (global file → project files → environment → CLI)
2. report deprecated options and config keys a file may not set
3. load the files listed by `require` (they receive the application as `app`)
4. resolve the command path; unknown paths are fatal
5. refuse commands listed in `disabled_commands`
6. composite node → print its usage and subcommands; leaf → invoke()

Flow of invoke(node, args, assoc_args)
1. prompt for every argument when `prompt` is set
2. validate against the synopsis; warnings printed, fatal faults grouped in a
   CommandExit carrying the usage line
3. drop discarded keys; per-command config defaults go under the assoc args
4. run the before-invoke hook of the top-level command, if any
5. call the handler; CommandError/CommandException propagate, CommandWarning is
   printed, any other exception becomes a DelegatedCommandError

Exit statuses
- 0 on success (warnings included) or when a confirmation is declined, 1 for
  any fatal fault, and the child's own status when a delegated subprocess fails.
"""
import os
import os.path
import runpy
import sys
from warnings import catch_warnings, simplefilter

from rich.console import Group
from rich.prompt import Confirm
from rich.table import Table
from rich.text import Text

from .commands import CommandTree
from .configuration import SPEC, Configurator, locate_global_config, locate_project_config
from .faults import *
from .processes import launch_self
from .prompts import Prompter, console_ask
from .reporting import Reporter
from .utils import Unset, arrayify
from .validation import Report, validate


class Application:
    """
    Explicit application context.

    Parameters
    - name: program name, also the name of the root node.
    - spec: option-spec table (configuration.SPEC by default).
    - shell: when True (the default), faults are printed and run() returns an
      exit status; when False they are raised (errors) or warned (warnings).
    - stdout / stderr: rich consoles to print to (created from the `color`
      option when omitted).
    - ask: asker used by the prompter (see prompts.console_ask).
    - environ / cwd: process environment and working directory to resolve the
      configuration from.
    """

    def __init__(
            self,
            name="cmsctl",
            /,
            *,
            spec=SPEC,
            shell=True,
            stdout=Unset,
            stderr=Unset,
            ask=None,
            environ=None,
            cwd=None
    ):
        self._tree = CommandTree(name)
        self._spec = tuple(spec)
        self._shell = bool(shell)
        self._stdout = stdout
        self._stderr = stderr
        self._ask = ask
        self._environ = os.environ if environ is None else environ
        self._cwd = cwd
        self._hooks = {}
        self._config = Configurator(self._spec).freeze()
        self._reporter = Reporter(stdout, stderr)

    @property
    def name(self):
        return self._tree.name

    @property
    def tree(self):
        return self._tree

    @property
    def spec(self):
        return self._spec

    @property
    def config(self):
        return self._config

    @property
    def reporter(self):
        return self._reporter

    @property
    def shell(self):
        return self._shell

    @property
    def environ(self):
        return self._environ

    # --- registration ---

    def command(self, path, handler=Unset, /, *, before_invoke=None, **metadata):
        """
        Register a handler at path (see CommandTree.command); usable as a decorator.
        """
        if before_invoke is not None:
            self.before_invoke(path.split()[0] if isinstance(path, str) else path[0], before_invoke)
        return self._tree.command(path, handler, **metadata)

    def register(self, name, source, /, *, before_invoke=None):
        """
        Register a function or a class of subcommands under name (see CommandTree.register).
        """
        node = self._tree.register(name, source)
        if before_invoke is not None:
            self.before_invoke(self._tree.path_of(node)[0], before_invoke)
        return node

    def before_invoke(self, name, callback, /):
        """
        Run callback right before any handler below the top-level command name.
        At most one callback per name.
        """
        if not callable(callback):
            raise TypeError("before_invoke() callback must be callable")
        if name in self._hooks:
            raise ValueError("a before-invoke hook is already registered for %r" % name)
        self._hooks[name] = callback

    # --- faults ---

    def trigger(self, fault, /):
        """
        surface a fault with this application's rendering options.
        """
        trigger(
            fault,
            shell=self._shell,
            console=self._reporter.stderr,
            colorful=self._reporter.colorful,
            prog=self.name,
        )

    def not_found(self, missing, /):
        """
        the unknown (sub)command fault for a NotFound lookup result.
        """
        if suggestions := missing.suggestions:
            hint = "did you mean %r?" % " ".join((*missing.matched, suggestions[0]))
        else:
            hint = "run '%s' to see available commands" % " ".join((self.name, "help", *missing.matched))

        if missing.matched:
            return UnknownSubcommandError(
                "'%s' is not a registered subcommand of '%s'" % (missing.missing, " ".join(missing.matched)),
                hint=hint,
                path=missing.path,
                suggestions=suggestions,
            )
        return UnknownCommandError(
            "'%s' is not a registered command" % missing.missing,
            hint=hint,
            path=missing.path,
            suggestions=suggestions,
        )

    def _check_disabled(self, node):
        disabled = {str(entry).strip() for entry in arrayify(self._config.get("disabled_commands"))}
        path = self._tree.path_of(node)
        for depth in range(1, len(path) + 1):
            if (command := " ".join(path[:depth])) in disabled:
                raise DisabledCommandError(
                    "the '%s' command has been disabled from the config file" % command,
                    command=command,
                    hint="remove it from disabled_commands to use it again",
                )

    # --- bootstrap ---

    def bootstrap(self, arguments, /):
        """
        Resolve the configuration layers for arguments and configure the reporter.

        Returns the parsed Arguments; deprecations are reported by run().
        """
        configurator = Configurator(self._spec)
        parsed = configurator.parse_args(arguments)

        files = (
            locate_global_config(self._environ, parsed.runtime.get("config")),
            *locate_project_config(self._cwd),
        )
        for path in filter(None, files):
            configurator.merge_yml(path)
        configurator.merge_environ(self._environ)
        configurator.merge_runtime(parsed.runtime)

        self._config = configurator.freeze()
        self._reporter = Reporter.from_config(self._config, self._stdout, self._stderr)
        return parsed

    def _report_configuration(self, parsed):
        for deprecation in parsed.deprecations:
            self.trigger(DeprecatedOptionWarning(
                "the --%s global parameter is deprecated" % deprecation.key,
                key=deprecation.key,
                hint=deprecation.message.lower(),
            ))
        for ignored in self._config.ignored:
            self.trigger(IgnoredConfigWarning(
                "the %s option cannot be set from a config file" % ignored.key,
                key=ignored.key,
                source=ignored.source,
                hint="pass it on the command line instead" if self._option(ignored.key).runtime is not False else None,
            ))

    def _option(self, key):
        return next(option for option in self._spec if option.key == key)

    def _load_requires(self):
        for path in self._config.get("require", ()):
            if not os.path.isfile(path):
                raise ConfigurationError(
                    "required file %s does not exist" % path,
                    path=path,
                    hint="check the require option of your configuration",
                )
            self._reporter.debug("loading %s" % path)
            try:
                runpy.run_path(path, init_globals={"app": self}, run_name="__cmsctl_require__")
            except (CommandException, CommandExit):
                raise
            except Exception as exception:
                self._reporter.exception(exception)
                raise DelegatedCommandError(
                    "error while loading %s: %s" % (path, exception),
                    path=path,
                    exception=exception,
                ) from exception

    # --- running ---

    def run(self, arguments=Unset, /):
        """
        Run the program for arguments (sys.argv[1:] by default) and return the exit status.
        """
        arguments = sys.argv[1:] if arguments is Unset else list(arguments)
        try:
            parsed = self.bootstrap(arguments)
            self._report_configuration(parsed)
            self._load_requires()

            node, remaining = self._tree.resolve(parsed.positionals)
            if not node:
                raise self.not_found(node)
            self._check_disabled(node)

            if not node.is_leaf:
                self._reporter.render(self.describe(node))
                return 0

            self.invoke(node, remaining, parsed.assoc)
        except SubprocessExit as fault:
            if not self._shell:
                raise
            self._reporter.debug(fault.message)
            return fault.status
        except CommandAborted as fault:
            if not self._shell:
                raise
            self._reporter.debug(fault.message)
            return 0
        except (CommandException, CommandExit) as fault:
            self.trigger(fault)
            return 1
        return 0

    def run_command(self, args, assoc_args=None, /):
        """
        Run another command in process, as if typed after the program name.
        """
        node, remaining = self._tree.resolve(args)
        if not node:
            raise self.not_found(node)
        self._check_disabled(node)
        if not node.is_leaf:
            self._reporter.render(self.describe(node))
            return
        self.invoke(node, remaining, dict(assoc_args or {}))

    def invoke(self, node, args, assoc_args, /):
        """
        Prompt, validate, normalize and call the handler of a leaf node.

        Raises
        - CommandExit: the invocation does not match the synopsis (nothing ran).
        - CommandException: raised by the handler (or DelegatedCommandError
          wrapping any other handler exception).
        """
        path = self._tree.path_of(node)
        args = list(args)
        assoc_args = dict(assoc_args)
        synopsis = node.get_synopsis()

        if self._config.get("prompt") and synopsis:
            prompter = Prompter(self._ask or console_ask(self._reporter.stdout))
            args, assoc_args, cancelled = prompter.collect(node.specs, assoc_args)
            if cancelled:
                self._reporter.debug("prompt cancelled, validating what was collected")

        extra = self._config.for_command(path)
        if synopsis:
            report = validate(node.specs, args, assoc_args, {**self._config, **extra}, path=path, prog=self.name)
        else:
            report = Report((), (), frozenset())

        for warning in report.warnings:
            self.trigger(warning)
        if report.fatal:
            raise CommandExit(report.fatal, usage=self._tree.usage(node))

        for key in report.discard:
            assoc_args.pop(key, None)

        if hook := self._hooks.get(path[0]):
            hook()

        self._call(node, path, args, {**extra, **assoc_args})

    def _call(self, node, path, args, assoc_args):
        command = " ".join(path)
        raised = []
        with catch_warnings(record=True) as caught:
            simplefilter("always")
            try:
                node.handler(args, assoc_args)
            except (CommandException, CommandExit):
                raise
            except CommandWarning as warning:
                raised.append(warning)
            except Exception as exception:
                self._reporter.exception(exception)
                raise DelegatedCommandError(
                    "command '%s' failed: %s" % (command, exception),
                    command=command,
                    exception=exception,
                ) from exception

        # warnings surface only once the handler is done
        for record in caught:
            if isinstance(record.message, CommandWarning):
                self.trigger(record.message)
            else:
                self.trigger(DelegatedCommandWarning(
                    str(record.message),
                    command=command,
                    category=record.category.__name__,
                    hint="reported by the '%s' command" % command,
                ))
        for warning in raised:
            self.trigger(warning)

    # --- helpers for handlers ---

    def confirm(self, question, assoc_args=None, /):
        """
        Ask a yes/no question before doing something destructive.

        --yes in assoc_args skips the question. Any answer but yes (an
        interrupt included) raises CommandAborted, which ends the invocation
        with status 0.
        """
        if (assoc_args or {}).get("yes"):
            return
        try:
            answer = Confirm.ask(Text(question), console=self._reporter.stdout, default=False)
        except (KeyboardInterrupt, EOFError):
            self._reporter.stdout.line()
            answer = False
        if not answer:
            raise CommandAborted("confirmation declined", question=question)

    def launch_self(self, command, args=(), assoc_args=None, /, *, exit_on_error=True):
        """
        Relaunch this program as a subprocess (see processes.launch_self).
        """
        return launch_self(
            self._config,
            command,
            args,
            assoc_args,
            exit_on_error=exit_on_error,
            environ=self._environ,
        )

    def usage(self, node, /):
        return self._tree.usage(node)

    def describe(self, node=Unset, /):
        """
        Help for a node: usage line, descriptions, and for composite nodes the
        subcommand listing (plus the global parameters at the root).
        """
        node = self._tree.root if node is Unset else node
        renders = [Text(self._tree.usage(node))]

        if node.descr:
            renders.extend((Text(""), Text(node.descr)))
        if node.longdesc:
            renders.extend((Text(""), Text(node.longdesc)))

        if children := self._tree.list_children(node):
            table = Table.grid(padding=(0, 2))
            for child in children:
                table.add_row(child.name, child.descr)
            renders.extend((Text(""), Text("subcommands:"), table))

        if node is self._tree.root:
            table = Table.grid(padding=(0, 2))
            for option in self._spec:
                if option.synopsis and not option.hidden and not option.deprecated:
                    table.add_row(option.synopsis, option.descr)
            renders.extend((Text(""), Text("global parameters:"), table))

        return Group(*renders)


__all__ = (
    "Application",
)
