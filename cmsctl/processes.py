"""
Subprocess delegation.

Launching hands the terminal over to the child (stdin, stdout and stderr are
inherited) and blocks until it exits. A non-zero status is reported as a
SubprocessExit fault carrying the child's status, which the pipeline turns
into its own exit status.
"""
import os
import shlex
import subprocess
import sys

from .faults import SubprocessExit

COMMAND_VARIABLE = "CMSCTL_COMMAND"
REUSED_OPTIONS = ("path", "url", "user")


def _status(returncode):
    # killed by a signal: report it the way shells do
    return 128 - returncode if returncode < 0 else returncode


def _display(command):
    return command if isinstance(command, str) else shlex.join(command)


def launch(command, exit_on_error=True, /, *, environ=None):
    """
    Run command (a shell string or an argument list) with inherited stdio.

    Returns the exit status; when exit_on_error is set, a non-zero status
    raises SubprocessExit instead.
    """
    try:
        completed = subprocess.run(command, shell=isinstance(command, str), env=environ)
    except FileNotFoundError as exception:
        status = 127
        cause = exception
    else:
        status = _status(completed.returncode)
        cause = None

    if status and exit_on_error:
        raise SubprocessExit(
            "command %s exited with status %d" % (_display(command), status),
            status=status,
            command=_display(command),
        ) from cause

    return status


def assoc_args_to_list(assoc_args, /):
    """
    Render associative arguments back to tokens: --key=value, --key for True,
    --no-key for False, one --key=value per item for sequences.
    """
    tokens = []
    for key, value in assoc_args.items():
        if value is True:
            tokens.append("--%s" % key)
        elif value is False:
            tokens.append("--no-%s" % key)
        elif isinstance(value, (list, tuple)):
            tokens.extend("--%s=%s" % (key, item) for item in value)
        else:
            tokens.append("--%s=%s" % (key, value))
    return tokens


def base_command(environ=None, /):
    """
    How to start this tool again: CMSCTL_COMMAND (shell-split) when set, the
    running interpreter with '-m cmsctl' otherwise.
    """
    environ = os.environ if environ is None else environ
    if command := environ.get(COMMAND_VARIABLE, "").strip():
        return shlex.split(command)
    return [sys.executable, "-m", "cmsctl"]


def launch_self(config, command, args=(), assoc_args=None, /, *, exit_on_error=True, environ=None):
    """
    Relaunch this tool as a subprocess running command, carrying over the
    path, url and user options of the current configuration.
    """
    assoc_args = dict(assoc_args or {})
    for key in REUSED_OPTIONS:
        if value := config.get(key):
            assoc_args[key] = value

    full = [
        *base_command(environ),
        *(shlex.split(command) if isinstance(command, str) else command),
        *map(str, args),
        *assoc_args_to_list(assoc_args),
    ]
    return launch(full, exit_on_error, environ=None if environ is None else dict(environ))


__all__ = (
    "launch",
    "launch_self",
    "assoc_args_to_list",
    "base_command",
)
