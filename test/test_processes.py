"""
Subprocess delegation tests.

Scope
- launch(): inherited stdio, exit statuses, SubprocessExit on failure.
- launch_self(): base command, carried-over global options.
- assoc_args_to_list().

Conventions
- Test method names follow CamelCase per project convention.
- subprocess.run is mocked; no process is ever started.
"""
import subprocess
import sys
import unittest
from unittest import TestCase, mock

from cmsctl.faults import SubprocessExit
from cmsctl.processes import assoc_args_to_list, base_command, launch, launch_self


def completed(status):
    return subprocess.CompletedProcess(args=(), returncode=status)


class TestLaunch(TestCase):
    """Behavioral tests for launch()."""

    def testSuccess(self):
        with mock.patch("cmsctl.processes.subprocess.run", return_value=completed(0)) as run:
            self.assertEqual(launch(["mysql", "--version"]), 0)
        run.assert_called_once_with(["mysql", "--version"], shell=False, env=None)

    def testStringRunsThroughTheShell(self):
        with mock.patch("cmsctl.processes.subprocess.run", return_value=completed(0)) as run:
            launch("mysql --version | head -1")
        self.assertIs(run.call_args.kwargs["shell"], True)

    def testFailureRaisesWithStatus(self):
        with mock.patch("cmsctl.processes.subprocess.run", return_value=completed(3)):
            with self.assertRaises(SubprocessExit) as context:
                launch(["false"])
        self.assertEqual(context.exception.status, 3)
        self.assertEqual(context.exception.options["command"], "false")

    def testFailureWithoutExit(self):
        with mock.patch("cmsctl.processes.subprocess.run", return_value=completed(3)):
            self.assertEqual(launch(["false"], False), 3)

    def testSignalStatus(self):
        with mock.patch("cmsctl.processes.subprocess.run", return_value=completed(-9)):
            self.assertEqual(launch(["sleep", "60"], False), 137)

    def testMissingProgram(self):
        with mock.patch("cmsctl.processes.subprocess.run", side_effect=FileNotFoundError("nope")):
            with self.assertRaises(SubprocessExit) as context:
                launch(["no-such-program"])
        self.assertEqual(context.exception.status, 127)
        self.assertIsInstance(context.exception.__cause__, FileNotFoundError)


class TestLaunchSelf(TestCase):
    """Behavioral tests for launch_self() and its helpers."""

    def testAssocArgsToList(self):
        self.assertEqual(
            assoc_args_to_list({"status": "active", "network": True, "color": False, "require": ("a.py", "b.py")}),
            ["--status=active", "--network", "--no-color", "--require=a.py", "--require=b.py"]
        )

    def testBaseCommandDefaultsToInterpreter(self):
        self.assertEqual(base_command({}), [sys.executable, "-m", "cmsctl"])

    def testBaseCommandFromEnvironment(self):
        self.assertEqual(base_command({"CMSCTL_COMMAND": "/opt/cmsctl --dev"}), ["/opt/cmsctl", "--dev"])

    def testCarriesOverGlobalOptions(self):
        config = {"path": "/srv/site", "url": None, "user": "admin", "debug": True}
        environ = {"CMSCTL_COMMAND": "cmsctl-dev"}
        with mock.patch("cmsctl.processes.subprocess.run", return_value=completed(0)) as run:
            status = launch_self(config, "plugin list", ["extra"], {"status": "active"}, environ=environ)

        self.assertEqual(status, 0)
        self.assertEqual(run.call_args.args[0], [
            "cmsctl-dev",
            "plugin",
            "list",
            "extra",
            "--status=active",
            "--path=/srv/site",
            "--user=admin",
        ])
        self.assertEqual(run.call_args.kwargs["env"], environ)


if __name__ == "__main__":
    unittest.main()
