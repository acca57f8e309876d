"""
cmsctl configuration resolver.

Scope
- Split raw process arguments into positionals, command-specific associative
  arguments and recognized global options.
- Merge global options from layered sources into one frozen map, honoring the
  per-option policy declared in the option-spec table (SPEC).

Layers (increasing precedence)
    defaults → global config file → project config file(s) → environment → command line

Policy (per Option)
- runtime: False when the option cannot be given on the command line (the token
  then lands in the command's own associative arguments), True for a negatable
  flag (--color / --no-color), "" for a plain flag, or a value syntax such as
  "=<path>" / "[=<plugin>]".
- file: False when a config file may not set it, otherwise the placeholder of
  its value ("<path>", "<bool>", "<list>", …). "<path>" values are resolved
  relative to the directory of the file declaring them.
- multiple: later layers append instead of replacing.
- deprecated: replacement message; the option still works.

Notes
- Nothing here prints. Deprecated options and ignored file keys are classified
  and handed back; the pipeline reports them.
"""
import os
import os.path
import re
from collections import namedtuple
from collections.abc import Mapping
from types import MappingProxyType

import yaml

from .faults import ConfigurationError
from .utils import arrayify, coalesce, Unset

ENVIRON_PREFIX = "CMSCTL_"
CONFIG_PATH_VARIABLE = "CMSCTL_CONFIG_PATH"
PROJECT_CONFIG_FILES = ("cmsctl.yml", "cmsctl.local.yml")


class Option(namedtuple("Option", (
    "key",
    "runtime",
    "file",
    "default",
    "multiple",
    "deprecated",
    "hidden",
    "descr",
), defaults=(False, False, None, False, None, False, ""))):
    """
    One row of the option-spec table.
    """
    __slots__ = ()

    @property
    def flag(self):
        """
        whether the option is a boolean presence switch on the command line.
        """
        return self.runtime is True or self.runtime == ""

    @property
    def synopsis(self):
        """
        command-line form of the option ('--[no-]color', '--path=<path>'); None when not a runtime option.
        """
        if self.runtime is False:
            return None
        if self.runtime is True:
            return "--[no-]%s" % self.key
        return "--%s%s" % (self.key, self.runtime)


SPEC = (
    Option("path", "=<path>", "<path>", descr="Path to the platform files"),
    Option("url", "=<url>", "<url>", descr="Pretend request came from given URL"),
    Option("blog", "=<url>", deprecated="Use --url instead."),
    Option("config", "=<path>", deprecated="Use the %s environment variable instead." % CONFIG_PATH_VARIABLE),
    Option("user", "=<id|login>", "<id|login>", descr="Set the platform user"),
    Option("skip-plugins", "[=<plugin>]", default="", descr="Skip loading all or some plugins"),
    Option(
        "require",
        "=<path>",
        "<path>",
        default=(),
        multiple=True,
        descr="Load a Python file before running the command (may be used more than once)"
    ),
    Option("disabled_commands", file="<list>", default=(), descr="(Sub)commands to disable"),
    Option("color", True, "<bool>", default="auto", descr="Whether to colorize the output"),
    Option("debug", "", "<bool>", default=False, descr="Show debug messages and full tracebacks"),
    Option("prompt", "", default=False, descr="Prompt the user to enter values for all command arguments"),
    Option("quiet", "", "<bool>", default=False, descr="Suppress informational messages"),
    Option(
        "apache_modules",
        file="<list>",
        default=(),
        multiple=True,
        descr="List of Apache Modules that are to be reported as loaded"
    ),
    Option("allow-root", "", hidden=True, descr="Allow running as the superuser"),
)

Deprecation = namedtuple("Deprecation", ("key", "message"))

Ignored = namedtuple("Ignored", ("key", "source"))

Arguments = namedtuple("Arguments", ("positionals", "assoc", "runtime", "deprecations"))


def tokenize(arguments, /):
    """
    Split raw arguments into positionals and (key, value) pairs.

    - --no-name     → ("name", False)
    - --name        → ("name", True)
    - --name=value  → ("name", "value"); the value is the rest of the token,
                      verbatim (newlines included, may be empty)
    - anything else → positional
    """
    positionals = []
    pairs = []

    for argument in arguments:
        if match := re.fullmatch(r"--no-([^=]+)", argument):
            pairs.append((match[1], False))
        elif match := re.fullmatch(r"--([^=]+)", argument):
            pairs.append((match[1], True))
        elif match := re.fullmatch(r"--([^=]+)=(.*)", argument, re.DOTALL):
            pairs.append((match[1], match[2]))
        else:
            positionals.append(argument)

    return positionals, pairs


def _absolutize(path, base):
    if not path or not isinstance(path, str) or os.path.isabs(path):
        return path
    return os.path.join(base, path)


def _boolean(value):
    match value.strip().lower():
        case "1" | "true" | "yes" | "on":
            return True
        case "0" | "false" | "no" | "off" | "":
            return False
    return value


class Configuration(Mapping):
    """
    Frozen result of a resolution: the global option map plus the extra config.

    - Mapping interface over the global options (multiple options are tuples).
    - extra: every config-file key that is not a file-enabled global option,
      passed through untouched (per-command defaults live here).
    - ignored: Ignored(key, source) records for global options a config file is
      not allowed to set.
    """

    def __init__(self, config, extra=None, ignored=()):
        self._config = dict(config)
        self._extra = dict(extra or {})
        self._ignored = tuple(ignored)

    @property
    def config(self):
        return MappingProxyType(self._config)

    @property
    def extra(self):
        return MappingProxyType(self._extra)

    @property
    def ignored(self):
        return self._ignored

    def for_command(self, path, /):
        """
        per-command defaults declared in config files under the command path ('term create: {slug: x}').
        """
        section = self._extra.get(" ".join(path))
        return dict(section) if isinstance(section, Mapping) else {}

    def __getitem__(self, key):
        return self._config[key]

    def __iter__(self):
        return iter(self._config)

    def __len__(self):
        return len(self._config)

    def __repr__(self):
        return "configuration(%r)" % self._config


class Configurator:
    """
    Layered configuration builder for one invocation.

    Layers are merged by calling merge_yml()/merge_document(), merge_environ()
    and merge_runtime() in precedence order, then freeze() produces the
    read-only Configuration handed to the rest of the pipeline.
    """

    def __init__(self, spec=SPEC):
        self._spec = {option.key: option for option in spec}
        self._config = {
            key: arrayify(option.default) if option.multiple else option.default
            for key, option in self._spec.items()
        }
        self._extra = {}
        self._ignored = []

    @property
    def spec(self):
        return MappingProxyType(self._spec)

    def parse_args(self, arguments, /):
        """
        Classify raw arguments.

        Returns
        - Arguments(positionals, assoc, runtime, deprecations)
          • assoc: command-specific associative arguments; unknown keys and keys
            of options that cannot be given on the command line end up here.
          • runtime: recognized global options (lists for multiple options).
          • deprecations: Deprecation records, in the order they were typed.
        """
        positionals, pairs = tokenize(arguments)
        assoc = {}
        runtime = {}
        deprecations = []

        for key, value in pairs:
            option = self._spec.get(key)
            if option is None or option.runtime is False:
                assoc[key] = value
                continue

            if option.deprecated:
                deprecations.append(Deprecation(key, option.deprecated))

            if option.multiple:
                runtime.setdefault(key, []).append(value)
            else:
                runtime[key] = value

        return Arguments(positionals, assoc, runtime, tuple(deprecations))

    def merge_document(self, document, base=Unset, /, *, source=None):
        """
        Merge one config document (a mapping) as a layer.

        - keys that are not file-enabled global options go to the extra config;
          known options among them are also recorded as ignored.
        - "<path>" values are resolved relative to base (defaults to the
          working directory).
        - multiple options append, the others replace.
        """
        if document is None:
            return
        if not isinstance(document, Mapping):
            raise ConfigurationError(
                "config file %s must contain a mapping at the top level" % (source or "document"),
                source=source,
                hint="write the configuration as 'key: value' pairs",
            )

        base = coalesce(base, os.getcwd())
        for key, value in document.items():
            option = self._spec.get(key)
            if option is None or option.file is False:
                if option is not None:
                    self._ignored.append(Ignored(key, source))
                self._extra[key] = value
                continue

            if option.file == "<path>":
                if option.multiple:
                    value = [_absolutize(path, base) for path in arrayify(value)]
                else:
                    value = _absolutize(value, base)

            self._merge(option, value)

    def merge_yml(self, path, /):
        """
        Load a YAML config file and merge it; relative paths it declares are
        resolved against the file's own directory.
        """
        if not path:
            return

        try:
            with open(path, encoding="utf-8") as stream:
                document = yaml.safe_load(stream)
        except OSError as exception:
            raise ConfigurationError(
                "cannot read config file %s" % path,
                source=path,
                hint=str(exception.strerror or exception).lower(),
            ) from exception
        except yaml.YAMLError as exception:
            raise ConfigurationError(
                "cannot parse config file %s" % path,
                source=path,
                hint="check the YAML syntax of the file",
            ) from exception

        self.merge_document(document, os.path.dirname(os.path.abspath(path)), source=path)

    def merge_environ(self, environ, /):
        """
        Merge the environment layer: CMSCTL_<KEY> for every runtime option
        (upper-cased, '-' replaced by '_'). Flags accept 1/0, true/false,
        yes/no and on/off; multiple options are split on os.pathsep.
        """
        for key, option in self._spec.items():
            if option.runtime is False or option.deprecated:
                continue

            name = ENVIRON_PREFIX + key.upper().replace("-", "_")
            if name not in environ:
                continue

            value = environ[name]
            if option.multiple:
                value = [part for part in value.split(os.pathsep) if part]
            elif option.flag:
                value = _boolean(value)
            self._merge(option, value)

    def merge_runtime(self, runtime, /):
        """
        Merge the command-line layer (the runtime part of parse_args()).
        """
        for key, option in self._spec.items():
            if option.runtime is not False and key in runtime:
                self._merge(option, runtime[key])

    def freeze(self):
        return Configuration(
            {
                key: tuple(value) if self._spec[key].multiple else value
                for key, value in self._config.items()
            },
            self._extra,
            self._ignored
        )

    def _merge(self, option, value):
        if option.multiple:
            self._config[option.key] = arrayify(self._config[option.key]) + arrayify(value)
        else:
            self._config[option.key] = value


def locate_global_config(environ=None, override=None, /):
    """
    Path of the global config file, or None when there is none to read.

    Order: override (the deprecated --config option), then CMSCTL_CONFIG_PATH,
    then ~/.cmsctl/config.yml.
    """
    environ = os.environ if environ is None else environ
    if override and isinstance(override, str):
        path = override
    elif environ.get(CONFIG_PATH_VARIABLE):
        path = environ[CONFIG_PATH_VARIABLE]
    else:
        path = os.path.join(os.path.expanduser("~"), ".cmsctl", "config.yml")
    return os.path.abspath(path) if os.path.isfile(path) else None


def locate_project_config(start=None, /):
    """
    Project config files found by walking up from start (the working directory
    by default): the first directory holding cmsctl.yml or cmsctl.local.yml
    wins; both are returned when present, base file first.
    """
    directory = os.path.abspath(start or os.getcwd())
    while True:
        found = tuple(
            path for name in PROJECT_CONFIG_FILES
            if os.path.isfile(path := os.path.join(directory, name))
        )
        if found:
            return found
        parent = os.path.dirname(directory)
        if parent == directory:
            return ()
        directory = parent


def resolve(arguments, files=(), environ=None, spec=SPEC):
    """
    One-shot resolution: parse arguments, then merge every layer in order.

    Returns
    - (Arguments, Configuration)
    """
    configurator = Configurator(spec)
    parsed = configurator.parse_args(arguments)
    for path in files:
        configurator.merge_yml(path)
    if environ is not None:
        configurator.merge_environ(environ)
    configurator.merge_runtime(parsed.runtime)
    return parsed, configurator.freeze()


__all__ = (
    "Option",
    "SPEC",
    "Deprecation",
    "Ignored",
    "Arguments",
    "Configuration",
    "Configurator",
    "tokenize",
    "resolve",
    "locate_global_config",
    "locate_project_config",
)
