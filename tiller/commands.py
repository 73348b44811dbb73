"""
Tiller command layer: the runtime object bound to one CommandSpec per invocation.

What this module provides
- Command: base behavior shared by every command.
  • schema: the effective option schema, GLOBALS merged with the CommandSpec's own options
    (command-specific definitions win).
  • parse_options(tokens): validates the invocation remainder against the schema,
    stores the resolved values in `options`, and returns the positional arguments.
  • run(args, options): the behavior hook. Subclasses implement it; the base version
    renders help (or, on the root command with --version, the version banner).
  • show_help()/show_version(): print through the command's Terminal.
  • connect(connection, reporter=None): blocking progress helper for long operations.

- HelpCommand / VersionCommand: the builtin `help` and `version` commands, added to a
  registry with register_builtins().

Subclassing
    class Converge(Command):
        def run(self, args, options):
            connection = self.connect(Connection(args[0]))
            ...

A Command never outlives its invocation: the dispatcher creates one, runs it, and
drops it.
"""
from types import MappingProxyType

from . import __version__
from . import helper
from . import strings as resources
from .faults import mark_reported
from .options import GLOBALS
from .ui import Terminal
from .utils import Unset, coalesce


class Command:
    """
    Runtime command bound to a CommandSpec (see module docstring).

    Parameters
    - spec: the resolved CommandSpec (not owned; specs are shared and read-only).
    - registry: the registry the spec came from, used for help listings.
    - terminal: output channel (a default Terminal when omitted).
    - strings: string catalog (the bundled catalog when omitted).
    - version: version shown in the root banner and by `version`.
    - prog: program name used in hints (defaults to the catalog's `prog` field).
    """

    def __init__(self, spec, registry, /, *, terminal=Unset, strings=Unset, version=Unset, prog=Unset):
        self.spec = spec
        self.registry = registry
        self.terminal = coalesce(terminal, Terminal())
        self.strings = coalesce(strings, resources.default())
        self.version = coalesce(version, __version__)
        self.prog = coalesce(prog, self.strings.fields.get("prog", "tiller"))
        self._schema = GLOBALS.merge(spec.options)
        self._options = MappingProxyType({})

    @property
    def schema(self):
        return self._schema

    @property
    def options(self):
        return self._options

    @property
    def qualified_name(self):
        return self.spec.qualified_name

    @property
    def route(self):
        """
        How users type this command: "<prog> target converge".
        """
        return " ".join((self.prog, *self.spec.path))

    def parse_options(self, tokens, /):
        parsed = self.schema.parse(tokens, self.qualified_name, route=self.route, strings=self.strings)
        self._options = parsed.values
        return parsed.args

    def run(self, args, options, /):
        if self.spec.is_root and options.get("version"):
            return self.show_version()
        self.show_help()

    def show_help(self):
        self.terminal.lines(helper.render(self))

    def show_version(self):
        self.terminal.output(self.strings.format("version_for_help", version=self.version))

    def connect(self, connection, /, reporter=None):
        """
        Run `connection.connect()` with visible progress and return the connected object.

        - reporter=None: a terminal spinner, prefixed with "[<connection.host>]" when the
          connection has a host, is shown while connecting.
        - otherwise progress goes to reporter.update()/success().

        A RuntimeError from the connection is reported once (reporter.error, or the
        terminal when no reporter was given), marked as reported, and re-raised.
        """
        connecting = self.strings["status.connecting"]
        connected = self.strings["status.connected"]
        try:
            if reporter is None:
                with self.terminal.spinner(connecting, prefix=getattr(connection, "host", None)) as status:
                    result = connection.connect()
                    status.success(connected)
            else:
                reporter.update(connecting)
                result = connection.connect()
                reporter.success(connected)
        except RuntimeError as error:
            if reporter is None:
                self.terminal.error(str(error))
            else:
                reporter.error(str(error))
            mark_reported(error)
            raise
        return connection if result is None else result

    def __repr__(self):
        return f"{type(self).__name__}({self.qualified_name!r})"


class HelpCommand(Command):
    """
    `help`: show the root help.
    """

    def run(self, args, options, /):
        root = Command(
            self.registry.root,
            self.registry,
            terminal=self.terminal,
            strings=self.strings,
            version=self.version,
            prog=self.prog,
        )
        root.show_help()


class VersionCommand(Command):
    """
    `version`: print the version banner.
    """

    def run(self, args, options, /):
        self.show_version()


def register_builtins(registry, /, strings=Unset):
    """
    Add the `help` and `version` commands to a registry that is still being declared.
    """
    strings = coalesce(strings, resources.default())
    registry.command("help", strings.format("help"), HelpCommand)
    registry.command("version", strings.format("version"), VersionCommand)
    return registry


__all__ = (
    "Command",
    "HelpCommand",
    "VersionCommand",
    "register_builtins",
)
