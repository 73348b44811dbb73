"""
Tiller dispatcher: one invocation, end to end.

Flow of Dispatcher.dispatch(prompt)
1. tokens: sys.argv[1:] (default), a shell-like string, or an iterable of strings.
2. split(): leading global options move to the remainder; the command path is the run
   of consecutive tokens that do not start with "-".
3. Registry.resolve(path): deepest matching spec; unmatched trailing path segments are
   prepended to the remainder as positional arguments. Nothing matched means the root.
4. A help flag anywhere in the remainder short-circuits to help (no option validation).
5. Otherwise the remainder is parsed against the command's effective schema and the
   behavior hook runs. Start/complete markers are traced around this step whatever
   its outcome.

Failure policy
- OptionValidationError propagates out of dispatch() untouched; main() reports it and
  returns EXIT_USAGE.
- A RuntimeError raised by the behavior hook is reported once through the active
  reporter, then re-raised; main() returns EXIT_FAILURE without reporting it again.
"""
import shlex
import sys
from collections.abc import Iterable

from . import __version__
from . import strings as resources
from .commands import Command
from .faults import (
    EXIT_FAILURE,
    EXIT_SUCCESS,
    EXIT_USAGE,
    Fault,
    OptionValidationError,
    is_reported,
    mark_reported,
    report,
)
from .log import trace
from .options import GLOBALS, HELP_FLAGS
from .ui import Terminal, TerminalReporter
from .utils import Unset, coalesce


def _tokenize(prompt):
    if prompt is Unset:
        return list(sys.argv[1:])
    if isinstance(prompt, str):
        return shlex.split(prompt)
    if isinstance(prompt, Iterable):
        tokens = list(prompt)
        if not all(isinstance(token, str) for token in tokens):
            raise TypeError("dispatch() argument must be a string or an iterable of strings")
        return tokens
    raise TypeError("dispatch() argument must be a string or an iterable of strings")


def split(argv, /, schema=GLOBALS):
    """
    Split argv into (command path, remainder).

    Options of `schema` given before the command path ("tool -c x target converge") are
    kept, with the value they consume, at the front of the remainder.
    """
    tokens = list(argv)
    leading = []
    while tokens and tokens[0].startswith("-") and tokens[0] not in ("-", "--"):
        leading.append(token := tokens.pop(0))
        if (option := schema.lookup(token)) is not None and not option.boolean and tokens:
            leading.append(tokens.pop(0))

    path = []
    while tokens and not tokens[0].startswith("-"):
        path.append(tokens.pop(0))

    return tuple(path), (*leading, *tokens)


def wants_help(schema, remainder, /):
    """
    True when any token of the remainder is one of the schema's help flags.

    A token another option of the schema has claimed ("-h HOST") never means help.
    """
    if (option := schema.get("help")) is not None:
        flags = option.tokens
    else:
        flags = tuple(token for token in HELP_FLAGS if schema.lookup(token) is None)
    return any(token in flags for token in remainder)


class Dispatcher:
    """
    Runs invocations against a registry, which is sealed when the dispatcher is built.

    Parameters
    - registry: the declared Registry.
    - prog: program name shown in help, hints and fault headers.
    - version: version string of the host tool.
    - terminal: output channel shared by every command instance.
    - strings: string catalog (bundled English by default); `prog` is bound into it.
    - reporter: channel used to report runtime errors raised by behavior hooks
      (a TerminalReporter over `terminal` by default).
    """

    def __init__(self, registry, /, *, prog="tiller", version=Unset, terminal=Unset, strings=Unset, reporter=Unset):
        self.registry = registry.seal()
        self.prog = prog
        self.version = coalesce(version, __version__)
        self.terminal = coalesce(terminal, Terminal())
        self.strings = coalesce(strings, resources.default()).bind(prog=prog)
        self.reporter = coalesce(reporter, TerminalReporter(self.terminal))

    def instantiate(self, spec, /):
        """
        Build the command instance for `spec` (its factory, or the base Command).
        """
        factory = spec.factory or Command
        return factory(
            spec,
            self.registry,
            terminal=self.terminal,
            strings=self.strings,
            version=self.version,
            prog=self.prog,
        )

    def dispatch(self, prompt=Unset, /):
        """
        Run one invocation and return the command instance that handled it.
        """
        path, remainder = split(_tokenize(prompt))
        spec, leftover = self.registry.resolve(path)
        remainder = (*leftover, *remainder)

        command = self.instantiate(spec)
        qualified_name = spec.qualified_name

        if wants_help(command.schema, remainder):
            trace("command.help", qualified_name)
            command.show_help()
            return command

        trace("command.start", qualified_name)
        outcome = "failure"
        try:
            args = command.parse_options(remainder)
            try:
                command.run(args, command.options)
            except RuntimeError as error:
                if not is_reported(error):
                    self.reporter.error(str(error))
                    mark_reported(error)
                raise
            outcome = "success"
        except OptionValidationError:
            outcome = "invalid"
            raise
        finally:
            trace("command.complete", qualified_name, outcome=outcome)
        return command

    def main(self, prompt=Unset, /):
        """
        dispatch() behind the exit status policy: 0, EXIT_USAGE or EXIT_FAILURE.
        """
        try:
            self.dispatch(prompt)
        except OptionValidationError as error:
            report(error, console=self.terminal.stderr, prog=self.prog)
            return EXIT_USAGE
        except (Fault, RuntimeError) as error:
            report(error, console=self.terminal.stderr, prog=self.prog)
            return EXIT_FAILURE
        return EXIT_SUCCESS


def main(registry, prompt=Unset, /, **options):
    """
    Process boundary: dispatch `prompt` against `registry` and return the exit status.

        sys.exit(main(registry, prog="tiller", version="1.2.0"))
    """
    return Dispatcher(registry, **options).main(prompt)


__all__ = (
    "Dispatcher",
    "split",
    "wants_help",
    "main",
)
