"""
Tiller faults (errors) and rendering.

Scope
- FaultCode: canonical, stable numeric identifiers for every user-visible fault.
- Fault: base exception carrying message + options, rendering itself through rich.
- The taxonomy used by the dispatch core:
  • RegistryError: misuse of the registry while it is being declared (or after it is sealed).
  • OptionValidationError (and subclasses): malformed/unknown/missing flag values; always
    user-facing, carries the qualified name of the command that was parsing.
  • CommandRuntimeError: recoverable runtime failure raised by a command's behavior hook.
- report(): the single top-level reporter. It inspects `user_facing` to decide whether a
  fault is shown bare (message, title, hint) or decorated with its traceback in the log.

Resolution misses are not faults: an unknown command path degrades to root help.
"""
import logging
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType

from rich.console import Console, Group
from rich.panel import Panel
from rich.text import Text

logger = logging.getLogger("tiller")

console = Console(stderr=True)

# Exit statuses applied at the process boundary (see dispatch.main).
EXIT_SUCCESS = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2


class FaultCode(IntEnum):
    """
    canonical fault codes used across the cli (stable identifiers).

    grouping (by high-level domain)
    - registry (2110x)
      • DUPLICATED_COMMAND, ALIAS_COLLISION, UNKNOWN_TARGET, SEALED_REGISTRY
    - options (2111x)
      • UNKNOWN_OPTION, MISSING_VALUE, MALFORMED_VALUE, REQUIRED_OPTION
    - runtime (2113x)
      • RUNTIME_ERROR
    """
    # --- registry errors ---
    DUPLICATED_COMMAND = 21101
    ALIAS_COLLISION    = 21102
    UNKNOWN_TARGET     = 21103
    SEALED_REGISTRY    = 21104

    # --- option errors ---
    UNKNOWN_OPTION     = 21111
    MISSING_VALUE      = 21112
    MALFORMED_VALUE    = 21113
    REQUIRED_OPTION    = 21114

    # --- runtime errors ---
    RUNTIME_ERROR      = 21131


class Fault(Exception):
    """
    base type for every error raised by the dispatch core.

    attributes
    - message: one-sentence, lowercased description of what went wrong.
    - options: read-only mapping of context (code, title, hint, command, ...).
    - user_facing: when True the top-level reporter shows the fault without any
      traceback or log decoration.
    - reported: set once the fault has been surfaced through a reporter, so the
      outer boundary does not surface it a second time.
    """
    code = FaultCode.RUNTIME_ERROR
    title = "error"
    user_facing = False

    def __init__(self, message, /, **options):
        if not isinstance(message, str):
            raise TypeError(f"{type(self).__name__} message must be a string")
        super().__init__(message)
        self.message = message
        self.options = MappingProxyType(options)
        self.reported = False

    def __str__(self):
        return self.message

    @property
    def hint(self):
        return self.options.get("hint")

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        replica = type(self)(self.message, **{**self.options, **overrides})
        replica.reported = self.reported
        return replica

    def __rich__(self):
        styles = defaultdict(str, {
            "prog-name": "bold #E6E6F0",
            "code": "bold #00E5FF",
            "error-title": "bold #FF4DA6",
            "error-message": "#C8C8D0",
            "hint-arrow": "#9CE19C dim",
            "hint": "italic #9CE19C",
        })

        colorful = self.options.get("colorful", True)

        def styler(style):
            return styles[style] if colorful else ""

        header = Text.assemble(
            "[ ",
            (self.options.get("prog", "tiller"), styler("prog-name")),
            " — ",
            (str(self.options.get("code", type(self).code).value), styler("code")),
            " | ",
            (self.options.get("title", type(self).title).title(), styler("error-title")),
            " ]"
        )
        renders = [header, Text(self.message, styler("error-message"))]
        if self.hint:
            renders.append(Text.assemble((" → ", styler("hint-arrow")), (self.hint, styler("hint"))))

        if self.options.get("fancy", False):
            return Panel(Group(*renders[1:]), title=header, title_align="left")
        return Group(*renders)


class RegistryError(Fault, ValueError):
    title = "invalid command registry"


class OptionValidationError(Fault):
    """
    a malformed, unknown or missing option value found while parsing.

    `command` is the qualified name of the command whose schema rejected the input.
    """
    title = "invalid option"
    user_facing = True

    def __init__(self, message, /, command, **options):
        super().__init__(message, command=command, **options)
        self.command = command


class UnknownOptionError(OptionValidationError):
    code = FaultCode.UNKNOWN_OPTION
    title = "unknown option"


class MissingValueError(OptionValidationError):
    code = FaultCode.MISSING_VALUE
    title = "missing option value"


class MalformedValueError(OptionValidationError):
    code = FaultCode.MALFORMED_VALUE
    title = "malformed option value"


class RequiredOptionError(OptionValidationError):
    code = FaultCode.REQUIRED_OPTION
    title = "required option"


class CommandRuntimeError(Fault, RuntimeError):
    """
    recoverable failure raised from a command's behavior hook (e.g. a failed connection).
    """
    title = "command failed"


def mark_reported(error, /):
    """
    flag an exception as already surfaced to the user and return it.
    """
    try:
        error.reported = True
    except AttributeError:
        pass
    return error


def is_reported(error, /):
    return bool(getattr(error, "reported", False))


def report(error, /, *, console=console, **options):
    """
    surface an error once through the ui channel.

    - Fault instances render through their __rich__ form, merged with `options`
      (prog, colorful, fancy).
    - faults flagged user_facing are printed bare; everything else additionally
      logs its traceback at DEBUG so it can be found with verbose logging.
    - errors that were already reported are skipped.
    """
    if is_reported(error):
        return error

    if isinstance(error, Fault):
        console.print(error.__replace__(**options))
        user_facing = error.user_facing
    else:
        console.print(Text(str(error) or type(error).__name__, style="bold red"))
        user_facing = False

    if not user_facing:
        logger.debug("unhandled %s", type(error).__name__, exc_info=error)

    return mark_reported(error)


__all__ = (
    "FaultCode",
    "Fault",
    "RegistryError",
    "OptionValidationError",
    "UnknownOptionError",
    "MissingValueError",
    "MalformedValueError",
    "RequiredOptionError",
    "CommandRuntimeError",
    "mark_reported",
    "is_reported",
    "report",
    "EXIT_SUCCESS",
    "EXIT_FAILURE",
    "EXIT_USAGE",
)
