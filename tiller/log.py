"""
Logging for the dispatch core.

The core only ever writes to the "tiller" logger; it never configures handlers on its
own. Host tools call setup() once at startup to route records either to the terminal
(through rich's RichHandler, matching the rest of the ui) or to a log file.

trace() emits the structured invocation markers (start / complete / help). Each record
carries `event` and `command` (plus any extra fields) as attributes, so handlers and
tests can filter on them without parsing messages.
"""
import logging

from rich.console import Console
from rich.logging import RichHandler

logger = logging.getLogger("tiller")

# Fallback channel for failures of the logging machinery itself.
console = Console(stderr=True)

FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def setup(level=logging.WARNING, /, location=None):
    """
    Attach a single handler to the "tiller" logger and set its level.

    - location=None: log to stderr through RichHandler.
    - location=<path>: append plain records to that file.

    Calling setup() again replaces the handler installed by the previous call.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            raise ValueError("unknown log level")

    for handler in list(logger.handlers):
        if getattr(handler, "_tiller", False):
            logger.removeHandler(handler)
            handler.close()

    if location is None:
        handler = RichHandler(console=Console(stderr=True), show_path=False, rich_tracebacks=True)
    else:
        handler = logging.FileHandler(location, encoding="utf-8")
        handler.setFormatter(logging.Formatter(FORMAT))
    handler._tiller = True

    logger.addHandler(handler)
    logger.setLevel(level)
    return handler


def trace(event, command, /, message=None, **fields):
    """
    Emit a DEBUG record marking an invocation event for `command` (a qualified name).

    A handler or filter that raises never reaches the caller: the record is dropped and
    a one-line notice goes to stderr instead.
    """
    try:
        logger.debug(
            message or "%s %s", *(() if message else (event, command)),
            extra={"event": event, "command": command, **fields},
        )
    except Exception as error:
        console.print(
            f"tiller: dropped log event {event!r} for {command!r}: {type(error).__name__}: {error}",
            markup=False, emoji=False, highlight=False, soft_wrap=True,
        )


__all__ = (
    "logger",
    "setup",
    "trace",
)
