"""
Terminal output and progress reporting.

Terminal
- Thin wrapper over a rich Console (stdout) plus a second Console for errors (stderr).
- output()/write() print plain text: markup and highlighting are disabled so user data
  such as "[host]" or "--flag" is never interpreted.
- spinner() runs a rich status spinner around a blocking operation. Rich refreshes the
  spinner from a background thread; the caller keeps blocking until the body ends.

Reporters
- Anything exposing update(message), success(message) and error(message).
- TerminalReporter prints each report as a line (used at the dispatch boundary).
- StatusReporter drives a live spinner and is what Terminal.spinner() yields.
"""
from contextlib import contextmanager
from typing import Protocol, runtime_checkable

from rich.console import Console
from rich.text import Text

from .utils import Unset, coalesce


@runtime_checkable
class Reporter(Protocol):
    def update(self, message, /): ...

    def success(self, message, /): ...

    def error(self, message, /): ...


class Terminal:
    """
    Plain-text output channel shared by help rendering and command behavior.
    """

    def __init__(self, console=Unset, stderr=Unset):
        self.console = coalesce(console, Console(highlight=False))
        self.stderr = coalesce(stderr, Console(stderr=True, highlight=False))

    def output(self, line="", /):
        self.console.print(line, markup=False, emoji=False, highlight=False, soft_wrap=True)

    def write(self, fragment, /):
        self.console.print(fragment, markup=False, emoji=False, highlight=False, soft_wrap=True, end="")

    def lines(self, lines, /):
        for line in lines:
            self.output(line)

    def error(self, line, /):
        self.stderr.print(line, markup=False, emoji=False, highlight=False, soft_wrap=True)

    @contextmanager
    def spinner(self, message, /, *, prefix=None):
        """
        Show a spinner with `message` while the body runs; yields a StatusReporter.
        """
        reporter = StatusReporter(self, prefix=prefix)
        with self.console.status(Text(reporter.label(message))) as status:
            reporter.status = status
            yield reporter


class TerminalReporter:
    """
    Reporter printing one line per report, with no live spinner.
    """

    def __init__(self, terminal, /, *, prefix=None):
        self.terminal = terminal
        self.prefix = prefix

    def label(self, message):
        return f"[{self.prefix}] {message}" if self.prefix else str(message)

    def update(self, message, /):
        self.terminal.output(self.label(message))

    def success(self, message, /):
        self.terminal.output(self.label(message))

    def error(self, message, /):
        self.terminal.error(self.label(message))


class StatusReporter(TerminalReporter):
    """
    Reporter bound to a running rich status spinner.
    """

    def __init__(self, terminal, /, *, prefix=None):
        super().__init__(terminal, prefix=prefix)
        self.status = None

    def update(self, message, /):
        if self.status is None:
            return super().update(message)
        self.status.update(Text(self.label(message)))

    def success(self, message, /):
        self.terminal.console.print(
            Text.assemble(("✔ ", "bold green"), self.label(message)), highlight=False
        )

    def error(self, message, /):
        self.terminal.stderr.print(
            Text.assemble(("✖ ", "bold red"), self.label(message)), highlight=False
        )


__all__ = (
    "Reporter",
    "Terminal",
    "TerminalReporter",
    "StatusReporter",
)
