"""
Dispatcher tests (end-to-end invocations against a small registry).

Scope
- Validate argv splitting, resolution through aliases and leftover arguments.
- Validate help short-circuiting anywhere in the remainder.
- Validate option parsing outcomes, runtime error reporting and exit statuses.
- Validate the structured start/complete/help log events.

Conventions
- Test method names follow CamelCase per project convention.
- Output is captured with rich consoles writing into io.StringIO.
"""

from __future__ import annotations

import io
import logging
import os
import tempfile
import unittest
from unittest import TestCase, mock

from rich.console import Console

from tiller import (
    Command,
    CommandRuntimeError,
    Dispatcher,
    EXIT_FAILURE,
    EXIT_SUCCESS,
    EXIT_USAGE,
    MalformedValueError,
    Option,
    Registry,
    Schema,
    Terminal,
    UnknownOptionError,
    register_builtins,
    split,
)
from tiller import log
from tiller.dispatch import wants_help


class Record(Command):
    def run(self, args, options, /):
        self.args = args


class Explode(Command):
    def run(self, args, options, /):
        raise CommandRuntimeError("boom", hint="try again later")


class Crash(Command):
    def run(self, args, options, /):
        raise KeyError("unexpected")


class RecordingReporter:
    def __init__(self):
        self.calls = []

    def update(self, message, /):
        self.calls.append(("update", message))

    def success(self, message, /):
        self.calls.append(("success", message))

    def error(self, message, /):
        self.calls.append(("error", message))


def build():
    registry = Registry()
    registry.command("alpha", "First command", Record)
    registry.command(
        "beta",
        "Second command",
        Record,
        options=Schema(Option("name", "--name VALUE", descr="Name to use", default="x")),
    )
    target = registry.command("target", "Manage remote targets")
    target.command("converge", "Converge a target", Record)
    registry.command("explode", "Always fails", Explode, hidden=True)
    registry.command("crash", "Fails badly", Crash, hidden=True)
    register_builtins(registry)
    registry.register_alias("a", "alpha")
    return registry


def dispatcher(registry=None, **options):
    terminal = Terminal(
        Console(file=io.StringIO(), width=200, color_system=None),
        Console(file=io.StringIO(), width=200, color_system=None),
    )
    return Dispatcher(build() if registry is None else registry, prog="tiller", version="1.2.0", terminal=terminal, **options)


def output(dispatcher):
    return dispatcher.terminal.console.file.getvalue()


def errors(dispatcher):
    return dispatcher.terminal.stderr.file.getvalue()


class TestSplit(TestCase):
    """Separating the command path from the remainder."""

    def testPathThenRemainder(self):
        self.assertEqual(split(["target", "converge", "-h", "web01"]), (("target", "converge"), ("-h", "web01")))

    def testLeadingGlobalOptionsMoved(self):
        self.assertEqual(
            split(["-c", "conf.toml", "target", "converge", "web01"]),
            (("target", "converge", "web01"), ("-c", "conf.toml")),
        )

    def testLeadingBooleanConsumesNothing(self):
        self.assertEqual(split(["-v", "alpha"]), (("alpha",), ("-v",)))

    def testTerminatorEndsPath(self):
        self.assertEqual(split(["--", "alpha"]), ((), ("--", "alpha")))

    def testEmpty(self):
        self.assertEqual(split([]), ((), ()))


class TestResolution(TestCase):
    """Which command handles an invocation."""

    def testRegistrySealed(self):
        self.assertTrue(dispatcher().registry.sealed)

    def testNestedCommandWithLeftoverArguments(self):
        command = dispatcher().dispatch(["target", "converge", "web01", "web02"])
        self.assertEqual(command.qualified_name, "target.converge")
        self.assertEqual(command.args, ("web01", "web02"))

    def testAliasResolvesToTarget(self):
        command = dispatcher().dispatch(["a", "extra"])
        self.assertEqual(command.qualified_name, "alpha")
        self.assertEqual(command.args, ("extra",))

    def testShellStringPrompt(self):
        command = dispatcher().dispatch("beta --name 'two words'")
        self.assertEqual(command.options["name"], "two words")

    def testInvalidPromptRejected(self):
        with self.assertRaises(TypeError):
            dispatcher().dispatch(["alpha", 3])

    def testMissFallsBackToRootHelp(self):
        tool = dispatcher()
        command = tool.dispatch(["nope"])
        self.assertTrue(command.spec.is_root)
        self.assertTrue(output(tool).startswith("Version 1.2.0\n"))

    def testHiddenCommandResolvable(self):
        with self.assertRaises(CommandRuntimeError):
            dispatcher().dispatch(["explode"])


class TestHelp(TestCase):
    """Help flags short-circuit everything else."""

    def testAliasHelpShowsTargetHelp(self):
        tool = dispatcher()
        command = tool.dispatch(["a", "-h"])
        self.assertEqual(command.qualified_name, "alpha")
        lines = output(tool).splitlines()
        self.assertEqual(lines[0], "First command")
        self.assertIn("FLAGS:", lines)
        self.assertNotIn("ALIASES:", lines)
        self.assertFalse(any(line.startswith("Version") for line in lines))
        self.assertFalse(hasattr(command, "args"))

    def testRootHelp(self):
        tool = dispatcher()
        tool.dispatch(["-h"])
        lines = output(tool).splitlines()
        self.assertEqual(lines[0], "Version 1.2.0")
        start = lines.index("SUBCOMMANDS:") + 1
        names = [line.split()[0] for line in lines[start:lines.index("", start)]]
        self.assertEqual(names, ["alpha", "beta", "target", "help", "version"])
        self.assertEqual(lines[lines.index("ALIASES:") + 1], "    a          alias for 'alpha'")

    def testHelpIsOrderIndependent(self):
        for argv in (["beta", "-h", "--config", "x"], ["beta", "--config", "x", "-h"]):
            with self.subTest(argv=argv):
                tool = dispatcher()
                command = tool.dispatch(argv)
                self.assertEqual(command.qualified_name, "beta")
                self.assertTrue(output(tool).startswith("Second command\n"))

    def testLongHelpFlag(self):
        tool = dispatcher()
        tool.dispatch(["target", "--help"])
        self.assertIn("    converge    Converge a target", output(tool).splitlines())

    def testHelpCommand(self):
        tool = dispatcher()
        tool.dispatch(["help"])
        self.assertIn("ALIASES:", output(tool).splitlines())


class TestShortFlagTakeover(TestCase):
    """A command that claims "-h" for itself keeps "--help" for help."""

    def tool(self):
        registry = Registry()
        registry.command(
            "deploy",
            "Deploy things",
            Record,
            options=Schema(Option("host", "--host HOST", "-h HOST", "Target host")),
        )
        return dispatcher(registry=registry)

    def testShortFlagSelectsCommandOption(self):
        command = self.tool().dispatch(["deploy", "-h", "web01"])
        self.assertEqual(command.options["host"], "web01")
        self.assertFalse(command.options["help"])

    def testLongHelpStillShowsHelp(self):
        tool = self.tool()
        command = tool.dispatch(["deploy", "--help"])
        self.assertFalse(hasattr(command, "args"))
        lines = output(tool).splitlines()
        self.assertEqual(lines[0], "Deploy things")
        self.assertIn("    -h, --host HOST", "\n".join(lines))
        self.assertTrue(any(line.startswith("        --help ") for line in lines))

    def testClaimedTokensNeverMeanHelp(self):
        schema = Schema(Option("host", "--host HOST", "-h HOST"))
        self.assertFalse(wants_help(schema, ["-h", "web01"]))
        self.assertTrue(wants_help(schema, ["--help"]))

    def testSchemaHelpOptionDecides(self):
        schema = Schema(Option("help", "--usage", boolean=True))
        self.assertTrue(wants_help(schema, ["--usage"]))
        self.assertFalse(wants_help(schema, ["-h", "--help"]))


class TestOptions(TestCase):
    """Option values handed to behavior hooks."""

    def testDefaultApplied(self):
        self.assertEqual(dispatcher().dispatch(["beta"]).options["name"], "x")

    def testValueGiven(self):
        self.assertEqual(dispatcher().dispatch(["beta", "--name", "y"]).options["name"], "y")

    def testLeadingConfigOption(self):
        with tempfile.TemporaryDirectory() as directory:
            location = os.path.join(directory, "config.toml")
            with open(location, "w", encoding="utf-8") as stream:
                stream.write("")
            command = dispatcher().dispatch(["-c", location, "beta"])
            self.assertEqual(command.options["config_path"], os.path.abspath(location))

    def testMissingConfigFileIsMalformed(self):
        with self.assertRaises(MalformedValueError) as context:
            dispatcher().dispatch(["beta", "--config", "/definitely/not/here.toml"])
        self.assertEqual(context.exception.command, "beta")

    def testUnknownFlagNamesCommand(self):
        with self.assertRaises(UnknownOptionError) as context:
            dispatcher().dispatch(["target", "converge", "--bogus"])
        self.assertEqual(context.exception.command, "target.converge")

    def testRootVersionFlag(self):
        tool = dispatcher()
        tool.dispatch(["-v"])
        self.assertEqual(output(tool), "Version 1.2.0\n")

    def testVersionCommand(self):
        tool = dispatcher()
        tool.dispatch(["version"])
        self.assertEqual(output(tool), "Version 1.2.0\n")


class TestFailures(TestCase):
    """Error reporting and exit statuses."""

    def testRuntimeErrorReportedThroughReporterAndReraised(self):
        reporter = RecordingReporter()
        with self.assertRaises(CommandRuntimeError) as context:
            dispatcher(reporter=reporter).dispatch(["explode"])
        self.assertEqual(reporter.calls, [("error", "boom")])
        self.assertTrue(context.exception.reported)

    def testMainSuccess(self):
        self.assertEqual(dispatcher().main(["alpha"]), EXIT_SUCCESS)

    def testMainHelp(self):
        self.assertEqual(dispatcher().main(["beta", "-h"]), EXIT_SUCCESS)

    def testMainUsageError(self):
        tool = dispatcher()
        self.assertEqual(tool.main(["beta", "--nmae", "y"]), EXIT_USAGE)
        text = errors(tool)
        self.assertIn("unknown option '--nmae' for command 'beta'", text)
        self.assertIn("21111", text)
        self.assertNotIn("Traceback", text)

    def testMainRuntimeErrorReportedOnce(self):
        tool = dispatcher()
        self.assertEqual(tool.main(["explode"]), EXIT_FAILURE)
        self.assertEqual(errors(tool).count("boom"), 1)

    def testMainUnexpectedErrorPropagates(self):
        with self.assertRaises(KeyError):
            dispatcher().main(["crash"])


class TestTracing(TestCase):
    """Structured invocation events on the "tiller" logger."""

    def events(self, records):
        return [(record.event, record.command, getattr(record, "outcome", None)) for record in records]

    def testStartAndComplete(self):
        with self.assertLogs("tiller", "DEBUG") as logs:
            dispatcher().dispatch(["beta"])
        self.assertEqual(self.events(logs.records), [
            ("command.start", "beta", None),
            ("command.complete", "beta", "success"),
        ])

    def testCompleteAfterParseFailure(self):
        with self.assertLogs("tiller", "DEBUG") as logs:
            with self.assertRaises(UnknownOptionError):
                dispatcher().dispatch(["beta", "--bogus"])
        self.assertEqual(self.events(logs.records)[-1], ("command.complete", "beta", "invalid"))

    def testCompleteAfterRuntimeFailure(self):
        with self.assertLogs("tiller", "DEBUG") as logs:
            with self.assertRaises(CommandRuntimeError):
                dispatcher().dispatch(["explode"])
        self.assertEqual(self.events(logs.records)[-1], ("command.complete", "explode", "failure"))

    def testHelpEvent(self):
        with self.assertLogs("tiller", "DEBUG") as logs:
            dispatcher().dispatch(["target", "-h"])
        self.assertEqual(self.events(logs.records), [("command.help", "target", None)])


class FailingFilter(logging.Filter):
    def filter(self, record):
        raise RuntimeError("filter exploded")


class TestBrokenLogging(TestCase):
    """A logging setup that raises never changes the outcome of an invocation."""

    def setUp(self):
        self.stderr = Console(file=io.StringIO(), width=200, color_system=None)
        self.level = log.logger.level
        self.filter = FailingFilter()
        log.logger.setLevel(logging.DEBUG)
        log.logger.addFilter(self.filter)
        patcher = mock.patch.object(log, "console", self.stderr)
        patcher.start()
        self.addCleanup(patcher.stop)

    def tearDown(self):
        log.logger.removeFilter(self.filter)
        log.logger.setLevel(self.level)

    def testSuccessfulInvocationCompletes(self):
        command = dispatcher().dispatch(["beta"])
        self.assertEqual(command.options["name"], "x")
        self.assertIn("dropped log event", self.stderr.file.getvalue())

    def testParseFailureKeepsItsType(self):
        with self.assertRaises(UnknownOptionError):
            dispatcher().dispatch(["beta", "--bogus"])

    def testRuntimeFailureKeepsItsType(self):
        with self.assertRaises(CommandRuntimeError):
            dispatcher().dispatch(["explode"])

    def testHelpStillShown(self):
        tool = dispatcher()
        tool.dispatch(["beta", "-h"])
        self.assertTrue(output(tool).startswith("Second command\n"))

    def testExitStatuses(self):
        self.assertEqual(dispatcher().main(["beta"]), EXIT_SUCCESS)
        self.assertEqual(dispatcher().main(["beta", "--bogus"]), EXIT_USAGE)
        self.assertEqual(dispatcher().main(["explode"]), EXIT_FAILURE)


if __name__ == "__main__":
    unittest.main()
