"""
Demonstration tool built on tiller.

    python main.py -h
    python main.py target converge web01 --retries 2
    python main.py converge web01 --fail
    python main.py config show -c ./config.toml
"""
import os
import sys
import time

from tiller import (
    Command,
    CommandRuntimeError,
    Option,
    Registry,
    Schema,
    main,
    register_builtins,
)
from tiller import log

registry = Registry()


class Connection:
    """
    Stand-in for a remote session: sleeps, then succeeds or fails.
    """

    def __init__(self, host, /, *, fail=False):
        self.host = host
        self.fail = fail

    def connect(self):
        time.sleep(0.5)
        if self.fail:
            raise CommandRuntimeError(f"could not reach {self.host}", hint="check the host name and retry")


@registry.command("target", "Manage remote targets")
class Target(Command):
    pass


@Target.command(
    "converge",
    "Converge a target to its declared state",
    usage="tiller target converge HOST [--retries N]",
    options=Schema(
        Option("retries", "--retries N", "-r N", "How many times to retry\nafter a failed run", default=0, transform=int),
        Option("fail", "--fail", descr="Simulate a failed connection", boolean=True, hidden=True),
    ),
)
class Converge(Command):
    def run(self, args, options, /):
        for host in args or ("localhost",):
            self.connect(Connection(host, fail=options["fail"]))
            self.terminal.output(f"{host}: converged (retries={options['retries']})")


@registry.command("config", "Inspect the configuration")
class Config(Command):
    pass


@Config.command("show", "Print the configuration file location")
class ConfigShow(Command):
    def run(self, args, options, /):
        self.terminal.output(options["config_path"])


registry.register_alias("converge", "target.converge")
register_builtins(registry)


if __name__ == '__main__':
    log.setup(os.environ.get("TILLER_LOG", "WARNING"))
    sys.exit(main(registry, prog="tiller"))
