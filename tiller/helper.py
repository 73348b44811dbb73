"""
Help rendering.

Everything here is pure: functions take a command instance (or the pieces of one) and
return lists of text lines. Printing is left to the caller (Command.show_help).

Layout
    Version 1.2.0                      <- root only
    <banner: the command description>
    USAGE:    <usage>                  <- only when the command declares one

    FLAGS:
        -c, --config PATH    Location of config file ...
        -h, --help           Show help ...

    SUBCOMMANDS:
        alpha      First command
        help       Show help ...
        version    Show the current version ...

    ALIASES:                           <- root only
        a          alias for 'alpha'

Blocks are separated by one blank line; a block with nothing to show is left out
entirely, blank line included.
"""
from .registry import listing

INDENT = " " * 4
# Flag column: the longest displayed long form plus this padding.
FLAG_PADDING = 4
# Name column of subcommand/alias listings: max(MIN_NAME_WIDTH, longest name) + NAME_PADDING.
MIN_NAME_WIDTH = 7
NAME_PADDING = 4


def banner(command):
    spec = command.spec
    lines = []
    if spec.is_root:
        lines.append(command.strings.format("version_for_help", version=command.version))
        lines.append(spec.descr or command.strings.format("root.description"))
    else:
        lines.append(spec.descr)
    if spec.usage:
        lines.append(command.strings.format("usage", usage=spec.usage))
    return lines


def flags(schema, strings, /):
    """
    FLAGS block for every visible option of `schema`, ordered by option name.

    Multi-line descriptions continue on the following lines, aligned with the first
    description line.
    """
    options = sorted((option for option in schema if not option.hidden), key=lambda option: option.name)
    if not options:
        return []

    justify = max(len(option.display) for option in options) + FLAG_PADDING
    continuation = " " * (len(INDENT) + justify + FLAG_PADDING)

    lines = [strings["flags"]]
    for option in options:
        short = f"{option.short}, " if option.short else " " * 4
        first, *rest = strings.resolve(option.descr).split("\n")
        lines.append(f"{INDENT}{(short + option.display).ljust(justify)}{' ' * FLAG_PADDING}{first}".rstrip())
        lines.extend((continuation + line).rstrip() for line in rest)
    return lines


def _width(names):
    return max([MIN_NAME_WIDTH, *map(len, names)]) + NAME_PADDING


def subcommands(spec, strings, /):
    """
    SUBCOMMANDS block: visible children in listing order; the help and version rows both
    show the shared help text.
    """
    rows = listing(children := spec.children)
    if not rows:
        return []

    justify = _width(children)
    lines = [strings["subcommands"]]
    for name, child in rows:
        if name in ("help", "version"):
            descr = strings.format("help")
        else:
            descr = child.descr
        lines.append(f"{INDENT}{name.ljust(justify)}{descr}".rstrip())
    return lines


def aliases(registry, strings, /):
    """
    ALIASES block: visible aliases in listing order, each pointing at its target.
    """
    rows = listing(table := registry.aliases)
    if not rows:
        return []

    justify = _width(table)
    lines = [strings["aliases"]]
    for name, alias in rows:
        lines.append(f"{INDENT}{name.ljust(justify)}{strings['alias_for']} '{alias.qualified_name}'")
    return lines


def render(command, /):
    """
    Full help for a command instance, as an ordered list of lines.
    """
    blocks = [
        banner(command),
        flags(command.schema, command.strings),
        subcommands(command.spec, command.strings),
    ]
    if command.spec.is_root:
        blocks.append(aliases(command.registry, command.strings))

    lines = []
    for block in filter(None, blocks):
        if lines:
            lines.append("")
        lines.extend(block)
    return lines


__all__ = (
    "banner",
    "flags",
    "subcommands",
    "aliases",
    "render",
)
