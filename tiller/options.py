r"""
Tiller options and schemas.

Overview
- Option: one named flag, declared once and immutable afterwards.
  • name: identifier used as the key of the parsed values ("config_path").
  • long: "--word(-word)*", optionally with a capture ("--config PATH") naming the metavar.
  • short: optional "-x", optionally with a capture ("-c PATH"); the capture is ignored.
  • descr: str or strings.Ref, resolved against the active catalog when rendering help.
  • boolean: presence-only flag (True when given, default otherwise).
  • default: value used when the option is not given (never passed through transform).
  • transform: converter applied to every raw value; ValueError/TypeError become
    MalformedValueError for the invoking command.
  • required / hidden: must be given / suppressed from help.

- Schema: an immutable, ordered set of options.
  • merge(other): union where `other` wins. A base option with the same name, or whose
    long token is claimed by `other`, is dropped; one that only loses its short token
    stays, reachable by its long form ("-h HOST" keeps "--help" working).
  • parse(tokens, command): tokens -> Parsed(values, args), or an OptionValidationError
    naming `command`.

- GLOBALS: the schema every command inherits (-h/--help, -v/--version, -c/--config).

Grammar accepted by Schema.parse
    --long VALUE    --long=VALUE    -s VALUE    -sVALUE     (value options)
    --long          -s              -abc                    (boolean options, clustered)
    --                                                     (end of options)
    -  and any token not starting with '-'                  (positional arguments)
"""
import collections
import difflib
import re
from collections import deque
from types import MappingProxyType

from . import config
from . import strings as resources
from .faults import (
    UnknownOptionError,
    MissingValueError,
    MalformedValueError,
    RequiredOptionError,
)
from .strings import Ref
from .utils import Unset, SpecType, coalesce

LONG = re.compile(r"--[^\W\d_](-?[^\W_]+)*")
SHORT = re.compile(r"-[^\W\d_]")
METAVAR = re.compile(r"[^\s=]+")

Parsed = collections.namedtuple("Parsed", ("values", "args"))
Parsed.__doc__ = """
Outcome of Schema.parse: read-only option values (defaults applied) and positional args.
"""


def _split_capture(cls, token, kind, pattern, /):
    """
    split "--config PATH" into ("--config", "PATH"), validating the flag part.
    """
    if not isinstance(token, str):
        raise TypeError(f"{cls.__typename__} {kind} form must be a string")
    flag, _, capture = token.strip().partition(" ")
    if not pattern.fullmatch(flag):
        raise ValueError(f"{cls.__typename__} {kind} form {token!r} is not a valid flag")
    if (capture := capture.strip()) and not METAVAR.fullmatch(capture):
        raise ValueError(f"{cls.__typename__} {kind} form {token!r} has an invalid capture")
    return flag, capture or Unset


class Option(metaclass=SpecType):
    """
    Named flag declaration (see module docstring).
    """

    __introspectable__ = (
        "name",
        "long",
        "short",
        "descr",
        "metavar",
        "boolean",
        "default",
        "transform",
        "required",
        "hidden",
    )

    __displayable__ = (
        "name",
        "long",
        "short",
        "boolean",
        "default",
        "required",
        "hidden",
    )

    def __init__(
            self,
            name,
            long,
            short=Unset,
            /,
            descr=Unset,
            *,
            metavar=Unset,
            boolean=False,
            default=None,
            transform=str,
            required=False,
            hidden=False
    ):
        cls = type(self)
        if not isinstance(name, str) or not name.isidentifier():
            raise ValueError(f"{cls.__typename__} name must be a valid identifier")

        long, capture = _split_capture(cls, long, "long", LONG)
        if short is not Unset:
            short, _ = _split_capture(cls, short, "short", SHORT)

        if not isinstance(descr, str | Ref | Unset):
            raise TypeError(f"{cls.__typename__} 'descr' must be a string")
        elif isinstance(descr, str) and not (descr := descr.strip()):
            raise ValueError(f"{cls.__typename__} 'descr' cannot be empty")

        if not callable(transform):
            raise TypeError(f"{cls.__typename__} 'transform' must be callable")

        boolean = bool(boolean)
        metavar = coalesce(metavar, capture)
        if boolean and metavar is not Unset:
            raise TypeError(f"boolean {cls.__typename__} cannot capture a value")
        if boolean and required:
            raise TypeError(f"boolean {cls.__typename__} cannot be required")
        if not boolean and metavar is Unset:
            metavar = name.upper()
        if not isinstance(metavar, str | Unset):
            raise TypeError(f"{cls.__typename__} 'metavar' must be a string")

        self._name = name
        self._long = long
        self._short = coalesce(short)
        self._descr = coalesce(descr, "")
        self._metavar = coalesce(metavar)
        self._boolean = boolean
        self._default = default
        self._transform = transform
        self._required = bool(required)
        self._hidden = bool(hidden)

    @property
    def tokens(self):
        """
        Flag tokens that select this option (short first).
        """
        return tuple(token for token in (self.short, self.long) if token)

    @property
    def display(self):
        """
        Long form as shown in help: "--config PATH" for value options, "--help" otherwise.
        """
        return f"{self.long} {self.metavar}" if self.metavar else self.long

    def __replace__(self, **changes):
        """
        Copy of this option with some fields changed (None clears short, metavar or descr).
        """
        fields = {name: getattr(self, "_" + name) for name in type(self).__introspectable__} | changes
        return type(self)(
            fields["name"],
            fields["long"],
            fields["short"] or Unset,
            fields["descr"] or Unset,
            metavar=fields["metavar"] or Unset,
            boolean=fields["boolean"],
            default=fields["default"],
            transform=fields["transform"],
            required=fields["required"],
            hidden=fields["hidden"],
        )

    def __eq__(self, other):
        if not isinstance(other, Option):
            return NotImplemented
        return all(getattr(self, name) == getattr(other, name) for name in type(self).__introspectable__)

    def __hash__(self):
        return hash((self.name, self.long, self.short))


class Schema:
    """
    Immutable, ordered collection of options keyed by name.
    """

    def __init__(self, *options):
        names, tokens = {}, {}
        for option in options:
            if not isinstance(option, Option):
                raise TypeError("schema entries must be options")
            if option.name in names:
                raise ValueError(f"option name {option.name!r} is declared twice")
            for token in option.tokens:
                if token in tokens:
                    raise ValueError(f"option flag {token!r} is claimed by both "
                                     f"{tokens[token].name!r} and {option.name!r}")
                tokens[token] = option
            names[option.name] = option
        self._options = tuple(names.values())
        self._names = names
        self._tokens = tokens

    @property
    def options(self):
        return self._options

    @property
    def names(self):
        return tuple(self._names)

    def __iter__(self):
        return iter(self._options)

    def __len__(self):
        return len(self._options)

    def __bool__(self):
        return bool(self._options)

    def __contains__(self, name):
        return name in self._names

    def __getitem__(self, name):
        return self._names[name]

    def get(self, name, default=None, /):
        return self._names.get(name, default)

    def lookup(self, token, /):
        """
        Return the option selected by a flag token ("-c", "--config"), or None.
        """
        return self._tokens.get(token)

    def merge(self, other, /):
        """
        Union of both schemas; `other` wins every collision (by name or by flag token).

        Only the clashing token of a base option is given up: losing the short form keeps
        the option under its long form, losing the long form drops it.
        """
        if not isinstance(other, Schema):
            raise TypeError("merge() argument must be a schema")
        claimed = {token for option in other for token in option.tokens}
        kept = []
        for option in self:
            if option.name in other or option.long in claimed:
                continue
            if option.short in claimed:
                option = option.__replace__(short=None)
            kept.append(option)
        return Schema(*kept, *other)

    def __eq__(self, other):
        if not isinstance(other, Schema):
            return NotImplemented
        return self._options == other._options

    __hash__ = None

    def __repr__(self):
        return f"schema({', '.join(option.name for option in self)})"

    def parse(self, tokens, /, command, *, route=Unset, strings=Unset):
        """
        Parse argument tokens against this schema on behalf of `command`.

        Parameters
        - tokens: iterable of str (the invocation remainder, without the command path).
        - command: qualified name carried by every OptionValidationError.
        - route: how the command is typed by users ("tool target converge"); used in hints.
        - strings: catalog providing error copy (the bundled catalog by default).

        Returns
        - Parsed(values, args): values maps every option name to its value, defaults
          applied for options not given; args are the positional tokens in order.
        """
        strings = coalesce(strings, resources.default())
        route = coalesce(route, command)
        values = {}
        args = []
        tokens = deque(tokens)

        def malformed(option, token, value, reason):
            return MalformedValueError(
                strings.format("errors.malformed_value", token=token, command=command, value=value, reason=reason),
                command=command,
                option=option.name,
                hint=strings.format("hints.help", route=route),
            )

        def convert(option, token, value):
            try:
                return option.transform(value)
            except (ValueError, TypeError) as error:
                raise malformed(option, token, value, error) from error

        def unknown(token):
            suggestions = difflib.get_close_matches(token, self._tokens.keys(), 3)
            if suggestions:
                hint = strings.format("hints.suggestion", suggestion=suggestions[0], route=route)
            else:
                hint = strings.format("hints.help", route=route)
            return UnknownOptionError(
                strings.format("errors.unknown_option", token=token, command=command),
                command=command,
                token=token,
                suggestions=tuple(suggestions),
                hint=hint,
            )

        def take(option, token):
            # a value option consumes the next token unless nothing or another known flag follows
            if not tokens or self._selects(tokens[0]):
                raise MissingValueError(
                    strings.format("errors.missing_value", token=token, command=command),
                    command=command,
                    option=option.name,
                    hint=strings.format("hints.help", route=route),
                )
            return tokens.popleft()

        while tokens:
            token = tokens.popleft()

            if token == "--":
                args.extend(tokens)
                break

            if token == "-" or not token.startswith("-"):
                args.append(token)
                continue

            if token.startswith("--"):
                flag, separator, inline = token.partition("=")
                if (option := self._tokens.get(flag)) is None:
                    raise unknown(flag)
                if option.boolean:
                    if separator:
                        raise MalformedValueError(
                            strings.format("errors.inline_value", token=flag, command=command),
                            command=command,
                            option=option.name,
                            hint=strings.format("hints.help", route=route),
                        )
                    values[option.name] = True
                else:
                    values[option.name] = convert(option, flag, inline if separator else take(option, flag))
                continue

            # short form: "-c PATH", "-cPATH", or a cluster of booleans "-vh"
            cluster = token[1:]
            while cluster:
                flag, cluster = "-" + cluster[0], cluster[1:]
                if (option := self._tokens.get(flag)) is None:
                    raise unknown(flag)
                if option.boolean:
                    values[option.name] = True
                    continue
                values[option.name] = convert(option, flag, cluster or take(option, flag))
                break

        for option in self:
            if option.name in values:
                continue
            if option.required:
                raise RequiredOptionError(
                    strings.format("errors.required_option", token=option.long, command=command),
                    command=command,
                    option=option.name,
                    hint=strings.format("hints.help", route=route),
                )
            values[option.name] = option.default

        return Parsed(MappingProxyType(values), tuple(args))

    def _selects(self, token):
        if token.startswith("--"):
            return token.partition("=")[0] in self._tokens
        return token.startswith("-") and token[:2] in self._tokens


GLOBALS = Schema(
    Option("version", "--version", "-v", Ref("version"), boolean=True),
    Option("help", "--help", "-h", Ref("help"), boolean=True),
    Option(
        "config_path",
        "--config PATH",
        "-c PATH",
        Ref("config", path=config.default_location),
        default=config.default_location(),
        transform=config.custom_location,
    ),
)
"""
Options shared by every command. A command option with the same name or long flag
replaces the global one in its effective schema; one that only takes the short flag
leaves the global reachable by its long flag.
"""

HELP_FLAGS = GLOBALS["help"].tokens


__all__ = (
    "Option",
    "Schema",
    "Parsed",
    "GLOBALS",
    "HELP_FLAGS",
)
