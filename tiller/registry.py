"""
Tiller command registry: command specs, aliases, and resolution.

What this module provides
- CommandSpec: static description of one invocable command. Specs form a tree: each spec
  attaches itself under its parent at construction and derives its qualified name
  ("target.converge") from the parent's.
- AliasSpec: an alternate root-level name for an existing command's qualified name.
- Registry: owns the hidden root pseudo-command (whose children are the root-level
  commands) and the alias table. It is declared once, sealed, and read-only afterwards.
- listing(): the ordering rule shared by every help listing.

Lifecycle
- Declaration phase: register()/command() add root-level commands, spec.command() adds
  children, register_alias() adds aliases. Collisions raise RegistryError.
- seal() closes the declaration phase for the registry and every spec reachable from
  it; any later declaration raises RegistryError. Resolution never mutates anything, so
  a sealed registry is safe to share between threads.

Quick start
    registry = Registry()

    @registry.command("target", "Manage remote targets")
    class Target(Command): ...

    @Target.command("converge", "Converge a target", options=Schema(...))
    class Converge(Command):
        def run(self, args, options): ...

    registry.register_alias("converge", "target.converge")
    registry.seal()

    registry.resolve(["converge", "web01"])   # -> Resolution(spec=<target.converge>, leftover=("web01",))
"""
import collections
import re

from .faults import FaultCode, RegistryError
from .options import Schema
from .utils import Unset, SpecType, coalesce

ROOT = "hidden-root"

NAME = re.compile(r"[^\W\d_][\w-]*")

Resolution = collections.namedtuple("Resolution", ("spec", "leftover"))
Resolution.__doc__ = """
Outcome of Registry.resolve: the deepest matched spec and the unmatched trailing segments.
"""


def _sanitize_name(cls, name, /):
    if not isinstance(name, str):
        raise TypeError(f"{cls.__typename__} name must be a string")
    if not NAME.fullmatch(name := name.strip()):
        raise ValueError(f"{cls.__typename__} name {name!r} is not a valid command name")
    return name


def _ensure_open(spec, /):
    if spec._sealed:
        raise RegistryError(
            f"command {spec.qualified_name!r} is sealed and cannot be changed",
            code=FaultCode.SEALED_REGISTRY,
        )


def _attach_to_parent(self, parent):
    """
    Register this spec under its parent, enforcing unique child names.
    """
    _ensure_open(parent)
    if parent._children.setdefault(self.name, self) is self:
        return
    typeof = "command" if parent.is_root else "subcommand"
    raise RegistryError(
        f"{typeof} name {self.name!r} is already in use under {parent.qualified_name!r}",
        code=FaultCode.DUPLICATED_COMMAND,
    )


class CommandSpec(metaclass=SpecType):
    """
    Static description of one command: identity, help copy, options, and children.

    Parameters
    - name: command word as typed by users ("converge").
    - descr: one-line description shown in listings and as the help banner.
    - factory: Command subclass implementing the behavior (None: the base Command,
      which renders help). Can also be bound later by using the spec as a class decorator.
    - options: Schema of command-specific options (merged over the global options).
    - hidden: excluded from help listings, still resolvable by exact name.
    - usage: optional usage line rendered under the banner.
    - parent: spec to attach under; root-level specs are attached by Registry.register().
    """

    __introspectable__ = (
        "name",
        "qualified_name",
        "descr",
        "factory",
        "options",
        "hidden",
        "usage",
        "parent",
        "children",
    )

    __displayable__ = (
        "qualified_name",
        "descr",
        "hidden",
        "children",
    )

    def __init__(
            self,
            name,
            descr=Unset,
            /,
            factory=None,
            *,
            options=Unset,
            hidden=False,
            usage=Unset,
            parent=Unset
    ):
        cls = type(self)
        if not isinstance(parent, CommandSpec | Unset):
            raise TypeError(f"{cls.__typename__} 'parent' must be a command spec")
        if not isinstance(options := coalesce(options, Schema()), Schema):
            raise TypeError(f"{cls.__typename__} 'options' must be a schema")
        if not isinstance(descr, str | Unset):
            raise TypeError(f"{cls.__typename__} 'descr' must be a string")
        if not isinstance(usage, str | Unset):
            raise TypeError(f"{cls.__typename__} 'usage' must be a string")
        if factory is not None and not callable(factory):
            raise TypeError(f"{cls.__typename__} 'factory' must be a command class")

        self._name = _sanitize_name(cls, name)
        if parent and not parent.is_root:
            self._qualified_name = parent.qualified_name + "." + self._name
        else:
            self._qualified_name = self._name
        self._descr = coalesce(descr, "").strip()
        self._factory = factory
        self._options = options
        self._hidden = bool(hidden)
        self._usage = coalesce(usage)
        self._parent = coalesce(parent)
        self._children = {}
        self._sealed = False

        if parent:
            _attach_to_parent(self, parent)

    @classmethod
    def root(cls, descr=Unset, /, factory=None, **options):
        """
        Build the hidden root pseudo-command. Its qualified name is "hidden-root" and it is
        not part of the qualified names of the commands below it.
        """
        self = cls(ROOT, descr, factory, **options)
        self._root = True
        return self

    @property
    def is_root(self):
        return getattr(self, "_root", False)

    @property
    def path(self):
        """
        Words typed to reach this spec from the root ("target", "converge").
        """
        return () if self.is_root else tuple(self.qualified_name.split("."))

    def walk(self):
        """
        Yield this spec and every descendant, depth first, children in declaration order.
        """
        yield self
        for child in self._children.values():
            yield from child.walk()

    def command(self, name, descr=Unset, /, factory=None, **options):
        """
        Declare a child of this spec and return it (usable as a class decorator).
        """
        return type(self)(name, descr, factory, parent=self, **options)

    def __call__(self, factory, /):
        """
        Bind `factory` as this spec's behavior; returns the spec, so it can decorate a class.
        """
        _ensure_open(self)
        if not callable(factory):
            raise TypeError(f"{type(self).__typename__} factory must be a command class")
        if self._factory is not None:
            raise TypeError(f"command {self.qualified_name!r} already has a behavior bound")
        self._factory = factory
        return self

    def _seal(self):
        for spec in self.walk():
            spec._sealed = True


class AliasSpec(metaclass=SpecType):
    """
    Alternate root-level name for the command at `qualified_name`.
    """

    __introspectable__ = (
        "name",
        "qualified_name",
        "hidden",
    )

    def __init__(self, name, qualified_name, /, hidden=False):
        cls = type(self)
        self._name = _sanitize_name(cls, name)
        if not isinstance(qualified_name, str) or not qualified_name.strip():
            raise TypeError(f"{cls.__typename__} target must be a qualified name")
        self._qualified_name = qualified_name.strip()
        self._hidden = bool(hidden)

    def __eq__(self, other):
        if not isinstance(other, AliasSpec):
            return NotImplemented
        return (self.name, self.qualified_name, self.hidden) == (other.name, other.qualified_name, other.hidden)

    def __hash__(self):
        return hash((self.name, self.qualified_name))


class Registry:
    """
    Root-level commands plus the alias table (see module docstring).
    """

    def __init__(self, descr=Unset, /, factory=None):
        self._root = CommandSpec.root(descr, factory)
        self._aliases = {}
        self._sealed = False

    @property
    def root(self):
        return self._root

    @property
    def commands(self):
        return self._root.children

    @property
    def aliases(self):
        return dict(self._aliases)

    @property
    def sealed(self):
        return self._sealed

    def _ensure_open(self):
        if self._sealed:
            raise RegistryError(
                "the command registry is sealed and cannot be changed",
                code=FaultCode.SEALED_REGISTRY,
            )

    def register(self, spec, /):
        """
        Insert a root-level CommandSpec (and its subtree).
        """
        self._ensure_open()
        if not isinstance(spec, CommandSpec) or spec.is_root:
            raise TypeError("register() argument must be a command spec")
        if spec.parent is not None:
            raise RegistryError(
                f"command {spec.qualified_name!r} is already attached to {spec.parent.qualified_name!r}",
                code=FaultCode.DUPLICATED_COMMAND,
            )
        if spec.name in self._aliases:
            raise RegistryError(
                f"command name {spec.name!r} is already used by an alias",
                code=FaultCode.ALIAS_COLLISION,
            )
        _attach_to_parent(spec, self._root)
        spec._parent = self._root
        return spec

    def command(self, name, descr=Unset, /, factory=None, **options):
        """
        Declare and register a root-level command (usable as a class decorator).
        """
        return self.register(CommandSpec(name, descr, factory, **options))

    def register_alias(self, name, target, /, hidden=False):
        """
        Make `name` resolve to the command at qualified name `target`.
        """
        self._ensure_open()
        alias = AliasSpec(name, target, hidden)
        if alias.name in self._root._children:
            raise RegistryError(
                f"alias {alias.name!r} collides with the command of the same name",
                code=FaultCode.ALIAS_COLLISION,
            )
        if alias.name in self._aliases:
            raise RegistryError(
                f"alias {alias.name!r} is already registered",
                code=FaultCode.ALIAS_COLLISION,
            )
        try:
            self.lookup(alias.qualified_name)
        except KeyError:
            raise RegistryError(
                f"alias {alias.name!r} points at unknown command {alias.qualified_name!r}",
                code=FaultCode.UNKNOWN_TARGET,
            ) from None
        self._aliases[alias.name] = alias
        return alias

    def seal(self):
        """
        End the declaration phase; the registry and its specs become read-only.
        """
        self._sealed = True
        self._root._seal()
        return self

    def lookup(self, qualified_name, /):
        """
        Return the spec at a dotted qualified name; KeyError when there is none.
        """
        if qualified_name == ROOT:
            return self._root
        node = self._root
        for segment in qualified_name.split("."):
            node = node._children[segment]
        return node

    def resolve(self, path, /):
        """
        Walk `path` from the root and return the deepest matched spec.

        - a segment found among the current node's children descends into it.
        - at the root only, a segment naming an alias jumps to the alias target and
          matching continues in the target's subtree.
        - the first segment that matches nothing stops the walk; it and everything after
          it are returned as leftover arguments.
        - when nothing matches, the spec is the hidden root.
        """
        path = tuple(path)
        node = self._root
        consumed = 0
        for segment in path:
            if segment in node._children:
                node = node._children[segment]
            elif node is self._root and segment in self._aliases:
                node = self.lookup(self._aliases[segment].qualified_name)
            else:
                break
            consumed += 1
        return Resolution(node, tuple(path[consumed:]))

    def __iter__(self):
        """
        Iterate over every declared spec below the root, depth first.
        """
        for spec in self._root.walk():
            if not spec.is_root:
                yield spec

    def __repr__(self):
        return f"registry(commands={list(self._root._children)!r}, aliases={list(self._aliases)!r})"


TRAILING = ("help", "version")


def listing(entries, /):
    """
    Order a name -> spec mapping for display.

    Names sort lexicographically, except "help" and "version" which always come last in
    that order. Hidden entries are dropped.
    """
    visible = [(name, entry) for name, entry in entries.items() if not entry.hidden]
    leading = sorted((item for item in visible if item[0] not in TRAILING), key=lambda item: item[0])
    trailing = sorted((item for item in visible if item[0] in TRAILING), key=lambda item: TRAILING.index(item[0]))
    return leading + trailing


__all__ = (
    "CommandSpec",
    "AliasSpec",
    "Registry",
    "Resolution",
    "listing",
    "ROOT",
)
