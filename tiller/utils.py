"""
Small helpers shared by the option, registry and command layers.

Contents
- Unset: the "argument not given" marker. Declarations default to it whenever None is a
  value a caller may legitimately pass (an option default, a parent spec).
- coalesce(value, default): Unset -> default, anything else unchanged.
- rename(...): give generated callables a readable __name__/__qualname__.
- mirror(name): read-only property over "_<name>"; containers come back frozen.
- SpecType: metaclass of the declarative records (Option, CommandSpec, AliasSpec).
    class Option(metaclass=SpecType):
        __introspectable__ = ("name", "long", ...)   # each becomes a mirror property
        __displayable__ = ("name", "long")           # fields shown by repr()
"""
import builtins
import functools
import re
from collections.abc import Sequence, Mapping, Set
from types import MappingProxyType
from typing import final


@final
class UnsetType:
    """
    Type of the Unset marker; a single falsy instance per process.

    `str | Unset` builds a union usable with isinstance(), which is how declarations
    check "a string, or not given".
    """

    @functools.cache
    def __new__(cls):
        return super().__new__(cls)

    def __init_subclass__(cls, **options):
        raise TypeError("UnsetType cannot be subclassed")

    def __or__(self, other, /):
        try:
            return other | type(self)
        except TypeError:
            return NotImplemented

    __ror__ = __or__

    def __bool__(self):
        return False

    def __repr__(self):
        return "Unset"


Unset = UnsetType()


def coalesce(object, default=None, /):
    return default if object is Unset else object


def rename(*parameters):
    """
    rename(callable, name) renames in place and returns the callable;
    rename(name) returns a decorator doing the same.
    """
    match parameters:
        case (target, str(name)) if builtins.callable(target):
            try:
                target.__name__ = target.__qualname__ = name
            except (AttributeError, TypeError):
                raise TypeError("rename() cannot update this callable") from None
            return target
        case (str(name),):
            return lambda target: rename(target, name)
        case (_, _) | (_,):
            raise TypeError("rename() expects (callable, name) or (name)")
        case _:
            raise TypeError(f"rename() takes 1 or 2 arguments ({len(parameters)} given)")


def _freeze(object):
    if isinstance(object, Mapping):
        return MappingProxyType(object)
    if isinstance(object, Set):
        return frozenset(object)
    if isinstance(object, Sequence) and not isinstance(object, str):
        return tuple(object)
    return object


def mirror(name, /):
    if not isinstance(name, str):
        raise TypeError("mirror() argument must be a string")
    attribute = "_" + name
    return property(rename(lambda self: _freeze(getattr(self, attribute)), name))


class SpecType(type):
    """
    Builds read-only declarative records.

    - every name of __introspectable__ becomes a mirror() property over "_<name>".
    - __typename__ is the hyphenated class name ("CommandSpec" -> "command-spec"),
      used as the subject of declaration errors.
    - repr() and rich's pretty printer show __displayable__ (or every introspectable
      field when it is not set).
    """
    __introspectable__ = ()
    __displayable__ = Unset

    def __new__(cls, name, bases, namespace, **options):
        fields = namespace.get("__introspectable__", ())
        namespace = {
            **namespace,
            "__typename__": re.sub(r"(?<!^)(?=[A-Z])", "-", name).lower(),
            **{field: mirror(field) for field in fields},
        }
        self = super().__new__(cls, name, bases, namespace, **options)
        self.__rich_repr__ = rename(_rich_repr, "__rich_repr__")
        self.__repr__ = rename(_repr, "__repr__")
        return self


def _rich_repr(self):
    for field in coalesce(type(self).__displayable__, type(self).__introspectable__):
        yield field, getattr(self, field)


def _repr(self):
    return f"{type(self).__typename__}({', '.join(f'{field}={value!r}' for field, value in _rich_repr(self))})"


__all__ = (
    "coalesce",
    "rename",
    "mirror",
    "UnsetType",
    "SpecType",
    "Unset",
)
