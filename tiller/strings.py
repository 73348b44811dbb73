"""
String resources keyed by symbolic path.

Every user-visible sentence of the core (flag descriptions, help headers, status
messages, error copy) is looked up here instead of being hard-coded, so a host tool
can ship its own wording or language.

Resources are plain YAML mappings (see locales/en.yaml). Nested mappings form the
path: the value at {"status": {"connecting": ...}} is reached with either

    strings["status.connecting"]
    strings.status.connecting

and placeholders are interpolated with format():

    strings.format("version_for_help", version="1.2.0")

Fields bound at load time (typically `prog`) are merged into every format() call.
"""
import functools
import os.path
from collections.abc import Mapping
from types import MappingProxyType

import yaml

from .utils import Unset, coalesce

LOCALES = os.path.join(os.path.dirname(__file__), "locales")


class Catalog:
    """
    Read-only view over a tree of string resources.
    """

    def __init__(self, resources, /, *, prefix="", **fields):
        if not isinstance(resources, Mapping):
            raise TypeError("catalog resources must be a mapping")
        self._resources = MappingProxyType(dict(resources))
        self._prefix = prefix
        self._fields = MappingProxyType(fields)

    @classmethod
    def load(cls, language="en", /, *, location=Unset, **fields):
        """
        Load `<language>.yaml` from `location` (the bundled locales by default).
        """
        path = os.path.join(coalesce(location, LOCALES), language + ".yaml")
        with open(path, encoding="utf-8") as stream:
            resources = yaml.safe_load(stream) or {}
        return cls(resources, **fields)

    @property
    def fields(self):
        return self._fields

    def bind(self, **fields):
        """
        Return a catalog sharing these resources with extra default fields.
        """
        return type(self)(self._resources, prefix=self._prefix, **{**self._fields, **fields})

    def __getitem__(self, path):
        if not isinstance(path, str):
            raise TypeError("catalog keys must be strings")
        node = self._resources
        for segment in path.split("."):
            if not isinstance(node, Mapping) or segment not in node:
                raise KeyError(self._prefix + path)
            node = node[segment]
        if isinstance(node, Mapping):
            return type(self)(node, prefix=self._prefix + path + ".", **self._fields)
        return str(node)

    def __getattr__(self, name):
        if name.startswith("_"):
            raise AttributeError(name)
        try:
            return self[name]
        except KeyError:
            raise AttributeError(f"no string resource named {self._prefix + name!r}") from None

    def __contains__(self, path):
        try:
            self[path]
        except KeyError:
            return False
        return True

    def format(self, path, /, **fields):
        template = self[path]
        if isinstance(template, Catalog):
            raise KeyError(f"{self._prefix + path!r} is a group, not a string")
        return template.format_map({**self._fields, **fields})

    def resolve(self, text, /):
        """
        Materialize a description: Ref instances are looked up here, strings pass through.
        """
        if isinstance(text, Ref):
            return text(self)
        return text

    def __repr__(self):
        return f"catalog(prefix={self._prefix!r}, keys={list(self._resources)!r})"


class Ref:
    """
    Deferred reference to a string resource, resolved against a catalog at render time.

    Field values that are callables are evaluated on resolution, so
    Ref("config", path=default_location) always shows the current location.
    """
    __slots__ = ("path", "fields")

    def __init__(self, path, /, **fields):
        if not isinstance(path, str) or not path:
            raise TypeError("ref path must be a non-empty string")
        self.path = path
        self.fields = MappingProxyType(fields)

    def __call__(self, catalog, /):
        return catalog.format(self.path, **{
            name: value() if callable(value) else value for name, value in self.fields.items()
        })

    def __eq__(self, other):
        if not isinstance(other, Ref):
            return NotImplemented
        return (self.path, dict(self.fields)) == (other.path, dict(other.fields))

    def __hash__(self):
        return hash(self.path)

    def __repr__(self):
        return f"ref({self.path!r})"


@functools.cache
def default():
    """
    The bundled English catalog, loaded once per process.
    """
    return Catalog.load("en", prog="tiller")


__all__ = (
    "Catalog",
    "Ref",
)
