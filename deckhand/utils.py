"""
Deckhand utilities (internal helpers, carefully exposed)

Scope
- Small building blocks shared by the settings, tree, configuration and app layers.

Overview
- UnsetType / Unset
  • Singleton sentinel for “value not provided”, distinct from None.
- coalesce(value, default=None)
  • Replace Unset with a concrete default; every other value passes through.
- rename(callable, name) / @rename("name")
  • Give generated callables stable names for tracebacks and reprs.
- mirror("attr")
  • Read-only property over a private backing field, returning frozen snapshots.
- ordinal(number)
  • “first”, “second”, … “11th”; used by position-first fault messages.
- checkname(owner, name, what)
  • Trimmed, non-empty string validation shared by every naming call.

Names not listed in __all__ are internal and may change without notice.
"""
import builtins
import functools
from collections.abc import Mapping, Sequence, Set
from types import MappingProxyType
from typing import final


@final
class UnsetType:
    """
    Sentinel type for parameters that were not provided.

    - Falsey, printable as "Unset", one instance per process, not subclassable.
    - Supports PEP 604 unions so isinstance(x, str | Unset) reads naturally.
    """

    def __or__(self, other, /):
        try:
            return other | type(self)
        except TypeError:
            return NotImplemented

    def __ror__(self, other, /):
        try:
            return other | type(self)
        except TypeError:
            return NotImplemented

    @functools.cache
    def __new__(cls):
        return super().__new__(cls)

    def __bool__(self):
        return False

    def __repr__(self):
        return "Unset"

    def __init_subclass__(cls, **options):
        raise TypeError("type 'UnsetType' is not an acceptable base type")


Unset = UnsetType()


def coalesce(object, default=None, /):
    """
    Return `default` when `object` is Unset, otherwise `object` unchanged.

    None, 0, "" and empty containers are real values and are preserved.
    """
    return object if object is not Unset else default


def rename(*parameters):
    """
    Set __name__/__qualname__ on a callable, or build a decorator that does.

    - rename(callable, name) -> callable
    - @rename(name)
    """
    match len(parameters):
        case 2:
            callable, name = parameters
            if not builtins.callable(callable):
                raise TypeError("rename() first argument must be callable")
            if not isinstance(name, str):
                raise TypeError("rename() second argument must be a string")
            try:
                callable.__qualname__ = name
                callable.__name__ = name
            except (AttributeError, TypeError):
                raise TypeError("rename() first argument must be a updatable callable") from None
            return callable
        case 1:
            name, = parameters
            if not isinstance(name, str):
                raise TypeError("@rename() argument must be a string")

            def wrapper(callable):
                if not builtins.callable(callable):
                    raise TypeError("@rename() must be applied to a callable")
                return rename(callable, name)

            return rename(wrapper, "rename")
        case _:
            raise TypeError("rename takes 1 to 2 arguments but %d were given" % len(parameters))


def _freeze(object):
    # Shallow snapshot: callers get a view they cannot mutate back into the owner.
    if isinstance(object, Sequence) and not isinstance(object, (str, bytes, bytearray)):
        return tuple(object)
    if isinstance(object, Mapping):
        return MappingProxyType(dict(object))
    if isinstance(object, Set):
        return frozenset(object)
    return object


def mirror(name, /):
    """
    Define a read-only property that mirrors the private field "_{name}".

    Containers are returned as frozen snapshots (tuple, mappingproxy, frozenset)
    so that configuration state cannot be edited through the public surface.
    """
    if not isinstance(name, str):
        raise TypeError("mirror() argument must be a string")

    @rename(name)
    def getter(self):
        return _freeze(getattr(self, "_" + name))

    return property(getter)


@functools.cache
def ordinal(number, /):
    """
    Return a human-friendly ordinal for a 1-based position.
    """
    try:
        return (
            "first", "second", "third", "fourth", "fifth",
            "sixth", "seventh", "eighth", "ninth", "tenth",
        )[number - 1] if number > 0 else str(number)
    except IndexError:
        pass

    if 10 < number % 100 < 20:
        return f"{number}th"
    return f"{number}%s" % {1: "st", 2: "nd", 3: "rd"}.get(number % 10, "th")


def checkname(owner, name, what="name", /, *, error=ValueError):
    """
    Validate and trim a user-supplied name.

    Parameters
    - owner: str prefix used in the message (e.g. "add_command()").
    - name: the candidate value.
    - what: label of the value in the message.
    - error: exception type raised on failure.

    Returns
    - the trimmed string.
    """
    if not isinstance(name, str):
        raise error(f"{owner} {what} must be a string, not {type(name).__name__}")
    if not (name := name.strip()):
        raise error(f"{owner} {what} cannot be empty or whitespace")
    return name


__all__ = (
    # Functions
    "coalesce",
    "rename",
    "mirror",
    "ordinal",
    "checkname",

    # Types
    "UnsetType",

    # Constants
    "Unset",
)
