r"""
Deckhand settings schemas.

Overview
- Specs
  • Option[_T]: named, value-bearing option with one or more aliases (e.g., -o/--output).
  • Flag: named, presence-only switch (bool), e.g., --throw-error.
  • Argument[_T]: positional, value-bearing argument (required, "?", "*" or "+").

- Schema
  • CommandSettings: base class of every settings schema. Subclasses declare specs
    as class attributes; the metaclass collects them (including inherited ones)
    into __fields__, __switches__ and __arguments__.
  • Subclassing is refinement: a subclass hosts every option of its bases, which
    is what lets a branch constrained to S host commands whose schema refines S.

Quick example:
    >>> class VersionSettings(CommandSettings):
    ...     test_version = Option("--test-version", descr="Version to test against")
    ...     throw_error = Flag("--throw-error", descr="Throw error")
    ...
    >>> VersionSettings(test_version="1.0.0.0").throw_error
    False

Validation highlights
- Names must match r"--?[^\W\d_](-?[^\W_]+)*" and be unique across a schema and its bases.
- -h, --help and --version are reserved for the dispatcher.
- Positional arguments: required ones first, at most one variadic ("*"/"+") and it must be last.
- Option cannot combine metavar and choices.
"""
import functools
import operator
import re
from collections.abc import Iterable, Set
from types import MappingProxyType

from rich.text import Text

from .utils import *

RESERVED = frozenset({"-h", "--help", "--version"})


class ArgumentType(type):
    """
    Metaclass that gives specs a stable repr and read-only metadata properties.

    Conventions
    - __typename__ is derived from the class name (camel-case split with hyphens)
      and used in messages and help output.
    - every name listed in __introspectable__ becomes a mirror() property over "_{name}".
    """
    __introspectable__ = ()

    def __new__(cls, name, bases, namespace, **options):
        self = super().__new__(
            cls,
            name,
            bases,
            namespace | {
                "__typename__": re.sub(r"(?<!^)(?=[A-Z])", r"-", name).lower(),
            } | {
                name: mirror(name) for name in namespace.get("__introspectable__", ())
            },
        )

        @rename("__repr__")
        def __repr__(self):
            return f"{type(self).__typename__}({
                ", ".join(map(functools.partial(operator.mod, "%s=%r"), self.__rich_repr__()))
            })"
        self.__repr__ = __repr__

        @rename("__rich_repr__")
        def __rich_repr__(self):
            for name in type(self).__introspectable__:
                yield name, getattr(self, name)
        self.__rich_repr__ = __rich_repr__

        return self


def _sanitize_metadata(cls, metadata, /):
    """
    Internal: normalize the 'descr' shared by every spec.

    - Unset becomes None; strings are trimmed and must stay non-empty.
    """
    if not isinstance(descr := metadata["descr"], str | Text | Unset):
        raise TypeError(f"{cls.__typename__} 'descr' must be a string")
    elif isinstance(descr, str) and not (descr := descr.strip()):
        raise ValueError(f"{cls.__typename__} 'descr' cannot be empty")
    metadata["descr"] = coalesce(descr)


def _sanitize_named_metadata(cls, metadata, /):
    """
    Internal: validate the shell-style names of an Option or Flag.

    Accepted forms are "-x", "-long", "--long" and "--long-name" (unicode letters
    allowed). Names keep their declaration order; duplicates and reserved names
    are rejected.
    """
    names = []
    if not metadata["names"]:
        raise TypeError(f"{cls.__typename__} must specify at least one name")

    for name in metadata["names"]:
        if not isinstance(name, str):
            raise TypeError(f"{cls.__typename__} names must be strings")
        elif not (name := name.strip()):
            raise ValueError(f"{cls.__typename__} names cannot be empty-strings")
        elif not re.fullmatch(r"--?[^\W\d_](-?[^\W_]+)*", name):
            raise ValueError(f"{cls.__typename__} names must be valid shell-style option names (unicodes are allowed)")
        elif name in RESERVED:
            raise ValueError(f"{cls.__typename__} name {name!r} is reserved")
        elif name in names:
            raise ValueError(f"{cls.__typename__} names cannot contain duplicates")
        names.append(name)

    metadata["names"] = tuple(names)


def _sanitize_parametric_metadata(cls, metadata, /):
    """
    Internal: validate metavar, type and choices of value-bearing specs.

    - metavar: Unset or a non-empty string.
    - type: any callable converter (str, int, pathlib.Path, an Enum, ...).
    - choices: iterable; non-set collections must not contain duplicates.
    """
    if not isinstance(metavar := metadata["metavar"], str | Unset):
        raise TypeError(f"{cls.__typename__} 'metavar' must be a string")
    elif isinstance(metavar, str) and not (metavar := metavar.strip()):
        raise ValueError(f"{cls.__typename__} 'metavar' cannot be empty")
    metadata["metavar"] = coalesce(metavar)

    if not callable(metadata["type"]):
        raise TypeError(f"{cls.__typename__} 'type' must be callable")

    if not isinstance(choices := metadata["choices"], Iterable):
        raise TypeError(f"{cls.__typename__} 'choices' must be iterable")
    if not isinstance(choices, Set):
        sanitized = []
        for choice in choices:
            if choice in sanitized:
                raise ValueError(f"{cls.__typename__} 'choices' cannot contain duplicates")
            sanitized.append(choice)
        choices = tuple(sanitized)
    metadata["choices"] = choices

    if metadata["metavar"] and metadata["choices"]:
        raise TypeError(f"{cls.__typename__} cannot have both 'metavar' and 'choices'")


class _Spec(metaclass=ArgumentType):
    """
    Shared plumbing: attribute binding through __set_name__ and metadata mirroring.
    """
    def __init__(self, metadata):
        self._attribute = None
        for name, object in metadata.items():
            setattr(self, "_" + name, object)

    def __set_name__(self, owner, name):
        if self._attribute is not None and self._attribute != name:
            raise TypeError(f"{type(self).__typename__} cannot be bound to both {self._attribute!r} and {name!r}")
        self._attribute = name

    @property
    def attribute(self):
        """
        Name of the settings attribute this spec is bound to (None until bound).
        """
        return self._attribute

    @property
    def label(self):
        """
        Human label used in usage lines and messages.
        """
        return "<%s>" % re.sub(r"_+", "-", (self._attribute or "value").strip("_"))


class Option[_T](_Spec):
    """
    Named, value-bearing option specification.

    Parameters
    - names: one or more shell-style aliases ("-o", "--output").
    - metavar: label for the value in help (defaults to <attribute>).
    - type: converter applied to the raw token.
    - default: value used when the option is absent (ignored when required).
    - choices: allowed (converted) values.
    - descr: short help text.
    - required: the option must be present on the command line.
    - multiple: the option may repeat; values accumulate into a list.
    - hidden: suppress from help output.
    """
    __introspectable__ = (
        "names",
        "metavar",
        "type",
        "default",
        "choices",
        "descr",
        "required",
        "multiple",
        "hidden",
    )

    def __init__(
            self,
            *names,
            metavar=Unset,
            type=str,
            default=None,
            choices=(),
            descr=Unset,
            required=False,
            multiple=False,
            hidden=False
    ):
        metadata = {
            "names": names,
            "metavar": metavar,
            "type": type,
            "default": default,
            "choices": choices,
            "descr": descr,
            "required": bool(required),
            "multiple": bool(multiple),
            "hidden": bool(hidden),
        }
        _sanitize_metadata(Option, metadata)
        _sanitize_named_metadata(Option, metadata)
        _sanitize_parametric_metadata(Option, metadata)
        super().__init__(metadata)

        if self.required and self.hidden:
            raise TypeError(f"required {Option.__typename__} cannot be hidden")

    @property
    def initial(self):
        """
        Value bound when the option is absent from the command line.
        """
        return [] if self.multiple else self.default

    @property
    def label(self):
        return self.metavar or super().label


class Flag(_Spec):
    """
    Named, presence-only switch. Bound to True when present, False otherwise.
    """
    __introspectable__ = (
        "names",
        "descr",
        "hidden",
    )

    def __init__(self, *names, descr=Unset, hidden=False):
        metadata = {
            "names": names,
            "descr": descr,
            "hidden": bool(hidden),
        }
        _sanitize_metadata(Flag, metadata)
        _sanitize_named_metadata(Flag, metadata)
        super().__init__(metadata)

    @property
    def initial(self):
        return False


class Argument[_T](_Spec):
    """
    Positional, value-bearing argument specification.

    Arity (nargs)
    - Unset: exactly one value, required.
    - "?": zero or one value (default when absent).
    - "*": zero or more values (list).
    - "+": one or more values (list).
    """
    __introspectable__ = (
        "metavar",
        "type",
        "nargs",
        "default",
        "choices",
        "descr",
        "hidden",
    )

    def __init__(
            self,
            metavar=Unset,
            /,
            type=str,
            nargs=Unset,
            default=None,
            choices=(),
            descr=Unset,
            *,
            hidden=False
    ):
        metadata = {
            "metavar": metavar,
            "type": type,
            "nargs": nargs,
            "default": default,
            "choices": choices,
            "descr": descr,
            "hidden": bool(hidden),
        }
        if nargs is not Unset and nargs not in ("?", "*", "+"):
            raise ValueError(f"{Argument.__typename__} 'nargs' must be one of '?', '*', or '+'")
        _sanitize_metadata(Argument, metadata)
        _sanitize_parametric_metadata(Argument, metadata)
        super().__init__(metadata)

        if self.required and self.hidden:
            raise TypeError(f"required {Argument.__typename__} cannot be hidden")

    @property
    def required(self):
        return self.nargs in (Unset, "+")

    @property
    def variadic(self):
        return self.nargs in ("*", "+")

    @property
    def initial(self):
        return [] if self.variadic else self.default

    @property
    def label(self):
        return self.metavar or super().label


class SettingsType(type):
    """
    Metaclass collecting the specs of a settings schema.

    Exposes on every schema class
    - __fields__: mapping[attribute -> spec], bases first, in declaration order.
    - __switches__: mapping[option/flag name -> attribute].
    - __arguments__: tuple of positional attributes, in declaration order.
    """

    def __new__(cls, name, bases, namespace, **options):
        self = super().__new__(cls, name, bases, namespace, **options)

        fields = {}
        for base in reversed(self.__mro__[1:]):
            fields.update(getattr(base, "__fields__", {}))
        for attribute, object in namespace.items():
            if isinstance(object, Option | Flag | Argument):
                fields[attribute] = object

        switches = {}
        arguments = []
        for attribute, spec in fields.items():
            if isinstance(spec, Argument):
                arguments.append(attribute)
                continue
            for switch in spec.names:
                if switches.setdefault(switch, attribute) != attribute:
                    raise TypeError(f"settings {name!r} name {switch!r} is already in use by {switches[switch]!r}")

        optional = None
        for attribute in arguments:
            spec = fields[attribute]
            if optional and spec.required:
                raise TypeError(f"settings {name!r} required argument {attribute!r} cannot follow optional {optional!r}")
            if spec.variadic and attribute != arguments[-1]:
                raise TypeError(f"settings {name!r} variadic argument {attribute!r} must be the last argument")
            if not spec.required:
                optional = attribute

        self.__fields__ = MappingProxyType(fields)
        self.__switches__ = MappingProxyType(switches)
        self.__arguments__ = tuple(arguments)
        return self


class CommandSettings(metaclass=SettingsType):
    """
    Base settings schema: the implicit “no options” schema of the root.

    Instances hold the bound values as plain attributes. Keyword arguments
    override the initial value of the matching field, which keeps schemas easy
    to build by hand in tests.
    """

    def __init__(self, **values):
        for attribute, spec in type(self).__fields__.items():
            setattr(self, attribute, values.pop(attribute, spec.initial))
        if values:
            raise TypeError(f"{type(self).__name__}() got unexpected field(s) {', '.join(map(repr, values))}")

    def validate(self):
        """
        Hook called after binding. Raise InvalidSettingsError to reject the values.
        """

    def __eq__(self, other):
        if type(self) is not type(other):
            return NotImplemented
        return all(getattr(self, name) == getattr(other, name) for name in type(self).__fields__)

    __hash__ = None

    def __repr__(self):
        return f"{type(self).__name__}({
            ", ".join("%s=%r" % (name, getattr(self, name)) for name in type(self).__fields__)
        })"


def is_settings(object, /):
    """
    Return True when object is CommandSettings or one of its subclasses.
    """
    return isinstance(object, type) and issubclass(object, CommandSettings)


__all__ = (
    # Specs
    "Option",
    "Flag",
    "Argument",

    # Schema
    "CommandSettings",
    "SettingsType",
    "is_settings",
)

# Keep the metaclass out of star-imports; it is an implementation detail.
del ArgumentType
