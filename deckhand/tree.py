"""
Deckhand command tree.

Nodes
- CommandNode: named leaf mapped to one command type (the registrar key) and
  its settings schema; carries description, aliases, examples, hidden flag and
  an opaque data payload.
- BranchNode: named interior node grouping children under a shared settings
  schema. Children keep insertion order (help output, tie-breaks).
- RootNode: the unnamed top branch with the implicit CommandSettings schema;
  also holds the application name/version and the single default command.

Lifecycle
- Nodes are created and decorated during configuration only (see
  deckhand.configuration); dispatch treats the tree as read-only.
- Names are unique among siblings, aliases included.
"""
import functools
import operator
import re

from .faults import ConfigurationError
from .settings import CommandSettings
from .utils import *


class NodeType(type):
    """
    Metaclass giving nodes a typename, mirrored read-only fields and a compact repr.

    - __introspectable__: names exposed through mirror() over "_{name}".
    - __displayable__: subset shown by __repr__/__rich_repr__ (defaults to all).
    """
    __introspectable__ = ()
    __displayable__ = Unset

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
            for name in coalesce(type(self).__displayable__, type(self).__introspectable__):
                yield name, getattr(self, name)
        self.__rich_repr__ = __rich_repr__

        return self


class Node(metaclass=NodeType):
    """
    Common state of commands and branches.
    """
    __introspectable__ = (
        "name",
        "settings",
        "descr",
        "aliases",
        "hidden",
    )

    def __init__(self, name, settings=CommandSettings):
        self._name = name
        self._settings = settings
        self._descr = None
        self._aliases = []
        self._hidden = False
        self._parent = None

    @property
    def parent(self):
        return self._parent

    @property
    def route(self):
        """
        Names from the root (excluded) down to this node.
        """
        route = []
        node = self
        while node is not None and node.name is not None:
            route.append(node.name)
            node = node.parent
        return tuple(reversed(route))

    @property
    def root(self):
        node = self
        while node.parent is not None:
            node = node.parent
        return node

    def matches(self, token, /):
        return token == self._name or token in self._aliases

    def set_description(self, descr, /):
        self._descr = checkname(f"{type(self).__typename__} {self._name!r}", descr, "description", error=ConfigurationError)

    def set_hidden(self, hidden=True, /):
        self._hidden = bool(hidden)

    def add_alias(self, alias, /):
        alias = checkname(f"{type(self).__typename__} {self._name!r}", alias, "alias", error=ConfigurationError)
        if self._parent is not None and (other := self._parent.find(alias)) is not None:
            raise ConfigurationError(
                f"{type(self).__typename__} alias {alias!r} is already in use by {other.name!r}",
                hint="pick an alias that no sibling command or branch uses",
            )
        self._aliases.append(alias)


class CommandNode(Node):
    """
    Leaf node: one executable command type.
    """
    __introspectable__ = Node.__introspectable__ + (
        "command",
        "examples",
    )
    __displayable__ = (
        "name",
        "command",
        "settings",
        "aliases",
        "hidden",
    )

    def __init__(self, name, command, settings=CommandSettings):
        super().__init__(name, settings)
        self._command = command
        self._examples = []
        self._data = None

    @property
    def data(self):
        # Opaque payload: handed to commands as-is, never snapshotted.
        return self._data

    def add_example(self, arguments, /):
        if isinstance(arguments, str) or not all(isinstance(argument, str) for argument in arguments):
            raise ConfigurationError(f"{type(self).__typename__} {self._name!r} example must be a sequence of strings")
        self._examples.append(tuple(arguments))

    def set_data(self, data, /):
        self._data = data


class BranchNode(Node):
    """
    Interior node: ordered children sharing (a refinement of) one settings schema.
    """
    __introspectable__ = Node.__introspectable__ + (
        "children",
    )
    __displayable__ = (
        "name",
        "settings",
        "aliases",
        "hidden",
        "children",
    )

    def __init__(self, name, settings=CommandSettings):
        super().__init__(name, settings)
        self._children = []

    def find(self, token, /):
        """
        Return the child whose name or alias is token, or None.
        """
        for child in self._children:
            if child.matches(token):
                return child
        return None

    def attach(self, child, /):
        """
        Append child, enforcing unique names and aliases among siblings.
        """
        for token in (child.name, *child.aliases):
            if (other := self.find(token)) is not None:
                typeof = "command" if isinstance(other, CommandNode) else "branch"
                raise ConfigurationError(
                    f"{typeof} name {token!r} is already in use{' under %r' % ' '.join(self.route) if self.route else ''}",
                    hint="command and branch names must be unique among siblings",
                )
        child._parent = self
        self._children.append(child)
        return child

    def walk(self):
        """
        Yield every descendant depth-first, in insertion order.
        """
        for child in self._children:
            yield child
            if isinstance(child, BranchNode):
                yield from child.walk()

    def visible(self):
        return [child for child in self._children if not child.hidden]


class RootNode(BranchNode):
    """
    The unnamed top branch of an application.
    """
    __introspectable__ = BranchNode.__introspectable__ + (
        "application_name",
        "application_version",
        "default",
    )
    __displayable__ = (
        "application_name",
        "application_version",
        "default",
        "children",
    )

    def __init__(self):
        super().__init__(None, CommandSettings)
        self._application_name = None
        self._application_version = None
        self._default = None

    def set_application_name(self, name, /):
        self._application_name = checkname("set_application_name()", name, error=ConfigurationError)

    def set_application_version(self, version, /):
        self._application_version = checkname("set_application_version()", version, "version", error=ConfigurationError)

    def set_default(self, node, /):
        node._parent = self
        self._default = node

    def walk(self):
        yield from super().walk()
        if self._default is not None and self._default not in self._children:
            yield self._default


__all__ = (
    "Node",
    "CommandNode",
    "BranchNode",
    "RootNode",
)
