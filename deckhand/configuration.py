"""
Deckhand fluent configuration.

Contexts
- AppConfig: the root. Adds commands and branches at the top level and owns the
  application-wide switches (name, version, default command, fault policy).
- SettingsConfig: handed to add_branch() populate callbacks; adds commands and
  nested branches under one branch, constrained to its settings schema.
- CommandConfig: returned by add_command(); decorates the command just added.
- BranchConfig: returned by add_branch(); decorates the branch just added.

Every context is an immutable (app, services, cursor) triple and every method
returns a fresh context sharing app and services with its input:

    app.configure(lambda config: (
        config.set_application_name("tool")
              .add_command(VersionCommand, "test")
              .with_alias("t")
              .with_example("test", "--test-version=1.0.0.0")
    ))

    def yolo(config):
        config.set_description("Things you only do once.")
        config.add_command(VersionCommand, "test")

    app.configure(lambda config: config.add_branch("yolo", yolo, VersionSettings))

Schema rule
- A command or branch added under a cursor must use the cursor's settings
  schema or a subclass of it; anything else raises SchemaMismatchError at the
  call site.
"""
import inspect
from importlib import metadata

from rich.console import Console

from .commands import is_command, settings_of
from .faults import ConfigurationError, ExceptionFormat, SchemaMismatchError
from .settings import CommandSettings, is_settings
from .tree import BranchNode, CommandNode
from .utils import *


def _check_command(owner, command):
    if not is_command(command):
        raise ConfigurationError(
            f"{owner} command must be a Command or AsyncCommand subclass, not {command!r}",
            hint="derive the command from deckhand.Command[YourSettings]",
        )
    if inspect.isabstract(command):
        raise ConfigurationError(
            f"{owner} command {command.__qualname__} is abstract",
            hint="implement execute(context, settings, cancellation) on the command",
        )


def _check_schema(owner, settings, cursor):
    if not issubclass(settings, cursor.settings):
        where = "branch %r" % " ".join(cursor.route) if cursor.route else "the root"
        raise SchemaMismatchError(
            f"{owner} settings {settings.__qualname__} is not compatible with "
            f"{cursor.settings.__qualname__} required by {where}",
            hint=f"derive {settings.__qualname__} from {cursor.settings.__qualname__}",
            settings=settings,
            expected=cursor.settings,
        )


class _Context:
    """
    Immutable (app, services, cursor) triple shared by every configuration context.
    """
    __slots__ = ("_app", "_services", "_cursor")

    def __init__(self, app, services, cursor):
        object.__setattr__(self, "_app", app)
        object.__setattr__(self, "_services", services)
        object.__setattr__(self, "_cursor", cursor)

    @property
    def app(self):
        return self._app

    @property
    def services(self):
        return self._services

    @property
    def cursor(self):
        return self._cursor

    def __setattr__(self, name, value):
        raise AttributeError(f"{type(self).__name__} is immutable")

    def __delattr__(self, name):
        raise AttributeError(f"{type(self).__name__} is immutable")

    def __replace__(self, /, **changes):
        return type(self)(
            changes.pop("app", self._app),
            changes.pop("services", self._services),
            changes.pop("cursor", self._cursor),
            **changes
        )

    def __eq__(self, other):
        if type(self) is not type(other):
            return NotImplemented
        return (self._app, self._services, self._cursor) == (other._app, other._services, other._cursor)

    def __hash__(self):
        return hash((type(self), id(self._app), id(self._services), id(self._cursor)))

    def __repr__(self):
        return "%s(cursor=%r)" % (type(self).__name__, self._cursor)

    def _same(self):
        return type(self)(self._app, self._services, self._cursor)


class _Populating(_Context):
    __slots__ = ()

    @property
    def settings(self):
        """
        Settings schema every node added here must use or refine.
        """
        return self._cursor.settings

    def add_command(self, command, name, /):
        """
        Add a command named name, register its type as transient if absent, return a CommandConfig.
        """
        name = checkname("add_command()", name, error=ConfigurationError)
        _check_command("add_command()", command)
        _check_schema("add_command()", settings := settings_of(command), self._cursor)

        node = self._cursor.attach(CommandNode(name, command, settings))
        self._services.register_if_absent(command)
        return CommandConfig(self._app, self._services, node)

    def add_branch(self, name, populate=None, settings=Unset, /):
        """
        Add a branch, populate it through populate(SettingsConfig), return a BranchConfig.

        The branch is attached only after populate returns, so a failing
        callback leaves the tree untouched.
        """
        name = checkname("add_branch()", name, error=ConfigurationError)
        if populate is None or not callable(populate):
            raise ConfigurationError(
                f"add_branch() branch {name!r} needs a callable populate action",
                hint="pass a function taking the branch configuration, e.g. lambda config: config.add_command(...)",
            )
        settings = coalesce(settings, self._cursor.settings)
        if not is_settings(settings):
            raise ConfigurationError(f"add_branch() settings must be a CommandSettings subclass, not {settings!r}")
        _check_schema("add_branch()", settings, self._cursor)
        if self._cursor.find(name) is not None:
            raise ConfigurationError(
                f"branch name {name!r} is already in use",
                hint="command and branch names must be unique among siblings",
            )

        branch = BranchNode(name, settings)
        populate(SettingsConfig(self._app, self._services, branch))
        self._cursor.attach(branch)
        return BranchConfig(self._app, self._services, branch)


class AppConfig(_Populating):
    """
    Root configuration context.
    """
    __slots__ = ()

    def set_application_name(self, name, /):
        self._cursor.set_application_name(name)
        return self._same()

    def set_application_version(self, version, /):
        self._cursor.set_application_version(version)
        return self._same()

    def use_package_version(self, distribution, /):
        """
        Read the application version from an installed distribution's metadata.
        """
        distribution = checkname("use_package_version()", distribution, "distribution", error=ConfigurationError)
        try:
            version = metadata.version(distribution)
        except metadata.PackageNotFoundError:
            raise ConfigurationError(
                f"use_package_version() distribution {distribution!r} is not installed",
                hint="install the distribution or call set_application_version() instead",
            ) from None
        return self.set_application_version(version)

    def set_default_command(self, command, /):
        """
        Make command the target of invocations that name no command. Last call wins.
        """
        _check_command("set_default_command()", command)
        if not issubclass(settings := settings_of(command), CommandSettings):
            raise SchemaMismatchError(f"set_default_command() settings {settings!r} must derive from CommandSettings")

        node = CommandNode(None, command, settings)
        self._cursor.set_default(node)
        self._services.register_if_absent(command)
        return CommandConfig(self._app, self._services, node)

    def propagate_exceptions(self):
        self._app.settings.propagate_exceptions = True
        return self._same()

    def validate_examples(self):
        self._app.settings.validate_examples = True
        return self._same()

    def configure_console(self, console, /):
        if not isinstance(console, Console):
            raise ConfigurationError(f"configure_console() console must be a rich Console, not {type(console).__name__}")
        self._app.settings.console = console
        return self._same()

    def set_exception_handler(self, handler, /):
        """
        Install handler(error, app) in place of the default fault rendering; None restores it.
        """
        if handler is not None and not callable(handler):
            raise ConfigurationError("set_exception_handler() handler must be callable")
        self._app.settings.exception_handler = handler
        return self._same()

    def set_exception_format(self, format, /):
        if not isinstance(format, ExceptionFormat):
            raise ConfigurationError(f"set_exception_format() format must be an ExceptionFormat, not {format!r}")
        self._app.settings.exception_format = format
        return self._same()


class SettingsConfig(_Populating):
    """
    Branch configuration context passed to add_branch() populate callbacks.
    """
    __slots__ = ()

    def set_description(self, descr, /):
        self._cursor.set_description(descr)
        return self._same()


class _Decorating(_Context):
    __slots__ = ()

    def with_description(self, descr, /):
        self._cursor.set_description(descr)
        return self._same()

    def with_alias(self, alias, /):
        if self._cursor.name is None:
            raise ConfigurationError("with_alias() the default command cannot have aliases")
        self._cursor.add_alias(alias)
        return self._same()

    def is_hidden(self):
        self._cursor.set_hidden()
        return self._same()


class CommandConfig(_Decorating):
    """
    Decorates the command node just added.
    """
    __slots__ = ()

    def with_example(self, *arguments):
        """
        Record one usage example, given as the argument vector after the program name.
        """
        self._cursor.add_example(arguments)
        return self._same()

    def with_data(self, data, /):
        self._cursor.set_data(data)
        return self._same()


class BranchConfig(_Decorating):
    """
    Decorates the branch node just added.
    """
    __slots__ = ()


__all__ = (
    "AppConfig",
    "SettingsConfig",
    "CommandConfig",
    "BranchConfig",
)
