"""
Deckhand command contract.

What this module provides
- Command[S]: base class for synchronous commands. Subclasses implement
  execute(context, settings, cancellation) -> int.
- AsyncCommand[S]: same contract, execute is a coroutine.
- CommandContext: ambient invocation metadata handed to execute().
- CancellationToken: cooperative cancellation signal checked by the app before
  execution and available to command bodies.

The settings schema of a command is read from its generic base:

    class VersionCommand(Command[VersionSettings]):
        def __init__(self, service: VersionService):
            self.service = service

        def execute(self, context, settings, cancellation):
            return 0 if self.service.version == settings.test_version else 1

A class can also set __settings__ explicitly; commands without either use the
root CommandSettings schema.
"""
import threading
import typing
from abc import ABC, abstractmethod

from .faults import CommandCancelledError
from .settings import CommandSettings, is_settings


def _settings_from_bases(cls):
    for base in cls.__dict__.get("__orig_bases__", ()):
        for argument in typing.get_args(base):
            if is_settings(argument):
                return argument
    return None


class _CommandBase(ABC):
    __settings__ = CommandSettings

    def __init_subclass__(cls, **options):
        super().__init_subclass__(**options)
        if "__settings__" in cls.__dict__:
            settings = cls.__dict__["__settings__"]
        elif (settings := _settings_from_bases(cls)) is not None:
            cls.__settings__ = settings
        else:
            return
        if not is_settings(settings):
            raise TypeError(f"{cls.__name__}.__settings__ must be a CommandSettings subclass")


class Command[S: CommandSettings](_CommandBase):
    """
    Synchronous command. Instances are created by the registrar, so __init__
    may declare collaborators as annotated parameters.
    """

    @abstractmethod
    def execute(self, context, settings, cancellation):
        """
        Run the command and return its exit code (0 = success).
        """


class AsyncCommand[S: CommandSettings](_CommandBase):
    """
    Asynchronous command; execute() is awaited by CommandApp.run_async().
    """

    @abstractmethod
    async def execute(self, context, settings, cancellation):
        """
        Run the command and return its exit code (0 = success).
        """


def is_command(object, /):
    """
    Return True when object is a concrete-or-abstract command class.
    """
    return isinstance(object, type) and issubclass(object, _CommandBase) and object not in (Command, AsyncCommand)


def settings_of(command, /):
    """
    Return the settings schema a command type binds at dispatch time.
    """
    return command.__settings__


class CommandContext:
    """
    Invocation metadata passed to execute().

    Attributes
    - name: matched command name (as declared, even when invoked through an alias).
    - path: route of names from the root to the command.
    - arguments: every token of the invocation.
    - remaining: tokens after a literal "--".
    - data: payload attached through with_data(), or None.
    """
    __slots__ = ("name", "path", "arguments", "remaining", "data")

    def __init__(self, name, path=(), arguments=(), remaining=(), data=None):
        self.name = name
        self.path = tuple(path)
        self.arguments = tuple(arguments)
        self.remaining = tuple(remaining)
        self.data = data

    def __repr__(self):
        return "command-context(name=%r, path=%r, arguments=%r, remaining=%r, data=%r)" % (
            self.name, self.path, self.arguments, self.remaining, self.data
        )


class CancellationToken:
    """
    Cooperative cancellation signal (thread-safe).

    Command bodies may poll `cancelled` or call raise_if_cancelled(); nothing
    interrupts a body that ignores the token.
    """

    def __init__(self):
        self._event = threading.Event()
        self._reasons = []

    @classmethod
    def none(cls):
        """
        A fresh token that is never cancelled unless someone calls cancel() on it.
        """
        return cls()

    @property
    def cancelled(self):
        return self._event.is_set()

    @property
    def reason(self):
        return self._reasons[0] if self._reasons else None

    def cancel(self, reason="operation was cancelled"):
        if not self._event.is_set():
            self._reasons.append(reason)
            self._event.set()

    def wait(self, timeout=None):
        return self._event.wait(timeout)

    def raise_if_cancelled(self):
        if self._event.is_set():
            raise CommandCancelledError(
                self.reason,
                hint="the invocation was cancelled before it could finish",
            )


__all__ = (
    "Command",
    "AsyncCommand",
    "CommandContext",
    "CancellationToken",
    "is_command",
    "settings_of",
)
