"""
Deckhand application: the container-backed command activator.

Lifecycle of CommandApp.run(args)
1. args are tokenized (Unset means sys.argv[1:], a string goes through shlex).
2. Examples are validated once, when validate_examples() was requested.
3. The dispatcher resolves the tokens: help and version requests are rendered
   and return 0; a resolved command is resolved from a fresh registrar scope,
   executed and its exit code returned unchanged.
4. The scope is closed before run returns.

run() never starts an event loop for a synchronous command; an awaitable result
is completed with asyncio.run(). run_async() awaits it on the running loop.

Fault policy
- ConfigurationError always propagates (programmer error).
- Any other exception, from dispatch or from a command body, is rendered on
  the console (or handed to a custom exception handler) and converted to
  FAULT_EXIT_CODE, unless propagate_exceptions() was set, in which case the
  original exception propagates unchanged.

close() releases the registrar, which closes the singletons it created exactly
once; further calls are no-ops and a closed app refuses to run.
"""
import asyncio
import contextlib
import inspect
import logging
import os.path
import shlex
import sys

from rich.console import Console

from .commands import CancellationToken
from .configuration import AppConfig
from .dispatcher import Dispatcher, Resolution, ShowHelp, ShowVersion, examples_of
from .faults import CommandException, ConfigurationError, ExceptionFormat, render_exception
from .help import render_help, render_version
from .registrar import Registrar, ServiceRegistrar
from .tree import RootNode
from .utils import *

LOG = logging.getLogger(__name__)

FAULT_EXIT_CODE = -1


class AppSettings:
    """
    Runtime switches of a CommandApp, edited through AppConfig.

    - propagate_exceptions: let faults escape run() instead of converting them.
    - validate_examples: dispatch every recorded example once before the first run.
    - console: rich Console used for help, version and faults (None: stdout/stderr).
    - exception_handler: handler(error, app) replacing the default rendering; an
      int return value becomes the exit code.
    - exception_format: ExceptionFormat used for execution faults.
    """
    __slots__ = (
        "propagate_exceptions",
        "validate_examples",
        "console",
        "exception_handler",
        "exception_format",
    )

    def __init__(
            self,
            *,
            propagate_exceptions=False,
            validate_examples=False,
            console=None,
            exception_handler=None,
            exception_format=ExceptionFormat.DEFAULT
    ):
        self.propagate_exceptions = propagate_exceptions
        self.validate_examples = validate_examples
        self.console = console
        self.exception_handler = exception_handler
        self.exception_format = exception_format

    def __repr__(self):
        return "app-settings(%s)" % ", ".join("%s=%r" % (name, getattr(self, name)) for name in self.__slots__)


async def _completion(awaitable):
    return await awaitable


def _exit_code(node, result):
    if not isinstance(result, int):
        raise TypeError(f"{node.command.__qualname__}.execute() must return an int exit code, not {type(result).__name__}")
    return result


class CommandApp:
    """
    Runs commands resolved from a command tree, instantiated through a Registrar.
    """

    def __init__(self, registrar=Unset, /):
        registrar = coalesce(registrar, ServiceRegistrar())
        if not isinstance(registrar, Registrar):
            raise TypeError(f"CommandApp() registrar must be a Registrar, not {type(registrar).__name__}")
        self._registrar = registrar
        self._root = RootNode()
        self._settings = AppSettings()
        self._dispatcher = Dispatcher(self._root)
        self._validated = False
        self._closed = False

    @classmethod
    def from_services(cls, services, /):
        """
        Build an unconfigured app over a deckhand.services.ServiceCollection.
        """
        return cls(ServiceRegistrar(services))

    @property
    def registrar(self):
        return self._registrar

    @property
    def root(self):
        return self._root

    @property
    def settings(self):
        return self._settings

    @property
    def closed(self):
        return self._closed

    @property
    def prog(self):
        """
        Program name shown in usage lines and fault headers.
        """
        return self._root.application_name or os.path.basename(sys.argv[0]) or "app"

    def console(self, *, stderr=False):
        return self._settings.console or Console(stderr=stderr)

    def configure(self, setup, /):
        """
        Call setup(AppConfig) to build the command tree. Repeated calls add to the tree.
        """
        if not callable(setup):
            raise ConfigurationError("configure() setup must be callable")
        setup(AppConfig(self, self._registrar, self._root))
        return self

    def set_default_command(self, command, /):
        AppConfig(self, self._registrar, self._root).set_default_command(command)
        return self

    def run(self, args=Unset, /, cancellation=None):
        """
        Synchronous entry point; returns the exit code.

        Synchronous commands run on the calling thread with no event loop; an
        asynchronous command body gets its own loop through asyncio.run().
        """
        tokens, cancellation = self._prepare(args, cancellation)
        try:
            return self._execute(tokens, cancellation)
        except ConfigurationError:
            raise
        except Exception as error:
            if self._settings.propagate_exceptions:
                raise
            return self._fault(error)

    async def run_async(self, args=Unset, /, cancellation=None):
        tokens, cancellation = self._prepare(args, cancellation)
        try:
            return await self._execute_async(tokens, cancellation)
        except ConfigurationError:
            raise
        except Exception as error:
            if self._settings.propagate_exceptions:
                raise
            return self._fault(error)

    def _prepare(self, args, cancellation):
        if self._closed:
            raise RuntimeError("cannot run a closed CommandApp")
        tokens = self._tokenize(args)
        if self._settings.validate_examples and not self._validated:
            self._validate_examples()
        return tokens, cancellation if cancellation is not None else CancellationToken.none()

    def _dispatch(self, tokens):
        """
        Resolve tokens; help and version are rendered here and come back as exit code 0.
        """
        outcome = self._dispatcher.resolve(tokens)
        match outcome:
            case ShowHelp():
                render_help(self.console(), outcome.node, prog=self.prog)
                return 0
            case ShowVersion():
                render_version(self.console(), outcome.root, prog=self.prog)
                return 0
        return outcome

    @contextlib.contextmanager
    def _activate(self, outcome, cancellation):
        node = outcome.node
        cancellation.raise_if_cancelled()

        LOG.debug("opening scope for %s", node.command.__qualname__)
        with self._registrar.create_scope() as scope:
            yield scope.resolve(node.command)
        LOG.debug("closed scope for %s", node.command.__qualname__)

    def _execute(self, tokens, cancellation):
        if isinstance(outcome := self._dispatch(tokens), int):
            return outcome
        with self._activate(outcome, cancellation) as command:
            result = command.execute(outcome.context, outcome.settings, cancellation)
            if inspect.isawaitable(result):
                result = asyncio.run(_completion(result))
        return _exit_code(outcome.node, result)

    async def _execute_async(self, tokens, cancellation):
        if isinstance(outcome := self._dispatch(tokens), int):
            return outcome
        with self._activate(outcome, cancellation) as command:
            result = command.execute(outcome.context, outcome.settings, cancellation)
            if inspect.isawaitable(result):
                result = await result
        return _exit_code(outcome.node, result)

    def _fault(self, error):
        LOG.debug("converting %s to exit code %d", type(error).__name__, FAULT_EXIT_CODE)
        if (handler := self._settings.exception_handler) is not None:
            result = handler(error, self)
            return result if isinstance(result, int) else FAULT_EXIT_CODE
        render_exception(self.console(stderr=True), error, self._settings.exception_format, prog=self.prog)
        return FAULT_EXIT_CODE

    def _tokenize(self, args):
        if args is Unset:
            return sys.argv[1:]
        if isinstance(args, str):
            return shlex.split(args)
        tokens = list(args)
        if not all(isinstance(token, str) for token in tokens):
            raise TypeError("run() args must be a string or an iterable of strings")
        return tokens

    def _validate_examples(self):
        for node, example in examples_of(self._root):
            described = " ".join((self.prog, *example))
            try:
                outcome = self._dispatcher.resolve(example)
            except CommandException as error:
                raise ConfigurationError(
                    f"example '{described}' is invalid: {coalesce(error.message, error.title)}",
                    hint="fix the example or the settings it exercises",
                    example=example,
                ) from error
            if not isinstance(outcome, Resolution) or outcome.node is not node:
                raise ConfigurationError(
                    f"example '{described}' does not invoke the command it documents",
                    hint="start the example with the full route of the command",
                    example=example,
                )
        self._validated = True

    def close(self):
        if self._closed:
            return
        self._closed = True
        self._registrar.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()


__all__ = (
    "AppSettings",
    "CommandApp",
    "FAULT_EXIT_CODE",
)
