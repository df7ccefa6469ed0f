"""
Deckhand default program: the reusable process entry point.

    program = Program(
        add_services=[lambda services: services.add_singleton(VersionService)],
        configure_app=[lambda config: config.add_command(VersionCommand, "test")],
    )

    if __name__ == "__main__":
        sys.exit(program.main())

Program.create_app() builds a ServiceCollection with logging, the console and
the app itself registered, runs every add_services callback over it, then every
configure_app callback over the app configuration.
"""
import logging

from rich.console import Console

from .app import CommandApp
from .faults import ExceptionFormat
from .logs import add_logging, configure_logging
from .services import ServiceCollection
from .utils import *


def add_command_app(services, /, console=Unset, exception_format=ExceptionFormat.DEFAULT):
    """
    Register a Console and a CommandApp on services and return the app.

    Commands may ask for either in their constructor; the caller-provided
    console is never closed by the container.
    """
    console = coalesce(console, Console())
    services.try_add_singleton(Console, instance=console)
    app = CommandApp.from_services(services)
    app.configure(lambda config: config.configure_console(console).set_exception_format(exception_format))
    services.add_singleton(CommandApp, instance=app)
    return app


def _callbacks(owner, callbacks):
    callbacks = tuple(callbacks)
    if not all(callable(callback) for callback in callbacks):
        raise TypeError(f"Program() {owner!r} must be an iterable of callables")
    return callbacks


class Program:
    """
    Explicit options replacing per-program hook methods.

    - add_services: callbacks(services) run before the app is created.
    - configure_app: callbacks(AppConfig) run in order on the new app.
    - level: logging level installed by main().
    - console: rich Console for help, version and faults (default: stdout).
    - exception_format: ExceptionFormat for execution faults.
    - validate_examples: validate every recorded example before the first run.
    - distribution: installed distribution whose version becomes the app version.
    """

    def __init__(
            self,
            *,
            add_services=(),
            configure_app=(),
            level=logging.WARNING,
            console=Unset,
            exception_format=ExceptionFormat.DEFAULT,
            validate_examples=True,
            distribution=Unset
    ):
        self.add_services = _callbacks("add_services", add_services)
        self.configure_app = _callbacks("configure_app", configure_app)
        self.level = level
        self.console = console
        self.exception_format = exception_format
        self.validate_examples = validate_examples
        self.distribution = distribution

    def create_app(self, services=Unset, /):
        services = coalesce(services, ServiceCollection())
        add_logging(services)
        for callback in self.add_services:
            callback(services)

        app = add_command_app(services, self.console, self.exception_format)
        if self.distribution is not Unset:
            app.configure(lambda config: config.use_package_version(self.distribution))
        if self.validate_examples:
            app.configure(lambda config: config.validate_examples())
        for callback in self.configure_app:
            app.configure(callback)
        return app

    def main(self, argv=Unset, /):
        """
        Configure logging, build the app, run it once and release it; returns the exit code.
        """
        configure_logging(self.level)
        with self.create_app() as app:
            return app.run(argv)


__all__ = (
    "Program",
    "add_command_app",
)
