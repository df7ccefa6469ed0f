"""
Logging bootstrap for deckhand applications.

Modules log through LOG = logging.getLogger(__name__); nothing is printed until
the host calls configure_logging(), which routes records through a
rich.logging.RichHandler on stderr.

add_logging(services) lets commands and services ask for a logger in their
constructor:

    class VersionCommand(Command[VersionSettings]):
        def __init__(self, logger: logging.Logger):
            self.logger = logger    # logging.getLogger("<module>.VersionCommand")
"""
import logging

from rich.console import Console
from rich.logging import RichHandler

from .utils import *


def configure_logging(level=logging.WARNING, console=Unset, /):
    """
    Configure the root logger once, with a RichHandler writing to console (stderr by default).

    Repeated calls keep the first configuration, like logging.basicConfig().
    """
    handler = RichHandler(
        console=coalesce(console, Console(stderr=True)),
        show_path=False,
        rich_tracebacks=True,
    )
    logging.basicConfig(
        level=level,
        format="%(name)s: %(message)s",
        datefmt="[%X]",
        handlers=[handler],
    )


def _logger(scope, owner):
    # Resolved outside of a constructor: hand out the root logger.
    if owner is None:
        return logging.getLogger()
    return logging.getLogger(f"{owner.__module__}.{owner.__qualname__}")


def add_logging(services, level=Unset, /):
    """
    Register a contextual logging.Logger on services; configure logging first when level is given.
    """
    if level is not Unset:
        configure_logging(level)
    services.add_contextual(logging.Logger, _logger)
    return services


__all__ = (
    "configure_logging",
    "add_logging",
)
