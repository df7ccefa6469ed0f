"""
Deckhand faults (errors) and rendering.

Scope
- FaultCode: canonical, stable numeric identifiers for every user-facing issue.
  Codes are grouped by domain so logs and searches stay predictable.
- CommandException: base type carrying message + options; knows how to render
  itself as a rich renderable (header, message, hint).
- ConfigurationError / SchemaMismatchError: programmer errors raised while the
  command tree is being built. They always propagate.
- Routing and parsing faults raised by the dispatcher.
- ExceptionFormat / render_exception(): how an unhandled command fault is shown.

UX goals
- Position-first messages (“from second position”) so users learn by trying.
- Short titles, one-sentence bodies, a single actionable hint.
- Styling overridable through a __styles__ mapping in __main__; fault codes
  remappable through a __codes__ mapping in __main__.
"""
import asyncio
import sys
from collections import defaultdict
from enum import IntEnum, IntFlag
from types import MappingProxyType

from rich.console import Group
from rich.panel import Panel
from rich.text import Text
from rich.traceback import Traceback

from .utils import Unset


class FaultCode(IntEnum):
    """
    canonical fault codes used across the framework (stable identifiers).

    grouping (by high-level domain)
    - configuration (101xx): INVALID_CONFIGURATION, SCHEMA_MISMATCH
    - routing (111 0x): UNKNOWN_COMMAND, UNKNOWN_SUBCOMMAND, MISSING_COMMAND
    - switches and arguments (111 1x/2x): MALFORMED_TOKEN, UNKNOWN_SWITCH,
      FLAG_ASSIGNMENT, DUPLICATED_SWITCH, MISSING_VALUE, UNEXPECTED_ARGUMENT,
      INVALID_CHOICE, MISSING_REQUIRED, INVALID_VALUE, INVALID_SETTINGS
    - execution (1113x): EXECUTION_FAULT, CANCELLED
    - services (1115x): SERVICE_RESOLUTION
    """
    # --- configuration errors (10xxx) ---
    INVALID_CONFIGURATION = 10101
    SCHEMA_MISMATCH       = 10102

    # --- routing errors (11xxx) ---
    UNKNOWN_COMMAND       = 11101
    UNKNOWN_SUBCOMMAND    = 11102
    MISSING_COMMAND       = 11103

    # --- switch/argument errors (11xxx) ---
    MALFORMED_TOKEN       = 11111
    UNKNOWN_SWITCH        = 11112
    FLAG_ASSIGNMENT       = 11113
    DUPLICATED_SWITCH     = 11115
    MISSING_VALUE         = 11117
    UNEXPECTED_ARGUMENT   = 11121
    INVALID_CHOICE        = 11124
    MISSING_REQUIRED      = 11125
    INVALID_VALUE         = 11126
    INVALID_SETTINGS      = 11127

    # --- execution errors (11xxx) ---
    EXECUTION_FAULT       = 11131
    CANCELLED             = 11132

    # --- service errors (11xxx) ---
    SERVICE_RESOLUTION    = 11151

    def normalize(self):
        """
        return a host-normalized string for this code.

        the host application can provide a __codes__ mapping in __main__
        to override numeric ids with friendlier labels.
        """
        return str(getattr(sys.modules.get("__main__"), "__codes__", {}).get(self, self.value))


def _styles(defaults):
    return defaultdict(str, defaults | getattr(sys.modules.get("__main__"), "__styles__", {}))


def _header(prog, code, title, styler, text):
    return Text.assemble(
        "[ ",
        text(prog, styler("prog-name")),
        " — ",
        text(code.normalize(), styler("code")),
        " | ",
        text(title.title(), styler("error-title")),
        " ]"
    )


class CommandException(Exception):
    """
    base type for every fault the framework reports.

    options (all optional)
    - title, code, hint: rendering copy; default to the class-level __title__/__code__.
    - prog, colorful, fancy: presentation, usually merged in by the app via copy.replace().
    - anything else (input, index, suggestions, node, ...) is kept for callers and tests.
    """
    __title__ = "command error"
    __code__ = FaultCode.EXECUTION_FAULT

    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        super().__init__(*((message,) if message is not Unset else ()))
        self.message = message
        self.options = MappingProxyType(options)

    @property
    def code(self):
        return self.options.get("code", type(self).__code__)

    @property
    def title(self):
        return self.options.get("title", type(self).__title__)

    @property
    def hint(self):
        return self.options.get("hint")

    def __rich__(self):
        colorful = self.options.get("colorful", True)
        styles = _styles({
            # header parts
            "prog-name": "bold #E6E6F0",  # near-white program name
            "code": "bold #00E5FF",  # neon cyan fault code
            "error-title": "bold #FF4DA6",  # friendly pinky title

            # body
            "error-message": "#C8C8D0",  # soft light gray message
            "hint-arrow": "#9CE19C dim",  # gentle green arrow
            "hint": "italic #9CE19C",  # gentle green hint text
        })

        def styler(style):
            return styles[style] if colorful else ""

        def text(fragment, style=""):
            if not fragment:
                return Text("")
            if isinstance(fragment, Text):
                return fragment if colorful else Text(fragment.plain)
            return Text(str(fragment), style)

        header = _header(self.options.get("prog", "app"), self.code, self.title, styler, text)
        renders = [text(self.message if self.message is not Unset else "", styler("error-message"))]
        if self.hint:
            renders.append(Text.assemble(text(" → ", styler("hint-arrow")), text(self.hint, styler("hint"))))

        if self.options.get("fancy", False):
            return Panel(Group(*renders), title=header, title_align="left")
        return Group(header, *renders)

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        replacement = type(self)(self.message, **{**self.options, **overrides})
        replacement.__cause__ = self.__cause__
        replacement.__traceback__ = self.__traceback__
        return replacement


class ConfigurationError(CommandException):
    __title__ = "invalid configuration"
    __code__ = FaultCode.INVALID_CONFIGURATION


class SchemaMismatchError(ConfigurationError):
    __title__ = "settings schema mismatch"
    __code__ = FaultCode.SCHEMA_MISMATCH


class UnknownCommandError(CommandException):
    __title__ = "unknown command"
    __code__ = FaultCode.UNKNOWN_COMMAND


class MissingCommandError(UnknownCommandError):
    __title__ = "missing command"
    __code__ = FaultCode.MISSING_COMMAND


class MalformedTokenError(CommandException):
    __title__ = "malformed option or flag"
    __code__ = FaultCode.MALFORMED_TOKEN


class UnknownSwitchError(CommandException):
    __title__ = "unknown option or flag"
    __code__ = FaultCode.UNKNOWN_SWITCH


class FlagAssignmentError(CommandException):
    __title__ = "flag cannot take a value"
    __code__ = FaultCode.FLAG_ASSIGNMENT


class DuplicatedSwitchError(CommandException):
    __title__ = "duplicated option"
    __code__ = FaultCode.DUPLICATED_SWITCH


class MissingValueError(CommandException):
    __title__ = "missing value"
    __code__ = FaultCode.MISSING_VALUE


class UnexpectedArgumentError(CommandException):
    __title__ = "unexpected argument"
    __code__ = FaultCode.UNEXPECTED_ARGUMENT


class InvalidChoiceError(CommandException):
    __title__ = "invalid choice"
    __code__ = FaultCode.INVALID_CHOICE


class MissingRequiredError(CommandException):
    __title__ = "missing required input"
    __code__ = FaultCode.MISSING_REQUIRED


class InvalidValueError(CommandException):
    __title__ = "invalid value"
    __code__ = FaultCode.INVALID_VALUE


class InvalidSettingsError(CommandException):
    __title__ = "invalid settings"
    __code__ = FaultCode.INVALID_SETTINGS


class CommandCancelledError(CommandException):
    __title__ = "cancelled"
    __code__ = FaultCode.CANCELLED


class ServiceResolutionError(CommandException):
    __title__ = "unresolvable service"
    __code__ = FaultCode.SERVICE_RESOLUTION


class ExceptionFormat(IntFlag):
    """
    how unhandled command faults are rendered.

    - DEFAULT: rich traceback with source context.
    - SHOW_LOCALS: include local variables in each frame.
    - SUPPRESS_INTERNALS: collapse frames that belong to deckhand and asyncio.
    - NO_STACK_TRACE: header + message only (same layout as parse faults).
    """
    DEFAULT            = 0
    SHOW_LOCALS        = 1
    SUPPRESS_INTERNALS = 2
    NO_STACK_TRACE     = 4


def render_exception(console, error, /, format=ExceptionFormat.DEFAULT, **options):
    """
    print a fault on the given console.

    contract
    - CommandException instances render themselves (options such as prog,
      colorful and fancy are merged in through __replace__).
    - any other exception is an execution fault: shown as a rich traceback,
      or as a one-line fault when format includes NO_STACK_TRACE.
    """
    if isinstance(error, CommandException):
        console.print(error.__replace__(**options))
        return

    if format & ExceptionFormat.NO_STACK_TRACE:
        fault = CommandException(
            f"{type(error).__name__}: {error}",
            title="execution fault",
            code=FaultCode.EXECUTION_FAULT,
            **options
        )
        console.print(fault)
        return

    console.print(Traceback.from_exception(
        type(error),
        error,
        error.__traceback__,
        width=console.width,
        show_locals=bool(format & ExceptionFormat.SHOW_LOCALS),
        suppress=[sys.modules[__package__], asyncio] if format & ExceptionFormat.SUPPRESS_INTERNALS else (),
    ))


__all__ = (
    "FaultCode",
    "CommandException",
    "ConfigurationError",
    "SchemaMismatchError",
    "UnknownCommandError",
    "MissingCommandError",
    "MalformedTokenError",
    "UnknownSwitchError",
    "FlagAssignmentError",
    "DuplicatedSwitchError",
    "MissingValueError",
    "UnexpectedArgumentError",
    "InvalidChoiceError",
    "MissingRequiredError",
    "InvalidValueError",
    "InvalidSettingsError",
    "CommandCancelledError",
    "ServiceResolutionError",
    "ExceptionFormat",
    "render_exception",
)
