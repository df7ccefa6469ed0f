"""
Shared commands, services and helpers for the deckhand test-suite.

Nothing here is collected as a test; modules import what they need.
"""
import io

from rich.console import Console

from deckhand import *


def capture():
    """
    A plain-text console writing into memory (read it back with output()).
    """
    return Console(file=io.StringIO(), color_system=None, width=100, force_terminal=False)


def output(console):
    return console.file.getvalue()


class VersionSettings(CommandSettings):
    test_version = Option("--test-version", default="", descr="Version to compare with the service version")
    throw_error = Flag("--throw-error", descr="Fail on purpose")


class OtherSettings(CommandSettings):
    name = Option("--name", descr="Unrelated option")


class VersionService:
    def __init__(self, version="1.0.0.0"):
        self.version = version


class Recorder:
    """
    Counts constructions and executions of the commands below.
    """

    def __init__(self):
        self.created = []
        self.executed = []

    def close(self):
        raise AssertionError("caller-provided instances must never be closed by the container")


class Resource:
    """
    Disposable with a close counter.
    """

    def __init__(self):
        self.closed = 0

    def close(self):
        self.closed += 1


class VersionCommand(Command[VersionSettings]):
    def __init__(self, service: VersionService, recorder: Recorder):
        self.service = service
        self.recorder = recorder
        recorder.created.append(self)

    def execute(self, context, settings, cancellation):
        self.recorder.executed.append((context, settings))
        if settings.throw_error:
            raise RuntimeError("thrown on request")
        return 0 if settings.test_version == self.service.version else 1


class PlainCommand(Command[CommandSettings]):
    def __init__(self, recorder: Recorder):
        self.recorder = recorder
        recorder.created.append(self)

    def execute(self, context, settings, cancellation):
        self.recorder.executed.append((context, settings))
        return 0


class ResourceCommand(Command):
    def __init__(self, resource: Resource, recorder: Recorder):
        self.resource = resource
        self.recorder = recorder
        recorder.created.append(self)

    def execute(self, context, settings, cancellation):
        self.recorder.executed.append((context, settings))
        return 0


class SleepyCommand(AsyncCommand[CommandSettings]):
    def __init__(self, recorder: Recorder):
        self.recorder = recorder
        recorder.created.append(self)

    async def execute(self, context, settings, cancellation):
        self.recorder.executed.append((context, settings))
        return 7


def build(setup=None, /, *, version="1.0.0.0", console=None):
    """
    Return (app, recorder, console) with VersionService and Recorder registered.
    """
    recorder = Recorder()
    console = console or capture()
    services = ServiceCollection()
    services.add_singleton(VersionService, factory=lambda scope: VersionService(version))
    services.add_singleton(Recorder, instance=recorder)
    app = CommandApp.from_services(services)
    app.configure(lambda config: config.set_application_name("tool").configure_console(console))
    if setup is not None:
        app.configure(setup)
    return app, recorder, console
