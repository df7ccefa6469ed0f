import logging
import sys

from deckhand import *


class VersionSettings(CommandSettings):
    test_version = Option("--test-version", default="", descr="Version to compare with the service version")
    throw_error = Flag("--throw-error", descr="Fail on purpose to exercise the fault path")


class VersionService:
    version = "1.0.0.0"


class VersionCommand(Command[VersionSettings]):
    """Compare --test-version with the version reported by VersionService."""

    def __init__(self, service: VersionService, logger: logging.Logger):
        self.service = service
        self.logger = logger

    def execute(self, context, settings, cancellation):
        if settings.throw_error:
            raise RuntimeError("thrown on request")
        self.logger.info("comparing %r with %r", settings.test_version, self.service.version)
        return 0 if settings.test_version == self.service.version else 1


def yolo(config):
    config.set_description("Things you only do once.")
    config.add_command(VersionCommand, "test").with_description("Compare versions from a branch")


program = Program(
    add_services=[lambda services: services.add_singleton(VersionService)],
    configure_app=[
        lambda config: (
            config.set_application_name("deckhand-demo")
                  .set_application_version(__version__)
        ),
        lambda config: (
            config.add_command(VersionCommand, "test")
                  .with_alias("t")
                  .with_description("Compare versions")
                  .with_example("test", "--test-version=1.0.0.0")
        ),
        lambda config: config.add_branch("yolo", yolo, VersionSettings),
    ],
    level=logging.INFO,
)


if __name__ == '__main__':
    sys.exit(program.main())
