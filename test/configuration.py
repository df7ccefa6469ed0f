"""
Configuration context tests (tree building, validation, schema propagation).

Conventions
- Test method names follow CamelCase per project convention.
- Every builder error is a ConfigurationError raised at the call site.
"""
import copy
import unittest
from importlib import metadata
from unittest import TestCase

from deckhand import *

from fixtures import *


class RefinedSettings(VersionSettings):
    extra = Flag("--extra")


class RefinedCommand(Command[RefinedSettings]):
    def execute(self, context, settings, cancellation):
        return 0


class AbstractCommand(Command[CommandSettings]):
    pass


class TestContexts(TestCase):

    def setUp(self):
        self.app = CommandApp()
        self.contexts = []
        self.app.configure(self.contexts.append)
        self.config = self.contexts[0]

    def testRootContextSharesAppAndRegistrar(self):
        self.assertIsInstance(self.config, AppConfig)
        self.assertIs(self.config.app, self.app)
        self.assertIs(self.config.services, self.app.registrar)
        self.assertIs(self.config.cursor, self.app.root)

    def testBuilderCallsReturnNewContexts(self):
        named = self.config.set_application_name("tool")
        command = named.add_command(PlainCommand, "plain")
        described = command.with_description("Plain command")

        self.assertIsNot(named, self.config)
        self.assertEqual(named, self.config)
        self.assertIsInstance(command, CommandConfig)
        self.assertIsNot(described, command)
        for context in (named, command, described):
            self.assertIs(context.app, self.app)
            self.assertIs(context.services, self.app.registrar)

    def testContextsAreImmutable(self):
        with self.assertRaises(AttributeError):
            self.config.cursor = None
        with self.assertRaises(AttributeError):
            del self.config.app

    def testContextsSupportReplace(self):
        other = CommandApp()
        replaced = copy.replace(self.config, app=other)

        self.assertIsInstance(replaced, AppConfig)
        self.assertIs(replaced.app, other)
        self.assertIs(replaced.cursor, self.config.cursor)

    def testDecoratorsAreIdempotentExceptAliasAndExample(self):
        command = self.config.add_command(VersionCommand, "test")
        command.with_description("one").with_description("two").is_hidden().is_hidden()
        command.with_alias("t").with_alias("tt")
        command.with_example("test").with_example("test", "--throw-error")

        node = command.cursor
        self.assertEqual(node.descr, "two")
        self.assertTrue(node.hidden)
        self.assertEqual(node.aliases, ("t", "tt"))
        self.assertEqual(node.examples, (("test",), ("test", "--throw-error")))

    def testBranchDescriptionFromPopulate(self):
        branch = self.config.add_branch("yolo", lambda config: config.set_description("Only once"))

        self.assertIsInstance(branch, BranchConfig)
        self.assertEqual(branch.cursor.descr, "Only once")
        branch.with_alias("y").is_hidden()
        self.assertEqual(self.app.root.find("y").name, "yolo")
        self.assertTrue(branch.cursor.hidden)

    def testApplicationNameAndVersionLastWriteWins(self):
        self.config.set_application_name("one").set_application_name(" two ")
        self.config.set_application_version("1.0").set_application_version("2.0")

        self.assertEqual(self.app.root.application_name, "two")
        self.assertEqual(self.app.root.application_version, "2.0")

    def testUsePackageVersion(self):
        self.config.use_package_version("rich")

        self.assertEqual(self.app.root.application_version, metadata.version("rich"))
        with self.assertRaises(ConfigurationError):
            self.config.use_package_version("surely-not-an-installed-distribution")

    def testDefaultCommandLastWriteWins(self):
        self.config.set_default_command(PlainCommand)
        self.config.set_default_command(VersionCommand)

        self.assertIs(self.app.root.default.command, VersionCommand)
        self.assertIn(VersionCommand, self.app.registrar.services)
        with self.assertRaises(ConfigurationError):
            self.config.set_default_command(PlainCommand).with_alias("p")

    def testAppSettingsSwitches(self):
        console = capture()
        handler = lambda error, app: 0
        (self.config
            .propagate_exceptions()
            .validate_examples()
            .configure_console(console)
            .set_exception_handler(handler)
            .set_exception_format(ExceptionFormat.SHOW_LOCALS))

        settings = self.app.settings
        self.assertTrue(settings.propagate_exceptions)
        self.assertTrue(settings.validate_examples)
        self.assertIs(settings.console, console)
        self.assertIs(settings.exception_handler, handler)
        self.assertEqual(settings.exception_format, ExceptionFormat.SHOW_LOCALS)

    def testAppSettingsValidation(self):
        with self.assertRaises(ConfigurationError):
            self.config.configure_console("stdout")
        with self.assertRaises(ConfigurationError):
            self.config.set_exception_handler("not callable")
        with self.assertRaises(ConfigurationError):
            self.config.set_exception_format(4)


class TestConfigurationErrors(TestCase):

    def setUp(self):
        self.app = CommandApp()
        self.contexts = []
        self.app.configure(self.contexts.append)
        self.config = self.contexts[0]

    def testBlankNamesAreRejected(self):
        for name in ("", "   ", None, 42):
            with self.subTest(name=name):
                with self.assertRaises(ConfigurationError):
                    self.config.add_command(PlainCommand, name)
                with self.assertRaises(ConfigurationError):
                    self.config.add_branch(name, lambda config: None)

    def testNamesAreTrimmed(self):
        self.assertEqual(self.config.add_command(PlainCommand, "  plain ").cursor.name, "plain")

    def testNonCommandsAreRejected(self):
        for command in (object, PlainCommand(Recorder()), AbstractCommand, Command):
            with self.subTest(command=command):
                with self.assertRaises(ConfigurationError):
                    self.config.add_command(command, "bad")
        self.assertEqual(self.app.root.children, ())

    def testMissingPopulateIsRejected(self):
        with self.assertRaises(ConfigurationError):
            self.config.add_branch("yolo", None)
        with self.assertRaises(ConfigurationError):
            self.config.add_branch("yolo")
        with self.assertRaises(ConfigurationError):
            self.config.add_branch("yolo", "not callable")

    def testDuplicateNamesAndAliases(self):
        self.config.add_command(PlainCommand, "plain").with_alias("p")

        with self.assertRaises(ConfigurationError):
            self.config.add_command(VersionCommand, "plain")
        with self.assertRaises(ConfigurationError):
            self.config.add_command(VersionCommand, "p")
        with self.assertRaises(ConfigurationError):
            self.config.add_branch("plain", lambda config: None)
        with self.assertRaises(ConfigurationError):
            self.config.add_command(VersionCommand, "test").with_alias("plain")

    def testFailingPopulateLeavesNoBranch(self):
        def populate(config):
            config.add_command(VersionCommand, "test")
            raise ConfigurationError("populate failed")

        with self.assertRaises(ConfigurationError):
            self.config.add_branch("yolo", populate)
        self.assertIsNone(self.app.root.find("yolo"))
        self.config.add_branch("yolo", lambda config: config.add_command(VersionCommand, "test"))
        self.assertEqual(self.app.root.find("yolo").name, "yolo")

    def testInvalidExampleArguments(self):
        command = self.config.add_command(PlainCommand, "plain")

        with self.assertRaises(ConfigurationError):
            command.with_example("plain", 1)

    def testConfigureNeedsCallable(self):
        with self.assertRaises(ConfigurationError):
            self.app.configure(None)


class TestSchemaPropagation(TestCase):

    def setUp(self):
        self.app = CommandApp()
        self.contexts = []
        self.app.configure(self.contexts.append)
        self.config = self.contexts[0]

    def testRootAcceptsAnySchema(self):
        self.config.add_command(VersionCommand, "test")
        self.config.add_command(PlainCommand, "plain")

    def testBranchAcceptsSameAndRefinedSchemas(self):
        def populate(config):
            self.assertIs(config.settings, VersionSettings)
            config.add_command(VersionCommand, "test")
            config.add_command(RefinedCommand, "refined")
            config.add_branch("nested", lambda nested: nested.add_command(RefinedCommand, "deep"), RefinedSettings)

        self.config.add_branch("yolo", populate, VersionSettings)
        self.assertEqual([child.name for child in self.app.root.find("yolo").children], ["test", "refined", "nested"])

    def testBranchRejectsWiderCommandSchema(self):
        with self.assertRaises(SchemaMismatchError) as context:
            self.config.add_branch("yolo", lambda config: config.add_command(PlainCommand, "plain"), VersionSettings)

        self.assertIs(context.exception.options["expected"], VersionSettings)
        self.assertIsNone(self.app.root.find("yolo"))

    def testBranchRejectsUnrelatedBranchSchema(self):
        with self.assertRaises(SchemaMismatchError):
            self.config.add_branch(
                "yolo",
                lambda config: config.add_branch("nested", lambda nested: None, OtherSettings),
                VersionSettings,
            )

    def testBranchInheritsCursorSchemaByDefault(self):
        def populate(config):
            config.add_branch("nested", lambda nested: nested.add_command(VersionCommand, "test"))

        self.config.add_branch("yolo", populate, VersionSettings)
        self.assertIs(self.app.root.find("yolo").find("nested").settings, VersionSettings)

    def testSchemaMismatchIsConfigurationError(self):
        self.assertTrue(issubclass(SchemaMismatchError, ConfigurationError))

    def testSettingsMustBeSchema(self):
        with self.assertRaises(ConfigurationError):
            self.config.add_branch("yolo", lambda config: None, dict)


class TestRegistration(TestCase):

    def testAddIfAbsentKeepsExistingRegistration(self):
        services = ServiceCollection()
        services.add_singleton(PlainCommand)
        app = CommandApp.from_services(services)
        app.configure(lambda config: config.add_command(PlainCommand, "plain"))

        self.assertIs(services.get(PlainCommand).lifetime, Lifetime.SINGLETON)

    def testCommandsRegisteredAsTransient(self):
        services = ServiceCollection()
        app = CommandApp.from_services(services)
        app.configure(lambda config: (
            config.add_command(PlainCommand, "one"),
            config.add_command(PlainCommand, "two"),
            config.add_branch("yolo", lambda branch: branch.add_command(PlainCommand, "three")),
        ))

        self.assertEqual(len(services), 1)
        self.assertIs(services.get(PlainCommand).lifetime, Lifetime.TRANSIENT)


if __name__ == "__main__":
    unittest.main()
