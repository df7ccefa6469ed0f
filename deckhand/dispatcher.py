r"""
Deckhand dispatcher: resolve an argument vector against a command tree.

Outcomes of Dispatcher.resolve(tokens)
- Resolution(node, settings, context): a command node with its settings bound.
- ShowHelp(node): -h/--help was present before "--"; node is the deepest
  command or branch reached.
- ShowVersion(root): the sole token was --version.
- otherwise a CommandException subclass is raised (UnknownCommandError,
  MissingCommandError or one of the parse faults).

Grammar
- Routing: leading non-switch tokens select branches and commands by name or alias.
- Switches: "--name=value", "--name value", "-n value"; flags are presence-only.
  Names follow the shape r"--?[^\W\d_](-?[^\W_]+)*".
- Positionals: bound to Argument specs in declaration order; a variadic
  argument ("*"/"+") takes every remaining positional.
- "--" ends parsing; everything after it lands in context.remaining.
- Tokens such as "-", "-5" or "-0.5" are positionals, not switches.

Default command
- When the root has a default command and the first token names no root
  command, every token is bound to the default command.

Messages are position-first ("at third position") and carry one hint.
"""
import difflib
import logging
import re
from collections import deque

from .commands import CommandContext
from .faults import *
from .settings import Flag, Option
from .tree import BranchNode, CommandNode
from .utils import *

LOG = logging.getLogger(__name__)

HELP = ("-h", "--help")
VERSION = "--version"


class Resolution:
    """
    A matched command node together with its bound settings and invocation context.
    """
    __slots__ = ("node", "settings", "context")

    def __init__(self, node, settings, context):
        self.node = node
        self.settings = settings
        self.context = context

    def __repr__(self):
        return "resolution(node=%r, settings=%r)" % (self.node.name, self.settings)


class ShowHelp:
    __slots__ = ("node",)

    def __init__(self, node):
        self.node = node

    def __repr__(self):
        return "show-help(route=%r)" % (self.node.route,)


class ShowVersion:
    __slots__ = ("root",)

    def __init__(self, root):
        self.root = root

    def __repr__(self):
        return "show-version()"


def _is_switch(token):
    return len(token) > 1 and token.startswith("-") and not re.fullmatch(r"-\d+(\.\d*)?", token)


class Dispatcher:
    """
    Stateless resolver over a configured RootNode; safe to share between runs.
    """

    def __init__(self, root):
        self._root = root

    @property
    def root(self):
        return self._root

    def _route(self, node):
        return " ".join((self._root.application_name or "app", *node.route))

    def resolve(self, tokens):
        tokens = list(tokens)
        if not all(isinstance(token, str) for token in tokens):
            raise TypeError("resolve() tokens must be strings")

        try:
            split = tokens.index("--")
        except ValueError:
            head, remaining = tokens, []
        else:
            head, remaining = tokens[:split], tokens[split + 1:]

        if head == [VERSION]:
            return ShowVersion(self._root)

        queue = deque(head)
        index = 1
        node = self._root
        while isinstance(node, BranchNode) and queue and not _is_switch(queue[0]):
            if (child := node.find(queue[0])) is None:
                break
            queue.popleft()
            index += 1
            node = child

        if any(token in HELP for token in head):
            return ShowHelp(node)

        if isinstance(node, BranchNode):
            if node is self._root and self._root.default is not None:
                node = self._root.default
            elif queue and not _is_switch(queue[0]):
                raise self._unknown(node, queue[0], index)
            else:
                raise self._missing(node, index)

        LOG.debug("resolved %r to %s", tokens, self._route(node))
        settings = self._bind(node, queue, index)
        context = CommandContext(node.name, node.route, tokens, remaining, node.data)
        return Resolution(node, settings, context)

    def _unknown(self, node, token, index):
        typeof = "subcommand" if node.route else "command"
        names = [name for child in node.visible() for name in (child.name, *child.aliases)]
        suggestions = difflib.get_close_matches(token, names, 5)
        try:
            hint = "did you mean %r? you can also run '%s --help' to see available %ss" % (
                suggestions[0], self._route(node), typeof
            )
        except IndexError:
            hint = "run '%s --help' to see available %ss" % (self._route(node), typeof)
        return UnknownCommandError(
            "unknown %s %r at %s position" % (typeof, token, ordinal(index)),
            title="unknown %s" % typeof,
            code=FaultCode.UNKNOWN_SUBCOMMAND if node.route else FaultCode.UNKNOWN_COMMAND,
            input=token,
            index=index,
            suggestions=suggestions,
            hint=hint,
        )

    def _missing(self, node, index):
        typeof = "subcommand" if node.route else "command"
        return MissingCommandError(
            "expected a %s at %s position" % (typeof, ordinal(index)),
            index=index,
            hint="run '%s --help' to see available %ss" % (self._route(node), typeof),
        )

    def _bind(self, node, queue, index):
        """
        Bind the leftover tokens to the node's settings schema and validate the result.
        """
        schema = node.settings
        fields = schema.__fields__
        switches = schema.__switches__
        positionals = deque(schema.__arguments__)
        values = {}

        while queue:
            token = queue.popleft()
            start = index
            index += 1

            if not _is_switch(token):
                try:
                    attribute = positionals[0]
                except IndexError:
                    raise UnexpectedArgumentError(
                        "unexpected argument %r at %s position" % (token, ordinal(start)),
                        input=token,
                        index=start,
                        hint="remove this extra value or run '%s --help' to see the expected usage" % self._route(node),
                    ) from None
                spec = fields[attribute]
                value = self._convert(node, spec, spec.label, token, start)
                if spec.variadic:
                    values.setdefault(attribute, []).append(value)
                else:
                    values[attribute] = value
                    positionals.popleft()
                continue

            match = re.fullmatch(r"(?P<input>--?[^\W\d_](-?[^\W_]+)*)(=(?P<value>[^\r\n]*))?", token)
            if not match:
                raise MalformedTokenError(
                    "bad form of option or flag %r at %s position" % (token, ordinal(start)),
                    input=token,
                    index=start,
                    hint="try '%s --help' to see valid spellings and forms (e.g., --name=value)" % self._route(node),
                )
            input, value = match["input"], match["value"]

            try:
                attribute = switches[input]
            except KeyError:
                suggestions = difflib.get_close_matches(input, [*switches, *HELP], 5)
                try:
                    hint = "did you mean %r? you can also run '%s --help' to see all options" % (
                        suggestions[0], self._route(node)
                    )
                except IndexError:
                    hint = "try '%s --help' to see all available options" % self._route(node)
                raise UnknownSwitchError(
                    "unknown option or flag %r at %s position" % (input, ordinal(start)),
                    input=input,
                    index=start,
                    suggestions=suggestions,
                    hint=hint,
                ) from None
            spec = fields[attribute]

            if isinstance(spec, Flag):
                if value is not None:
                    raise FlagAssignmentError(
                        "flag %r at %s position cannot have an inline value" % (input, ordinal(start)),
                        input=input,
                        index=start,
                        hint="remove everything from '=' (for example: %s)" % input,
                    )
                values[attribute] = True
                continue

            if value is None:
                if not queue or _is_switch(queue[0]) or queue[0] == "--":
                    raise MissingValueError(
                        "option %r at %s position expects a value" % (input, ordinal(start)),
                        input=input,
                        index=start,
                        hint="pass it as %s=%s or %s %s" % (input, spec.label, input, spec.label),
                    )
                value = queue.popleft()
                index += 1
            value = self._convert(node, spec, input, value, start)

            if spec.multiple:
                values.setdefault(attribute, []).append(value)
            elif attribute in values:
                raise DuplicatedSwitchError(
                    "option %r at %s position was already given" % (input, ordinal(start)),
                    input=input,
                    index=start,
                    hint="pass %s only once" % input,
                )
            else:
                values[attribute] = value

        for attribute, spec in fields.items():
            if isinstance(spec, Option) and spec.required and attribute not in values:
                raise MissingRequiredError(
                    "missing required option %s" % " | ".join(spec.names),
                    input=spec.names[0],
                    hint="pass it as %s=%s" % (spec.names[-1], spec.label),
                )
        for attribute in positionals:
            spec = fields[attribute]
            if spec.required and attribute not in values:
                raise MissingRequiredError(
                    "missing required argument %s at %s position" % (spec.label, ordinal(index)),
                    input=spec.label,
                    index=index,
                    hint="run '%s --help' to see the expected usage" % self._route(node),
                )

        settings = schema(**values)
        settings.validate()
        return settings

    def _convert(self, node, spec, input, raw, index):
        try:
            value = spec.type(raw)
        except (TypeError, ValueError) as error:
            raise InvalidValueError(
                "invalid value %r for %s at %s position" % (raw, input, ordinal(index)),
                input=input,
                index=index,
                hint="%s expects a %s" % (input, getattr(spec.type, "__name__", "valid value")),
            ) from error
        if spec.choices and value not in spec.choices:
            raise InvalidChoiceError(
                "invalid choice %r for %s at %s position" % (raw, input, ordinal(index)),
                input=input,
                index=index,
                choices=spec.choices,
                hint="choose one of %s (see '%s --help')" % (", ".join(map(repr, spec.choices)), self._route(node)),
            )
        return value


def examples_of(root):
    """
    Yield (node, example) for every example recorded in the tree.
    """
    for node in root.walk():
        if isinstance(node, CommandNode):
            for example in node.examples:
                yield node, example


__all__ = (
    "Dispatcher",
    "Resolution",
    "ShowHelp",
    "ShowVersion",
    "examples_of",
)
