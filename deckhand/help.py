"""
Deckhand help and version renderers (rich).

- render_help(console, node, /, *, prog, colorful, fancy): usage line,
  description, commands table, argument and option groups, examples.
- render_version(console, root, /, *, prog, colorful, fancy): "<name> — <version>".

Palette keys can be overridden through a __styles__ mapping in __main__; with
colorful=False every style is dropped.
"""
import sys
from collections import defaultdict

from rich.box import ROUNDED
from rich.console import Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .dispatcher import HELP, VERSION
from .settings import Argument, Flag, Option
from .tree import BranchNode, CommandNode


def _palette(defaults):
    return defaultdict(str, defaults | getattr(sys.modules.get("__main__"), "__styles__", {}))


def _names(spec, text, style):
    shorts = sorted((name for name in spec.names if not name.startswith("--")), key=len)
    longs = sorted((name for name in spec.names if name.startswith("--")), key=len)
    return Text(", ").join(text(name, style) for name in (*shorts, *longs))


def _metavar(spec, text, style):
    if spec.choices:
        metavar = Text.assemble("{", Text(",").join(text(repr(choice), style) for choice in spec.choices), "}")
    else:
        metavar = text(spec.label, style)
    match getattr(spec, "nargs", None):
        case "?":
            return Text.assemble("[", metavar, "]")
        case "*":
            return Text.assemble("[", metavar, " ...]")
        case "+":
            return Text.assemble(metavar, " [", metavar.copy(), " ...]")
    return metavar


def render_help(console, node, /, *, prog="app", colorful=True, fancy=False):
    """
    Print the help page of a command or branch node on console.
    """
    styles = _palette({
        # head
        "usage-label": "bold #00E6FF",
        "program-name": "bold #FF4D94",
        "usage-section": "bold #36C5F0",
        "description-section": "italic #A3A3A3",

        # groups
        "group-label": "bold #FFFFFF",
        "argument-description": "#9CA3AF",
        "option-name": "bold #00E6FF",
        "flag-name": "bold #22C55E",
        "metavar": "bold #FFD600",

        # children table
        "children-title": "bold #FFFFFF",
        "children-table": "#4B5563",
        "children": "bold #36C5F0",
        "children-description": "#9CA3AF",

        # examples
        "examples-label": "bold #22C55E",
        "examples-dot": "#22C55E dim",
        "example": "#E5E7EB",

        # fancy
        "panel-title": "bold #FF4D94",
    })

    def styler(style):
        return styles[style] if colorful else ""

    def text(fragment, style=""):
        if isinstance(fragment, Text):
            return fragment if colorful else Text(fragment.plain)
        return Text(str(fragment), style)

    # A root with a default command takes the default command's inputs.
    target = node
    if node.parent is None and isinstance(node, BranchNode) and node.default is not None:
        target = node.default

    fields = target.settings.__fields__ if isinstance(target, CommandNode) else {}
    arguments = [spec for spec in fields.values() if isinstance(spec, Argument) and not spec.hidden]
    switches = [spec for spec in fields.values() if isinstance(spec, Option | Flag) and not spec.hidden]
    children = node.visible() if isinstance(node, BranchNode) else []
    width = console.width - 4 * fancy

    renders = []

    usage = Text()
    usage.append("usage", styler("usage-label")).append(": ")
    usage.append(text(" ".join((prog, *node.route)), styler("program-name")))
    if children:
        usage.append(" ").append(text("<command>" if node.parent is None else "<subcommand>", styler("usage-section")))
    if switches or not children:
        usage.append(" ").append(text("[options]", styler("usage-section")))
    for spec in arguments:
        usage.append(" ").append(_metavar(spec, text, styler("metavar")))
    renders.append(usage.append("\n"))

    if node.descr or target.descr:
        renders.append(text(node.descr or target.descr, styler("description-section")).append("\n"))

    if children:
        table = Table(
            "name", "help",
            title=text("subcommands" if node.route else "commands", styler("children-title")),
            width=int(width * (2 / 3)) or None,
            box=ROUNDED,
            style=styler("children-table"),
            header_style=styler("children-title"),
        )
        for child in children:
            name = Text(", ").join(text(name, styler("children")) for name in (child.name, *child.aliases))
            if child.descr:
                help = text(child.descr, styler("children-description"))
            else:
                help = Text.assemble(
                    text("no description", styler("children-description")),
                    " — ",
                    text(f"run '{' '.join((prog, *child.route))} --help' for details", styler("examples-label")),
                )
            table.add_row(name, help)
        renders.append(table)

    groups = Text()
    if arguments:
        groups.append(text("arguments", styler("group-label"))).append(":\n")
        for spec in arguments:
            groups.append(_row(_metavar(spec, text, styler("metavar")), spec.descr, text, styler))
    groups.append("\n" * bool(arguments))
    groups.append(text("options", styler("group-label"))).append(":\n")
    helps = Text(", ").join(text(name, styler("flag-name")) for name in HELP)
    groups.append(_row(helps, "Show this help and exit", text, styler))
    if node.parent is None:
        groups.append(_row(text(VERSION, styler("flag-name")), "Show the version and exit", text, styler))
    for spec in switches:
        names = _names(spec, text, styler("option-name" if isinstance(spec, Option) else "flag-name"))
        if isinstance(spec, Option):
            names = Text.assemble(names, " ", _metavar(spec, text, styler("metavar")))
        groups.append(_row(names, spec.descr, text, styler))
    renders.append(groups)

    examples = []
    for candidate in ((target,) if isinstance(target, CommandNode) else ()) + tuple(
        child for child in (node.walk() if isinstance(node, BranchNode) else ())
        if isinstance(child, CommandNode) and not child.hidden and child is not target
    ):
        examples.extend(candidate.examples)
    if examples:
        padding = len(dot := text(" • ", styler("examples-dot")))
        section = Text()
        section.append(text("examples", styler("examples-label"))).append(":\n")
        for example in examples:
            line = text(" ".join((prog, *example)), styler("example"))
            for index, segment in enumerate(line.wrap(console, max(width - padding, 1))):
                section.append(dot.copy() if index == 0 else " " * padding).append(segment).append("\n")
        renders.append(section)

    renders[-1].rstrip()
    renderable = Group(*renders)
    if fancy:
        renderable = Panel(
            renderable,
            title=Text.assemble("[ ", f"{prog} HELP".upper(), " ]", style=styler("panel-title")),
            title_align="left",
        )
    console.print(renderable)


def _row(names, descr, text, styler, *, padding=2, indent=24):
    row = Text(" " * padding).append(names)
    if descr:
        if len(row) >= indent:
            row.append("\n").append(" " * indent)
        else:
            row.append(" " * (indent - len(row)))
        row.append(text(descr, styler("argument-description")))
    return row.append("\n")


def render_version(console, root, /, *, prog="app", colorful=True, fancy=False):
    """
    Print "<name> — <version>" on console.
    """
    styles = _palette({
        "program-name": "bold #FF4D94",
        "program-version": "bold #00E6FF",
        "panel-title": "bold #FF4D94",
    })

    def styler(style):
        return styles[style] if colorful else ""

    renderable = Text(" — ").join((
        Text(prog, styler("program-name")),
        Text(root.application_version or "unknown", styler("program-version")),
    ))
    if fancy:
        renderable = Panel(
            renderable,
            title=Text.assemble("[ ", f"{prog} VERSION".upper(), " ]", style=styler("panel-title")),
            title_align="left",
        )
    console.print(renderable)


__all__ = (
    "render_help",
    "render_version",
)
