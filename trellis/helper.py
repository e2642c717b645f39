"""
Trellis help renderer: usage line, command list, schema help, error batch.

Every function returns a rich renderable; nothing is printed here. The cli layer
decides whether to print to the terminal or capture plain text.

Layout (plain text form)
    usage: script [<command>] [<options>] [<args>]

    Description paragraph.

    OPTIONS
      --count, -c      The count of things.
      --help, -?       Display this help.

    ARGUMENTS
      repo   The repository.

Palette keys
- usage-label, program-name, section-label, description
- option-name, required-name, option-description
- command-name, command-description
- error-message

Customization
- Define a mapping named __styles__ in __main__ to override any palette entry.
- When colorful is False, no style is applied at all.
"""
from collections import defaultdict

from rich.console import Group
from rich.padding import Padding
from rich.table import Table
from rich.text import Text

from .registry import ArgsRequirement
from .schema import Opt

# Column layout shared by the option, argument and command tables.
INDENT = 2
GUTTER = 3

_HELP = Opt("help:?", "Display this help.", type="boolean")


def _palette(colorful):
    styles = defaultdict(str, {
        "usage-label": "bold",
        "program-name": "bold #00E6FF",
        "section-label": "bold",
        "description": "italic #A3A3A3",

        "option-name": "#36C5F0",
        "required-name": "bold #36C5F0",
        "option-description": "",

        "command-name": "bold #22C55E",
        "command-description": "",

        "error-message": "bold red",
    } | getattr(__import__("__main__"), "__styles__", {}))

    def styler(style):
        return styles[style] if colorful else ""

    def text(fragment, style=""):
        return Text(str(fragment), styler(style))

    return styler, text


def _grid(rows):
    """
    Two-column borderless table, indented, with a fixed gutter between columns.
    """
    table = Table.grid(padding=(0, GUTTER))
    table.add_column(no_wrap=True)
    table.add_column()
    for row in rows:
        table.add_row(*row)
    return Padding(table, (0, 0, 0, INDENT))


def usage(registry, namespace, /, colorful=False):
    """
    Usage line for a namespace, followed by a blank line.

    "usage: {filename}" then " {command}" when the given command is registered,
    else " <command>" when commands exist; " [<options>]" when options apply;
    " <args>" when every arg is required, else " [<args>]" when any exist.
    Nothing is rendered when the namespace carries no filename.
    """
    _, text = _palette(colorful)
    command = namespace.command

    if not (filename := namespace.get_meta("filename")):
        return Group()

    line = Text()
    line.append(text("usage:", "usage-label")).append(" ")
    line.append(text(filename, "program-name"))

    if registry.has_command():
        if command and registry.has_command(command):
            line.append(" ").append(command)
        else:
            line.append(" <command>")

    if registry.has_options(command):
        line.append(" [<options>]")

    match registry.has_args(command):
        case ArgsRequirement.REQUIRED:
            line.append(" <args>")
        case ArgsRequirement.OPTIONAL:
            line.append(" [<args>]")

    return line.append("\n")


def commands(registry, /, colorful=False):
    """
    COMMANDS heading and one row per registered command with its description.
    """
    _, text = _palette(colorful)
    rows = [
        (text(name, "command-name"), text(schema.description, "command-description"))
        for name, schema in registry.commands()
    ]
    return Group(text("COMMANDS", "section-label"), _grid(rows))


def help(schema, /, colorful=False):
    """
    Help for a resolved schema: description, OPTIONS (with the implicit help row),
    and ARGUMENTS when the schema declares any. Required names are emphasized.
    """
    _, text = _palette(colorful)
    renders = []

    if schema.description:
        renders.append(text(schema.description, "description").append("\n"))

    opts = schema.opts | {_HELP.name: _HELP}
    rows = []
    for name in sorted(opts):
        opt = opts[name]
        names = f"--{opt.name}" + (f", -{opt.short}" if opt.short else "")
        rows.append((
            text(names, "required-name" if opt.required else "option-name"),
            text(opt.descr, "option-description"),
        ))
    renders.append(text("OPTIONS", "section-label"))
    renders.append(_grid(rows))
    renders.append(Text())

    if schema.args:
        rows = [
            (text(arg.name, "required-name" if arg.required else "option-name"), text(arg.descr, "option-description"))
            for arg in schema.args
        ]
        renders.append(text("ARGUMENTS", "section-label"))
        renders.append(_grid(rows))
        renders.append(Text())

    return Group(*renders)


def errors(exit, /, colorful=False):
    """
    One line per fault message, in batch order.
    """
    _, text = _palette(colorful)
    return Text("\n").join(text(message, "error-message") for message in exit.messages)


__all__ = (
    "usage",
    "commands",
    "help",
    "errors",
)
