"""
Trellis cli: the parse entry point on top of the registry.

Overview
- Cli is a Registry that can parse. Define schemas with the builder calls, then call
  parse(argv) to get a validated Namespace.

Outcomes of parse(argv, exit=...)
- success: the validated Namespace is returned; nothing is printed.
- commands declared but none given: usage + command list (help outcome).
- --help / -?: usage + help for the resolved schema (help outcome).
- validation faults: the error lines of the whole batch.

  In exit mode the text is printed to standard output through rich and the process
  exits (status 0 for help, 1 for faults). Otherwise CommandHelp / CommandExit is
  raised with the plain, uncolored text in `output`.

Example
    >>> cli = Cli().opt("hello:h", "Hello world.", True)
    >>> cli.parse(["script", "-hworld"], exit=False).get_opt("hello")
    'world'
"""
import copy
import io
import sys

from rich.console import Console, Group

from . import helper
from .faults import *
from .faults import console
from .parser import coerce, tokenize, validate
from .registry import Registry
from .schema import ValueType
from .utils import *


def render(renderable, /, width=80):
    """
    Render a rich renderable to plain text (no colors, trailing spaces stripped).
    """
    buffer = io.StringIO()
    Console(file=buffer, color_system=None, width=width, force_terminal=False, highlight=False).print(renderable)
    return "\n".join(line.rstrip() for line in buffer.getvalue().splitlines()).strip()


def _wants_help(namespace):
    """
    Tell whether --help or -? was given a true value. "--help=0" falls through to validation.
    """
    for name in ("help", "?"):
        try:
            if coerce(namespace.get_opt(name), ValueType.BOOLEAN):
                return True
        except ValueError:
            return True
    return False


class Cli(Registry):
    """
    Registry plus parse().

    Options
    - colorful: apply the palette when printing (defaults to whether standard output
      is a terminal). Captured output is never colored.
    """

    def __init__(self, *, colorful=Unset):
        super().__init__()
        self.colorful = bool(coalesce(colorful, console.is_terminal))

    def parse(self, argv=Unset, /, exit=True):
        """
        Parse and validate an argument vector (defaults to sys.argv).

        Raises
        - CommandHelp / CommandExit when exit is False and no result is produced.
        - SystemExit when exit is True and no result is produced.
        - TypeError when argv is not a sequence of strings.
        """
        namespace = tokenize(self, coalesce(argv, sys.argv))
        colorful = self.colorful and exit

        if self.has_command() and not namespace.command:
            renderable = Group(
                helper.usage(self, namespace, colorful=colorful),
                helper.commands(self, colorful=colorful),
            )
            fault = CommandHelp(render(renderable), code=FaultCode.HELP_REQUESTED)
        elif _wants_help(namespace):
            renderable = Group(
                helper.usage(self, namespace, colorful=colorful),
                helper.help(self.get_schema(namespace.command), colorful=colorful),
            )
            fault = CommandHelp(render(renderable), code=FaultCode.HELP_REQUESTED)
        else:
            try:
                return validate(self, namespace)
            except CommandExit as exception:
                renderable = helper.errors(exception, colorful=colorful)
                fault = copy.replace(exception, output=render(renderable))

        self.trigger(fault, renderable=renderable, shell=exit, colorful=colorful)

    def trigger(self, fault, /, **options):
        """
        Surface a help or fault outcome (print and exit in shell mode, else raise).
        """
        trigger(fault, **options)


__all__ = (
    "Cli",
    "render",
)
