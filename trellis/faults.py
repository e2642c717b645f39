"""
Trellis faults (configuration errors, validation faults, exits) and rendering.

Scope
- InvalidSchemaError: programmer-facing configuration error raised while a schema
  is being defined (never collected with user input errors).
- FaultCode: canonical, stable numeric identifiers for every user-facing fault.
- CommandException: base type for validation faults; carries the exact message
  plus options and knows how to render itself with rich.
- CommandExit / CommandHelp: the two ways a parse run stops without a result
  (a batch of faults, or a help request). Both know whether to print-and-exit
  (shell mode) or raise to the caller.
- trigger(): central entry point to surface any exit with runtime options.

Message contract
- Messages are fixed strings; hosts and tests match them verbatim:
  • "The value of --{name} (-{short}) is not a valid {type}."
  • "Missing required option: {name}"
  • "Missing required arg: {name}"
  • "Invalid option: {name}"
  • "Invalid command: {name}."

Integration
- The validator collects faults for a whole run, then raises one CommandExit whose
  exceptions keep the deterministic order of detection.
- The cli layer renders the usage/help/errors into `output` and calls trigger().
"""
import copy
import sys
from enum import IntEnum
from types import MappingProxyType

from rich.console import Console
from rich.text import Text

from .utils import Unset

console = Console()


class InvalidSchemaError(ValueError):
    """
    raised when a schema definition is malformed (bad type string, empty name...).

    this is a configuration error: it signals a bug in the program defining the
    cli, so it aborts the definition immediately instead of being batched.
    """


class FaultCode(IntEnum):
    """
    numeric identifier of every fault a parse run can report.

    ranges
    - routing (1110x)
      • INVALID_COMMAND
    - options (1111x)
      • INVALID_OPTION, NEGATED_OPTION, INVALID_VALUE, MISSING_OPTION
    - positionals (1112x)
      • MISSING_ARG
    - outcomes (1190x)
      • HELP_REQUESTED

    codes never change once published; normalize() lets a host relabel them.
    """
    # --- routing errors (11xxx) ---
    INVALID_COMMAND = 11101

    # --- option errors (11xxx) ---
    INVALID_OPTION  = 11111
    NEGATED_OPTION  = 11112
    INVALID_VALUE   = 11113
    MISSING_OPTION  = 11114

    # --- positional errors (11xxx) ---
    MISSING_ARG     = 11121

    # --- outcomes (11xxx) ---
    HELP_REQUESTED  = 11901

    def normalize(self):
        """
        the code as a string, or its label from `__main__.__codes__` when one is set.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


class CommandException(Exception):
    """
    a single validation fault.

    - message: the exact user-facing line (also what str() returns).
    - options: read-only mapping of context (code, title, input, colorful...).
    """

    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        super().__init__(message)
        self.message = message
        self.options = MappingProxyType(options)

    def __str__(self):
        return str(self.message)

    def __rich__(self):
        return Text(str(self.message))

    def __replace__(self, *unused, **overrides):
        assert not unused, "replace() takes keyword overrides only"
        return type(self)(self.message, **{**self.options, **overrides})


class InvalidCommandError(CommandException): ...
class InvalidOptionError(CommandException): ...
class NegatedOptionError(CommandException): ...
class InvalidValueError(CommandException): ...
class MissingOptionError(CommandException): ...
class MissingArgError(CommandException): ...


class CommandExit(ExceptionGroup[CommandException]):
    """
    the batch of faults found in one validation run.

    exceptions keep detection order: command check, value checks, missing options,
    missing args, unknown options. `output` holds the rendered text once the cli
    has prepared it (usage and error lines).
    """

    def __new__(cls, exceptions, **options):
        return super().__new__(cls, "bad exit", exceptions)

    def __init__(self, exceptions, **options):
        super().__init__("bad exit", tuple(exceptions))
        self.options = MappingProxyType(options)

    @property
    def messages(self):
        return [exception.message for exception in self.exceptions]

    @property
    def output(self):
        return self.options.get("output", "\n".join(self.messages))

    def __str__(self):
        return self.output

    def derive(self, exceptions):
        return type(self)(exceptions, **self.options)

    def __rich__(self):
        from .helper import errors
        return errors(self, colorful=self.options.get("colorful", False))

    def __trigger__(self) -> None:
        if not self.options.get("shell", False):
            raise self from None
        console.print(self.options.get("renderable", self), highlight=False)
        sys.exit(1)

    def __replace__(self, *unused, **overrides):
        assert not unused, "replace() takes keyword overrides only"
        return type(self)(self.exceptions, **{**self.options, **overrides})


class CommandHelp(Exception):
    """
    help outcome: not an error, but a parse run that returns no result.

    raised (non-shell mode) carrying the rendered help text in `output`;
    in shell mode the help is printed and the process exits with status 0.
    """

    def __init__(self, output="", /, **options):
        super().__init__(output)
        self.output = output
        self.options = MappingProxyType(options)

    def __str__(self):
        return self.output

    def __trigger__(self) -> None:
        if not self.options.get("shell", False):
            raise self from None
        console.print(self.options.get("renderable", self.output), highlight=False)
        sys.exit(0)

    def __replace__(self, *unused, **overrides):
        assert not unused, "replace() takes keyword overrides only"
        return type(self)(self.output, **{**self.options, **overrides})


def trigger(fault, /, **options):
    """
    apply `options` to a parse outcome (CommandExit or CommandHelp), then fire it.

    with shell=True the outcome prints and exits; otherwise it is raised.
    """
    if not all(callable(getattr(fault, hook, None)) for hook in ("__trigger__", "__replace__")):
        raise TypeError(f"cannot trigger {type(fault).__name__!r} object")
    copy.replace(fault, **options).__trigger__()


__all__ = (
    "InvalidSchemaError",
    "FaultCode",
    "CommandException",
    "InvalidCommandError",
    "InvalidOptionError",
    "NegatedOptionError",
    "InvalidValueError",
    "MissingOptionError",
    "MissingArgError",
    "CommandExit",
    "CommandHelp",
    "trigger",
)
