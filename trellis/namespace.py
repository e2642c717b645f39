"""
Trellis namespace: the result of a parse run.

Overview
- Namespace holds four things:
  • command: the command name ("" when the cli declares no commands or none was given)
  • opts: option values keyed by long name (scalars, or lists for array options)
  • args: positional values keyed by declared arg name, or by position when unnamed
  • meta: invocation metadata (path, filename, dispatch information...)

- The tokenizer fills a raw namespace token by token; the validator builds a second,
  typed namespace from it. Re-validating a valid namespace yields an equal one.

Access
    >>> ns = Namespace("push", {"force": True}, {"repo": "origin"})
    >>> ns.get_opt("force"), ns["force"], "force" in ns
    (True, True, True)
    >>> ns.get_arg("repo"), ns.get_arg(0)
    ('origin', 'origin')
    >>> ns.to_dict()["command"]
    'push'
"""
import copy
import json

from .utils import *


class Namespace:
    """
    Mutable parse result (command, opts, args, meta).

    Positional args keep their insertion order. get_arg() accepts a name or a
    zero-based index; an integer index falls back to the n-th value when no arg
    is stored under that exact key.
    """

    __slots__ = ("command", "_opts", "_args", "_meta")

    def __init__(self, command="", opts=Unset, args=Unset, /):
        if not isinstance(command, str):
            raise TypeError("command must be a string")
        self.command = command
        self._opts = dict(coalesce(opts, {}))
        self._args = dict(coalesce(args, {}))
        self._meta = {}

    opts = mirror("opts")
    args = mirror("args")
    meta = mirror("meta")

    # --- options ---

    def get_opt(self, name, default=None, /):
        """
        Return the value of an option, or `default` when it is absent.
        """
        return self._opts.get(name, default)

    def set_opt(self, name, value, /):
        self._opts[name] = value
        return self

    def has_opt(self, name, /):
        return name in self._opts

    def del_opt(self, name, /):
        self._opts.pop(name, None)
        return self

    def push_opt(self, name, value, /):
        """
        Add a value for an option, accumulating repeated occurrences into a list.
        """
        if name in self._opts:
            previous = self._opts[name]
            self._opts[name] = [*(previous if isinstance(previous, list) else [previous]), value]
        else:
            self._opts[name] = value
        return self

    def __getitem__(self, name):
        return self._opts.get(name)

    def __setitem__(self, name, value):
        self._opts[name] = value

    def __delitem__(self, name):
        self._opts.pop(name, None)

    def __contains__(self, name):
        return self._opts.get(name) is not None

    # --- positional args ---

    def add_arg(self, value, name=None, /):
        """
        Append a positional value, under `name` when given, else under its position.
        """
        self._args[len(self._args) if name is None else name] = value
        return self

    def get_arg(self, index, default=None, /):
        if index in self._args:
            return self._args[index]
        if isinstance(index, int) and not isinstance(index, bool):
            values = list(self._args.values())
            if -len(values) <= index < len(values):
                return values[index]
        return default

    def set_arg(self, index, value, /):
        self._args[index] = value
        return self

    def has_arg(self, index, /):
        if isinstance(index, str):
            return self._args.get(index) is not None
        return index < len(self._args)

    # --- metadata ---

    def get_meta(self, name, default=None, /):
        return self._meta.get(name, default)

    def set_meta(self, name, value, /):
        self._meta[name] = value
        return self

    # --- whole-object helpers ---

    def to_dict(self):
        """
        Plain nested mapping: {"command", "opts", "args", "meta"}.
        """
        return {
            "command": self.command,
            "opts": self.opts,
            "args": self.args,
            "meta": self.meta,
        }

    def to_json(self, **options):
        return json.dumps(self.to_dict(), default=str, **options)

    def copy(self):
        result = type(self)(self.command, copy.deepcopy(self._opts), copy.deepcopy(self._args))
        result._meta = copy.deepcopy(self._meta)
        return result

    __copy__ = copy

    def __eq__(self, other):
        if not isinstance(other, Namespace):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    __hash__ = None

    def __repr__(self):
        return f"namespace(command={self.command!r}, opts={self._opts!r}, args={self._args!r})"

    def __rich_repr__(self):
        yield "command", self.command
        yield "opts", self.opts
        yield "args", self.args
        yield "meta", self.meta


__all__ = (
    "Namespace",
)
