"""
Trellis registry: command schemas keyed by name pattern, and the fluent builder.

Overview
- A registry owns one CommandSchema per command pattern. The "*" wildcard schema
  always exists; its options and args apply to every command.
- Builder calls (opt/arg/description/meta/schema) target the "current" pattern,
  selected with command(). Each call swaps in a new immutable schema.
- get_schema(name) merges every schema whose pattern matches the name: glob
  patterns first, exact names last, each group in registration order, so the
  most specific definition wins collisions.

Example
    >>> registry = (
    ...     Registry()
    ...     .opt("verbose:v", "Verbosity.", type="integer")
    ...     .command("push").description("Push changes.")
    ...     .opt("force:f", "Force the push.", type="boolean")
    ...     .arg("repo", "The repository.", required=True)
    ... )
    >>> sorted(registry.get_schema("push").opts)
    ['force', 'verbose']
"""
import copy
from collections.abc import Mapping
from enum import IntEnum

from .faults import InvalidSchemaError
from .schema import *
from .utils import *


class ArgsRequirement(IntEnum):
    """
    how positional args show up in a usage line.
    """
    NONE = 0
    OPTIONAL = 1
    REQUIRED = 2


_SHORT_TYPES = {
    "s": ValueType.STRING,
    "i": ValueType.INTEGER,
    "b": ValueType.BOOLEAN,
}


def _parse_short_form(definition, extra=Unset, /):
    """
    Internal: decode "type:name[:short][?]" into Opt keyword material.

    - A trailing "?" marks the option optional; everything else is required.
    - A bare "name" is a string option.
    - `extra` is either a description string or a mapping of overrides
      (description, required, type, short).
    """
    if not isinstance(definition, str):
        raise InvalidSchemaError(f"schema entry {definition!r} is not a valid option definition")

    required = not definition.endswith("?")
    definition = definition.removesuffix("?")

    parts = definition.split(":")
    type = ValueType.STRING
    short = ""
    if len(parts) == 1:
        name, = parts
    else:
        try:
            type = _SHORT_TYPES[parts[0]]
        except KeyError:
            raise InvalidSchemaError(f"Invalid type {parts[0]} for field {parts[1]}.") from None
        name = parts[1]
        if len(parts) > 2:
            short = parts[2]

    descr = ""
    match coalesce(extra, ""):
        case str() as text:
            descr = text
        case Mapping() as overrides:
            descr = overrides.get("description", descr)
            required = overrides.get("required", required)
            type = overrides.get("type", type)
            short = overrides.get("short", short)
        case other:
            raise InvalidSchemaError(f"schema entry {name!r} has an invalid value {other!r}")

    return Opt(f"{name}:{short}" if short else name, descr, required=required, type=type)


class Registry:
    """
    Collection of command schemas plus the fluent definition API.

    Builder methods return the registry so calls can be chained; description()
    and meta() act as getters when called without a value.
    """

    def __init__(self):
        self._schemas = {"*": CommandSchema()}
        self._current = "*"

    @property
    def current(self):
        """
        Pattern that receives builder calls.
        """
        return self._current

    @property
    def schemas(self):
        return dict(self._schemas)

    def _update(self, **changes):
        self._schemas[self._current] = copy.replace(self._schemas[self._current], **changes)
        return self

    # --- builder API ---

    def command(self, pattern, /):
        """
        Select (creating it if needed) the schema for `pattern`.
        """
        if not isinstance(pattern, str):
            raise TypeError("command pattern must be a string")
        if not pattern:
            raise InvalidSchemaError("command pattern cannot be empty")
        self._schemas.setdefault(pattern, CommandSchema())
        self._current = pattern
        return self

    def opt(self, spec, descr="", /, required=False, type=ValueType.STRING, metadata=Unset):
        """
        Add or replace an option on the current schema.

        `spec` is "long" or "long:short"; `type` is string/integer/boolean (or the
        str/int/bool aliases) with an optional "[]" suffix for array options.
        """
        opt = Opt(spec, descr, required=required, type=type, metadata=metadata)
        schema = self._schemas[self._current]
        return self._update(opts={**schema.opts, opt.name: opt})

    def arg(self, name, descr="", /, required=False):
        """
        Declare the next positional arg of the current schema.

        Redeclaring a name replaces that arg in place.
        """
        arg = Arg(name, descr, required=required)
        args = self._schemas[self._current].args
        for index, existing in enumerate(args):
            if existing.name == arg.name:
                args[index] = arg
                break
        else:
            args.append(arg)
        return self._update(args=args)

    def description(self, text=Unset, /):
        if text is Unset or text is None:
            return self._schemas[self._current].description
        if not isinstance(text, str):
            raise TypeError("description must be a string")
        return self._update(descriptions=[text])

    def meta(self, name, value=Unset, /):
        """
        Get or set an arbitrary metadata entry on the current schema.
        """
        if value is Unset or value is None:
            return self._schemas[self._current].get_meta(name)
        return self._update(metadata=self._schemas[self._current].metadata | {name: value})

    def schema(self, definitions, /):
        """
        Bulk-define options on the current schema from a short-form list or mapping.

        - ["s:host:h", "i:port:P?", "b:force?"]
        - {"s:host:h": "The host.", "i:port?": {"description": "The port.", "short": "P"}}
        """
        if isinstance(definitions, Mapping):
            opts = [_parse_short_form(key, value) for key, value in definitions.items()]
        elif isinstance(definitions, str):
            raise TypeError("schema() argument must be a list or a mapping")
        else:
            opts = list(map(_parse_short_form, definitions))

        schema = self._schemas[self._current]
        return self._update(opts={**schema.opts, **{opt.name: opt for opt in opts}})

    # --- queries ---

    def get_schema(self, command="", /):
        """
        Merge every schema whose pattern matches `command` into a fresh schema.
        """
        if not isinstance(command, str):
            raise TypeError("command must be a string")

        globs = [schema for pattern, schema in self._schemas.items() if ismagic(pattern) and globmatch(pattern, command)]
        exact = [schema for pattern, schema in self._schemas.items() if not ismagic(pattern) and pattern == command]

        result = CommandSchema()
        for schema in globs + exact:
            result = result.merge(schema)
        return result

    def has_command(self, name="", /):
        """
        With a name: whether that exact pattern is registered.
        Without: whether any non-wildcard command is registered.
        """
        if name:
            return name in self._schemas
        return any(not ismagic(pattern) for pattern in self._schemas)

    def commands(self):
        """
        Iterate (name, schema) for every registered non-wildcard command.
        """
        for pattern, schema in self._schemas.items():
            if not ismagic(pattern):
                yield pattern, schema

    def has_options(self, command="", /):
        if command:
            return self.get_schema(command).has_opts()
        return any(schema.has_opts() for schema in self._schemas.values())

    def has_args(self, command="", /):
        """
        Tell whether args apply: NONE, OPTIONAL (any optional arg), or REQUIRED.

        Without a command, a cli that declares commands reports OPTIONAL when any
        schema has args; a cli without commands answers for the wildcard schema.
        """
        if not command and self.has_command():
            if any(schema.has_args() for schema in self._schemas.values()):
                return ArgsRequirement.OPTIONAL
            return ArgsRequirement.NONE

        args = self.get_schema(command).args
        if not args:
            return ArgsRequirement.NONE
        if all(arg.required for arg in args):
            return ArgsRequirement.REQUIRED
        return ArgsRequirement.OPTIONAL


__all__ = (
    "ArgsRequirement",
    "Registry",
)
