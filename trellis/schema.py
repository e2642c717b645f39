r"""
Trellis schema model: options, positional args, and per-command schemas.

Overview
- ValueType
  • The three scalar kinds an option value can take: string, integer, boolean.
  • ValueType.resolve("int[]") -> (ValueType.INTEGER, True): aliases and the
    array suffix are decoded in one place.

- Opt
  • A named option: long name, optional one-character short alias, description,
    required flag, value type, array flag, and a free-form metadata bag that the
    engine carries around but never interprets.

- Arg
  • A positional slot: name, description, required flag. Its index is its
    declaration order inside the owning schema.

- CommandSchema
  • Options keyed by long name (kept in sorted-key order), ordered args,
    descriptions, and metadata for one command pattern.
  • merge() combines two schemas into a new one (wildcard first, specific second).

Immutability
- Every spec is immutable once built. Fields are exposed as read-only properties
  mirrored from private storage (containers are handed out as fresh copies).
- copy.replace(spec, **changes) builds a modified copy; the registry uses it to
  grow a schema while the previous value stays untouched.

Merge rules
- Options never get dropped. Colliding long names merge field by field: the
  incoming spec wins, except metadata which merges key-wise (incoming keys win).
- Args merge by name: an incoming arg replaces the same-named one in place,
  new names are appended.
- Descriptions accumulate in order; `description` displays the last one.
- Metadata merges key-wise with later values overriding earlier ones.

Validation highlights
- Type strings accept "string"/"str", "integer"/"int", "boolean"/"bool" in any
  case, optionally suffixed with "[]"; anything else is an InvalidSchemaError.
- Option names are "long" or "long:short" (split on the first colon); the long
  name must be non-empty and the short alias at most one character.
"""
import builtins
import copy
import functools
import operator
import re
from collections.abc import Mapping, Iterable
from enum import StrEnum

from .faults import InvalidSchemaError
from .utils import *


class ValueType(StrEnum):
    """
    scalar kinds for option values.

    the string value doubles as the user-facing type name in messages
    ("... is not a valid integer.").
    """
    STRING = "string"
    INTEGER = "integer"
    BOOLEAN = "boolean"

    @classmethod
    def resolve(cls, spec, /):
        """
        Decode a type string into (ValueType, is_array).

        Accepts a ValueType as-is. Raises InvalidSchemaError for unknown names.
        """
        if isinstance(spec, ValueType):
            return spec, False
        if not isinstance(spec, str):
            raise TypeError("type must be a string")

        array = spec.endswith("[]")
        name = spec[:-2] if array else spec

        try:
            return _ALIASES[name.strip().lower()], array
        except KeyError:
            raise InvalidSchemaError(f"Invalid type: {name}. Must be one of string, boolean, or integer.") from None

    @property
    def default(self):
        """
        Value a bare short option takes when no value follows it.
        """
        return {ValueType.BOOLEAN: True, ValueType.INTEGER: 1, ValueType.STRING: ""}[self]


_ALIASES = {
    "str": ValueType.STRING,
    "string": ValueType.STRING,
    "int": ValueType.INTEGER,
    "integer": ValueType.INTEGER,
    "bool": ValueType.BOOLEAN,
    "boolean": ValueType.BOOLEAN,
}


class SchemaType(type):
    """
    Metaclass that turns schema classes into immutable, introspectable records.

    Responsibilities
    - Expose every name listed in __introspectable__ as a read-only property
      mirrored from the private "_{name}" field.
    - Provide stable __repr__/__rich_repr__ and field-wise equality.
    - Provide __replace__ so copy.replace() can build modified copies.
    """
    __introspectable__ = ()

    def __new__(cls, name, bases, namespace, **options):
        self = super().__new__(
            cls,
            name,
            bases,
            namespace | {
                "__typename__": re.sub(r"(?<!^)(?=[A-Z])", r"-", name).lower(),
            } | {
                name: mirror(name) for name in namespace.get("__introspectable__", ())
            },
        )

        @rename("__repr__")
        def __repr__(self):
            return f"{type(self).__typename__}({
                ", ".join(map(functools.partial(operator.mod, "%s=%r"), self.__rich_repr__()))
            })"
        self.__repr__ = __repr__

        @rename("__rich_repr__")
        def __rich_repr__(self):
            for name in type(self).__introspectable__:
                yield name, getattr(self, name)
        self.__rich_repr__ = __rich_repr__

        @rename("__eq__")
        def __eq__(self, other):
            if type(other) is not type(self):
                return NotImplemented
            return dict(self.__rich_repr__()) == dict(other.__rich_repr__())
        self.__eq__ = __eq__
        self.__hash__ = None

        @rename("__replace__")
        def __replace__(self, /, **changes):
            """
            Build a copy with some fields changed (see copy.replace).
            """
            unknown = changes.keys() - set(type(self).__introspectable__)
            if unknown:
                raise TypeError(f"{type(self).__typename__} has no fields {sorted(unknown)!r}")
            return type(self)._build(dict(self.__rich_repr__()) | changes)
        self.__replace__ = __replace__

        return self


def _sanitize_text(cls, metadata, key, /):
    if not isinstance(text := metadata[key], str):
        raise TypeError(f"{cls.__typename__} '{key}' must be a string")
    metadata[key] = text.strip()


def _sanitize_metadata(cls, metadata, /):
    """
    Internal: normalize the free-form metadata bag (must be a mapping with string keys).
    """
    bag = coalesce(metadata["metadata"], {})
    if not isinstance(bag, Mapping):
        raise InvalidSchemaError(f"{cls.__typename__} 'metadata' must be a mapping")
    if not all(isinstance(key, str) for key in bag):
        raise InvalidSchemaError(f"{cls.__typename__} 'metadata' keys must be strings")
    metadata["metadata"] = dict(bag)


def _sanitize_opt(cls, metadata, /):
    """
    Internal: validate names and decode the type of an option spec.

    - name/short: the long name must be non-empty after trimming and may not contain
      whitespace or start with '-'; the short alias is empty or a single character.
    - type/array: decoded through ValueType.resolve(); an explicit array=True is kept
      even when the type string carries no "[]" suffix.
    """
    for key in ("name", "short"):
        _sanitize_text(cls, metadata, key)

    if not (name := metadata["name"]):
        raise InvalidSchemaError(f"{cls.__typename__} name cannot be empty")
    if re.search(r"\s", name) or name.startswith("-"):
        raise InvalidSchemaError(f"{cls.__typename__} name {name!r} is not a valid option name")
    if len(short := metadata["short"]) > 1 or short in ("-", "="):
        raise InvalidSchemaError(f"{cls.__typename__} short name {short!r} must be a single character")

    type, array = ValueType.resolve(metadata["type"])
    metadata["type"] = type
    metadata["array"] = bool(array or metadata["array"])
    metadata["required"] = bool(metadata["required"])

    _sanitize_text(cls, metadata, "descr")
    _sanitize_metadata(cls, metadata)


class Opt(metaclass=SchemaType):
    """
    Named option specification.

    Construction
    - Opt("host:h", "The host.", required=True, type="string")
    - Opt("header", "Extra headers.", type="string[]")

    Properties
    - name, short, descr, required, type (ValueType), array, metadata
    """

    __introspectable__ = (
        "name",
        "short",
        "descr",
        "required",
        "type",
        "array",
        "metadata",
    )

    def __new__(cls, spec, descr="", /, required=False, type=ValueType.STRING, metadata=Unset):
        if not isinstance(spec, str):
            raise TypeError(f"{cls.__typename__} name must be a string")
        name, _, short = spec.partition(":")
        return cls._build({
            "name": name,
            "short": short,
            "descr": descr,
            "required": required,
            "type": type,
            "array": False,
            "metadata": metadata,
        })

    @classmethod
    def _build(cls, metadata):
        _sanitize_opt(cls, metadata)
        self = super().__new__(cls)
        for name, object in metadata.items():
            setattr(self, "_" + name, object)
        return self

    @property
    def spelling(self):
        """
        User-facing spelling used in messages: "--name" or "--name (-s)".
        """
        return f"--{self.name}" + (f" (-{self.short})" if self.short else "")

    def merge(self, other, /):
        """
        Return a new spec where `other` wins every field except metadata,
        which merges key-wise with `other`'s keys overriding.
        """
        if not isinstance(other, Opt):
            raise TypeError("merge() argument must be an opt")
        return copy.replace(other, metadata=self._metadata | other._metadata)


class Arg(metaclass=SchemaType):
    """
    Positional argument specification.

    Properties
    - name, descr, required
    """

    __introspectable__ = (
        "name",
        "descr",
        "required",
    )

    def __new__(cls, name, descr="", /, required=False):
        return cls._build({"name": name, "descr": descr, "required": required})

    @classmethod
    def _build(cls, metadata):
        _sanitize_text(cls, metadata, "name")
        _sanitize_text(cls, metadata, "descr")
        if not metadata["name"]:
            raise InvalidSchemaError(f"{cls.__typename__} name cannot be empty")
        metadata["required"] = bool(metadata["required"])

        self = super().__new__(cls)
        for name, object in metadata.items():
            setattr(self, "_" + name, object)
        return self


class CommandSchema(metaclass=SchemaType):
    """
    Everything known about one command pattern (or the "*" wildcard).

    Properties
    - opts: dict[str, Opt] in sorted long-name order
    - args: list[Arg] in declaration order
    - descriptions: list[str] (every description merged in, in order)
    - description: the last description, or "" when none
    - metadata: dict[str, Any]
    """

    __introspectable__ = (
        "opts",
        "args",
        "descriptions",
        "metadata",
    )

    def __new__(cls, opts=(), args=(), descriptions=(), metadata=Unset):
        return cls._build({
            "opts": opts,
            "args": args,
            "descriptions": descriptions,
            "metadata": metadata,
        })

    @classmethod
    def _build(cls, metadata):
        opts = metadata["opts"]
        if isinstance(opts, Mapping):
            opts = opts.values()
        if not isinstance(opts, Iterable) or not all(isinstance(opt, Opt) for opt in opts):
            raise TypeError(f"{cls.__typename__} 'opts' must be an iterable of opts")
        metadata["opts"] = {opt.name: opt for opt in sorted(opts, key=lambda x: x.name)}

        if not isinstance(args := metadata["args"], Iterable) or not all(isinstance(arg, Arg) for arg in args):
            raise TypeError(f"{cls.__typename__} 'args' must be an iterable of args")
        metadata["args"] = list(args)

        if isinstance(descriptions := metadata["descriptions"], str):
            descriptions = (descriptions,)
        if not all(isinstance(description, str) for description in descriptions):
            raise TypeError(f"{cls.__typename__} 'descriptions' must be strings")
        metadata["descriptions"] = [description for description in descriptions if description]

        _sanitize_metadata(cls, metadata)

        self = super().__new__(cls)
        for name, object in metadata.items():
            setattr(self, "_" + name, object)
        return self

    @property
    def description(self):
        try:
            return self._descriptions[-1]
        except IndexError:
            return ""

    def get_opt(self, name, /):
        return self._opts.get(name)

    def has_opt(self, name, /):
        return name in self._opts

    def has_opts(self):
        return bool(self._opts)

    def has_args(self):
        return bool(self._args)

    def get_meta(self, name, default=None, /):
        return self._metadata.get(name, default)

    def types(self):
        """
        Map every long and short name to its declared ValueType.

        The tokenizer uses this to decide how many tokens an option consumes.
        """
        types = {}
        for opt in self._opts.values():
            types[opt.name] = opt.type
            if opt.short:
                types[opt.short] = opt.type
        return types

    def merge(self, other, /):
        """
        Combine two schemas into a new one; `other` (the more specific) wins collisions.
        """
        if not isinstance(other, CommandSchema):
            raise TypeError("merge() argument must be a command schema")

        opts = dict(self._opts)
        for name, opt in other._opts.items():
            opts[name] = opts[name].merge(opt) if name in opts else opt

        args = list(self._args)
        for arg in other._args:
            for index, existing in enumerate(args):
                if existing.name == arg.name:
                    args[index] = arg
                    break
            else:
                args.append(arg)

        return builtins.type(self)(
            opts.values(),
            args,
            self._descriptions + other._descriptions,
            self._metadata | other._metadata,
        )


__all__ = (
    "ValueType",
    "Opt",
    "Arg",
    "CommandSchema",
)

# Remove the internal metaclass from the module namespace to avoid accidental
# exposure in docs, autocompletion, or star-imports. Not part of the public API.
del SchemaType
