"""
Trellis parsing engine: tokenizer, validator, and scalar coercion.

Overview
- tokenize(registry, argv) -> Namespace
  • Walks the argument vector once, left to right. The first token is the program
    path; a leading non-dash token is the command (or the first positional when the
    registry declares no commands).
  • Declared types decide how many tokens an option consumes; nothing is coerced
    yet. Repeated options accumulate into lists.

- validate(registry, namespace) -> Namespace
  • Resolves the merged schema of the namespace's command, coerces every declared
    option, and checks required options/args and leftovers.
  • Never stops at the first problem: every fault of the run is collected and raised
    together as one CommandExit.

- coerce(value, type) -> value
  • Scalar coercion for the three value types; raises ValueError when the value
    is not valid for the type.

Token grammar (after the path and the optional command)
    --              end of options; everything after is positional
    -? --? --help   help flag (always recognized)
    --name=value    long option with an inline value
    --name [value]  long option; the value is taken from the next token when the
                    declared type allows it
    --no-name       false for a declared boolean "name"
    -x [value]      short option
    -abc            bundle of short options (-vvv counts, -c12 and -hlocalhost
                    carry their value inline)
    anything else   ends options; the rest is positional

Fault order
    command check -> value errors (sorted option names) -> missing required options
    (sorted) -> missing required args (declared order) -> unknown options (input order)
"""
import builtins
import os
import re
from collections.abc import Sequence
from decimal import Decimal, InvalidOperation

from .faults import *
from .namespace import Namespace
from .schema import ValueType
from .utils import *

_OPTION_LIKE = re.compile(r"--?.+", re.DOTALL)
_NUMERIC = re.compile(r"\s*[+-]?([0-9]+(\.[0-9]*)?|\.[0-9]+)([eE][+-]?[0-9]+)?\s*")
_DIGITS = re.compile(r"[0-9]+")

# Largest decimal exponent an integer value may carry.
_MAX_EXPONENT = 4300

# Explicit values a boolean option may take from the following token.
_BOOLEAN_TOKENS = frozenset({"0", "1", "true", "false", "on", "off", "yes", "no"})

_FALSE_LITERALS = frozenset({"", "0", "false", "no", "disabled"})
_TRUE_LITERALS = frozenset({"1", "true", "yes", "enabled"})

_HELP_TOKENS = frozenset({"-?", "--?", "--help"})


def _is_strict_boolean(value):
    return isinstance(value, bool) or value in _BOOLEAN_TOKENS


def _is_numeric(value):
    if isinstance(value, bool):
        return False
    if isinstance(value, int | float):
        return True
    return isinstance(value, str) and _NUMERIC.fullmatch(value) is not None


def coerce(value, type, /):
    """
    Coerce one raw value into the given ValueType.

    - boolean: native booleans pass; None, "", 0, "0", "false", "no", "disabled" are
      False; 1, "1", "true", "yes", "enabled" are True; anything else is invalid.
    - integer: any numeric value or numeric string ("12", " 3 ", "1e3", "2.5");
      fractions are truncated toward zero, magnitudes past 10**4300 are rejected.
    - string: always valid; True becomes "1", False and None become "".

    Raises
    - ValueError when the value is not valid for the type.
    """
    match ValueType(type):
        case ValueType.BOOLEAN:
            if isinstance(value, bool):
                return value
            if value is None or (builtins.type(value) is int and value == 0) or (isinstance(value, str) and value in _FALSE_LITERALS):
                return False
            if (builtins.type(value) is int and value == 1) or (isinstance(value, str) and value in _TRUE_LITERALS):
                return True
            raise ValueError(f"{value!r} is not a valid boolean")
        case ValueType.INTEGER:
            if not _is_numeric(value):
                raise ValueError(f"{value!r} is not a valid integer")
            if isinstance(value, int):
                return value
            try:
                number = Decimal(str(value).strip())
                if number.adjusted() > _MAX_EXPONENT:
                    raise ValueError
                return int(number)
            except (InvalidOperation, ValueError, OverflowError):
                raise ValueError(f"{value!r} is not a valid integer") from None
        case ValueType.STRING:
            if value is True:
                return "1"
            if value is False or value is None:
                return ""
            return str(value)


# --- tokenizer ---


def _add_arg(schema, namespace, value):
    """
    Append a positional value under the name declared at its position, if any.
    """
    args = schema.args
    position = len(namespace.args)
    namespace.add_arg(value, args[position].name if position < len(args) else None)


def _increment(namespace, key):
    """
    Count one more occurrence of an integer flag (-vvv); a list bumps its last element.
    """
    def bump(value):
        try:
            return coerce(value, ValueType.INTEGER) + 1
        except ValueError:
            return 1

    value = namespace.get_opt(key, 0)
    if isinstance(value, list):
        value = [*value[:-1], bump(value[-1])] if value else [1]
    else:
        value = bump(value)
    namespace.set_opt(key, value)


def _scan_long(types, namespace, argv, index):
    """
    Consume a "--name[=value]" token (and possibly its value); return the last index used.
    """
    key, equals, value = argv[index][2:].partition("=")

    if not equals:
        following = argv[index + 1] if index + 1 < len(argv) else None
        value = ""
        if following is not None and not _OPTION_LIKE.match(following):
            if types.get(key) is ValueType.BOOLEAN:
                if following in _BOOLEAN_TOKENS:
                    value = following
                    index += 1
                else:
                    value = True
            else:
                value = following
                index += 1
        elif key.startswith("no-") and types.get(key[3:]) is ValueType.BOOLEAN:
            key, value = key[3:], False
        elif types.get(key) is ValueType.BOOLEAN:
            value = True

    namespace.push_opt(key, value)
    return index


def _scan_short(types, namespace, argv, index):
    """
    Consume a "-x" token (and possibly its value); return the last index used.

    Undeclared short names are treated as boolean flags here; validation rejects them.
    """
    key = argv[index][1]
    type = types.get(key, ValueType.BOOLEAN)
    value = Unset

    if index + 1 < len(argv):
        following = argv[index + 1]
        if type is ValueType.BOOLEAN:
            if _is_strict_boolean(following):
                value = following
                index += 1
            else:
                value = True
        elif not _OPTION_LIKE.match(following):
            value = following
            index += 1

    namespace.push_opt(key, coalesce(value, type.default))
    return index


def _scan_bundle(types, namespace, token):
    """
    Consume a "-abc..." token character by character.
    """
    position = 1
    while position < len(token):
        key = token[position]
        remaining = token[position + 1:]
        type = types.get(key, ValueType.BOOLEAN)

        if remaining.startswith("="):
            remaining = remaining[1:]
            position += 1
            if type is ValueType.BOOLEAN:
                namespace.push_opt(key, remaining)
                return

        match type:
            case ValueType.BOOLEAN:
                if remaining[:1] in ("0", "1"):
                    namespace.push_opt(key, remaining[0])
                    position += 1
                else:
                    namespace.push_opt(key, True)
            case ValueType.STRING:
                namespace.push_opt(key, remaining)
                return
            case ValueType.INTEGER:
                if digits := _DIGITS.match(remaining):
                    namespace.push_opt(key, digits.group())
                    position += len(digits.group())
                else:
                    _increment(namespace, key)
            case _:
                raise RuntimeError(f"Invalid type {type} for {key}.")

        position += 1


def tokenize(registry, argv, /):
    """
    Turn an argument vector into a raw (unvalidated) Namespace.

    Raises
    - TypeError when argv is not a sequence of strings.
    """
    if isinstance(argv, str | bytes) or not isinstance(argv, Sequence):
        raise TypeError("argv must be a sequence of strings")
    if not all(isinstance(token, str) for token in argv):
        raise TypeError("argv must be a sequence of strings")

    argv = list(argv)
    path = argv.pop(0) if argv else ""

    namespace = Namespace()
    namespace.set_meta("path", path)
    namespace.set_meta("filename", os.path.basename(path))

    schema = None
    if argv and not argv[0].startswith("-"):
        token = argv.pop(0)
        if registry.has_command():
            namespace.command = token
        else:
            schema = registry.get_schema(namespace.command)
            _add_arg(schema, namespace, token)

    if schema is None:
        schema = registry.get_schema(namespace.command)
    types = schema.types()

    index = 0
    while index < len(argv):
        token = argv[index]

        if token in _HELP_TOKENS:
            namespace.set_opt("help", True)
        elif token == "--":
            index += 1
            break
        elif len(token) > 2 and token.startswith("--"):
            index = _scan_long(types, namespace, argv, index)
        elif len(token) == 2 and token.startswith("-"):
            index = _scan_short(types, namespace, argv, index)
        elif len(token) > 1 and token.startswith("-"):
            _scan_bundle(types, namespace, token)
        else:
            break

        index += 1

    for token in argv[index:]:
        _add_arg(schema, namespace, token)

    return namespace


# --- validator ---


def _extract(opts, opt):
    """
    Pop every raw entry for an option (long or short key) and return its values.
    """
    values = []
    for key in [key for key in opts if key == opt.name or (opt.short and key == opt.short)]:
        value = opts.pop(key)
        values.extend(value if isinstance(value, list) else [value])
    return values


def _invalid_value(opt, label):
    short = f" (-{opt.short})" if opt.short else ""
    return InvalidValueError(
        f"The value of --{label}{short} is not a valid {opt.type}.",
        code=FaultCode.INVALID_VALUE,
        title="invalid value",
        input=label,
    )


def validate(registry, namespace, /):
    """
    Check a raw Namespace against the registry and build the typed result.

    Returns
    - a new Namespace whose options are coerced to their declared types.

    Raises
    - CommandExit carrying every fault found, in deterministic order.
    """
    command = namespace.command
    schema = registry.get_schema(command)
    opts = namespace.opts

    result = Namespace(command, Unset, namespace.args)
    for name, value in namespace.meta.items():
        result.set_meta(name, value)

    faults = []
    missing = []

    if command and not registry.has_command(command) and registry.has_command():
        faults.append(InvalidCommandError(
            f"Invalid command: {command}.",
            code=FaultCode.INVALID_COMMAND,
            title="invalid command",
            input=command,
        ))

    for name, opt in schema.opts.items():
        values = _extract(opts, opt)

        if not values:
            if opt.required:
                missing.append(name)
                result.set_opt(name, False)
            continue

        if opt.array:
            coerced = []
            for index, value in enumerate(values):
                try:
                    coerced.append(coerce(value, opt.type))
                except ValueError:
                    faults.append(_invalid_value(opt, f"{name}[{index}]"))
            if len(coerced) == len(values):
                result.set_opt(name, coerced)
        else:
            try:
                result.set_opt(name, coerce(values[-1], opt.type))
            except ValueError:
                faults.append(_invalid_value(opt, name))

    for name in missing:
        faults.append(MissingOptionError(
            f"Missing required option: {name}",
            code=FaultCode.MISSING_OPTION,
            title="missing option",
            input=name,
        ))

    for index, arg in enumerate(schema.args):
        if arg.required and not (result.get_arg(arg.name) is not None or result.has_arg(index)):
            faults.append(MissingArgError(
                f"Missing required arg: {arg.name}",
                code=FaultCode.MISSING_ARG,
                title="missing arg",
                input=arg.name,
            ))

    for key in opts:
        if key.startswith("no-") and (opt := schema.get_opt(key[3:])) and opt.type is not ValueType.BOOLEAN:
            faults.append(NegatedOptionError(
                f"Cannot apply the --no- prefix on the non boolean --{opt.name}.",
                code=FaultCode.NEGATED_OPTION,
                title="negated option",
                input=key,
            ))
        else:
            faults.append(InvalidOptionError(
                f"Invalid option: {key}",
                code=FaultCode.INVALID_OPTION,
                title="invalid option",
                input=key,
            ))

    if faults:
        raise CommandExit(faults)
    return result


__all__ = (
    "coerce",
    "tokenize",
    "validate",
)
