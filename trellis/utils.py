"""
Trellis utilities shared by the schema, parser and dispatch layers.

Overview
- Unset / UnsetType: "no value given" marker, distinct from None. It is falsey,
  prints as "Unset", has a single instance and cannot be subclassed.
- coalesce(value, default): swap Unset for a default; None, 0 and "" survive.
- rename(callable, name) / @rename(name): give generated functions readable
  names in tracebacks and reprs.
- mirror(name): read-only property over "_name" that hands out copies.
- globmatch(pattern, name) / ismagic(pattern): shell-style command patterns
  ("*", "git-*", "re[bm]ase").
- Identifier: respell names between camel, pascal, snake and kebab case.

Examples
    >>> coalesce(Unset, "fallback")
    'fallback'
    >>> globmatch("p*", "push")
    True
    >>> Identifier.fromsnake("dry_run").kebab()
    'dry-run'
"""
import builtins
import functools
import re
from collections.abc import Sequence, Mapping, Set
from typing import final


@final
class UnsetType:
    """
    Type of the Unset marker.

    Parameters default to Unset wherever None is a meaningful value of its own.
    """

    @functools.cache
    def __new__(cls):
        return super().__new__(cls)

    def __init_subclass__(cls, **options):
        raise TypeError("type 'UnsetType' is not an acceptable base type")

    # Lets annotations spell "str | UnsetType" from either side.
    def __or__(self, other, /):
        try:
            return other | type(self)
        except TypeError:
            return NotImplemented

    __ror__ = __or__

    def __bool__(self):
        return False

    def __repr__(self):
        return "Unset"


def coalesce(object, default=None, /):
    """
    Return `object`, or `default` when `object` is Unset.

    - coalesce("name", "fallback") -> "name"
    - coalesce(Unset, "fallback")  -> "fallback"
    - coalesce(None, "fallback")   -> None
    """
    return default if object is Unset else object


def _set_name(callable, name):
    if not builtins.callable(callable):
        raise TypeError("rename() first argument must be callable")
    if not isinstance(name, str):
        raise TypeError("rename() name must be a string")
    try:
        callable.__name__ = callable.__qualname__ = name
    except (AttributeError, TypeError):
        raise TypeError(f"cannot rename {callable!r}") from None
    return callable


def rename(*parameters):
    """
    rename(callable, name) renames in place and returns the callable;
    rename(name) returns a decorator doing the same.
    """
    match parameters:
        case (callable, name):
            return _set_name(callable, name)
        case (str() as name,):
            return _set_name(lambda callable: _set_name(callable, name), "rename")
        case (other,):
            raise TypeError("@rename() argument must be a string")
        case _:
            raise TypeError("rename takes 1 to 2 arguments but %d were given" % len(parameters))


def _immortalize(object):
    """
    Recursively copy container values (lists, dicts, sets); scalars pass through.
    """
    if isinstance(object, Sequence) and not isinstance(object, str):
        return list(map(_immortalize, object))
    elif isinstance(object, Mapping):
        return dict(zip(object.keys(), map(_immortalize, object.values())))
    elif isinstance(object, Set):
        return set(map(_immortalize, object))
    else:
        return object


def mirror(name, /):
    """
    Define a read-only property that mirrors a private backing attribute.

    The property reads "_{name}" on the instance and hands out fresh copies of
    containers, so callers can never mutate the backing state through it.
    """
    if not isinstance(name, str):
        raise TypeError("mirror() argument must be a string")

    @rename(name)
    def getter(self):
        return _immortalize(getattr(self, "_" + name))

    return property(getter)


# One alternative per glob token: escape, star, question mark, class, literal.
_GLOB_TOKEN = re.compile(r"\\(.)|(\*)|(\?)|\[([!^]?)([^\]]+)\]|(.)", re.DOTALL)


def _translate(match):
    escaped, star, question, negated, members, literal = match.groups()
    if star:
        return ".*"
    if question:
        return "."
    if members is not None:
        return f"[{'^' if negated else ''}{members}]"
    return re.escape(escaped if escaped is not None else literal)


@functools.cache
def _resolve_pattern(pattern):
    """
    Compile a shell-style pattern: *, ?, [...], [!...] and \\x escapes.
    An unclosed "[" is taken literally.
    """
    return re.compile(_GLOB_TOKEN.sub(_translate, pattern), re.DOTALL)


def ismagic(pattern, /):
    """
    Tell whether a pattern carries any glob metacharacter.
    """
    return any(char in pattern for char in "*?[")


def globmatch(pattern, name, /):
    """
    Match a command name against a shell-style pattern (case-sensitive, whole string).

    The wildcard pattern "*" matches every name, including the empty one used
    when no command was given.
    """
    if not isinstance(pattern, str) or not isinstance(name, str):
        raise TypeError("globmatch() arguments must be strings")
    return _resolve_pattern(pattern).fullmatch(name) is not None


class Identifier(tuple):
    """
    A name split into lowercase words so it can be respelled.

    Examples
    - Identifier.fromcamel("addUser").kebab()      -> "add-user"
    - Identifier.fromsnake("base_url").kebab()     -> "base-url"
    - Identifier.fromkebab("dry-run").snake()      -> "dry_run"
    """

    def __new__(cls, *parts):
        return super().__new__(cls, (part.lower() for part in parts if part))

    @classmethod
    def fromcamel(cls, name, /):
        return cls(*re.split(r"(?<=[a-z])(?=[A-Z0-9])", name))

    # Pascal case splits on the same boundaries.
    frompascal = fromcamel

    @classmethod
    def fromsnake(cls, name, /):
        return cls(*name.split("_"))

    @classmethod
    def fromkebab(cls, name, /):
        return cls(*name.split("-"))

    @classmethod
    def frommixed(cls, name, /):
        """
        Guess the spelling: underscores mean snake, hyphens mean kebab, otherwise camel.
        """
        if "_" in name.strip("_"):
            return cls.fromsnake(name.strip("_"))
        elif "-" in name.strip("-"):
            return cls.fromkebab(name.strip("-"))
        return cls.fromcamel(name.strip("_"))

    def camel(self):
        head, *tail = self or ("",)
        return head + "".join(part.capitalize() for part in tail)

    def pascal(self):
        return "".join(part.capitalize() for part in self)

    def snake(self):
        return "_".join(self)

    def kebab(self):
        return "-".join(self)


Unset = UnsetType()
"""
Internal sentinel for “not provided”.

Use Unset as a default when None is a valid, user-meaningful value but you still
need to distinguish “no input” from “explicitly passed None”.
"""


__all__ = (
    # Functions
    "coalesce",
    "rename",
    "mirror",
    "ismagic",
    "globmatch",

    # Types
    "UnsetType",
    "Identifier",

    # Constants
    "Unset",
)
