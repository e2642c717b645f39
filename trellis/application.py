"""
Trellis application: derive commands from python callables and dispatch to them.

Overview
- Application is a Cli whose schemas are reflected from functions and classes:
  • add_method(cls, "name")     -> command "name" (kebab-cased), one option per
                                   parameter of cls.name
  • add_callable("cmd", func)   -> command "cmd", one option per parameter of func
  • add_constructor(cls)        -> global options feeding cls(...) when an
                                   instance is needed
  • add_factory(cls, factory)   -> global options feeding factory(...) instead

- Reflection rules
  • Parameter types: str -> string, int -> integer, bool -> boolean, list[...] ->
    array of the item type; unannotated -> string. Other annotations are skipped,
    except Namespace, which receives the parsed namespace itself.
  • A parameter is required iff it has no default.
  • Option names are the kebab-case parameter names (with an optional prefix).
  • Descriptions come from the docstring's first paragraph; ":param name: text"
    lines describe the options.

- Dispatch metadata
  • The command schema carries "action": the callable, or (cls, "method").
  • Each option carries "dispatch" ("parameter", "call", "constructor" or
    "factory") and "target" (the parameter or setter name it feeds).

Example
    >>> class Tools:
    ...     def greet(self, name: str, loud: bool = False):
    ...         \"\"\"Say hello.\"\"\"
    ...         return print(("HELLO %s" if loud else "hello %s") % name)
    >>> app = Application().add_method(Tools, "greet")
    >>> app.main(["tools", "greet", "--name", "you"])
    hello you
    0
"""
import inspect
import logging
import re
import types
import typing

from .cli import Cli
from .namespace import Namespace
from .parser import coerce
from .schema import ValueType
from .utils import *

DISPATCH = "dispatch"
TARGET = "target"
ACTION = "action"
INJECT = "inject"

_PARAM_DOC = re.compile(r"^\s*:param\s+(?:[^:\s]+\s+)?(\w+)\s*:\s*(.*)$", re.MULTILINE)

_TYPES = {
    str: ValueType.STRING,
    int: ValueType.INTEGER,
    bool: ValueType.BOOLEAN,
}


def _describe(object):
    """
    Split a docstring into (summary, {parameter: description}).
    """
    doc = inspect.getdoc(object) or ""
    params = {name: text.strip() for name, text in _PARAM_DOC.findall(doc)}
    body = _PARAM_DOC.sub("", doc).strip()
    summary = " ".join(body.split("\n\n", 1)[0].split()) if body else ""
    return summary, params


def _resolve_type(annotation):
    """
    Map an annotation to an option type string, Namespace, or None (skip).
    """
    if annotation is inspect.Parameter.empty:
        return ValueType.STRING.value
    if annotation is Namespace:
        return Namespace

    if isinstance(annotation, types.UnionType) or typing.get_origin(annotation) is typing.Union:
        members = [member for member in typing.get_args(annotation) if member is not type(None)]
        if len(members) != 1:
            return None
        annotation, = members

    if annotation in _TYPES:
        return _TYPES[annotation].value
    if annotation is list or typing.get_origin(annotation) is list:
        item, = typing.get_args(annotation) or (str,)
        return f"{_TYPES[item].value}[]" if item in _TYPES else None
    return None


def _reflect(function, /, *, bound=False, prefix=""):
    """
    Yield (option name, type string or Namespace, required, parameter name) for a callable.

    `bound` drops the first parameter (self/cls of an unbound method).
    """
    parameters = list(inspect.signature(function, eval_str=True).parameters.values())
    if bound:
        parameters = parameters[1:]

    for parameter in parameters:
        if parameter.kind not in (parameter.POSITIONAL_OR_KEYWORD, parameter.KEYWORD_ONLY):
            continue
        if (type := _resolve_type(parameter.annotation)) is None:
            continue
        name = prefix + Identifier.frommixed(parameter.name).kebab()
        yield name, type, parameter.default is parameter.empty, parameter.name


class Application(Cli):
    """
    Cli that builds its schemas from callables and dispatches parsed namespaces.

    Options
    - colorful: forwarded to Cli.
    - logger: where dispatch failures are reported (default: the "trellis" logger).
    """

    def __init__(self, *, colorful=Unset, logger=Unset):
        super().__init__(colorful=colorful)
        self.logger = coalesce(logger, logging.getLogger("trellis"))
        self._instances = {}
        self._builders = {}

    # --- registration ---

    def _add_params(self, function, /, dispatch, *, bound=False, prefix="", descriptions=Unset):
        descriptions = coalesce(descriptions, {})
        injected = []
        for name, type, required, parameter in _reflect(function, bound=bound, prefix=prefix):
            if type is Namespace:
                injected.append(parameter)
                continue
            self.opt(
                name,
                descriptions.get(parameter, ""),
                required=required,
                type=type,
                metadata={DISPATCH: dispatch, TARGET: parameter},
            )
        return injected

    def _add_setters(self, cls, /, static=False):
        for name, member in inspect.getmembers(cls, callable):
            if not name.startswith("set_"):
                continue
            bound = not isinstance(inspect.getattr_static(cls, name), staticmethod | classmethod)
            if static and bound:
                continue
            reflected = list(_reflect(member, bound=bound))
            if len(inspect.signature(member).parameters) != 1 + bound or len(reflected) != 1:
                continue
            _, type, _, _ = reflected[0]
            if type is Namespace:
                continue
            summary, _ = _describe(member)
            self.opt(
                Identifier.fromsnake(name[4:]).kebab(),
                summary,
                required=False,
                type=type,
                metadata={DISPATCH: "call", TARGET: name},
            )

    def add_method(self, cls, name, /, command=None, setters=False, description=None):
        """
        Register cls.name as a command; with setters=True, public one-argument
        set_* methods become options applied before the call.
        """
        if not inspect.isclass(cls):
            raise TypeError("add_method() first argument must be a class")
        if not callable(method := getattr(cls, name, None)):
            raise ValueError(f"{cls.__qualname__} has no method {name!r}")

        member = inspect.getattr_static(cls, name)
        static = isinstance(member, staticmethod | classmethod)
        summary, params = _describe(method)

        self.command(command or Identifier.frommixed(name).kebab())
        if text := description or summary:
            self.description(text)
        self.meta(ACTION, (cls, name))
        self.meta(INJECT, self._add_params(method, "parameter", bound=not static, descriptions=params))
        if setters:
            self._add_setters(cls, static=static)
        return self

    def add_callable(self, command, function, /, description=None):
        """
        Register a plain function (or callable object) as a command.
        """
        if inspect.ismethod(function) or not callable(function):
            raise TypeError("add_callable() does not support methods, use add_method() instead")
        summary, params = _describe(function)

        self.command(command)
        if text := description or summary:
            self.description(text)
        self.meta(ACTION, function)
        self.meta(INJECT, self._add_params(function, "parameter", descriptions=params))
        return self

    def _add_globals(self, function, dispatch, prefix, bound=False):
        current = self.current
        _, params = _describe(function)
        self.command("*")
        self._add_params(function, dispatch, bound=bound, prefix=prefix, descriptions=params)
        self.command(current)

    def add_constructor(self, cls, /, prefix=""):
        """
        Expose the constructor parameters of cls as global options used to build it.
        """
        if cls in self._instances:
            raise ValueError(f"Cannot add a constructor for a class that has been instantiated: {cls.__qualname__}")
        if cls.__init__ is object.__init__:
            raise ValueError(f"Class does not have a constructor: {cls.__qualname__}")

        self._add_globals(cls.__init__, "constructor", prefix, bound=True)
        self._builders[cls] = lambda namespace: self._call(cls.__init__, cls, namespace, prefix, bound=True)
        return self

    def add_factory(self, cls, factory, /, prefix=""):
        """
        Build cls through factory(...), whose parameters become global options.
        """
        if not callable(factory):
            raise TypeError("add_factory() second argument must be callable")
        self._add_globals(factory, "factory", prefix)
        self._builders[cls] = lambda namespace: self._call(factory, factory, namespace, prefix)
        return self

    # --- dispatch ---

    def _call(self, function, target, namespace, prefix="", /, bound=False):
        """
        Call target with the options reflected from function's parameters.
        """
        kwargs = {}
        for name, type, required, parameter in _reflect(function, bound=bound, prefix=prefix):
            if type is Namespace:
                kwargs[parameter] = namespace
            elif namespace.has_opt(name):
                kwargs[parameter] = namespace.get_opt(name)
        return target(**kwargs)

    def instance(self, cls, namespace, /):
        """
        The application's single instance of cls, built on first use.
        """
        if cls not in self._instances:
            builder = self._builders.get(cls, lambda namespace: cls())
            self._instances[cls] = builder(namespace)
        return self._instances[cls]

    def dispatch(self, namespace, /):
        """
        Invoke the action of the namespace's command and return its result.

        Raises
        - ValueError when the command has no action.
        """
        schema = self.get_schema(namespace.command)
        action = schema.get_meta(ACTION)

        match action:
            case (type() as cls, str() as name):
                static = isinstance(inspect.getattr_static(cls, name), staticmethod | classmethod)
                owner = cls if static else self.instance(cls, namespace)
                target = getattr(owner, name)
            case _ if callable(action):
                owner, target = None, action
            case None:
                raise ValueError("The args don't specify an action to dispatch to.")
            case _:
                raise ValueError(f"Invalid action: {action!r}")

        kwargs = {}
        for opt in schema.opts.values():
            if not namespace.has_opt(opt.name):
                continue
            match opt.metadata.get(DISPATCH):
                case "call":
                    getattr(owner, opt.metadata[TARGET])(namespace.get_opt(opt.name))
                case "parameter":
                    kwargs[opt.metadata[TARGET]] = namespace.get_opt(opt.name)

        for parameter in schema.get_meta(INJECT) or ():
            kwargs[parameter] = namespace
        return target(**kwargs)

    def main(self, argv=Unset, /):
        """
        Parse argv, dispatch, and return an exit status.

        Help and validation faults print and exit inside parse(). A failing action is
        logged and yields status 1; a numeric result becomes the status, anything
        else yields 0.
        """
        namespace = self.parse(argv)
        try:
            result = self.dispatch(namespace)
        except Exception as exception:
            self.logger.error("%s", exception, exc_info=self.logger.isEnabledFor(logging.DEBUG))
            return 1

        try:
            return coerce(result, ValueType.INTEGER)
        except ValueError:
            return 0


__all__ = (
    "Application",
)
