"""
Trellis task logging: nested begin/end progress output over standard logging.

Overview
- TaskLogger decorates a logging.Logger with a task stack:
  • begin(level, message) opens a task; messages logged inside it are indented.
  • end(message) closes the current task and reports its duration.
  • A task opened below the minimum level stays buffered. It is only written
    (with its original indent) once something inside it reaches the minimum
    level, and every open task is promoted to the level of its loudest message.

- Task context travels in LogRecord extras:
  • indent: nesting depth when the record was produced
  • time: timestamp (seconds since the epoch) of the record
  • begin / end: set on task start and task end records
  • duration: seconds elapsed between a task's begin and its end
  • context: every other keyword passed to a logging call. "{name}"
    placeholders in the message are filled from it, so keys like "name" or
    "message" never collide with LogRecord attributes.

- TaskFormatter renders "[time] " (optional), the indentation ("  " per level
  below the first, then "- "), the message and the human duration.
- TaskHandler prints through a rich console and keeps a begin line open so the
  matching end lands on the same line ("Deploying done 1.2s").

Example
    >>> log = TaskLogger()
    >>> log.begin_info("Deploying")
    >>> log.info("Uploading files")
    >>> log.end("done")
"""
import logging
import re
import sys
import time
import warnings
from datetime import datetime

from rich.console import Console
from rich.markup import escape

from .utils import *

_PLACEHOLDER = re.compile(r"\{([^\s{}]+)\}")

# Record attributes owned by the task stack; every other keyword is user context.
_TASK_FIELDS = ("indent", "time", "begin", "end", "duration")


def format_duration(seconds, /):
    """
    Human duration: μs below a millisecond, ms below a second, then s, m, h, d
    with one decimal; trailing ".0" is dropped.

    Examples
    - 0.000250 -> "250μs"
    - 0.5      -> "500ms"
    - 1.25     -> "1.2s"
    - 90       -> "1.5m"
    """
    if seconds < 1e-3:
        value, digits, suffix = seconds * 1e6, 0, "μs"
    elif seconds < 1:
        value, digits, suffix = seconds * 1e3, 0, "ms"
    elif seconds < 60:
        value, digits, suffix = seconds, 1, "s"
    elif seconds < 3600:
        value, digits, suffix = seconds / 60, 1, "m"
    elif seconds < 86400:
        value, digits, suffix = seconds / 3600, 1, "h"
    else:
        value, digits, suffix = seconds / 86400, 1, "d"

    text = f"{value:,.{digits}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text + suffix


def _resolve_level(level):
    if isinstance(level, bool):
        raise TypeError("log level must be an integer or a level name")
    if isinstance(level, int):
        return level
    if isinstance(level, str):
        try:
            return logging.getLevelNamesMapping()[level.upper()]
        except KeyError:
            raise ValueError(f"Log level is invalid: {level}") from None
    raise TypeError("log level must be an integer or a level name")


class TaskFormatter(logging.Formatter):
    """
    Formatter for task records.

    Options
    - show_time: prefix lines with "[{time}] " (datefmt applies, default "%Y-%m-%d %H:%M:%S").
    - show_durations: append the human duration to task end records.
    - colorful: emit rich markup (level colors, blue durations); plain text otherwise.
    """

    styles = {
        logging.DEBUG: "grey50",
        logging.INFO: "",
        logging.WARNING: "yellow",
        logging.ERROR: "red",
        logging.CRITICAL: "bold red",
    }

    def __init__(self, *, show_time=True, show_durations=True, colorful=False, datefmt="%Y-%m-%d %H:%M:%S"):
        super().__init__(datefmt=datefmt)
        self.show_time = show_time
        self.show_durations = show_durations
        self.colorful = colorful

    def message(self, record):
        """
        Record message with "{name}" placeholders filled from the record's context.
        """
        context = getattr(record, "context", {})

        def replace(match):
            name = match.group(1)
            return str(context[name]) if name in context else match.group(0)
        return _PLACEHOLDER.sub(replace, record.getMessage())

    def _colorize(self, record, text):
        if not self.colorful:
            return text
        style = ""
        for threshold, candidate in sorted(self.styles.items()):
            if record.levelno >= threshold:
                style = candidate
        return f"[{style}]{escape(text)}[/]" if style else escape(text)

    def _duration(self, record):
        duration = getattr(record, "duration", None)
        if duration is None or not self.show_durations:
            return ""
        text = format_duration(duration)
        return f"[bold blue]{text}[/]" if self.colorful else text

    def format(self, record):
        moment = datetime.fromtimestamp(getattr(record, "time", record.created)).strftime(self.datefmt)
        indent = getattr(record, "indent", 0)
        prefix = "  " * (indent - 1) + "- " if indent > 0 else ""

        lines = []
        for line in self.message(record).split("\n"):
            line = prefix + line.rstrip()
            lines.append(f"[{moment}] {line}" if self.show_time else line)
        result = self._colorize(record, "\n".join(lines))

        if duration := self._duration(record):
            if result and not result[-1].isspace():
                result += " "
            result += duration
        return result

    def format_tail(self, record):
        """
        End record rendered as a continuation of its begin line: " message duration".
        """
        result = self._colorize(record, " " + self.message(record))
        if duration := self._duration(record):
            if not result.endswith(" "):
                result += " "
            result += duration
        return result


class TaskHandler(logging.Handler):
    """
    Handler that prints task records through a rich console.

    With buffer_begins (default), a begin line is left open: the matching end
    record is appended to it when nothing else was logged in between.
    """

    def __init__(self, console=None, level=logging.NOTSET, *, buffer_begins=True):
        super().__init__(level)
        self.console = console if console is not None else Console(file=sys.stdout, highlight=False)
        self.buffer_begins = buffer_begins
        self._pending = False
        self.setFormatter(TaskFormatter(colorful=self.console.is_terminal))

    def emit(self, record):
        try:
            formatter = self.formatter
            output, newline = "", True

            if self.buffer_begins:
                if getattr(record, "begin", False):
                    if self._pending:
                        output += "\n"
                    self._pending = True
                    newline = False
                elif getattr(record, "end", False) and self._pending and "\n" not in record.getMessage() and isinstance(formatter, TaskFormatter):
                    self._pending = False
                    output += formatter.format_tail(record)
                    self._write(output + "\n", formatter)
                    return
                elif self._pending:
                    output += "\n"
                    self._pending = False

            output += self.format(record)
            self._write(output + ("\n" if newline else ""), formatter)
        except Exception:
            self.handleError(record)

    def _write(self, output, formatter):
        self.console.print(output, end="", markup=getattr(formatter, "colorful", False), highlight=False, soft_wrap=True)


class _Task:
    __slots__ = ("level", "message", "context", "output")

    def __init__(self, level, message, context, output):
        self.level = level
        self.message = message
        self.context = context
        self.output = output


class TaskLogger:
    """
    Nested task logger over a logging.Logger.

    Parameters
    - logger: the logger to write to; by default a private logger printing to
      standard output through a TaskHandler.
    - level: minimum level to output (int or level name, default INFO).
    """

    def __init__(self, logger=None, level=logging.INFO):
        if logger is None:
            logger = logging.Logger("trellis.tasks")
            logger.addHandler(TaskHandler())
        if not isinstance(logger, logging.Logger):
            raise TypeError("logger must be a logging.Logger")
        self.logger = logger
        self.level = level
        self._tasks = []

    @property
    def level(self):
        return self._level

    @level.setter
    def level(self, level):
        self._level = _resolve_level(level)

    @property
    def indent(self):
        """
        Number of open tasks.
        """
        return len(self._tasks)

    def _emit(self, level, message, context):
        context = {"indent": len(self._tasks), "time": time.time()} | context
        extra = {key: context.pop(key) for key in _TASK_FIELDS if key in context}
        self.logger.log(level, message, extra=extra | {"context": context})

    def _flush(self):
        for indent, task in enumerate(self._tasks):
            if not task.output:
                self._emit(task.level, task.message, {"indent": indent} | task.context)
                task.output = True

    # --- plain messages ---

    def log(self, level, message, /, **context):
        level = _resolve_level(level)
        if level < self._level:
            return
        self._flush()
        for task in self._tasks:
            task.level = max(task.level, level)
        self._emit(level, message, context | {"indent": len(self._tasks)})

    def debug(self, message, /, **context):
        self.log(logging.DEBUG, message, **context)

    def info(self, message, /, **context):
        self.log(logging.INFO, message, **context)

    def warning(self, message, /, **context):
        self.log(logging.WARNING, message, **context)

    def error(self, message, /, **context):
        self.log(logging.ERROR, message, **context)

    def critical(self, message, /, **context):
        self.log(logging.CRITICAL, message, **context)

    # --- tasks ---

    def begin(self, level, message, /, **context):
        """
        Open a task. Below the minimum level it is buffered until something inside it
        gets written.
        """
        level = _resolve_level(level)
        output = level >= self._level
        context = {"begin": True} | context
        context.setdefault("time", time.time())

        if output:
            self.log(level, message, **context)
        self._tasks.append(_Task(level, message, context, output))
        return self

    def begin_debug(self, message, /, **context):
        return self.begin(logging.DEBUG, message, **context)

    def begin_info(self, message, /, **context):
        return self.begin(logging.INFO, message, **context)

    def begin_warning(self, message, /, **context):
        return self.begin(logging.WARNING, message, **context)

    def begin_error(self, message, /, **context):
        return self.begin(logging.ERROR, message, **context)

    def begin_critical(self, message, /, **context):
        return self.begin(logging.CRITICAL, message, **context)

    def end(self, message="", /, level=Unset, **context):
        """
        Close the current task, logging `message` with the task's duration.

        The record uses `level` when given, else the (possibly promoted) task level.
        Ending with no open task warns and logs at INFO.
        """
        context = {"indent": max(len(self._tasks) - 1, 0), "end": True} | context
        context.setdefault("time", time.time())
        level = _resolve_level(level) if level is not Unset else None

        if self._tasks:
            task = self._tasks[-1]
            context["duration"] = context["time"] - task.context["time"]
            if level is None:
                level = task.level
        else:
            warnings.warn("end() called without a matching begin()", RuntimeWarning, stacklevel=2)
        level = level if level is not None else logging.INFO

        if level >= self._level:
            self._flush()
            self._emit(level, message, context)
        if self._tasks:
            self._tasks.pop()
        return self

    def end_error(self, message, /, **context):
        return self.end(message, level=logging.ERROR, **context)

    def end_http_status(self, status, /):
        """
        Close the current task with a three-digit HTTP status as the message.

        0 and 5xx end at CRITICAL, 4xx at ERROR, anything else at the task level.
        """
        message = f"{status:03d}"
        if status == 0 or status >= 500:
            return self.end(message, level=logging.CRITICAL)
        if status >= 400:
            return self.end_error(message)
        return self.end(message)


__all__ = (
    "format_duration",
    "TaskFormatter",
    "TaskHandler",
    "TaskLogger",
)
