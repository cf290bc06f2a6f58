"""Structured logger with pluggable renderers.

A BoundLogger carries bound context and hands every entry to one renderer:
- ConsoleRenderer: human-readable lines for development
- CloudRenderer: one CloudWatch event per entry for production

Loggers are plain values passed to whoever needs them; nothing here touches
process-wide logging state.

Quick Start:
    >>> log = BoundLogger(renderer=ConsoleRenderer())
    >>> log.info("cache warmed", entries=512)
    # => 10:30:45.123 [info] cache warmed entries=512
    >>> log = log.bind(request_id="abc")
    >>> log.error("lookup failed", err=KeyError("user"))
"""

from __future__ import annotations

import logging
import sys
import time
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Callable, NoReturn, Protocol, TextIO, runtime_checkable

from slogcloud.foundation.errors import JsonDict, JsonValue, SlogcloudError
from slogcloud.io.cloud import LogRecord

if TYPE_CHECKING:
    from slogcloud.io.cloud import EmissionHandler

_diagnostics = logging.getLogger("slogcloud.logger")

FATAL = logging.CRITICAL
_LEVEL_NAMES = {logging.DEBUG: "debug", logging.INFO: "info", logging.WARNING: "warning",
                logging.ERROR: "error", FATAL: "fatal"}


# ─────────────────────────────────────────────────────────────────────────────
# Core Logger Protocol & Implementation
# ─────────────────────────────────────────────────────────────────────────────


@runtime_checkable
class Logger(Protocol):
    """Uniform logging surface shared by every backend."""

    def debug(self, event: str, **kw: object) -> None: ...
    def info(self, event: str, **kw: object) -> None: ...
    def warning(self, event: str, **kw: object) -> None: ...
    def error(self, event: str, err: BaseException | None = None, **kw: object) -> None: ...
    def fatal(self, event: str, err: BaseException | None = None, **kw: object) -> NoReturn: ...


@dataclass(slots=True)
class LogEntry:
    """One log call with all context."""

    timestamp: float
    level: str
    event: str
    context: JsonDict

    @property
    def ts_human(self) -> str:
        """UTC wall time as HH:MM:SS.mmm."""
        return datetime.fromtimestamp(self.timestamp, tz=UTC).strftime("%H:%M:%S.%f")[:-3]


@dataclass(slots=True)
class BoundLogger:
    """Logger carrying key/value context; bind() and unbind() return new loggers.

    Renderer failures (e.g. EmissionError from the cloud backend) propagate to
    the caller of the log method, except for fatal(), which always exits.

    Example:
        >>> log = BoundLogger(context={"service": "api"}, renderer=ConsoleRenderer())
        >>> log.info("order placed", order_id=17)
        # => 10:30:45.123 [info] order placed order_id=17 service="api"
    """

    renderer: LogRenderer
    context: JsonDict = field(default_factory=dict)
    level: int = logging.DEBUG
    exit: Callable[[int], object] = field(default=sys.exit, repr=False)

    def bind(self, **kw: JsonValue) -> BoundLogger:
        """Copy with extra context; new keys win."""
        return BoundLogger(self.renderer, {**self.context, **kw}, self.level, self.exit)

    def unbind(self, *keys: str) -> BoundLogger:
        """Copy without the given context keys."""
        return BoundLogger(self.renderer, {k: v for k, v in self.context.items() if k not in keys}, self.level, self.exit)

    def _log(self, level: int, event: str, fields: JsonDict) -> None:
        # fields may use any key, "level" and "fatal" included
        if level < self.level:
            return
        self.renderer.render(LogEntry(time.time(), _LEVEL_NAMES.get(level, "info"), event, {**self.context, **fields}))

    def debug(self, event: str, **kw: object) -> None: self._log(logging.DEBUG, event, kw)
    def info(self, event: str, **kw: object) -> None: self._log(logging.INFO, event, kw)
    def warning(self, event: str, **kw: object) -> None: self._log(logging.WARNING, event, kw)

    warn = warning

    def error(self, event: str, err: BaseException | None = None, **kw: object) -> None:
        """Log an error; ``err`` is recorded as its text under the "error" key."""
        if err is not None:
            kw["error"] = str(err)
        self._log(logging.ERROR, event, kw)

    def fatal(self, event: str, err: BaseException | None = None, **kw: object) -> NoReturn:
        """Log under the "fatal" key, then exit with status 1 whether or not the entry was delivered."""
        try:
            self._log(FATAL, event, {**kw, "fatal": err})
        except SlogcloudError as e:
            _diagnostics.error(f"Fatal log entry not delivered: {e}")
        finally:
            self.exit(1)
        raise SystemExit(1)  # only reached when exit was replaced by a non-raising callable


# ─────────────────────────────────────────────────────────────────────────────
# Renderers
# ─────────────────────────────────────────────────────────────────────────────


@runtime_checkable
class LogRenderer(Protocol):
    """Output backend of a BoundLogger. May raise; BoundLogger does not catch."""

    def render(self, entry: LogEntry) -> None: ...


@dataclass(slots=True)
class ConsoleRenderer:
    """Writes ``[HH:MM:SS.mmm] [level] event key=value ...`` lines, keys sorted.

    Colors are used only when ``colors`` is True, or left as None and the
    output is a terminal.
    """

    output: TextIO = field(default_factory=lambda: sys.stdout)
    colors: bool | None = None
    show_timestamp: bool = True

    def __post_init__(self) -> None:
        if self.colors is None:
            isatty = getattr(self.output, "isatty", None)
            self.colors = bool(isatty and isatty())

    def render(self, entry: LogEntry) -> None:
        paint = _paint if self.colors else _plain
        head = [paint("dim", entry.ts_human)] if self.show_timestamp else []
        head.append(paint(_LEVEL_STYLE.get(entry.level, "dim"), f"[{entry.level}]"))
        head.append(paint("bold", entry.event))
        pairs = [f"{paint('cyan', key)}={_format_value(value, paint)}" for key, value in sorted(entry.context.items())]
        self.output.write(" ".join(head + pairs) + "\n")


@dataclass(slots=True)
class CloudRenderer:
    """Sends each entry to CloudWatch through an EmissionHandler. Level is not part of the payload."""

    handler: EmissionHandler

    def render(self, entry: LogEntry) -> None:
        self.handler.emit(LogRecord(entry.event, entry.context))


# ─────────────────────────────────────────────────────────────────────────────
# Console formatting
# ─────────────────────────────────────────────────────────────────────────────

_ANSI = {"reset": "0", "bold": "1", "dim": "2", "red": "31", "green": "32", "yellow": "33",
         "blue": "34", "cyan": "36", "white": "37", "fatal": "1;31"}
_LEVEL_STYLE = {"debug": "dim", "info": "green", "warning": "yellow", "error": "red", "fatal": "fatal"}

Painter = Callable[[str, str], str]


def _paint(style: str, text: str) -> str:
    return f"\033[{_ANSI[style]}m{text}\033[0m"


def _plain(style: str, text: str) -> str:
    return text


def _format_value(v: object, paint: Painter) -> str:
    """Render one context value: strings and errors quoted, containers summarized."""
    match v:
        case None:
            return paint("dim", "null")
        case bool():
            return paint("blue", "true" if v else "false")
        case int() | float():
            return paint("blue", str(v))
        case str():
            return paint("yellow", f'"{v}"')
        case BaseException():
            return paint("red", f'"{v}"')
        case dict():
            return paint("dim", f"{{{len(v)} keys}}")
        case list() | tuple():
            return paint("dim", f"[{len(v)} items]")
        case _:
            return paint("white", repr(v))
