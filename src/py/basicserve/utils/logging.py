import os
import sys
import time
from enum import Enum
from typing import Any, ClassVar, NamedTuple, TypeAlias
from contextvars import ContextVar

ERR = sys.stderr

# SEE: https://no-color.org/
NO_COLOR: bool = "NO_COLOR" in os.environ
FORCE_COLOR: bool = "FORCE_COLOR" in os.environ
COLOR: bool = FORCE_COLOR or (not NO_COLOR and ERR.isatty())

LogOrigin: ContextVar[str] = ContextVar("LogOrigin", default="basicserve")

TValue: TypeAlias = bool | int | float | str | bytes | None


class Term:
	BOLD: ClassVar[str] = "\033[1m" if COLOR else ""
	RESET: ClassVar[str] = "\033[0m" if COLOR else ""

	@staticmethod
	def Color(color: int) -> str:
		return f"\033[0;38;5;{color}m" if COLOR else ""


class LogType(Enum):
	Message = 0
	Event = 20


class LogLevel(Enum):
	Debug = 0
	Info = 10
	Warning = 30
	Error = 40
	Exception = 50

	@staticmethod
	def Parse(text: str | None, default: "LogLevel") -> "LogLevel":
		"""Parses a level name like `debug` or `WARNING`, falling back to
		`default` for unknown names."""
		for level in LogLevel:
			if text and level.name.lower() == text.strip().lower():
				return level
		return default


LOG_LEVEL_COLOR = {
	LogLevel.Debug: 31,
	LogLevel.Info: 75,
	LogLevel.Warning: 202,
	LogLevel.Error: 160,
	LogLevel.Exception: 124,
}

# The threshold below which entries are dropped.
LEVEL: list[LogLevel] = [
	LogLevel.Parse(os.getenv("BASICSERVE_LOG"), LogLevel.Info)
]


class LogEntry(NamedTuple):
	origin: str
	time: float
	type: LogType = LogType.Message
	level: LogLevel = LogLevel.Info
	message: str | None = None
	name: str | None = None
	value: Any = None
	context: dict[str, TValue] | None = None


def setLevel(level: LogLevel | str) -> LogLevel:
	LEVEL[0] = (
		level if isinstance(level, LogLevel) else LogLevel.Parse(level, LEVEL[0])
	)
	return LEVEL[0]


def isEnabled(level: LogLevel) -> bool:
	return level.value >= LEVEL[0].value


def formatData(value: Any) -> str:
	if value is None or value == () or value == [] or value == {}:
		return ""
	elif isinstance(value, dict):
		return " ".join(
			f"{Term.BOLD}{k}{Term.RESET}={formatData(v)}" for k, v in value.items()
		)
	elif isinstance(value, list) or isinstance(value, tuple):
		return ",".join(formatData(v) for v in value)
	elif isinstance(value, str):
		return repr(value) if " " in value else value
	elif isinstance(value, bool):
		return "✓" if value else "✗"
	elif isinstance(value, float):
		return f"{value:0.2f}"
	else:
		return str(value)


def send(entry: LogEntry) -> LogEntry:
	if not isEnabled(entry.level):
		return entry
	clr: str = Term.Color(LOG_LEVEL_COLOR[entry.level])
	context: str = formatData(entry.context)
	if entry.type == LogType.Event:
		ERR.write(
			f"{clr}{Term.BOLD}[{entry.origin}] {entry.name}{Term.RESET} {formatData(entry.value)} {context}{Term.RESET}\n"
		)
	else:
		ERR.write(
			f"{clr}{Term.BOLD}[{entry.origin}]{Term.RESET} {entry.message}{f' {context}' if context else ''}{Term.RESET}\n"
		)
	ERR.flush()
	return entry


def entry(
	*,
	type: LogType = LogType.Message,
	level: LogLevel = LogLevel.Info,
	message: str | None = None,
	name: str | None = None,
	value: Any = None,
	context: dict[str, TValue],
) -> LogEntry:
	return LogEntry(
		origin=LogOrigin.get(),
		time=time.time(),
		type=type,
		level=level,
		message=message,
		name=name,
		value=value,
		context=context,
	)


def debug(message: str, **context: TValue) -> LogEntry:
	return send(entry(message=message, level=LogLevel.Debug, context=context))


def info(message: str, **context: TValue) -> LogEntry:
	return send(entry(message=message, context=context))


def warning(message: str, **context: TValue) -> LogEntry:
	return send(entry(message=message, level=LogLevel.Warning, context=context))


def error(message: str, code: int | str | None = None, **context: TValue) -> LogEntry:
	return send(
		entry(message=message, value=code, level=LogLevel.Error, context=context)
	)


def event(event: str, value: Any = None, **context: TValue) -> LogEntry:
	return send(entry(name=event, value=value, type=LogType.Event, context=context))


def exception(
	exception: BaseException,
	message: str | None = None,
) -> BaseException:
	try:
		stream = ERR
		stream.write(
			f"!!! EXCP {f'{message}: [{exception.__class__.__name__}] {exception}' if message else f'[{exception.__class__.__name__}] {exception}'}\n"
		)
		tb = exception.__traceback__
		while tb:
			code = tb.tb_frame.f_code
			stream.write(
				f"... in {code.co_name:15s} at {tb.tb_lineno:4d} in {code.co_filename}\n",
			)
			tb = tb.tb_next
		stream.flush()
	except Exception:  # nosec: B110
		# Swallow all exceptions so that this function can be called from an exception
		# handler safely.
		pass

	# Return the exception so that this function can be called like:
	#   raise exception(e)
	return exception


def logged(item: Any) -> bool:
	"""Takes one of the logging function, and tells if it is currently
	enabled. This is used to guard against building expensive entries
	when they would be dropped."""
	if item is debug:
		return isEnabled(LogLevel.Debug)
	elif item is warning:
		return isEnabled(LogLevel.Warning)
	elif item is error:
		return isEnabled(LogLevel.Error)
	else:
		return isEnabled(LogLevel.Info)


# EOF
