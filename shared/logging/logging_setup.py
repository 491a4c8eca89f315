import logging
import logging.config
import os
import sys
from datetime import datetime
from logging import Logger

from pytz import timezone

APP_LOGGER_NAME = "handbook_search"
LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

debug_mode = os.getenv("LOG_LEVEL", "info").lower() == "debug"
loglevel = logging.INFO if not debug_mode else logging.DEBUG

# CLI outcome colours: success, partial success, failure
_ANSI_RESET = "\033[0m"
_COLOR_MAP: dict[str, str] = {
    "green":  "\033[32m",
    "yellow": "\033[33m",
    "red":    "\033[31m",
}

_LEVEL_PREFIXES: dict[int, str] = {
    logging.CRITICAL: "🔥 ",
    logging.ERROR: "⛔ ",
    logging.WARNING: "⚠️ ",
}


class SecretRedactFilter(logging.Filter):
    """Replace configured API keys in log messages with a placeholder.

    Provider error bodies and request dumps may echo the subscription key back,
    so every environment variable ending in ``_API_KEY`` is masked before a
    record reaches a handler.
    """

    def __init__(self, secrets: list[str] | None = None):
        super().__init__()
        if secrets is None:
            secrets = [val for key, val in os.environ.items() if key.endswith("_API_KEY") and val]
        self._secrets = [s for s in secrets if len(s) >= 4]

    def filter(self, record):
        if not self._secrets:
            return True
        try:
            msg = record.getMessage()
        except (TypeError, ValueError):
            return True
        redacted = msg
        for secret in self._secrets:
            redacted = redacted.replace(secret, "***")
        if redacted != msg:
            record.msg = redacted
            record.args = ()
        return True


class CustomFormatter(logging.Formatter):
    """Formats timestamps in a configured time zone and prefixes warnings and errors."""

    def __init__(self, tz_name, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.tz = timezone(tz_name)

    def formatTime(self, record, datefmt=None):
        dt = datetime.fromtimestamp(record.created, self.tz)
        return dt.strftime(datefmt) if datefmt else dt.isoformat()

    def format(self, record):
        try:
            message = record.getMessage()
        except (TypeError, ValueError):
            message = str(record.msg)

        # level prefix on a copy, the next handler sees the untouched record
        record = logging.makeLogRecord(record.__dict__)
        record.msg = _LEVEL_PREFIXES.get(record.levelno, "") + message
        record.args = ()
        return super().format(record)


class ColoredFormatter(CustomFormatter):
    """Console formatter that wraps a line in ANSI colour when the record asks for it.

    Colour is requested with ``color=<name>`` on :class:`ColorLogger` methods
    and is dropped entirely when ``use_color`` is False.
    """

    def __init__(self, tz_name, *args, use_color: bool = True, **kwargs):
        super().__init__(tz_name, *args, **kwargs)
        self.use_color = use_color

    def format(self, record) -> str:
        line = super().format(record)
        ansi = _COLOR_MAP.get(getattr(record, "color", None) or "", "")
        if not self.use_color or not ansi:
            return line
        return f"{ansi}{line}{_ANSI_RESET}"


class ColorLogger:
    """Wraps a :class:`logging.Logger` and adds an optional ``color=`` keyword.

    Usage::

        logger.info("Import finished", color="green")
        logger.error("Import failed: %s", exc, color="red")

    Only the console handler renders colours; the log file stays plain text.
    """

    def __init__(self, logger: Logger):
        self._logger = logger

    def _log(self, level: int, msg, args, color: str | None, kwargs: dict) -> None:
        if color is not None:
            kwargs = {**kwargs, "extra": {**(kwargs.get("extra") or {}), "color": color}}
        kwargs.setdefault("stacklevel", 3)
        self._logger.log(level, msg, *args, **kwargs)

    def debug(self, msg, *args, color: str | None = None, **kwargs):
        self._log(logging.DEBUG, msg, args, color, kwargs)

    def info(self, msg, *args, color: str | None = None, **kwargs):
        self._log(logging.INFO, msg, args, color, kwargs)

    def warning(self, msg, *args, color: str | None = None, **kwargs):
        self._log(logging.WARNING, msg, args, color, kwargs)

    def error(self, msg, *args, color: str | None = None, **kwargs):
        self._log(logging.ERROR, msg, args, color, kwargs)

    def critical(self, msg, *args, color: str | None = None, **kwargs):
        self._log(logging.CRITICAL, msg, args, color, kwargs)

    def exception(self, msg, *args, color: str | None = None, **kwargs):
        kwargs.setdefault("exc_info", True)
        self._log(logging.ERROR, msg, args, color, kwargs)

    def __getattr__(self, name):
        """Delegate all other Logger attributes (e.g. setLevel, handlers) transparently."""
        return getattr(self._logger, name)


def console_supports_color() -> bool:
    """Colour is off for NO_COLOR and for consoles that are not a terminal (pipes, CI logs)."""
    if os.getenv("NO_COLOR"):
        return False
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def build_logging_config(log_dir: str, tz_name: str, level: int, use_color: bool) -> dict:
    """Return the dictConfig for a console handler and a plain-text file handler under log_dir."""
    formatter_args = {"format": LOG_FORMAT, "datefmt": DATE_FORMAT, "tz_name": tz_name}
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "redact_secrets": {"()": SecretRedactFilter},
        },
        "formatters": {
            "standard": {"()": CustomFormatter, **formatter_args},
            "colored": {"()": ColoredFormatter, "use_color": use_color, **formatter_args},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "colored",
                "filters": ["redact_secrets"],
                "level": level,
                "stream": "ext://sys.stdout",
            },
            "file": {
                "class": "logging.FileHandler",
                "formatter": "standard",
                "filters": ["redact_secrets"],
                "level": level,
                "filename": os.path.join(log_dir, "app.log"),
                "encoding": "utf-8",
            },
        },
        "root": {
            "handlers": ["console", "file"],
            "level": level,
        },
        "loggers": {
            # request and SQL echo only in debug mode
            "httpx": {"level": logging.DEBUG if level <= logging.DEBUG else logging.WARNING},
            "sqlalchemy.engine": {"level": logging.INFO if level <= logging.DEBUG else logging.WARNING},
        },
    }


def setup_logging() -> ColorLogger:
    log_dir = os.path.join(os.getenv("ROOT_DIR", os.getcwd()), "logs")
    tz_name = os.getenv("TIMEZONE", "Europe/Prague")
    os.makedirs(log_dir, exist_ok=True)

    logging.config.dictConfig(build_logging_config(log_dir, tz_name, loglevel, console_supports_color()))
    return ColorLogger(logging.getLogger(APP_LOGGER_NAME))
