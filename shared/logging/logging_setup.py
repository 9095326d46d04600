from datetime import datetime
from pytz import timezone
import logging.config
import logging
import os
from logging import Logger

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# third-party loggers that are only interesting when debugging
NOISY_LOGGERS = ("httpx", "httpcore", "pymongo", "motor")

# names accepted by the color= keyword
_ANSI_RESET = "\033[0m"
_COLOR_MAP: dict[str, str] = {
    "cyan": "\033[36m",
    "green": "\033[32m",
    "yellow": "\033[33m",
    "red": "\033[31m",
    "magenta": "\033[35m",
    "blue": "\033[34m",
    "white": "\033[37m",
}

_LEVEL_MARKERS = {
    logging.WARNING: "⚠️ ",
    logging.ERROR: "⛔ ",
    logging.CRITICAL: "⛔ ",
}


def is_debug_mode() -> bool:
    return os.getenv("LOG_LEVEL", "info").lower() == "debug"


class CustomFormatter(logging.Formatter):
    """Formats timestamps in the configured timezone and marks warnings and errors."""

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
            # a third-party record with a broken format string
            return ""
        record.msg = _LEVEL_MARKERS.get(record.levelno, "") + message
        record.args = ()
        return super().format(record)


class ColoredFormatter(CustomFormatter):
    """Console formatter. Wraps a line in ANSI codes when the record carries a ``color`` attribute."""

    def format(self, record) -> str:
        line = super().format(record)
        ansi = _COLOR_MAP.get(getattr(record, "color", None) or "", "")
        if not line or not ansi:
            return line
        return f"{ansi}{line}{_ANSI_RESET}"


class ColorLogger:
    """Logger wrapper whose log methods accept ``color=``, e.g. ``logger.info("ready", color="green")``.

    Anything else (setLevel, handlers, ...) is delegated to the wrapped logger.
    """

    def __init__(self, logger: Logger):
        self._logger = logger

    def log(self, level: int, msg, *args, color: str | None = None, **kwargs):
        if color is not None:
            kwargs["extra"] = {**(kwargs.get("extra") or {}), "color": color}
        kwargs.setdefault("stacklevel", 2)
        self._logger.log(level, msg, *args, **kwargs)

    def debug(self, msg, *args, **kwargs):
        self.log(logging.DEBUG, msg, *args, stacklevel=3, **kwargs)

    def info(self, msg, *args, **kwargs):
        self.log(logging.INFO, msg, *args, stacklevel=3, **kwargs)

    def warning(self, msg, *args, **kwargs):
        self.log(logging.WARNING, msg, *args, stacklevel=3, **kwargs)

    def error(self, msg, *args, **kwargs):
        self.log(logging.ERROR, msg, *args, stacklevel=3, **kwargs)

    def critical(self, msg, *args, **kwargs):
        self.log(logging.CRITICAL, msg, *args, stacklevel=3, **kwargs)

    def exception(self, msg, *args, **kwargs):
        kwargs.setdefault("exc_info", True)
        self.log(logging.ERROR, msg, *args, stacklevel=3, **kwargs)

    def __getattr__(self, name):
        return getattr(self._logger, name)


def _formatter(factory: type, tz_name: str) -> dict:
    return {"()": factory, "format": LOG_FORMAT, "datefmt": LOG_DATE_FORMAT, "tz_name": tz_name}


def setup_logging(name: str = "crm_search_bridge") -> ColorLogger:
    """Configure console and file logging and return the application logger.

    Environment:
        LOG_LEVEL: "debug" enables debug output, including third-party client logs.
        ROOT_DIR:  Base directory for logs/ (current directory if unset).
        LOG_FILE:  File name inside logs/ (default "app.log").
        TIMEZONE:  Timezone of log timestamps (default "Europe/Berlin").
    """
    debug_mode = is_debug_mode()
    level = logging.DEBUG if debug_mode else logging.INFO
    tz_name = os.getenv("TIMEZONE", "Europe/Berlin")
    log_dir = os.path.join(os.getenv("ROOT_DIR", os.getcwd()), "logs")
    os.makedirs(log_dir, exist_ok=True)

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "standard": _formatter(CustomFormatter, tz_name),
                "colored": _formatter(ColoredFormatter, tz_name),
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "colored",
                    "level": level,
                    "stream": "ext://sys.stdout",
                },
                "file": {
                    "class": "logging.FileHandler",
                    "formatter": "standard",
                    "level": level,
                    "filename": os.path.join(log_dir, os.getenv("LOG_FILE", "app.log")),
                    "encoding": "utf-8",
                },
            },
            "root": {"handlers": ["console", "file"], "level": level},
        }
    )

    for noisy in NOISY_LOGGERS:
        logging.getLogger(noisy).setLevel(logging.DEBUG if debug_mode else logging.WARNING)

    return ColorLogger(logging.getLogger(name))
