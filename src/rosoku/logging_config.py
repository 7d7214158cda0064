import json
import logging
import sys
from pathlib import Path
from typing import Any, cast

from loguru import logger

CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "<level>{message}</level>"
)

# Per-frame chatter from the HTTP/2 stack; only warnings and above are kept.
_TRANSPORT_LOGGERS = ("httpcore", "hpack", "h2")


class InterceptHandler(logging.Handler):
    """Routes standard library logging (e.g. from httpx) into Loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = cast(Any, frame.f_back)
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


def _drop_transport_noise(record: dict[str, Any]) -> bool:
    name = record["name"] or ""
    return not (
        name.startswith(_TRANSPORT_LOGGERS) and record["level"].no < logging.WARNING
    )


def _json_formatter(record: dict[str, Any]) -> str:
    """Structures a record as one JSON line.

    Loguru treats the returned string as a format template, so the JSON text
    is stashed in ``extra`` and referenced from the template rather than
    returned directly.
    """
    log_object = {
        "timestamp": record["time"].isoformat(),
        "level": record["level"].name,
        "message": record["message"],
        "source": {
            "name": record["name"],
            "file": f"{record['file'].name}:{record['line']}",
            "function": record["function"],
        },
        "extra": {k: v for k, v in record["extra"].items() if k != "serialized"},
    }
    record["extra"]["serialized"] = json.dumps(log_object, default=str)
    return "{extra[serialized]}\n"


def setup_logging(
    console_level: str = "INFO",
    file_level: str = "DEBUG",
    log_dir: Path | None = None,
) -> None:
    """Configures the application-wide Loguru logger.

    Console output goes to stderr so that stdout carries only retrieved data.

    Args:
        console_level: The minimum log level for console output.
        file_level: The minimum log level for file output.
        log_dir: Directory for daily-rotated JSON log files. If None, file
            logging is disabled.
    """
    logger.remove()
    logger.add(
        sys.stderr,
        level=console_level.upper(),
        format=CONSOLE_FORMAT,
        colorize=None,
        filter=_drop_transport_noise,
    )

    if log_dir:
        log_dir.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_dir / "rosoku_{time:YYYY-MM-DD}.log",
            level=file_level.upper(),
            format=_json_formatter,
            rotation="00:00",
            retention="7 days",
            compression="zip",
            encoding="utf-8",
            filter=_drop_transport_noise,
            backtrace=False,
            diagnose=False,
        )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)

    logger.debug("Logging configured.")
