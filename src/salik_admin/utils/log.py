# utils/log.py
import logging
from datetime import datetime
from pathlib import Path
from typing import cast

import structlog

# Third-party loggers that are chatty at INFO (one line per HTTP request)
_NOISY_LOGGERS = ("httpx", "httpcore", "hpack")


def _shared_processors() -> list[structlog.typing.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]


def setup_logging(
    session_id: str | None = None,
    log_level: str = "INFO",
    console_output: bool = True,
    log_dir: Path = Path("logs"),
) -> Path:
    """
    Configure structured logging for an admin session.

    Every session gets its own JSONL file under ``log_dir``; the console gets a
    human-readable rendering unless ``console_output`` is False (``--quiet``).

    Args:
        session_id: Session identifier for log file naming
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        console_output: Whether to output logs to console (default: True)
        log_dir: Directory holding the session files

    Returns:
        The session log file Path.
    """
    log_dir.mkdir(parents=True, exist_ok=True)
    if session_id is None:
        session_id = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = log_dir / f"admin_session_{session_id}.jsonl"

    level = getattr(logging, log_level.upper(), logging.INFO)
    logging.root.handlers.clear()
    logging.root.setLevel(level)

    shared_processors = _shared_processors()

    if console_output:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(
            structlog.stdlib.ProcessorFormatter(
                processors=[*shared_processors, structlog.dev.ConsoleRenderer()]
            )
        )
        logging.root.addHandler(console_handler)

    file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
    file_handler.setLevel(level)
    file_handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[*shared_processors, structlog.processors.JSONRenderer()]
        )
    )
    logging.root.addHandler(file_handler)

    # httpx logs every request at INFO; our own api/storage events cover that
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    return log_file


def get_logger(name: str) -> structlog.BoundLogger:
    """Return a bound logger for a module/package."""
    return cast(structlog.BoundLogger, structlog.get_logger(name))
