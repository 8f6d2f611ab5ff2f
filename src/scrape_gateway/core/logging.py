"""Loguru structured logging configuration.

Provides JSON-formatted structured logging with configurable log level
and request context.  Optionally writes to a rotating log file when a
``log_dir`` is provided.  Every configured secret is scrubbed from log
messages before any sink sees them.
"""

import sys
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from loguru import logger

_LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level:<8} | {name}:{function}:{line} | {message}"

REDACTED = "[REDACTED]"

_secrets: tuple[str, ...] = ()


def redact_secrets(text: str, secrets: Iterable[str] | None = None) -> str:
    """Replace every occurrence of a known secret in ``text``.

    Args:
        text: The text to scrub.
        secrets: Secrets to remove.  Defaults to the secrets registered by
            :func:`setup_logging`.

    Returns:
        The text with each secret replaced by ``[REDACTED]``.
    """
    for secret in secrets if secrets is not None else _secrets:
        if secret:
            text = text.replace(secret, REDACTED)
    return text


def _redacting_patcher(record: dict[str, Any]) -> None:
    record["message"] = redact_secrets(record["message"])


def register_secrets(secrets: Iterable[str]) -> None:
    """Register secrets that must never appear in log output."""
    global _secrets  # noqa: PLW0603
    _secrets = tuple(s for s in secrets if s)


def setup_logging(log_level: str = "INFO", log_dir: str | None = None, secrets: Iterable[str] = ()) -> None:
    """Configure Loguru for structured JSON logging.

    Args:
        log_level: Minimum log level to emit.
        log_dir: Optional directory for log files.  When set, a rotating
            file sink is added (rotated every 24 hours, retained 7 days).
        secrets: Credential values scrubbed from every log message.
    """
    register_secrets(secrets)
    logger.remove()
    logger.configure(patcher=_redacting_patcher)
    logger.add(
        sys.stderr,
        level=log_level.upper(),
        format=_LOG_FORMAT,
        serialize=False,
    )
    logger.add(
        sys.stderr,
        level=log_level.upper(),
        serialize=True,
        filter=lambda record: record["extra"].get("json_output", False),
    )

    if log_dir:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_path / "scrape-gateway.log",
            level=log_level.upper(),
            format=_LOG_FORMAT,
            rotation="24h",
            retention="7 days",
        )
