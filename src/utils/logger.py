"""
Logging infrastructure for the Internship Matcher service.

Uses Loguru for console and rotating file logging plus a separate
audit trail for embedding writes.
"""

import sys
from typing import Any

from loguru import logger

from src.utils.config import get_settings

_configured = False


def setup_logging(force: bool = False) -> None:
    """
    Configure application-wide logging.

    Sets up console and file logging with rotation and retention policies.
    Safe to call more than once; later calls are no-ops unless ``force``.
    """
    global _configured
    if _configured and not force:
        return

    settings = get_settings()
    log_settings = settings.logging

    # Remove default handler
    logger.remove()

    # diagnose=False outside development so stack traces don't leak values
    enable_diagnose = settings.debug and settings.environment == "development"

    if log_settings.console_output:
        logger.add(
            sys.stderr,
            format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
            "<level>{message}</level>",
            level=log_settings.level,
            colorize=True,
            backtrace=True,
            diagnose=enable_diagnose,
        )

    if log_settings.file_output and settings.environment != "testing":
        log_file = log_settings.file_path
        log_file.parent.mkdir(parents=True, exist_ok=True)

        logger.add(
            log_file,
            format=log_settings.format,
            level=log_settings.level,
            rotation=log_settings.rotation,
            retention=log_settings.retention,
            compression="zip",
            backtrace=True,
            diagnose=enable_diagnose,
            enqueue=True,
        )

        # Embedding writes and match reads are kept in their own file
        audit_log_path = log_file.parent / "audit.log"
        logger.add(
            audit_log_path,
            format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level} | {extra[audit_type]} | {message}",
            level="INFO",
            filter=lambda record: "audit_type" in record["extra"],
            rotation="1 week",
            retention="6 months",
            compression="zip",
            enqueue=True,
        )

    _configured = True
    logger.info(f"Logging initialized - Level: {log_settings.level}")


def get_logger(name: str) -> Any:
    """
    Get a logger instance with the specified name.

    Args:
        name: The name for the logger (typically __name__)

    Returns:
        A configured logger instance
    """
    return logger.bind(name=name)


def _sanitize_for_logging(data: Any) -> Any:
    """Redact passwords, tokens and other sensitive fields before logging."""
    if isinstance(data, dict):
        sensitive_keys = {
            "password", "passwd", "pwd", "secret", "token", "api_key",
            "apikey", "auth", "credential", "private_key", "access_token",
            "refresh_token", "service_key",
        }
        return {
            k: "***REDACTED***" if any(s in k.lower() for s in sensitive_keys) else _sanitize_for_logging(v)
            for k, v in data.items()
        }
    elif isinstance(data, list):
        return [_sanitize_for_logging(item) for item in data]
    return data


def audit_log(
    action: str,
    details: dict[str, Any],
    audit_type: str = "EMBEDDING",
) -> None:
    """
    Log an audit entry.

    Args:
        action: The action being audited (e.g., "embedding_upserted")
        details: Dictionary of relevant details
        audit_type: Type of audit entry (EMBEDDING, MATCH)
    """
    sanitized_details = _sanitize_for_logging(details)
    logger.bind(audit_type=audit_type).info(f"{action} | {sanitized_details}")


# Module-level logger for quick access
log = logger
