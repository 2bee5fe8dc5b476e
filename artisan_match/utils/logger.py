"""
Logging infrastructure for Artisan Match.

Loguru writes to the console, to a rotating application log and to an
audit log. The audit log records what reached (or was kept out of) the
vector index and which embedding provider was chosen at startup.
"""

import sys
from typing import Any

from loguru import logger

from artisan_match.utils.config import get_settings

# INDEX: index created or vector upserted
# BLOCKED: invalid embedding kept out of the index
# CONFIG: provider chosen or replaced at configuration time
AUDIT_TYPES = ("INDEX", "BLOCKED", "CONFIG")

# Provider credentials that may appear in CONFIG audit details
REDACTED_KEYS = frozenset({"api_key", "authorization", "organization"})

CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{extra[name]}</cyan> | "
    "<level>{message}</level>"
)
AUDIT_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {extra[audit_type]} | {message}"


def _is_audit_record(record: dict) -> bool:
    return record["extra"].get("audit_type") in AUDIT_TYPES


def setup_logging() -> None:
    """
    Configure console, application and audit sinks from LoggingSettings.

    Audit records go to audit.log next to the application log and are
    kept out of the other sinks.
    """
    settings = get_settings()
    log_settings = settings.logging

    logger.remove()
    logger.configure(extra={"name": "artisan_match"})

    def not_audit(record: dict) -> bool:
        return not _is_audit_record(record)

    if log_settings.console_output:
        logger.add(
            sys.stderr,
            format=CONSOLE_FORMAT,
            level=log_settings.level,
            filter=not_audit,
            colorize=True,
            diagnose=settings.debug,
        )

    log_file = log_settings.file_path
    log_file.parent.mkdir(parents=True, exist_ok=True)

    logger.add(
        log_file,
        format=log_settings.format,
        level=log_settings.level,
        filter=not_audit,
        rotation=log_settings.rotation,
        retention=log_settings.retention,
        compression="zip",
        diagnose=False,
        enqueue=True,
    )

    logger.add(
        log_file.parent / "audit.log",
        format=AUDIT_FORMAT,
        level="INFO",
        filter=_is_audit_record,
        rotation=log_settings.rotation,
        retention=log_settings.retention,
        enqueue=True,
    )

    logger.debug(f"Logging initialized at {log_settings.level} ({settings.environment})")


def get_logger(name: str) -> Any:
    """Logger bound to a module name (pass __name__)."""
    return logger.bind(name=name)


def redact(details: Any) -> Any:
    """Copy of audit details with provider credentials masked."""
    if isinstance(details, dict):
        return {
            key: "***" if str(key).lower() in REDACTED_KEYS else redact(value)
            for key, value in details.items()
        }
    if isinstance(details, (list, tuple)):
        return [redact(item) for item in details]
    return details


def audit_log(
    action: str,
    details: dict[str, Any],
    audit_type: str = "INDEX",
) -> None:
    """
    Write one audit record.

    Args:
        action: What happened, e.g. "vector_upserted" or "provider_fallback"
        details: Identifiers and settings relevant to the action
        audit_type: One of AUDIT_TYPES

    Raises:
        ValueError: If audit_type is not a known audit type
    """
    if audit_type not in AUDIT_TYPES:
        raise ValueError(f"Unknown audit type: {audit_type}")
    logger.bind(audit_type=audit_type).info(f"{action} | {redact(details)}")


log = logger


try:
    setup_logging()
except Exception:
    # Read-only filesystem or missing settings: keep loguru's default sink
    pass
