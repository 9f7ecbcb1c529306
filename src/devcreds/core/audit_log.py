# Core - Audit Logging
#
# Structured, append-only audit trail for credential store activity.
# Every store, access, removal and unlock attempt is recorded with a
# timestamp and user context. Credential values and passphrases are
# never part of an event.

import logging
import os
import socket
import sys
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional
from uuid import uuid4

import structlog


class EventType(str, Enum):
    """Types of credential store events that can be logged."""

    # Store lifecycle
    STORE_INITIALIZED = "store.initialized"
    STORE_UNLOCKED = "store.unlocked"
    STORE_UNLOCK_FAILED = "store.unlock.failed"
    STORE_LOCKED = "store.locked"

    # Credential events
    CREDENTIAL_STORED = "credential.stored"
    CREDENTIAL_SKIPPED = "credential.skipped"
    CREDENTIAL_ACCESSED = "credential.accessed"
    CREDENTIAL_REMOVED = "credential.removed"
    CREDENTIAL_CORRUPT = "credential.corrupt"

    # Materialization
    ENV_MATERIALIZED = "env.materialized"
    DESCRIPTOR_WRITTEN = "env.descriptor.written"

    # Failures
    LOCK_TIMEOUT = "store.lock.timeout"
    CIPHER_UNAVAILABLE = "cipher.unavailable"
    STORE_ERROR = "store.error"


class EventSeverity(str, Enum):
    """
    Severity levels for credential store events.

    - INFO: Normal activity (logged only)
    - WARNING: Something was skipped or degraded
    - ALERT: A check failed (wrong passphrase, corrupt slot)
    - CRITICAL: The store cannot operate
    """
    INFO = "info"
    WARNING = "warning"
    ALERT = "alert"
    CRITICAL = "critical"


class AuditLogger:
    """
    Append-only audit logger for credential store events.

    Features:
    - Structured JSON logging (structlog)
    - Automatic timestamp and event ID
    - User and host context capture
    - Daily log files under the store's log directory
    """

    def __init__(self, log_dir: Optional[Path] = None):
        """
        Initialize audit logger.

        Args:
            log_dir: Directory for audit logs (default: configured log_dir)
        """
        if log_dir is None:
            from .config import get_config
            log_dir = get_config().log_dir

        self.log_dir = Path(log_dir)
        self.log_dir.mkdir(parents=True, exist_ok=True, mode=0o700)

        structlog.configure(
            processors=[
                structlog.stdlib.add_log_level,
                structlog.stdlib.add_logger_name,
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                structlog.processors.JSONRenderer()
            ],
            wrapper_class=structlog.stdlib.BoundLogger,
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            cache_logger_on_first_use=True,
        )

        self.log_file = self._setup_file_handler()

        self.logger = structlog.get_logger("devcreds.audit")

    def _setup_file_handler(self) -> Path:
        """Attach a daily file handler to the audit logger."""
        today = datetime.now().strftime("%Y-%m-%d")
        log_file = self.log_dir / f"audit_{today}.log"

        file_handler = logging.FileHandler(log_file, mode='a', encoding='utf-8')
        file_handler.setLevel(logging.INFO)
        formatter = logging.Formatter('%(message)s')  # structlog handles formatting
        file_handler.setFormatter(formatter)

        audit_logger = logging.getLogger("devcreds.audit")
        for handler in list(audit_logger.handlers):
            audit_logger.removeHandler(handler)
            handler.close()
        audit_logger.addHandler(file_handler)
        audit_logger.setLevel(logging.INFO)
        audit_logger.propagate = False

        return log_file

    def log_event(
        self,
        event_type: EventType,
        severity: EventSeverity,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        user_context: Optional[Dict[str, Any]] = None
    ) -> str:
        """
        Log a credential store event (append-only).

        Args:
            event_type: Type of event (from EventType enum)
            severity: Severity level (from EventSeverity enum)
            message: Human-readable event description
            details: Additional event details (never secret values)
            user_context: User context (defaults to OS user and host)

        Returns:
            str: Event ID (UUID) for reference
        """
        event_id = str(uuid4())

        event_data = {
            "event_id": event_id,
            "event_type": event_type.value,
            "severity": severity.value,
            "message": message,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "details": details or {},
            "user_context": user_context or self._get_default_user_context(),
        }

        self.logger.info("credential_event", **event_data)

        return event_id

    def log_credential_event(
        self,
        event_type: EventType,
        key: str,
        message: str,
        severity: EventSeverity = EventSeverity.INFO,
        details: Optional[Dict[str, Any]] = None
    ) -> str:
        """Log an event about a single credential key."""
        event_details = dict(details or {})
        event_details["key"] = key

        return self.log_event(
            event_type=event_type,
            severity=severity,
            message=f"Credential {key}: {message}",
            details=event_details
        )

    def _get_default_user_context(self) -> Dict[str, Any]:
        """Get default user context (OS user, hostname, etc.)."""
        return {
            "os_user": os.getenv("USERNAME") or os.getenv("USER"),
            "hostname": socket.gethostname(),
            "platform": sys.platform,
        }


# Global logger instance
_audit_logger: Optional[AuditLogger] = None


def get_audit_logger() -> AuditLogger:
    """Get global audit logger (singleton pattern)."""
    global _audit_logger
    if _audit_logger is None:
        _audit_logger = AuditLogger()
    return _audit_logger


def set_audit_logger(instance: Optional[AuditLogger]) -> None:
    """Replace the singleton (for testing)."""
    global _audit_logger
    _audit_logger = instance


def log_security_event(
    event_type: EventType,
    severity: EventSeverity,
    message: str,
    **kwargs
) -> str:
    """
    Convenience function for logging credential store events.

    Usage:
        log_security_event(
            EventType.LOCK_TIMEOUT,
            EventSeverity.WARNING,
            "Could not acquire store lock",
            details={"timeout": 10.0}
        )
    """
    return get_audit_logger().log_event(event_type, severity, message, **kwargs)
