# Core Module - Shared Utilities
#
# Core module provides shared functionality across devcreds:
# - Audit logging
# - Configuration

from .audit_log import (
    AuditLogger,
    EventSeverity,
    EventType,
    get_audit_logger,
    log_security_event,
    set_audit_logger,
)
from .config import StoreConfig, get_config, set_config

__all__ = [
    # Audit Logging
    "AuditLogger",
    "EventType",
    "EventSeverity",
    "get_audit_logger",
    "set_audit_logger",
    "log_security_event",
    # Configuration
    "StoreConfig",
    "get_config",
    "set_config",
]
