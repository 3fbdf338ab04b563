"""Core application configuration and utilities."""

from pregsafe.core.audit import AuditEntry, AuditType, DecisionType, audit_logger
from pregsafe.core.config import settings
from pregsafe.core.errors import (
    AuditError,
    EmptyMedicationListError,
    InvalidCategoryError,
    InvalidTrimesterError,
    OutOfRangeWeekError,
    PregnancySafetyError,
    UnknownConditionError,
)

__all__ = [
    # Config
    "settings",
    # Audit
    "AuditEntry",
    "AuditType",
    "DecisionType",
    "audit_logger",
    # Errors
    "AuditError",
    "EmptyMedicationListError",
    "InvalidCategoryError",
    "InvalidTrimesterError",
    "OutOfRangeWeekError",
    "PregnancySafetyError",
    "UnknownConditionError",
]
