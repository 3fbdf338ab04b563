"""Audit trail entries for pregnancy medication assessments.

Every safety check, interaction check and composite risk calculation, and
every provider or patient decision made on top of one, is recorded as an
AuditEntry. Entries are written to the dedicated "audit" logger here and
persisted by pregsafe.services.audit_store.

Records must be retained for at least 7 years.
"""

from datetime import UTC, datetime
from enum import Enum
import hashlib
import json
import logging
import secrets
from typing import Any

from pydantic import BaseModel, Field

from pregsafe.core.errors import AuditError

# Separate audit logger for assessment and decision events
audit_logger = logging.getLogger("audit")

RETENTION_YEARS = 7


class AuditType(str, Enum):
    """Types of audited events."""

    SAFETY_CHECK = "safety_check"
    INTERACTION_CHECK = "interaction_check"
    RISK_CALCULATION = "risk_calculation"
    PROVIDER_DECISION = "provider_decision"
    PATIENT_DECISION = "patient_decision"
    MEDICATION_STARTED = "medication_started"
    MEDICATION_STOPPED = "medication_stopped"
    MEDICATION_CHANGED = "medication_changed"
    ADVERSE_EVENT = "adverse_event"
    PROVIDER_CONSULTATION = "provider_consultation"


class DecisionType(str, Enum):
    """Decisions taken after an assessment."""

    CONTINUE = "continue"
    DISCONTINUE = "discontinue"
    SWITCH = "switch"
    DEFER = "defer_to_provider"
    EMERGENCY = "emergency_referral"


class Party(BaseModel):
    """Provider or prescriber attached to an entry."""

    id: str | None = None
    name: str | None = None
    type: str | None = None


class AuditEntry(BaseModel):
    """Audit trail record.

    ``data`` mirrors the assessment or decision being recorded;
    ``assessment_hash`` fingerprints it so a stored entry can be checked
    against a recomputed assessment.
    """

    id: str = Field(default_factory=lambda: generate_entry_id())
    type: AuditType = Field(..., description="Type of audited event")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    patient_id: str | None = Field(None, description="Patient ID if applicable")
    session_id: str | None = Field(None, description="Links related entries")
    data: dict[str, Any] = Field(default_factory=dict)
    provider: Party | None = None
    prescriber: Party | None = None
    critical: bool = Field(False, description="Flag for special attention")
    assessment_hash: str | None = None

    def verify_hash(self) -> bool:
        return self.assessment_hash == compute_hash(self.data)


def generate_entry_id() -> str:
    """Generate an id of the form audit_<epoch ms>_<random>."""
    timestamp = int(datetime.now(UTC).timestamp() * 1000)
    return f"audit_{timestamp}_{secrets.token_hex(4)}"


def compute_hash(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON form of ``data``."""
    canonical = json.dumps(data, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def _record(
    entry_type: AuditType,
    data: dict[str, Any],
    patient_id: str | None = None,
    session_id: str | None = None,
    provider: Party | None = None,
    prescriber: Party | None = None,
    critical: bool = False,
) -> AuditEntry:
    entry = AuditEntry(
        type=entry_type,
        patient_id=patient_id,
        session_id=session_id,
        data=data,
        provider=provider,
        prescriber=prescriber,
        critical=critical,
        assessment_hash=compute_hash(data),
    )

    log_level = logging.WARNING if critical else logging.INFO
    audit_logger.log(
        log_level,
        f"AUDIT: {entry_type.value} {entry.id}"
        f"{f' patient={patient_id}' if patient_id else ''}"
        f"{f' session={session_id}' if session_id else ''}",
        extra={"audit_entry": entry.model_dump(mode="json")},
    )
    return entry


def _require_patient(patient_id: str | None, what: str) -> None:
    if not patient_id:
        raise AuditError(f"Patient ID is required for {what}")


# ============================================================================
# Assessment Entries
# ============================================================================


def safety_check_entry(
    *,
    medication_name: str,
    week: int,
    trimester: int,
    score: int,
    risk_level: str,
    fda_category: str,
    safe: bool,
    warnings: list[str] | None = None,
    recommendation: str = "",
    patient_id: str | None = None,
    session_id: str | None = None,
) -> AuditEntry:
    """Build the entry for a single-medication safety check."""
    return _record(
        AuditType.SAFETY_CHECK,
        {
            "medication_name": medication_name,
            "week": week,
            "trimester": trimester,
            "score": score,
            "risk_level": risk_level,
            "fda_category": fda_category,
            "safe": safe,
            "warnings": list(warnings or []),
            "recommendation": recommendation,
        },
        patient_id=patient_id,
        session_id=session_id,
    )


def interaction_check_entry(
    *,
    medications: list[str],
    week: int,
    interactions_found: int,
    highest_severity: str | None,
    safe: bool,
    recommendation: str = "",
    patient_id: str | None = None,
    session_id: str | None = None,
) -> AuditEntry:
    """Build the entry for an interaction check."""
    return _record(
        AuditType.INTERACTION_CHECK,
        {
            "medications": list(medications),
            "week": week,
            "interactions_found": interactions_found,
            "highest_severity": highest_severity,
            "safe": safe,
            "recommendation": recommendation,
        },
        patient_id=patient_id,
        session_id=session_id,
    )


def risk_calculation_entry(
    *,
    medications: list[str],
    week: int,
    trimester: int,
    score: int,
    risk_level: str,
    condition: str | None = None,
    highest_severity: str | None = None,
    has_category_x: bool = False,
    has_category_d: bool = False,
    requires_provider_consent: bool = False,
    requires_obstetrician: bool = False,
    recommendations: list[dict[str, Any]] | None = None,
    patient_id: str | None = None,
    session_id: str | None = None,
) -> AuditEntry:
    """Build the entry for a composite risk calculation."""
    return _record(
        AuditType.RISK_CALCULATION,
        {
            "medications": list(medications),
            "week": week,
            "trimester": trimester,
            "condition": condition,
            "risk_level": risk_level,
            "score": score,
            "highest_severity": highest_severity,
            "has_category_x": has_category_x,
            "has_category_d": has_category_d,
            "requires_provider_consent": requires_provider_consent,
            "requires_obstetrician": requires_obstetrician,
            "recommendations": list(recommendations or []),
        },
        patient_id=patient_id,
        session_id=session_id,
    )


# ============================================================================
# Decision and Medication Events
# ============================================================================


def provider_decision_entry(
    *,
    patient_id: str,
    medication_name: str,
    decision: DecisionType,
    reasoning: str,
    provider_id: str | None = None,
    provider_name: str | None = None,
    provider_type: str | None = None,
    alternatives: list[str] | None = None,
    follow_up_required: bool = False,
    follow_up_date: str | None = None,
    session_id: str | None = None,
) -> AuditEntry:
    """Build the entry for a provider decision.

    Raises:
        AuditError: If patient id or provider identity is missing.
    """
    _require_patient(patient_id, "provider decisions")
    if not provider_id and not provider_name:
        raise AuditError("Provider ID or name is required")

    return _record(
        AuditType.PROVIDER_DECISION,
        {
            "medication_name": medication_name,
            "decision": DecisionType(decision).value,
            "reasoning": reasoning,
            "alternatives": list(alternatives or []),
            "follow_up_required": follow_up_required,
            "follow_up_date": follow_up_date,
        },
        patient_id=patient_id,
        session_id=session_id,
        provider=Party(id=provider_id, name=provider_name, type=provider_type),
    )


def patient_decision_entry(
    *,
    patient_id: str,
    medication_name: str,
    decision: DecisionType,
    reasoning: str | None = None,
    acknowledged_risks: bool = False,
    provider_consulted: bool = False,
    session_id: str | None = None,
) -> AuditEntry:
    """Build the entry for a patient decision."""
    _require_patient(patient_id, "patient decisions")
    return _record(
        AuditType.PATIENT_DECISION,
        {
            "medication_name": medication_name,
            "decision": DecisionType(decision).value,
            "reasoning": reasoning,
            "acknowledged_risks": acknowledged_risks,
            "provider_consulted": provider_consulted,
        },
        patient_id=patient_id,
        session_id=session_id,
    )


def _prescriber(prescriber_id: str | None, prescriber_name: str | None) -> Party | None:
    if prescriber_id or prescriber_name:
        return Party(id=prescriber_id, name=prescriber_name)
    return None


def medication_started_entry(
    *,
    patient_id: str,
    medication_name: str,
    week: int,
    dosage: str | None = None,
    frequency: str | None = None,
    indication: str | None = None,
    prescriber_id: str | None = None,
    prescriber_name: str | None = None,
    session_id: str | None = None,
) -> AuditEntry:
    _require_patient(patient_id, "medication events")
    return _record(
        AuditType.MEDICATION_STARTED,
        {
            "medication_name": medication_name,
            "dosage": dosage,
            "frequency": frequency,
            "week": week,
            "indication": indication,
        },
        patient_id=patient_id,
        session_id=session_id,
        prescriber=_prescriber(prescriber_id, prescriber_name),
    )


def medication_stopped_entry(
    *,
    patient_id: str,
    medication_name: str,
    week: int,
    reason: str,
    prescriber_id: str | None = None,
    prescriber_name: str | None = None,
    session_id: str | None = None,
) -> AuditEntry:
    _require_patient(patient_id, "medication events")
    return _record(
        AuditType.MEDICATION_STOPPED,
        {"medication_name": medication_name, "week": week, "reason": reason},
        patient_id=patient_id,
        session_id=session_id,
        prescriber=_prescriber(prescriber_id, prescriber_name),
    )


def adverse_event_entry(
    *,
    patient_id: str,
    medication_name: str,
    week: int,
    event_type: str,
    severity: str,
    description: str,
    outcome: str | None = None,
    reported_to_fda: bool = False,
    session_id: str | None = None,
) -> AuditEntry:
    """Build the entry for an adverse event. Always flagged critical."""
    _require_patient(patient_id, "adverse events")
    return _record(
        AuditType.ADVERSE_EVENT,
        {
            "medication_name": medication_name,
            "week": week,
            "event_type": event_type,
            "severity": severity,
            "description": description,
            "outcome": outcome,
            "reported_to_fda": reported_to_fda,
        },
        patient_id=patient_id,
        session_id=session_id,
        critical=True,
    )
