"""Audit trail API endpoints.

Query, export and summarize the assessment audit trail, and record the
provider and patient decisions, medication changes and adverse events that
follow an assessment.
"""

import logging
from datetime import datetime
from typing import Annotated, Literal

from fastapi import APIRouter, Query, Response, status
from pydantic import BaseModel, Field

from pregsafe.core.audit import (
    AuditEntry,
    AuditType,
    DecisionType,
    adverse_event_entry,
    medication_started_entry,
    medication_stopped_entry,
    patient_decision_entry,
    provider_decision_entry,
)
from pregsafe.services.audit_store import AuditFilter, AuditStatistics, CleanupResult, get_audit_store
from pregsafe.services.gestation import validate_week

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/audit", tags=["Audit"])


class AuditEntriesResponse(BaseModel):
    entries: list[AuditEntry]
    total: int


class ProviderDecisionRequest(BaseModel):
    """Provider decision recorded after an assessment."""

    patient_id: str
    medication_name: str
    decision: DecisionType
    reasoning: str
    provider_id: str | None = None
    provider_name: str | None = None
    provider_type: str | None = None
    alternatives: list[str] = Field(default_factory=list)
    follow_up_required: bool = False
    follow_up_date: str | None = None
    session_id: str | None = None


class PatientDecisionRequest(BaseModel):
    """Patient decision recorded after an assessment."""

    patient_id: str
    medication_name: str
    decision: DecisionType
    reasoning: str | None = None
    acknowledged_risks: bool = False
    provider_consulted: bool = False
    session_id: str | None = None


class MedicationStartedRequest(BaseModel):
    patient_id: str
    medication_name: str
    week: int
    dosage: str | None = None
    frequency: str | None = None
    indication: str | None = None
    prescriber_id: str | None = None
    prescriber_name: str | None = None
    session_id: str | None = None


class MedicationStoppedRequest(BaseModel):
    patient_id: str
    medication_name: str
    week: int
    reason: str
    prescriber_id: str | None = None
    prescriber_name: str | None = None
    session_id: str | None = None


class AdverseEventRequest(BaseModel):
    """Adverse event observed while taking a medication."""

    patient_id: str
    medication_name: str
    week: int
    event_type: str
    severity: str
    description: str
    outcome: str | None = None
    reported_to_fda: bool = False
    session_id: str | None = None


def _filters(
    patient_id: str | None,
    type: AuditType | None,
    start_date: datetime | None,
    end_date: datetime | None,
    medication_name: str | None,
    session_id: str | None,
) -> AuditFilter:
    return AuditFilter(
        patient_id=patient_id,
        type=type,
        start_date=start_date,
        end_date=end_date,
        medication_name=medication_name,
        session_id=session_id,
    )


@router.get(
    "/entries",
    response_model=AuditEntriesResponse,
    summary="Query audit entries",
    description="Get audit entries matching all given filters, newest first.",
)
def list_entries(
    patient_id: Annotated[str | None, Query()] = None,
    type: Annotated[AuditType | None, Query()] = None,
    start_date: Annotated[datetime | None, Query()] = None,
    end_date: Annotated[datetime | None, Query()] = None,
    medication_name: Annotated[str | None, Query()] = None,
    session_id: Annotated[str | None, Query()] = None,
    limit: Annotated[int, Query(ge=1, le=1000)] = 100,
) -> AuditEntriesResponse:
    filters = _filters(patient_id, type, start_date, end_date, medication_name, session_id)
    entries = get_audit_store().query(filters)
    return AuditEntriesResponse(entries=entries[:limit], total=len(entries))


@router.get(
    "/export",
    summary="Export audit entries",
    description="Export matching audit entries as JSON or CSV.",
)
def export_entries(
    format: Annotated[Literal["json", "csv"], Query()] = "json",
    patient_id: Annotated[str | None, Query()] = None,
    type: Annotated[AuditType | None, Query()] = None,
    start_date: Annotated[datetime | None, Query()] = None,
    end_date: Annotated[datetime | None, Query()] = None,
    medication_name: Annotated[str | None, Query()] = None,
    session_id: Annotated[str | None, Query()] = None,
) -> Response:
    filters = _filters(patient_id, type, start_date, end_date, medication_name, session_id)
    content = get_audit_store().export(filters, format=format)
    media_type = "text/csv" if format == "csv" else "application/json"
    logger.info(f"Exported audit trail as {format}")
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="pregnancy-audit.{format}"'},
    )


@router.get(
    "/statistics",
    response_model=AuditStatistics,
    summary="Audit statistics",
)
def get_statistics(
    patient_id: Annotated[str | None, Query()] = None,
    start_date: Annotated[datetime | None, Query()] = None,
    end_date: Annotated[datetime | None, Query()] = None,
) -> AuditStatistics:
    filters = AuditFilter(patient_id=patient_id, start_date=start_date, end_date=end_date)
    return get_audit_store().statistics(filters)


@router.post(
    "/decisions/provider",
    response_model=AuditEntry,
    status_code=status.HTTP_201_CREATED,
    summary="Record a provider decision",
)
def record_provider_decision(request: ProviderDecisionRequest) -> AuditEntry:
    entry = provider_decision_entry(**request.model_dump())
    return get_audit_store().append(entry)


@router.post(
    "/decisions/patient",
    response_model=AuditEntry,
    status_code=status.HTTP_201_CREATED,
    summary="Record a patient decision",
)
def record_patient_decision(request: PatientDecisionRequest) -> AuditEntry:
    entry = patient_decision_entry(**request.model_dump())
    return get_audit_store().append(entry)


@router.post(
    "/cleanup",
    response_model=CleanupResult,
    summary="Apply the retention policy",
)
def cleanup_entries() -> CleanupResult:
    return get_audit_store().cleanup()


@router.post(
    "/medications/started",
    response_model=AuditEntry,
    status_code=status.HTTP_201_CREATED,
    summary="Record a medication start",
)
def record_medication_started(request: MedicationStartedRequest) -> AuditEntry:
    validate_week(request.week)
    entry = medication_started_entry(**request.model_dump())
    return get_audit_store().append(entry)


@router.post(
    "/medications/stopped",
    response_model=AuditEntry,
    status_code=status.HTTP_201_CREATED,
    summary="Record a medication stop",
)
def record_medication_stopped(request: MedicationStoppedRequest) -> AuditEntry:
    validate_week(request.week)
    entry = medication_stopped_entry(**request.model_dump())
    return get_audit_store().append(entry)


@router.post(
    "/adverse-events",
    response_model=AuditEntry,
    status_code=status.HTTP_201_CREATED,
    summary="Record an adverse event",
    description="Adverse events are always flagged critical in the audit trail.",
)
def record_adverse_event(request: AdverseEventRequest) -> AuditEntry:
    validate_week(request.week)
    entry = adverse_event_entry(**request.model_dump())
    logger.warning(f"Adverse event recorded for {request.medication_name} (severity {request.severity})")
    return get_audit_store().append(entry)
