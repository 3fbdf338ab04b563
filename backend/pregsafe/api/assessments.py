"""Pregnancy medication assessment API endpoints.

Interaction checks, condition regimen assessments and composite risk
calculations. Interaction checks and composite calculations are recorded to
the audit trail when auditing is enabled.
"""

import logging

from fastapi import APIRouter
from pydantic import BaseModel, Field

from pregsafe.core.audit import interaction_check_entry, risk_calculation_entry
from pregsafe.core.config import settings
from pregsafe.core.errors import EmptyMedicationListError
from pregsafe.schemas import RiskTier
from pregsafe.schemas.assessment import (
    InteractionFindingSchema,
    ProviderRecommendationSchema,
    RegimenAssessmentSchema,
    RiskAssessmentSchema,
)
from pregsafe.services.audit_store import get_audit_store
from pregsafe.services.gestation import trimester_of, validate_week
from pregsafe.services.maternal_conditions import assess_regimen
from pregsafe.services.medications import get_medication_catalog
from pregsafe.services.pregnancy_interactions import get_interaction_table, highest_severity
from pregsafe.services.risk_calculator import get_provider_recommendation, get_risk_calculator_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/assessments", tags=["Assessments"])

DISCLAIMER = (
    "This assessment is informational only and does not replace the judgment "
    "of a healthcare provider. Do not start or stop any medication without "
    "consulting your provider."
)


# ============================================================================
# Request / Response Models
# ============================================================================


class InteractionCheckRequest(BaseModel):
    """Request body for an interaction check."""

    medications: list[str] = Field(..., description="Medication names (generic or brand)")
    week: int = Field(..., description="Week of pregnancy (1-40)")
    patient_id: str | None = Field(None, description="Patient ID for the audit trail")
    session_id: str | None = Field(None, description="Session ID for the audit trail")


class InteractionCheckResponse(BaseModel):
    """Interaction findings for a medication list."""

    week: int
    trimester: int
    medications_checked: list[str]
    unknown_medications: list[str] = Field(default_factory=list)
    interactions: list[InteractionFindingSchema]
    highest_severity: RiskTier | None = None
    safe: bool
    recommendation: str


class RegimenRequest(BaseModel):
    """Request body for a condition regimen assessment."""

    medications: list[str] = Field(..., description="Current medications")
    condition: str = Field(..., description="Maternal condition key or name")
    week: int = Field(..., description="Week of pregnancy (1-40)")


class CompositeRequest(BaseModel):
    """Request body for a composite risk calculation."""

    medications: list[str] = Field(..., description="Medication names (generic or brand)")
    week: int = Field(..., description="Week of pregnancy (1-40)")
    condition: str | None = Field(None, description="Optional maternal condition")
    patient_id: str | None = Field(None, description="Patient ID for the audit trail")
    session_id: str | None = Field(None, description="Session ID for the audit trail")


class CompositeResponse(BaseModel):
    """Composite assessment plus provider referral."""

    assessment: RiskAssessmentSchema
    provider_recommendation: ProviderRecommendationSchema
    audit_entry_id: str | None = None
    disclaimer: str | None = None


def _interaction_summary(worst: RiskTier | None) -> str:
    if worst == RiskTier.CRITICAL:
        return "CRITICAL: Dangerous combination during pregnancy - seek immediate medical attention"
    if worst == RiskTier.HIGH:
        return "HIGH RISK: Consult your obstetrician before continuing these medications"
    if worst == RiskTier.MODERATE:
        return "CAUTION: Discuss these medications with your healthcare provider"
    if worst == RiskTier.LOW:
        return "Minor concerns - continue with routine monitoring"
    return "No pregnancy-specific interactions found"


# ============================================================================
# Endpoints
# ============================================================================


@router.post(
    "/interactions",
    response_model=InteractionCheckResponse,
    summary="Check pregnancy interactions",
    description="Detect drug pairs and single medications that are dangerous during pregnancy.",
)
def check_interactions(request: InteractionCheckRequest) -> InteractionCheckResponse:
    """Detect pregnancy interaction findings.

    Medications missing from the reference table are reported back in
    ``unknown_medications`` and take no part in the check.
    """
    if not request.medications:
        raise EmptyMedicationListError()
    validate_week(request.week)

    catalog = get_medication_catalog()
    records = []
    unknown = []
    for name in request.medications:
        record = catalog.find_medication(name)
        if record is None:
            unknown.append(name)
        else:
            records.append(record)

    findings = get_interaction_table().find_interactions(records, request.week)
    worst = highest_severity(findings)
    safe = worst is None or worst == RiskTier.LOW
    recommendation = _interaction_summary(worst)

    if settings.audit_enabled:
        get_audit_store().append(
            interaction_check_entry(
                medications=[r.generic_name for r in records],
                week=request.week,
                interactions_found=len(findings),
                highest_severity=worst.value if worst else None,
                safe=safe,
                recommendation=recommendation,
                patient_id=request.patient_id,
                session_id=request.session_id,
            )
        )

    return InteractionCheckResponse(
        week=request.week,
        trimester=trimester_of(request.week),
        medications_checked=[r.generic_name for r in records],
        unknown_medications=unknown,
        interactions=[InteractionFindingSchema.model_validate(f) for f in findings],
        highest_severity=worst,
        safe=safe,
        recommendation=recommendation,
    )


@router.post(
    "/regimen",
    response_model=RegimenAssessmentSchema,
    summary="Assess a condition regimen",
    description="Check a medication regimen against the treatment guidance for a maternal condition.",
)
def check_regimen(request: RegimenRequest) -> RegimenAssessmentSchema:
    result = assess_regimen(request.medications, request.condition, request.week)
    return RegimenAssessmentSchema.model_validate(result)


@router.post(
    "/composite",
    response_model=CompositeResponse,
    summary="Calculate composite risk",
    description="Combine medication scores, interactions and condition appropriateness into one risk score.",
)
def calculate_composite_risk(request: CompositeRequest) -> CompositeResponse:
    """Calculate the composite risk of a regimen and record it for audit."""
    assessment = get_risk_calculator_service().calculate_composite(
        request.medications,
        request.week,
        request.condition,
    )
    provider = get_provider_recommendation(assessment)

    entry_id = None
    if settings.audit_enabled:
        entry = get_audit_store().append(
            risk_calculation_entry(
                medications=list(request.medications),
                week=assessment.week,
                trimester=assessment.trimester,
                score=assessment.score,
                risk_level=assessment.tier.value,
                condition=assessment.condition,
                highest_severity=assessment.highest_severity.value if assessment.highest_severity else None,
                has_category_x=assessment.has_category_x,
                has_category_d=assessment.has_category_d,
                requires_provider_consent=assessment.requires_provider_consent,
                requires_obstetrician=assessment.requires_obstetrician,
                recommendations=[
                    {"priority": r.priority.value, "action": r.action, "medication": r.medication}
                    for r in assessment.recommendations
                ],
                patient_id=request.patient_id,
                session_id=request.session_id,
            )
        )
        entry_id = entry.id

    logger.info(
        f"Composite risk for {len(request.medications)} medications at week {request.week}: "
        f"{assessment.score} ({assessment.tier.value})"
    )

    return CompositeResponse(
        assessment=RiskAssessmentSchema.model_validate(assessment),
        provider_recommendation=ProviderRecommendationSchema.model_validate(provider),
        audit_entry_id=entry_id,
        disclaimer=DISCLAIMER if settings.show_disclaimer else None,
    )
