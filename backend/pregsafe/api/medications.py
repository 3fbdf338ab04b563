"""Medication reference and single-medication safety API endpoints."""

import logging
from typing import Annotated

from fastapi import APIRouter, HTTPException, Query, status
from pydantic import BaseModel, Field

from pregsafe.core.audit import safety_check_entry
from pregsafe.core.config import settings
from pregsafe.schemas import FDACategory
from pregsafe.schemas.assessment import MedicationSafetySchema
from pregsafe.services.audit_store import get_audit_store
from pregsafe.services.category_risk import check_medication_safety
from pregsafe.services.gestation import validate_week
from pregsafe.services.medications import get_medication_catalog

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/medications", tags=["Medications"])


class MedicationSummary(BaseModel):
    """Medication search hit."""

    generic_name: str
    name: str
    category: FDACategory
    drug_class: str = ""
    brand_names: list[str] = Field(default_factory=list)

    model_config = {"from_attributes": True}


class MedicationSearchResponse(BaseModel):
    query: str
    results: list[MedicationSummary]
    total: int


class LactationResponse(BaseModel):
    """Lactation safety for a medication."""

    medication_name: str
    found: bool
    safety: str
    notes: str
    recommendation: str


@router.get(
    "/search",
    response_model=MedicationSearchResponse,
    summary="Search medications",
    description="Search the reference table by generic name, brand name or drug class.",
)
def search_medications(
    q: Annotated[str, Query(min_length=1, description="Search text")],
    limit: Annotated[int, Query(ge=1, le=100, description="Maximum results")] = 10,
) -> MedicationSearchResponse:
    catalog = get_medication_catalog()
    results = [MedicationSummary.model_validate(r) for r in catalog.search(q, limit=limit)]
    return MedicationSearchResponse(query=q, results=results, total=len(results))


@router.get(
    "/{name}/safety",
    response_model=MedicationSafetySchema,
    summary="Check one medication",
    description="Score a medication for a week of pregnancy and explain the result.",
)
def get_medication_safety(
    name: str,
    week: Annotated[int, Query(description="Week of pregnancy (1-40)")],
    patient_id: Annotated[str | None, Query(description="Patient ID for the audit trail")] = None,
    session_id: Annotated[str | None, Query(description="Session ID for the audit trail")] = None,
) -> MedicationSafetySchema:
    """Run the single-medication safety check.

    Raises:
        HTTPException: 404 if the medication is not in the reference table.
    """
    validate_week(week)
    record = get_medication_catalog().find_medication(name)
    if record is None:
        logger.info(f"Safety check for unknown medication: {name}")
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Medication not found: {name}",
        )

    result = check_medication_safety(record, week)

    if settings.audit_enabled:
        get_audit_store().append(
            safety_check_entry(
                medication_name=result.generic_name,
                week=result.week,
                trimester=result.trimester,
                score=result.score,
                risk_level=result.tier.value,
                fda_category=result.category.value,
                safe=result.safe,
                warnings=result.warnings,
                recommendation=result.recommendation,
                patient_id=patient_id,
                session_id=session_id,
            )
        )

    return MedicationSafetySchema.model_validate(result)


@router.get(
    "/{name}/lactation",
    response_model=LactationResponse,
    summary="Lactation safety",
)
def get_lactation_safety(name: str) -> LactationResponse:
    result = get_medication_catalog().get_lactation_safety(name)
    return LactationResponse(
        medication_name=result.medication_name,
        found=result.found,
        safety=result.safety.value,
        notes=result.notes,
        recommendation=result.recommendation,
    )
