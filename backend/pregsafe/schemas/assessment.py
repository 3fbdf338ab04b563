"""Pydantic schemas for assessment API responses.

Models read directly from the service dataclasses (``from_attributes``).
"""

from typing import Literal

from pydantic import BaseModel, Field

from pregsafe.schemas.base import (
    FDACategory,
    InteractionKind,
    RecommendationPriority,
    RegimenStatus,
    RiskTier,
)


class CriticalPeriodSchema(BaseModel):
    """Critical developmental period."""

    reason: str
    severity: RiskTier
    developments: list[str] = Field(default_factory=list)

    model_config = {"from_attributes": True}


class MedicationSafetySchema(BaseModel):
    """Single-medication safety check."""

    medication_name: str
    generic_name: str
    week: int
    trimester: int
    category: FDACategory
    score: int = Field(..., ge=0, le=100)
    tier: RiskTier
    safe: bool
    critical_period: CriticalPeriodSchema | None = None
    warnings: list[str] = Field(default_factory=list)
    alternatives: list[str] = Field(default_factory=list)
    contraindications: list[str] = Field(default_factory=list)
    recommendation: str
    requires_provider_consent: bool
    requires_obstetrician: bool

    model_config = {"from_attributes": True}


class InteractionRuleSchema(BaseModel):
    """Interaction rule as stored in the rules table."""

    medications: list[str]
    severity: RiskTier
    normal_severity: RiskTier | None = None
    reason: str
    trimester_risks: dict[int, RiskTier]
    maternal_effects: list[str] = Field(default_factory=list)
    fetal_effects: list[str] = Field(default_factory=list)
    neonatal_effects: list[str] = Field(default_factory=list)
    recommendation: str
    alternatives: dict[str, list[str]] = Field(default_factory=dict)

    model_config = {"from_attributes": True}


class InteractionFindingSchema(BaseModel):
    """Interaction rule triggered for the current trimester."""

    kind: InteractionKind
    severity: RiskTier
    medications: list[str]
    current_trimester: int
    current_trimester_risk: RiskTier | None = None
    rule: InteractionRuleSchema

    model_config = {"from_attributes": True}


class RegimenMedicationSchema(BaseModel):
    medication: str
    status: RegimenStatus
    recommendation: str

    model_config = {"from_attributes": True}


class RegimenRecommendationSchema(BaseModel):
    action: str
    reason: str
    medication: str | None = None
    alternatives: list[str] = Field(default_factory=list)
    note: str | None = None

    model_config = {"from_attributes": True}


class RegimenAssessmentSchema(BaseModel):
    """Regimen appropriateness for a maternal condition."""

    condition: str
    condition_key: str
    week: int
    trimester: int
    medications: list[RegimenMedicationSchema]
    interactions: list[InteractionFindingSchema] = Field(default_factory=list)
    condition_risks: list[str] = Field(default_factory=list)
    trimester_guidance: str
    needs_change: bool
    optimal: bool
    recommendations: list[RegimenRecommendationSchema]
    requires_provider_consent: bool
    requires_obstetrician: bool

    model_config = {"from_attributes": True}


class MedicationRiskSchema(BaseModel):
    """Per-medication entry in a composite assessment."""

    medication_name: str
    found: bool
    tier: RiskTier | Literal["unknown"]
    recommendation: str
    generic_name: str | None = None
    category: FDACategory | None = None
    score: int | None = None
    safe: bool | None = None
    critical_period: bool = False
    warnings: list[str] = Field(default_factory=list)
    alternatives: list[str] = Field(default_factory=list)
    requires_provider_consent: bool = False
    requires_obstetrician: bool = False

    model_config = {"from_attributes": True}


class RecommendationSchema(BaseModel):
    priority: RecommendationPriority
    action: str
    reason: str
    urgency: str
    kind: str
    medication: str | None = None

    model_config = {"from_attributes": True}


class MedicationWarningSchema(BaseModel):
    medication: str
    warning: str

    model_config = {"from_attributes": True}


class SafeAlternativeSchema(BaseModel):
    medication: str
    alternatives: list[str]

    model_config = {"from_attributes": True}


class RiskAssessmentSchema(BaseModel):
    """Composite risk assessment."""

    week: int
    trimester: int
    medication_count: int
    score: int = Field(..., ge=0, le=100)
    tier: RiskTier
    base_score: float
    interaction_penalty: int
    polypharmacy_penalty: int
    risk_adjustment: int
    highest_individual_risk: int
    highest_severity: RiskTier | None = None
    has_category_x: bool
    has_category_d: bool
    safe: bool
    requires_provider_consent: bool
    requires_obstetrician: bool
    medication_risks: list[MedicationRiskSchema]
    interactions: list[InteractionFindingSchema]
    condition: str | None = None
    regimen: RegimenAssessmentSchema | None = None
    warnings: list[MedicationWarningSchema] = Field(default_factory=list)
    safe_alternatives: list[SafeAlternativeSchema] = Field(default_factory=list)
    recommendations: list[RecommendationSchema]

    model_config = {"from_attributes": True}


class ProviderRecommendationSchema(BaseModel):
    provider_type: str
    urgency: str
    action: str
    timeframe: str
    escalation_needed: bool
    recommendation: str

    model_config = {"from_attributes": True}


class ConditionAlternativesSchema(BaseModel):
    """Treatment options for a condition in a trimester."""

    condition: str
    trimester: int
    risks: list[str]
    first_line: list[str]
    second_line: list[str]
    avoid: list[str]
    trimester_guidance: str
    recommendation: str

    model_config = {"from_attributes": True}
