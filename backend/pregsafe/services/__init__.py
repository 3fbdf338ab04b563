"""Services for Pregnancy Medication Safety.

Services implement the assessment pipeline:
- Gestation calendar: week -> trimester and critical period
- Category risk model: per-medication 0-100 score
- MedicationCatalog: medication reference store
- InteractionRulesTable: pregnancy interaction findings
- Maternal conditions: regimen appropriateness
- RiskCalculatorService: composite assessment
- AuditStore: append-only audit trail
"""

from pregsafe.services.audit_store import AuditFilter, AuditStore, get_audit_store
from pregsafe.services.category_risk import (
    HIGH_THRESHOLD,
    LOW_THRESHOLD,
    MODERATE_THRESHOLD,
    MedicationScore,
    check_medication_safety,
    score_medication,
    tier_for_score,
)
from pregsafe.services.gestation import critical_period_of, trimester_of
from pregsafe.services.maternal_conditions import (
    RegimenAssessment,
    assess_regimen,
    classify,
    get_safe_alternatives_for_condition,
)
from pregsafe.services.medications import MedicationCatalog, MedicationRecord, get_medication_catalog
from pregsafe.services.pregnancy_interactions import (
    InteractionFinding,
    InteractionRulesTable,
    find_interactions,
    get_interaction_table,
    highest_severity,
)
from pregsafe.services.risk_calculator import (
    RiskAssessment,
    RiskCalculatorService,
    calculate_composite,
    get_provider_recommendation,
    get_risk_calculator_service,
)

__all__ = [
    # Gestation
    "critical_period_of",
    "trimester_of",
    # Category risk
    "HIGH_THRESHOLD",
    "LOW_THRESHOLD",
    "MODERATE_THRESHOLD",
    "MedicationScore",
    "check_medication_safety",
    "score_medication",
    "tier_for_score",
    # Medications
    "MedicationCatalog",
    "MedicationRecord",
    "get_medication_catalog",
    # Interactions
    "InteractionFinding",
    "InteractionRulesTable",
    "find_interactions",
    "get_interaction_table",
    "highest_severity",
    # Conditions
    "RegimenAssessment",
    "assess_regimen",
    "classify",
    "get_safe_alternatives_for_condition",
    # Calculator
    "RiskAssessment",
    "RiskCalculatorService",
    "calculate_composite",
    "get_provider_recommendation",
    "get_risk_calculator_service",
    # Audit
    "AuditFilter",
    "AuditStore",
    "get_audit_store",
]
