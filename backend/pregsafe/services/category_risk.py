"""Category Risk Model.

Scores a single medication for a gestational week:

    baseline(category) x trimester multiplier x critical-period factor
    -> trimester override floor/ceiling -> round half up -> clamp [0, 100]

Scores are pure functions of (record, week) so that an audited assessment can
be reproduced exactly.
"""

from dataclasses import dataclass, field
import logging
import math
from types import MappingProxyType

from pregsafe.core.errors import InvalidCategoryError
from pregsafe.schemas.base import FDACategory, RiskTier
from pregsafe.services.gestation import CriticalPeriod, critical_period_of, trimester_info
from pregsafe.services.medications import MedicationRecord

logger = logging.getLogger(__name__)


# ============================================================================
# Scoring Constants
# ============================================================================

MIN_SCORE = 0
MAX_SCORE = 100

# Tier boundaries (inclusive upper bounds)
LOW_THRESHOLD = 30
MODERATE_THRESHOLD = 50
HIGH_THRESHOLD = 70

# Per-medication escalation thresholds
SAFE_SCORE_LIMIT = 40
CONSENT_SCORE_LIMIT = 40
OBSTETRICIAN_SCORE_LIMIT = 60

BASELINE_SCORES: MappingProxyType[FDACategory, int] = MappingProxyType({
    FDACategory.A: 10,
    FDACategory.B: 25,
    FDACategory.C: 50,
    FDACategory.D: 75,
    FDACategory.X: 95,
    # Unclassified medications get the conservative C value
    FDACategory.N: 50,
})

CRITICAL_PERIOD_FACTORS: MappingProxyType[RiskTier, float] = MappingProxyType({
    RiskTier.CRITICAL: 1.3,
    RiskTier.HIGH: 1.2,
    RiskTier.MODERATE: 1.1,
})

UNSAFE_FLOOR = 70

OVERRIDE_FLOORS: MappingProxyType[RiskTier, int] = MappingProxyType({
    RiskTier.CRITICAL: 85,
    RiskTier.HIGH: 65,
    RiskTier.MODERATE: 45,
})

LOW_OVERRIDE_CEILING = 30


@dataclass(frozen=True)
class CategoryInfo:
    """Human-readable description of an FDA category."""

    category: FDACategory
    label: str
    description: str
    recommendation: str


CATEGORY_INFO: MappingProxyType[FDACategory, CategoryInfo] = MappingProxyType({
    FDACategory.A: CategoryInfo(
        FDACategory.A,
        "Category A",
        "Safe - Controlled studies show no risk",
        "Safe to use during pregnancy",
    ),
    FDACategory.B: CategoryInfo(
        FDACategory.B,
        "Category B",
        "Probably Safe - Animal studies OK, no human data",
        "Generally considered safe",
    ),
    FDACategory.C: CategoryInfo(
        FDACategory.C,
        "Category C",
        "Use with Caution - Risk cannot be ruled out",
        "Use only if benefits outweigh risks",
    ),
    FDACategory.D: CategoryInfo(
        FDACategory.D,
        "Category D",
        "Serious Risk - Evidence of fetal risk",
        "Avoid unless no alternatives exist",
    ),
    FDACategory.X: CategoryInfo(
        FDACategory.X,
        "Category X",
        "CONTRAINDICATED - Proven fetal harm",
        "NEVER use during pregnancy",
    ),
    FDACategory.N: CategoryInfo(
        FDACategory.N,
        "Not Classified",
        "No FDA pregnancy category assigned",
        "Consult healthcare provider before use",
    ),
})


@dataclass(frozen=True)
class MedicationScore:
    """Score and tier of one medication at one week."""

    score: int
    tier: RiskTier


@dataclass
class MedicationSafety:
    """Single-medication safety check result."""

    medication_name: str
    generic_name: str
    week: int
    trimester: int
    category: FDACategory
    score: int
    tier: RiskTier
    safe: bool
    critical_period: CriticalPeriod | None
    warnings: list[str] = field(default_factory=list)
    alternatives: list[str] = field(default_factory=list)
    contraindications: list[str] = field(default_factory=list)
    recommendation: str = ""
    requires_provider_consent: bool = False
    requires_obstetrician: bool = False


# ============================================================================
# Score Arithmetic
# ============================================================================


def round_score(value: float) -> int:
    """Round half up (37.5 -> 38), independent of banker's rounding."""
    return int(math.floor(value + 0.5))


def clamp_score(value: int) -> int:
    """Clamp a score to [0, 100]."""
    return max(MIN_SCORE, min(MAX_SCORE, value))


def tier_for_score(score: int) -> RiskTier:
    """Derive the risk tier from a 0-100 score.

    <=30 low, <=50 moderate, <=70 high, otherwise critical.
    """
    if score <= LOW_THRESHOLD:
        return RiskTier.LOW
    if score <= MODERATE_THRESHOLD:
        return RiskTier.MODERATE
    if score <= HIGH_THRESHOLD:
        return RiskTier.HIGH
    return RiskTier.CRITICAL


def _resolve_category(category: object, medication: str | None = None) -> FDACategory:
    try:
        return FDACategory(category)
    except ValueError:
        raise InvalidCategoryError(category, medication) from None


def baseline_score(category: FDACategory | str) -> int:
    """Get the baseline score for an FDA category.

    Raises:
        InvalidCategoryError: If the category is not A/B/C/D/X/N.
    """
    return BASELINE_SCORES[_resolve_category(category)]


def category_info(category: FDACategory | str) -> CategoryInfo:
    """Get the description of an FDA category."""
    return CATEGORY_INFO[_resolve_category(category)]


def score_medication(record: MedicationRecord, week: int) -> MedicationScore:
    """Score a medication for a gestational week.

    Args:
        record: Medication reference record.
        week: Week of pregnancy (1-40).

    Returns:
        MedicationScore with the 0-100 score and its tier.

    Raises:
        InvalidCategoryError: If the record carries a corrupt category.
        OutOfRangeWeekError: If week is outside [1, 40].
    """
    category = _resolve_category(record.category, record.generic_name)
    trimester = trimester_info(week)
    period = critical_period_of(week)

    score = float(BASELINE_SCORES[category]) * trimester.risk_multiplier

    if period is not None:
        score *= CRITICAL_PERIOD_FACTORS.get(period.severity, 1.0)

    override = record.override_for(trimester.number)
    if override is not None:
        if override.safe is False:
            score = max(score, UNSAFE_FLOOR)
        if override.risk is RiskTier.LOW:
            score = min(score, LOW_OVERRIDE_CEILING)
        elif override.risk is not None:
            score = max(score, OVERRIDE_FLOORS[override.risk])

    final = clamp_score(round_score(score))
    return MedicationScore(score=final, tier=tier_for_score(final))


# ============================================================================
# Single Medication Checks
# ============================================================================


def medication_recommendation(
    category: FDACategory,
    tier: RiskTier,
    period: CriticalPeriod | None,
) -> str:
    """Build the recommendation text for a single medication."""
    if category == FDACategory.X:
        return (
            "CONTRAINDICATED: This medication should never be used during pregnancy. "
            "Consult your obstetrician immediately for safe alternatives."
        )
    if category == FDACategory.D:
        return (
            "HIGH RISK: This medication has known fetal risks. Use only if no safer "
            "alternatives exist and benefits clearly outweigh risks. Requires obstetrician approval."
        )
    if period is not None and period.severity == RiskTier.CRITICAL and tier != RiskTier.LOW:
        return (
            f"CRITICAL PERIOD: You are in a critical developmental period ({period.reason}). "
            "Avoid this medication unless absolutely necessary. Consult your healthcare provider immediately."
        )
    if category == FDACategory.C:
        return (
            "USE WITH CAUTION: This medication should only be used if benefits outweigh "
            "potential risks. Consult your healthcare provider before use."
        )
    if category == FDACategory.B:
        return (
            "PROBABLY SAFE: This medication is generally considered safe during pregnancy, "
            "but consult your healthcare provider to confirm."
        )
    if category == FDACategory.A:
        return "SAFE: This medication has been studied and shown to be safe during pregnancy."
    return "Consult your healthcare provider before using this medication during pregnancy."


def check_medication_safety(record: MedicationRecord, week: int) -> MedicationSafety:
    """Run the full single-medication safety check.

    A medication is considered safe when its score is at most 40 and the
    trimester override does not mark it unsafe.
    """
    result = score_medication(record, week)
    category = _resolve_category(record.category, record.generic_name)
    trimester = trimester_info(week)
    period = critical_period_of(week)
    override = record.override_for(trimester.number)

    unsafe_override = override is not None and override.safe is False
    safe = result.score <= SAFE_SCORE_LIMIT and not unsafe_override

    requires_consent = result.score > CONSENT_SCORE_LIMIT or category in (FDACategory.D, FDACategory.X)
    requires_obstetrician = (
        result.score > OBSTETRICIAN_SCORE_LIMIT
        or category == FDACategory.X
        or (period is not None and period.severity == RiskTier.CRITICAL)
    )

    logger.debug(f"Safety check {record.generic_name} week {week}: score={result.score} tier={result.tier.value}")

    return MedicationSafety(
        medication_name=record.name,
        generic_name=record.generic_name,
        week=week,
        trimester=trimester.number,
        category=category,
        score=result.score,
        tier=result.tier,
        safe=safe,
        critical_period=period,
        warnings=list(override.warnings) if override else [],
        alternatives=list(override.alternatives) if override else [],
        contraindications=list(record.contraindications),
        recommendation=medication_recommendation(category, result.tier, period),
        requires_provider_consent=requires_consent,
        requires_obstetrician=requires_obstetrician,
    )
