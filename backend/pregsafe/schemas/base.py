"""Base enums shared by the pregnancy safety services."""

from enum import Enum


class FDACategory(str, Enum):
    """FDA pregnancy categories (pre-2015 labeling)."""

    A = "A"  # Adequate studies show no risk
    B = "B"  # Animal studies no risk, no human studies
    C = "C"  # Animal studies show risk, no human studies
    D = "D"  # Evidence of human fetal risk, may be acceptable
    X = "X"  # Contraindicated in pregnancy
    N = "N"  # Not classified


class RiskTier(str, Enum):
    """Qualitative risk / severity tier."""

    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _TIER_RANK[self]


_TIER_RANK = {
    RiskTier.LOW: 0,
    RiskTier.MODERATE: 1,
    RiskTier.HIGH: 2,
    RiskTier.CRITICAL: 3,
}

# Tier reported for medications missing from the reference store
UNKNOWN_TIER = "unknown"


class RegimenStatus(str, Enum):
    """Appropriateness of a medication for a maternal condition."""

    RECOMMENDED = "recommended"  # First-line
    ACCEPTABLE = "acceptable"  # Second-line
    AVOID = "avoid"
    UNKNOWN = "unknown"


class RecommendationPriority(str, Enum):
    """Priority of an assessment recommendation, highest first."""

    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MODERATE = "MODERATE"
    INFO = "INFO"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {
    RecommendationPriority.CRITICAL: 0,
    RecommendationPriority.HIGH: 1,
    RecommendationPriority.MODERATE: 2,
    RecommendationPriority.INFO: 3,
}


class InteractionKind(str, Enum):
    """Why an interaction finding was raised."""

    DRUG_INTERACTION = "drug_interaction"  # Pairwise rule
    PREGNANCY_CONTRAINDICATION = "pregnancy_contraindication"  # Category X
    PREGNANCY_HIGH_RISK = "pregnancy_high_risk"  # Category D
