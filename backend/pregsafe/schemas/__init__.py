"""Shared enums for Pregnancy Medication Safety."""

from pregsafe.schemas.base import (
    UNKNOWN_TIER,
    FDACategory,
    RecommendationPriority,
    InteractionKind,
    RegimenStatus,
    RiskTier,
)

__all__ = [
    "FDACategory",
    "InteractionKind",
    "RecommendationPriority",
    "RegimenStatus",
    "RiskTier",
    "UNKNOWN_TIER",
]
