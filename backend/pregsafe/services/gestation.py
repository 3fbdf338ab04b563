"""Gestation Calendar.

Maps a gestational week (1-40) to its trimester and to the critical
developmental period, if any, that the week falls in.

Trimester boundaries are closed intervals:
- Trimester 1: weeks 1-13
- Trimester 2: weeks 14-27
- Trimester 3: weeks 28-40
"""

from dataclasses import dataclass, field
from types import MappingProxyType

from pregsafe.core.errors import InvalidTrimesterError, OutOfRangeWeekError
from pregsafe.schemas.base import RiskTier

MIN_WEEK = 1
MAX_WEEK = 40


@dataclass(frozen=True)
class TrimesterInfo:
    """Static description of a trimester."""

    number: int
    name: str
    first_week: int
    last_week: int
    description: str
    risk_multiplier: float
    critical_development: tuple[str, ...] = field(default_factory=tuple)

    def contains(self, week: int) -> bool:
        return self.first_week <= week <= self.last_week


@dataclass(frozen=True)
class CriticalPeriod:
    """A week range with heightened fetal-development sensitivity."""

    reason: str
    severity: RiskTier
    developments: tuple[str, ...] = field(default_factory=tuple)


# ============================================================================
# Trimester Table
# ============================================================================

TRIMESTERS: tuple[TrimesterInfo, ...] = (
    TrimesterInfo(
        number=1,
        name="1st Trimester",
        first_week=1,
        last_week=13,
        description="Organ formation - highest risk period",
        risk_multiplier=1.5,
        critical_development=("Neural tube", "Heart", "Limbs", "Eyes", "Ears"),
    ),
    TrimesterInfo(
        number=2,
        name="2nd Trimester",
        first_week=14,
        last_week=27,
        description="Growth phase - moderate risk",
        risk_multiplier=1.0,
        critical_development=("Brain development", "Bone growth", "Organ maturation"),
    ),
    TrimesterInfo(
        number=3,
        name="3rd Trimester",
        first_week=28,
        last_week=40,
        description="Preparation for birth - focus on maternal/neonatal effects",
        risk_multiplier=1.2,
        critical_development=("Final organ maturation", "Weight gain", "Lung development"),
    ),
)

# Blanket rule for the whole first trimester
FIRST_TRIMESTER_PERIOD = CriticalPeriod(
    reason="First trimester - organ formation period",
    severity=RiskTier.HIGH,
    developments=TRIMESTERS[0].critical_development,
)

_NEURAL_TUBE = CriticalPeriod("Neural tube formation", RiskTier.CRITICAL, ("Neural tube",))
_HEART_LIMBS = CriticalPeriod("Heart and limb development", RiskTier.CRITICAL, ("Heart", "Limbs"))
_ORGANS = CriticalPeriod("Organ differentiation", RiskTier.HIGH, ("Organ differentiation",))
_TERM = CriticalPeriod("Full term - prepare for labor", RiskTier.MODERATE, ("Labor preparation",))

# Week-specific rules; these take precedence over the first-trimester rule
CRITICAL_WEEKS: MappingProxyType[int, CriticalPeriod] = MappingProxyType({
    3: _NEURAL_TUBE,
    4: _NEURAL_TUBE,
    5: _HEART_LIMBS,
    6: _HEART_LIMBS,
    7: _ORGANS,
    8: _ORGANS,
    37: _TERM,
    38: _TERM,
    39: _TERM,
    40: _TERM,
})


def validate_week(week: object) -> int:
    """Validate a gestational week.

    Args:
        week: Week of pregnancy.

    Returns:
        The week as an int.

    Raises:
        OutOfRangeWeekError: If week is not an integer in [1, 40].
    """
    if isinstance(week, bool) or not isinstance(week, int):
        raise OutOfRangeWeekError(week)
    if week < MIN_WEEK or week > MAX_WEEK:
        raise OutOfRangeWeekError(week)
    return week


def validate_trimester(trimester: object) -> int:
    """Validate a trimester number (1, 2 or 3)."""
    if isinstance(trimester, bool) or trimester not in (1, 2, 3):
        raise InvalidTrimesterError(trimester)
    return trimester


def trimester_info(week: int) -> TrimesterInfo:
    """Get the trimester description for a week."""
    validate_week(week)
    for trimester in TRIMESTERS:
        if trimester.contains(week):
            return trimester
    # Unreachable: the table partitions [1, 40]
    raise OutOfRangeWeekError(week)


def trimester_of(week: int) -> int:
    """Map a gestational week to its trimester number (1, 2 or 3)."""
    return trimester_info(week).number


def critical_period_of(week: int) -> CriticalPeriod | None:
    """Get the critical developmental period for a week.

    The first trimester is always critical (severity high). Week-specific
    rules (neural tube, heart/limbs, organ differentiation, term) are more
    specific and override the blanket rule when both apply.

    Args:
        week: Week of pregnancy.

    Returns:
        CriticalPeriod, or None outside any critical period.
    """
    number = trimester_of(week)

    specific = CRITICAL_WEEKS.get(week)
    if specific is not None:
        return specific

    if number == 1:
        return FIRST_TRIMESTER_PERIOD

    return None
