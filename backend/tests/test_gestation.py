"""Tests for the gestation calendar."""

import pytest

from pregsafe.core.errors import InvalidTrimesterError, OutOfRangeWeekError
from pregsafe.schemas import RiskTier
from pregsafe.services.gestation import (
    FIRST_TRIMESTER_PERIOD,
    TRIMESTERS,
    critical_period_of,
    trimester_info,
    trimester_of,
    validate_trimester,
    validate_week,
)


class TestTrimesterOf:
    """Test week -> trimester mapping."""

    @pytest.mark.parametrize(
        "week,expected",
        [(1, 1), (13, 1), (14, 2), (20, 2), (27, 2), (28, 3), (35, 3), (40, 3)],
    )
    def test_boundaries(self, week: int, expected: int) -> None:
        assert trimester_of(week) == expected

    def test_every_week_has_one_trimester(self) -> None:
        for week in range(1, 41):
            matches = [t for t in TRIMESTERS if t.contains(week)]
            assert len(matches) == 1

    def test_multipliers(self) -> None:
        assert trimester_info(5).risk_multiplier == 1.5
        assert trimester_info(20).risk_multiplier == 1.0
        assert trimester_info(30).risk_multiplier == 1.2


class TestWeekValidation:
    """Test out-of-range weeks are rejected."""

    @pytest.mark.parametrize("week", [0, -1, 41, 100])
    def test_out_of_range(self, week: int) -> None:
        with pytest.raises(OutOfRangeWeekError):
            trimester_of(week)

    @pytest.mark.parametrize("week", ["20", 20.0, None, True])
    def test_non_integer(self, week: object) -> None:
        with pytest.raises(OutOfRangeWeekError):
            validate_week(week)

    def test_error_code(self) -> None:
        with pytest.raises(OutOfRangeWeekError) as exc_info:
            validate_week(41)
        assert exc_info.value.code == "INVALID_WEEK"
        assert exc_info.value.details == {"week": 41}

    def test_valid_week_returned(self) -> None:
        assert validate_week(1) == 1
        assert validate_week(40) == 40

    @pytest.mark.parametrize("trimester", [0, 4, "1", None])
    def test_invalid_trimester(self, trimester: object) -> None:
        with pytest.raises(InvalidTrimesterError):
            validate_trimester(trimester)


class TestCriticalPeriods:
    """Test critical developmental periods."""

    @pytest.mark.parametrize("week", [3, 4])
    def test_neural_tube(self, week: int) -> None:
        period = critical_period_of(week)
        assert period.reason == "Neural tube formation"
        assert period.severity == RiskTier.CRITICAL

    @pytest.mark.parametrize("week", [5, 6])
    def test_heart_and_limbs(self, week: int) -> None:
        period = critical_period_of(week)
        assert period.reason == "Heart and limb development"
        assert period.severity == RiskTier.CRITICAL

    @pytest.mark.parametrize("week", [7, 8])
    def test_organ_differentiation(self, week: int) -> None:
        assert critical_period_of(week).severity == RiskTier.HIGH

    @pytest.mark.parametrize("week", [1, 2, 9, 13])
    def test_rest_of_first_trimester(self, week: int) -> None:
        assert critical_period_of(week) == FIRST_TRIMESTER_PERIOD

    @pytest.mark.parametrize("week", [14, 20, 27, 28, 36])
    def test_no_period(self, week: int) -> None:
        assert critical_period_of(week) is None

    @pytest.mark.parametrize("week", [37, 38, 39, 40])
    def test_term(self, week: int) -> None:
        assert critical_period_of(week).severity == RiskTier.MODERATE

    def test_first_trimester_always_critical(self) -> None:
        for week in range(1, 14):
            assert critical_period_of(week) is not None
