"""Tests for the maternal condition appropriateness model."""

from dataclasses import FrozenInstanceError

import pytest

from pregsafe.core.errors import InvalidTrimesterError, OutOfRangeWeekError, UnknownConditionError
from pregsafe.schemas import RegimenStatus
from pregsafe.services.maternal_conditions import (
    MATERNAL_CONDITIONS,
    assess_regimen,
    classify,
    condition_key,
    get_condition,
    get_safe_alternatives_for_condition,
)
from pregsafe.services.medications import MedicationCatalog
from pregsafe.services.pregnancy_interactions import InteractionRulesTable


class TestConditionLookup:
    """Test condition resolution."""

    def test_all_profiles_loaded(self):
        assert set(MATERNAL_CONDITIONS) == {
            "HYPERTENSION", "DIABETES", "DEPRESSION", "ASTHMA", "EPILEPSY", "THYROID",
        }

    def test_by_key_case_insensitive(self):
        assert get_condition("hypertension").key == "HYPERTENSION"

    def test_by_display_name(self):
        assert get_condition("Thyroid Disorders").key == "THYROID"

    def test_condition_key(self):
        assert condition_key(" gestational diabetes ") == "GESTATIONAL_DIABETES"

    @pytest.mark.parametrize("name", ["migraine", "", "   "])
    def test_unknown(self, name: str):
        with pytest.raises(UnknownConditionError):
            get_condition(name)


class TestClassify:
    """Test medication classification for a condition."""

    def test_first_line(self):
        assert classify("Methyldopa", MATERNAL_CONDITIONS["HYPERTENSION"]) == RegimenStatus.RECOMMENDED

    def test_second_line(self):
        assert classify("Hydralazine", MATERNAL_CONDITIONS["HYPERTENSION"]) == RegimenStatus.ACCEPTABLE

    def test_avoid_substring(self):
        assert classify("lisinopril", MATERNAL_CONDITIONS["HYPERTENSION"]) == RegimenStatus.AVOID

    def test_qualified_first_line_entry(self):
        assert classify("insulin", MATERNAL_CONDITIONS["DIABETES"]) == RegimenStatus.RECOMMENDED

    def test_unknown(self):
        assert classify("Amoxicillin", MATERNAL_CONDITIONS["HYPERTENSION"]) == RegimenStatus.UNKNOWN

    def test_empty_name(self):
        assert classify("", MATERNAL_CONDITIONS["HYPERTENSION"]) == RegimenStatus.UNKNOWN

    def test_avoid_checked_first(self):
        assert classify("Paroxetine", MATERNAL_CONDITIONS["DEPRESSION"]) == RegimenStatus.AVOID


class TestAssessRegimen:
    """Test regimen assessment."""

    def setup_method(self):
        self.catalog = MedicationCatalog()
        self.table = InteractionRulesTable(catalog=self.catalog)

    def _assess(self, medications, condition, week):
        return assess_regimen(medications, condition, week, catalog=self.catalog, table=self.table)

    def test_optimal_regimen(self):
        result = self._assess(["Methyldopa"], "HYPERTENSION", 20)
        assert result.optimal is True
        assert result.needs_change is False
        assert result.requires_provider_consent is False
        assert [r.action for r in result.recommendations] == ["CONTINUE"]
        assert result.trimester_guidance == "Monitor for preeclampsia; adjust medications as needed"

    def test_avoid_medication(self):
        result = self._assess(["Lisinopril"], "HYPERTENSION", 20)
        assert result.needs_change is True
        assert result.optimal is False
        assert result.requires_provider_consent is True
        assert result.requires_obstetrician is True
        discontinue = result.recommendations[0]
        assert discontinue.action == "DISCONTINUE"
        assert discontinue.medication == "lisinopril"
        assert discontinue.alternatives == ("Methyldopa", "Labetalol", "Nifedipine")

    def test_brand_name_resolved(self):
        result = self._assess(["Zestril"], "HYPERTENSION", 20)
        assert result.medications[0].medication == "lisinopril"
        assert result.medications[0].status == RegimenStatus.AVOID

    def test_unknown_medication_needs_review(self):
        result = self._assess(["notarealdrug"], "HYPERTENSION", 20)
        assert result.medications[0].status == RegimenStatus.UNKNOWN
        assert result.recommendations[0].action == "REVIEW"
        assert result.optimal is False
        assert result.needs_change is False

    def test_interactions_prevent_optimal(self):
        result = self._assess(["Sertraline", "Aspirin"], "DEPRESSION", 30)
        assert result.interactions
        assert result.optimal is False

    def test_empty_regimen(self):
        result = self._assess([], "ASTHMA", 20)
        assert result.needs_change is False
        assert result.recommendations[0].action == "CONTINUE"

    def test_result_is_immutable(self):
        result = self._assess(["Methyldopa"], "HYPERTENSION", 20)
        assert isinstance(result.medications, tuple)
        assert isinstance(result.recommendations, tuple)
        with pytest.raises(FrozenInstanceError):
            result.needs_change = True
        with pytest.raises(FrozenInstanceError):
            result.medications[0].status = RegimenStatus.AVOID

    def test_unknown_condition(self):
        with pytest.raises(UnknownConditionError):
            self._assess(["Methyldopa"], "migraine", 20)

    def test_invalid_week(self):
        with pytest.raises(OutOfRangeWeekError):
            self._assess(["Methyldopa"], "HYPERTENSION", 45)


class TestSafeAlternatives:
    """Test safe alternatives lookup."""

    def test_epilepsy_first_trimester(self):
        result = get_safe_alternatives_for_condition("EPILEPSY", 1)
        assert result.first_line == ["Lamotrigine", "Levetiracetam"]
        assert "Valproate (highest risk)" in result.avoid
        assert result.trimester_guidance.startswith("Folic acid critical")
        assert result.recommendation == "First-line treatments: Lamotrigine, Levetiracetam"

    def test_invalid_trimester(self):
        with pytest.raises(InvalidTrimesterError):
            get_safe_alternatives_for_condition("EPILEPSY", 4)

    def test_unknown_condition(self):
        with pytest.raises(UnknownConditionError):
            get_safe_alternatives_for_condition("migraine", 2)
