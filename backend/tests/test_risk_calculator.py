"""Tests for the composite risk calculator.

Covers the scoring pipeline, flags, ranked recommendations, provider
referral and the assessment cache.
"""

from dataclasses import FrozenInstanceError, replace

import pytest

from pregsafe.core.errors import EmptyMedicationListError, OutOfRangeWeekError, UnknownConditionError
from pregsafe.schemas import UNKNOWN_TIER, RecommendationPriority, RiskTier
from pregsafe.services.medications import MEDICATIONS, MedicationCatalog
from pregsafe.services.pregnancy_interactions import InteractionRulesTable
from pregsafe.services.risk_calculator import (
    NOT_FOUND_RECOMMENDATION,
    RiskCalculatorService,
    calculate_composite,
    composite_base_score,
    get_provider_recommendation,
    get_risk_calculator_service,
    polypharmacy_penalty,
    reset_risk_calculator_service,
)


def _service(**kwargs) -> RiskCalculatorService:
    catalog = MedicationCatalog()
    return RiskCalculatorService(catalog, InteractionRulesTable(catalog=catalog), **kwargs)


# ============================================================================
# Service Tests
# ============================================================================


class TestServiceInit:
    """Test service initialization."""

    def setup_method(self):
        reset_risk_calculator_service()

    def test_singleton_pattern(self):
        assert get_risk_calculator_service() is get_risk_calculator_service()

    def test_singleton_reset(self):
        first = get_risk_calculator_service()
        reset_risk_calculator_service()
        assert get_risk_calculator_service() is not first

    def test_module_function(self):
        assert calculate_composite(["amoxicillin"], 20).score == 25


# ============================================================================
# Scoring Steps
# ============================================================================


class TestScoringSteps:
    """Test the individual composite steps."""

    def test_base_score(self):
        assert composite_base_score([90, 70]) == pytest.approx(86.0)
        assert composite_base_score([]) == 0.0

    @pytest.mark.parametrize("scores", [[90, 10], [90, 10, 10, 10], [100, 0], [55]])
    def test_base_dominated_by_max(self, scores: list[int]):
        assert composite_base_score(scores) >= 0.6 * max(scores)

    def test_low_scores_do_not_dilute_max(self):
        assert composite_base_score([90, 10]) == pytest.approx(74.0)

    @pytest.mark.parametrize("count,penalty", [(0, 0), (1, 0), (2, 0), (3, 3), (4, 6), (6, 12)])
    def test_polypharmacy(self, count: int, penalty: int):
        assert polypharmacy_penalty(count) == penalty


# ============================================================================
# Scenarios
# ============================================================================


class TestScenarios:
    """End-to-end composite scenarios."""

    def setup_method(self):
        self.service = _service(cache_enabled=False)

    def test_single_safe_medication(self):
        result = self.service.calculate_composite(["amoxicillin"], 20)
        assert result.score == 25
        assert result.tier == RiskTier.LOW
        assert result.safe is True
        assert result.requires_provider_consent is False
        assert result.requires_obstetrician is False
        assert result.interactions == ()
        assert [r.priority for r in result.recommendations] == [RecommendationPriority.INFO]
        assert result.recommendations[0].action == "Continue current medications as directed"

    def test_category_x_medication(self):
        result = self.service.calculate_composite(["atorvastatin"], 20)
        assert result.score == 100
        assert result.tier == RiskTier.CRITICAL
        assert result.has_category_x is True
        assert result.safe is False
        assert result.requires_obstetrician is True
        actions = [r.action for r in result.recommendations]
        assert actions.count("DISCONTINUE IMMEDIATELY") == 1
        assert actions.count("Seek immediate medical attention") == 1
        assert all(r.priority == RecommendationPriority.CRITICAL for r in result.recommendations)

    def test_critical_pair_third_trimester(self):
        result = self.service.calculate_composite(["ibuprofen", "lisinopril"], 35)
        assert result.base_score == pytest.approx(86.0)
        assert result.interaction_penalty == 40
        assert result.score == 100
        assert result.tier == RiskTier.CRITICAL
        assert result.highest_severity == RiskTier.CRITICAL
        assert result.has_category_d is True
        assert result.requires_obstetrician is True

    def test_optimal_condition_regimen(self):
        result = self.service.calculate_composite(["Methyldopa"], 20, condition="HYPERTENSION")
        assert result.score == 25
        assert result.tier == RiskTier.LOW
        assert result.risk_adjustment == 0
        assert result.regimen.optimal is True
        assert result.condition == "Hypertension (High Blood Pressure)"
        assert result.safe is True

    def test_regimen_needs_change(self):
        result = self.service.calculate_composite(["Lisinopril"], 20, condition="hypertension")
        assert result.regimen.needs_change is True
        assert result.risk_adjustment == 15
        assert result.requires_provider_consent is True
        actions = [r.action for r in result.recommendations]
        assert "Switch to condition-appropriate medication" in actions

    def test_polypharmacy(self):
        two = self.service.calculate_composite(["amoxicillin", "metformin"], 20)
        four = self.service.calculate_composite(["amoxicillin", "metformin", "budesonide", "loratadine"], 20)
        assert two.score == 25
        assert four.polypharmacy_penalty == 6
        assert four.score == 31
        assert four.tier == RiskTier.MODERATE
        assert "Review medication necessity" in [r.action for r in four.recommendations]

    def test_recommendations_use_input_names(self):
        result = self.service.calculate_composite(["Zestril", "Lipitor"], 20)
        by_action = {r.action: r.medication for r in result.recommendations if r.kind == "medication"}
        assert by_action["DISCONTINUE IMMEDIATELY"] == "Lipitor"
        assert by_action["Review with obstetrician"] == "Zestril"


# ============================================================================
# Properties
# ============================================================================


class TestProperties:
    """Test invariants of the composite calculation."""

    def setup_method(self):
        self.service = _service(cache_enabled=False)

    def test_not_found_excluded(self):
        with_unknown = self.service.calculate_composite(["amoxicillin", "notarealdrug"], 20)
        alone = self.service.calculate_composite(["amoxicillin"], 20)
        assert with_unknown.score == alone.score
        assert with_unknown.medication_count == 2
        unknown = with_unknown.medication_risks[1]
        assert unknown.found is False
        assert unknown.tier == UNKNOWN_TIER
        assert unknown.recommendation == NOT_FOUND_RECOMMENDATION

    def test_all_unknown(self):
        result = self.service.calculate_composite(["notarealdrug"], 20)
        assert result.score == 0
        assert result.highest_individual_risk == 0

    def test_input_order_preserved_in_risks(self):
        result = self.service.calculate_composite(["Lisinopril", "Advil"], 20)
        assert [r.medication_name for r in result.medication_risks] == ["Lisinopril", "Advil"]

    def test_score_independent_of_order(self):
        names = ["sertraline", "ibuprofen", "aspirin", "labetalol"]
        forward = self.service.calculate_composite(names, 30)
        backward = self.service.calculate_composite(list(reversed(names)), 30)
        assert forward.score == backward.score
        assert forward.tier == backward.tier

    @pytest.mark.parametrize("week", range(1, 41))
    def test_deterministic(self, week: int):
        names = ["sertraline", "ibuprofen", "Zestril", "notarealdrug"]
        first = self.service.calculate_composite(names, week, "DEPRESSION")
        second = self.service.calculate_composite(names, week, "DEPRESSION")
        assert (first.score, first.tier) == (second.score, second.tier)
        assert first == second

    @pytest.mark.parametrize("week", range(1, 41))
    def test_dominated_by_highest_medication(self, week: int):
        result = self.service.calculate_composite(["atorvastatin", "acetaminophen"], week)
        assert result.score >= round(0.6 * result.highest_individual_risk)
        assert result.base_score >= 0.6 * result.highest_individual_risk

    def test_adding_x_never_lowers_to_low(self):
        result = self.service.calculate_composite(["acetaminophen", "isotretinoin"], 20)
        assert result.tier == RiskTier.CRITICAL
        assert result.requires_obstetrician is True

    def test_recommendations_sorted_by_priority(self):
        result = self.service.calculate_composite(
            ["atorvastatin", "lisinopril", "ibuprofen", "sertraline"], 30
        )
        ranks = [r.priority.rank for r in result.recommendations]
        assert ranks == sorted(ranks)

    def test_safe_alternatives_collected(self):
        result = self.service.calculate_composite(["ibuprofen", "lisinopril"], 35)
        by_medication = {a.medication.lower(): a.alternatives for a in result.safe_alternatives}
        assert "Acetaminophen" in by_medication["ibuprofen"]
        assert "Methyldopa" in by_medication["lisinopril"]

    def test_warnings_attributed(self):
        result = self.service.calculate_composite(["ibuprofen"], 35)
        assert all(w.medication == "ibuprofen" for w in result.warnings)
        assert result.warnings

    def test_single_medication_risk(self):
        risk = self.service.calculate_single_medication_risk("Advil", 35)
        assert risk.found is True
        assert risk.score == 70
        assert risk.safe is False


class TestValidation:
    """Test input validation happens before scoring."""

    def setup_method(self):
        self.service = _service()

    def test_empty_list(self):
        with pytest.raises(EmptyMedicationListError):
            self.service.calculate_composite([], 20)

    @pytest.mark.parametrize("week", [0, 41])
    def test_invalid_week(self, week: int):
        with pytest.raises(OutOfRangeWeekError):
            self.service.calculate_composite(["amoxicillin"], week)

    def test_unknown_condition(self):
        with pytest.raises(UnknownConditionError):
            self.service.calculate_composite(["amoxicillin"], 20, condition="migraine")

    def test_single_medication_invalid_week(self):
        with pytest.raises(OutOfRangeWeekError):
            self.service.calculate_single_medication_risk("amoxicillin", 0)


# ============================================================================
# Provider Recommendation
# ============================================================================


class TestProviderRecommendation:
    """Test provider referral mapping."""

    def setup_method(self):
        self.service = _service(cache_enabled=False)

    def test_emergency_for_category_x(self):
        result = get_provider_recommendation(self.service.calculate_composite(["atorvastatin"], 20))
        assert result.urgency == "emergency"
        assert result.escalation_needed is True
        assert result.provider_type.startswith("Obstetrician")

    def test_routine(self):
        result = get_provider_recommendation(self.service.calculate_composite(["amoxicillin"], 20))
        assert result.urgency == "routine"
        assert result.provider_type == "Primary Care Provider"
        assert result.escalation_needed is False

    def test_soon_for_moderate(self):
        result = get_provider_recommendation(self.service.calculate_composite(["ibuprofen"], 20))
        assert result.urgency == "soon"
        assert result.timeframe == "Within 1 week"


# ============================================================================
# Cache
# ============================================================================


class TestCache:
    """Test the assessment cache."""

    def test_cached_result_reused(self):
        service = _service()
        first = service.calculate_composite(["amoxicillin"], 20)
        second = service.calculate_composite(["amoxicillin"], 20)
        assert first is second
        assert service.cache_size() == 1

    def test_spelling_cached_separately(self):
        service = _service()
        service.calculate_composite(["ADVIL", "NotARealDrug"], 20, "hypertension")
        second = service.calculate_composite(["advil", "notarealdrug"], 20, "hypertension")
        uncached = _service(cache_enabled=False).calculate_composite(
            ["advil", "notarealdrug"], 20, "hypertension"
        )
        assert second == uncached
        assert [r.medication_name for r in second.medication_risks] == ["advil", "notarealdrug"]
        assert [m.medication for m in second.regimen.medications] == ["ibuprofen", "notarealdrug"]
        assert service.cache_size() == 2

    def test_cached_result_is_immutable(self):
        service = _service()
        first = service.calculate_composite(["methyldopa"], 20, "hypertension")
        with pytest.raises(FrozenInstanceError):
            first.regimen.needs_change = True
        with pytest.raises(AttributeError):
            first.regimen.medications.clear()
        again = service.calculate_composite(["methyldopa"], 20, "hypertension")
        assert again.regimen.needs_change is False
        assert len(again.regimen.medications) == 1

    def test_cache_matches_uncached(self):
        cached = _service().calculate_composite(["ibuprofen", "lisinopril"], 35, "HYPERTENSION")
        uncached = _service(cache_enabled=False).calculate_composite(["ibuprofen", "lisinopril"], 35, "HYPERTENSION")
        assert cached == uncached

    def test_reload_clears_cache(self):
        service = _service()
        service.calculate_composite(["amoxicillin"], 20)
        service.reload_reference_data(catalog=MedicationCatalog())
        assert service.cache_size() == 0

    def test_reload_catalog_reindexes_table(self):
        service = _service()
        old_table = service.table
        ibuprofen = replace(service.catalog.find_medication("ibuprofen"), brand_names=("Nurofen",))
        records = [r for r in MEDICATIONS if r.generic_name != "ibuprofen"] + [ibuprofen]
        service.reload_reference_data(catalog=MedicationCatalog(records))
        assert service.table is not old_table
        assert service.table.rules == old_table.rules
        assert service.table.normalize_name("Nurofen") == "ibuprofen"
        assert service.table.lookup_pair("Nurofen", "lisinopril") is not None

    def test_reload_keeps_explicit_table(self):
        service = _service()
        catalog = MedicationCatalog()
        table = InteractionRulesTable(catalog=catalog)
        service.reload_reference_data(catalog=catalog, table=table)
        assert service.table is table

    def test_disabled(self):
        service = _service(cache_enabled=False)
        service.calculate_composite(["amoxicillin"], 20)
        assert service.cache_size() == 0

    def test_validation_before_cache(self):
        service = _service()
        service.calculate_composite(["amoxicillin"], 20)
        with pytest.raises(OutOfRangeWeekError):
            service.calculate_composite(["amoxicillin"], 41)
