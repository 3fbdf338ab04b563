"""Composite Risk Calculator.

Combines per-medication scores, interaction findings and maternal condition
appropriateness into one 0-100 risk score for a regimen:

    base    = 0.6 x max + 0.4 x mean   (found medications only)
    score   = base + interaction penalties + polypharmacy + condition
    final   = clamp(round_half_up(score), 0, 100)

The calculation is pure. Recording the assessment to the audit trail is the
caller's job (see pregsafe.api.assessments).
"""

from dataclasses import dataclass, field
import logging
from threading import Lock
from types import MappingProxyType
from typing import Mapping, Sequence

from cachetools import TTLCache

from pregsafe.core.errors import EmptyMedicationListError
from pregsafe.schemas.base import UNKNOWN_TIER, FDACategory, RecommendationPriority, RiskTier
from pregsafe.services.category_risk import (
    HIGH_THRESHOLD,
    MODERATE_THRESHOLD,
    check_medication_safety,
    clamp_score,
    round_score,
    tier_for_score,
)
from pregsafe.services.gestation import trimester_of, validate_week
from pregsafe.services.maternal_conditions import (
    MATERNAL_CONDITIONS,
    MaternalConditionProfile,
    RegimenAssessment,
    assess_regimen,
    get_condition,
)
from pregsafe.services.medications import MedicationCatalog, MedicationRecord
from pregsafe.services.pregnancy_interactions import (
    InteractionFinding,
    InteractionRulesTable,
    highest_severity,
)

logger = logging.getLogger(__name__)


# ============================================================================
# Composite Scoring Constants
# ============================================================================

MAX_WEIGHT = 0.6
MEAN_WEIGHT = 0.4

INTERACTION_PENALTIES: MappingProxyType[RiskTier, int] = MappingProxyType({
    RiskTier.CRITICAL: 20,
    RiskTier.HIGH: 15,
    RiskTier.MODERATE: 10,
    RiskTier.LOW: 0,
})

POLYPHARMACY_MIN_COUNT = 3
POLYPHARMACY_PENALTY_PER_MEDICATION = 3
POLYPHARMACY_REVIEW_COUNT = 4

CONDITION_NEEDS_CHANGE_PENALTY = 15
CONDITION_SUBOPTIMAL_PENALTY = 5

# Score at which a referral becomes an emergency
CRITICAL_REFERRAL_THRESHOLD = 85

NOT_FOUND_RECOMMENDATION = "Medication not in database - consult healthcare provider"


@dataclass(frozen=True)
class MedicationRisk:
    """Per-medication result inside a composite assessment."""

    medication_name: str
    found: bool
    tier: RiskTier | str
    recommendation: str
    generic_name: str | None = None
    category: FDACategory | None = None
    score: int | None = None
    safe: bool | None = None
    critical_period: bool = False
    warnings: tuple[str, ...] = ()
    alternatives: tuple[str, ...] = ()
    requires_provider_consent: bool = False
    requires_obstetrician: bool = False


@dataclass(frozen=True)
class Recommendation:
    """A ranked action for the patient or provider."""

    priority: RecommendationPriority
    action: str
    reason: str
    urgency: str
    kind: str
    medication: str | None = None


@dataclass(frozen=True)
class MedicationWarning:
    medication: str
    warning: str


@dataclass(frozen=True)
class SafeAlternative:
    medication: str
    alternatives: tuple[str, ...]


@dataclass(frozen=True)
class RiskAssessment:
    """Composite risk assessment for a medication regimen."""

    week: int
    trimester: int
    medication_count: int
    score: int
    tier: RiskTier
    base_score: float
    interaction_penalty: int
    polypharmacy_penalty: int
    risk_adjustment: int
    highest_individual_risk: int
    highest_severity: RiskTier | None
    has_category_x: bool
    has_category_d: bool
    safe: bool
    requires_provider_consent: bool
    requires_obstetrician: bool
    medication_risks: tuple[MedicationRisk, ...] = ()
    interactions: tuple[InteractionFinding, ...] = ()
    condition: str | None = None
    regimen: RegimenAssessment | None = None
    warnings: tuple[MedicationWarning, ...] = ()
    safe_alternatives: tuple[SafeAlternative, ...] = ()
    recommendations: tuple[Recommendation, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class ProviderRecommendation:
    """Who to contact and how soon."""

    provider_type: str
    urgency: str
    action: str
    timeframe: str
    escalation_needed: bool
    recommendation: str


# ============================================================================
# Scoring Steps
# ============================================================================


def _medication_risk(name: str, record: MedicationRecord | None, week: int) -> MedicationRisk:
    if record is None:
        return MedicationRisk(
            medication_name=name,
            found=False,
            tier=UNKNOWN_TIER,
            recommendation=NOT_FOUND_RECOMMENDATION,
        )

    check = check_medication_safety(record, week)
    return MedicationRisk(
        medication_name=name,
        found=True,
        tier=check.tier,
        recommendation=check.recommendation,
        generic_name=record.generic_name,
        category=check.category,
        score=check.score,
        safe=check.safe,
        critical_period=check.critical_period is not None,
        warnings=tuple(check.warnings),
        alternatives=tuple(check.alternatives),
        requires_provider_consent=check.requires_provider_consent,
        requires_obstetrician=check.requires_obstetrician,
    )


def composite_base_score(scores: Sequence[int]) -> float:
    """Blend 60% of the maximum with 40% of the mean; 0 when empty."""
    if not scores:
        return 0.0
    return max(scores) * MAX_WEIGHT + (sum(scores) / len(scores)) * MEAN_WEIGHT


def interaction_penalty(findings: Sequence[InteractionFinding]) -> int:
    """Sum the flat penalty of every finding by rule severity."""
    return sum(INTERACTION_PENALTIES[f.severity] for f in findings)


def polypharmacy_penalty(found_count: int) -> int:
    """+3 per medication beyond the second, from three medications up."""
    if found_count < POLYPHARMACY_MIN_COUNT:
        return 0
    return (found_count - 2) * POLYPHARMACY_PENALTY_PER_MEDICATION


def condition_penalty(regimen: RegimenAssessment | None) -> int:
    if regimen is None:
        return 0
    if regimen.needs_change:
        return CONDITION_NEEDS_CHANGE_PENALTY
    if not regimen.optimal:
        return CONDITION_SUBOPTIMAL_PENALTY
    return 0


def _collect_alternatives(
    risks: Sequence[MedicationRisk],
    findings: Sequence[InteractionFinding],
) -> tuple[SafeAlternative, ...]:
    merged: dict[str, tuple[str, list[str]]] = {}

    for risk in risks:
        if risk.found and risk.alternatives:
            key = risk.generic_name.lower()
            merged.setdefault(key, (risk.generic_name, []))
            for alt in risk.alternatives:
                if alt not in merged[key][1]:
                    merged[key][1].append(alt)

    for finding in findings:
        for medication, alternatives in finding.rule.alternatives.items():
            key = medication.lower()
            merged.setdefault(key, (medication, []))
            for alt in alternatives:
                if alt not in merged[key][1]:
                    merged[key][1].append(alt)

    return tuple(SafeAlternative(name, tuple(alts)) for name, alts in merged.values())


def _build_recommendations(
    risks: Sequence[MedicationRisk],
    worst: RiskTier | None,
    tier: RiskTier,
    regimen: RegimenAssessment | None,
) -> list[Recommendation]:
    recommendations: list[Recommendation] = []

    for risk in risks:
        if risk.found and risk.category == FDACategory.X:
            recommendations.append(
                Recommendation(
                    priority=RecommendationPriority.CRITICAL,
                    action="DISCONTINUE IMMEDIATELY",
                    reason="Category X - Contraindicated in pregnancy",
                    urgency="immediate",
                    kind="medication",
                    medication=risk.medication_name,
                )
            )

    for risk in risks:
        if risk.found and risk.category == FDACategory.D:
            recommendations.append(
                Recommendation(
                    priority=RecommendationPriority.HIGH,
                    action="Review with obstetrician",
                    reason="Category D - Known fetal risks",
                    urgency="within 24-48 hours",
                    kind="medication",
                    medication=risk.medication_name,
                )
            )

    if worst == RiskTier.CRITICAL:
        recommendations.append(
            Recommendation(
                priority=RecommendationPriority.CRITICAL,
                action="Seek immediate medical attention",
                reason="Critical drug interactions detected during pregnancy",
                urgency="immediate",
                kind="interaction",
            )
        )
    elif worst == RiskTier.HIGH:
        recommendations.append(
            Recommendation(
                priority=RecommendationPriority.HIGH,
                action="Consult obstetrician about drug interactions",
                reason="Serious drug interactions possible during pregnancy",
                urgency="within 24-48 hours",
                kind="interaction",
            )
        )

    if len(risks) >= POLYPHARMACY_REVIEW_COUNT:
        recommendations.append(
            Recommendation(
                priority=RecommendationPriority.MODERATE,
                action="Review medication necessity",
                reason=f"Taking {len(risks)} medications - minimize polypharmacy during pregnancy",
                urgency="at next appointment",
                kind="polypharmacy",
            )
        )

    if regimen is not None and regimen.needs_change:
        recommendations.append(
            Recommendation(
                priority=RecommendationPriority.HIGH,
                action="Switch to condition-appropriate medication",
                reason=f"Current regimen includes medications to avoid for {regimen.condition} during pregnancy",
                urgency="within 24-48 hours",
                kind="condition_management",
            )
        )

    if not recommendations:
        if tier == RiskTier.CRITICAL:
            recommendations.append(
                Recommendation(
                    priority=RecommendationPriority.CRITICAL,
                    action="Immediate obstetric consultation required",
                    reason="Very high overall pregnancy risk from current medications",
                    urgency="immediate",
                    kind="overall",
                )
            )
        elif tier == RiskTier.HIGH:
            recommendations.append(
                Recommendation(
                    priority=RecommendationPriority.HIGH,
                    action="Schedule urgent appointment with obstetrician",
                    reason="High pregnancy risk - medication review needed",
                    urgency="within 24-48 hours",
                    kind="overall",
                )
            )
        elif tier == RiskTier.MODERATE:
            recommendations.append(
                Recommendation(
                    priority=RecommendationPriority.MODERATE,
                    action="Discuss medications at next prenatal visit",
                    reason="Moderate risk - ongoing monitoring recommended",
                    urgency="at next appointment",
                    kind="overall",
                )
            )
        else:
            recommendations.append(
                Recommendation(
                    priority=RecommendationPriority.INFO,
                    action="Continue current medications as directed",
                    reason="Current regimen appears safe for pregnancy",
                    urgency="routine monitoring",
                    kind="overall",
                )
            )

    # sorted() is stable, so entries keep generation order within a priority
    return sorted(recommendations, key=lambda r: r.priority.rank)


def compute_assessment(
    names: Sequence[str],
    week: int,
    catalog: MedicationCatalog,
    table: InteractionRulesTable,
    profile: MaternalConditionProfile | None = None,
    profiles: Mapping[str, MaternalConditionProfile] | None = None,
) -> RiskAssessment:
    """Run the composite pipeline over injected reference tables.

    Inputs must already be validated; see calculate_composite.
    """
    trimester = trimester_of(week)

    records = [catalog.find_medication(name) for name in names]
    risks = [_medication_risk(name, record, week) for name, record in zip(names, records)]
    found = [r for r in records if r is not None]
    scores = [risk.score for risk in risks if risk.found]

    findings = table.find_interactions(found, week)
    worst = highest_severity(findings)

    regimen = None
    if profile is not None:
        regimen = assess_regimen(
            [record if record is not None else name for name, record in zip(names, records)],
            profile.key,
            week,
            catalog=catalog,
            table=table,
            profiles=profiles if profiles is not None else {profile.key: profile},
        )

    base = composite_base_score(scores)
    i_penalty = interaction_penalty(findings)
    p_penalty = polypharmacy_penalty(len(found))
    c_penalty = condition_penalty(regimen)

    score = clamp_score(round_score(base + i_penalty + p_penalty + c_penalty))
    tier = tier_for_score(score)

    has_x = any(r.category == FDACategory.X for r in found)
    has_d = any(r.category == FDACategory.D for r in found)

    requires_consent = (
        score > MODERATE_THRESHOLD
        or has_x
        or has_d
        or worst in (RiskTier.HIGH, RiskTier.CRITICAL)
        or (regimen is not None and regimen.requires_provider_consent)
    )
    requires_obstetrician = (
        score > HIGH_THRESHOLD
        or has_x
        or worst == RiskTier.CRITICAL
        or (regimen is not None and regimen.requires_obstetrician)
    )

    safe = tier == RiskTier.LOW and not has_x and not has_d and (regimen is None or regimen.optimal)

    warnings = tuple(
        MedicationWarning(risk.generic_name, warning)
        for risk in risks
        if risk.found
        for warning in risk.warnings
    )

    recommendations = _build_recommendations(risks, worst, tier, regimen)

    logger.info(
        f"Composite assessment week {week}: {len(found)}/{len(names)} found, "
        f"{len(findings)} findings, score={score} tier={tier.value}"
    )

    return RiskAssessment(
        week=week,
        trimester=trimester,
        medication_count=len(names),
        score=score,
        tier=tier,
        base_score=round(base, 2),
        interaction_penalty=i_penalty,
        polypharmacy_penalty=p_penalty,
        risk_adjustment=c_penalty,
        highest_individual_risk=max(scores) if scores else 0,
        highest_severity=worst,
        has_category_x=has_x,
        has_category_d=has_d,
        safe=safe,
        requires_provider_consent=requires_consent,
        requires_obstetrician=requires_obstetrician,
        medication_risks=tuple(risks),
        interactions=tuple(findings),
        condition=profile.name if profile is not None else None,
        regimen=regimen,
        warnings=warnings,
        safe_alternatives=_collect_alternatives(risks, findings),
        recommendations=tuple(recommendations),
    )


def get_provider_recommendation(assessment: RiskAssessment) -> ProviderRecommendation:
    """Map an assessment to a provider type and urgency."""
    provider_type = "Primary Care Provider"
    urgency = "routine"
    action = "Routine follow-up"
    timeframe = "At next scheduled appointment"

    if assessment.has_category_x or assessment.score >= CRITICAL_REFERRAL_THRESHOLD:
        provider_type = "Obstetrician (Maternal-Fetal Medicine if available)"
        urgency = "emergency"
        action = "Immediate consultation required"
        timeframe = "Within hours"
    elif assessment.requires_obstetrician or assessment.score >= HIGH_THRESHOLD:
        provider_type = "Obstetrician"
        urgency = "urgent"
        action = "Urgent medication review"
        timeframe = "Within 24-48 hours"
    elif assessment.has_category_d or assessment.score >= MODERATE_THRESHOLD:
        provider_type = "Obstetrician or Primary Care Provider"
        urgency = "soon"
        action = "Medication review recommended"
        timeframe = "Within 1 week"

    return ProviderRecommendation(
        provider_type=provider_type,
        urgency=urgency,
        action=action,
        timeframe=timeframe,
        escalation_needed=urgency in ("emergency", "urgent"),
        recommendation=f"{action} - Contact {provider_type} {timeframe.lower()}",
    )


# ============================================================================
# Calculator Service
# ============================================================================


class RiskCalculatorService:
    """Composite risk calculator bound to a set of reference tables.

    Results are optionally cached on (names, week, condition). The cache is
    cleared whenever the reference data is reloaded.

    Usage:
        service = RiskCalculatorService(catalog, table)
        assessment = service.calculate_composite(["lisinopril"], week=20)
    """

    def __init__(
        self,
        catalog: MedicationCatalog,
        table: InteractionRulesTable,
        profiles: Mapping[str, MaternalConditionProfile] | None = None,
        cache_enabled: bool = True,
        cache_ttl_seconds: int = 3600,
        cache_max_entries: int = 1024,
    ) -> None:
        self._catalog = catalog
        self._table = table
        self._profiles = MATERNAL_CONDITIONS if profiles is None else profiles
        self._cache: TTLCache | None = None
        self._cache_lock = Lock()
        if cache_enabled and cache_ttl_seconds > 0:
            self._cache = TTLCache(maxsize=cache_max_entries, ttl=cache_ttl_seconds)
        logger.info(
            f"Risk calculator initialized (cache={'on' if self._cache is not None else 'off'}, "
            f"ttl={cache_ttl_seconds}s)"
        )

    @property
    def catalog(self) -> MedicationCatalog:
        return self._catalog

    @property
    def table(self) -> InteractionRulesTable:
        return self._table

    @property
    def profiles(self) -> Mapping[str, MaternalConditionProfile]:
        return self._profiles

    def calculate_composite(
        self,
        names: Sequence[str],
        week: int,
        condition: str | None = None,
    ) -> RiskAssessment:
        """Calculate the composite risk of a regimen.

        Args:
            names: Medication names (generic or brand).
            week: Week of pregnancy (1-40).
            condition: Optional maternal condition.

        Raises:
            EmptyMedicationListError: If names is empty.
            OutOfRangeWeekError: If week is outside [1, 40].
            UnknownConditionError: If condition does not match a profile.
        """
        if not names:
            raise EmptyMedicationListError()
        validate_week(week)
        profile = get_condition(condition, self._profiles) if condition else None

        if self._cache is None:
            return compute_assessment(list(names), week, self._catalog, self._table, profile, self._profiles)

        # Exact input names: assessments echo them back in medication_risks and regimen
        key = (tuple(names), week, profile.key if profile else None)
        with self._cache_lock:
            cached = self._cache.get(key)
        if cached is not None:
            logger.debug(f"Cache hit for composite assessment {key}")
            return cached

        assessment = compute_assessment(list(names), week, self._catalog, self._table, profile, self._profiles)
        with self._cache_lock:
            self._cache[key] = assessment
        return assessment

    def calculate_single_medication_risk(self, name: str, week: int) -> MedicationRisk:
        """Score one medication; not-found names give an unknown entry."""
        validate_week(week)
        return _medication_risk(name, self._catalog.find_medication(name), week)

    def reload_reference_data(
        self,
        catalog: MedicationCatalog | None = None,
        table: InteractionRulesTable | None = None,
        profiles: Mapping[str, MaternalConditionProfile] | None = None,
    ) -> None:
        """Swap in new reference tables and drop cached assessments.

        A new catalog without a new table re-indexes the current interaction
        rules against that catalog, so brand names resolve consistently.
        """
        with self._cache_lock:
            if catalog is not None:
                self._catalog = catalog
                if table is None:
                    table = self._table.with_catalog(catalog)
            if table is not None:
                self._table = table
            if profiles is not None:
                self._profiles = profiles
            if self._cache is not None:
                self._cache.clear()
        logger.info("Risk calculator reference data reloaded")

    def cache_size(self) -> int:
        if self._cache is None:
            return 0
        with self._cache_lock:
            return len(self._cache)


# Singleton instance and lock
_risk_calculator_service: RiskCalculatorService | None = None
_risk_calculator_lock = Lock()


def get_risk_calculator_service() -> RiskCalculatorService:
    """Get the singleton RiskCalculatorService instance."""
    global _risk_calculator_service

    if _risk_calculator_service is None:
        with _risk_calculator_lock:
            if _risk_calculator_service is None:
                from pregsafe.core.config import settings
                from pregsafe.services.medications import get_medication_catalog
                from pregsafe.services.pregnancy_interactions import get_interaction_table

                logger.info("Creating singleton RiskCalculatorService instance")
                _risk_calculator_service = RiskCalculatorService(
                    catalog=get_medication_catalog(),
                    table=get_interaction_table(),
                    cache_enabled=settings.cache_enabled,
                    cache_ttl_seconds=settings.cache_ttl_seconds,
                    cache_max_entries=settings.cache_max_entries,
                )

    return _risk_calculator_service


def reset_risk_calculator_service() -> None:
    """Reset the singleton instance (for testing)."""
    global _risk_calculator_service
    with _risk_calculator_lock:
        _risk_calculator_service = None


def calculate_composite(names: Sequence[str], week: int, condition: str | None = None) -> RiskAssessment:
    """Calculate a composite assessment with the shared service."""
    return get_risk_calculator_service().calculate_composite(names, week, condition)


def calculate_single_medication_risk(name: str, week: int) -> MedicationRisk:
    """Score one medication with the shared service."""
    return get_risk_calculator_service().calculate_single_medication_risk(name, week)
