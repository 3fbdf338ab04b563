"""Maternal Condition Appropriateness Model.

Classifies medications against the treatment lists of a maternal health
condition (hypertension, diabetes, depression, asthma, epilepsy, thyroid)
and assesses whether a regimen should change.

Matching is a case-insensitive substring test in either direction, so
"Lisinopril" matches the avoid entry "ACE Inhibitors (Lisinopril)".
"""

from dataclasses import dataclass
import logging
import re
from types import MappingProxyType
from typing import Mapping, Sequence

from pregsafe.core.errors import UnknownConditionError
from pregsafe.schemas.base import RegimenStatus, RiskTier
from pregsafe.services.gestation import trimester_of, validate_trimester, validate_week
from pregsafe.services.medications import MedicationCatalog, MedicationRecord
from pregsafe.services.pregnancy_interactions import (
    InteractionFinding,
    InteractionRulesTable,
    highest_severity,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MaternalConditionProfile:
    """Treatment guidance for a maternal condition during pregnancy."""

    key: str
    name: str
    first_line: tuple[str, ...]
    second_line: tuple[str, ...]
    avoid: tuple[str, ...]
    risks: tuple[str, ...]
    trimester_guidance: Mapping[int, str]

    def __post_init__(self) -> None:
        missing = [t for t in (1, 2, 3) if not self.trimester_guidance.get(t)]
        if missing:
            raise ValueError(f"Condition {self.key} missing guidance for trimesters {missing}")
        object.__setattr__(self, "trimester_guidance", MappingProxyType(dict(self.trimester_guidance)))


@dataclass(frozen=True)
class RegimenMedication:
    """Classification of one medication in a regimen."""

    medication: str
    status: RegimenStatus
    recommendation: str


@dataclass(frozen=True)
class RegimenRecommendation:
    """A regimen-level action for one medication, or CONTINUE for all."""

    action: str
    reason: str
    medication: str | None = None
    alternatives: tuple[str, ...] = ()
    note: str | None = None


@dataclass(frozen=True)
class RegimenAssessment:
    """Result of assessing a medication regimen against a condition."""

    condition: str
    condition_key: str
    week: int
    trimester: int
    medications: tuple[RegimenMedication, ...]
    interactions: tuple[InteractionFinding, ...]
    condition_risks: tuple[str, ...]
    trimester_guidance: str
    needs_change: bool
    optimal: bool
    recommendations: tuple[RegimenRecommendation, ...]
    requires_provider_consent: bool
    requires_obstetrician: bool


@dataclass
class ConditionAlternatives:
    """Treatment options for a condition in a trimester."""

    condition: str
    trimester: int
    risks: list[str]
    first_line: list[str]
    second_line: list[str]
    avoid: list[str]
    trimester_guidance: str
    recommendation: str


# ============================================================================
# Condition Profiles
# ============================================================================

_PROFILES = [
    MaternalConditionProfile(
        key="HYPERTENSION",
        name="Hypertension (High Blood Pressure)",
        first_line=("Methyldopa", "Labetalol", "Nifedipine"),
        second_line=("Hydralazine",),
        avoid=("ACE Inhibitors (Lisinopril)", "ARBs (Losartan)", "Atenolol"),
        risks=("Preeclampsia", "Placental abruption", "Preterm birth"),
        trimester_guidance={
            1: "Close monitoring; establish safe medication regimen",
            2: "Monitor for preeclampsia; adjust medications as needed",
            3: "Prepare for delivery; may need medication adjustments",
        },
    ),
    MaternalConditionProfile(
        key="DIABETES",
        name="Diabetes",
        first_line=("Insulin (all types)", "Metformin (growing evidence)"),
        second_line=("Glyburide (limited use)",),
        avoid=("Most oral hypoglycemics", "GLP-1 agonists", "SGLT2 inhibitors"),
        risks=("Macrosomia", "Birth defects", "Preeclampsia", "Preterm birth"),
        trimester_guidance={
            1: "Strict glucose control critical for organ formation",
            2: "Monitor for macrosomia; adjust insulin as resistance increases",
            3: "Prepare for delivery; monitor for complications",
        },
    ),
    MaternalConditionProfile(
        key="DEPRESSION",
        name="Depression",
        first_line=("Sertraline", "Fluoxetine (some risk)"),
        second_line=("Citalopram", "Escitalopram"),
        avoid=("Paroxetine (Category D)", "MAO inhibitors"),
        risks=("Poor prenatal care", "Preterm birth", "Low birth weight"),
        trimester_guidance={
            1: "Weigh benefits vs risks; some small risk of defects",
            2: "Generally safer; continue if needed",
            3: "Monitor for neonatal adaptation syndrome; taper if possible",
        },
    ),
    MaternalConditionProfile(
        key="ASTHMA",
        name="Asthma",
        first_line=("Albuterol", "Budesonide inhaled"),
        second_line=("Montelukast", "Other inhaled corticosteroids"),
        avoid=("Epinephrine (except emergencies)", "Systemic steroids (minimize)"),
        risks=("Preeclampsia", "Preterm birth", "Low birth weight"),
        trimester_guidance={
            1: "Maintain good control; uncontrolled asthma more dangerous than meds",
            2: "Continue treatment; monitor lung function",
            3: "Prepare for delivery; have emergency plan",
        },
    ),
    MaternalConditionProfile(
        key="EPILEPSY",
        name="Epilepsy",
        first_line=("Lamotrigine", "Levetiracetam"),
        second_line=("Oxcarbazepine",),
        avoid=("Valproate (highest risk)", "Phenytoin", "Carbamazepine"),
        risks=("Seizures harm both mother and fetus", "Medication-related birth defects"),
        trimester_guidance={
            1: "Folic acid critical; switch to safer medication if possible",
            2: "Monitor medication levels; pregnancy increases metabolism",
            3: "Plan for delivery; seizure control essential",
        },
    ),
    MaternalConditionProfile(
        key="THYROID",
        name="Thyroid Disorders",
        first_line=(
            "Levothyroxine (hypothyroid)",
            "Propylthiouracil (hyperthyroid - 1st trimester)",
            "Methimazole (hyperthyroid - 2nd/3rd trimester)",
        ),
        second_line=(),
        avoid=("Radioactive iodine",),
        risks=("Miscarriage", "Preeclampsia", "Preterm birth", "Developmental delays"),
        trimester_guidance={
            1: "Critical for fetal brain development; increase levothyroxine dose",
            2: "Continue monitoring; adjust as needed",
            3: "Prepare for postpartum thyroid changes",
        },
    ),
]

MATERNAL_CONDITIONS: Mapping[str, MaternalConditionProfile] = MappingProxyType({p.key: p for p in _PROFILES})


def condition_key(name: str) -> str:
    """Normalize a condition name to its table key (DIABETES, ...)."""
    return re.sub(r"\s+", "_", name.strip().upper())


def get_condition(
    name: str,
    profiles: Mapping[str, MaternalConditionProfile] | None = None,
) -> MaternalConditionProfile:
    """Resolve a condition by key or display name, case-insensitively.

    Raises:
        UnknownConditionError: If no profile matches.
    """
    profiles = MATERNAL_CONDITIONS if profiles is None else profiles
    if not name or not name.strip():
        raise UnknownConditionError(name)

    profile = profiles.get(condition_key(name))
    if profile is not None:
        return profile

    lowered = name.strip().lower()
    for candidate in profiles.values():
        if candidate.name.lower() == lowered:
            return candidate

    raise UnknownConditionError(name)


def _matches(medication: str, entries: Sequence[str]) -> bool:
    med = medication.lower()
    return any(entry.lower() in med or med in entry.lower() for entry in entries)


def classify(medication_name: str, profile: MaternalConditionProfile) -> RegimenStatus:
    """Classify a medication for a condition.

    The avoid list is checked first, then first line, then second line.
    """
    name = medication_name.strip()
    if not name:
        return RegimenStatus.UNKNOWN
    if _matches(name, profile.avoid):
        return RegimenStatus.AVOID
    if _matches(name, profile.first_line):
        return RegimenStatus.RECOMMENDED
    if _matches(name, profile.second_line):
        return RegimenStatus.ACCEPTABLE
    return RegimenStatus.UNKNOWN


_STATUS_TEXT = {
    RegimenStatus.RECOMMENDED: "CONTINUE - First-line treatment",
    RegimenStatus.ACCEPTABLE: "ACCEPTABLE - Second-line option",
    RegimenStatus.UNKNOWN: "REVIEW - Consult provider",
}


def _regimen_recommendations(
    analysis: list[RegimenMedication],
    profile: MaternalConditionProfile,
) -> list[RegimenRecommendation]:
    recommendations: list[RegimenRecommendation] = []

    for item in analysis:
        if item.status == RegimenStatus.AVOID:
            recommendations.append(
                RegimenRecommendation(
                    action="DISCONTINUE",
                    medication=item.medication,
                    reason=f"Not safe for {profile.name} during pregnancy",
                    alternatives=profile.first_line,
                )
            )
        elif item.status == RegimenStatus.UNKNOWN:
            recommendations.append(
                RegimenRecommendation(
                    action="REVIEW",
                    medication=item.medication,
                    reason="Not in standard treatment list",
                )
            )

    if not recommendations:
        recommendations.append(
            RegimenRecommendation(
                action="CONTINUE",
                reason="Current regimen appears appropriate",
                note="Continue regular monitoring with healthcare provider",
            )
        )

    return recommendations


def assess_regimen(
    medications: Sequence[MedicationRecord | str],
    condition: str,
    week: int,
    catalog: MedicationCatalog | None = None,
    table: InteractionRulesTable | None = None,
    profiles: Mapping[str, MaternalConditionProfile] | None = None,
) -> RegimenAssessment:
    """Assess a medication regimen for a maternal condition.

    Args:
        medications: Medication records, or names resolved through the catalog.
        condition: Condition key or display name.
        week: Week of pregnancy.
        catalog: Catalog used to resolve names (shared catalog by default).
        table: Interaction table (shared table by default).
        profiles: Condition profiles (built-in table by default).

    Raises:
        OutOfRangeWeekError: If week is outside [1, 40].
        UnknownConditionError: If the condition does not match a profile.
    """
    validate_week(week)
    profile = get_condition(condition, profiles)
    trimester = trimester_of(week)

    if catalog is None:
        from pregsafe.services.medications import get_medication_catalog

        catalog = get_medication_catalog()
    if table is None:
        from pregsafe.services.pregnancy_interactions import get_interaction_table

        table = get_interaction_table()

    records: list[MedicationRecord] = []
    analysis: list[RegimenMedication] = []
    for item in medications:
        record = item if isinstance(item, MedicationRecord) else catalog.find_medication(item)
        if record is not None:
            records.append(record)
            name = record.generic_name
        else:
            name = str(item)

        status = classify(name, profile)
        text = (
            f"DISCONTINUE - Not safe for {profile.name} during pregnancy"
            if status == RegimenStatus.AVOID
            else _STATUS_TEXT[status]
        )
        analysis.append(RegimenMedication(medication=name, status=status, recommendation=text))

    findings = table.find_interactions(records, week)
    worst = highest_severity(findings)

    needs_change = any(m.status == RegimenStatus.AVOID for m in analysis)
    all_recommended = all(m.status == RegimenStatus.RECOMMENDED for m in analysis)
    interaction_consent = worst in (RiskTier.HIGH, RiskTier.CRITICAL)

    logger.debug(f"Regimen for {profile.key} week {week}: needs_change={needs_change} findings={len(findings)}")

    return RegimenAssessment(
        condition=profile.name,
        condition_key=profile.key,
        week=week,
        trimester=trimester,
        medications=tuple(analysis),
        interactions=tuple(findings),
        condition_risks=profile.risks,
        trimester_guidance=profile.trimester_guidance[trimester],
        needs_change=needs_change,
        optimal=all_recommended and not findings,
        recommendations=tuple(_regimen_recommendations(analysis, profile)),
        requires_provider_consent=needs_change or interaction_consent,
        requires_obstetrician=worst == RiskTier.CRITICAL,
    )


def get_safe_alternatives_for_condition(
    condition: str,
    trimester: int,
    profiles: Mapping[str, MaternalConditionProfile] | None = None,
) -> ConditionAlternatives:
    """Get treatment options for a condition in a trimester.

    Raises:
        UnknownConditionError: If the condition does not match a profile.
        InvalidTrimesterError: If trimester is not 1, 2 or 3.
    """
    validate_trimester(trimester)
    profile = get_condition(condition, profiles)
    return ConditionAlternatives(
        condition=profile.name,
        trimester=trimester,
        risks=list(profile.risks),
        first_line=list(profile.first_line),
        second_line=list(profile.second_line),
        avoid=list(profile.avoid),
        trimester_guidance=profile.trimester_guidance[trimester],
        recommendation=f"First-line treatments: {', '.join(profile.first_line)}",
    )
