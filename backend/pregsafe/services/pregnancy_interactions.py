"""Pregnancy Interaction Rules Service.

Detects drug-drug interactions that become dangerous during pregnancy, plus
single-medication pregnancy contraindications (category X) and high-risk
flags (category D).

Pair rules are looked up by the sorted pair of generic names, so lookup is
symmetric. A category X or D medication without an explicit solo rule gets a
synthesized default rule rather than being skipped.
"""

from dataclasses import dataclass, field
import logging
from threading import Lock
from types import MappingProxyType
from typing import Any, Iterable, Mapping

from pregsafe.schemas.base import FDACategory, InteractionKind, RiskTier
from pregsafe.services.gestation import trimester_of, validate_week
from pregsafe.services.medications import MedicationCatalog, MedicationRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InteractionRule:
    """A pregnancy-specific interaction or contraindication rule.

    Solo rules name one medication, pair rules name two.
    """

    medications: tuple[str, ...]
    severity: RiskTier
    reason: str
    trimester_risks: Mapping[int, RiskTier]
    recommendation: str
    normal_severity: RiskTier | None = None
    maternal_effects: tuple[str, ...] = ()
    fetal_effects: tuple[str, ...] = ()
    neonatal_effects: tuple[str, ...] = ()
    alternatives: Mapping[str, tuple[str, ...]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if len(self.medications) not in (1, 2):
            raise ValueError(f"Interaction rule must name one or two medications: {self.medications}")
        object.__setattr__(self, "trimester_risks", MappingProxyType(dict(self.trimester_risks)))
        object.__setattr__(self, "alternatives", MappingProxyType(dict(self.alternatives)))

    @property
    def key(self) -> tuple[str, ...]:
        """Sorted lowercase medication names."""
        return tuple(sorted(m.lower().strip() for m in self.medications))

    @property
    def is_solo(self) -> bool:
        return len(self.medications) == 1


@dataclass(frozen=True)
class InteractionFinding:
    """A rule as triggered for the current trimester."""

    kind: InteractionKind
    rule: InteractionRule
    current_trimester: int
    current_trimester_risk: RiskTier | None

    @property
    def severity(self) -> RiskTier:
        return self.rule.severity

    @property
    def medications(self) -> tuple[str, ...]:
        return self.rule.medications


# Sort order of findings by kind
_KIND_ORDER = {
    InteractionKind.PREGNANCY_CONTRAINDICATION: 0,
    InteractionKind.PREGNANCY_HIGH_RISK: 1,
    InteractionKind.DRUG_INTERACTION: 2,
}


# ============================================================================
# Pregnancy Interaction Database
# ============================================================================


def _all_trimesters(tier: RiskTier) -> dict[int, RiskTier]:
    return {1: tier, 2: tier, 3: tier}


PREGNANCY_INTERACTIONS: list[InteractionRule] = [
    # ==========================================================================
    # PAIRWISE INTERACTIONS
    # ==========================================================================
    InteractionRule(
        medications=("Ibuprofen", "Lisinopril"),
        severity=RiskTier.CRITICAL,
        normal_severity=RiskTier.MODERATE,
        reason="Combined use significantly increases risk of renal failure in fetus",
        maternal_effects=("Kidney damage", "Blood pressure instability"),
        fetal_effects=("Renal failure", "Oligohydramnios", "Fetal death"),
        neonatal_effects=("Kidney dysfunction", "Hypotension"),
        trimester_risks={1: RiskTier.HIGH, 2: RiskTier.CRITICAL, 3: RiskTier.CRITICAL},
        recommendation="AVOID COMBINATION - Use safer alternatives",
        alternatives={"Ibuprofen": ("Acetaminophen",), "Lisinopril": ("Methyldopa", "Labetalol")},
    ),
    InteractionRule(
        medications=("Ibuprofen", "Losartan"),
        severity=RiskTier.CRITICAL,
        normal_severity=RiskTier.MODERATE,
        reason="NSAIDs with angiotensin receptor blockers compound fetal renal toxicity",
        maternal_effects=("Acute kidney injury",),
        fetal_effects=("Renal failure", "Oligohydramnios"),
        neonatal_effects=("Kidney dysfunction",),
        trimester_risks={1: RiskTier.HIGH, 2: RiskTier.CRITICAL, 3: RiskTier.CRITICAL},
        recommendation="AVOID COMBINATION - Use safer alternatives",
        alternatives={"Ibuprofen": ("Acetaminophen",), "Losartan": ("Methyldopa", "Labetalol")},
    ),
    InteractionRule(
        medications=("Ibuprofen", "Aspirin"),
        severity=RiskTier.HIGH,
        normal_severity=RiskTier.MODERATE,
        reason="Increased bleeding risk, especially near delivery",
        maternal_effects=("Increased bleeding", "Prolonged labor"),
        fetal_effects=("Premature closure of ductus arteriosus",),
        neonatal_effects=("Bleeding complications", "Pulmonary hypertension"),
        trimester_risks={1: RiskTier.MODERATE, 2: RiskTier.HIGH, 3: RiskTier.CRITICAL},
        recommendation="Avoid in 3rd trimester; use caution earlier",
        alternatives={"Ibuprofen": ("Acetaminophen",), "Aspirin": ("Low-dose aspirin under supervision only",)},
    ),
    InteractionRule(
        medications=("Sertraline", "Ibuprofen"),
        severity=RiskTier.HIGH,
        normal_severity=RiskTier.MODERATE,
        reason="Both increase bleeding risk; synergistic effect during pregnancy",
        maternal_effects=("Postpartum hemorrhage risk",),
        fetal_effects=("Persistent pulmonary hypertension (3rd trimester)",),
        neonatal_effects=("Bleeding", "Withdrawal symptoms"),
        trimester_risks={1: RiskTier.MODERATE, 2: RiskTier.MODERATE, 3: RiskTier.HIGH},
        recommendation="Avoid combination; use acetaminophen instead of NSAIDs",
        alternatives={"Ibuprofen": ("Acetaminophen",)},
    ),
    InteractionRule(
        medications=("Warfarin", "Aspirin"),
        severity=RiskTier.HIGH,
        normal_severity=RiskTier.HIGH,
        reason="Additive anticoagulant and antiplatelet effect with placental bleeding risk",
        maternal_effects=("Hemorrhage", "Placental abruption"),
        fetal_effects=("Fetal intracranial hemorrhage",),
        neonatal_effects=("Bleeding at delivery",),
        trimester_risks={1: RiskTier.HIGH, 2: RiskTier.HIGH, 3: RiskTier.CRITICAL},
        recommendation="Avoid combination; switch to low molecular weight heparin",
        alternatives={"Warfarin": ("Enoxaparin", "Heparin")},
    ),
    InteractionRule(
        medications=("Sertraline", "Aspirin"),
        severity=RiskTier.MODERATE,
        normal_severity=RiskTier.MODERATE,
        reason="SSRIs impair platelet function; combined bleeding risk at delivery",
        maternal_effects=("Postpartum hemorrhage risk",),
        trimester_risks={1: RiskTier.LOW, 2: RiskTier.MODERATE, 3: RiskTier.HIGH},
        recommendation="Monitor for bleeding; review near delivery",
    ),
    InteractionRule(
        medications=("Lithium", "Ibuprofen"),
        severity=RiskTier.HIGH,
        normal_severity=RiskTier.MODERATE,
        reason="NSAIDs reduce lithium clearance; pregnancy already alters lithium levels",
        maternal_effects=("Lithium toxicity",),
        neonatal_effects=("Floppy infant syndrome",),
        trimester_risks={1: RiskTier.HIGH, 2: RiskTier.HIGH, 3: RiskTier.HIGH},
        recommendation="Avoid NSAIDs; monitor lithium levels closely",
        alternatives={"Ibuprofen": ("Acetaminophen",)},
    ),
    # ==========================================================================
    # SINGLE-MEDICATION CONTRAINDICATIONS
    # ==========================================================================
    InteractionRule(
        medications=("Atorvastatin",),
        severity=RiskTier.CRITICAL,
        reason="Category X - Absolutely contraindicated in pregnancy",
        maternal_effects=("None specific",),
        fetal_effects=("Severe birth defects", "Skeletal abnormalities", "CNS malformations"),
        neonatal_effects=("Multiple congenital anomalies",),
        trimester_risks=_all_trimesters(RiskTier.CRITICAL),
        recommendation="DISCONTINUE IMMEDIATELY - Never use during pregnancy",
        alternatives={"Atorvastatin": ("Dietary management", "Bile acid sequestrants (limited use)")},
    ),
    InteractionRule(
        medications=("Lisinopril",),
        severity=RiskTier.CRITICAL,
        reason="Causes fetal renal damage and death in 2nd/3rd trimesters",
        maternal_effects=("Hypotension",),
        fetal_effects=("Renal failure", "Oligohydramnios", "Intrauterine growth restriction", "Death"),
        neonatal_effects=("Anuria", "Hypotension", "Renal failure", "Death"),
        trimester_risks={1: RiskTier.HIGH, 2: RiskTier.CRITICAL, 3: RiskTier.CRITICAL},
        recommendation="DISCONTINUE - Switch to pregnancy-safe antihypertensive",
        alternatives={"Lisinopril": ("Methyldopa", "Labetalol", "Nifedipine")},
    ),
    InteractionRule(
        medications=("Losartan",),
        severity=RiskTier.CRITICAL,
        reason="Similar mechanism to ACE inhibitors - causes fetal harm",
        maternal_effects=("Hypotension",),
        fetal_effects=("Renal failure", "Oligohydramnios", "Skull hypoplasia", "Death"),
        neonatal_effects=("Anuria", "Hypotension", "Renal failure"),
        trimester_risks={1: RiskTier.HIGH, 2: RiskTier.CRITICAL, 3: RiskTier.CRITICAL},
        recommendation="DISCONTINUE - Switch to safer blood pressure medication",
        alternatives={"Losartan": ("Methyldopa", "Labetalol", "Nifedipine")},
    ),
    InteractionRule(
        medications=("Valproate",),
        severity=RiskTier.CRITICAL,
        reason="Highest teratogenic risk of the anticonvulsants",
        fetal_effects=("Neural tube defects", "Cardiac malformations", "Reduced IQ"),
        neonatal_effects=("Developmental delay",),
        trimester_risks={1: RiskTier.CRITICAL, 2: RiskTier.HIGH, 3: RiskTier.HIGH},
        recommendation="Switch to a safer anticonvulsant under neurology supervision",
        alternatives={"Valproate": ("Lamotrigine", "Levetiracetam")},
    ),
]


def _default_contraindication_rule(record: MedicationRecord) -> InteractionRule:
    return InteractionRule(
        medications=(record.name,),
        severity=RiskTier.CRITICAL,
        reason="Category X - Contraindicated in pregnancy",
        maternal_effects=("Unknown",),
        fetal_effects=("Birth defects", "Fetal harm"),
        neonatal_effects=("Potential complications",),
        trimester_risks=_all_trimesters(RiskTier.CRITICAL),
        recommendation="DISCONTINUE IMMEDIATELY",
    )


def _default_high_risk_rule(record: MedicationRecord) -> InteractionRule:
    return InteractionRule(
        medications=(record.name,),
        severity=RiskTier.HIGH,
        reason="Category D - Evidence of fetal risk",
        maternal_effects=("Varies by medication",),
        fetal_effects=("Fetal harm possible",),
        neonatal_effects=("Potential complications",),
        trimester_risks=_all_trimesters(RiskTier.HIGH),
        recommendation="Avoid unless benefits outweigh risks",
    )


class InteractionRulesTable:
    """Indexed, read-only pregnancy interaction rules.

    Usage:
        table = InteractionRulesTable(catalog=get_medication_catalog())
        findings = table.find_interactions([ibuprofen, lisinopril], week=35)
    """

    def __init__(
        self,
        rules: Iterable[InteractionRule] | None = None,
        catalog: MedicationCatalog | None = None,
    ) -> None:
        """Index the given rules, or the built-in table when omitted."""
        rules = list(PREGNANCY_INTERACTIONS if rules is None else rules)
        self._catalog = catalog

        pair_index: dict[tuple[str, ...], InteractionRule] = {}
        solo_index: dict[str, InteractionRule] = {}
        drug_index: dict[str, list[InteractionRule]] = {}

        for rule in rules:
            key = tuple(sorted(self.normalize_name(m) for m in rule.medications))
            if rule.is_solo:
                solo_index[key[0]] = rule
            else:
                pair_index[key] = rule
            for name in key:
                drug_index.setdefault(name, []).append(rule)

        self._rules = tuple(rules)
        self._pair_index = MappingProxyType(pair_index)
        self._solo_index = MappingProxyType(solo_index)
        self._drug_index = MappingProxyType({k: tuple(v) for k, v in drug_index.items()})
        logger.info(
            f"Interaction rules table initialized with {len(pair_index)} pair rules "
            f"and {len(solo_index)} solo rules"
        )

    @property
    def rules(self) -> tuple[InteractionRule, ...]:
        return self._rules

    def with_catalog(self, catalog: MedicationCatalog) -> "InteractionRulesTable":
        """Re-index the same rules against another catalog."""
        return InteractionRulesTable(self._rules, catalog=catalog)

    def normalize_name(self, name: str) -> str:
        """Resolve a name to its lowercase generic form."""
        if self._catalog is not None:
            return self._catalog.normalize_name(name)
        return name.lower().strip()

    def lookup_pair(self, name_a: str, name_b: str) -> InteractionRule | None:
        """Look up the rule for two medications, in either order."""
        a = self.normalize_name(name_a)
        b = self.normalize_name(name_b)
        if a == b:
            return None
        return self._pair_index.get(tuple(sorted((a, b))))

    def lookup_solo(self, name: str) -> InteractionRule | None:
        """Look up an explicit single-medication rule."""
        return self._solo_index.get(self.normalize_name(name))

    def find_interactions(self, records: list[MedicationRecord], week: int) -> list[InteractionFinding]:
        """Detect solo and pairwise findings for a medication list.

        Records sharing a generic name are considered once. Each unordered
        pair is checked exactly once. The result is sorted by kind then by
        medication names, so it does not depend on input order.

        Raises:
            OutOfRangeWeekError: If week is outside [1, 40].
        """
        validate_week(week)
        trimester = trimester_of(week)

        unique: list[MedicationRecord] = []
        seen: set[str] = set()
        for record in records:
            name = record.generic_name.lower()
            if name not in seen:
                seen.add(name)
                unique.append(record)

        findings: list[InteractionFinding] = []

        for record in unique:
            if record.category == FDACategory.X:
                rule = self.lookup_solo(record.generic_name) or _default_contraindication_rule(record)
                kind = InteractionKind.PREGNANCY_CONTRAINDICATION
            elif record.category == FDACategory.D:
                rule = self.lookup_solo(record.generic_name) or _default_high_risk_rule(record)
                kind = InteractionKind.PREGNANCY_HIGH_RISK
            else:
                continue
            findings.append(InteractionFinding(kind, rule, trimester, rule.trimester_risks.get(trimester)))

        for i, first in enumerate(unique):
            for second in unique[i + 1:]:
                rule = self.lookup_pair(first.generic_name, second.generic_name)
                if rule is None:
                    continue
                findings.append(
                    InteractionFinding(
                        InteractionKind.DRUG_INTERACTION,
                        rule,
                        trimester,
                        rule.trimester_risks.get(trimester),
                    )
                )

        findings.sort(key=lambda f: (_KIND_ORDER[f.kind], f.rule.key))
        logger.debug(f"Found {len(findings)} interaction findings for {len(unique)} medications")
        return findings

    def get_interactions_for(self, name: str) -> list[InteractionRule]:
        """Get all rules that mention a medication."""
        return list(self._drug_index.get(self.normalize_name(name), ()))

    def get_stats(self) -> dict[str, Any]:
        """Get statistics about the rules table."""
        by_severity: dict[str, int] = {}
        for rule in self._rules:
            by_severity[rule.severity.value] = by_severity.get(rule.severity.value, 0) + 1

        return {
            "total_rules": len(self._rules),
            "pair_rules": len(self._pair_index),
            "solo_rules": len(self._solo_index),
            "unique_medications": len(self._drug_index),
            "by_severity": by_severity,
        }


def highest_severity(findings: list[InteractionFinding]) -> RiskTier | None:
    """Get the worst severity across findings.

    A finding whose current trimester risk is critical makes the result
    critical even when the rule's own severity is lower.
    """
    if not findings:
        return None

    worst = RiskTier.LOW
    for finding in findings:
        if finding.severity == RiskTier.CRITICAL or finding.current_trimester_risk == RiskTier.CRITICAL:
            return RiskTier.CRITICAL
        if finding.severity.rank > worst.rank:
            worst = finding.severity
    return worst


# Singleton instance and lock
_interaction_table: InteractionRulesTable | None = None
_interaction_table_lock = Lock()


def get_interaction_table() -> InteractionRulesTable:
    """Get the singleton InteractionRulesTable instance."""
    global _interaction_table

    if _interaction_table is None:
        with _interaction_table_lock:
            if _interaction_table is None:
                from pregsafe.services.medications import get_medication_catalog

                logger.info("Creating singleton InteractionRulesTable instance")
                _interaction_table = InteractionRulesTable(catalog=get_medication_catalog())

    return _interaction_table


def reset_interaction_table() -> None:
    """Reset the singleton instance (for testing)."""
    global _interaction_table
    with _interaction_table_lock:
        _interaction_table = None


def find_interactions(
    records: list[MedicationRecord],
    week: int,
    table: InteractionRulesTable | None = None,
) -> list[InteractionFinding]:
    """Detect findings using the given table, or the shared one."""
    return (table or get_interaction_table()).find_interactions(records, week)
