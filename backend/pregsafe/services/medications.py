"""Medication Reference Store.

Read-only catalogue of medications with their FDA pregnancy category and
per-trimester overrides. Lookups are case-insensitive against the generic
name, the display name and every brand name.

The built-in table can be extended with a JSON fixture in the layout produced
by the medication database builder:

    {"medications": [{"genericName": "...", "name": "...", "brandNames": [...],
      "pregnancyCategory": {"fda": "C", "trimester3": {"safe": false, ...}},
      "lactationSafe": true, "lactationNotes": "..."}]}

Note: Category data is reference information only and does not replace
current prescribing information.
"""

from dataclasses import dataclass, field
from enum import Enum
import json
import logging
from pathlib import Path
import threading
from types import MappingProxyType
from typing import Any, Mapping

from pregsafe.core.errors import InvalidCategoryError
from pregsafe.schemas.base import FDACategory, RiskTier
from pregsafe.services.gestation import validate_trimester

logger = logging.getLogger(__name__)


class LactationSafety(Enum):
    """Lactation safety classifications."""

    SAFE = "safe"
    CAUTION = "caution"
    UNSAFE = "unsafe"
    UNKNOWN = "unknown"


LACTATION_RECOMMENDATIONS = {
    LactationSafety.SAFE: "Continue breastfeeding without concern",
    LactationSafety.CAUTION: "Breastfeed with monitoring for infant side effects",
    LactationSafety.UNSAFE: "Discontinue breastfeeding or use alternative medication",
    LactationSafety.UNKNOWN: "Consult healthcare provider before breastfeeding",
}


@dataclass(frozen=True)
class TrimesterOverride:
    """Explicit per-trimester guidance that supersedes category defaults."""

    safe: bool | None = None
    risk: RiskTier | None = None
    warnings: tuple[str, ...] = ()
    alternatives: tuple[str, ...] = ()


@dataclass(frozen=True)
class MedicationRecord:
    """Pregnancy reference data for one medication."""

    generic_name: str
    name: str
    category: FDACategory = FDACategory.N
    brand_names: tuple[str, ...] = ()
    drug_class: str = ""
    overrides: Mapping[int, TrimesterOverride] = field(default_factory=dict)
    lactation_safe: bool | str | None = None
    lactation_notes: str = ""
    contraindications: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        # Freeze the override mapping so shared records stay read-only
        object.__setattr__(self, "overrides", MappingProxyType(dict(self.overrides)))

    def override_for(self, trimester: int) -> TrimesterOverride | None:
        """Get the override declared for a trimester, if any."""
        return self.overrides.get(trimester)


@dataclass
class LactationResult:
    """Lactation safety lookup result."""

    medication_name: str
    found: bool
    safety: LactationSafety
    notes: str
    recommendation: str


# ============================================================================
# Medication Database
# ============================================================================

_T = TrimesterOverride

MEDICATIONS: list[MedicationRecord] = [
    # =========================================================================
    # ANALGESICS / NSAIDs
    # =========================================================================
    MedicationRecord(
        generic_name="acetaminophen",
        name="Acetaminophen",
        category=FDACategory.B,
        brand_names=("Tylenol", "Paracetamol", "Panadol"),
        drug_class="Analgesic",
        overrides={
            1: _T(safe=True, risk=RiskTier.LOW),
            2: _T(safe=True, risk=RiskTier.LOW),
            3: _T(safe=True, risk=RiskTier.LOW, warnings=("Use lowest effective dose for shortest duration",)),
        },
        lactation_safe=True,
        lactation_notes="Compatible with breastfeeding.",
    ),
    MedicationRecord(
        generic_name="ibuprofen",
        name="Ibuprofen",
        category=FDACategory.C,
        brand_names=("Advil", "Motrin", "Nurofen"),
        drug_class="NSAID",
        overrides={
            1: _T(risk=RiskTier.MODERATE, warnings=("Possible increased miscarriage risk",), alternatives=("Acetaminophen",)),
            2: _T(risk=RiskTier.MODERATE, warnings=("Oligohydramnios with use beyond 20 weeks",), alternatives=("Acetaminophen",)),
            3: _T(
                safe=False,
                risk=RiskTier.HIGH,
                warnings=("Premature closure of the ductus arteriosus", "Prolonged labor"),
                alternatives=("Acetaminophen",),
            ),
        },
        lactation_safe=True,
        lactation_notes="Minimal excretion in breast milk.",
        contraindications=("Third trimester pregnancy",),
    ),
    MedicationRecord(
        generic_name="naproxen",
        name="Naproxen",
        category=FDACategory.C,
        brand_names=("Aleve", "Naprosyn"),
        drug_class="NSAID",
        overrides={
            3: _T(
                safe=False,
                risk=RiskTier.HIGH,
                warnings=("Premature closure of the ductus arteriosus",),
                alternatives=("Acetaminophen",),
            ),
        },
        lactation_safe="caution",
        lactation_notes="Long half-life; prefer ibuprofen for nursing infants.",
    ),
    MedicationRecord(
        generic_name="aspirin",
        name="Aspirin",
        category=FDACategory.C,
        brand_names=("Bayer", "Ecotrin"),
        drug_class="Salicylate",
        overrides={
            3: _T(
                safe=False,
                risk=RiskTier.HIGH,
                warnings=("Bleeding risk at delivery", "Premature ductus closure at analgesic doses"),
                alternatives=("Acetaminophen",),
            ),
        },
        lactation_safe="caution",
        lactation_notes="Avoid high doses; risk of Reye syndrome in infant.",
    ),
    # =========================================================================
    # ANTIHYPERTENSIVES
    # =========================================================================
    MedicationRecord(
        generic_name="methyldopa",
        name="Methyldopa",
        category=FDACategory.B,
        brand_names=("Aldomet",),
        drug_class="Central alpha agonist",
        overrides={
            1: _T(safe=True, risk=RiskTier.LOW),
            2: _T(safe=True, risk=RiskTier.LOW),
            3: _T(safe=True, risk=RiskTier.LOW),
        },
        lactation_safe=True,
        lactation_notes="Compatible with breastfeeding.",
    ),
    MedicationRecord(
        generic_name="labetalol",
        name="Labetalol",
        category=FDACategory.C,
        brand_names=("Trandate", "Normodyne"),
        drug_class="Beta-blocker",
        overrides={
            2: _T(safe=True, risk=RiskTier.LOW),
            3: _T(safe=True, risk=RiskTier.LOW, warnings=("Monitor neonate for bradycardia and hypoglycemia",)),
        },
        lactation_safe=True,
        lactation_notes="Low milk levels; compatible.",
    ),
    MedicationRecord(
        generic_name="nifedipine",
        name="Nifedipine",
        category=FDACategory.C,
        brand_names=("Procardia", "Adalat"),
        drug_class="Calcium channel blocker",
        overrides={
            2: _T(safe=True, risk=RiskTier.LOW),
            3: _T(safe=True, risk=RiskTier.LOW),
        },
        lactation_safe=True,
    ),
    MedicationRecord(
        generic_name="hydralazine",
        name="Hydralazine",
        category=FDACategory.C,
        brand_names=("Apresoline",),
        drug_class="Vasodilator",
        lactation_safe=True,
    ),
    MedicationRecord(
        generic_name="lisinopril",
        name="Lisinopril",
        category=FDACategory.D,
        brand_names=("Prinivil", "Zestril"),
        drug_class="ACE Inhibitor",
        overrides={
            1: _T(safe=False, risk=RiskTier.HIGH, alternatives=("Methyldopa", "Labetalol", "Nifedipine")),
            2: _T(
                safe=False,
                risk=RiskTier.CRITICAL,
                warnings=("Fetal renal failure", "Oligohydramnios", "Skull hypoplasia"),
                alternatives=("Methyldopa", "Labetalol", "Nifedipine"),
            ),
            3: _T(
                safe=False,
                risk=RiskTier.CRITICAL,
                warnings=("Fetal renal failure", "Oligohydramnios", "Neonatal anuria"),
                alternatives=("Methyldopa", "Labetalol", "Nifedipine"),
            ),
        },
        lactation_safe="caution",
        contraindications=("Pregnancy", "History of ACE inhibitor angioedema"),
    ),
    MedicationRecord(
        generic_name="losartan",
        name="Losartan",
        category=FDACategory.D,
        brand_names=("Cozaar",),
        drug_class="Angiotensin receptor blocker",
        overrides={
            1: _T(safe=False, risk=RiskTier.HIGH, alternatives=("Methyldopa", "Labetalol", "Nifedipine")),
            2: _T(
                safe=False,
                risk=RiskTier.CRITICAL,
                warnings=("Fetal renal failure", "Oligohydramnios"),
                alternatives=("Methyldopa", "Labetalol", "Nifedipine"),
            ),
            3: _T(
                safe=False,
                risk=RiskTier.CRITICAL,
                warnings=("Fetal renal failure", "Skull hypoplasia"),
                alternatives=("Methyldopa", "Labetalol", "Nifedipine"),
            ),
        },
        lactation_safe="caution",
        contraindications=("Pregnancy",),
    ),
    MedicationRecord(
        generic_name="atenolol",
        name="Atenolol",
        category=FDACategory.D,
        brand_names=("Tenormin",),
        drug_class="Beta-blocker",
        overrides={
            2: _T(risk=RiskTier.HIGH, warnings=("Intrauterine growth restriction",), alternatives=("Labetalol",)),
            3: _T(risk=RiskTier.HIGH, warnings=("Intrauterine growth restriction",), alternatives=("Labetalol",)),
        },
        lactation_safe="caution",
    ),
    # =========================================================================
    # LIPID / ANTICOAGULANT
    # =========================================================================
    MedicationRecord(
        generic_name="atorvastatin",
        name="Atorvastatin",
        category=FDACategory.X,
        brand_names=("Lipitor",),
        drug_class="Statin",
        overrides={
            1: _T(safe=False, risk=RiskTier.CRITICAL, alternatives=("Dietary management",)),
            2: _T(safe=False, risk=RiskTier.CRITICAL, alternatives=("Dietary management",)),
            3: _T(safe=False, risk=RiskTier.CRITICAL, alternatives=("Dietary management",)),
        },
        lactation_safe=False,
        contraindications=("Pregnancy",),
    ),
    MedicationRecord(
        generic_name="simvastatin",
        name="Simvastatin",
        category=FDACategory.X,
        brand_names=("Zocor",),
        drug_class="Statin",
        lactation_safe=False,
        contraindications=("Pregnancy",),
    ),
    MedicationRecord(
        generic_name="warfarin",
        name="Warfarin",
        category=FDACategory.X,
        brand_names=("Coumadin", "Jantoven"),
        drug_class="Anticoagulant",
        overrides={
            1: _T(
                safe=False,
                risk=RiskTier.CRITICAL,
                warnings=("Fetal warfarin syndrome",),
                alternatives=("Enoxaparin", "Heparin"),
            ),
        },
        lactation_safe=True,
        lactation_notes="Minimal excretion in breast milk, considered compatible.",
        contraindications=("Pregnancy",),
    ),
    MedicationRecord(
        generic_name="enoxaparin",
        name="Enoxaparin",
        category=FDACategory.B,
        brand_names=("Lovenox",),
        drug_class="Low molecular weight heparin",
        overrides={3: _T(warnings=("Plan neuraxial anesthesia timing before delivery",))},
        lactation_safe=True,
    ),
    MedicationRecord(
        generic_name="heparin",
        name="Heparin",
        category=FDACategory.C,
        drug_class="Anticoagulant",
        lactation_safe=True,
    ),
    # =========================================================================
    # ANTICONVULSANTS / MOOD
    # =========================================================================
    MedicationRecord(
        generic_name="valproate",
        name="Valproate",
        category=FDACategory.D,
        brand_names=("Depakote", "Depakene", "Valproic acid"),
        drug_class="Anticonvulsant",
        overrides={
            1: _T(
                safe=False,
                risk=RiskTier.CRITICAL,
                warnings=("Neural tube defects", "Reduced IQ"),
                alternatives=("Lamotrigine", "Levetiracetam"),
            ),
        },
        lactation_safe="caution",
    ),
    MedicationRecord(
        generic_name="phenytoin",
        name="Phenytoin",
        category=FDACategory.D,
        brand_names=("Dilantin",),
        drug_class="Anticonvulsant",
        overrides={1: _T(risk=RiskTier.HIGH, warnings=("Fetal hydantoin syndrome",))},
        lactation_safe=True,
    ),
    MedicationRecord(
        generic_name="carbamazepine",
        name="Carbamazepine",
        category=FDACategory.D,
        brand_names=("Tegretol",),
        drug_class="Anticonvulsant",
        overrides={1: _T(risk=RiskTier.HIGH, warnings=("Neural tube defects",))},
        lactation_safe="caution",
    ),
    MedicationRecord(
        generic_name="lamotrigine",
        name="Lamotrigine",
        category=FDACategory.C,
        brand_names=("Lamictal",),
        drug_class="Anticonvulsant",
        overrides={2: _T(warnings=("Levels fall during pregnancy; monitor serum concentrations",))},
        lactation_safe="caution",
    ),
    MedicationRecord(
        generic_name="levetiracetam",
        name="Levetiracetam",
        category=FDACategory.C,
        brand_names=("Keppra",),
        drug_class="Anticonvulsant",
        lactation_safe="caution",
    ),
    MedicationRecord(
        generic_name="lithium",
        name="Lithium",
        category=FDACategory.D,
        brand_names=("Lithobid",),
        drug_class="Mood stabilizer",
        overrides={1: _T(risk=RiskTier.HIGH, warnings=("Ebstein anomaly",))},
        lactation_safe=False,
    ),
    # =========================================================================
    # ANTIDEPRESSANTS
    # =========================================================================
    MedicationRecord(
        generic_name="sertraline",
        name="Sertraline",
        category=FDACategory.C,
        brand_names=("Zoloft",),
        drug_class="SSRI",
        overrides={
            3: _T(warnings=("Neonatal adaptation syndrome", "Persistent pulmonary hypertension of the newborn")),
        },
        lactation_safe=True,
        lactation_notes="Preferred SSRI during breastfeeding.",
    ),
    MedicationRecord(
        generic_name="fluoxetine",
        name="Fluoxetine",
        category=FDACategory.C,
        brand_names=("Prozac",),
        drug_class="SSRI",
        lactation_safe="caution",
    ),
    MedicationRecord(
        generic_name="citalopram",
        name="Citalopram",
        category=FDACategory.C,
        brand_names=("Celexa",),
        drug_class="SSRI",
        lactation_safe="caution",
    ),
    MedicationRecord(
        generic_name="escitalopram",
        name="Escitalopram",
        category=FDACategory.C,
        brand_names=("Lexapro",),
        drug_class="SSRI",
        lactation_safe="caution",
    ),
    MedicationRecord(
        generic_name="paroxetine",
        name="Paroxetine",
        category=FDACategory.D,
        brand_names=("Paxil",),
        drug_class="SSRI",
        overrides={
            1: _T(safe=False, risk=RiskTier.HIGH, warnings=("Cardiac malformations",), alternatives=("Sertraline",)),
        },
        lactation_safe=True,
    ),
    # =========================================================================
    # ENDOCRINE
    # =========================================================================
    MedicationRecord(
        generic_name="insulin",
        name="Insulin",
        category=FDACategory.B,
        brand_names=("Humulin", "Novolog", "Lantus"),
        drug_class="Antidiabetic",
        overrides={
            1: _T(safe=True, risk=RiskTier.LOW),
            2: _T(safe=True, risk=RiskTier.LOW),
            3: _T(safe=True, risk=RiskTier.LOW),
        },
        lactation_safe=True,
        lactation_notes="Does not cross into milk in active form.",
    ),
    MedicationRecord(
        generic_name="metformin",
        name="Metformin",
        category=FDACategory.B,
        brand_names=("Glucophage",),
        drug_class="Biguanide",
        lactation_safe=True,
    ),
    MedicationRecord(
        generic_name="glyburide",
        name="Glyburide",
        category=FDACategory.B,
        brand_names=("Diabeta", "Glynase"),
        drug_class="Sulfonylurea",
        overrides={3: _T(warnings=("Neonatal hypoglycemia",))},
        lactation_safe=True,
    ),
    MedicationRecord(
        generic_name="semaglutide",
        name="Semaglutide",
        category=FDACategory.N,
        brand_names=("Ozempic", "Wegovy"),
        drug_class="GLP-1 agonist",
        overrides={
            1: _T(risk=RiskTier.HIGH, warnings=("Discontinue at least 2 months before planned pregnancy",), alternatives=("Insulin",)),
        },
    ),
    MedicationRecord(
        generic_name="levothyroxine",
        name="Levothyroxine",
        category=FDACategory.A,
        brand_names=("Synthroid", "Levoxyl"),
        drug_class="Thyroid hormone",
        overrides={1: _T(safe=True, risk=RiskTier.LOW, warnings=("Dose usually needs to increase",))},
        lactation_safe=True,
    ),
    MedicationRecord(
        generic_name="propylthiouracil",
        name="Propylthiouracil",
        category=FDACategory.D,
        brand_names=("PTU",),
        drug_class="Antithyroid",
        overrides={
            1: _T(safe=True, risk=RiskTier.MODERATE, warnings=("Preferred in first trimester",)),
            2: _T(risk=RiskTier.HIGH, warnings=("Maternal hepatotoxicity",), alternatives=("Methimazole",)),
            3: _T(risk=RiskTier.HIGH, warnings=("Maternal hepatotoxicity",), alternatives=("Methimazole",)),
        },
        lactation_safe=True,
    ),
    MedicationRecord(
        generic_name="methimazole",
        name="Methimazole",
        category=FDACategory.D,
        brand_names=("Tapazole",),
        drug_class="Antithyroid",
        overrides={
            1: _T(safe=False, risk=RiskTier.HIGH, warnings=("Aplasia cutis", "Embryopathy"), alternatives=("Propylthiouracil",)),
        },
        lactation_safe=True,
    ),
    # =========================================================================
    # RESPIRATORY / ALLERGY
    # =========================================================================
    MedicationRecord(
        generic_name="albuterol",
        name="Albuterol",
        category=FDACategory.C,
        brand_names=("Ventolin", "ProAir", "Salbutamol"),
        drug_class="Short-acting beta agonist",
        overrides={
            1: _T(safe=True, risk=RiskTier.LOW),
            2: _T(safe=True, risk=RiskTier.LOW),
            3: _T(safe=True, risk=RiskTier.LOW),
        },
        lactation_safe=True,
    ),
    MedicationRecord(
        generic_name="budesonide",
        name="Budesonide",
        category=FDACategory.B,
        brand_names=("Pulmicort",),
        drug_class="Inhaled corticosteroid",
        lactation_safe=True,
    ),
    MedicationRecord(
        generic_name="montelukast",
        name="Montelukast",
        category=FDACategory.B,
        brand_names=("Singulair",),
        drug_class="Leukotriene receptor antagonist",
        lactation_safe=True,
    ),
    MedicationRecord(
        generic_name="prednisone",
        name="Prednisone",
        category=FDACategory.C,
        brand_names=("Deltasone",),
        drug_class="Systemic corticosteroid",
        overrides={1: _T(warnings=("Small increase in oral cleft risk",))},
        lactation_safe=True,
    ),
    MedicationRecord(
        generic_name="loratadine",
        name="Loratadine",
        category=FDACategory.B,
        brand_names=("Claritin",),
        drug_class="Antihistamine",
        lactation_safe=True,
    ),
    MedicationRecord(
        generic_name="diphenhydramine",
        name="Diphenhydramine",
        category=FDACategory.B,
        brand_names=("Benadryl",),
        drug_class="Antihistamine",
        lactation_safe="caution",
    ),
    # =========================================================================
    # ANTIEMETICS / SUPPLEMENTS
    # =========================================================================
    MedicationRecord(
        generic_name="doxylamine",
        name="Doxylamine",
        category=FDACategory.A,
        brand_names=("Unisom", "Diclegis"),
        drug_class="Antihistamine",
        lactation_safe="caution",
    ),
    MedicationRecord(
        generic_name="ondansetron",
        name="Ondansetron",
        category=FDACategory.B,
        brand_names=("Zofran",),
        drug_class="Antiemetic",
        overrides={1: _T(warnings=("Possible small increase in oral cleft risk",))},
        lactation_safe=True,
    ),
    MedicationRecord(
        generic_name="folic acid",
        name="Folic Acid",
        category=FDACategory.A,
        brand_names=("Folate", "Folvite"),
        drug_class="Vitamin",
        overrides={
            1: _T(safe=True, risk=RiskTier.LOW),
            2: _T(safe=True, risk=RiskTier.LOW),
            3: _T(safe=True, risk=RiskTier.LOW),
        },
        lactation_safe=True,
    ),
    # =========================================================================
    # ANTIINFECTIVES
    # =========================================================================
    MedicationRecord(
        generic_name="amoxicillin",
        name="Amoxicillin",
        category=FDACategory.B,
        brand_names=("Amoxil",),
        drug_class="Penicillin",
        lactation_safe=True,
    ),
    MedicationRecord(
        generic_name="nitrofurantoin",
        name="Nitrofurantoin",
        category=FDACategory.B,
        brand_names=("Macrobid", "Macrodantin"),
        drug_class="Urinary antiseptic",
        overrides={
            3: _T(risk=RiskTier.MODERATE, warnings=("Neonatal hemolytic anemia near term",), alternatives=("Amoxicillin",)),
        },
        lactation_safe=True,
    ),
    MedicationRecord(
        generic_name="ciprofloxacin",
        name="Ciprofloxacin",
        category=FDACategory.C,
        brand_names=("Cipro",),
        drug_class="Fluoroquinolone",
        lactation_safe="caution",
    ),
    MedicationRecord(
        generic_name="doxycycline",
        name="Doxycycline",
        category=FDACategory.D,
        brand_names=("Vibramycin", "Doryx"),
        drug_class="Tetracycline",
        overrides={
            2: _T(safe=False, risk=RiskTier.HIGH, warnings=("Fetal tooth discoloration",), alternatives=("Amoxicillin",)),
            3: _T(safe=False, risk=RiskTier.HIGH, warnings=("Fetal tooth discoloration",), alternatives=("Amoxicillin",)),
        },
        lactation_safe="caution",
    ),
    # =========================================================================
    # CONTRAINDICATED (CATEGORY X)
    # =========================================================================
    MedicationRecord(
        generic_name="isotretinoin",
        name="Isotretinoin",
        category=FDACategory.X,
        brand_names=("Accutane", "Absorica", "Claravis"),
        drug_class="Retinoid",
        lactation_safe=False,
        contraindications=("Pregnancy",),
    ),
    MedicationRecord(
        generic_name="methotrexate",
        name="Methotrexate",
        category=FDACategory.X,
        brand_names=("Trexall", "Otrexup"),
        drug_class="Antimetabolite",
        lactation_safe=False,
        contraindications=("Pregnancy",),
    ),
    MedicationRecord(
        generic_name="misoprostol",
        name="Misoprostol",
        category=FDACategory.X,
        brand_names=("Cytotec",),
        drug_class="Prostaglandin analog",
        lactation_safe="caution",
        contraindications=("Pregnancy",),
    ),
]


# ============================================================================
# Fixture Loading
# ============================================================================


def category_from_string(value: Any, medication: str | None = None) -> FDACategory:
    """Convert a category value to the enum.

    Missing categories default to N (not classified).

    Raises:
        InvalidCategoryError: If the value is not one of A/B/C/D/X/N.
    """
    if value is None or value == "":
        return FDACategory.N
    if isinstance(value, FDACategory):
        return value
    try:
        return FDACategory(str(value).strip().upper())
    except ValueError:
        raise InvalidCategoryError(value, medication) from None


def _tier_from_string(value: Any) -> RiskTier | None:
    if value is None:
        return None
    try:
        return RiskTier(str(value).lower())
    except ValueError:
        logger.warning(f"Ignoring unknown trimester risk tier: {value!r}")
        return None


def medication_from_dict(item: dict[str, Any]) -> MedicationRecord:
    """Build a MedicationRecord from a fixture entry.

    Raises:
        InvalidCategoryError: If the entry carries an unknown category.
        ValueError: If the entry has no usable name.
    """
    generic = (item.get("genericName") or item.get("name") or "").strip()
    if not generic:
        raise ValueError("Medication entry missing genericName/name")

    pregnancy = item.get("pregnancyCategory") or {}
    category = category_from_string(pregnancy.get("fda"), generic)

    overrides: dict[int, TrimesterOverride] = {}
    for number in (1, 2, 3):
        data = pregnancy.get(f"trimester{number}")
        if not data:
            continue
        overrides[number] = TrimesterOverride(
            safe=data.get("safe"),
            risk=_tier_from_string(data.get("risk")),
            warnings=tuple(data.get("warnings") or ()),
            alternatives=tuple(data.get("alternatives") or ()),
        )

    return MedicationRecord(
        generic_name=generic.lower(),
        name=item.get("name") or generic,
        category=category,
        brand_names=tuple(item.get("brandNames") or ()),
        drug_class=item.get("drugClass", ""),
        overrides=overrides,
        lactation_safe=item.get("lactationSafe"),
        lactation_notes=item.get("lactationNotes") or "",
        contraindications=tuple(item.get("contraindications") or ()),
    )


def load_medications(fixture_file: Path | None = None) -> list[MedicationRecord]:
    """Load the built-in medication table, extended from a fixture file.

    Fixture entries never replace a built-in medication with the same
    generic name.

    Raises:
        InvalidCategoryError: If a fixture entry has a corrupt category.
    """
    records: list[MedicationRecord] = list(MEDICATIONS)
    if fixture_file is None:
        return records

    if not fixture_file.exists():
        logger.warning(f"Medication fixture file not found: {fixture_file}")
        return records

    try:
        with open(fixture_file, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.warning(f"Failed to read medication fixture {fixture_file}: {e}")
        return records

    entries = data.get("medications", []) if isinstance(data, dict) else data
    known = {r.generic_name for r in records}
    added = 0
    for item in entries:
        record = medication_from_dict(item)
        if record.generic_name in known:
            continue
        records.append(record)
        known.add(record.generic_name)
        added += 1

    logger.info(f"Loaded {len(records)} medications ({added} from fixture)")
    return records


# ============================================================================
# Medication Catalog
# ============================================================================


class MedicationCatalog:
    """Read-only medication lookup keyed by generic name and aliases.

    Usage:
        catalog = MedicationCatalog()
        record = catalog.find_medication("Advil")  # -> ibuprofen record
    """

    def __init__(self, records: list[MedicationRecord] | None = None) -> None:
        """Index the given records, or the built-in table when omitted."""
        if records is None:
            records = list(MEDICATIONS)

        by_generic: dict[str, MedicationRecord] = {}
        index: dict[str, str] = {}

        for record in records:
            key = record.generic_name.lower().strip()
            by_generic[key] = record
            index[key] = key
            index.setdefault(record.name.lower().strip(), key)
            for brand in record.brand_names:
                index.setdefault(brand.lower().strip(), key)

        self._records = MappingProxyType(by_generic)
        self._index = MappingProxyType(index)
        logger.info(f"Medication catalog initialized with {len(self._records)} medications")

    def normalize_name(self, name: str) -> str:
        """Resolve a name to its generic form, or lowercase it if unknown."""
        lowered = name.lower().strip()
        return self._index.get(lowered, lowered)

    def find_medication(self, name: str) -> MedicationRecord | None:
        """Find a medication by generic, display or brand name."""
        if not name:
            return None
        key = self._index.get(name.lower().strip())
        if key is None:
            return None
        return self._records[key]

    def get_all(self) -> list[MedicationRecord]:
        return list(self._records.values())

    def search(self, query: str, limit: int = 10) -> list[MedicationRecord]:
        """Search medications by name, brand or drug class."""
        query_lower = query.lower()
        matches = []

        for record in self._records.values():
            if (
                query_lower in record.generic_name
                or query_lower in record.drug_class.lower()
                or any(query_lower in b.lower() for b in record.brand_names)
            ):
                matches.append(record)

        return matches[:limit]

    def get_trimester_warnings(self, name: str, trimester: int) -> list[str]:
        """Get the warnings declared for a medication in a trimester."""
        validate_trimester(trimester)
        record = self.find_medication(name)
        if record is None:
            return []
        override = record.override_for(trimester)
        return list(override.warnings) if override else []

    def get_lactation_safety(self, name: str) -> LactationResult:
        """Get lactation safety for a medication."""
        record = self.find_medication(name)
        if record is None:
            return LactationResult(
                medication_name=name,
                found=False,
                safety=LactationSafety.UNKNOWN,
                notes="",
                recommendation="Consult healthcare provider before use while breastfeeding",
            )

        if record.lactation_safe is True:
            safety = LactationSafety.SAFE
        elif record.lactation_safe is False:
            safety = LactationSafety.UNSAFE
        elif record.lactation_safe == "caution":
            safety = LactationSafety.CAUTION
        else:
            safety = LactationSafety.UNKNOWN

        return LactationResult(
            medication_name=record.name,
            found=True,
            safety=safety,
            notes=record.lactation_notes or "No additional notes available",
            recommendation=LACTATION_RECOMMENDATIONS[safety],
        )

    def get_stats(self) -> dict[str, Any]:
        """Get statistics about the medication table."""
        by_category: dict[str, int] = {}
        with_overrides = 0

        for record in self._records.values():
            by_category[record.category.value] = by_category.get(record.category.value, 0) + 1
            if record.overrides:
                with_overrides += 1

        return {
            "total_medications": len(self._records),
            "total_names": len(self._index),
            "by_category": by_category,
            "with_trimester_overrides": with_overrides,
        }


# Singleton instance and lock for thread safety
_medication_catalog: MedicationCatalog | None = None
_medication_catalog_lock = threading.Lock()


def get_medication_catalog() -> MedicationCatalog:
    """Get the singleton medication catalog."""
    global _medication_catalog
    if _medication_catalog is None:
        with _medication_catalog_lock:
            if _medication_catalog is None:
                from pregsafe.core.config import settings

                _medication_catalog = MedicationCatalog(load_medications(settings.medication_fixture_path))
    return _medication_catalog


def reset_medication_catalog() -> None:
    """Reset the singleton instance (for testing or reference data reload)."""
    global _medication_catalog
    with _medication_catalog_lock:
        _medication_catalog = None
