"""Tests for the medication catalog.

Tests lookup by generic and brand names, search, lactation safety and
fixture loading.
"""

import json
from pathlib import Path

import pytest

from pregsafe.core.errors import InvalidCategoryError, InvalidTrimesterError
from pregsafe.schemas import FDACategory, RiskTier
from pregsafe.services.medications import (
    MEDICATIONS,
    LactationSafety,
    MedicationCatalog,
    category_from_string,
    get_medication_catalog,
    load_medications,
    medication_from_dict,
    reset_medication_catalog,
)


# ============================================================================
# Service Tests
# ============================================================================


class TestCatalogInit:
    """Test catalog initialization."""

    def setup_method(self):
        """Reset singleton before each test."""
        reset_medication_catalog()

    def test_singleton_pattern(self):
        assert get_medication_catalog() is get_medication_catalog()

    def test_singleton_reset(self):
        first = get_medication_catalog()
        reset_medication_catalog()
        assert get_medication_catalog() is not first

    def test_stats(self):
        stats = MedicationCatalog().get_stats()
        assert stats["total_medications"] == len(MEDICATIONS)
        assert stats["total_names"] > stats["total_medications"]
        assert stats["by_category"]["X"] >= 3
        assert stats["with_trimester_overrides"] > 0


class TestDatabaseContent:
    """Test the medication table content."""

    def test_generic_names_unique(self):
        names = [r.generic_name for r in MEDICATIONS]
        assert len(names) == len(set(names))

    def test_generic_names_lowercase(self):
        for record in MEDICATIONS:
            assert record.generic_name == record.generic_name.lower()

    def test_overrides_are_read_only(self):
        record = MEDICATIONS[0]
        with pytest.raises(TypeError):
            record.overrides[1] = None


class TestFindMedication:
    """Test medication lookup."""

    def setup_method(self):
        self.catalog = MedicationCatalog()

    def test_generic_name(self):
        assert self.catalog.find_medication("ibuprofen").category == FDACategory.C

    def test_case_insensitive(self):
        assert self.catalog.find_medication("  IBUPROFEN ").generic_name == "ibuprofen"

    def test_brand_name(self):
        assert self.catalog.find_medication("Advil").generic_name == "ibuprofen"
        assert self.catalog.find_medication("lipitor").generic_name == "atorvastatin"

    def test_unknown(self):
        assert self.catalog.find_medication("notarealdrug") is None
        assert self.catalog.find_medication("") is None

    def test_normalize_name(self):
        assert self.catalog.normalize_name("Zestril") == "lisinopril"
        assert self.catalog.normalize_name("Mystery") == "mystery"

    def test_search_by_class(self):
        results = self.catalog.search("statin")
        names = {r.generic_name for r in results}
        assert {"atorvastatin", "simvastatin"} <= names

    def test_search_limit(self):
        assert len(self.catalog.search("a", limit=3)) == 3

    def test_custom_records(self):
        catalog = MedicationCatalog([MEDICATIONS[0]])
        assert catalog.get_stats()["total_medications"] == 1
        assert catalog.find_medication("ibuprofen") is None


class TestTrimesterWarnings:
    """Test trimester warnings lookup."""

    def setup_method(self):
        self.catalog = MedicationCatalog()

    def test_third_trimester_nsaid(self):
        warnings = self.catalog.get_trimester_warnings("ibuprofen", 3)
        assert "Premature closure of the ductus arteriosus" in warnings

    def test_no_override(self):
        assert self.catalog.get_trimester_warnings("amoxicillin", 2) == []

    def test_unknown_medication(self):
        assert self.catalog.get_trimester_warnings("notarealdrug", 1) == []

    def test_invalid_trimester(self):
        with pytest.raises(InvalidTrimesterError):
            self.catalog.get_trimester_warnings("ibuprofen", 4)


class TestLactationSafety:
    """Test lactation safety lookup."""

    def setup_method(self):
        self.catalog = MedicationCatalog()

    def test_safe(self):
        result = self.catalog.get_lactation_safety("acetaminophen")
        assert result.found is True
        assert result.safety == LactationSafety.SAFE

    def test_caution(self):
        assert self.catalog.get_lactation_safety("naproxen").safety == LactationSafety.CAUTION

    def test_unsafe(self):
        assert self.catalog.get_lactation_safety("atorvastatin").safety == LactationSafety.UNSAFE

    def test_unknown_medication(self):
        result = self.catalog.get_lactation_safety("notarealdrug")
        assert result.found is False
        assert result.safety == LactationSafety.UNKNOWN


# ============================================================================
# Fixture Loading
# ============================================================================


class TestCategoryFromString:
    """Test category parsing."""

    def test_missing_is_unclassified(self):
        assert category_from_string(None) == FDACategory.N
        assert category_from_string("") == FDACategory.N

    def test_lowercase(self):
        assert category_from_string("x") == FDACategory.X

    def test_invalid(self):
        with pytest.raises(InvalidCategoryError):
            category_from_string("Q", "corrupt")


class TestMedicationFromDict:
    """Test fixture entry conversion."""

    def test_full_entry(self):
        record = medication_from_dict({
            "name": "Testamab",
            "genericName": "Testamab",
            "brandNames": ["Testo"],
            "drugClass": "Monoclonal antibody",
            "pregnancyCategory": {
                "fda": "C",
                "trimester3": {"safe": False, "risk": "high", "warnings": ["Late risk"]},
            },
            "lactationSafe": "caution",
            "contraindications": ["Pregnancy"],
        })
        assert record.generic_name == "testamab"
        assert record.category == FDACategory.C
        assert record.override_for(3).risk == RiskTier.HIGH
        assert record.override_for(3).safe is False
        assert record.override_for(1) is None
        assert record.brand_names == ("Testo",)

    def test_missing_category_defaults_to_n(self):
        assert medication_from_dict({"genericName": "newdrug"}).category == FDACategory.N

    def test_missing_name(self):
        with pytest.raises(ValueError):
            medication_from_dict({"pregnancyCategory": {"fda": "B"}})


class TestLoadMedications:
    """Test loading medications from a fixture file."""

    def _write(self, tmp_path: Path, payload: object) -> Path:
        path = tmp_path / "medications.json"
        path.write_text(json.dumps(payload), encoding="utf-8")
        return path

    def test_no_fixture(self):
        assert len(load_medications(None)) == len(MEDICATIONS)

    def test_fixture_adds_medications(self, tmp_path: Path):
        path = self._write(tmp_path, {"medications": [{"genericName": "Newdrug", "pregnancyCategory": {"fda": "B"}}]})
        records = load_medications(path)
        assert len(records) == len(MEDICATIONS) + 1
        assert MedicationCatalog(records).find_medication("newdrug").category == FDACategory.B

    def test_builtin_wins_on_duplicate(self, tmp_path: Path):
        path = self._write(tmp_path, [{"genericName": "ibuprofen", "pregnancyCategory": {"fda": "A"}}])
        catalog = MedicationCatalog(load_medications(path))
        assert catalog.find_medication("ibuprofen").category == FDACategory.C

    def test_invalid_category_raises(self, tmp_path: Path):
        path = self._write(tmp_path, [{"genericName": "corrupt", "pregnancyCategory": {"fda": "Z"}}])
        with pytest.raises(InvalidCategoryError):
            load_medications(path)

    def test_missing_file(self, tmp_path: Path):
        assert len(load_medications(tmp_path / "missing.json")) == len(MEDICATIONS)

    def test_malformed_json(self, tmp_path: Path):
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")
        assert len(load_medications(path)) == len(MEDICATIONS)
