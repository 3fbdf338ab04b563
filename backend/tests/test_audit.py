"""Tests for audit entry builders."""

import logging

import pytest

from pregsafe.core.audit import (
    AuditEntry,
    AuditType,
    DecisionType,
    adverse_event_entry,
    compute_hash,
    generate_entry_id,
    interaction_check_entry,
    medication_started_entry,
    medication_stopped_entry,
    patient_decision_entry,
    provider_decision_entry,
    risk_calculation_entry,
    safety_check_entry,
)
from pregsafe.core.errors import AuditError


class TestAuditEntry:
    """Tests for AuditEntry model."""

    def test_required_fields_only(self) -> None:
        entry = AuditEntry(type=AuditType.SAFETY_CHECK)
        assert entry.id.startswith("audit_")
        assert entry.timestamp.tzinfo is not None
        assert entry.critical is False
        assert entry.data == {}

    def test_entry_ids_unique(self) -> None:
        assert len({generate_entry_id() for _ in range(100)}) == 100

    def test_hash_is_canonical(self) -> None:
        assert compute_hash({"a": 1, "b": 2}) == compute_hash({"b": 2, "a": 1})

    def test_hash_detects_tampering(self) -> None:
        entry = safety_check_entry(
            medication_name="ibuprofen",
            week=20,
            trimester=2,
            score=50,
            risk_level="moderate",
            fda_category="C",
            safe=False,
        )
        assert entry.verify_hash() is True
        entry.data["score"] = 10
        assert entry.verify_hash() is False

    def test_json_round_trip(self) -> None:
        entry = adverse_event_entry(
            patient_id="patient-1",
            medication_name="valproate",
            week=8,
            event_type="malformation",
            severity="severe",
            description="Neural tube defect on ultrasound",
        )
        restored = AuditEntry.model_validate(entry.model_dump(mode="json"))
        assert restored == entry


class TestAssessmentEntries:
    """Tests for assessment entry builders."""

    def test_safety_check(self) -> None:
        entry = safety_check_entry(
            medication_name="lisinopril",
            week=20,
            trimester=2,
            score=85,
            risk_level="critical",
            fda_category="D",
            safe=False,
            warnings=["Fetal renal failure"],
            patient_id="patient-1",
        )
        assert entry.type == AuditType.SAFETY_CHECK
        assert entry.patient_id == "patient-1"
        assert entry.data["medication_name"] == "lisinopril"
        assert entry.data["warnings"] == ["Fetal renal failure"]

    def test_interaction_check(self) -> None:
        entry = interaction_check_entry(
            medications=["ibuprofen", "lisinopril"],
            week=35,
            interactions_found=2,
            highest_severity="critical",
            safe=False,
        )
        assert entry.type == AuditType.INTERACTION_CHECK
        assert entry.data["medications"] == ["ibuprofen", "lisinopril"]

    def test_risk_calculation(self) -> None:
        entry = risk_calculation_entry(
            medications=["atorvastatin"],
            week=20,
            trimester=2,
            score=100,
            risk_level="critical",
            has_category_x=True,
            session_id="session-1",
        )
        assert entry.type == AuditType.RISK_CALCULATION
        assert entry.session_id == "session-1"
        assert entry.data["has_category_x"] is True
        assert entry.assessment_hash == compute_hash(entry.data)

    def test_logged_to_audit_logger(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.INFO, logger="audit"):
            entry = interaction_check_entry(
                medications=["amoxicillin"],
                week=20,
                interactions_found=0,
                highest_severity=None,
                safe=True,
            )
        assert any(entry.id in record.getMessage() for record in caplog.records)


class TestDecisionEntries:
    """Tests for decision and medication event builders."""

    def test_provider_decision(self) -> None:
        entry = provider_decision_entry(
            patient_id="patient-1",
            medication_name="lisinopril",
            decision=DecisionType.SWITCH,
            reasoning="ACE inhibitor contraindicated after first trimester",
            provider_name="Dr. Rivera",
            alternatives=["Labetalol"],
        )
        assert entry.type == AuditType.PROVIDER_DECISION
        assert entry.provider.name == "Dr. Rivera"
        assert entry.data["decision"] == "switch"

    def test_provider_decision_requires_patient(self) -> None:
        with pytest.raises(AuditError):
            provider_decision_entry(
                patient_id="",
                medication_name="lisinopril",
                decision=DecisionType.SWITCH,
                reasoning="",
                provider_id="prov-1",
            )

    def test_provider_decision_requires_provider(self) -> None:
        with pytest.raises(AuditError):
            provider_decision_entry(
                patient_id="patient-1",
                medication_name="lisinopril",
                decision=DecisionType.SWITCH,
                reasoning="",
            )

    def test_patient_decision(self) -> None:
        entry = patient_decision_entry(
            patient_id="patient-1",
            medication_name="sertraline",
            decision="continue",
            acknowledged_risks=True,
        )
        assert entry.data["decision"] == "continue"
        assert entry.data["acknowledged_risks"] is True

    def test_patient_decision_requires_patient(self) -> None:
        with pytest.raises(AuditError) as exc_info:
            patient_decision_entry(patient_id=None, medication_name="sertraline", decision="continue")
        assert exc_info.value.code == "AUDIT_ERROR"

    def test_medication_started(self) -> None:
        entry = medication_started_entry(
            patient_id="patient-1",
            medication_name="labetalol",
            week=22,
            dosage="100 mg",
            prescriber_name="Dr. Rivera",
        )
        assert entry.type == AuditType.MEDICATION_STARTED
        assert entry.prescriber.name == "Dr. Rivera"

    def test_medication_stopped_without_prescriber(self) -> None:
        entry = medication_stopped_entry(
            patient_id="patient-1",
            medication_name="lisinopril",
            week=22,
            reason="Switched to labetalol",
        )
        assert entry.type == AuditType.MEDICATION_STOPPED
        assert entry.prescriber is None

    def test_adverse_event_is_critical(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING, logger="audit"):
            entry = adverse_event_entry(
                patient_id="patient-1",
                medication_name="valproate",
                week=8,
                event_type="malformation",
                severity="severe",
                description="Neural tube defect",
            )
        assert entry.critical is True
        assert any(record.levelno == logging.WARNING for record in caplog.records)

    def test_adverse_event_requires_patient(self) -> None:
        with pytest.raises(AuditError):
            adverse_event_entry(
                patient_id="",
                medication_name="valproate",
                week=8,
                event_type="malformation",
                severity="severe",
                description="",
            )
