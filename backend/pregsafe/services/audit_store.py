"""Audit Store Service.

Append-only JSON audit trail for pregnancy medication assessments. The
document layout is::

    {"version": "1.0.0", "created": "...", "retention_years": 7,
     "last_updated": "...", "entries": [...]}

Writes (and read-modify-write purges) are serialized per file behind a
threading lock, so concurrent assessments never lose entries.
"""

import csv
from datetime import UTC, datetime
import io
import json
import logging
import os
from pathlib import Path
from threading import Lock
from typing import Any, Literal

from pydantic import BaseModel, Field

from pregsafe.core.audit import RETENTION_YEARS, AuditEntry, AuditType

logger = logging.getLogger(__name__)

AUDIT_LOG_VERSION = "1.0.0"

CSV_HEADERS = [
    "ID",
    "Type",
    "Timestamp",
    "Patient ID",
    "Session ID",
    "Medication",
    "Week of Pregnancy",
    "Risk Level",
    "Decision",
    "Provider",
    "Notes",
]

ExportFormat = Literal["json", "csv"]

# One lock per audit file, shared by every store pointing at it
_file_locks: dict[str, Lock] = {}
_file_locks_guard = Lock()


def _lock_for(path: Path) -> Lock:
    key = str(path.resolve())
    with _file_locks_guard:
        if key not in _file_locks:
            _file_locks[key] = Lock()
        return _file_locks[key]


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def years_before(moment: datetime, years: int) -> datetime:
    """Subtract calendar years (Feb 29 maps to Feb 28)."""
    try:
        return moment.replace(year=moment.year - years)
    except ValueError:
        return moment.replace(year=moment.year - years, day=28)


class AuditFilter(BaseModel):
    """Filters for querying the audit trail. All given filters must match."""

    patient_id: str | None = None
    type: AuditType | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    medication_name: str | None = None
    session_id: str | None = None

    def matches(self, entry: AuditEntry) -> bool:
        if self.patient_id and entry.patient_id != self.patient_id:
            return False
        if self.type and entry.type != self.type:
            return False
        if self.start_date and _as_utc(entry.timestamp) < _as_utc(self.start_date):
            return False
        if self.end_date and _as_utc(entry.timestamp) > _as_utc(self.end_date):
            return False
        if self.session_id and entry.session_id != self.session_id:
            return False
        if self.medication_name:
            wanted = self.medication_name.lower()
            single = str(entry.data.get("medication_name") or "").lower()
            many = [str(m).lower() for m in entry.data.get("medications") or []]
            if single != wanted and wanted not in many:
                return False
        return True


class CleanupResult(BaseModel):
    removed: int
    retained: int
    retention_date: datetime


class AuditStatistics(BaseModel):
    """Aggregate counts over (filtered) audit entries."""

    total_entries: int = 0
    by_type: dict[str, int] = Field(default_factory=dict)
    by_risk_level: dict[str, int] = Field(default_factory=dict)
    unique_patients: int = 0
    unique_medications: int = 0
    earliest: datetime | None = None
    latest: datetime | None = None
    critical_events: int = 0
    provider_decisions: int = 0
    patient_decisions: int = 0


class AuditStore:
    """File-backed append-only audit trail.

    Usage:
        store = AuditStore(Path("data/pregnancy-audit-log.json"))
        store.append(entry)
        entries = store.query(AuditFilter(patient_id="patient-1"))
    """

    def __init__(self, path: Path, retention_years: int = RETENTION_YEARS) -> None:
        self.path = Path(path)
        self.retention_years = retention_years
        self._lock = _lock_for(self.path)
        logger.info(f"Audit store using {self.path} (retention {retention_years} years)")

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _initial_document(self) -> dict[str, Any]:
        return {
            "version": AUDIT_LOG_VERSION,
            "created": datetime.now(UTC).isoformat(),
            "retention_years": self.retention_years,
            "entries": [],
        }

    def _read(self) -> dict[str, Any]:
        if not self.path.exists():
            return self._initial_document()
        with open(self.path, "r", encoding="utf-8") as f:
            return json.load(f)

    def _write(self, document: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(document, f, indent=2)
        os.replace(tmp_path, self.path)

    def _entries(self) -> list[AuditEntry]:
        with self._lock:
            document = self._read()
        return [AuditEntry.model_validate(item) for item in document.get("entries", [])]

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def append(self, entry: AuditEntry) -> AuditEntry:
        """Append an entry to the trail."""
        with self._lock:
            document = self._read()
            document["entries"].append(entry.model_dump(mode="json"))
            document["last_updated"] = datetime.now(UTC).isoformat()
            self._write(document)
        logger.debug(f"Appended audit entry {entry.id} ({entry.type.value})")
        return entry

    def query(self, filters: AuditFilter | None = None) -> list[AuditEntry]:
        """Get entries matching the filters, newest first."""
        filters = filters or AuditFilter()
        results = [e for e in self._entries() if filters.matches(e)]
        results.sort(key=lambda e: _as_utc(e.timestamp), reverse=True)
        return results

    def export(self, filters: AuditFilter | None = None, format: ExportFormat = "json") -> str:
        """Export matching entries as JSON or CSV text.

        Raises:
            ValueError: If format is not json or csv.
        """
        if format not in ("json", "csv"):
            raise ValueError(f"Unsupported export format: {format}")

        filters = filters or AuditFilter()
        entries = self.query(filters)

        if format == "csv":
            return self._to_csv(entries)

        return json.dumps(
            {
                "export_date": datetime.now(UTC).isoformat(),
                "filters": filters.model_dump(mode="json", exclude_none=True),
                "entry_count": len(entries),
                "entries": [e.model_dump(mode="json") for e in entries],
            },
            indent=2,
        )

    @staticmethod
    def _to_csv(entries: list[AuditEntry]) -> str:
        buffer = io.StringIO()
        writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
        writer.writerow(CSV_HEADERS)

        for entry in entries:
            data = entry.data
            medication = data.get("medication_name") or "; ".join(data.get("medications") or [])
            writer.writerow([
                entry.id,
                entry.type.value,
                entry.timestamp.isoformat(),
                entry.patient_id or "",
                entry.session_id or "",
                medication,
                data.get("week") or "",
                data.get("risk_level") or "",
                data.get("decision") or "",
                entry.provider.name if entry.provider and entry.provider.name else "",
                data.get("reasoning") or data.get("recommendation") or "",
            ])

        return buffer.getvalue()

    def purge_before(self, cutoff: datetime) -> int:
        """Remove entries older than cutoff. Returns the number removed."""
        cutoff = _as_utc(cutoff)
        with self._lock:
            document = self._read()
            entries = document.get("entries", [])
            kept = [
                item for item in entries
                if _as_utc(AuditEntry.model_validate(item).timestamp) >= cutoff
            ]
            removed = len(entries) - len(kept)
            if removed:
                document["entries"] = kept
                document["last_cleanup"] = datetime.now(UTC).isoformat()
                document["removed_entries"] = removed
                self._write(document)

        if removed:
            logger.info(f"Purged {removed} audit entries older than {cutoff.isoformat()}")
        return removed

    def cleanup(self, retention_years: int | None = None) -> CleanupResult:
        """Apply the retention policy."""
        years = retention_years if retention_years is not None else self.retention_years
        retention_date = years_before(datetime.now(UTC), years)
        removed = self.purge_before(retention_date)
        return CleanupResult(
            removed=removed,
            retained=len(self._entries()),
            retention_date=retention_date,
        )

    def statistics(self, filters: AuditFilter | None = None) -> AuditStatistics:
        """Compute aggregate statistics over matching entries."""
        entries = self.query(filters)
        stats = AuditStatistics(total_entries=len(entries))
        patients: set[str] = set()
        medications: set[str] = set()

        for entry in entries:
            stats.by_type[entry.type.value] = stats.by_type.get(entry.type.value, 0) + 1

            if entry.patient_id:
                patients.add(entry.patient_id)

            data = entry.data
            if data.get("medication_name"):
                medications.add(str(data["medication_name"]).lower())
            for med in data.get("medications") or []:
                medications.add(str(med).lower())

            risk_level = data.get("risk_level")
            if risk_level:
                stats.by_risk_level[risk_level] = stats.by_risk_level.get(risk_level, 0) + 1

            timestamp = _as_utc(entry.timestamp)
            if stats.earliest is None or timestamp < stats.earliest:
                stats.earliest = timestamp
            if stats.latest is None or timestamp > stats.latest:
                stats.latest = timestamp

            if entry.critical:
                stats.critical_events += 1
            if entry.type == AuditType.PROVIDER_DECISION:
                stats.provider_decisions += 1
            elif entry.type == AuditType.PATIENT_DECISION:
                stats.patient_decisions += 1

        stats.unique_patients = len(patients)
        stats.unique_medications = len(medications)
        return stats


# Singleton instance and lock
_audit_store: AuditStore | None = None
_audit_store_lock = Lock()


def get_audit_store() -> AuditStore:
    """Get the singleton AuditStore configured from settings."""
    global _audit_store

    if _audit_store is None:
        with _audit_store_lock:
            if _audit_store is None:
                from pregsafe.core.config import settings

                _audit_store = AuditStore(settings.audit_log_path, settings.audit_retention_years)

    return _audit_store


def reset_audit_store() -> None:
    """Reset the singleton instance (for testing)."""
    global _audit_store
    with _audit_store_lock:
        _audit_store = None
