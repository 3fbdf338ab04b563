"""Error taxonomy for pregnancy safety assessments.

All errors are local validation failures raised before any scoring happens,
so callers never receive a partially built assessment. Every error carries a
stable ``code`` used by the API layer and the audit trail.
"""


class PregnancySafetyError(ValueError):
    """Base class for assessment validation failures."""

    code = "PREGNANCY_SAFETY_ERROR"

    def __init__(self, message: str, details: dict | None = None) -> None:
        super().__init__(message)
        self.details = details or {}


class OutOfRangeWeekError(PregnancySafetyError):
    """Gestational week outside [1, 40]."""

    code = "INVALID_WEEK"

    def __init__(self, week: object) -> None:
        super().__init__(f"Week must be between 1 and 40, got {week!r}", {"week": week})
        self.week = week


class InvalidTrimesterError(PregnancySafetyError):
    """Trimester number other than 1, 2 or 3."""

    code = "INVALID_TRIMESTER"

    def __init__(self, trimester: object) -> None:
        super().__init__(f"Trimester must be 1, 2, or 3, got {trimester!r}", {"trimester": trimester})
        self.trimester = trimester


class EmptyMedicationListError(PregnancySafetyError):
    """Composite calculation invoked without medications."""

    code = "EMPTY_MEDICATION_LIST"

    def __init__(self) -> None:
        super().__init__("Medication names must be a non-empty list")


class UnknownConditionError(PregnancySafetyError):
    """Maternal condition not present in the profile table."""

    code = "UNKNOWN_CONDITION"

    def __init__(self, condition: str) -> None:
        super().__init__(f"Unknown maternal condition: {condition}", {"condition": condition})
        self.condition = condition


class InvalidCategoryError(PregnancySafetyError):
    """Reference data carries an FDA category outside A/B/C/D/X/N.

    This is a data-loading defect, not a user input error.
    """

    code = "DATA_LOAD_ERROR"

    def __init__(self, category: object, medication: str | None = None) -> None:
        where = f" for {medication}" if medication else ""
        super().__init__(
            f"Invalid FDA category{where}: {category!r}",
            {"category": category, "medication": medication},
        )
        self.category = category


class AuditError(PregnancySafetyError):
    """Audit entry is missing required information."""

    code = "AUDIT_ERROR"
