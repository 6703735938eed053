from collections.abc import Mapping

from .models import CaseQuery

REQUIRED_FIELDS = (
    # (json key, legacy form key, label)
    ("caseType", "case_type", "case type"),
    ("caseNumber", "case_number", "case number"),
    ("filingYear", "filing_year", "filing year"),
)


class ValidationError(ValueError):
    pass


class MissingField(ValidationError):
    def __init__(self, field):
        self.field = field
        super().__init__(f"Missing required field: {field}")


def _read(payload, key, legacy_key):
    value = payload.get(key)
    if value is None:
        value = payload.get(legacy_key)
    if value is None:
        return ""
    return str(value)


def validate_query(payload):
    """Build a CaseQuery from request fields, rejecting absent or empty ones."""
    if not isinstance(payload, Mapping):
        raise ValidationError("Request body must be a JSON object")

    values = []
    for key, legacy_key, label in REQUIRED_FIELDS:
        value = _read(payload, key, legacy_key)
        if not value.strip():
            raise MissingField(label)
        values.append(value)

    return CaseQuery(*values)
