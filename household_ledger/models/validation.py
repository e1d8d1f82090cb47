"""Validation result models."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from household_ledger.models.records import utc_now


class ValidationIssue(BaseModel):
    """One problem (or note) about one field of a record."""

    field: str = Field(
        ...,
        description="Record field the issue refers to"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'invalid_value', 'unknown_reference', 'suspicious_value')"
    )
    message: str = Field(
        ...,
        description="Text shown to the person entering the record"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
    )
    suggested_fix: Optional[str] = None


class ValidationResult(BaseModel):
    """
    Result of semantic validation of one record against the ledger.

    Only error-level issues block admission. Warnings are surfaced
    but the record is still accepted.
    """

    entity_type: str
    entity_id: Optional[UUID] = None
    validated_at: datetime = Field(default_factory=utc_now)

    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.has_errors

    @property
    def has_errors(self) -> bool:
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def warnings(self) -> list[str]:
        return [issue.message for issue in self.issues if issue.severity == "warning"]
