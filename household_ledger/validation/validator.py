"""
Two-Stage Record Validation

STAGE 1 - SCHEMA VALIDATION:
- Happens when the record model is constructed (pydantic)
- Positive amounts, non-negative goal balances, savings goal link present
- A record that fails here never reaches the ledger service

STAGE 2 - SEMANTIC VALIDATION (this module):
- Checks a well-formed record against the current ledger snapshot
- Unknown earner/payer, dangling goal links, suspicious amounts,
  deadlines already passed
- Only error-level issues block admission

IMPORTANT: Validation NEVER silently fixes issues.
It reports them; the ledger service decides.
"""

from datetime import date
from decimal import Decimal
from typing import Optional
from uuid import UUID

import pydantic

from household_ledger.config import get_settings
from household_ledger.config.settings import LedgerSettings
from household_ledger.models.ledger import LedgerState
from household_ledger.models.records import Expense, Goal, Income
from household_ledger.models.validation import ValidationIssue, ValidationResult


class ValidationError(Exception):
    """
    A record failed domain validation and was not admitted.

    Not related to pydantic.ValidationError, which is what a malformed
    record raises while it is being constructed (a savings expense with
    no goal, a non-positive amount). Catch RECORD_REJECTED to handle both.
    """

    def __init__(self, message: str, result: Optional[ValidationResult] = None):
        super().__init__(message)
        self.result = result


# Stage 1 (construction) and stage 2 (ledger checks) rejections
RECORD_REJECTED = (pydantic.ValidationError, ValidationError)


class RecordValidator:
    """Semantic checks for records about to enter the ledger."""

    def __init__(self, settings: Optional[LedgerSettings] = None):
        self._settings = settings or get_settings().ledger

    def _check_amount(self, field: str, amount: Decimal) -> list[ValidationIssue]:
        if amount > self._settings.max_amount:
            return [ValidationIssue(
                field=field,
                issue_type="suspicious_value",
                message=f"Amount ({amount:,.2f}) seems unusually high",
                severity="warning",
                suggested_fix="Please verify this amount is correct",
            )]
        return []

    def validate_income(self, income: Income, state: LedgerState) -> ValidationResult:
        issues = self._check_amount("amount", income.amount)

        if state.users and state.find_user(income.user_id) is None:
            issues.append(ValidationIssue(
                field="user_id",
                issue_type="unknown_reference",
                message="Income belongs to someone who is not in this ledger",
                severity="warning",
            ))

        return ValidationResult(entity_type="income", entity_id=income.id, issues=issues)

    def validate_expense(self, expense: Expense, state: LedgerState) -> ValidationResult:
        issues = self._check_amount("amount", expense.amount)

        if state.users and state.find_user(expense.payer_id) is None:
            issues.append(ValidationIssue(
                field="payer_id",
                issue_type="unknown_reference",
                message="Expense was paid by someone who is not in this ledger",
                severity="warning",
            ))

        if expense.is_savings_transfer and state.find_goal(expense.linked_goal_id) is None:
            issues.append(ValidationIssue(
                field="linked_goal_id",
                issue_type="unknown_reference",
                message="Savings expense is linked to a goal that does not exist",
                severity="warning",
                suggested_fix="Create the goal first or pick an existing one",
            ))

        return ValidationResult(entity_type="expense", entity_id=expense.id, issues=issues)

    def validate_goal(self, goal: Goal, state: LedgerState) -> ValidationResult:
        issues = self._check_amount("target_amount", goal.target_amount)

        if goal.deadline and goal.deadline < date.today():
            issues.append(ValidationIssue(
                field="deadline",
                issue_type="past_date",
                message=f"Goal deadline ({goal.deadline}) has already passed",
                severity="warning",
            ))

        if goal.current_amount >= goal.target_amount:
            issues.append(ValidationIssue(
                field="current_amount",
                issue_type="target_reached",
                message="Goal already meets its target",
                severity="info",
            ))

        return ValidationResult(entity_type="goal", entity_id=goal.id, issues=issues)

    def validate_goal_amount(self, goal_id: UUID, amount: Decimal) -> ValidationResult:
        issues = []
        if amount < 0:
            issues.append(ValidationIssue(
                field="current_amount",
                issue_type="invalid_value",
                message="Goal amount cannot be negative",
                severity="error",
            ))
        elif amount != amount.quantize(Decimal("0.01")):
            issues.append(ValidationIssue(
                field="current_amount",
                issue_type="invalid_value",
                message="Goal amount cannot have more than two decimal places",
                severity="error",
            ))
        return ValidationResult(entity_type="goal", entity_id=goal_id, issues=issues)

    @staticmethod
    def ensure_valid(result: ValidationResult) -> ValidationResult:
        """Raise ValidationError if the result carries any error-level issue."""
        if result.has_errors:
            messages = "; ".join(
                issue.message for issue in result.issues if issue.severity == "error"
            )
            raise ValidationError(
                f"Invalid {result.entity_type}: {messages}",
                result=result,
            )
        return result

    @staticmethod
    def get_user_friendly_summary(result: ValidationResult) -> str:
        """Short text for showing validation results to a person."""
        if not result.issues:
            return "All checks passed."

        lines = []
        for issue in result.issues:
            prefix = {"error": "Error", "warning": "Check", "info": "Note"}[issue.severity]
            lines.append(f"{prefix}: {issue.message}")
            if issue.suggested_fix:
                lines.append(f"  -> {issue.suggested_fix}")
        return "\n".join(lines)
