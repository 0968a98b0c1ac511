"""
Input Validation and Integrity Checks

DESIGN DECISION: Validation happens in two distinct places:

INPUT VALIDATION (before a mutation):
- Required field presence (member name, committee name, currency)
- Format sanity (phone characters, installment size)
- Errors here block the mutation, warnings never do

INTEGRITY CHECKS (over the stored collections):
- Payments that point at removed members or cycles
- Duplicate (member, cycle) payment pairs
- Winners that don't line up with member flags
- These are ALWAYS warnings; the data stays usable

IMPORTANT: Validation NEVER silently fixes issues.
It reports them for the organizer to act on.
"""

from collections import Counter
from decimal import Decimal
from typing import Optional, Sequence

from qisst.config import AppSettings, get_settings
from qisst.models.committee import (
    CommitteeSettings,
    Cycle,
    Member,
    PaymentRecord,
)
from qisst.models.reports import ValidationIssue, ValidationResult


PHONE_ALLOWED_CHARS = set("0123456789+-() ")


class CommitteeValidator:
    """
    Validates organizer input and checks the collections for consistency.

    Input checks run without touching storage.
    Integrity checks only read the collections they are given.
    """

    def __init__(self, app_settings: Optional[AppSettings] = None):
        """
        Initialize validator.

        Args:
            app_settings: Thresholds to use. Loaded from the environment
                         the first time they are needed if not given.
        """
        self._app_settings = app_settings

    @property
    def _settings(self) -> AppSettings:
        if self._app_settings is None:
            self._app_settings = get_settings().app
        return self._app_settings

    # -------------------------------------------------------------------------
    # Input validation
    # -------------------------------------------------------------------------

    def validate_member_input(
        self,
        name: Optional[str],
        phone: Optional[str] = "",
    ) -> ValidationResult:
        """
        Check a member's name and phone before adding or editing.

        Only an empty name is an error.
        """
        issues = []

        if name is None or not name.strip():
            issues.append(ValidationIssue(
                field="name",
                issue_type="missing",
                message="Member name is required",
                severity="error",
                suggested_fix="Enter the member's name",
            ))
        elif len(name.strip()) > 200:
            issues.append(ValidationIssue(
                field="name",
                issue_type="too_long",
                message="Member name is longer than 200 characters",
                severity="error",
            ))

        if phone and phone.strip():
            if not set(phone.strip()) <= PHONE_ALLOWED_CHARS:
                issues.append(ValidationIssue(
                    field="phone",
                    issue_type="invalid_format",
                    message=f"Phone number '{phone.strip()}' contains unexpected characters",
                    severity="warning",
                    suggested_fix="Use digits, spaces, '+' or '-' only",
                ))
            if len(phone.strip()) > 50:
                issues.append(ValidationIssue(
                    field="phone",
                    issue_type="too_long",
                    message="Phone number is longer than 50 characters",
                    severity="error",
                ))

        return ValidationResult(
            subject="member",
            is_valid=not any(i.severity == "error" for i in issues),
            issues=issues,
        )

    def validate_settings(self, settings: CommitteeSettings) -> ValidationResult:
        """
        Check committee settings before saving.

        The model already guarantees a positive installment; this adds
        the checks that need context.
        """
        issues = []

        if not settings.committee_name.strip():
            issues.append(ValidationIssue(
                field="committee_name",
                issue_type="missing",
                message="Committee name is required",
                severity="error",
                suggested_fix="e.g. Friends Committee 2026",
            ))

        if not settings.currency.strip():
            issues.append(ValidationIssue(
                field="currency",
                issue_type="missing",
                message="Currency is required",
                severity="error",
                suggested_fix="e.g. PKR",
            ))

        max_amount = Decimal(str(self._settings.max_installment_amount))
        if settings.installment_amount > max_amount:
            issues.append(ValidationIssue(
                field="installment_amount",
                issue_type="suspicious_value",
                message=(
                    f"Installment ({settings.format_amount(settings.installment_amount)}) "
                    f"seems unusually high"
                ),
                severity="warning",
                suggested_fix="Please verify this amount is correct",
            ))

        return ValidationResult(
            subject="settings",
            is_valid=not any(i.severity == "error" for i in issues),
            issues=issues,
        )

    # -------------------------------------------------------------------------
    # Integrity checks
    # -------------------------------------------------------------------------

    def check_integrity(
        self,
        members: Sequence[Member],
        cycles: Sequence[Cycle],
        payments: Sequence[PaymentRecord],
    ) -> ValidationResult:
        """
        Look for records that disagree with each other.

        Every finding is a warning. Reports still work on inconsistent data,
        they just show unusual numbers.
        """
        issues = []
        member_ids = {m.id for m in members}
        cycle_ids = {c.id for c in cycles}

        orphan_members = [p for p in payments if p.member_id not in member_ids]
        if orphan_members:
            issues.append(ValidationIssue(
                field="payments",
                issue_type="orphan_payment",
                message=f"{len(orphan_members)} payment(s) belong to members who were removed",
                severity="warning",
            ))

        orphan_cycles = [p for p in payments if p.cycle_id not in cycle_ids]
        if orphan_cycles:
            issues.append(ValidationIssue(
                field="payments",
                issue_type="orphan_payment",
                message=f"{len(orphan_cycles)} payment(s) belong to cycles that no longer exist",
                severity="warning",
            ))

        pair_counts = Counter(p.key for p in payments)
        duplicates = [pair for pair, count in pair_counts.items() if count > 1]
        if duplicates:
            issues.append(ValidationIssue(
                field="payments",
                issue_type="duplicate_payment",
                message=f"{len(duplicates)} member/cycle pair(s) have more than one payment",
                severity="warning",
                suggested_fix="Toggle the payment off and on again for those members",
            ))

        members_by_id = {m.id: m for m in members}
        winner_ids = set()
        for cycle in cycles:
            if cycle.winner_id is None:
                continue
            winner_ids.add(cycle.winner_id)
            winner = members_by_id.get(cycle.winner_id)
            if winner is None:
                issues.append(ValidationIssue(
                    field="cycles",
                    issue_type="unknown_winner",
                    message=f"{cycle.label} was won by a member who was removed",
                    severity="warning",
                ))
            elif not winner.has_received_pot:
                issues.append(ValidationIssue(
                    field="members",
                    issue_type="winner_not_flagged",
                    message=f"{winner.name} won {cycle.label} but is not marked as having received the pot",
                    severity="warning",
                ))

        for member in members:
            if member.has_received_pot and member.id not in winner_ids:
                issues.append(ValidationIssue(
                    field="members",
                    issue_type="missing_winning_cycle",
                    message=f"{member.name} is marked as having received the pot but won no cycle",
                    severity="warning",
                ))

        return ValidationResult(
            subject="integrity",
            is_valid=True,
            issues=issues,
        )

    def get_user_friendly_summary(
        self,
        result: ValidationResult,
    ) -> str:
        """
        Generate a user-friendly summary of validation results.

        This is what we show to the organizer.
        """
        if not result.issues:
            return "✅ All checks passed!"

        lines = []

        if result.has_errors:
            lines.append("❌ Please fix the following:")
            for issue in result.issues:
                if issue.severity == "error":
                    lines.append(f"   • {issue.message}")
                    if issue.suggested_fix:
                        lines.append(f"     💡 {issue.suggested_fix}")

        if result.warnings:
            if lines:
                lines.append("")
            lines.append("⚠️ Please verify the following:")
            for warning in result.warnings:
                lines.append(f"   • {warning}")

        return "\n".join(lines)
