"""
Derived Models for QisstBook

Everything in this module is computed from the four collections on demand.
None of it is persisted: a report is a snapshot of the data at the moment
it was built.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from qisst.models.committee import Cycle, Member, ReportPeriod, utc_now


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation or integrity issue found."""

    field: str = Field(
        ...,
        description="Field or collection with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'orphan_payment', 'suspicious_value')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


class ValidationResult(BaseModel):
    """
    Result of validating input or checking collection integrity.

    Errors block a mutation. Warnings are shown but never block.
    """

    subject: str = Field(
        ...,
        description="What was validated (e.g., 'member', 'settings', 'integrity')"
    )
    validated_at: datetime = Field(
        default_factory=utc_now
    )
    is_valid: bool = Field(
        ...,
        description="No error-level issues were found"
    )
    issues: list[ValidationIssue] = Field(
        default_factory=list,
        description="All issues found"
    )

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def warnings(self) -> list[str]:
        return [issue.message for issue in self.issues if issue.severity == "warning"]


# =============================================================================
# WINNER DRAW
# =============================================================================

class WinnerProposal(BaseModel):
    """
    A randomly selected candidate awaiting the organizer's confirmation.

    Nothing is committed until the proposal is confirmed.
    """

    cycle_id: str
    member_id: str
    member_name: str
    eligible_count: int = Field(ge=1)
    proposed_at: datetime = Field(default_factory=utc_now)

    @property
    def prompt(self) -> str:
        """Confirmation question shown to the organizer."""
        return f"Conduct Lucky Draw?\n\nWinner: {self.member_name}"


# =============================================================================
# REPORTS
# =============================================================================

class DashboardStats(BaseModel):
    """Headline numbers for the committee overview."""

    committee_name: str
    currency: str
    installment_amount: Decimal
    per_person_monthly: Decimal
    pot_amount: Decimal = Field(
        ...,
        description="Projected payout if every member pays the monthly equivalent"
    )
    total_members: int = Field(ge=0)
    winners_count: int = Field(ge=0)
    waitlist_count: int = Field(
        ...,
        description="Members still waiting for a pot"
    )
    total_cycles: int = Field(ge=0)
    completed_cycles: int = Field(ge=0)
    current_cycle: Optional[Cycle] = None
    current_cycle_paid_count: int = Field(default=0, ge=0)
    current_collection_rate: float = Field(
        default=0.0,
        description="Percentage of members who paid the current cycle"
    )
    current_collection_percent: int = Field(
        default=0,
        description="current_collection_rate rounded for display"
    )
    current_winner_name: Optional[str] = None


class PeriodReport(BaseModel):
    """
    Payments collected for the cycles that started within a period.

    total_unpaid_count is not clamped: a negative value means
    payments exist for members or cycles that have since been removed.
    """

    period: ReportPeriod
    range_start: datetime
    range_end: datetime
    generated_at: datetime = Field(default_factory=utc_now)

    cycles: list[Cycle] = Field(default_factory=list)
    total_expected_instances: int = Field(ge=0)
    total_paid_count: int = Field(ge=0)
    total_unpaid_count: int
    total_amount_paid: Decimal
    total_amount_unpaid: Decimal
    completion_rate: float

    # Lists are computed against the latest cycle in the period only
    latest_cycle: Optional[Cycle] = None
    paid_members: list[Member] = Field(default_factory=list)
    unpaid_members: list[Member] = Field(default_factory=list)

    integrity_warnings: list[str] = Field(default_factory=list)

    @property
    def cycle_ids(self) -> list[str]:
        return [cycle.id for cycle in self.cycles]

    @property
    def has_integrity_warning(self) -> bool:
        return bool(self.integrity_warnings)


class CyclePaymentLine(BaseModel):
    """One row of a member's payment history."""

    cycle: Cycle
    is_paid: bool
    date_paid: Optional[datetime] = None
    is_winning_cycle: bool = False


class MemberSummary(BaseModel):
    """Totals and payment history for one member."""

    member: Member
    total_paid_cycles: int = Field(ge=0)
    total_paid_amount: Decimal
    total_cycles: int = Field(ge=0)
    pending_cycles: int
    pending_amount: Decimal
    winning_cycle: Optional[Cycle] = None
    history: list[CyclePaymentLine] = Field(default_factory=list)


class WinnerReceipt(BaseModel):
    """
    Data printed on a pot disbursement receipt.

    Rendering is left to the caller; this only carries the values.
    """

    committee_name: str
    member_id: str
    member_name: str
    member_phone: str = ""
    cycle_id: str
    cycle_label: str
    cycle_start_date: datetime
    received_date: Optional[datetime] = None
    currency: str
    pot_amount: Decimal
    formatted_pot_amount: str
    verification_code: str
