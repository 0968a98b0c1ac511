"""
Core Data Models for QisstBook

These models define the strict schemas for the four persisted collections:
settings, members, cycles and payments. They are designed to:
1. Enforce the field invariants at construction time
2. Provide clear validation error messages
3. Serialize to the same camelCase JSON shape the buckets have always used

DESIGN DECISION: Optional fields (winner_id, received_date) are paired with
a boolean flag and a model validator keeps the two in lockstep. A model that
breaks the pairing cannot be constructed or loaded.
"""

import secrets
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Annotated, Optional
from uuid import uuid4

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Field,
    model_validator,
)
from pydantic.alias_generators import to_camel


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_aware(value: datetime) -> datetime:
    """Naive datetimes are taken as local time and given an offset."""
    if value.tzinfo is None:
        return value.astimezone()
    return value


# Every stored timestamp is offset-aware so they all compare with each other
Timestamp = Annotated[datetime, AfterValidator(ensure_aware)]


def new_member_id() -> str:
    return uuid4().hex


def new_cycle_id() -> str:
    return f"cycle-{uuid4().hex[:12]}"


def new_avatar_seed() -> str:
    return secrets.token_hex(3)


# Shared model configuration: snake_case in Python, camelCase on disk
BUCKET_MODEL_CONFIG = ConfigDict(
    alias_generator=to_camel,
    populate_by_name=True,
    str_strip_whitespace=True,
)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class Frequency(str, Enum):
    """
    How often members pay an installment.

    The pot is always projected per month, so each frequency carries a
    monthly-equivalent multiplier (see MONTHLY_MULTIPLIERS).
    """
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"


MONTHLY_MULTIPLIERS: dict[Frequency, int] = {
    Frequency.DAILY: 30,
    Frequency.WEEKLY: 4,
    Frequency.MONTHLY: 1,
}


class PaymentStatus(str, Enum):
    """
    Payment status for a (member, cycle) pair.

    CRITICAL: Only PAID is ever written. A missing record means unpaid;
    UNPAID is reserved so older snapshots still parse.
    """
    PAID = "PAID"
    UNPAID = "UNPAID"


class ReportPeriod(str, Enum):
    """Date windows for period reports, on the local calendar."""
    TODAY = "TODAY"
    WEEK = "WEEK"
    MONTH = "MONTH"


# =============================================================================
# ENTITIES
# =============================================================================

class Member(BaseModel):
    """
    A participant in the committee.

    has_received_pot flips to True exactly once, when the member is
    confirmed as a cycle winner. It never flips back.
    """
    model_config = BUCKET_MODEL_CONFIG

    id: str = Field(
        default_factory=new_member_id,
        min_length=1,
        description="Opaque member identifier"
    )
    name: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Display name (required)"
    )
    phone: str = Field(
        default="",
        max_length=50,
        description="Contact number"
    )
    join_date: Timestamp = Field(
        default_factory=utc_now,
        description="When the member was added"
    )
    has_received_pot: bool = Field(
        default=False,
        description="Whether this member already took a pot"
    )
    received_date: Optional[Timestamp] = Field(
        default=None,
        description="When the pot was received"
    )
    avatar_seed: str = Field(
        default_factory=new_avatar_seed,
        description="Display-only seed for the member avatar"
    )

    @model_validator(mode='after')
    def validate_pot_receipt(self) -> 'Member':
        """received_date is present if and only if has_received_pot."""
        if self.has_received_pot and self.received_date is None:
            raise ValueError("Member marked as pot receiver must have a received date")
        if not self.has_received_pot and self.received_date is not None:
            raise ValueError("Received date set on a member who has not received the pot")
        return self


class Cycle(BaseModel):
    """
    One collection period.

    Cycle lists are kept newest-first; the first cycle is the current one.
    """
    model_config = BUCKET_MODEL_CONFIG

    id: str = Field(
        default_factory=new_cycle_id,
        min_length=1,
        description="Opaque cycle identifier"
    )
    label: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Human-readable label, e.g. 'Month 3'"
    )
    start_date: Timestamp = Field(
        ...,
        description="Chosen start date, used for ordering and period filters"
    )
    winner_id: Optional[str] = Field(
        default=None,
        description="Member who took the pot this cycle"
    )
    is_completed: bool = Field(
        default=False,
        description="True once a winner has been committed"
    )

    @model_validator(mode='after')
    def validate_completion(self) -> 'Cycle':
        """is_completed mirrors the presence of winner_id."""
        if self.is_completed != (self.winner_id is not None):
            raise ValueError("Cycle is completed exactly when it has a winner")
        return self


class PaymentRecord(BaseModel):
    """
    The fact that a member paid for a cycle.

    Identity is the (member_id, cycle_id) pair; at most one record per pair.
    """
    model_config = BUCKET_MODEL_CONFIG

    member_id: str = Field(..., min_length=1)
    cycle_id: str = Field(..., min_length=1)
    status: PaymentStatus = Field(
        default=PaymentStatus.PAID,
        description="Always PAID when written by the engine"
    )
    date_paid: Optional[Timestamp] = Field(
        default_factory=utc_now,
        description="When the payment was marked"
    )

    @property
    def key(self) -> tuple[str, str]:
        return (self.member_id, self.cycle_id)

    @property
    def is_paid(self) -> bool:
        return self.status == PaymentStatus.PAID


class CommitteeSettings(BaseModel):
    """
    Committee-wide settings.

    Replaced wholesale on save; there is exactly one per data set.
    """
    model_config = BUCKET_MODEL_CONFIG

    committee_name: str = Field(
        default="My Committee",
        max_length=200,
        description="Committee label"
    )
    installment_amount: Decimal = Field(
        default=Decimal("1000"),
        gt=0,
        description="Per-period contribution per member"
    )
    currency: str = Field(
        default="PKR",
        max_length=10,
        description="Currency label used for display only"
    )
    frequency: Frequency = Field(
        default=Frequency.MONTHLY,
        description="How often an installment is collected"
    )

    @property
    def monthly_multiplier(self) -> int:
        return MONTHLY_MULTIPLIERS[self.frequency]

    @property
    def monthly_per_person(self) -> Decimal:
        """Monthly-equivalent contribution of one member."""
        return self.installment_amount * self.monthly_multiplier

    def format_amount(self, amount: Decimal) -> str:
        """Format an amount with the committee currency, e.g. 'PKR 3,000'."""
        if amount == amount.to_integral_value():
            return f"{self.currency} {int(amount):,}"
        return f"{self.currency} {amount:,.2f}"
