"""
Derived Statistics

DESIGN DECISION: Statistics are recomputed from the raw collections on
every call. There is no cache to invalidate and no stored total that can
drift from the records it summarizes. At committee scale (tens of members,
a few hundred payments) this is instant.

Dates are compared on the LOCAL calendar, because "today" for an organizer
means their day, not UTC's.
"""

import math
import warnings
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Optional, Sequence

from qisst.engine.bookkeeping import find_member, is_paid
from qisst.engine.errors import IntegrityWarning
from qisst.models.committee import (
    MONTHLY_MULTIPLIERS,
    CommitteeSettings,
    Cycle,
    Frequency,
    Member,
    PaymentRecord,
    ReportPeriod,
    utc_now,
)
from qisst.models.reports import (
    CyclePaymentLine,
    DashboardStats,
    MemberSummary,
    PeriodReport,
    WinnerReceipt,
)


# =============================================================================
# POT AND RATES
# =============================================================================

def monthly_multiplier(frequency: Frequency) -> int:
    """DAILY → 30, WEEKLY → 4, MONTHLY → 1."""
    return MONTHLY_MULTIPLIERS[frequency]


def per_person_monthly(settings: CommitteeSettings) -> Decimal:
    return settings.installment_amount * monthly_multiplier(settings.frequency)


def pot_amount(members: Sequence[Member], settings: CommitteeSettings) -> Decimal:
    """
    Projected payout for one cycle winner.

    This is members × monthly-equivalent installment, NOT a sum of the
    payments actually recorded.
    """
    return len(members) * per_person_monthly(settings)


def paid_count(payments: Sequence[PaymentRecord], cycle_id: str) -> int:
    return sum(1 for p in payments if p.cycle_id == cycle_id and p.is_paid)


def collection_rate(
    payments: Sequence[PaymentRecord],
    cycle_id: str,
    member_count: int,
) -> float:
    """Percentage of members who paid for a cycle (0-100 for consistent data)."""
    return paid_count(payments, cycle_id) / max(member_count, 1) * 100


def display_percent(rate: float) -> int:
    """Round a percentage half-up for display (66.67 → 67, 12.5 → 13)."""
    return math.floor(rate + 0.5)


# =============================================================================
# PERIOD FILTERING
# =============================================================================

def _local(value: datetime) -> datetime:
    return value.astimezone()


def _local_midnight(day: date) -> datetime:
    return datetime.combine(day, time.min).astimezone()


def period_range(
    period: ReportPeriod,
    now: Optional[datetime] = None,
) -> tuple[datetime, datetime]:
    """
    Resolve a report period to a [start, end) range on the local calendar.

    TODAY: today's midnight
    WEEK:  midnight of the most recent Sunday
    MONTH: midnight of the 1st of this month

    The end is always the midnight that ends today. Each boundary is
    resolved to its own local offset, so a DST change inside the range
    does not shift it.
    """
    today = _local(now or utc_now()).date()

    if period == ReportPeriod.TODAY:
        start_day = today
    elif period == ReportPeriod.WEEK:
        # weekday(): Monday=0 ... Sunday=6
        start_day = today - timedelta(days=(today.weekday() + 1) % 7)
    elif period == ReportPeriod.MONTH:
        start_day = today.replace(day=1)
    else:
        raise ValueError(f"Unknown report period: {period}")

    return _local_midnight(start_day), _local_midnight(today + timedelta(days=1))


def filter_cycles_by_period(
    cycles: Sequence[Cycle],
    period: ReportPeriod,
    now: Optional[datetime] = None,
) -> list[Cycle]:
    """Cycles whose start date falls in the period. Order is preserved."""
    start, end = period_range(period, now)
    return [c for c in cycles if start <= _local(c.start_date) < end]


def period_report(
    cycles: Sequence[Cycle],
    payments: Sequence[PaymentRecord],
    members: Sequence[Member],
    settings: CommitteeSettings,
    period: ReportPeriod,
    now: Optional[datetime] = None,
) -> PeriodReport:
    """
    Collection report for the cycles that started within a period.

    Totals cover every cycle in the period. The paid/unpaid member lists
    cover only the most recent of those cycles (the first one, since cycle
    lists are newest-first).

    A negative unpaid count is returned as-is and raises an
    IntegrityWarning; it means payments outlived their member or cycle.
    """
    start, end = period_range(period, now)
    in_period = [c for c in cycles if start <= _local(c.start_date) < end]
    cycle_ids = {c.id for c in in_period}

    total_expected = len(members) * len(in_period)
    total_paid = sum(1 for p in payments if p.cycle_id in cycle_ids and p.is_paid)
    total_unpaid = total_expected - total_paid

    integrity_warnings = []
    if total_unpaid < 0:
        message = (
            f"{total_paid} payments recorded against {total_expected} expected "
            f"instances for {period.value}; some payments belong to removed "
            f"members or cycles"
        )
        integrity_warnings.append(message)
        warnings.warn(message, IntegrityWarning, stacklevel=2)

    latest_cycle = in_period[0] if in_period else None
    paid_members: list[Member] = []
    unpaid_members: list[Member] = []
    if latest_cycle is not None:
        for member in members:
            if is_paid(payments, member.id, latest_cycle.id):
                paid_members.append(member)
            else:
                unpaid_members.append(member)

    return PeriodReport(
        period=period,
        range_start=start,
        range_end=end,
        cycles=in_period,
        total_expected_instances=total_expected,
        total_paid_count=total_paid,
        total_unpaid_count=total_unpaid,
        total_amount_paid=total_paid * settings.installment_amount,
        total_amount_unpaid=total_unpaid * settings.installment_amount,
        completion_rate=total_paid / max(total_expected, 1) * 100,
        latest_cycle=latest_cycle,
        paid_members=paid_members,
        unpaid_members=unpaid_members,
        integrity_warnings=integrity_warnings,
    )


# =============================================================================
# DASHBOARD AND MEMBER VIEWS
# =============================================================================

def dashboard_stats(
    settings: CommitteeSettings,
    members: Sequence[Member],
    cycles: Sequence[Cycle],
    payments: Sequence[PaymentRecord],
) -> DashboardStats:
    """Headline numbers; the current cycle is the newest one."""
    current = cycles[0] if cycles else None
    winners = sum(1 for m in members if m.has_received_pot)

    rate = 0.0
    current_paid = 0
    winner_name = None
    if current is not None:
        current_paid = paid_count(payments, current.id)
        rate = collection_rate(payments, current.id, len(members))
        if current.winner_id:
            winner = find_member(members, current.winner_id)
            winner_name = winner.name if winner else None

    return DashboardStats(
        committee_name=settings.committee_name,
        currency=settings.currency,
        installment_amount=settings.installment_amount,
        per_person_monthly=per_person_monthly(settings),
        pot_amount=pot_amount(members, settings),
        total_members=len(members),
        winners_count=winners,
        waitlist_count=len(members) - winners,
        total_cycles=len(cycles),
        completed_cycles=sum(1 for c in cycles if c.is_completed),
        current_cycle=current,
        current_cycle_paid_count=current_paid,
        current_collection_rate=rate,
        current_collection_percent=display_percent(rate),
        current_winner_name=winner_name,
    )


def member_summary(
    member: Member,
    cycles: Sequence[Cycle],
    payments: Sequence[PaymentRecord],
    settings: CommitteeSettings,
) -> MemberSummary:
    """Totals for one member plus their payment history, newest cycle first."""
    member_payments = [p for p in payments if p.member_id == member.id and p.is_paid]
    paid_by_cycle = {p.cycle_id: p for p in member_payments}

    total_paid = len(member_payments)
    pending = len(cycles) - total_paid

    winning_cycle = find_winning_cycle(cycles, member.id)

    history = [
        CyclePaymentLine(
            cycle=cycle,
            is_paid=cycle.id in paid_by_cycle,
            date_paid=paid_by_cycle[cycle.id].date_paid if cycle.id in paid_by_cycle else None,
            is_winning_cycle=cycle.winner_id == member.id,
        )
        for cycle in sorted(cycles, key=lambda c: c.start_date, reverse=True)
    ]

    return MemberSummary(
        member=member,
        total_paid_cycles=total_paid,
        total_paid_amount=total_paid * settings.installment_amount,
        total_cycles=len(cycles),
        pending_cycles=pending,
        pending_amount=pending * settings.installment_amount,
        winning_cycle=winning_cycle,
        history=history,
    )


def verification_code(cycle_id: str) -> str:
    """Last 8 characters of the cycle id, upper-cased."""
    return cycle_id[-8:].upper()


def winner_receipt(
    member: Member,
    cycle: Cycle,
    settings: CommitteeSettings,
    members: Sequence[Member],
) -> WinnerReceipt:
    """Values for the pot disbursement receipt of a completed cycle."""
    amount = pot_amount(members, settings)
    return WinnerReceipt(
        committee_name=settings.committee_name,
        member_id=member.id,
        member_name=member.name,
        member_phone=member.phone,
        cycle_id=cycle.id,
        cycle_label=cycle.label,
        cycle_start_date=cycle.start_date,
        received_date=member.received_date,
        currency=settings.currency,
        pot_amount=amount,
        formatted_pot_amount=settings.format_amount(amount),
        verification_code=verification_code(cycle.id),
    )


def find_winning_cycle(cycles: Sequence[Cycle], member_id: str) -> Optional[Cycle]:
    return next((c for c in cycles if c.winner_id == member_id), None)
