"""
Bookkeeping Rules

DESIGN DECISION: Every operation here is a pure function.
It receives the current collections and returns NEW collections.
Inputs are never modified and nothing is remembered between calls,
so the caller decides when (and whether) to persist the result.

Winner selection is split in two:
1. select_winner - random choice, no side effects
2. commit_winner - applies a choice the organizer has confirmed

draw_winner ties the two together behind a confirmation callback.
"""

import random
from datetime import date, datetime, time
from typing import Callable, Optional, Sequence, Union

from qisst.engine.errors import (
    CycleAlreadyCompleted,
    CycleNotFound,
    MemberAlreadyReceivedPot,
    MemberNotFound,
    NoEligibleMembers,
    ValidationError,
)
from qisst.models.committee import (
    Cycle,
    Frequency,
    Member,
    PaymentRecord,
    PaymentStatus,
    ensure_aware,
    utc_now,
)
from qisst.validation.validator import CommitteeValidator


# =============================================================================
# LOOKUPS
# =============================================================================

def find_member(members: Sequence[Member], member_id: str) -> Optional[Member]:
    for member in members:
        if member.id == member_id:
            return member
    return None


def find_cycle(cycles: Sequence[Cycle], cycle_id: str) -> Optional[Cycle]:
    for cycle in cycles:
        if cycle.id == cycle_id:
            return cycle
    return None


def is_paid(payments: Sequence[PaymentRecord], member_id: str, cycle_id: str) -> bool:
    """A pair is paid when a PAID record exists for it."""
    return any(
        p.member_id == member_id and p.cycle_id == cycle_id and p.is_paid
        for p in payments
    )


# =============================================================================
# MEMBERS
# =============================================================================

def _reject_if_invalid(name: str, phone: str) -> None:
    result = CommitteeValidator().validate_member_input(name, phone)
    if result.has_errors:
        first_error = next(i for i in result.issues if i.severity == "error")
        raise ValidationError(first_error.message, issues=result.issues)


def add_member(
    members: Sequence[Member],
    name: str,
    phone: str = "",
    now: Optional[datetime] = None,
) -> list[Member]:
    """
    Append a new member.

    Raises:
        ValidationError: If the name is empty
    """
    _reject_if_invalid(name, phone)
    member = Member(
        name=name,
        phone=phone or "",
        join_date=now or utc_now(),
    )
    return [*members, member]


def update_member(
    members: Sequence[Member],
    member_id: str,
    name: str,
    phone: str = "",
) -> list[Member]:
    """
    Change a member's name and phone. Nothing else is editable.

    Raises:
        ValidationError: If the name is empty
        MemberNotFound: If no member has this id
    """
    _reject_if_invalid(name, phone)
    if find_member(members, member_id) is None:
        raise MemberNotFound(member_id)

    return [
        m.model_copy(update={"name": name.strip(), "phone": (phone or "").strip()})
        if m.id == member_id else m
        for m in members
    ]


def remove_member(members: Sequence[Member], member_id: str) -> list[Member]:
    """
    Delete a member.

    Payments recorded for the member are left in place; report numbers
    will show them as an integrity warning.

    Raises:
        MemberNotFound: If no member has this id
    """
    if find_member(members, member_id) is None:
        raise MemberNotFound(member_id)
    return [m for m in members if m.id != member_id]


# =============================================================================
# PAYMENTS
# =============================================================================

def toggle_payment(
    payments: Sequence[PaymentRecord],
    member_id: str,
    cycle_id: str,
    now: Optional[datetime] = None,
) -> list[PaymentRecord]:
    """
    Flip the paid state of a (member, cycle) pair.

    Paid → every record for the pair is removed.
    Unpaid → a single PAID record is appended.

    Ids are not checked against members or cycles. Two consecutive
    calls with the same pair return the original collection.
    """
    same_pair = [p for p in payments if p.key == (member_id, cycle_id)]
    others = [p for p in payments if p.key != (member_id, cycle_id)]

    if any(p.is_paid for p in same_pair):
        return others

    # Also replaces any legacy UNPAID record for the pair
    record = PaymentRecord(
        member_id=member_id,
        cycle_id=cycle_id,
        status=PaymentStatus.PAID,
        date_paid=now or utc_now(),
    )
    return [*others, record]


# =============================================================================
# CYCLES
# =============================================================================

def cycle_label(frequency: Frequency, sequence: int) -> str:
    """'Month 3' for monthly committees, 'Cycle 3' otherwise."""
    prefix = "Month" if frequency == Frequency.MONTHLY else "Cycle"
    return f"{prefix} {sequence}"


def _as_start_datetime(start_date: Union[date, datetime]) -> datetime:
    if isinstance(start_date, datetime):
        return ensure_aware(start_date)
    # A bare date starts at local midnight
    return datetime.combine(start_date, time.min).astimezone()


def create_cycle(
    cycles: Sequence[Cycle],
    frequency: Frequency,
    start_date: Union[date, datetime],
) -> list[Cycle]:
    """
    Create the next cycle and put it at the front (newest-first).

    The label number is one more than the number of existing cycles.
    """
    cycle = Cycle(
        label=cycle_label(frequency, len(cycles) + 1),
        start_date=_as_start_datetime(start_date),
    )
    return [cycle, *cycles]


# =============================================================================
# WINNER DRAW
# =============================================================================

def eligible_members(members: Sequence[Member]) -> list[Member]:
    """Members who have not yet received a pot."""
    return [m for m in members if not m.has_received_pot]


def select_winner(
    eligible_pool: Sequence[Member],
    rng: Optional[random.Random] = None,
) -> Member:
    """
    Pick one member uniformly at random. Commits nothing.

    Args:
        eligible_pool: Candidates, usually eligible_members(members)
        rng: Random source; inject a seeded random.Random in tests

    Raises:
        NoEligibleMembers: If the pool is empty
    """
    if not eligible_pool:
        raise NoEligibleMembers()
    source = rng if rng is not None else random.SystemRandom()
    return source.choice(list(eligible_pool))


def commit_winner(
    members: Sequence[Member],
    cycles: Sequence[Cycle],
    cycle_id: str,
    winner_id: str,
    now: Optional[datetime] = None,
) -> tuple[list[Member], list[Cycle]]:
    """
    Record a confirmed winner.

    CRITICAL: There is no inverse operation. Call this only after the
    organizer has confirmed the candidate.

    Raises:
        CycleNotFound: If the cycle doesn't exist
        CycleAlreadyCompleted: If the cycle already has a winner
        MemberNotFound: If the member doesn't exist
        MemberAlreadyReceivedPot: If the member already won a cycle
    """
    cycle = find_cycle(cycles, cycle_id)
    if cycle is None:
        raise CycleNotFound(cycle_id)
    if cycle.winner_id is not None or cycle.is_completed:
        raise CycleAlreadyCompleted(cycle_id, cycle.winner_id)

    winner = find_member(members, winner_id)
    if winner is None:
        raise MemberNotFound(winner_id)
    if winner.has_received_pot:
        raise MemberAlreadyReceivedPot(winner_id)

    received_at = ensure_aware(now) if now is not None else utc_now()

    updated_members = [
        m.model_copy(update={"has_received_pot": True, "received_date": received_at})
        if m.id == winner_id else m
        for m in members
    ]
    updated_cycles = [
        c.model_copy(update={"winner_id": winner_id, "is_completed": True})
        if c.id == cycle_id else c
        for c in cycles
    ]
    return updated_members, updated_cycles


def draw_winner(
    members: Sequence[Member],
    cycles: Sequence[Cycle],
    cycle_id: str,
    confirm: Callable[[Member], bool],
    rng: Optional[random.Random] = None,
    now: Optional[datetime] = None,
) -> tuple[list[Member], list[Cycle]]:
    """
    Select a random eligible member and commit them if confirm() agrees.

    If the organizer declines, the collections are returned unchanged.

    Raises:
        CycleNotFound / CycleAlreadyCompleted: Checked before selecting
        NoEligibleMembers: If nobody is left to receive the pot
    """
    cycle = find_cycle(cycles, cycle_id)
    if cycle is None:
        raise CycleNotFound(cycle_id)
    if cycle.is_completed:
        raise CycleAlreadyCompleted(cycle_id, cycle.winner_id)

    candidate = select_winner(eligible_members(members), rng)
    if not confirm(candidate):
        return list(members), list(cycles)

    return commit_winner(members, cycles, cycle_id, candidate.id, now=now)
