"""Bookkeeping engine package."""

from qisst.engine.errors import (
    BookkeepingError,
    CycleAlreadyCompleted,
    CycleNotFound,
    IntegrityWarning,
    MemberAlreadyReceivedPot,
    MemberNotFound,
    NoEligibleMembers,
    ValidationError,
)
from qisst.engine.bookkeeping import (
    add_member,
    commit_winner,
    create_cycle,
    cycle_label,
    draw_winner,
    eligible_members,
    find_cycle,
    find_member,
    is_paid,
    remove_member,
    select_winner,
    toggle_payment,
    update_member,
)
from qisst.engine.reports import (
    collection_rate,
    dashboard_stats,
    display_percent,
    filter_cycles_by_period,
    find_winning_cycle,
    member_summary,
    monthly_multiplier,
    paid_count,
    per_person_monthly,
    period_range,
    period_report,
    pot_amount,
    verification_code,
    winner_receipt,
)

__all__ = [
    # Errors
    "BookkeepingError",
    "CycleAlreadyCompleted",
    "CycleNotFound",
    "IntegrityWarning",
    "MemberAlreadyReceivedPot",
    "MemberNotFound",
    "NoEligibleMembers",
    "ValidationError",
    # Mutations
    "add_member",
    "commit_winner",
    "create_cycle",
    "cycle_label",
    "draw_winner",
    "eligible_members",
    "find_cycle",
    "find_member",
    "is_paid",
    "remove_member",
    "select_winner",
    "toggle_payment",
    "update_member",
    # Derived statistics
    "collection_rate",
    "dashboard_stats",
    "display_percent",
    "filter_cycles_by_period",
    "find_winning_cycle",
    "member_summary",
    "monthly_multiplier",
    "paid_count",
    "per_person_monthly",
    "period_range",
    "period_report",
    "pot_amount",
    "verification_code",
    "winner_receipt",
]
