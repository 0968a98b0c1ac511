"""
Bookkeeping Errors

Every error here is raised BEFORE any collection is touched.
A caller that catches one can keep using the collections it passed in.
"""

from typing import Optional

from qisst.models.reports import ValidationIssue


class BookkeepingError(Exception):
    """Base exception for bookkeeping operations."""
    pass


class ValidationError(BookkeepingError):
    """Input failed validation (e.g., empty member name)."""

    def __init__(self, message: str, issues: Optional[list[ValidationIssue]] = None):
        self.issues = issues or []
        super().__init__(message)


class NoEligibleMembers(BookkeepingError):
    """Winner draw attempted but every member already received a pot."""

    def __init__(self, message: str = "Everyone has received the pot!"):
        super().__init__(message)


class CycleAlreadyCompleted(BookkeepingError):
    """The cycle already has a winner; a cycle can only be drawn once."""

    def __init__(self, cycle_id: str, winner_id: Optional[str] = None):
        self.cycle_id = cycle_id
        self.winner_id = winner_id
        super().__init__(f"Cycle {cycle_id} already has a winner")


class CycleNotFound(BookkeepingError):
    """No cycle with the given id."""

    def __init__(self, cycle_id: str):
        self.cycle_id = cycle_id
        super().__init__(f"Cycle not found: {cycle_id}")


class MemberNotFound(BookkeepingError):
    """No member with the given id."""

    def __init__(self, member_id: str):
        self.member_id = member_id
        super().__init__(f"Member not found: {member_id}")


class MemberAlreadyReceivedPot(BookkeepingError):
    """The chosen member already won an earlier cycle."""

    def __init__(self, member_id: str):
        self.member_id = member_id
        super().__init__(f"Member {member_id} has already received the pot")


class IntegrityWarning(UserWarning):
    """
    Derived numbers don't add up (more payments than expected instances).

    Not fatal. Usually means members or cycles were removed after payments
    were recorded against them.
    """
    pass
