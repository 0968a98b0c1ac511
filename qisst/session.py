"""
Committee Session

This module ties the bookkeeping rules to a bucket store and defines
the flows the organizer drives:
1. Members (add → edit → remove)
2. Payments (toggle per member per cycle)
3. Cycles and the lucky draw (create → propose → confirm or decline)
4. Reports (dashboard, period report, member history, receipt)

DESIGN DECISION: The session owns the only copy of the four collections.
- Every mutation runs the pure engine function first
- The changed bucket(s) are persisted BEFORE the session adopts them,
  so a failed save leaves both memory and disk on the old state
- Every mutation and every rejected operation is logged

A winner is NEVER committed without an explicit confirm_winner() call.
"""

import random
from contextlib import contextmanager
from datetime import date, datetime
from typing import Iterator, Optional, Union

import structlog

from qisst.activity import ActivityLogger, configure_logging
from qisst.agents import FALLBACK_MESSAGES, CommitteeAdvisor
from qisst.config import Settings, get_settings
from qisst.engine import bookkeeping, reports
from qisst.engine.errors import (
    BookkeepingError,
    CycleAlreadyCompleted,
    CycleNotFound,
    MemberNotFound,
    ValidationError,
)
from qisst.models.committee import (
    CommitteeSettings,
    Cycle,
    Member,
    PaymentRecord,
    ReportPeriod,
)
from qisst.models.reports import (
    DashboardStats,
    MemberSummary,
    PeriodReport,
    ValidationResult,
    WinnerProposal,
    WinnerReceipt,
)
from qisst.services.storage import (
    Bucket,
    BucketStore,
    GoogleSheetsBucketStore,
    GoogleSheetsClient,
    InMemoryStore,
    JsonFileStore,
    StorageError,
    StoreReadCorrupt,
    dump_bucket,
    load_bucket,
)
from qisst.validation import CommitteeValidator


logger = structlog.get_logger(__name__)


class CommitteeSession:
    """
    One organizer's committee, loaded from a store.

    Single-writer: one session per store at a time.
    """

    def __init__(
        self,
        store: BucketStore,
        settings: CommitteeSettings,
        members: list[Member],
        cycles: list[Cycle],
        payments: list[PaymentRecord],
        activity_logger: Optional[ActivityLogger] = None,
        validator: Optional[CommitteeValidator] = None,
        advisor: Optional[CommitteeAdvisor] = None,
        rng: Optional[random.Random] = None,
    ):
        self._store = store
        self._settings = settings
        self._members = members
        self._cycles = cycles
        self._payments = payments
        self._activity = activity_logger or ActivityLogger()
        self._validator = validator or CommitteeValidator()
        self._advisor = advisor
        self._rng = rng
        self._active_cycle_id: Optional[str] = None

    @classmethod
    def load(
        cls,
        store: BucketStore,
        activity_logger: Optional[ActivityLogger] = None,
        rng: Optional[random.Random] = None,
        validator: Optional[CommitteeValidator] = None,
        advisor: Optional[CommitteeAdvisor] = None,
    ) -> "CommitteeSession":
        """
        Load every bucket from the store.

        Buckets are read independently: one unreadable bucket falls back
        to its default (with a warning) without affecting the others.
        """
        activity = activity_logger or ActivityLogger()
        loaded = {}

        for bucket in Bucket:
            try:
                loaded[bucket] = load_bucket(bucket, store.load(bucket))
            except (StoreReadCorrupt, StorageError) as e:
                activity.log_bucket_load_failed(bucket.value, str(e))
                loaded[bucket] = load_bucket(bucket, None)

        return cls(
            store=store,
            settings=loaded[Bucket.SETTINGS],
            members=loaded[Bucket.MEMBERS],
            cycles=loaded[Bucket.CYCLES],
            payments=loaded[Bucket.PAYMENTS],
            activity_logger=activity,
            validator=validator,
            advisor=advisor,
            rng=rng,
        )

    # =========================================================================
    # STATE
    # =========================================================================

    @property
    def settings(self) -> CommitteeSettings:
        return self._settings

    @property
    def members(self) -> list[Member]:
        return list(self._members)

    @property
    def cycles(self) -> list[Cycle]:
        """Newest first."""
        return list(self._cycles)

    @property
    def payments(self) -> list[PaymentRecord]:
        return list(self._payments)

    @property
    def active_cycle_id(self) -> Optional[str]:
        """The cycle selected for payment entry; defaults to the newest."""
        if self._active_cycle_id and bookkeeping.find_cycle(self._cycles, self._active_cycle_id):
            return self._active_cycle_id
        return self._cycles[0].id if self._cycles else None

    # =========================================================================
    # PERSISTENCE
    # =========================================================================

    def _persist(self, **changes) -> None:
        """
        Save the changed buckets, then adopt them.

        Keyword names are bucket values: settings, members, cycles, payments.
        """
        snapshots = {
            Bucket(name): dump_bucket(Bucket(name), value)
            for name, value in changes.items()
        }
        try:
            if len(snapshots) == 1:
                bucket, snapshot = next(iter(snapshots.items()))
                self._store.save(bucket, snapshot)
            else:
                self._store.save_many(snapshots)
        except StorageError as e:
            for bucket in snapshots:
                self._activity.log_bucket_save_failed(bucket.value, str(e))
            raise

        for name, value in changes.items():
            setattr(self, f"_{name}", value)

    @contextmanager
    def _operation(self, name: str) -> Iterator[None]:
        """Log and re-raise anything the bookkeeping rules reject."""
        try:
            yield
        except BookkeepingError as e:
            self._activity.log_rejected(name, str(e))
            raise

    # =========================================================================
    # MEMBERS
    # =========================================================================

    def add_member(self, name: str, phone: str = "") -> Member:
        with self._operation("add_member"):
            members = bookkeeping.add_member(self._members, name, phone)
        self._persist(members=members)

        member = members[-1]
        self._activity.log_member_added(member.id, member.name)
        return member

    def update_member(self, member_id: str, name: str, phone: str = "") -> Member:
        with self._operation("update_member"):
            members = bookkeeping.update_member(self._members, member_id, name, phone)
        self._persist(members=members)

        member = bookkeeping.find_member(members, member_id)
        self._activity.log_member_updated(member.id, member.name)
        return member

    def remove_member(self, member_id: str) -> None:
        """Remove a member. Their payment records stay behind."""
        with self._operation("remove_member"):
            members = bookkeeping.remove_member(self._members, member_id)
        self._persist(members=members)

        orphaned = sum(1 for p in self._payments if p.member_id == member_id)
        self._activity.log_member_removed(member_id, orphaned)

    # =========================================================================
    # PAYMENTS
    # =========================================================================

    def toggle_payment(self, member_id: str, cycle_id: Optional[str] = None) -> bool:
        """
        Flip a member's paid state for a cycle (the active cycle by default).

        Returns:
            The new paid state
        """
        cycle_id = cycle_id or self.active_cycle_id
        with self._operation("toggle_payment"):
            if cycle_id is None:
                raise BookkeepingError("Create a cycle before recording payments")
            payments = bookkeeping.toggle_payment(self._payments, member_id, cycle_id)
        self._persist(payments=payments)

        now_paid = bookkeeping.is_paid(payments, member_id, cycle_id)
        self._activity.log_payment_toggled(member_id, cycle_id, now_paid)
        return now_paid

    def is_paid(self, member_id: str, cycle_id: str) -> bool:
        return bookkeeping.is_paid(self._payments, member_id, cycle_id)

    # =========================================================================
    # CYCLES
    # =========================================================================

    def create_cycle(self, start_date: Union[date, datetime]) -> Cycle:
        """Start the next cycle and make it the active one."""
        cycles = bookkeeping.create_cycle(
            self._cycles,
            self._settings.frequency,
            start_date,
        )
        self._persist(cycles=cycles)

        cycle = cycles[0]
        self._active_cycle_id = cycle.id
        self._activity.log_cycle_created(cycle.id, cycle.label, cycle.start_date)
        return cycle

    def select_active_cycle(self, cycle_id: str) -> Cycle:
        with self._operation("select_active_cycle"):
            cycle = bookkeeping.find_cycle(self._cycles, cycle_id)
            if cycle is None:
                raise CycleNotFound(cycle_id)
        self._active_cycle_id = cycle_id
        return cycle

    # =========================================================================
    # LUCKY DRAW
    # =========================================================================

    def propose_winner(self, cycle_id: Optional[str] = None) -> WinnerProposal:
        """
        Pick a random eligible member for a cycle. Commits NOTHING.

        Show proposal.prompt to the organizer, then call confirm_winner()
        or decline_winner().
        """
        cycle_id = cycle_id or self.active_cycle_id
        with self._operation("propose_winner"):
            if cycle_id is None:
                raise BookkeepingError("Create a cycle before drawing a winner")
            cycle = bookkeeping.find_cycle(self._cycles, cycle_id)
            if cycle is None:
                raise CycleNotFound(cycle_id)
            if cycle.is_completed:
                raise CycleAlreadyCompleted(cycle_id, cycle.winner_id)

            pool = bookkeeping.eligible_members(self._members)
            candidate = bookkeeping.select_winner(pool, self._rng)

        proposal = WinnerProposal(
            cycle_id=cycle_id,
            member_id=candidate.id,
            member_name=candidate.name,
            eligible_count=len(pool),
        )
        self._activity.log_winner_proposed(cycle_id, candidate.id, len(pool))
        return proposal

    def confirm_winner(self, proposal: WinnerProposal) -> Cycle:
        """
        Commit a confirmed proposal.

        CRITICAL: This cannot be undone. Members and cycles are saved together.
        """
        with self._operation("confirm_winner"):
            members, cycles = bookkeeping.commit_winner(
                self._members,
                self._cycles,
                proposal.cycle_id,
                proposal.member_id,
            )
        self._persist(members=members, cycles=cycles)

        self._activity.log_winner_confirmed(
            proposal.cycle_id, proposal.member_id, proposal.member_name
        )
        return bookkeeping.find_cycle(cycles, proposal.cycle_id)

    def decline_winner(self, proposal: WinnerProposal) -> None:
        """The organizer said no; nothing changes."""
        self._activity.log_winner_declined(proposal.cycle_id, proposal.member_id)

    # =========================================================================
    # SETTINGS AND RESET
    # =========================================================================

    def update_settings(self, new_settings: CommitteeSettings) -> ValidationResult:
        """
        Replace the committee settings.

        Returns:
            The validation result (warnings only, errors raise)

        Raises:
            ValidationError: If the settings have errors
        """
        result = self._validator.validate_settings(new_settings)
        with self._operation("update_settings"):
            if result.has_errors:
                raise ValidationError(
                    self._validator.get_user_friendly_summary(result),
                    issues=result.issues,
                )

        old = self._settings.model_dump()
        self._persist(settings=new_settings)

        changes = {
            key: str(value)
            for key, value in new_settings.model_dump().items()
            if old.get(key) != value
        }
        self._activity.log_settings_updated(changes)
        return result

    def reset_data(self) -> None:
        """
        Delete all members, cycles and payments.

        Settings are kept.
        """
        counts = (len(self._members), len(self._cycles), len(self._payments))
        self._persist(members=[], cycles=[], payments=[])
        self._active_cycle_id = None
        self._activity.log_data_reset(*counts)

    # =========================================================================
    # QUERIES
    # =========================================================================

    def dashboard(self) -> DashboardStats:
        return reports.dashboard_stats(
            self._settings, self._members, self._cycles, self._payments
        )

    def period_report(
        self,
        period: ReportPeriod,
        now: Optional[datetime] = None,
    ) -> PeriodReport:
        report = reports.period_report(
            self._cycles,
            self._payments,
            self._members,
            self._settings,
            ReportPeriod(period),
            now=now,
        )
        self._activity.log_integrity_warning(report.integrity_warnings)
        return report

    def member_summary(self, member_id: str) -> MemberSummary:
        with self._operation("member_summary"):
            member = bookkeeping.find_member(self._members, member_id)
            if member is None:
                raise MemberNotFound(member_id)
        return reports.member_summary(member, self._cycles, self._payments, self._settings)

    def winner_receipt(self, cycle_id: str) -> WinnerReceipt:
        """
        Receipt for a completed cycle's pot.

        Raises:
            CycleNotFound: If the cycle doesn't exist
            BookkeepingError: If the cycle has no winner yet
            MemberNotFound: If the winner has since been removed
        """
        with self._operation("winner_receipt"):
            cycle = bookkeeping.find_cycle(self._cycles, cycle_id)
            if cycle is None:
                raise CycleNotFound(cycle_id)
            if not cycle.winner_id:
                raise BookkeepingError(f"Cycle {cycle.label} has no winner yet")
            member = bookkeeping.find_member(self._members, cycle.winner_id)
            if member is None:
                raise MemberNotFound(cycle.winner_id)
        return reports.winner_receipt(member, cycle, self._settings, self._members)

    def integrity_report(self) -> ValidationResult:
        result = self._validator.check_integrity(
            self._members, self._cycles, self._payments
        )
        self._activity.log_integrity_warning(result.warnings)
        return result

    # =========================================================================
    # ADVISOR
    # =========================================================================

    async def ask_advisor(self, query: str) -> str:
        """Ask the advisor about this committee. Never raises."""
        if self._advisor is None:
            self._advisor = CommitteeAdvisor()
        self._activity.log_advice_requested(query)
        answer = await self._advisor.ask(
            query,
            self._settings,
            list(self._members),
            list(self._cycles),
        )
        if answer in FALLBACK_MESSAGES:
            self._activity.log_advice_unavailable(answer)
        return answer


def create_session(settings: Optional[Settings] = None) -> CommitteeSession:
    """
    Factory function to create a session from configuration.

    The backend is chosen by STORAGE_BACKEND (json, memory or google_sheets).
    """
    settings = settings or get_settings()
    storage = settings.storage
    configure_logging(settings.app.effective_log_level)

    if storage.backend == "google_sheets":
        store: BucketStore = GoogleSheetsBucketStore(
            GoogleSheetsClient(settings.google_sheets),
            key_prefix=storage.key_prefix,
        )
    elif storage.backend == "memory":
        store = InMemoryStore(key_prefix=storage.key_prefix)
    else:
        store = JsonFileStore(storage.data_dir, key_prefix=storage.key_prefix)

    logger.info("session_starting", backend=storage.backend)

    return CommitteeSession.load(
        store,
        validator=CommitteeValidator(settings.app),
        advisor=CommitteeAdvisor(settings.gemini),
    )
