"""
Activity Logger

DESIGN DECISION: Every significant action in the system is logged.
This provides:
1. Traceability of what the organizer did and when
2. Debugging capability
3. A visible record of rejected operations and data warnings

The activity logger:
- Writes structured JSON lines through structlog
- Never persists anything (there is no audit trail to maintain)
- Is synchronous, like every bookkeeping call that uses it
"""

import logging
from typing import Optional

import structlog

from qisst.models.activity import ActivityEvent, ActivityEventBuilder


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(level: str = "INFO") -> None:
    """
    Route the structured log to stderr at the given level.

    Call once at startup; library code only emits.
    """
    logging.basicConfig(format="%(message)s", level=getattr(logging, level.upper()))


class ActivityLogger:
    """
    Central activity logging service.

    Writes events to the structured local log only.
    """

    def __init__(self, logger_name: str = "qisst.activity"):
        self._logger = structlog.get_logger(logger_name)

    def log(self, event: ActivityEvent) -> bool:
        """
        Log an activity event.

        Returns True once the event has been handed to the logger.
        """
        log_dict = event.to_log_dict()

        if event.severity.value == "error":
            self._logger.error("activity_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("activity_event", **log_dict)
        elif event.severity.value == "debug":
            self._logger.debug("activity_event", **log_dict)
        else:
            self._logger.info("activity_event", **log_dict)

        return True

    def log_member_added(self, member_id: str, name: str) -> None:
        self.log(ActivityEventBuilder.member_added(member_id, name))

    def log_member_updated(self, member_id: str, name: str) -> None:
        self.log(ActivityEventBuilder.member_updated(member_id, name))

    def log_member_removed(self, member_id: str, orphaned_payments: int) -> None:
        self.log(ActivityEventBuilder.member_removed(member_id, orphaned_payments))

    def log_cycle_created(self, cycle_id: str, label: str, start_date) -> None:
        self.log(ActivityEventBuilder.cycle_created(cycle_id, label, start_date))

    def log_payment_toggled(self, member_id: str, cycle_id: str, is_paid: bool) -> None:
        self.log(ActivityEventBuilder.payment_toggled(member_id, cycle_id, is_paid))

    def log_winner_proposed(self, cycle_id: str, member_id: str, eligible_count: int) -> None:
        self.log(ActivityEventBuilder.winner_proposed(cycle_id, member_id, eligible_count))

    def log_winner_confirmed(self, cycle_id: str, member_id: str, name: str) -> None:
        self.log(ActivityEventBuilder.winner_confirmed(cycle_id, member_id, name))

    def log_winner_declined(self, cycle_id: str, member_id: str) -> None:
        self.log(ActivityEventBuilder.winner_declined(cycle_id, member_id))

    def log_settings_updated(self, changes: dict) -> None:
        self.log(ActivityEventBuilder.settings_updated(changes))

    def log_data_reset(self, members: int, cycles: int, payments: int) -> None:
        self.log(ActivityEventBuilder.data_reset(members, cycles, payments))

    def log_bucket_load_failed(self, bucket: str, error_message: str) -> None:
        self.log(ActivityEventBuilder.bucket_load_failed(bucket, error_message))

    def log_bucket_save_failed(self, bucket: str, error_message: str) -> None:
        self.log(ActivityEventBuilder.bucket_save_failed(bucket, error_message))

    def log_rejected(self, operation: str, error_message: str) -> None:
        self.log(ActivityEventBuilder.operation_rejected(operation, error_message))

    def log_integrity_warning(self, messages: list[str]) -> None:
        if messages:
            self.log(ActivityEventBuilder.integrity_warning(messages))

    def log_advice_requested(self, query: str) -> None:
        self.log(ActivityEventBuilder.advice_requested(query))

    def log_advice_unavailable(self, reason: Optional[str]) -> None:
        self.log(ActivityEventBuilder.advice_unavailable(reason or "unknown"))
