"""
Activity Models for QisstBook

Significant actions are written to the structured local log so an organizer
(or a developer) can see what happened and in what order.

DESIGN DECISION: Activity events are log lines, not records. They are never
written back into the buckets and there is no way to replay or undo them.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field

from qisst.models.committee import utc_now


class ActivityEventType(str, Enum):
    """Types of events we log."""
    # Members
    MEMBER_ADDED = "member_added"
    MEMBER_UPDATED = "member_updated"
    MEMBER_REMOVED = "member_removed"

    # Cycles and payments
    CYCLE_CREATED = "cycle_created"
    PAYMENT_MARKED = "payment_marked"
    PAYMENT_CLEARED = "payment_cleared"

    # Winner draw
    WINNER_PROPOSED = "winner_proposed"
    WINNER_CONFIRMED = "winner_confirmed"
    WINNER_DECLINED = "winner_declined"

    # Settings and data
    SETTINGS_UPDATED = "settings_updated"
    DATA_RESET = "data_reset"
    BUCKET_LOAD_FAILED = "bucket_load_failed"
    BUCKET_SAVE_FAILED = "bucket_save_failed"

    # Rejections and warnings
    OPERATION_REJECTED = "operation_rejected"
    INTEGRITY_WARNING = "integrity_warning"

    # Advisor
    ADVICE_REQUESTED = "advice_requested"
    ADVICE_UNAVAILABLE = "advice_unavailable"


class ActivitySeverity(str, Enum):
    """Severity level for activity events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class ActivityEvent(BaseModel):
    """A single logged activity."""

    timestamp: datetime = Field(
        default_factory=utc_now,
        description="When the event occurred (UTC)"
    )
    event_type: ActivityEventType
    severity: ActivitySeverity = ActivitySeverity.INFO

    # What entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'member', 'cycle', 'bucket')"
    )
    entity_id: Optional[str] = None

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(default_factory=dict)
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }


class ActivityEventBuilder:
    """
    Helper class to build activity events with common patterns.

    Usage:
        event = ActivityEventBuilder.member_added(member_id, name)
        event = ActivityEventBuilder.winner_confirmed(cycle_id, member_id, name)
    """

    @staticmethod
    def member_added(member_id: str, name: str) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.MEMBER_ADDED,
            entity_type="member",
            entity_id=member_id,
            description=f"Member added: {name}",
            details={"name": name},
        )

    @staticmethod
    def member_updated(member_id: str, name: str) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.MEMBER_UPDATED,
            entity_type="member",
            entity_id=member_id,
            description=f"Member updated: {name}",
            details={"name": name},
        )

    @staticmethod
    def member_removed(member_id: str, orphaned_payments: int) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.MEMBER_REMOVED,
            severity=(
                ActivitySeverity.WARNING if orphaned_payments
                else ActivitySeverity.INFO
            ),
            entity_type="member",
            entity_id=member_id,
            description="Member removed",
            details={"orphaned_payments": orphaned_payments},
        )

    @staticmethod
    def cycle_created(cycle_id: str, label: str, start_date: datetime) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.CYCLE_CREATED,
            entity_type="cycle",
            entity_id=cycle_id,
            description=f"Cycle created: {label}",
            details={"label": label, "start_date": start_date.isoformat()},
        )

    @staticmethod
    def payment_toggled(member_id: str, cycle_id: str, is_paid: bool) -> ActivityEvent:
        return ActivityEvent(
            event_type=(
                ActivityEventType.PAYMENT_MARKED if is_paid
                else ActivityEventType.PAYMENT_CLEARED
            ),
            entity_type="payment",
            entity_id=f"{member_id}:{cycle_id}",
            description="Payment marked as paid" if is_paid else "Payment cleared",
            details={"member_id": member_id, "cycle_id": cycle_id},
        )

    @staticmethod
    def winner_proposed(cycle_id: str, member_id: str, eligible_count: int) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.WINNER_PROPOSED,
            entity_type="cycle",
            entity_id=cycle_id,
            description=f"Draw candidate selected from {eligible_count} eligible",
            details={"member_id": member_id, "eligible_count": eligible_count},
        )

    @staticmethod
    def winner_confirmed(cycle_id: str, member_id: str, name: str) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.WINNER_CONFIRMED,
            entity_type="cycle",
            entity_id=cycle_id,
            description=f"Pot awarded to {name}",
            details={"member_id": member_id},
        )

    @staticmethod
    def winner_declined(cycle_id: str, member_id: str) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.WINNER_DECLINED,
            entity_type="cycle",
            entity_id=cycle_id,
            description="Draw candidate declined by organizer",
            details={"member_id": member_id},
        )

    @staticmethod
    def settings_updated(changes: dict[str, Any]) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.SETTINGS_UPDATED,
            entity_type="settings",
            description="Committee settings saved",
            details={"changes": changes},
        )

    @staticmethod
    def data_reset(members: int, cycles: int, payments: int) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.DATA_RESET,
            severity=ActivitySeverity.WARNING,
            description="All members, cycles and payments cleared",
            details={"members": members, "cycles": cycles, "payments": payments},
        )

    @staticmethod
    def bucket_load_failed(bucket: str, error_message: str) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.BUCKET_LOAD_FAILED,
            severity=ActivitySeverity.ERROR,
            entity_type="bucket",
            entity_id=bucket,
            description=f"Could not read '{bucket}', using defaults",
            error_message=error_message,
        )

    @staticmethod
    def bucket_save_failed(bucket: str, error_message: str) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.BUCKET_SAVE_FAILED,
            severity=ActivitySeverity.ERROR,
            entity_type="bucket",
            entity_id=bucket,
            description=f"Could not write '{bucket}'",
            error_message=error_message,
        )

    @staticmethod
    def operation_rejected(operation: str, error_message: str) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.OPERATION_REJECTED,
            severity=ActivitySeverity.WARNING,
            description=f"Rejected: {operation}",
            details={"operation": operation},
            error_message=error_message,
        )

    @staticmethod
    def integrity_warning(messages: list[str]) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.INTEGRITY_WARNING,
            severity=ActivitySeverity.WARNING,
            description=f"{len(messages)} data integrity issue(s) found",
            details={"issues": messages},
        )

    @staticmethod
    def advice_requested(query: str) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.ADVICE_REQUESTED,
            entity_type="advice",
            description="Advisor question received",
            details={"query_length": len(query)},
        )

    @staticmethod
    def advice_unavailable(reason: str) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.ADVICE_UNAVAILABLE,
            severity=ActivitySeverity.WARNING,
            entity_type="advice",
            description="Advisor unavailable, fallback message returned",
            error_message=reason,
        )
