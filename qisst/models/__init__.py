"""
Data Models Package

This package contains all Pydantic models used in QisstBook.
All data flowing through the system must conform to these schemas.
"""

from qisst.models.committee import (
    MONTHLY_MULTIPLIERS,
    CommitteeSettings,
    Cycle,
    Frequency,
    Member,
    PaymentRecord,
    PaymentStatus,
    ReportPeriod,
    utc_now,
)
from qisst.models.reports import (
    CyclePaymentLine,
    DashboardStats,
    MemberSummary,
    PeriodReport,
    ValidationIssue,
    ValidationResult,
    WinnerProposal,
    WinnerReceipt,
)
from qisst.models.activity import (
    ActivityEvent,
    ActivityEventBuilder,
    ActivityEventType,
    ActivitySeverity,
)

__all__ = [
    # Committee models
    "MONTHLY_MULTIPLIERS",
    "CommitteeSettings",
    "Cycle",
    "Frequency",
    "Member",
    "PaymentRecord",
    "PaymentStatus",
    "ReportPeriod",
    "utc_now",
    # Derived models
    "CyclePaymentLine",
    "DashboardStats",
    "MemberSummary",
    "PeriodReport",
    "ValidationIssue",
    "ValidationResult",
    "WinnerProposal",
    "WinnerReceipt",
    # Activity models
    "ActivityEvent",
    "ActivityEventBuilder",
    "ActivityEventType",
    "ActivitySeverity",
]
