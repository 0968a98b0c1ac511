"""Validation package."""

from qisst.validation.validator import CommitteeValidator

__all__ = ["CommitteeValidator"]
