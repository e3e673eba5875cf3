"""Finalized shift storage."""

from shift_core.shifts.store import SHIFT_CODES, ShiftSnapshot, ShiftStore

__all__ = ["SHIFT_CODES", "ShiftSnapshot", "ShiftStore"]
