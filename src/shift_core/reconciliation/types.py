"""Types for monthly reconciliation."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Mapping

from shift_core.utils import parse_date


class Basis(str, Enum):
    """Which shifts count towards a monthly actual."""

    VALIDATED_ONLY = "validated_only"
    CAPTURED_ALL = "captured_all"


class Method(str, Enum):
    """How the reconciliation delta is spread over the month."""

    SPREAD_DAILY = "spread_daily"
    MONTH_END = "month_end"


class ReconciliationState(str, Enum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    CLOSED = "closed"


@dataclass(frozen=True)
class DayAllocation:
    """Adjustment allocated to one day of the month."""

    date: date
    allocated_value: float

    def to_dict(self) -> dict:
        return {"date": self.date.isoformat(), "allocated_value": self.allocated_value}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> DayAllocation:
        return cls(date=parse_date(data["date"]), allocated_value=float(data["allocated_value"]))


@dataclass
class MonthlyActuals:
    """Captured actuals for one metric over a month.

    Attributes:
        total: Sum of daily actuals.
        daily: Day -> summed metric value, for days with a contributing shift.
        captured_days: Days with at least one shift on the selected basis.
        shift_count: Shifts that contributed (including zero-valued ones).
        skipped_shifts: Shifts whose totals were missing or malformed.
    """

    total: float = 0.0
    daily: dict[date, float] = field(default_factory=dict)
    captured_days: list[date] = field(default_factory=list)
    shift_count: int = 0
    skipped_shifts: int = 0

    def daily_list(self) -> list[dict]:
        return [{"date": d.isoformat(), "actual": v} for d, v in sorted(self.daily.items())]


@dataclass
class ReconciliationRecord:
    """Administrator-entered reconciled total and its day allocations.

    At most one record exists per (site, month_ym, metric_key, basis).
    """

    site: str
    month_ym: str
    metric_key: str
    basis: Basis
    method: Method
    reconciled_total: float
    is_locked: bool = False
    notes: str | None = None
    actual_total_snapshot: float = 0.0
    delta_snapshot: float = 0.0
    computed_at: str = ""
    locked_at: str | None = None
    allocations: list[DayAllocation] = field(default_factory=list)

    @property
    def state(self) -> ReconciliationState:
        return ReconciliationState.CLOSED if self.is_locked else ReconciliationState.IN_PROGRESS

    def to_dict(self) -> dict:
        return {
            "site": self.site,
            "month_ym": self.month_ym,
            "metric_key": self.metric_key,
            "basis": self.basis.value,
            "method": self.method.value,
            "reconciled_total": self.reconciled_total,
            "is_locked": self.is_locked,
            "notes": self.notes,
            "actual_total_snapshot": self.actual_total_snapshot,
            "delta_snapshot": self.delta_snapshot,
            "computed_at": self.computed_at,
            "locked_at": self.locked_at,
            "allocations": [a.to_dict() for a in self.allocations],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ReconciliationRecord:
        return cls(
            site=data["site"],
            month_ym=data["month_ym"],
            metric_key=data["metric_key"],
            basis=Basis(data["basis"]),
            method=Method(data["method"]),
            reconciled_total=float(data["reconciled_total"]),
            is_locked=bool(data.get("is_locked", False)),
            notes=data.get("notes"),
            actual_total_snapshot=float(data.get("actual_total_snapshot", 0.0)),
            delta_snapshot=float(data.get("delta_snapshot", 0.0)),
            computed_at=data.get("computed_at", ""),
            locked_at=data.get("locked_at"),
            allocations=[DayAllocation.from_dict(a) for a in data.get("allocations", [])],
        )


@dataclass
class MonthlyMetricSummary:
    """Month-summary response: captured actuals plus any reconciliation."""

    site: str
    month_ym: str
    metric_key: str
    basis: Basis
    actuals: MonthlyActuals
    reconciliation: ReconciliationRecord | None = None

    @property
    def actual_total(self) -> float:
        return self.actuals.total

    @property
    def delta(self) -> float | None:
        if self.reconciliation is None:
            return None
        return self.reconciliation.reconciled_total - self.actuals.total

    @property
    def allocations(self) -> list[DayAllocation]:
        return list(self.reconciliation.allocations) if self.reconciliation else []

    @property
    def state(self) -> ReconciliationState:
        return self.reconciliation.state if self.reconciliation else ReconciliationState.OPEN

    def to_dict(self) -> dict:
        return {
            "site": self.site,
            "month_ym": self.month_ym,
            "metric_key": self.metric_key,
            "basis": self.basis.value,
            "state": self.state.value,
            "actual_total": self.actual_total,
            "daily_actuals": self.actuals.daily_list(),
            "skipped_shifts": self.actuals.skipped_shifts,
            "reconciliation": self.reconciliation.to_dict() if self.reconciliation else None,
            "delta": self.delta,
            "allocations": [a.to_dict() for a in self.allocations],
        }
