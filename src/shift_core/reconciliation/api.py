"""Public API for monthly reconciliation.

ReconciliationService reconciles captured monthly actuals against
administrator-entered totals. Every mutation runs inside a document
transaction that re-reads the record and re-checks its lock immediately
before writing, and writes the record together with its allocations.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime, timezone

from shift_core.config import DEFAULT_BASIS, DEFAULT_METHOD, DataPaths
from shift_core.exceptions import NotFoundError, ReconciliationLockedError, ValidationError
from shift_core.reconciliation.actuals import compute_monthly_actuals
from shift_core.reconciliation.allocate import allocate
from shift_core.reconciliation.metrics import MetricSelector, get_selector, list_metrics
from shift_core.reconciliation.store import ReconciliationStore
from shift_core.reconciliation.types import (
    Basis,
    Method,
    MonthlyActuals,
    MonthlyMetricSummary,
    ReconciliationRecord,
    ReconciliationState,
)
from shift_core.shifts import ShiftStore
from shift_core.utils import parse_month

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def validate_site(site: str) -> str:
    s = str(site or "").strip()
    if not s:
        raise ValidationError("missing site")
    return s


def validate_month(month_ym: str) -> str:
    try:
        parse_month(month_ym)
    except ValueError as e:
        raise ValidationError(f"invalid month_ym '{month_ym}'") from e
    return str(month_ym).strip()


def validate_basis(basis: str | Basis) -> Basis:
    try:
        return Basis(basis)
    except ValueError as e:
        raise ValidationError(f"invalid basis '{basis}'. Expected one of {[b.value for b in Basis]}") from e


def validate_method(method: str | Method) -> Method:
    try:
        return Method(method)
    except ValueError as e:
        raise ValidationError(f"invalid method '{method}'. Expected one of {[m.value for m in Method]}") from e


def validate_total(value: object) -> float:
    """Parse a reconciled total, rejecting booleans, non-numbers and non-finite values."""
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"invalid reconciled_total {value!r}")
    try:
        total = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as e:
        raise ValidationError(f"invalid reconciled_total {value!r}") from e
    if not math.isfinite(total):
        raise ValidationError(f"reconciled_total must be finite, got {value!r}")
    return total


class ReconciliationService:
    """Month summaries and reconciliation record lifecycle.

    Example:
        >>> paths = DataPaths.from_root("data")
        >>> service = ReconciliationService(paths)
        >>> summary = service.upsert("North", "2025-01", "hauling|ore_tonnes_hauled", reconciled_total=12000)
        >>> record = service.lock("North", "2025-01", "hauling|ore_tonnes_hauled")
    """

    def __init__(self, paths: DataPaths, shifts: ShiftStore | None = None) -> None:
        self.paths = paths
        self.shifts = shifts or ShiftStore(paths)
        self.store = ReconciliationStore(paths)

    def _request(self, site: str, month_ym: str, metric_key: str, basis: str | Basis):
        return (
            validate_site(site),
            validate_month(month_ym),
            get_selector(metric_key),
            validate_basis(basis),
        )

    def _actuals(self, site: str, month_ym: str, selector: MetricSelector, basis: Basis) -> MonthlyActuals:
        shifts = self.shifts.shifts_for_month(site, month_ym)
        return compute_monthly_actuals(shifts, selector, basis, month_ym)

    def month_summary(
        self,
        site: str,
        month_ym: str,
        metric_key: str,
        basis: str | Basis = DEFAULT_BASIS,
    ) -> MonthlyMetricSummary:
        """Captured actuals for a metric plus its reconciliation, if any."""
        site, month_ym, selector, basis = self._request(site, month_ym, metric_key, basis)
        actuals = self._actuals(site, month_ym, selector, basis)
        record = self.store.get(site, month_ym, selector.key, basis)
        return MonthlyMetricSummary(site, month_ym, selector.key, basis, actuals, record)

    def upsert(
        self,
        site: str,
        month_ym: str,
        metric_key: str,
        basis: str | Basis = DEFAULT_BASIS,
        method: str | Method = DEFAULT_METHOD,
        reconciled_total: float | str | None = None,
        notes: str | None = None,
    ) -> MonthlyMetricSummary:
        """Create or update a reconciliation and regenerate its allocations.

        Raises:
            ValidationError: On malformed input (checked before any read).
            ReconciliationLockedError: If the record is locked. Nothing is written.
        """
        site, month_ym, selector, basis = self._request(site, month_ym, metric_key, basis)
        method = validate_method(method)
        total = validate_total(reconciled_total)

        actuals = self._actuals(site, month_ym, selector, basis)
        delta, allocations = allocate(method, total, actuals, month_ym)
        with self.store.transaction(site, month_ym) as month:
            existing = month.get(selector.key, basis)
            if existing is not None and existing.is_locked:
                raise ReconciliationLockedError(site, month_ym, selector.key)
            record = ReconciliationRecord(
                site=site,
                month_ym=month_ym,
                metric_key=selector.key,
                basis=basis,
                method=method,
                reconciled_total=total,
                notes=notes if notes is not None else (existing.notes if existing else None),
                actual_total_snapshot=actuals.total,
                delta_snapshot=delta,
                computed_at=_now(),
                allocations=allocations,
            )
            month.put(record)

        logger.info(
            "Upserted reconciliation %s %s %s (%s): reconciled=%s actual=%s delta=%s",
            site,
            month_ym,
            selector.key,
            basis.value,
            total,
            actuals.total,
            delta,
        )
        return MonthlyMetricSummary(site, month_ym, selector.key, basis, actuals, record)

    def recalculate(
        self,
        site: str,
        month_ym: str,
        metric_key: str,
        basis: str | Basis = DEFAULT_BASIS,
    ) -> MonthlyMetricSummary:
        """Regenerate allocations from the stored total and the latest actuals.

        Raises:
            NotFoundError: If no reconciliation exists.
            ReconciliationLockedError: If the record is locked. Nothing is written.
        """
        site, month_ym, selector, basis = self._request(site, month_ym, metric_key, basis)
        actuals = self._actuals(site, month_ym, selector, basis)
        with self.store.transaction(site, month_ym) as month:
            record = month.get(selector.key, basis)
            if record is None:
                raise NotFoundError(f"reconciliation not found: {site} {month_ym} {selector.key}")
            if record.is_locked:
                raise ReconciliationLockedError(site, month_ym, selector.key)
            delta, allocations = allocate(record.method, record.reconciled_total, actuals, month_ym)
            record.actual_total_snapshot = actuals.total
            record.delta_snapshot = delta
            record.allocations = allocations
            record.computed_at = _now()
            month.put(record)

        logger.info("Recalculated reconciliation %s %s %s: delta=%s", site, month_ym, selector.key, delta)
        return MonthlyMetricSummary(site, month_ym, selector.key, basis, actuals, record)

    def _set_locked(self, site: str, month_ym: str, metric_key: str, basis: str | Basis, locked: bool):
        site, month_ym, selector, basis = self._request(site, month_ym, metric_key, basis)
        with self.store.transaction(site, month_ym) as month:
            record = month.get(selector.key, basis)
            if record is None:
                raise NotFoundError(f"reconciliation not found: {site} {month_ym} {selector.key}")
            record.is_locked = locked
            record.locked_at = _now() if locked else None
            month.put(record)
        logger.info("%s reconciliation %s %s %s", "Locked" if locked else "Unlocked", site, month_ym, selector.key)
        return record

    def lock(
        self, site: str, month_ym: str, metric_key: str, basis: str | Basis = DEFAULT_BASIS
    ) -> ReconciliationRecord:
        """Lock a reconciliation. Allocations are kept."""
        return self._set_locked(site, month_ym, metric_key, basis, True)

    def unlock(
        self, site: str, month_ym: str, metric_key: str, basis: str | Basis = DEFAULT_BASIS
    ) -> ReconciliationRecord:
        return self._set_locked(site, month_ym, metric_key, basis, False)

    def month_status(self, site: str, month_ym: str) -> ReconciliationState:
        """Month-level state: closed if any record is locked, in_progress if any exist."""
        site, month_ym = validate_site(site), validate_month(month_ym)
        records = self.store.records(site, month_ym)
        if any(r.is_locked for r in records):
            return ReconciliationState.CLOSED
        if records:
            return ReconciliationState.IN_PROGRESS
        return ReconciliationState.OPEN

    def records(self, site: str, month_ym: str) -> list[ReconciliationRecord]:
        return self.store.records(validate_site(site), validate_month(month_ym))

    @staticmethod
    def list_metrics() -> list[dict]:
        return list_metrics()
