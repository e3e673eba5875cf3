"""Public API for bucket factors.

BucketFactorService builds the month's solver inputs from finalized shifts and
stored reconciliations, runs the solver, and optionally saves the result.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Mapping

from shift_core.bucket_factors.buckets import assign_loaders, count_loader_buckets
from shift_core.bucket_factors.solver import solve_bucket_factors
from shift_core.bucket_factors.store import BucketFactorStore
from shift_core.bucket_factors.types import (
    BucketFactorSolveResult,
    BucketMonthView,
    LoaderBucketConfig,
    ReconciledTonnes,
)
from shift_core.config import DEFAULT_BASIS, DataPaths
from shift_core.exceptions import ValidationError
from shift_core.reconciliation import DEVELOPMENT_ORE_KEY, PRODUCTION_ORE_KEY, Basis, ReconciliationStore
from shift_core.reconciliation.api import validate_basis, validate_month, validate_site
from shift_core.shifts import ShiftStore

logger = logging.getLogger(__name__)

MISSING_RECONCILED = "missing reconciled ore tonnes (production and/or development) for this month"


def parse_configs(configs: Mapping[str, Any] | None) -> dict[str, LoaderBucketConfig]:
    """Parse request config definitions keyed by config code."""
    out = {}
    for code, data in (configs or {}).items():
        code = str(code).strip()
        if not code:
            raise ValidationError("config_code must not be empty")
        if isinstance(data, LoaderBucketConfig):
            out[code] = data
        elif isinstance(data, Mapping):
            out[code] = LoaderBucketConfig.from_dict(code, data)
        else:
            raise ValidationError(f"config {code}: expected an object, got {data!r}")
    return out


def parse_assignments(assignments: Mapping[str, Any] | None) -> dict[str, str]:
    return {
        str(loader).strip(): str(code).strip()
        for loader, code in (assignments or {}).items()
        if str(loader).strip() and str(code or "").strip()
    }


class BucketFactorService:
    """Month view and solve for a site's loader bucket factors."""

    def __init__(
        self,
        paths: DataPaths,
        shifts: ShiftStore | None = None,
        reconciliations: ReconciliationStore | None = None,
    ) -> None:
        self.paths = paths
        self.shifts = shifts or ShiftStore(paths)
        self.reconciliations = reconciliations or ReconciliationStore(paths)
        self.store = BucketFactorStore(paths)

    def reconciled_tonnes(self, site: str, month_ym: str) -> ReconciledTonnes | None:
        """Reconciled production and development ore tonnes for the month.

        Uses the validated_only reconciliation of each stream, falling back to
        captured_all. Returns None unless both streams are reconciled.
        """
        values = {}
        for key in (PRODUCTION_ORE_KEY, DEVELOPMENT_ORE_KEY):
            for basis in (Basis.VALIDATED_ONLY, Basis.CAPTURED_ALL):
                record = self.reconciliations.get(site, month_ym, key, basis)
                if record is not None:
                    values[key] = record.reconciled_total
                    break
        if len(values) < 2:
            return None
        return ReconciledTonnes(prod=values[PRODUCTION_ORE_KEY], dev=values[DEVELOPMENT_ORE_KEY])

    def _counts(self, site: str, month_ym: str, basis: Basis) -> dict[str, tuple[float, float]]:
        return count_loader_buckets(self.shifts.shifts_for_month(site, month_ym), basis)

    def month_view(self, site: str, month_ym: str, basis: str | Basis = DEFAULT_BASIS) -> BucketMonthView:
        """Loaders, configs, assignment, saved factors and reconciled tonnes for a month."""
        site, month_ym, basis = validate_site(site), validate_month(month_ym), validate_basis(basis)
        doc = self.store.site(site)
        assignment = doc.assignment(month_ym)
        loaders = assign_loaders(self._counts(site, month_ym, basis), assignment)
        stored = doc.configs()
        configs = {ld.config_code: stored.get(ld.config_code) or LoaderBucketConfig(ld.config_code) for ld in loaders}
        saved = doc.factors(month_ym)
        return BucketMonthView(
            site=site,
            month_ym=month_ym,
            loaders=loaders,
            configs=configs,
            assignment={ld.loader_id: ld.config_code for ld in loaders},
            reconciled=self.reconciled_tonnes(site, month_ym),
            saved=list(saved.get("loaders", [])) if saved else [],
        )

    def solve(
        self,
        site: str,
        month_ym: str,
        assignments: Mapping[str, Any] | None = None,
        configs: Mapping[str, Any] | None = None,
        save: bool = False,
        basis: str | Basis = DEFAULT_BASIS,
    ) -> BucketFactorSolveResult:
        """Solve the month's bucket factors.

        Args:
            site: Site name.
            month_ym: Month in YYYY-MM format.
            assignments: loader_id -> config_code overrides for this month.
            configs: config_code -> {estimate, min, max, lock} overrides; unset
                fields come from the stored definitions.
            save: Persist configs, assignment and factors (one atomic write).
                When False the result is a preview.
            basis: Which shifts' bucket counts to use.

        Raises:
            ValidationError: On malformed input, missing reconciled tonnes or
                no loader buckets.
        """
        site, month_ym, basis = validate_site(site), validate_month(month_ym), validate_basis(basis)
        requested_configs = parse_configs(configs)
        requested_assignment = parse_assignments(assignments)

        reconciled = self.reconciled_tonnes(site, month_ym)
        if reconciled is None:
            raise ValidationError(MISSING_RECONCILED)

        doc = self.store.site(site)
        assignment = {**doc.assignment(month_ym), **requested_assignment}
        loaders = assign_loaders(self._counts(site, month_ym, basis), assignment)
        stored = doc.configs()
        defs = {
            ld.config_code: (
                requested_configs[ld.config_code].merged_over(stored.get(ld.config_code))
                if ld.config_code in requested_configs
                else stored.get(ld.config_code) or LoaderBucketConfig(ld.config_code)
            )
            for ld in loaders
        }

        result = solve_bucket_factors(loaders, defs, reconciled)
        if save:
            with self.store.transaction(site) as site_doc:
                for code, cfg in requested_configs.items():
                    site_doc.put_config(cfg.merged_over(site_doc.configs().get(code)))
                site_doc.set_assignment(month_ym, {ld.loader_id: ld.config_code for ld in loaders})
                site_doc.set_factors(
                    month_ym,
                    {
                        "method": result.method,
                        "solved_at": datetime.now(timezone.utc).isoformat(),
                        "warning": result.warning,
                        "reconciled": reconciled.to_dict(),
                        "loaders": [r.to_dict() for r in result.loaders],
                        "configs": [c.to_dict() for c in result.configs],
                    },
                )
            result.saved = True
            logger.info("Saved bucket factors for %s %s (%d loaders)", site, month_ym, len(result.loaders))
        return result
