"""Bucket-factor solver.

Finds one tonnes-per-bucket factor per loader configuration so that

    sum_c prod_buckets_c * f_c = reconciled prod
    sum_c dev_buckets_c  * f_c = reconciled dev

with f_c within its bounds and locked configs fixed at their estimate.

Locked configs are removed from the unknowns and their tonnage subtracted
from the targets. The free configs are solved by the primary strategy; if it
raises InfeasibleSolveError the fallback strategy runs and the result carries
a warning.
"""

from __future__ import annotations

import logging
import math
from typing import Iterable, Mapping

import numpy as np

from shift_core.bucket_factors.strategies import (
    EqualityLeastSquares,
    FactorProblem,
    FactorStrategy,
    ProportionalSplit,
)
from shift_core.bucket_factors.types import (
    BucketFactorSolveResult,
    ConfigFactor,
    LoaderBucketConfig,
    LoaderBuckets,
    LoaderFactor,
    ReconciledTonnes,
)
from shift_core.config import SOLVER_TOLERANCE
from shift_core.exceptions import InfeasibleSolveError, ValidationError
from shift_core.utils import is_finite_number

logger = logging.getLogger(__name__)

METHOD_LOCKED = "locked"


def _bounds(cfg: LoaderBucketConfig) -> tuple[float, float]:
    lo = max(0.0, cfg.min_factor) if cfg.min_factor is not None else 0.0
    hi = cfg.max_factor if cfg.max_factor is not None else math.inf
    if cfg.min_factor is not None and cfg.max_factor is not None and cfg.min_factor > cfg.max_factor:
        raise ValidationError(f"config {cfg.config_code}: min_factor {cfg.min_factor} > max_factor {cfg.max_factor}")
    if lo > hi:
        raise ValidationError(f"config {cfg.config_code}: max_factor {hi} is below 0")
    return lo, hi


def _validate_config(cfg: LoaderBucketConfig) -> None:
    if cfg.estimate_factor is not None:
        if not math.isfinite(cfg.estimate_factor) or cfg.estimate_factor < 0:
            raise ValidationError(f"config {cfg.config_code}: estimate_factor must be a finite number >= 0")
    if cfg.lock and cfg.estimate_factor is None:
        raise ValidationError(f"config {cfg.config_code}: lock requires an estimate_factor")


def _validate_loaders(loaders: list[LoaderBuckets]) -> None:
    if not loaders:
        raise ValidationError("no loading buckets found for this month (cannot solve)")
    for ld in loaders:
        for name in ("prod_buckets", "dev_buckets"):
            value = getattr(ld, name)
            if not is_finite_number(value) or value < 0:
                raise ValidationError(f"loader {ld.loader_id}: {name} must be a finite number >= 0, got {value!r}")


def solve_bucket_factors(
    loaders: Iterable[LoaderBuckets],
    configs: Mapping[str, LoaderBucketConfig] | None,
    reconciled: ReconciledTonnes,
    strategy: FactorStrategy | None = None,
    fallback: FactorStrategy | None = None,
    tolerance: float = SOLVER_TOLERANCE,
) -> BucketFactorSolveResult:
    """Solve per-configuration bucket factors.

    Args:
        loaders: Per-loader bucket counts with their config codes.
        configs: Config definitions by code. Codes used by loaders but absent
            here are unbounded with no estimate.
        reconciled: Reconciled production and development ore tonnes.
        strategy: Primary strategy (default: EqualityLeastSquares).
        fallback: Used when the primary raises InfeasibleSolveError
            (default: ProportionalSplit).
        tolerance: Relative tolerance on the equality constraints.

    Returns:
        BucketFactorSolveResult with per-loader and per-config factors.

    Raises:
        ValidationError: On missing targets, no loaders, bad bucket counts,
            min > max, or a lock without an estimate.

    Examples:
        >>> result = solve_bucket_factors(
        ...     [LoaderBuckets("L1", "C1", 100, 50)], {}, ReconciledTonnes(prod=1000, dev=500)
        ... )
        >>> round(result.factor_for("C1"), 6)
        10.0
    """
    if reconciled is None or not (is_finite_number(reconciled.prod) and is_finite_number(reconciled.dev)):
        raise ValidationError("missing reconciled ore tonnes (production and/or development) for this month")
    loaders = list(loaders)
    _validate_loaders(loaders)
    strategy = strategy or EqualityLeastSquares()
    fallback = fallback or ProportionalSplit()
    configs = configs or {}

    codes = sorted({ld.config_code for ld in loaders})
    defs = {c: configs.get(c) or LoaderBucketConfig(c) for c in codes}
    bounds = {}
    for c in codes:
        _validate_config(defs[c])
        bounds[c] = _bounds(defs[c])

    prod = {c: math.fsum(ld.prod_buckets for ld in loaders if ld.config_code == c) for c in codes}
    dev = {c: math.fsum(ld.dev_buckets for ld in loaders if ld.config_code == c) for c in codes}

    factors: dict[str, float] = {}
    locked = [c for c in codes if defs[c].lock]
    for c in locked:
        factors[c] = float(defs[c].estimate_factor)
    # Configs without buckets do not enter the equations.
    for c in codes:
        if c not in factors and prod[c] == 0 and dev[c] == 0:
            lo, hi = bounds[c]
            est = defs[c].estimate_factor
            factors[c] = float(min(max(est if est is not None else lo, lo), hi))
    free = [c for c in codes if c not in factors]

    target = np.array(
        [
            reconciled.prod - math.fsum(factors[c] * prod[c] for c in locked),
            reconciled.dev - math.fsum(factors[c] * dev[c] for c in locked),
        ]
    )
    problem = FactorProblem(
        codes=free,
        A=np.array([[prod[c] for c in free], [dev[c] for c in free]], dtype=float).reshape(2, len(free)),
        b=target,
        estimates=np.array([defs[c].estimate_factor or 0.0 for c in free], dtype=float),
        has_estimate=np.array([defs[c].estimate_factor is not None for c in free], dtype=bool),
        lo=np.array([bounds[c][0] for c in free], dtype=float),
        hi=np.array([bounds[c][1] for c in free], dtype=float),
        tolerance=tolerance,
    )

    warning = None
    if not free:
        method = METHOD_LOCKED
    else:
        try:
            solved = strategy.solve(problem)
            method = strategy.name
        except InfeasibleSolveError as e:
            logger.warning("Bucket-factor solve infeasible (%s); using %s", e, fallback.name)
            solved = fallback.solve(problem)
            method = fallback.name
            warning = f"{e}; factors fall back to a proportional split of the targets"
        factors.update({c: float(v) for c, v in zip(free, solved)})

    config_rows = [
        ConfigFactor(
            config_code=c,
            prod_buckets=prod[c],
            dev_buckets=dev[c],
            factor=factors[c],
            min_factor=bounds[c][0],
            max_factor=None if math.isinf(bounds[c][1]) else bounds[c][1],
            estimate_factor=defs[c].estimate_factor,
            locked=defs[c].lock,
            prod_tonnes_predicted=prod[c] * factors[c],
            dev_tonnes_predicted=dev[c] * factors[c],
        )
        for c in codes
    ]
    loader_rows = [
        LoaderFactor(
            loader_id=ld.loader_id,
            config_code=ld.config_code,
            prod_buckets=ld.prod_buckets,
            dev_buckets=ld.dev_buckets,
            factor=factors[ld.config_code],
            prod_tonnes_predicted=ld.prod_buckets * factors[ld.config_code],
            dev_tonnes_predicted=ld.dev_buckets * factors[ld.config_code],
        )
        for ld in sorted(loaders, key=lambda x: x.loader_id)
    ]
    result = BucketFactorSolveResult(
        loaders=loader_rows,
        configs=config_rows,
        reconciled=reconciled,
        predicted_prod=math.fsum(r.prod_tonnes_predicted for r in config_rows),
        predicted_dev=math.fsum(r.dev_tonnes_predicted for r in config_rows),
        method=method,
        underdetermined=problem.underdetermined,
        warning=warning,
    )
    logger.info(
        "Solved %d bucket factors (%d locked) via %s: residual prod=%.6g dev=%.6g",
        len(codes),
        len(locked),
        method,
        result.residual_prod,
        result.residual_dev,
    )
    return result
