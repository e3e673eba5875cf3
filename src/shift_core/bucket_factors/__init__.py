"""Loader bucket-factor solver.

Back-solves tonnes-per-bucket factors per loader configuration from the
month's bucket counts and reconciled production/development ore tonnes.

Example:
    >>> from shift_core.bucket_factors import LoaderBuckets, ReconciledTonnes, solve_bucket_factors
    >>> result = solve_bucket_factors(
    ...     [LoaderBuckets("LHD01", "LHD01", 100, 50)],
    ...     configs={},
    ...     reconciled=ReconciledTonnes(prod=1000, dev=500),
    ... )
    >>> round(result.loaders[0].factor, 6)
    10.0
"""

from shift_core.bucket_factors.api import BucketFactorService
from shift_core.bucket_factors.buckets import assign_loaders, count_loader_buckets
from shift_core.bucket_factors.solver import solve_bucket_factors
from shift_core.bucket_factors.store import BucketFactorStore
from shift_core.bucket_factors.types import (
    BucketFactorSolveResult,
    BucketMonthView,
    ConfigFactor,
    LoaderBucketConfig,
    LoaderBuckets,
    LoaderFactor,
    ReconciledTonnes,
)

__all__ = [
    "BucketFactorService",
    "BucketFactorSolveResult",
    "BucketFactorStore",
    "BucketMonthView",
    "ConfigFactor",
    "LoaderBucketConfig",
    "LoaderBuckets",
    "LoaderFactor",
    "ReconciledTonnes",
    "assign_loaders",
    "count_loader_buckets",
    "solve_bucket_factors",
]
