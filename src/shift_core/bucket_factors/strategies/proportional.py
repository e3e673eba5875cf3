"""Proportional-split fallback.

One shared factor spreads the combined target over all free buckets:

    f = (b_prod + b_dev) / (sum of free prod buckets + sum of free dev buckets)

so each config receives tonnage in proportion to its total bucket count. The
shared factor is clipped to each config's bounds.
"""

from __future__ import annotations

import numpy as np

from shift_core.bucket_factors.strategies.base import FactorProblem, FactorStrategy


class ProportionalSplit(FactorStrategy):
    name = "proportional_split"

    def solve(self, problem: FactorProblem) -> np.ndarray:
        if problem.size == 0:
            return np.zeros(0)
        buckets = float(problem.A.sum())
        shared = float(problem.b.sum()) / buckets if buckets > 0 else 0.0
        return problem.clip(np.full(problem.size, max(shared, 0.0)))
