"""Equality-constrained least squares.

Minimizes sum((f_c - e_c)^2) subject to A f = b. The Lagrange conditions give
the closed form

    f = e + A^T (A A^T)^+ (b - A e)

using the pseudo-inverse so rank-deficient systems (one config, or configs
with proportional bucket columns) still have the minimum-norm answer. Factors
are then clipped to their bounds, the equalities re-solved once over the
configs that did not clip, and the result clipped again.
"""

from __future__ import annotations

import logging

import numpy as np

from shift_core.bucket_factors.strategies.base import FactorProblem, FactorStrategy
from shift_core.exceptions import InfeasibleSolveError

logger = logging.getLogger(__name__)


def _closed_form(A: np.ndarray, b: np.ndarray, e: np.ndarray) -> np.ndarray:
    return e + A.T @ np.linalg.pinv(A @ A.T) @ (b - A @ e)


class EqualityLeastSquares(FactorStrategy):
    """Primary strategy: stay closest to estimates while meeting both targets."""

    name = "equality_least_squares"

    def solve(self, problem: FactorProblem) -> np.ndarray:
        if problem.size == 0:
            return np.zeros(0)
        if problem.underdetermined and not problem.has_estimate.any():
            raise InfeasibleSolveError("under-determined system and no factor estimates to anchor it")

        A, b, e = problem.A, problem.b, problem.estimates
        f = problem.clip(_closed_form(A, b, e))

        free = (f > problem.lo) & (f < problem.hi)
        if (~free).any() and free.any():
            fixed = ~free
            b_free = b - A[:, fixed] @ f[fixed]
            f[free] = _closed_form(A[:, free], b_free, e[free])
            f = problem.clip(f)
            logger.debug("Re-solved %d of %d factors after clipping", int(free.sum()), problem.size)

        if not problem.satisfied(f):
            r = problem.residuals(f)
            raise InfeasibleSolveError(
                f"bounds cannot satisfy both targets (residual prod={r[0]:.6g}, dev={r[1]:.6g})"
            )
        return f
