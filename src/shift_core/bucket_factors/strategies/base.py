"""Base interface for bucket-factor solve strategies.

A strategy solves the free (unlocked) configurations of a FactorProblem: two
equality constraints, one per tonnage stream, over one factor per config,
within box bounds.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

import numpy as np

from shift_core.config import SOLVER_TOLERANCE


@dataclass
class FactorProblem:
    """The reduced system for free configurations.

    Attributes:
        codes: Free config codes, one per column.
        A: 2 x m matrix; row 0 is production buckets, row 1 development buckets.
        b: Targets (prod, dev) with locked contributions already subtracted.
        estimates: Per-config estimate, 0 where none was given.
        has_estimate: True where an estimate was given.
        lo: Lower bounds (>= 0).
        hi: Upper bounds (inf where unbounded).
        tolerance: Relative tolerance for the equalities.
    """

    codes: list[str]
    A: np.ndarray
    b: np.ndarray
    estimates: np.ndarray
    has_estimate: np.ndarray
    lo: np.ndarray
    hi: np.ndarray
    tolerance: float = SOLVER_TOLERANCE

    @property
    def size(self) -> int:
        return len(self.codes)

    @property
    def underdetermined(self) -> bool:
        """More free factors than independent equations."""
        if self.size == 0:
            return False
        return int(np.linalg.matrix_rank(self.A)) < self.size

    def clip(self, f: np.ndarray) -> np.ndarray:
        return np.minimum(np.maximum(f, self.lo), self.hi)

    def residuals(self, f: np.ndarray) -> np.ndarray:
        return self.A @ f - self.b

    def satisfied(self, f: np.ndarray) -> bool:
        scale = np.maximum(1.0, np.abs(self.b))
        return bool(np.all(np.abs(self.residuals(f)) <= self.tolerance * scale))


class FactorStrategy(ABC):
    """Abstract base class for bucket-factor strategies.

    Strategies return one factor per free config, inside the bounds.
    """

    name: str = "base"

    @abstractmethod
    def solve(self, problem: FactorProblem) -> np.ndarray:
        """Solve the free factors.

        Args:
            problem: Reduced system over the free configs.

        Returns:
            Array of factors, aligned with problem.codes.

        Raises:
            InfeasibleSolveError: If the strategy cannot produce an answer
                that satisfies its own acceptance criteria.
        """
        pass
