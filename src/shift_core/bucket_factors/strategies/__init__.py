"""Pluggable bucket-factor solve strategies."""

from shift_core.bucket_factors.strategies.base import FactorProblem, FactorStrategy
from shift_core.bucket_factors.strategies.equality import EqualityLeastSquares
from shift_core.bucket_factors.strategies.proportional import ProportionalSplit

__all__ = ["EqualityLeastSquares", "FactorProblem", "FactorStrategy", "ProportionalSplit"]
