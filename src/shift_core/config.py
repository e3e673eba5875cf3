"""Unified configuration for shift-core.

This module provides the filesystem layout used by the document stores and
the numeric tolerances shared by reconciliation and the bucket-factor solver.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

# Allocations plus daily actuals must reproduce the reconciled total within this.
ALLOCATION_TOLERANCE = 1e-6

# Relative tolerance for the bucket-factor equality constraints.
SOLVER_TOLERANCE = 1e-6

DEFAULT_BASIS = "validated_only"
DEFAULT_METHOD = "spread_daily"


@dataclass
class DataPaths:
    """All filesystem paths used by the shift-core stores.

    Attributes:
        data_root: Root directory for all stored documents.

    Directory Structure:
        data_root/
        ├── shifts/            # one JSON document per finalized shift
        │   └── <site>/
        ├── reconciliations/   # one JSON document per site and month
        │   └── <site>/
        └── bucket_factors/    # one JSON document per site
    """

    data_root: Path

    @classmethod
    def from_root(cls, data_root: str | Path) -> DataPaths:
        """Create DataPaths from a root directory.

        Args:
            data_root: Root directory for stored documents.

        Returns:
            DataPaths instance.

        Examples:
            >>> paths = DataPaths.from_root("data")
            >>> paths.shifts
            PosixPath('data/shifts')
        """
        if isinstance(data_root, str):
            data_root = Path(data_root)
        return cls(data_root=data_root)

    @property
    def shifts(self) -> Path:
        """Finalized shift documents (activities + totals)."""
        return self.data_root / "shifts"

    @property
    def reconciliations(self) -> Path:
        """Reconciliation records and their day allocations."""
        return self.data_root / "reconciliations"

    @property
    def bucket_factors(self) -> Path:
        """Bucket config definitions, loader assignments and solved factors."""
        return self.data_root / "bucket_factors"

    def ensure_dirs(self) -> None:
        """Create all directories in the data structure."""
        for path in [self.shifts, self.reconciliations, self.bucket_factors]:
            path.mkdir(parents=True, exist_ok=True)
