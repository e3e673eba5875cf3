"""Types for the bucket-factor solver."""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field
from typing import Any, Mapping

from shift_core.exceptions import ValidationError


def _optional_number(data: Mapping[str, Any], *names: str) -> float | None:
    for name in names:
        value = data.get(name)
        if value is None or value == "":
            continue
        if isinstance(value, bool):
            raise ValidationError(f"{name} must be a number, got {value!r}")
        try:
            num = float(value)
        except (TypeError, ValueError) as e:
            raise ValidationError(f"{name} must be a number, got {value!r}") from e
        if math.isnan(num):
            raise ValidationError(f"{name} must be a number, got {value!r}")
        return num
    return None


def _flag(data: Mapping[str, Any], name: str) -> bool:
    value = data.get(name)
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    raise ValidationError(f"{name} must be true or false, got {value!r}")


@dataclass(frozen=True)
class LoaderBucketConfig:
    """A class of loading equipment sharing one tonnes-per-bucket factor.

    Attributes:
        config_code: Configuration identifier.
        estimate_factor: Expected factor; the solver stays as close to it as
            the constraints allow.
        min_factor: Lower bound (negative values are raised to 0).
        max_factor: Upper bound, or None for unbounded.
        lock: Fix the factor at estimate_factor.
    """

    config_code: str
    estimate_factor: float | None = None
    min_factor: float | None = None
    max_factor: float | None = None
    lock: bool = False

    @classmethod
    def from_dict(cls, config_code: str, data: Mapping[str, Any] | None) -> LoaderBucketConfig:
        """Build a config from request/stored data.

        Accepts "estimate_factor"/"estimate", "min_factor"/"min" and
        "max_factor"/"max".
        """
        d = data or {}
        return cls(
            config_code=str(config_code),
            estimate_factor=_optional_number(d, "estimate_factor", "estimate"),
            min_factor=_optional_number(d, "min_factor", "min"),
            max_factor=_optional_number(d, "max_factor", "max"),
            lock=_flag(d, "lock"),
        )

    def merged_over(self, base: LoaderBucketConfig | None) -> LoaderBucketConfig:
        """This config with unset bounds and estimate filled from a stored definition."""
        if base is None:
            return self
        return LoaderBucketConfig(
            config_code=self.config_code,
            estimate_factor=self.estimate_factor if self.estimate_factor is not None else base.estimate_factor,
            min_factor=self.min_factor if self.min_factor is not None else base.min_factor,
            max_factor=self.max_factor if self.max_factor is not None else base.max_factor,
            lock=self.lock,
        )

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class LoaderBuckets:
    """Primary bucket counts of one loader for a month."""

    loader_id: str
    config_code: str
    prod_buckets: float
    dev_buckets: float

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class ReconciledTonnes:
    prod: float
    dev: float

    def to_dict(self) -> dict:
        return {"prod": self.prod, "dev": self.dev}


@dataclass(frozen=True)
class LoaderFactor:
    loader_id: str
    config_code: str
    prod_buckets: float
    dev_buckets: float
    factor: float
    prod_tonnes_predicted: float
    dev_tonnes_predicted: float

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class ConfigFactor:
    config_code: str
    prod_buckets: float
    dev_buckets: float
    factor: float
    min_factor: float
    max_factor: float | None
    estimate_factor: float | None
    locked: bool
    prod_tonnes_predicted: float
    dev_tonnes_predicted: float

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class BucketFactorSolveResult:
    """Solved factors, predicted tonnes and residuals.

    Residuals are predicted minus reconciled, per stream.
    """

    loaders: list[LoaderFactor]
    configs: list[ConfigFactor]
    reconciled: ReconciledTonnes
    predicted_prod: float
    predicted_dev: float
    method: str
    underdetermined: bool = False
    warning: str | None = None
    saved: bool = False

    @property
    def residual_prod(self) -> float:
        return self.predicted_prod - self.reconciled.prod

    @property
    def residual_dev(self) -> float:
        return self.predicted_dev - self.reconciled.dev

    def factor_for(self, config_code: str) -> float:
        for c in self.configs:
            if c.config_code == config_code:
                return c.factor
        raise KeyError(config_code)

    def to_dict(self) -> dict:
        out = {
            "loaders": [r.to_dict() for r in self.loaders],
            "configs": [c.to_dict() for c in self.configs],
            "reconciled": self.reconciled.to_dict(),
            "predicted": {"prod": self.predicted_prod, "dev": self.predicted_dev},
            "residuals": {"prod": self.residual_prod, "dev": self.residual_dev},
            "method": self.method,
            "underdetermined": self.underdetermined,
            "saved": self.saved,
        }
        if self.warning:
            out["notes"] = {"warning": self.warning}
        return out


@dataclass
class BucketMonthView:
    """Inputs and saved state of a site's bucket factors for one month."""

    site: str
    month_ym: str
    loaders: list[LoaderBuckets]
    configs: dict[str, LoaderBucketConfig]
    assignment: dict[str, str]
    reconciled: ReconciledTonnes | None
    saved: list[dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "site": self.site,
            "month_ym": self.month_ym,
            "loaders": [r.to_dict() for r in self.loaders],
            "configs": {k: c.to_dict() for k, c in sorted(self.configs.items())},
            "assignment": dict(sorted(self.assignment.items())),
            "saved": self.saved,
            "reconciled": self.reconciled.to_dict() if self.reconciled else None,
        }
