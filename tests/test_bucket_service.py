"""Tests for BucketFactorService: bucket counts, month view, solve and save."""

from pathlib import Path

import pytest

from shift_core import DataPaths, ValidationError
from shift_core.bucket_factors import BucketFactorService, assign_loaders, count_loader_buckets
from shift_core.metrics import ActivityRecord
from shift_core.reconciliation import DEVELOPMENT_ORE_KEY, PRODUCTION_ORE_KEY, ReconciliationService
from shift_core.shifts import ShiftStore

SITE = "North"
MONTH = "2025-01"


def _loading(sub: str, equipment: str, material: str = "Ore", **fields) -> ActivityRecord:
    return ActivityRecord("Loading", sub, {"Equipment": equipment, "Material": material, **fields})


def _seed_shifts(shifts: ShiftStore) -> None:
    shifts.finalize(
        SITE,
        "2025-01-05",
        "DS",
        [
            _loading("Production", "LHD01", **{"Stope to Truck": 50, "Stope to SP": 10}),
            _loading("Development", "LHD01", **{"Heading to Truck": 30}),
            _loading("Development", "LHD02", material="Waste", **{"Heading to Truck": 40}),
        ],
        validated=True,
    )
    shifts.finalize(
        SITE,
        "2025-01-06",
        "NS",
        [
            _loading("Production", "LHD01", **{"Stope to Truck": 40}),
            _loading("Development", "LHD01", **{"Heading to SP": 20, "SP to Truck": 99}),
        ],
        validated=True,
    )


def _services(root: Path, reconcile: bool = True) -> tuple[BucketFactorService, ReconciliationService]:
    paths = DataPaths.from_root(root)
    shifts = ShiftStore(paths)
    _seed_shifts(shifts)
    recon = ReconciliationService(paths, shifts=shifts)
    if reconcile:
        recon.upsert(SITE, MONTH, PRODUCTION_ORE_KEY, reconciled_total=1000)
        recon.upsert(SITE, MONTH, DEVELOPMENT_ORE_KEY, reconciled_total=500)
    return BucketFactorService(paths, shifts=shifts, reconciliations=recon.store), recon


def test_count_loader_buckets(tmp_path: Path) -> None:
    """Primary ore buckets are summed per loader; waste loads are skipped."""
    paths = DataPaths.from_root(tmp_path)
    shifts = ShiftStore(paths)
    _seed_shifts(shifts)

    counts = count_loader_buckets(shifts.shifts_for_month(SITE, MONTH))

    assert counts == {"LHD01": (100.0, 50.0)}


def test_unvalidated_shifts_need_captured_all(tmp_path: Path) -> None:
    """Unvalidated shifts only count on the captured_all basis."""
    paths = DataPaths.from_root(tmp_path)
    shifts = ShiftStore(paths)
    shifts.finalize(SITE, "2025-01-07", "DS", [_loading("Production", "LHD03", **{"Stope to Truck": 5})])

    month = shifts.shifts_for_month(SITE, MONTH)
    assert count_loader_buckets(month) == {}
    assert count_loader_buckets(month, basis="captured_all") == {"LHD03": (5.0, 0.0)}


def test_assign_loaders_defaults_to_own_config() -> None:
    """A loader without an assignment is its own config."""
    loaders = assign_loaders({"L1": (1.0, 2.0), "L2": (3.0, 0.0)}, {"L2": "CAT-R1700"})
    assert [(ld.loader_id, ld.config_code) for ld in loaders] == [("L1", "L1"), ("L2", "CAT-R1700")]


def test_month_view(tmp_path: Path) -> None:
    """The month view shows loaders, default configs and reconciled tonnes."""
    service, _ = _services(tmp_path)

    view = service.month_view(SITE, MONTH)

    assert [ld.loader_id for ld in view.loaders] == ["LHD01"]
    assert view.assignment == {"LHD01": "LHD01"}
    assert view.reconciled is not None
    assert (view.reconciled.prod, view.reconciled.dev) == (1000, 500)
    assert view.saved == []
    assert view.to_dict()["configs"]["LHD01"]["lock"] is False


def test_solve_preview_does_not_save(tmp_path: Path) -> None:
    """A preview solve returns factors and writes nothing."""
    service, _ = _services(tmp_path)

    result = service.solve(SITE, MONTH)

    assert result.factor_for("LHD01") == pytest.approx(10.0)
    assert not result.saved
    assert not (tmp_path / "bucket_factors" / "north.json").exists()


def test_solve_and_save(tmp_path: Path) -> None:
    """Saving stores configs, the assignment and the factors together."""
    service, _ = _services(tmp_path)

    result = service.solve(
        SITE,
        MONTH,
        assignments={"LHD01": "R1600"},
        configs={"R1600": {"estimate": 9.5, "max": 12}},
        save=True,
    )

    assert result.saved
    assert result.factor_for("R1600") == pytest.approx(10.0)

    doc = service.store.site(SITE)
    assert doc.assignment(MONTH) == {"LHD01": "R1600"}
    assert doc.configs()["R1600"].estimate_factor == 9.5
    assert doc.configs()["R1600"].max_factor == 12
    saved = doc.factors(MONTH)
    assert saved is not None
    assert saved["method"] == "equality_least_squares"
    assert saved["loaders"][0]["factor"] == pytest.approx(10.0)

    view = service.month_view(SITE, MONTH)
    assert view.assignment == {"LHD01": "R1600"}
    assert view.saved[0]["loader_id"] == "LHD01"


def test_solve_merges_request_over_stored_config(tmp_path: Path) -> None:
    """Unset request fields come from the stored config; lock comes from the request."""
    service, _ = _services(tmp_path)
    service.solve(SITE, MONTH, configs={"LHD01": {"estimate": 8, "min": 2}}, save=True)

    result = service.solve(SITE, MONTH, configs={"LHD01": {"lock": True}})

    assert result.method == "locked"
    assert result.factor_for("LHD01") == 8.0
    assert result.configs[0].min_factor == 2.0


def test_solve_requires_reconciled_tonnes(tmp_path: Path) -> None:
    """Without both reconciled streams the solve is rejected."""
    service, recon = _services(tmp_path, reconcile=False)
    recon.upsert(SITE, MONTH, PRODUCTION_ORE_KEY, reconciled_total=1000)

    with pytest.raises(ValidationError, match="missing reconciled ore tonnes"):
        service.solve(SITE, MONTH)


def test_solve_captured_all_reconciliation_is_used(tmp_path: Path) -> None:
    """A captured_all reconciliation stands in for a missing validated_only one."""
    service, recon = _services(tmp_path, reconcile=False)
    recon.upsert(SITE, MONTH, PRODUCTION_ORE_KEY, basis="captured_all", reconciled_total=2000)
    recon.upsert(SITE, MONTH, DEVELOPMENT_ORE_KEY, basis="captured_all", reconciled_total=1000)

    result = service.solve(SITE, MONTH)
    assert result.factor_for("LHD01") == pytest.approx(20.0)


def test_solve_without_loaders(tmp_path: Path) -> None:
    """A reconciled month without loading buckets cannot be solved."""
    paths = DataPaths.from_root(tmp_path)
    shifts = ShiftStore(paths)
    shifts.finalize("South", "2025-01-05", "DS", [ActivityRecord("Hauling", "Production", {"Trucks": 2})], validated=True)
    recon = ReconciliationService(paths, shifts=shifts)
    recon.upsert("South", MONTH, PRODUCTION_ORE_KEY, reconciled_total=1000)
    recon.upsert("South", MONTH, DEVELOPMENT_ORE_KEY, reconciled_total=500)
    service = BucketFactorService(paths, shifts=shifts, reconciliations=recon.store)

    with pytest.raises(ValidationError, match="no loading buckets"):
        service.solve("South", MONTH)


@pytest.mark.parametrize(
    "kwargs, message",
    [
        ({"month_ym": "2025-1"}, "month_ym"),
        ({"configs": {"C1": 5}}, "expected an object"),
        ({"configs": {"C1": {"min": "x"}}}, "min"),
    ],
)
def test_solve_validation(tmp_path: Path, kwargs: dict, message: str) -> None:
    """Malformed requests raise ValidationError."""
    service, _ = _services(tmp_path)
    request = {"site": SITE, "month_ym": MONTH}
    request.update(kwargs)
    with pytest.raises(ValidationError, match=message):
        service.solve(**request)
