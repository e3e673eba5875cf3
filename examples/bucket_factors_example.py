"""Example: back-solve loader bucket factors for a month.

Run monthly_reconciliation.py first or reconcile both ore streams yourself;
the solver needs reconciled production and development ore tonnes.
"""

from pathlib import Path

from shift_core import DataPaths
from shift_core.bucket_factors import BucketFactorService
from shift_core.reconciliation import DEVELOPMENT_ORE_KEY, PRODUCTION_ORE_KEY, ReconciliationService
from shift_core.shifts import ShiftStore

# Setup
paths = DataPaths.from_root(Path("data"))
shifts = ShiftStore(paths)
site = "North"
month = "2025-01"

shifts.finalize(
    site,
    "2025-01-12",
    "NS",
    [
        {"activity": "Loading", "sub": "Production", "values": {"Equipment": "LHD01", "Stope to Truck": 90, "Stope to SP": 10}},
        {"activity": "Loading", "sub": "Development", "values": {"Equipment": "LHD02", "Heading to Truck": 50}},
    ],
    validated=True,
)

recon = ReconciliationService(paths, shifts=shifts)
recon.upsert(site, month, PRODUCTION_ORE_KEY, reconciled_total=1000)
recon.upsert(site, month, DEVELOPMENT_ORE_KEY, reconciled_total=450)

service = BucketFactorService(paths, shifts=shifts, reconciliations=recon.store)

# Example 1: Inputs for the month
print("Example 1: Month view")
print("-" * 60)
view = service.month_view(site, month)
for loader in view.loaders:
    print(f"{loader.loader_id}: prod={loader.prod_buckets} dev={loader.dev_buckets}")
print(f"Reconciled: {view.reconciled}\n")

# Example 2: Preview with estimates and bounds
print("Example 2: Preview solve")
print("-" * 60)
result = service.solve(
    site,
    month,
    configs={"LHD01": {"estimate": 9.5, "max": 12}, "LHD02": {"estimate": 9.0}},
)
for cfg in result.configs:
    print(f"{cfg.config_code}: factor={cfg.factor:.3f}")
print(f"Residuals: prod={result.residual_prod:.6f} dev={result.residual_dev:.6f}\n")

# Example 3: Save
print("Example 3: Save")
print("-" * 60)
result = service.solve(site, month, configs={"LHD01": {"estimate": 9.5}}, save=True)
print(f"Saved: {result.saved} via {result.method}")
