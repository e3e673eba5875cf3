"""Command-line entry point for shift-core.

Usage examples:
    shift-core --data-root data finalize --site North --date 2025-01-05 --shift DS --records ds.json
    shift-core --data-root data summary --site North --month 2025-01 --metric hauling|ore_tonnes_hauled
    shift-core --data-root data upsert --site North --month 2025-01 \\
        --metric hauling|ore_tonnes_hauled --total 12000 --method spread_daily
    shift-core --data-root data lock --site North --month 2025-01 --metric hauling|ore_tonnes_hauled
    shift-core --data-root data bucket-solve --site North --month 2025-01 --configs configs.json --save

Every command prints its result as JSON.
"""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path

from shift_core.bucket_factors import BucketFactorService
from shift_core.config import DEFAULT_BASIS, DEFAULT_METHOD, DataPaths
from shift_core.exceptions import ShiftCoreError
from shift_core.reconciliation import Basis, Method, ReconciliationService
from shift_core.shifts import SHIFT_CODES, ShiftStore


def _load_json(path: str | None) -> dict | list | None:
    if not path:
        return None
    p = Path(path)
    if not p.exists():
        raise SystemExit(f"ERROR: File not found: {p}")
    with open(p, encoding="utf-8") as f:
        return json.load(f)


def _add_month_args(p: argparse.ArgumentParser, metric: bool = True, basis: bool = True) -> None:
    p.add_argument("--site", required=True, help="Site name.")
    p.add_argument("--month", required=True, help="Month in YYYY-MM format.")
    if metric:
        p.add_argument("--metric", required=True, help="Metric key, e.g. hauling|ore_tonnes_hauled.")
    if basis:
        p.add_argument(
            "--basis",
            default=DEFAULT_BASIS,
            choices=[b.value for b in Basis],
            help=f"Which shifts count towards actuals (default: {DEFAULT_BASIS}).",
        )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Shift metrics, monthly reconciliation and bucket factors.")
    parser.add_argument(
        "--data-root",
        type=str,
        default="data",
        help="Root directory for stored documents (default: ./data)",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging (DEBUG level).",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("finalize", help="Aggregate and store a shift from a JSON list of activity records.")
    p.add_argument("--site", required=True)
    p.add_argument("--date", required=True, help="Shift date (YYYY-MM-DD).")
    p.add_argument("--shift", required=True, choices=list(SHIFT_CODES))
    p.add_argument("--records", required=True, help="JSON file with a list of activity records.")
    p.add_argument("--validated", action="store_true", help="Mark the shift as validated.")

    p = sub.add_parser("validate", help="Mark a finalized shift as validated.")
    p.add_argument("--site", required=True)
    p.add_argument("--shift-id", required=True)

    p = sub.add_parser("summary", help="Month summary for a metric.")
    _add_month_args(p)

    p = sub.add_parser("upsert", help="Create or update a reconciliation.")
    _add_month_args(p)
    p.add_argument("--total", required=True, help="Reconciled monthly total.")
    p.add_argument("--method", default=DEFAULT_METHOD, choices=[m.value for m in Method])
    p.add_argument("--notes", default=None)

    for name, text in (
        ("recalculate", "Regenerate allocations from the latest actuals."),
        ("lock", "Lock a reconciliation."),
        ("unlock", "Unlock a reconciliation."),
    ):
        p = sub.add_parser(name, help=text)
        _add_month_args(p)

    p = sub.add_parser("status", help="Reconciliation state of a month.")
    _add_month_args(p, metric=False, basis=False)

    sub.add_parser("metrics", help="List registered reconciliation metrics.")

    p = sub.add_parser("bucket-month", help="Bucket-factor inputs and saved factors for a month.")
    _add_month_args(p, metric=False)

    p = sub.add_parser("bucket-solve", help="Solve bucket factors for a month.")
    _add_month_args(p, metric=False)
    p.add_argument("--assignments", help="JSON file: {loader_id: config_code}.")
    p.add_argument("--configs", help="JSON file: {config_code: {estimate, min, max, lock}}.")
    p.add_argument("--save", action="store_true", help="Persist configs, assignment and factors.")
    return parser


def run(args: argparse.Namespace) -> dict | list:
    """Execute a parsed command and return its JSON-serializable result."""
    paths = DataPaths.from_root(args.data_root)
    paths.ensure_dirs()
    shifts = ShiftStore(paths)
    recon = ReconciliationService(paths, shifts=shifts)

    if args.command == "finalize":
        records = _load_json(args.records) or []
        return shifts.finalize(args.site, args.date, args.shift, records, validated=args.validated).to_dict()
    if args.command == "validate":
        return shifts.set_validated(args.site, args.shift_id, True).to_dict()
    if args.command == "summary":
        return recon.month_summary(args.site, args.month, args.metric, args.basis).to_dict()
    if args.command == "upsert":
        return recon.upsert(
            args.site,
            args.month,
            args.metric,
            basis=args.basis,
            method=args.method,
            reconciled_total=args.total,
            notes=args.notes,
        ).to_dict()
    if args.command == "recalculate":
        return recon.recalculate(args.site, args.month, args.metric, args.basis).to_dict()
    if args.command == "lock":
        return recon.lock(args.site, args.month, args.metric, args.basis).to_dict()
    if args.command == "unlock":
        return recon.unlock(args.site, args.month, args.metric, args.basis).to_dict()
    if args.command == "status":
        return {"site": args.site, "month_ym": args.month, "status": recon.month_status(args.site, args.month).value}
    if args.command == "metrics":
        return recon.list_metrics()

    buckets = BucketFactorService(paths, shifts=shifts, reconciliations=recon.store)
    if args.command == "bucket-month":
        return buckets.month_view(args.site, args.month, args.basis).to_dict()
    if args.command == "bucket-solve":
        return buckets.solve(
            args.site,
            args.month,
            assignments=_load_json(args.assignments),
            configs=_load_json(args.configs),
            save=args.save,
            basis=args.basis,
        ).to_dict()
    raise SystemExit(f"ERROR: Unknown command {args.command}")


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)

    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(levelname)s: %(message)s",
    )

    try:
        result = run(args)
    except ShiftCoreError as e:
        raise SystemExit(f"ERROR: {e}") from e
    print(json.dumps(result, indent=2, ensure_ascii=False, default=str))


if __name__ == "__main__":
    main()
