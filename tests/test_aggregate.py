"""Tests for shift totals aggregation and Loading rollups."""

import random

from shift_core.metrics import (
    ActivityRecord,
    Load,
    aggregate,
    derive,
    merge_totals,
    normalize_loading_rollups,
    totals_to_frame,
)
from shift_core.metrics.types import NO_ACTIVITY, NO_SUB_ACTIVITY


def _loading_records() -> list[ActivityRecord]:
    return [
        ActivityRecord(
            "Loading",
            "Development",
            {"Heading to Truck": 10, "Heading to SP": 4, "Dev SP to Truck": 3, "SP to SP": 2},
        ),
        ActivityRecord(
            "Loading",
            "Production",
            {"Stope to Truck": 20, "Stope to SP": 5, "SPtoTruck": 7, "Stope SP to SP": 1},
        ),
    ]


def test_haulage_with_truck_count() -> None:
    """Weight, distance and TKMs are truck-weighted; production haulage is ore."""
    totals = aggregate([
        ActivityRecord(
            "Hauling",
            "Production",
            {"Trucks": 5, "Weight": 40, "Distance": 2.5, "Tonnes Hauled": 200},
        )
    ])
    metrics = totals["Hauling"]["Production"]
    assert metrics["Trucks"] == 5
    assert metrics["Weight"] == 200
    assert metrics["Distance"] == 12.5
    assert metrics["TKMs"] == 500
    assert metrics["Ore Trucks"] == 5
    assert metrics["Waste Trucks"] == 0
    assert metrics["Ore Tonnes Hauled"] == 200
    assert metrics["Waste Tonnes Hauled"] == 0


def test_haulage_with_loads() -> None:
    """Per-load weights give the truck count and summed weight."""
    totals = aggregate([
        ActivityRecord(
            "Hauling",
            "Development",
            {"Distance": 2, "Material": "Waste"},
            loads=(Load(38), Load(42)),
        )
    ])
    metrics = totals["Hauling"]["Development"]
    assert metrics["Trucks"] == 2
    assert metrics["Weight"] == 80
    assert metrics["Distance"] == 4
    assert metrics["TKMs"] == 160
    assert metrics["Ore Trucks"] == 0
    assert metrics["Waste Trucks"] == 2
    assert "Ore Tonnes Hauled" not in metrics
    assert "Material" not in metrics


def test_haulage_legacy_truck_spelling() -> None:
    """'No of Trucks' counts as Trucks."""
    totals = aggregate([
        ActivityRecord("Hauling", "Development", {"No of Trucks": 3, "Weight": 10, "Material": "Ore"}),
    ])
    metrics = totals["Hauling"]["Development"]
    assert metrics["Trucks"] == 3
    assert metrics["Weight"] == 30
    assert metrics["Ore Trucks"] == 3


def test_development_drill_metres() -> None:
    """Ground support and face drilling metres are derived per record."""
    totals = aggregate([
        ActivityRecord("Development", "Ground Support", {"No. of Bolts": 30, "Bolt Length": "4m"}),
        ActivityRecord("Development", "Face Drilling", {"No of Holes": 40, "Cut Length": 4}),
    ])
    assert totals["Development"]["Ground Support"]["GS Drillm"] == 120
    assert totals["Development"]["Ground Support"]["No. of Bolts"] == 30
    assert totals["Development"]["Ground Support"]["Bolt Length"] == 4
    assert totals["Development"]["Face Drilling"]["Dev Drillm"] == 160


def test_derived_metric_replaces_case_variant_raw_key() -> None:
    """A raw field spelled like a derived metric in another case is not added to it."""
    totals = aggregate([
        ActivityRecord("Hauling", "Production", {"Trucks": 2, "Weight": 10, "Distance": 3, "tkms": 60}),
        ActivityRecord("Development", "Face Drilling", {"No of Holes": 10, "Cut Length": 4, "dev drillm": 99}),
    ])
    assert totals["Hauling"]["Production"]["TKMs"] == 60
    assert "tkms" not in totals["Hauling"]["Production"]
    assert totals["Development"]["Face Drilling"]["Dev Drillm"] == 40
    assert "dev drillm" not in totals["Development"]["Face Drilling"]


def test_derive_without_rule_is_empty() -> None:
    """Activities without registered rules derive nothing."""
    assert derive("Charging", "Production", {"Holes": 12}) == {}


def test_loading_rollups() -> None:
    """Each Loading sub-activity gets its class's buckets and All sums them."""
    totals = aggregate(_loading_records())
    loading = totals["Loading"]
    assert loading["Development"]["Primary Dev Buckets"] == 14
    assert loading["Development"]["Rehandle Dev Buckets"] == 5
    assert loading["Production"]["Primary Stope Buckets"] == 25
    assert loading["Production"]["Rehandle Stope Buckets"] == 8
    assert loading["All"] == {
        "Primary Dev Buckets": 14,
        "Rehandle Dev Buckets": 5,
        "Primary Stope Buckets": 25,
        "Rehandle Stope Buckets": 8,
    }


def test_loading_prefixed_field_beats_legacy() -> None:
    """A record with both 'Dev SP to Truck' and 'SP to Truck' counts the prefixed one."""
    totals = aggregate([
        ActivityRecord("Loading", "Development", {"Dev SP to Truck": 3, "SP to Truck": 100}),
    ])
    assert totals["Loading"]["Development"]["Rehandle Dev Buckets"] == 3
    assert "SP to Truck" not in totals["Loading"]["Development"]


def test_loading_without_sub_activity_is_development() -> None:
    """A Loading record with a blank sub-activity is a Development load."""
    totals = aggregate([ActivityRecord("Loading", "", {"Heading to Truck": 6})])
    assert totals["Loading"]["Development"]["Primary Dev Buckets"] == 6


def test_blank_names_use_placeholders() -> None:
    """Blank activity and sub-activity names fall back to placeholders."""
    totals = aggregate([ActivityRecord("", "", {"Holes": 2})])
    assert totals[NO_ACTIVITY][NO_SUB_ACTIVITY]["Holes"] == 2


def test_case_variants_merge() -> None:
    """Activity, sub-activity and metric names differing in case sum together."""
    totals = aggregate([
        ActivityRecord("hauling", "production", {"trucks": 5, "weight": 10}),
        ActivityRecord("Hauling", "Production", {"Trucks": 3, "Weight": 10}),
    ])
    assert list(totals) == ["Hauling"]
    assert list(totals["Hauling"]) == ["Production"]
    assert totals["Hauling"]["Production"]["Trucks"] == 8
    assert totals["Hauling"]["Production"]["Weight"] == 80


def test_payload_dicts_accepted() -> None:
    """Capture payload dicts aggregate like ActivityRecords."""
    totals = aggregate([
        {"activity": "Hauling", "sub": "Production", "values": {"Trucks": 2, "Weight": 30}},
        {"payload_json": {"activity": "Hauling", "subActivity": "Production", "values": {"Trucks": 1, "Weight": 30}}},
        {"activity": "Hauling", "sub_activity": "Production", "values": {}, "loads": [{"weight": 25}, {"weight": 35}]},
    ])
    metrics = totals["Hauling"]["Production"]
    assert metrics["Trucks"] == 5
    assert metrics["Weight"] == 150


def test_record_order_does_not_matter() -> None:
    """Shuffled records aggregate to exactly the same totals."""
    records = [
        ActivityRecord("Hauling", "Production", {"Trucks": 1, "Weight": 0.1, "Tonnes Hauled": 0.1}),
        ActivityRecord("Hauling", "Production", {"Trucks": 1, "Weight": 0.2, "Tonnes Hauled": 0.2}),
        ActivityRecord("Hauling", "Production", {"Trucks": 1, "Weight": 0.3, "Tonnes Hauled": 0.3}),
        ActivityRecord("Charging", "Development", {"kg": 0.1}),
        ActivityRecord("Charging", "Development", {"KG": 0.7}),
        *_loading_records(),
    ]
    expected = aggregate(records)
    rng = random.Random(7)
    for _ in range(10):
        shuffled = list(records)
        rng.shuffle(shuffled)
        assert aggregate(shuffled) == expected


def test_normalize_is_fixed_point_of_aggregate() -> None:
    """Normalizing freshly aggregated totals changes nothing."""
    totals = aggregate(_loading_records())
    assert normalize_loading_rollups(totals) == totals


def test_normalize_repairs_legacy_totals() -> None:
    """Legacy keys and stale rollups normalize to what aggregate() would produce."""
    legacy = {
        "loading": {
            "Development": {
                "Heading to Truck": 10,
                "SP to Truck": 3,
                "Primary Dev Buckets": 99,
                "Primary Stope Buckets": 7,
            },
            "All": {"Primary Dev Buckets": 99},
        },
        "Hauling": {"Production": {"Trucks": 4}},
    }
    fresh = aggregate([ActivityRecord("Loading", "Development", {"Heading to Truck": 10, "SP to Truck": 3})])

    normalized = normalize_loading_rollups(legacy)

    assert normalized["Loading"] == fresh["Loading"]
    assert normalized["Hauling"] == {"Production": {"Trucks": 4}}
    assert "loading" not in normalized
    assert legacy["loading"]["Development"]["Primary Dev Buckets"] == 99


def test_normalize_without_loading_is_unchanged() -> None:
    """Totals without Loading pass through."""
    totals = {"Hauling": {"Production": {"Trucks": 4.0}}}
    assert normalize_loading_rollups(totals) == totals


def test_merge_totals() -> None:
    """merge_totals sums matching metrics across maps."""
    a = {"Hauling": {"Production": {"Trucks": 2}}}
    b = {"Hauling": {"Production": {"Trucks": 3, "Weight": 10}}, "Firing": {"Development": {"Cut Length": 4}}}
    merged = merge_totals(a, b)
    assert merged["Hauling"]["Production"] == {"Trucks": 5, "Weight": 10}
    assert merged["Firing"]["Development"]["Cut Length"] == 4


def test_totals_to_frame() -> None:
    """Totals flatten into a sorted long DataFrame."""
    df = totals_to_frame(aggregate(_loading_records()))
    assert list(df.columns) == ["activity", "sub_activity", "metric", "value"]
    all_rows = df[(df["activity"] == "Loading") & (df["sub_activity"] == "All")]
    assert len(all_rows) == 4
    assert all_rows["value"].sum() == 52

    assert totals_to_frame({}).empty
