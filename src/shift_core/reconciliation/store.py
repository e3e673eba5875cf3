"""Reconciliation record storage.

One JSON document per site and month holds every reconciliation record of
that month, each with its allocations:

    reconciliations/<site>/<YYYY-MM>.json
    {"site": ..., "month_ym": ..., "records": [ReconciliationRecord, ...]}
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from shift_core.config import DataPaths
from shift_core.reconciliation.types import Basis, ReconciliationRecord
from shift_core.storage import JsonDocumentStore
from shift_core.utils import slugify


class MonthDocument:
    """Mutable view over a month document inside a transaction."""

    def __init__(self, doc: dict[str, Any], site: str, month_ym: str) -> None:
        self.doc = doc
        doc.setdefault("site", site)
        doc.setdefault("month_ym", month_ym)
        doc.setdefault("records", [])

    def _index(self, metric_key: str, basis: Basis) -> int | None:
        for i, r in enumerate(self.doc["records"]):
            if r.get("metric_key") == metric_key and r.get("basis") == basis.value:
                return i
        return None

    def get(self, metric_key: str, basis: Basis) -> ReconciliationRecord | None:
        i = self._index(metric_key, basis)
        return None if i is None else ReconciliationRecord.from_dict(self.doc["records"][i])

    def put(self, record: ReconciliationRecord) -> None:
        i = self._index(record.metric_key, record.basis)
        if i is None:
            self.doc["records"].append(record.to_dict())
        else:
            self.doc["records"][i] = record.to_dict()

    def records(self) -> list[ReconciliationRecord]:
        return [ReconciliationRecord.from_dict(r) for r in self.doc["records"]]


class ReconciliationStore:
    """Reads and writes per-month reconciliation documents."""

    def __init__(self, paths: DataPaths) -> None:
        self.docs = JsonDocumentStore(paths.reconciliations)

    @staticmethod
    def _relpath(site: str, month_ym: str) -> str:
        return f"{slugify(site)}/{month_ym}.json"

    def month(self, site: str, month_ym: str) -> MonthDocument:
        """Read-only snapshot of a month document."""
        return MonthDocument(self.docs.read(self._relpath(site, month_ym)), site, month_ym)

    def get(self, site: str, month_ym: str, metric_key: str, basis: Basis) -> ReconciliationRecord | None:
        return self.month(site, month_ym).get(metric_key, basis)

    def records(self, site: str, month_ym: str) -> list[ReconciliationRecord]:
        return self.month(site, month_ym).records()

    @contextmanager
    def transaction(self, site: str, month_ym: str) -> Iterator[MonthDocument]:
        """Locked read-modify-write of a month document.

        Changes are written atomically when the block exits cleanly and
        discarded if it raises.
        """
        with self.docs.transaction(self._relpath(site, month_ym)) as doc:
            yield MonthDocument(doc, site, month_ym)
