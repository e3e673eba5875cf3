"""Finalized shift documents.

A shift is finalized once: its activity records are aggregated, the Loading
rollups normalized, and the snapshot written as one JSON document under
data_root/shifts/<site>/<shift_id>.json.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Iterable, Mapping

from shift_core.config import DataPaths
from shift_core.exceptions import NotFoundError, StorageError, ValidationError
from shift_core.metrics import ActivityRecord, aggregate, normalize_loading_rollups
from shift_core.storage import JsonDocumentStore
from shift_core.utils import month_of, parse_date, parse_month, slugify

logger = logging.getLogger(__name__)

SHIFT_CODES = ("DS", "NS")


@dataclass
class ShiftSnapshot:
    """A finalized shift.

    Attributes:
        shift_id: Unique id within the site (default "<date>-<shift>").
        site: Site name.
        date: Calendar day of the shift.
        shift: "DS" (day shift) or "NS" (night shift).
        validated: True once an administrator approved the shift.
        activities: The captured activity records.
        totals: Aggregated ActivityTotals. Kept as stored; readers validate it.
        finalized_at: ISO timestamp of finalization.
    """

    shift_id: str
    site: str
    date: date
    shift: str
    validated: bool = False
    activities: list[ActivityRecord] = field(default_factory=list)
    totals: Any = field(default_factory=dict)
    finalized_at: str = ""

    def to_dict(self) -> dict:
        return {
            "shift_id": self.shift_id,
            "site": self.site,
            "date": self.date.isoformat(),
            "shift": self.shift,
            "validated": self.validated,
            "activities": [a.to_dict() for a in self.activities],
            "totals": self.totals,
            "finalized_at": self.finalized_at,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ShiftSnapshot:
        """Create a snapshot from a stored document.

        Raises:
            KeyError, ValueError: If identity fields are missing or malformed.
        """
        activities = data.get("activities") or []
        return cls(
            shift_id=str(data["shift_id"]),
            site=str(data["site"]),
            date=parse_date(data["date"]),
            shift=str(data.get("shift", "")),
            validated=bool(data.get("validated", False)),
            activities=[ActivityRecord.from_payload(a) for a in activities if isinstance(a, Mapping)],
            totals=data.get("totals"),
            finalized_at=str(data.get("finalized_at", "")),
        )


class ShiftStore:
    """Reads and writes finalized shift documents for all sites."""

    def __init__(self, paths: DataPaths) -> None:
        self.paths = paths
        self.docs = JsonDocumentStore(paths.shifts)

    @staticmethod
    def _relpath(site: str, shift_id: str) -> str:
        return f"{slugify(site)}/{slugify(shift_id)}.json"

    def finalize(
        self,
        site: str,
        day: str | date,
        shift: str,
        records: Iterable[ActivityRecord | Mapping[str, Any]],
        validated: bool = False,
        shift_id: str | None = None,
    ) -> ShiftSnapshot:
        """Aggregate a shift's records and persist the finalized snapshot.

        Args:
            site: Site name.
            day: Shift date (YYYY-MM-DD or date).
            shift: "DS" or "NS".
            records: Activity records or capture payloads.
            validated: Initial validation flag.
            shift_id: Optional id; defaults to "<date>-<shift>".

        Returns:
            The stored ShiftSnapshot.

        Raises:
            ValidationError: If site, date or shift code are invalid.
        """
        if not str(site or "").strip():
            raise ValidationError("missing site")
        try:
            d = parse_date(day)
        except ValueError as e:
            raise ValidationError(f"invalid date '{day}'") from e
        code = str(shift or "").strip().upper()
        if code not in SHIFT_CODES:
            raise ValidationError(f"invalid shift '{shift}'. Expected one of {SHIFT_CODES}")

        activities = [r if isinstance(r, ActivityRecord) else ActivityRecord.from_payload(r) for r in records]
        totals = normalize_loading_rollups(aggregate(activities))
        snapshot = ShiftSnapshot(
            shift_id=shift_id or f"{d.isoformat()}-{code}",
            site=site.strip(),
            date=d,
            shift=code,
            validated=validated,
            activities=activities,
            totals=totals,
            finalized_at=datetime.now(timezone.utc).isoformat(),
        )
        self.docs.write(self._relpath(snapshot.site, snapshot.shift_id), snapshot.to_dict())
        logger.info(
            "Finalized shift %s for %s (%d activities)", snapshot.shift_id, snapshot.site, len(activities)
        )
        return snapshot

    def get(self, site: str, shift_id: str) -> ShiftSnapshot:
        """Load one shift.

        Raises:
            NotFoundError: If the shift does not exist.
        """
        relpath = self._relpath(site, shift_id)
        if not self.docs.exists(relpath):
            raise NotFoundError(f"shift not found: {site} {shift_id}")
        return ShiftSnapshot.from_dict(self.docs.read(relpath))

    def set_validated(self, site: str, shift_id: str, validated: bool = True) -> ShiftSnapshot:
        """Set the validated flag of a finalized shift."""
        relpath = self._relpath(site, shift_id)
        if not self.docs.exists(relpath):
            raise NotFoundError(f"shift not found: {site} {shift_id}")
        with self.docs.transaction(relpath) as doc:
            doc["validated"] = bool(validated)
            snapshot = ShiftSnapshot.from_dict(doc)
        logger.info("Shift %s for %s validated=%s", shift_id, site, validated)
        return snapshot

    def shifts_for_month(self, site: str, month_ym: str) -> list[ShiftSnapshot]:
        """All finalized shifts of a site whose date falls in month_ym.

        Documents that cannot be read or lack identity fields are logged and
        skipped. Totals are returned as stored, unvalidated.
        """
        parse_month(month_ym)
        out: list[ShiftSnapshot] = []
        for relpath in self.docs.list_documents(slugify(site)):
            try:
                snapshot = ShiftSnapshot.from_dict(self.docs.read(relpath))
            except (StorageError, KeyError, ValueError, TypeError) as e:
                logger.warning("Skipping unreadable shift document %s: %s", relpath, e)
                continue
            if month_of(snapshot.date) == month_ym:
                out.append(snapshot)
        out.sort(key=lambda s: (s.date, s.shift, s.shift_id))
        return out
