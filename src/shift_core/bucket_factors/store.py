"""Bucket-factor storage.

All bucket-factor state of a site lives in one document so that a save of
config definitions, the month's loader assignment and the solved factors is a
single atomic write:

    bucket_factors/<site>.json
    {
      "site": ...,
      "configs": {config_code: LoaderBucketConfig},
      "assignments": {month_ym: {loader_id: config_code}},
      "factors": {month_ym: {"method": ..., "solved_at": ..., "loaders": [...], "configs": [...]}}
    }
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from shift_core.bucket_factors.types import LoaderBucketConfig
from shift_core.config import DataPaths
from shift_core.storage import JsonDocumentStore
from shift_core.utils import slugify


class SiteDocument:
    """View over a site's bucket-factor document."""

    def __init__(self, doc: dict[str, Any], site: str) -> None:
        self.doc = doc
        doc.setdefault("site", site)
        doc.setdefault("configs", {})
        doc.setdefault("assignments", {})
        doc.setdefault("factors", {})

    def configs(self) -> dict[str, LoaderBucketConfig]:
        return {code: LoaderBucketConfig.from_dict(code, data) for code, data in self.doc["configs"].items()}

    def put_config(self, cfg: LoaderBucketConfig) -> None:
        self.doc["configs"][cfg.config_code] = cfg.to_dict()

    def assignment(self, month_ym: str) -> dict[str, str]:
        return dict(self.doc["assignments"].get(month_ym, {}))

    def set_assignment(self, month_ym: str, assignment: dict[str, str]) -> None:
        self.doc["assignments"][month_ym] = dict(sorted(assignment.items()))

    def factors(self, month_ym: str) -> dict[str, Any] | None:
        return self.doc["factors"].get(month_ym)

    def set_factors(self, month_ym: str, factors: dict[str, Any]) -> None:
        self.doc["factors"][month_ym] = factors


class BucketFactorStore:
    def __init__(self, paths: DataPaths) -> None:
        self.docs = JsonDocumentStore(paths.bucket_factors)

    @staticmethod
    def _relpath(site: str) -> str:
        return f"{slugify(site)}.json"

    def site(self, site: str) -> SiteDocument:
        return SiteDocument(self.docs.read(self._relpath(site)), site)

    @contextmanager
    def transaction(self, site: str) -> Iterator[SiteDocument]:
        with self.docs.transaction(self._relpath(site)) as doc:
            yield SiteDocument(doc, site)
