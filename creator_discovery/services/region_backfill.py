"""Ingestion-time region classification for stored creator rows."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional, Protocol

from creator_discovery.core.backend import QueryBackend
from creator_discovery.core.location import DeterministicLocationClassifier
from creator_discovery.core.query import CreatorQueryExecutor
from creator_discovery.models.creator import REGIONS, ParsedLocation

logger = logging.getLogger(__name__)


class LocationClassifier(Protocol):
    def classify(self, raw: Optional[str]) -> ParsedLocation:
        ...


@dataclass
class BackfillReport:
    scanned: int = 0
    updated: int = 0
    skipped: int = 0


class RegionBackfillService:
    """Walk the creator table by id and write ``location_region`` for each row."""

    def __init__(
        self,
        backend: QueryBackend,
        classifier: Optional[LocationClassifier] = None,
        *,
        table: str = "creatordata",
        executor: Optional[CreatorQueryExecutor] = None,
    ) -> None:
        self.backend = backend
        self.classifier = classifier or DeterministicLocationClassifier()
        self.table = table
        # Reads and writes share the executor's retry budget.
        self.executor = executor or CreatorQueryExecutor(backend, table=table)

    def _needs_update(self, row: dict, only_missing: bool) -> bool:
        if not only_missing:
            return True
        current = row.get("location_region")
        return not current or current not in REGIONS

    def _process(self, row: dict, only_missing: bool, dry_run: bool, report: BackfillReport) -> None:
        report.scanned += 1
        row_id: Any = row.get("id")
        if row_id is None or not self._needs_update(row, only_missing):
            report.skipped += 1
            return

        parsed = self.classifier.classify(row.get("location"))
        if row.get("location_region") == parsed.region:
            report.skipped += 1
            return

        if not dry_run:
            self.executor.update_row(row_id, {"location_region": parsed.region})
        logger.info("Row %s: %r -> %s", row_id, row.get("location"), parsed.region)
        report.updated += 1

    def run(self, only_missing: bool = True, batch_size: int = 500, dry_run: bool = False) -> BackfillReport:
        """
        Classify every row's location and persist the region.

        Rows are read in id order, ``batch_size`` at a time. With
        ``only_missing`` set, rows that already carry a known region are
        skipped. ``dry_run`` counts changes without writing them. Transient
        backend failures are retried; anything else raises ``FetchError``.
        """
        report = BackfillReport()
        for rows in self.executor.iter_batches([], columns="id,location,location_region", batch_size=batch_size):
            for row in rows:
                self._process(row, only_missing, dry_run, report)

        logger.info(
            "Region backfill finished: scanned=%s updated=%s skipped=%s",
            report.scanned,
            report.updated,
            report.skipped,
        )
        return report
