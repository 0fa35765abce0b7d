"""Paginated query executor: one round trip per page, exact count included."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

from tenacity import RetryCallState, Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from creator_discovery.core.backend import QueryBackend, QueryResult, TableQuery
from creator_discovery.core.errors import FetchError, TransientBackendError
from creator_discovery.core.filters import Predicate
from creator_discovery.core.metrics import METRIC_COLUMNS, compute_metrics
from creator_discovery.models.creator import DEFAULT_PAGE_SIZE, CreatorMetrics, NicheOption, SortState

logger = logging.getLogger(__name__)

# Match score is never persisted; the backend orders by this column instead.
MATCH_SCORE_PROXY_COLUMN = "followers_count"

SORT_COLUMNS: Dict[str, str] = {
    "match_score": MATCH_SCORE_PROXY_COLUMN,
    "followers": "followers_count",
    "avg_views": "average_views",
    "engagement": "engagement_rate",
}


@dataclass
class RawPage:
    rows: List[Dict[str, Any]]
    total_count: int
    page: int
    page_size: int = DEFAULT_PAGE_SIZE


def page_bounds(page: int, page_size: int) -> Tuple[int, int]:
    """Inclusive row window for a 1-based page."""
    if page < 1:
        raise ValueError(f"page must be >= 1, got {page}")
    if page_size < 1:
        raise ValueError(f"page_size must be >= 1, got {page_size}")
    return (page - 1) * page_size, page * page_size - 1


def sort_order(sort: Optional[SortState]) -> List[Tuple[str, bool]]:
    if sort is None or sort.field is None:
        order = [(MATCH_SCORE_PROXY_COLUMN, False)]
    else:
        order = [(SORT_COLUMNS[sort.field], sort.direction == "asc")]
    # Tie-breaker keeps page windows deterministic.
    order.append(("id", True))
    return order


def _slug(name: str) -> str:
    return "-".join(name.lower().split())


class CreatorQueryExecutor:
    """Runs compiled predicates against a QueryBackend with bounded retries."""

    def __init__(
        self,
        backend: QueryBackend,
        *,
        table: str = "creatordata",
        max_retries: int = 3,
        retry_delay: float = 0.5,
        retry_max_wait: float = 5.0,
        metrics_batch_size: int = 1000,
    ) -> None:
        self.backend = backend
        self.table = table
        self.max_retries = max(1, max_retries)
        self.retry_delay = retry_delay
        self.retry_max_wait = retry_max_wait
        self.metrics_batch_size = max(1, metrics_batch_size)

    @staticmethod
    def _log_retry(retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        logger.warning("Backend query attempt %s failed, retrying: %s", retry_state.attempt_number, exc)

    def _retrying(self) -> Retrying:
        return Retrying(
            stop=stop_after_attempt(self.max_retries),
            wait=wait_exponential(multiplier=self.retry_delay, max=self.retry_max_wait),
            retry=retry_if_exception_type(TransientBackendError),
            before_sleep=self._log_retry,
            reraise=True,
        )

    def _run(self, query: TableQuery) -> QueryResult:
        try:
            return self._retrying()(self.backend.select, query)
        except Exception as exc:  # pylint: disable=broad-except
            raise FetchError(f"Query on '{query.table}' failed", cause=exc) from exc

    def fetch_page(
        self,
        predicates: Sequence[Predicate],
        sort: Optional[SortState],
        page: int,
        page_size: int = DEFAULT_PAGE_SIZE,
        *,
        max_rows: Optional[int] = None,
    ) -> RawPage:
        """
        Fetch one page window plus the exact total in a single round trip.

        ``max_rows`` caps the visible result set (AI-mode sample): the total is
        clipped to it and rows past it are dropped.
        """
        start, end = page_bounds(page, page_size)
        query = TableQuery(
            table=self.table,
            predicates=list(predicates),
            order=sort_order(sort),
            window=(start, end),
            count=True,
        )
        logger.info(
            "Fetching page %s (size=%s, predicates=%s, order=%s)",
            page,
            page_size,
            len(query.predicates),
            query.order[0],
        )
        result = self._run(query)
        rows = list(result.rows[:page_size])
        total = int(result.count or 0)

        if max_rows is not None:
            total = min(total, max_rows)
            rows = rows[: max(0, max_rows - start)]

        return RawPage(rows=rows, total_count=total, page=page, page_size=page_size)

    def iter_batches(
        self,
        predicates: Sequence[Predicate],
        columns: str = "*",
        batch_size: Optional[int] = None,
    ) -> Iterator[List[Dict[str, Any]]]:
        """Yield matching rows in id order, one window at a time, until the exact count is reached."""
        size = max(1, batch_size or self.metrics_batch_size)
        seen = 0
        start = 0
        while True:
            query = TableQuery(
                table=self.table,
                columns=columns,
                predicates=list(predicates),
                order=[("id", True)],
                window=(start, start + size - 1),
                count=True,
            )
            result = self._run(query)
            if result.rows:
                yield result.rows
            seen += len(result.rows)
            total = result.count if result.count is not None else 0
            if not result.rows or seen >= total:
                return
            start += size

    def fetch_all(self, predicates: Sequence[Predicate], columns: str = "*") -> List[Dict[str, Any]]:
        """Read every matching row in fixed-size windows."""
        collected: List[Dict[str, Any]] = []
        for rows in self.iter_batches(predicates, columns):
            collected.extend(rows)
        return collected

    def update_row(self, row_id: Any, values: Dict[str, Any]) -> None:
        try:
            self._retrying()(self.backend.update, self.table, row_id, values)
        except Exception as exc:  # pylint: disable=broad-except
            raise FetchError(f"Update of row '{row_id}' in '{self.table}' failed", cause=exc) from exc

    def fetch_metrics(self, predicates: Sequence[Predicate]) -> CreatorMetrics:
        if any(predicate.is_always_false for predicate in predicates):
            return CreatorMetrics()
        rows = self.fetch_all(predicates, columns=",".join(("id",) + METRIC_COLUMNS))
        return compute_metrics(rows)

    def list_niches(self) -> List[NicheOption]:
        """Distinct primary niches; secondary niches are not filterable."""
        rows = self.fetch_all([], columns="id,primary_niche")
        names = sorted({str(row.get("primary_niche")).strip() for row in rows if row.get("primary_niche")})
        return [NicheOption(id=_slug(name), name=name) for name in names if name]
