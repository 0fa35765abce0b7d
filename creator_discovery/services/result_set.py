"""
Result-set controller.

Owns ``{mode, filters, sort, page}`` plus the current page and aggregate
metrics, and coordinates re-fetches when any of them change. Every fetch
takes a request token; only the response for the most recently issued
token is applied, so out-of-order responses never overwrite newer state.
"""
from __future__ import annotations

import asyncio
import functools
import json
import logging
import random
from typing import Any, Callable, List, Optional, Tuple

from creator_discovery.core.errors import FetchError
from creator_discovery.core.filters import Predicate, compile_filters
from creator_discovery.core.normalizer import normalize_rows
from creator_discovery.core.query import CreatorQueryExecutor
from creator_discovery.models.creator import (
    DEFAULT_PAGE_SIZE,
    Creator,
    CreatorMetrics,
    FilterSelection,
    Mode,
    NicheOption,
    ResultPage,
    SortField,
    SortState,
    ViewState,
)
from creator_discovery.services.state_store import StateStore

logger = logging.getLogger(__name__)

MATCH_SCORE_MIN = 60
MATCH_SCORE_MAX = 99


def synthesize_match_scores(creators: List[Creator], rng: random.Random) -> List[Creator]:
    """Placeholder ranking: a random score per creator until a real model exists."""
    return [
        creator.model_copy(update={"match_score": rng.randint(MATCH_SCORE_MIN, MATCH_SCORE_MAX)})
        for creator in creators
    ]


def sort_by_match_score(creators: List[Creator], direction: str) -> List[Creator]:
    return sorted(creators, key=lambda creator: creator.match_score or 0, reverse=direction == "desc")


class ResultSetController:
    """Single-owner store for the discovery view, mutated only by its transitions."""

    def __init__(
        self,
        executor: CreatorQueryExecutor,
        store: StateStore,
        *,
        page_size: int = DEFAULT_PAGE_SIZE,
        ai_sample_size: int = 96,
        timeout: float = 15.0,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.executor = executor
        self.store = store
        self.page_size = page_size
        self.ai_sample_size = ai_sample_size
        self.timeout = timeout
        self._rng = rng or random.Random()

        self.state: ViewState = store.load() or ViewState()
        self.result = ResultPage(page=self.state.page, page_size=page_size)
        self.metrics = CreatorMetrics()
        self.last_error: Optional[FetchError] = None
        self.loading = False
        self.loaded = False

        self._token = 0
        self._ai_cache: Optional[Tuple[str, ResultPage]] = None

    @property
    def mode(self) -> Mode:
        return self.state.mode

    @property
    def filters(self) -> FilterSelection:
        return self.state.filters

    @property
    def sort_state(self) -> SortState:
        return self.state.sort

    @property
    def page(self) -> int:
        return self.state.page

    @property
    def total_pages(self) -> int:
        return self.result.total_pages

    @staticmethod
    def _cache_key(state: ViewState) -> str:
        return json.dumps(
            {"filters": state.filters.model_dump(mode="json"), "sort": state.sort.model_dump(mode="json")},
            sort_keys=True,
        )

    def _issue_token(self) -> int:
        self._token += 1
        self.loading = True
        return self._token

    def _is_stale(self, token: int) -> bool:
        return token != self._token

    async def _call(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        loop = asyncio.get_running_loop()
        try:
            return await asyncio.wait_for(
                loop.run_in_executor(None, functools.partial(fn, *args, **kwargs)),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as exc:
            raise FetchError(f"Backend call timed out after {self.timeout}s", cause=exc) from exc

    async def _fetch(self, state: ViewState, predicates: List[Predicate]) -> ResultPage:
        raw = await self._call(
            self.executor.fetch_page,
            predicates,
            state.sort,
            state.page,
            self.page_size,
            max_rows=self.ai_sample_size if state.mode == "ai" else None,
        )
        rows = normalize_rows(raw.rows)
        if state.mode == "ai":
            # Match score only exists after synthesis, so its ordering is applied here.
            # With no explicit sort the AI page is ranked best match first.
            rows = synthesize_match_scores(rows, self._rng)
            if state.sort.field is None:
                rows = sort_by_match_score(rows, "desc")
            elif state.sort.field == "match_score":
                rows = sort_by_match_score(rows, state.sort.direction)
        return ResultPage(rows=rows, total_count=raw.total_count, page=state.page, page_size=self.page_size)

    def _commit(self, state: ViewState, result: ResultPage, metrics: Optional[CreatorMetrics] = None) -> ResultPage:
        self.state = state
        self.result = result
        if metrics is not None:
            self.metrics = metrics
        if state.mode == "ai":
            self._ai_cache = (self._cache_key(state), result)
        self.last_error = None
        self.loading = False
        self.loaded = True
        self.store.save(state)
        return result

    async def _transition(self, state: ViewState, *, refresh_metrics: bool = False) -> ResultPage:
        token = self._issue_token()
        predicates = compile_filters(state.filters)
        try:
            metrics = await self._call(self.executor.fetch_metrics, predicates) if refresh_metrics else None
            result = await self._fetch(state, predicates)
            last_page = max(1, result.total_pages)
            if state.page > last_page and not self._is_stale(token):
                state = state.model_copy(update={"page": last_page})
                result = await self._fetch(state, predicates)
        except FetchError as exc:
            if self._is_stale(token):
                logger.info("Ignoring failure of superseded request %s: %s", token, exc)
                return self.result
            self.last_error = exc
            self.loading = False
            logger.error("Fetch failed, keeping page %s: %s (%s)", self.state.page, exc, exc.cause)
            raise

        if self._is_stale(token):
            logger.info("Discarding stale response for request %s (latest is %s)", token, self._token)
            return self.result
        return self._commit(state, result, metrics)

    async def load(self) -> ResultPage:
        """Initial fetch of metrics and the persisted page."""
        return await self._transition(self.state, refresh_metrics=True)

    async def apply_filters(self, filters: FilterSelection, mode: Optional[Mode] = None) -> ResultPage:
        state = ViewState(mode=mode or self.state.mode, filters=filters, sort=self.state.sort, page=1)
        return await self._transition(state, refresh_metrics=True)

    async def switch_mode(self, mode: Mode) -> ResultPage:
        if mode == "ai" and self._ai_cache is not None:
            key, cached = self._ai_cache
            candidate = self.state.model_copy(update={"mode": "ai", "page": cached.page})
            if key == self._cache_key(candidate):
                self._issue_token()
                logger.info("Reusing cached AI result set (page %s)", cached.page)
                return self._commit(candidate, cached)
        state = self.state.model_copy(update={"mode": mode, "page": 1})
        return await self._transition(state)

    async def sort(self, field: SortField) -> ResultPage:
        new_sort = self.state.sort.toggled(field)
        if field == "match_score" and self.state.mode == "ai" and self.result.rows:
            self._issue_token()
            rows = sort_by_match_score(list(self.result.rows), new_sort.direction)
            result = self.result.model_copy(update={"rows": rows})
            return self._commit(self.state.model_copy(update={"sort": new_sort}), result)
        state = self.state.model_copy(update={"sort": new_sort, "page": 1})
        return await self._transition(state)

    async def change_page(self, page: int) -> ResultPage:
        if page < 1 or page > self.total_pages:
            return self.result
        state = self.state.model_copy(update={"page": page})
        return await self._transition(state)

    async def next_page(self) -> ResultPage:
        return await self.change_page(self.state.page + 1)

    async def previous_page(self) -> ResultPage:
        return await self.change_page(self.state.page - 1)

    async def list_niches(self) -> List[NicheOption]:
        return await self._call(self.executor.list_niches)
