import asyncio
import random
import time

import pytest

from creator_discovery.core.backend import DataFrameBackend
from creator_discovery.core.errors import BackendError, FetchError
from creator_discovery.core.query import CreatorQueryExecutor
from creator_discovery.models.creator import FilterSelection, SortState, ViewState
from creator_discovery.services.result_set import ResultSetController
from creator_discovery.services.state_store import MemoryStateStore


class SlowPageBackend(DataFrameBackend):
    """Delays selects whose window starts at one of ``slow_starts``."""

    def __init__(self, rows, slow_starts=(), delay=0.3):
        super().__init__(rows)
        self.slow_starts = set(slow_starts)
        self.delay = delay

    def select(self, query):
        if query.window is not None and query.window[0] in self.slow_starts:
            time.sleep(self.delay)
        return super().select(query)


class BreakableBackend(DataFrameBackend):
    def __init__(self, rows):
        super().__init__(rows)
        self.broken = False

    def select(self, query):
        if self.broken:
            raise BackendError("relation does not exist")
        return super().select(query)


def _controller(backend, store=None, **kwargs):
    executor = CreatorQueryExecutor(backend, retry_delay=0)
    kwargs.setdefault("rng", random.Random(7))
    return ResultSetController(executor, store or MemoryStateStore(), **kwargs)


def test_load_fetches_metrics_and_first_page(rows_factory):
    store = MemoryStateStore()
    controller = _controller(DataFrameBackend(rows_factory(30)), store)
    result = asyncio.run(controller.load())

    assert controller.loaded is True
    assert len(result.rows) == 24
    assert result.total_count == 30
    assert controller.total_pages == 2
    assert controller.metrics.total_creators == 30
    assert store.saves == 1


def test_ai_mode_synthesizes_match_scores(rows_factory):
    controller = _controller(DataFrameBackend(rows_factory(30)))
    result = asyncio.run(controller.load())
    assert controller.mode == "ai"
    assert all(60 <= creator.match_score <= 99 for creator in result.rows)


def test_default_ai_page_is_ranked_by_match_score(rows_factory):
    controller = _controller(DataFrameBackend(rows_factory(30)))
    result = asyncio.run(controller.load())
    assert controller.sort_state.field is None
    scores = [creator.match_score for creator in result.rows]
    assert scores == sorted(scores, reverse=True)

    result = asyncio.run(controller.next_page())
    scores = [creator.match_score for creator in result.rows]
    assert scores == sorted(scores, reverse=True)


def test_ai_mode_total_is_capped_at_sample_size(rows_factory):
    controller = _controller(DataFrameBackend(rows_factory(150)), ai_sample_size=96)
    result = asyncio.run(controller.load())
    assert result.total_count == 96
    assert controller.total_pages == 4


def test_all_mode_has_no_match_scores(rows_factory):
    controller = _controller(DataFrameBackend(rows_factory(150)))
    asyncio.run(controller.load())
    result = asyncio.run(controller.switch_mode("all"))
    assert result.total_count == 150
    assert all(creator.match_score is None for creator in result.rows)


def test_out_of_range_page_change_is_a_noop(rows_factory):
    backend = DataFrameBackend(rows_factory(30))
    store = MemoryStateStore()
    controller = _controller(backend, store)
    asyncio.run(controller.load())
    calls, saves = backend.select_calls, store.saves

    for page in (0, 3, -1):
        asyncio.run(controller.change_page(page))

    assert controller.page == 1
    assert backend.select_calls == calls
    assert store.saves == saves


def test_next_and_previous_page(rows_factory):
    controller = _controller(DataFrameBackend(rows_factory(30)))
    asyncio.run(controller.load())

    result = asyncio.run(controller.next_page())
    assert result.page == 2
    assert len(result.rows) == 6

    asyncio.run(controller.next_page())
    assert controller.page == 2

    asyncio.run(controller.previous_page())
    assert controller.page == 1


def test_sort_toggles_direction_and_resets_page(rows_factory):
    controller = _controller(DataFrameBackend(rows_factory(30)))
    asyncio.run(controller.load())
    asyncio.run(controller.switch_mode("all"))
    asyncio.run(controller.change_page(2))

    result = asyncio.run(controller.sort("followers"))
    assert controller.sort_state == SortState(field="followers", direction="desc")
    assert controller.page == 1
    assert result.rows[0].followers == 30000

    result = asyncio.run(controller.sort("followers"))
    assert controller.sort_state == SortState(field="followers", direction="asc")
    assert result.rows[0].followers == 1000

    asyncio.run(controller.sort("avg_views"))
    assert controller.sort_state == SortState(field="avg_views", direction="desc")


def test_match_score_sort_in_ai_mode_is_client_side(rows_factory):
    backend = DataFrameBackend(rows_factory(30))
    controller = _controller(backend)
    asyncio.run(controller.load())
    calls = backend.select_calls

    result = asyncio.run(controller.sort("match_score"))
    scores = [creator.match_score for creator in result.rows]
    assert scores == sorted(scores, reverse=True)
    assert backend.select_calls == calls

    result = asyncio.run(controller.sort("match_score"))
    scores = [creator.match_score for creator in result.rows]
    assert scores == sorted(scores)
    assert backend.select_calls == calls


def test_switching_back_to_ai_reuses_cached_results(rows_factory):
    backend = DataFrameBackend(rows_factory(30))
    controller = _controller(backend)
    ai_result = asyncio.run(controller.load())

    asyncio.run(controller.switch_mode("all"))
    calls = backend.select_calls
    result = asyncio.run(controller.switch_mode("ai"))

    assert backend.select_calls == calls
    assert controller.mode == "ai"
    assert [creator.match_score for creator in result.rows] == [creator.match_score for creator in ai_result.rows]


def test_changed_filters_invalidate_ai_cache(rows_factory):
    backend = DataFrameBackend(rows_factory(30))
    controller = _controller(backend)
    asyncio.run(controller.load())
    asyncio.run(controller.apply_filters(FilterSelection(niches=["Beauty"]), mode="all"))
    calls = backend.select_calls

    result = asyncio.run(controller.switch_mode("ai"))
    assert backend.select_calls > calls
    assert result.total_count == 10


def test_apply_filters_resets_page_and_recomputes_metrics(rows_factory):
    controller = _controller(DataFrameBackend(rows_factory(60)))
    asyncio.run(controller.load())
    asyncio.run(controller.change_page(2))

    result = asyncio.run(controller.apply_filters(FilterSelection(niches=["Beauty"])))
    assert controller.page == 1
    assert result.total_count == 20
    assert controller.metrics.total_creators == 20
    assert all(creator.niches[0].name == "Beauty" for creator in result.rows)


def test_impossible_buzz_filter_yields_empty_page(rows_factory):
    controller = _controller(DataFrameBackend(rows_factory(10)))
    result = asyncio.run(controller.apply_filters(FilterSelection(buzz_score_ranges=["90%+"])))
    assert result.rows == []
    assert controller.total_pages == 0
    assert controller.metrics.total_creators == 0


def test_state_is_persisted_and_restored(rows_factory):
    store = MemoryStateStore()
    backend = DataFrameBackend(rows_factory(90))
    controller = _controller(backend, store)
    asyncio.run(controller.apply_filters(FilterSelection(platforms=["tiktok"]), mode="all"))
    asyncio.run(controller.sort("engagement"))
    asyncio.run(controller.change_page(2))

    restored = _controller(backend, store)
    assert restored.mode == "all"
    assert restored.filters.platforms == ["tiktok"]
    assert restored.sort_state.field == "engagement"
    assert restored.page == 2

    result = asyncio.run(restored.load())
    assert result.page == 2
    assert result.total_count == 45


def test_restored_page_is_clamped(rows_factory):
    store = MemoryStateStore(ViewState(mode="all", page=9))
    controller = _controller(DataFrameBackend(rows_factory(30)), store)
    result = asyncio.run(controller.load())
    assert result.page == 2
    assert controller.page == 2
    assert len(result.rows) == 6


def test_failed_fetch_leaves_state_untouched(rows_factory):
    backend = BreakableBackend(rows_factory(30))
    store = MemoryStateStore()
    controller = _controller(backend, store)
    before = asyncio.run(controller.load())
    saves = store.saves

    backend.broken = True
    with pytest.raises(FetchError):
        asyncio.run(controller.apply_filters(FilterSelection(niches=["Travel"])))

    assert controller.filters == FilterSelection()
    assert controller.result == before
    assert controller.last_error is not None
    assert "relation does not exist" in controller.last_error.cause
    assert controller.loading is False
    assert store.saves == saves

    backend.broken = False
    asyncio.run(controller.apply_filters(FilterSelection(niches=["Travel"])))
    assert controller.last_error is None


def test_slow_backend_times_out(rows_factory):
    backend = SlowPageBackend(rows_factory(5), slow_starts=(0,), delay=0.3)
    controller = _controller(backend, timeout=0.05)
    with pytest.raises(FetchError) as excinfo:
        asyncio.run(controller.switch_mode("all"))
    assert "timed out" in str(excinfo.value)
    assert controller.mode == "ai"


def test_stale_response_is_discarded(rows_factory):
    backend = SlowPageBackend(rows_factory(100), slow_starts=(24,), delay=0.3)
    controller = _controller(backend)
    asyncio.run(controller.switch_mode("all"))

    async def race():
        return await asyncio.gather(controller.change_page(2), controller.change_page(3))

    slow, fast = asyncio.run(race())
    assert fast.page == 3
    assert slow.page == 3
    assert controller.page == 3
    assert controller.result.page == 3


def test_list_niches(rows_factory):
    controller = _controller(DataFrameBackend(rows_factory(6)))
    niches = asyncio.run(controller.list_niches())
    assert [niche.name for niche in niches] == ["Beauty", "Fitness", "Travel"]
