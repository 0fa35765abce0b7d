import pytest

from creator_discovery.core.backend import DataFrameBackend, QueryResult
from creator_discovery.core.errors import BackendError, FetchError, TransientBackendError
from creator_discovery.core.filters import Predicate, compile_filters
from creator_discovery.core.query import CreatorQueryExecutor, page_bounds, sort_order
from creator_discovery.models.creator import FilterSelection, SortState


class FlakyBackend(DataFrameBackend):
    """Fails the first ``failures`` selects with the given error."""

    def __init__(self, rows, failures=0, error=TransientBackendError):
        super().__init__(rows)
        self.failures = failures
        self.error = error
        self.attempts = 0

    def select(self, query):
        self.attempts += 1
        if self.attempts <= self.failures:
            raise self.error("backend unavailable")
        return super().select(query)


def _executor(backend, **kwargs):
    kwargs.setdefault("retry_delay", 0)
    return CreatorQueryExecutor(backend, **kwargs)


def test_page_bounds():
    assert page_bounds(1, 24) == (0, 23)
    assert page_bounds(3, 24) == (48, 71)
    with pytest.raises(ValueError):
        page_bounds(0, 24)


def test_default_order_uses_proxy_column_with_tiebreaker():
    assert sort_order(None) == [("followers_count", False), ("id", True)]
    assert sort_order(SortState(field="avg_views", direction="asc")) == [("average_views", True), ("id", True)]


def test_pages_partition_the_result_set(rows_factory):
    executor = _executor(DataFrameBackend(rows_factory(30)))
    first = executor.fetch_page([], SortState(), 1)
    second = executor.fetch_page([], SortState(), 2)
    third = executor.fetch_page([], SortState(), 3)

    assert first.total_count == second.total_count == 30
    assert len(first.rows) == 24
    assert len(second.rows) == 6
    assert third.rows == []
    ids = [row["id"] for row in first.rows + second.rows]
    assert len(set(ids)) == 30
    assert first.rows[0]["id"] == "c030"


def test_sort_direction_and_tiebreak(rows_factory):
    rows = rows_factory(5, engagement_rate=3.0)
    executor = _executor(DataFrameBackend(rows))
    page = executor.fetch_page([], SortState(field="engagement", direction="desc"), 1)
    assert [row["id"] for row in page.rows] == ["c001", "c002", "c003", "c004", "c005"]

    page = executor.fetch_page([], SortState(field="followers", direction="asc"), 1)
    assert [row["followers_count"] for row in page.rows] == [1000, 2000, 3000, 4000, 5000]


def test_null_values_sort_last(rows_factory):
    rows = rows_factory(3)
    rows[2]["average_views"] = None
    executor = _executor(DataFrameBackend(rows))
    for direction in ("asc", "desc"):
        page = executor.fetch_page([], SortState(field="avg_views", direction=direction), 1)
        assert page.rows[-1]["id"] == "c003"


def test_filters_reduce_count(rows_factory):
    executor = _executor(DataFrameBackend(rows_factory(30)))
    predicates = compile_filters(FilterSelection(niches=["Beauty"], platforms=["tiktok"]))
    page = executor.fetch_page(predicates, SortState(), 1)
    assert page.total_count == 5
    assert all(row["primary_niche"] == "Beauty" for row in page.rows)
    assert all(row["platform"] == "TikTok" for row in page.rows)


def test_always_false_predicate_returns_empty(rows_factory):
    executor = _executor(DataFrameBackend(rows_factory(10)))
    page = executor.fetch_page([Predicate.never("buzz_score")], SortState(), 1)
    assert page.rows == []
    assert page.total_count == 0


def test_sample_cap_limits_total_and_rows(rows_factory):
    executor = _executor(DataFrameBackend(rows_factory(200)))
    page = executor.fetch_page([], SortState(), 4, max_rows=96)
    assert page.total_count == 96
    assert len(page.rows) == 24
    beyond = executor.fetch_page([], SortState(), 5, max_rows=96)
    assert beyond.rows == []
    assert beyond.total_count == 96


def test_transient_failures_are_retried(rows_factory):
    backend = FlakyBackend(rows_factory(3), failures=2)
    page = _executor(backend, max_retries=3).fetch_page([], SortState(), 1)
    assert backend.attempts == 3
    assert len(page.rows) == 3


def test_exhausted_retries_raise_fetch_error(rows_factory):
    backend = FlakyBackend(rows_factory(3), failures=10)
    with pytest.raises(FetchError) as excinfo:
        _executor(backend, max_retries=3).fetch_page([], SortState(), 1)
    assert backend.attempts == 3
    assert "backend unavailable" in excinfo.value.cause


def test_non_transient_errors_are_not_retried(rows_factory):
    backend = FlakyBackend(rows_factory(3), failures=1, error=BackendError)
    with pytest.raises(FetchError):
        _executor(backend, max_retries=3).fetch_page([], SortState(), 1)
    assert backend.attempts == 1


def test_metrics_over_filtered_set(rows_factory):
    executor = _executor(DataFrameBackend(rows_factory(4)), metrics_batch_size=3)
    metrics = executor.fetch_metrics([])
    assert metrics.total_creators == 4
    assert metrics.avg_followers == 2500
    assert metrics.avg_views == 1250
    assert metrics.avg_engagement == 3.0
    assert metrics.change_percentage == 1.5
    assert metrics.change_type == "positive"


def test_metrics_short_circuit_on_impossible_filter(rows_factory):
    backend = DataFrameBackend(rows_factory(4))
    metrics = _executor(backend).fetch_metrics([Predicate.never("buzz_score")])
    assert metrics.total_creators == 0
    assert backend.select_calls == 0


def test_list_niches(rows_factory):
    rows = rows_factory(6)
    rows[0]["primary_niche"] = "Home Decor"
    rows[1]["primary_niche"] = None
    niches = _executor(DataFrameBackend(rows)).list_niches()
    assert [(niche.id, niche.name) for niche in niches] == [
        ("beauty", "Beauty"),
        ("fitness", "Fitness"),
        ("home-decor", "Home Decor"),
        ("travel", "Travel"),
    ]


class CountlessBackend(DataFrameBackend):
    def select(self, query):
        result = super().select(query)
        return QueryResult(rows=result.rows, count=None)


def test_missing_count_is_treated_as_zero(rows_factory):
    page = _executor(CountlessBackend(rows_factory(3))).fetch_page([], SortState(), 1)
    assert page.total_count == 0


def test_iter_batches_walks_every_row_in_id_order(rows_factory):
    backend = DataFrameBackend(rows_factory(7))
    batches = list(_executor(backend).iter_batches([], columns="id", batch_size=3))
    assert [len(batch) for batch in batches] == [3, 3, 1]
    assert [row["id"] for batch in batches for row in batch] == [f"c{index:03d}" for index in range(1, 8)]


def test_update_row_retries_transient_errors(rows_factory):
    class FlakyUpdates(DataFrameBackend):
        attempts = 0

        def update(self, table, row_id, values):
            self.attempts += 1
            if self.attempts == 1:
                raise TransientBackendError("timeout")
            super().update(table, row_id, values)

    backend = FlakyUpdates(rows_factory(2))
    _executor(backend).update_row("c002", {"location_region": "Europe"})
    assert backend.attempts == 2

    with pytest.raises(FetchError):
        _executor(backend).update_row("missing", {"location_region": "Europe"})
