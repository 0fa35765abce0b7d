import json

from creator_discovery.models.creator import FilterSelection, SortState, ViewState
from creator_discovery.services.state_store import JsonFileStateStore, MemoryStateStore


def _state():
    return ViewState(
        mode="all",
        filters=FilterSelection(niches=["Beauty"], followers=(50_000, 300_000)),
        sort=SortState(field="followers", direction="asc"),
        page=3,
    )


def test_memory_store_keeps_one_entry_per_key():
    store = MemoryStateStore()
    assert store.load() is None
    store.save(_state())
    assert set(store.values) == {"mode", "filters", "sort", "page"}
    assert json.loads(store.values["page"]) == 3
    assert store.load() == _state()


def test_json_file_store_round_trip(tmp_path):
    path = tmp_path / "state" / "view_state.json"
    store = JsonFileStateStore(str(path))
    assert store.load() is None

    store.save(_state())
    assert path.exists()
    assert JsonFileStateStore(str(path)).load() == _state()


def test_partial_state_uses_defaults():
    store = MemoryStateStore()
    store.values = {"mode": json.dumps("all")}
    restored = store.load()
    assert restored.mode == "all"
    assert restored.page == 1
    assert restored.filters == FilterSelection()


def test_unreadable_state_is_ignored(tmp_path):
    path = tmp_path / "view_state.json"
    path.write_text("{not json", encoding="utf-8")
    assert JsonFileStateStore(str(path)).load() is None

    path.write_text(json.dumps({"page": json.dumps(0)}), encoding="utf-8")
    assert JsonFileStateStore(str(path)).load() is None

    store = MemoryStateStore()
    store.values = {"mode": "not-json"}
    assert store.load() is None
