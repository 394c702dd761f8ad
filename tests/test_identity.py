from __future__ import annotations

import json
from pathlib import Path

from conftest import GUID_RE
from uatrack.history import MAX_HISTORY_ELEMENTS, HistoryElement, HistoryStore
from uatrack.identity import VISITOR_ID_KEY, IdentityStore
from uatrack.storage import FileStorage, MemoryStorage, storage_for


def test_visitor_id_generated_once_and_persisted() -> None:
    storage = MemoryStorage()
    identity = IdentityStore(storage)
    visitor_id = identity.get_visitor_id()
    assert GUID_RE.match(visitor_id)
    assert len(visitor_id) == 36
    assert identity.visitor_id == visitor_id
    assert storage.get_item(VISITOR_ID_KEY) == visitor_id
    assert IdentityStore(storage).get_visitor_id() == visitor_id


def test_malformed_visitor_id_is_replaced() -> None:
    storage = MemoryStorage({VISITOR_ID_KEY: "not-a-guid"})
    visitor_id = IdentityStore(storage).get_visitor_id()
    assert visitor_id != "not-a-guid"
    assert storage.get_item(VISITOR_ID_KEY) == visitor_id


def test_visitor_id_cached_in_memory() -> None:
    storage = MemoryStorage()
    identity = IdentityStore(storage)
    visitor_id = identity.get_visitor_id()
    storage.remove_item(VISITOR_ID_KEY)
    assert identity.get_visitor_id() == visitor_id


def test_client_id_comes_from_server() -> None:
    identity = IdentityStore()
    assert identity.get_client_id() is None
    identity.remember_client_id(None)
    assert identity.client_id is None
    identity.remember_client_id("server-id")
    assert identity.get_client_id() == "server-id"
    identity.forget_client_id()
    assert identity.client_id is None


def test_clear_forgets_stored_visitor() -> None:
    storage = MemoryStorage()
    identity = IdentityStore(storage)
    first = identity.get_visitor_id()
    identity.clear()
    assert storage.get_item(VISITOR_ID_KEY) is None
    assert identity.get_visitor_id() != first


def test_fields_carry_page_and_visitor_ids() -> None:
    identity = IdentityStore(page_id="11111111-2222-4333-8444-555555555555")
    fields = identity.fields()
    assert fields["pid"] == "11111111-2222-4333-8444-555555555555"
    assert fields["cid"] == identity.get_visitor_id()


def test_file_storage_survives_new_instances(tmp_path: Path) -> None:
    path = tmp_path / "state" / "uatrack.json"
    visitor_id = IdentityStore(FileStorage(path)).get_visitor_id()
    assert json.loads(path.read_text())[VISITOR_ID_KEY] == visitor_id
    assert IdentityStore(FileStorage(path)).get_visitor_id() == visitor_id

    storage = FileStorage(path)
    storage.remove_item(VISITOR_ID_KEY)
    assert storage.get_item(VISITOR_ID_KEY) is None


def test_file_storage_ignores_corrupt_file(tmp_path: Path) -> None:
    path = tmp_path / "uatrack.json"
    path.write_text("{not json")
    storage = FileStorage(path)
    assert storage.get_item(VISITOR_ID_KEY) is None
    storage.set_item("k", "v")
    assert storage.get_item("k") == "v"


def test_storage_for_picks_backend(tmp_path: Path) -> None:
    assert isinstance(storage_for(None), MemoryStorage)
    assert isinstance(storage_for(tmp_path / "x.json"), FileStorage)


def test_history_newest_first_and_capped() -> None:
    now = [1000.0]
    history = HistoryStore(MemoryStorage(), clock=lambda: now[0])
    for i in range(MAX_HISTORY_ELEMENTS + 5):
        now[0] += 1
        assert history.add_element(HistoryElement(name="PageView", value=f"/page/{i}"))

    entries = history.get_history()
    assert len(entries) == MAX_HISTORY_ELEMENTS
    assert entries[0].value == f"/page/{MAX_HISTORY_ELEMENTS + 4}"
    assert history.get_most_recent_element().value == entries[0].value
    assert entries[0].time


def test_history_skips_recent_duplicate() -> None:
    now = [1000.0]
    history = HistoryStore(MemoryStorage(), clock=lambda: now[0])
    assert history.add_element(HistoryElement(name="PageView", value="/a"))
    now[0] += 10
    assert not history.add_element(HistoryElement(name="PageView", value="/a"))
    now[0] += 120
    assert history.add_element(HistoryElement(name="PageView", value="/a"))
    assert len(history.get_history()) == 2

    history.clear()
    assert history.get_history() == []
    assert history.get_most_recent_element() is None
