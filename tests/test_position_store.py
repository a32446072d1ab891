import json
import os
from concurrent.futures import ThreadPoolExecutor

import pytest

from src.core.errors import PositionStoreError
from src.core.position_store import PositionStore
from src.models.position import AlertsSent


def _store(tmp_path) -> PositionStore:
    store = PositionStore(path=str(tmp_path / "data" / "positions.json"))
    store.open()
    return store


def _create(store: PositionStore, market_id: str = "abc"):
    return store.create(
        market_id=market_id,
        outcome="YES",
        market_url=f"https://x/event/{market_id}",
        market_question="Q?",
        entry_price=0.40,
        quantity=100.0,
        take_profit=0.80,
        stop_loss=0.20,
    )


def test_create_assigns_id_timestamp_and_empty_alerts(tmp_path) -> None:
    store = _store(tmp_path)
    p = _create(store)

    assert p.id
    assert p.created_at is not None
    assert p.alerts_sent == AlertsSent()
    assert p.current_price is None
    assert store.get(p.id) == p
    assert len(store) == 1


def test_ids_are_unique(tmp_path) -> None:
    store = _store(tmp_path)
    ids = {_create(store, f"m{i}").id for i in range(50)}
    assert len(ids) == 50


def test_update_merges_only_given_fields(tmp_path) -> None:
    store = _store(tmp_path)
    p = _create(store)

    updated = store.update(p.id, take_profit=0.9, market_question="New?")
    assert updated is not None
    assert updated.take_profit == 0.9
    assert updated.market_question == "New?"
    assert updated.entry_price == p.entry_price
    assert updated.stop_loss == p.stop_loss
    assert updated.created_at == p.created_at


def test_update_unknown_id_leaves_collection_unchanged(tmp_path) -> None:
    store = _store(tmp_path)
    _create(store, "a")
    _create(store, "b")
    before = store.list()
    with open(store.path, "r", encoding="utf-8") as f:
        file_before = f.read()

    assert store.update("missing", take_profit=0.5) is None

    assert store.list() == before
    with open(store.path, "r", encoding="utf-8") as f:
        assert f.read() == file_before


def test_update_rejects_immutable_fields(tmp_path) -> None:
    store = _store(tmp_path)
    p = _create(store)

    with pytest.raises(ValueError):
        store.update(p.id, market_id="other")
    with pytest.raises(ValueError):
        store.update(p.id, id="new-id")


def test_alert_flags_never_reset(tmp_path) -> None:
    store = _store(tmp_path)
    p = _create(store)

    store.latch_alert(p.id, "take_profit")
    after = store.update(p.id, alerts_sent=AlertsSent(take_profit=False, stop_loss=False))

    assert after is not None
    assert after.alerts_sent.take_profit is True
    assert after.alerts_sent.stop_loss is False


def test_record_price_sets_price_and_timestamp(tmp_path) -> None:
    store = _store(tmp_path)
    p = _create(store)

    updated = store.record_price(p.id, 0.55)
    assert updated is not None
    assert updated.current_price == 0.55
    assert updated.last_updated is not None
    assert store.record_price("missing", 0.5) is None


def test_delete(tmp_path) -> None:
    store = _store(tmp_path)
    p = _create(store)

    assert store.delete(p.id) is True
    assert store.delete(p.id) is False
    assert store.get(p.id) is None
    assert len(store) == 0


def test_reopen_reads_persisted_state(tmp_path) -> None:
    store = _store(tmp_path)
    p = _create(store)
    store.record_price(p.id, 0.85)
    store.latch_alert(p.id, "take_profit")
    store.close()

    reopened = PositionStore(path=store.path)
    reopened.open()
    loaded = reopened.get(p.id)

    assert loaded is not None
    assert loaded.current_price == 0.85
    assert loaded.alerts_sent.take_profit is True
    assert loaded.created_at == p.created_at


def test_file_layout_uses_camel_case_keys(tmp_path) -> None:
    store = _store(tmp_path)
    p = _create(store)

    with open(store.path, "r", encoding="utf-8") as f:
        raw = json.load(f)

    assert raw[0]["id"] == p.id
    assert raw[0]["marketId"] == "abc"
    assert raw[0]["alertsSent"] == {"takeProfit": False, "stopLoss": False}
    assert "currentPrice" not in raw[0]


def test_failed_write_keeps_memory_unchanged(tmp_path, monkeypatch) -> None:
    store = _store(tmp_path)
    p = _create(store)

    def _boom(*args, **kwargs):
        raise OSError("disk full")

    monkeypatch.setattr(os, "replace", _boom)

    with pytest.raises(PositionStoreError):
        store.update(p.id, take_profit=0.99)

    assert store.get(p.id).take_profit == 0.80


def test_closed_store_refuses_access(tmp_path) -> None:
    store = PositionStore(path=str(tmp_path / "positions.json"))
    with pytest.raises(PositionStoreError):
        store.list()


def test_corrupt_file_is_reported(tmp_path) -> None:
    path = tmp_path / "positions.json"
    path.write_text("{not json", encoding="utf-8")

    store = PositionStore(path=str(path))
    with pytest.raises(PositionStoreError):
        store.open()


def test_concurrent_writers_lose_no_updates(tmp_path) -> None:
    store = _store(tmp_path)
    shared = _create(store, "shared")
    workers = 16
    prices = [i / 100 for i in range(workers)]

    def work(i: int) -> None:
        _create(store, f"m{i}")
        store.record_price(shared.id, prices[i])
        store.latch_alert(shared.id, "take_profit" if i % 2 == 0 else "stop_loss")
        store.record_price(shared.id, prices[i])

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(work, range(workers)))

    assert len(store) == workers + 1
    final = store.get(shared.id)
    assert final.alerts_sent == AlertsSent(take_profit=True, stop_loss=True)
    assert final.current_price in prices

    reopened = PositionStore(path=store.path)
    reopened.open()
    assert len(reopened) == workers + 1
    assert sorted(p.market_id for p in reopened.list()) == sorted(["shared"] + [f"m{i}" for i in range(workers)])
    assert reopened.get(shared.id).alerts_sent == AlertsSent(take_profit=True, stop_loss=True)
