from __future__ import annotations

import sqlite3
import threading
from pathlib import Path

import pytest

import sys

sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))
from models import Cable, Device, NetworkState, Stats
from storage import DEFAULT_STORAGE_KEY, StateStore
from telemetry import make_log


def make_state(n_devices: int = 2) -> NetworkState:
    devices = [
        Device.model_validate({"id": f"pc-{i}", "type": "pc", "config": {"internalIp": f"192.168.1.{10 + i}"}})
        for i in range(n_devices)
    ]
    devices.append(Device.model_validate({"id": "srv", "type": "server", "config": {"ports": []}}))
    return NetworkState(
        devices=devices,
        cables=[Cable(id="c1", from_id="pc-0", to_id="srv", connected=False)],
        logs=[make_log("pc-0", "srv", False, "All ports closed")],
        stats=Stats(packets_dropped=1, port_attempts=1, device_online=n_devices + 1),
    )


def test_init_creates_table(tmp_path: Path):
    store = StateStore(tmp_path / "netsim.db")
    with sqlite3.connect(store.db_path) as conn:
        count = conn.execute("SELECT COUNT(*) FROM network_state").fetchone()[0]
    assert count == 0


def test_load_empty(tmp_path: Path):
    assert StateStore(tmp_path / "netsim.db").load() is None


def test_save_and_load(tmp_path: Path):
    store = StateStore(tmp_path / "netsim.db")
    state = make_state()
    store.save(state)
    loaded = store.load()
    assert loaded == state
    assert loaded.devices[-1].config.ports == []
    assert loaded.cables[0].connected is False


def test_stored_json_uses_camel_case(tmp_path: Path):
    store = StateStore(tmp_path / "netsim.db")
    store.save(make_state())
    with sqlite3.connect(store.db_path) as conn:
        payload = conn.execute("SELECT state_json FROM network_state").fetchone()[0]
    assert '"internalIp"' in payload
    assert '"from":"pc-0"' in payload
    assert '"portAttempts":1' in payload


def test_save_overwrites(tmp_path: Path):
    store = StateStore(tmp_path / "netsim.db")
    store.save(make_state(2))
    store.save(make_state(5))
    assert len(store.load().devices) == 6
    with sqlite3.connect(store.db_path) as conn:
        assert conn.execute("SELECT COUNT(*) FROM network_state").fetchone()[0] == 1


def test_keys_are_separate(tmp_path: Path):
    first = StateStore(tmp_path / "netsim.db")
    second = StateStore(tmp_path / "netsim.db", key="other-session")
    first.save(make_state(1))
    assert first.key == DEFAULT_STORAGE_KEY
    assert second.load() is None


def test_clear(tmp_path: Path):
    store = StateStore(tmp_path / "netsim.db")
    store.save(make_state())
    assert store.clear() is True
    assert store.load() is None
    assert store.clear() is False


def test_thread_safety(tmp_path: Path):
    store = StateStore(tmp_path / "netsim.db")

    def writer(n: int):
        for _ in range(5):
            store.save(make_state(n))

    threads = [threading.Thread(target=writer, args=(n,)) for n in range(1, 6)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert store.load() is not None


def test_save_bad_path_doesnt_raise(tmp_path: Path, caplog: pytest.LogCaptureFixture, monkeypatch: pytest.MonkeyPatch):
    store = StateStore(tmp_path / "netsim.db")

    def bad_connect():
        raise sqlite3.OperationalError("unable to open database file")

    monkeypatch.setattr(store, "_connect", bad_connect)
    store.save(make_state())
    assert "Failed to save network state" in caplog.text


def test_load_returns_none_on_error(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    store = StateStore(tmp_path / "netsim.db")

    def bad_connect():
        raise sqlite3.OperationalError("corrupt")

    monkeypatch.setattr(store, "_connect", bad_connect)
    assert store.load() is None


def test_load_corrupt_json(tmp_path: Path, caplog: pytest.LogCaptureFixture):
    store = StateStore(tmp_path / "netsim.db")
    with sqlite3.connect(store.db_path) as conn:
        conn.execute(
            "INSERT INTO network_state (key, saved_at, state_json) VALUES (?, ?, ?)",
            (DEFAULT_STORAGE_KEY, "2026-01-01T00:00:00+00:00", "{not json"),
        )
        conn.commit()
    assert store.load() is None
    assert "Failed to load network state" in caplog.text


def test_clear_returns_false_on_error(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    store = StateStore(tmp_path / "netsim.db")

    def bad_connect():
        raise sqlite3.OperationalError("corrupt")

    monkeypatch.setattr(store, "_connect", bad_connect)
    assert store.clear() is False
