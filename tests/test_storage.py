"""Tests for the local storage backend and the design/identity stores."""

from datetime import datetime, timedelta, timezone

import pytest

from shirt_designer.errors import NotFoundError
from shirt_designer.models import DesignRecord
from shirt_designer.storage import delete_file, save_bytes
from shirt_designer.stores import DesignStore, IdentityStore


def test_save_bytes_writes_and_returns_url(tmp_path):
    url = save_bytes(str(tmp_path / "exports"), "nested/a.png", b"abc", "/exports")
    assert url == "/exports/nested/a.png"
    assert (tmp_path / "exports" / "nested" / "a.png").read_bytes() == b"abc"


def test_save_bytes_refuses_to_escape_base(tmp_path):
    with pytest.raises(ValueError):
        save_bytes(str(tmp_path / "exports"), "../outside.png", b"abc", "/exports")
    assert not (tmp_path / "outside.png").exists()


def test_delete_file(tmp_path):
    base = tmp_path / "uploads"
    save_bytes(str(base), "thumb.png", b"x", "/uploads")
    assert delete_file(str(base), "/uploads", "/uploads/thumb.png") is True
    assert not (base / "thumb.png").exists()
    assert delete_file(str(base), "/uploads", "/uploads/thumb.png") is False
    assert delete_file(str(base), "/uploads", "/exports/thumb.png") is False
    assert delete_file(str(base), "/uploads", "/uploads/../../etc/passwd") is False


def _record(design_id, user_id, minutes=0):
    ts = datetime(2024, 1, 1, tzinfo=timezone.utc) + timedelta(minutes=minutes)
    return DesignRecord(id=design_id, user_id=user_id, title=design_id, created_at=ts, updated_at=ts)


def test_design_store_roundtrip_and_listing():
    store = DesignStore()
    store.put(_record("old", "u1", minutes=1))
    store.put(_record("new", "u1", minutes=5))
    store.put(_record("theirs", "u2"))

    assert store.get("old").title == "old"
    assert store.get("nope") is None
    assert [r.id for r in store.list_for_user("u1")] == ["new", "old"]
    assert [r.id for r in store.list_for_user("u2")] == ["theirs"]

    store.delete("old")
    assert store.get("old") is None
    with pytest.raises(NotFoundError):
        store.delete("old")


def test_design_store_hands_out_copies():
    store = DesignStore()
    store.put(_record("d1", "u1"))
    fetched = store.get("d1")
    fetched.design_data["elements"] = ["changed"]
    assert store.get("d1").design_data == {}


def test_identity_store():
    store = IdentityStore({"tok-1": "alice"})
    assert store.get("tok-1") == {"id": "alice"}
    assert store.get("tok-2") is None
    store.put("tok-2", {"id": "bob"})
    assert store.get("tok-2") == {"id": "bob"}
    store.delete("tok-1")
    assert store.get("tok-1") is None
    with pytest.raises(ValueError):
        store.put("tok-3", {})
