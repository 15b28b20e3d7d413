"""
Tests for the JSON-file record store against a temporary backing file.
"""
from __future__ import annotations

import json
import sys
import threading
from datetime import datetime, timezone
from pathlib import Path

import pytest

# Make the pengawas package importable when running from a checkout
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from pengawas.repositories import json_storage  # noqa: E402
from pengawas.repositories.errors import (  # noqa: E402
    RecordNotFoundError,
    StorageUnavailableError,
    ValidationPreconditionError,
)
from pengawas.repositories.json_storage import COLLECTIONS, JSONRecordStore  # noqa: E402


@pytest.fixture()
def db_file(tmp_path):
    return tmp_path / "db.json"


@pytest.fixture()
def store(db_file):
    with JSONRecordStore(db_file) as s:
        yield s


def _task(user_id="u1", **extra):
    data = {"userId": user_id, "title": "Rapat KKG", "category": "Rapat", "date": "2025-03-10"}
    data.update(extra)
    return data


def _supervision(user_id="u1", **extra):
    data = {
        "userId": user_id,
        "school": "SDN 1 Cibinong",
        "type": "Akademik",
        "date": "2025-03-12",
        "findings": "RPP belum lengkap",
    }
    data.update(extra)
    return data


def test_create_assigns_unique_id_and_created_at(store):
    before = datetime.now(timezone.utc)
    first = store.create_task(_task())
    second = store.create_task(_task())

    assert first["id"] and second["id"]
    assert first["id"] != second["id"]
    assert datetime.fromisoformat(first["createdAt"]) >= before


def test_create_task_fills_defaults(store):
    task = store.create_task({"userId": "u1", "title": "Visitasi", "category": "Kunjungan"})

    assert task["description"] is None
    assert task["photo1"] is None
    assert task["photo2"] is None
    assert task["completed"] is False
    assert task["date"] == datetime.now(timezone.utc).date().isoformat()


def test_create_drops_unknown_fields_and_blank_optionals_become_null(store):
    school = store.create_school(
        {
            "userId": "u1",
            "name": "SMPN 2",
            "address": "Jl. Merdeka 1",
            "contact": "0812",
            "principalName": "",
            "color": "blue",
        }
    )

    assert school["principalName"] is None
    assert school["principalNip"] is None
    assert "color" not in school
    assert set(school) == {"id", "userId", "name", "address", "contact", "principalName", "principalNip", "createdAt"}


def test_create_user_defaults_role(store):
    user = store.create_user({"username": "budi", "password": "hash", "fullName": "Budi"})
    assert user["role"] == "pengawas"
    assert store.get_user(user["id"])["username"] == "budi"
    assert store.get_user_by_username("budi")["id"] == user["id"]
    assert store.get_user_by_username("nobody") is None


def test_create_user_rejects_unknown_role(store):
    with pytest.raises(ValidationPreconditionError):
        store.create_user({"username": "x", "password": "h", "fullName": "X", "role": "kepala"})


def test_missing_required_field_is_rejected(store):
    with pytest.raises(ValidationPreconditionError) as excinfo:
        store.create_additional_task({"userId": "u1", "name": "Bimtek", "location": ""})
    assert "location" in str(excinfo.value)
    assert "organizer" in str(excinfo.value)
    assert store.get_additional_tasks("u1") == []


def test_supervision_type_and_school_are_checked(store):
    with pytest.raises(ValidationPreconditionError):
        store.create_supervision(_supervision(type="Kunjungan"))
    with pytest.raises(ValidationPreconditionError):
        store.create_supervision(_supervision(school=None))

    sup = store.create_supervision(_supervision(recommendations=None))
    assert sup["schoolId"] is None
    assert sup["recommendations"] is None


def test_round_trip_reload_matches_memory(store, db_file):
    store.create_user({"username": "budi", "password": "hash", "fullName": "Budi"})
    store.create_school({"userId": "u1", "name": "SDN 1", "address": "Jl. A", "contact": "021"})
    store.create_task(_task(completed=True, photo1="a.jpg"))
    store.create_supervision(_supervision(schoolId="s1"))
    store.create_additional_task(
        {"userId": "u1", "name": "Bimtek", "date": "2025-04-01", "location": "Bogor", "organizer": "Dinas"}
    )
    before = store.snapshot()

    with JSONRecordStore(db_file) as reloaded:
        assert reloaded.snapshot() == before


def test_backing_file_is_pretty_printed_object_with_five_arrays(store, db_file):
    store.create_task(_task())
    text = db_file.read_text(encoding="utf-8")
    data = json.loads(text)

    assert set(data) == set(COLLECTIONS)
    assert all(isinstance(data[name], list) for name in COLLECTIONS)
    assert "\n  " in text


def test_get_tasks_is_scoped_by_user_and_keeps_insertion_order(store):
    a1 = store.create_task(_task("alice", title="satu"))
    store.create_task(_task("bob", title="dua"))
    a2 = store.create_task(_task("alice", title="tiga"))

    tasks = store.get_tasks("alice")
    assert [t["id"] for t in tasks] == [a1["id"], a2["id"]]
    assert all(t["userId"] == "alice" for t in tasks)
    assert store.get_tasks("carol") == []


def test_returned_records_are_copies(store):
    task = store.create_task(_task())
    task["title"] = "diubah"
    store.get_tasks("u1")[0]["title"] = "diubah juga"

    assert store.get_task(task["id"])["title"] == "Rapat KKG"


def test_delete_missing_id_is_noop(store, db_file):
    store.create_task(_task())
    before = store.snapshot()
    mtime = db_file.stat().st_mtime_ns

    store.delete_task("does-not-exist")

    assert store.snapshot() == before
    assert db_file.stat().st_mtime_ns == mtime


def test_delete_respects_owner_scope(store):
    task = store.create_task(_task("alice"))

    store.delete_task(task["id"], user_id="bob")
    assert len(store.get_tasks("alice")) == 1

    store.delete_task(task["id"], user_id="alice")
    assert store.get_tasks("alice") == []


def test_delete_school_keeps_supervisions(store):
    school = store.create_school({"userId": "u1", "name": "SDN 1", "address": "Jl. A", "contact": "021"})
    store.create_supervision(_supervision(schoolId=school["id"]))

    store.delete_school(school["id"])

    assert store.get_schools("u1") == []
    assert len(store.get_supervisions("u1")) == 1


def test_delete_other_collections(store):
    sup = store.create_supervision(_supervision())
    extra = store.create_additional_task(
        {"userId": "u1", "name": "Bimtek", "location": "Bogor", "organizer": "Dinas"}
    )
    store.delete_supervision(sup["id"])
    store.delete_additional_task(extra["id"])

    assert store.get_supervisions("u1") == []
    assert store.get_additional_tasks("u1") == []


def test_update_missing_task_raises_not_found(store):
    with pytest.raises(RecordNotFoundError):
        store.update_task("nope", {"completed": True})


def test_update_merges_only_given_fields(store, db_file):
    task = store.create_task(_task(description="awal"))

    updated = store.update_task(task["id"], {"completed": True, "id": "hijack", "createdAt": "x", "userId": "bob"})

    assert updated["completed"] is True
    assert updated["id"] == task["id"]
    assert updated["createdAt"] == task["createdAt"]
    assert updated["userId"] == "u1"
    assert updated["description"] == "awal"
    assert updated["title"] == task["title"]
    on_disk = json.loads(db_file.read_text(encoding="utf-8"))["tasks"][0]
    assert on_disk == updated


def test_update_rejects_blank_required_fields(store, db_file):
    task = store.create_task(_task())
    before = db_file.read_text(encoding="utf-8")

    with pytest.raises(ValidationPreconditionError) as excinfo:
        store.update_task(task["id"], {"title": None, "category": ""})
    assert "title" in str(excinfo.value)
    assert "category" in str(excinfo.value)
    with pytest.raises(ValidationPreconditionError):
        store.update_task(task["id"], {"date": "  "})

    assert store.get_task(task["id"])["title"] == "Rapat KKG"
    assert db_file.read_text(encoding="utf-8") == before

    cleared = store.update_task(task["id"], {"description": None})
    assert cleared["description"] is None


def test_update_by_other_user_is_not_found(store):
    task = store.create_task(_task("alice"))
    with pytest.raises(RecordNotFoundError):
        store.update_task(task["id"], {"title": "x"}, user_id="bob")
    assert store.get_task(task["id"])["title"] == "Rapat KKG"


def test_supervisions_by_school_are_scoped_by_user(store):
    mine = store.create_supervision(_supervision("alice", schoolId="s1"))
    store.create_supervision(_supervision("bob", schoolId="s1"))
    store.create_supervision(_supervision("alice", schoolId="s2"))

    result = store.get_supervisions_by_school("s1", "alice")
    assert [s["id"] for s in result] == [mine["id"]]


def test_load_missing_file_gives_empty_store(db_file):
    with JSONRecordStore(db_file) as store:
        assert store.snapshot() == {name: [] for name in COLLECTIONS}
    assert not db_file.exists()


def test_load_corrupt_file_starts_empty_and_moves_file_aside(db_file):
    db_file.write_text("{not json", encoding="utf-8")

    with JSONRecordStore(db_file) as store:
        assert store.get_tasks("u1") == []
        store.create_task(_task())

    corrupt = db_file.with_name(db_file.name + ".corrupt")
    assert corrupt.read_text(encoding="utf-8") == "{not json"
    assert len(json.loads(db_file.read_text(encoding="utf-8"))["tasks"]) == 1


def test_load_fills_fields_missing_from_older_records(db_file):
    db_file.write_text(
        json.dumps({"tasks": [{"id": "t1", "userId": "u1", "title": "Lama", "category": "X", "date": "2024-01-01"}]}),
        encoding="utf-8",
    )

    with JSONRecordStore(db_file) as store:
        task = store.get_tasks("u1")[0]
        assert task["photo1"] is None
        assert task["completed"] is False
        assert store.get_schools("u1") == []


def test_write_failure_raises_and_keeps_memory_unchanged(store, db_file, monkeypatch):
    store.create_task(_task())
    before = store.snapshot()

    def boom(*args, **kwargs):
        raise OSError("disk full")

    monkeypatch.setattr(json_storage.os, "replace", boom)

    with pytest.raises(StorageUnavailableError):
        store.create_task(_task(title="gagal"))

    assert store.snapshot() == before
    assert list(db_file.parent.glob(f".{db_file.name}.*.tmp")) == []


def test_closed_store_refuses_operations(db_file):
    store = JSONRecordStore(db_file).open()
    store.close()
    with pytest.raises(StorageUnavailableError):
        store.create_task(_task())
    with pytest.raises(StorageUnavailableError):
        store.get_tasks("u1")


def test_concurrent_creates_do_not_lose_records(store, db_file):
    workers, per_worker = 8, 25
    errors = []

    def worker(n):
        try:
            for i in range(per_worker):
                store.create_task(_task(title=f"w{n}-{i}"))
        except Exception as exc:  # pragma: no cover - surfaced below
            errors.append(exc)

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(workers)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    tasks = store.get_tasks("u1")
    assert len(tasks) == workers * per_worker
    assert len({t["id"] for t in tasks}) == workers * per_worker
    with JSONRecordStore(db_file) as reloaded:
        assert len(reloaded.get_tasks("u1")) == workers * per_worker


def test_persist_on_unopened_or_closed_store_leaves_file_alone(db_file):
    with JSONRecordStore(db_file) as store:
        store.create_task(_task())
    before = db_file.read_text(encoding="utf-8")

    with pytest.raises(StorageUnavailableError):
        JSONRecordStore(db_file).persist()
    with pytest.raises(StorageUnavailableError):
        store.persist()

    assert db_file.read_text(encoding="utf-8") == before
    with JSONRecordStore(db_file) as reloaded:
        assert len(reloaded.get_tasks("u1")) == 1
