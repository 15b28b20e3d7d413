"""
JSON-file record store.

Users, schools, tasks, supervisions and additional tasks live in memory and the
whole state is rewritten to a single pretty-printed JSON file after every
mutation. Writes go to a temp file in the same directory and are renamed over
the backing file, so a crash mid-write leaves the previous version intact.

Records are plain dicts with the camelCase keys used on disk. Every public
method returns copies; callers never hold references into the store.
"""

from __future__ import annotations

import contextlib
import json
import logging
import math
import os
import tempfile
import threading
import uuid
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional

from pengawas.domain.periods import in_month, in_year, normalize_date, today_iso, utc_now_iso

from .errors import RecordNotFoundError, StorageUnavailableError, ValidationPreconditionError

log = logging.getLogger(__name__)

Record = Dict[str, Any]

USERS = "users"
SCHOOLS = "schools"
TASKS = "tasks"
SUPERVISIONS = "supervisions"
ADDITIONAL_TASKS = "additionalTasks"
COLLECTIONS = (USERS, SCHOOLS, TASKS, SUPERVISIONS, ADDITIONAL_TASKS)

USER_ROLES = ("admin", "pengawas")
SUPERVISION_TYPES = ("Akademik", "Manajerial")

_REQUIRED = object()
_TODAY = object()

# Field set of each collection (besides id/createdAt) and the insert default.
FIELDS: Dict[str, Dict[str, Any]] = {
    USERS: {
        "username": _REQUIRED,
        "password": _REQUIRED,
        "fullName": _REQUIRED,
        "role": "pengawas",
    },
    SCHOOLS: {
        "userId": _REQUIRED,
        "name": _REQUIRED,
        "address": _REQUIRED,
        "contact": _REQUIRED,
        "principalName": None,
        "principalNip": None,
    },
    TASKS: {
        "userId": _REQUIRED,
        "title": _REQUIRED,
        "category": _REQUIRED,
        "date": _TODAY,
        "description": None,
        "photo1": None,
        "photo2": None,
        "completed": False,
    },
    SUPERVISIONS: {
        "userId": _REQUIRED,
        "schoolId": None,
        "school": None,
        "type": _REQUIRED,
        "date": _TODAY,
        "findings": _REQUIRED,
        "recommendations": None,
        "photo1": None,
        "photo2": None,
    },
    ADDITIONAL_TASKS: {
        "userId": _REQUIRED,
        "name": _REQUIRED,
        "date": _TODAY,
        "location": _REQUIRED,
        "organizer": _REQUIRED,
        "description": None,
        "photo1": None,
        "photo2": None,
    },
}

IMMUTABLE_FIELDS = frozenset({"id", "userId", "createdAt"})


def _empty() -> dict:
    return {name: [] for name in COLLECTIONS}


def _blank(value: Any) -> bool:
    if value is None:
        return True
    return isinstance(value, str) and not value.strip()


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


def _normalize(raw: Mapping[str, Any]) -> dict:
    """Default missing collections and fill fields absent from older records."""
    db = _empty()
    for name in COLLECTIONS:
        items = raw.get(name)
        if items is None:
            continue
        if not isinstance(items, list):
            log.warning("Ignoring collection %r: expected a list, got %s", name, type(items).__name__)
            continue
        fields = FIELDS[name]
        for item in items:
            if not isinstance(item, dict):
                log.warning("Ignoring malformed entry in %r: %r", name, item)
                continue
            record = dict(item)
            for field in fields:
                record.setdefault(field, False if field == "completed" else None)
            db[name].append(record)
    return db


def completion_rate(completed: int, total: int) -> int:
    """Percentage of completed tasks rounded half up; 0 when there are no tasks."""
    if total <= 0:
        return 0
    return int(math.floor(completed / total * 100 + 0.5))


def _school_key(supervision: Mapping[str, Any]) -> Optional[str]:
    school_id = supervision.get("schoolId")
    if not _blank(school_id):
        return f"id:{school_id}"
    name = supervision.get("school")
    if _blank(name):
        return None
    return f"name:{str(name).strip().lower()}"


class JSONRecordStore:
    """Durable record store backed by one JSON file."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        self._db: dict = _empty()
        self._lock = threading.RLock()
        self._is_open = False

    # -------------------------- lifecycle --------------------------
    def open(self) -> "JSONRecordStore":
        with self._lock:
            self.load()
            self._is_open = True
        return self

    def close(self) -> None:
        with self._lock:
            self._is_open = False

    @property
    def is_open(self) -> bool:
        return self._is_open

    def __enter__(self) -> "JSONRecordStore":
        return self.open()

    def __exit__(self, *exc_info) -> None:
        self.close()

    def load(self) -> None:
        """Read the backing file. Never raises: failures degrade to an empty store."""
        with self._lock:
            self._db = self._read()

    def persist(self) -> None:
        with self._lock:
            self._ensure_open()
            self._write(self._db)

    @contextlib.contextmanager
    def atomic(self) -> Iterator["JSONRecordStore"]:
        """Hold the store lock across several calls (read-check-write sequences)."""
        with self._lock:
            yield self

    def snapshot(self) -> dict:
        """Deep-enough copy of every collection (records are flat)."""
        with self._lock:
            return {name: [dict(r) for r in self._db[name]] for name in COLLECTIONS}

    def _read(self) -> dict:
        try:
            with self.path.open("r", encoding="utf-8") as fh:
                raw = json.load(fh)
        except FileNotFoundError:
            log.info("No database at %s yet; starting empty", self.path)
            return _empty()
        except ValueError as exc:
            log.warning("Database %s is not valid JSON (%s); starting empty", self.path, exc)
            self._quarantine()
            return _empty()
        except OSError as exc:
            log.warning("Could not read database %s (%s); starting empty", self.path, exc)
            return _empty()
        if not isinstance(raw, dict):
            log.warning("Database %s does not hold a JSON object; starting empty", self.path)
            self._quarantine()
            return _empty()
        db = _normalize(raw)
        log.info(
            "Loaded %s: %s",
            self.path,
            ", ".join(f"{len(db[name])} {name}" for name in COLLECTIONS),
        )
        return db

    def _quarantine(self) -> None:
        # Keep the unreadable file around instead of overwriting it on the next write.
        target = self.path.with_name(self.path.name + ".corrupt")
        try:
            os.replace(self.path, target)
        except OSError as exc:
            log.warning("Could not move %s aside: %s", self.path, exc)
        else:
            log.warning("Moved unreadable database to %s", target)

    def _write(self, state: Mapping[str, Any]) -> None:
        try:
            payload = json.dumps(state, ensure_ascii=False, indent=2)
        except (TypeError, ValueError) as exc:
            raise ValidationPreconditionError(f"Record contains a value that is not JSON serializable: {exc}") from exc
        directory = self.path.parent
        tmp_name: Optional[str] = None
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", suffix=".tmp", dir=directory)
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(payload)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_name, self.path)
            tmp_name = None
        except OSError as exc:
            log.exception("Failed to write database %s", self.path)
            raise StorageUnavailableError(f"Could not write {self.path}: {exc}") from exc
        finally:
            if tmp_name is not None:
                with contextlib.suppress(OSError):
                    os.unlink(tmp_name)

    def _ensure_open(self) -> None:
        if not self._is_open:
            raise StorageUnavailableError("Record store is not open")

    def _commit(self, name: str, records: List[Record]) -> None:
        """Write the new collection first; memory only changes when the write succeeded."""
        state = dict(self._db)
        state[name] = records
        self._write(state)
        self._db = state

    # -------------------------- generic helpers --------------------------
    def _build(self, name: str, data: Mapping[str, Any]) -> Record:
        record: Record = {"id": str(uuid.uuid4())}
        missing = []
        for field, default in FIELDS[name].items():
            value = data.get(field)
            if field == "date":
                value = normalize_date(value)
            if _blank(value):
                if default is _REQUIRED:
                    missing.append(field)
                    value = None
                elif default is _TODAY:
                    value = today_iso()
                else:
                    value = default
            elif field == "completed":
                value = _as_bool(value)
            record[field] = value
        if missing:
            raise ValidationPreconditionError(f"Missing required field(s) for {name}: {', '.join(missing)}")
        record["createdAt"] = utc_now_iso()
        return record

    def _insert(self, name: str, record: Record) -> Record:
        with self._lock:
            self._ensure_open()
            self._commit(name, [*self._db[name], record])
        return dict(record)

    def _owned(self, name: str, user_id: str) -> Iterable[Record]:
        return (r for r in self._db[name] if r.get("userId") == user_id)

    def _list(self, name: str, user_id: str) -> List[Record]:
        with self._lock:
            self._ensure_open()
            return [dict(r) for r in self._owned(name, user_id)]

    def _find(self, name: str, field: str, value: Any) -> Optional[Record]:
        with self._lock:
            self._ensure_open()
            for record in self._db[name]:
                if record.get(field) == value:
                    return dict(record)
        return None

    def _delete(self, name: str, record_id: str, user_id: Optional[str]) -> None:
        with self._lock:
            self._ensure_open()
            current = self._db[name]
            remaining = [
                r
                for r in current
                if not (r.get("id") == record_id and (user_id is None or r.get("userId") == user_id))
            ]
            if len(remaining) == len(current):
                return
            self._commit(name, remaining)

    # -------------------------- users --------------------------
    def get_user(self, user_id: str) -> Optional[Record]:
        return self._find(USERS, "id", user_id)

    def get_user_by_username(self, username: str) -> Optional[Record]:
        return self._find(USERS, "username", username)

    def create_user(self, data: Mapping[str, Any]) -> Record:
        """Insert a user. Username uniqueness is the caller's precondition."""
        record = self._build(USERS, data)
        if record["role"] not in USER_ROLES:
            raise ValidationPreconditionError(f"Unknown role: {record['role']!r}")
        return self._insert(USERS, record)

    # -------------------------- schools --------------------------
    def get_schools(self, user_id: str) -> List[Record]:
        return self._list(SCHOOLS, user_id)

    def create_school(self, data: Mapping[str, Any]) -> Record:
        return self._insert(SCHOOLS, self._build(SCHOOLS, data))

    def delete_school(self, school_id: str, *, user_id: Optional[str] = None) -> None:
        # Supervisions that point at the school are kept.
        self._delete(SCHOOLS, school_id, user_id)

    # -------------------------- tasks --------------------------
    def get_tasks(self, user_id: str) -> List[Record]:
        return self._list(TASKS, user_id)

    def get_task(self, task_id: str) -> Optional[Record]:
        return self._find(TASKS, "id", task_id)

    def create_task(self, data: Mapping[str, Any]) -> Record:
        return self._insert(TASKS, self._build(TASKS, data))

    def update_task(self, task_id: str, patch: Mapping[str, Any], *, user_id: Optional[str] = None) -> Record:
        """Shallow-merge ``patch`` onto the task. id, userId and createdAt never change."""
        changes = {k: v for k, v in dict(patch).items() if k not in IMMUTABLE_FIELDS}
        if "date" in changes:
            changes["date"] = normalize_date(changes["date"])
        if "completed" in changes:
            changes["completed"] = _as_bool(changes["completed"])
        blank = [
            field
            for field, default in FIELDS[TASKS].items()
            if (default is _REQUIRED or default is _TODAY) and field in changes and _blank(changes[field])
        ]
        if blank:
            raise ValidationPreconditionError(f"Required field(s) cannot be empty: {', '.join(blank)}")
        with self._lock:
            self._ensure_open()
            records = list(self._db[TASKS])
            for index, record in enumerate(records):
                if record.get("id") != task_id:
                    continue
                if user_id is not None and record.get("userId") != user_id:
                    break
                merged = {**record, **changes}
                records[index] = merged
                self._commit(TASKS, records)
                return dict(merged)
        raise RecordNotFoundError(f"Task {task_id} not found")

    def delete_task(self, task_id: str, *, user_id: Optional[str] = None) -> None:
        self._delete(TASKS, task_id, user_id)

    # -------------------------- supervisions --------------------------
    def get_supervisions(self, user_id: str) -> List[Record]:
        return self._list(SUPERVISIONS, user_id)

    def get_supervisions_by_school(self, school_id: str, user_id: str) -> List[Record]:
        with self._lock:
            self._ensure_open()
            return [dict(r) for r in self._owned(SUPERVISIONS, user_id) if r.get("schoolId") == school_id]

    def create_supervision(self, data: Mapping[str, Any]) -> Record:
        record = self._build(SUPERVISIONS, data)
        if _blank(record["school"]) and _blank(record["schoolId"]):
            raise ValidationPreconditionError("Supervision needs a school or schoolId")
        if record["type"] not in SUPERVISION_TYPES:
            raise ValidationPreconditionError(f"Unknown supervision type: {record['type']!r}")
        return self._insert(SUPERVISIONS, record)

    def delete_supervision(self, supervision_id: str, *, user_id: Optional[str] = None) -> None:
        self._delete(SUPERVISIONS, supervision_id, user_id)

    # -------------------------- additional tasks --------------------------
    def get_additional_tasks(self, user_id: str) -> List[Record]:
        return self._list(ADDITIONAL_TASKS, user_id)

    def create_additional_task(self, data: Mapping[str, Any]) -> Record:
        return self._insert(ADDITIONAL_TASKS, self._build(ADDITIONAL_TASKS, data))

    def delete_additional_task(self, task_id: str, *, user_id: Optional[str] = None) -> None:
        self._delete(ADDITIONAL_TASKS, task_id, user_id)

    # -------------------------- reports --------------------------
    def get_monthly_stats(self, user_id: str, year: int, month: int) -> Dict[str, int]:
        with self._lock:
            self._ensure_open()
            tasks = [t for t in self._owned(TASKS, user_id) if in_month(t.get("date"), year, month)]
            supervisions = sum(1 for s in self._owned(SUPERVISIONS, user_id) if in_month(s.get("date"), year, month))
            additional = sum(1 for a in self._owned(ADDITIONAL_TASKS, user_id) if in_month(a.get("date"), year, month))
        return {
            "totalTasks": len(tasks),
            "completedTasks": sum(1 for t in tasks if t.get("completed")),
            "supervisions": supervisions,
            "additionalTasks": additional,
        }

    def get_yearly_stats(self, user_id: str, year: int) -> Dict[str, Any]:
        """
        Yearly summary for the report renderer.

        ``schools`` counts the distinct schools actually visited in that year's
        supervisions (by schoolId, else by school name), not the School records
        the user has registered; a registered school without a visit that year
        is not counted.
        """
        with self._lock:
            self._ensure_open()
            supervisions = [s for s in self._owned(SUPERVISIONS, user_id) if in_year(s.get("date"), year)]
            tasks = [t for t in self._owned(TASKS, user_id) if in_year(t.get("date"), year)]
        schools = {key for key in map(_school_key, supervisions) if key}
        completed = sum(1 for t in tasks if t.get("completed"))
        return {
            "totalSupervisions": len(supervisions),
            "schools": len(schools),
            "monthlyAverage": round(len(supervisions) / 12, 1),
            "completionRate": completion_rate(completed, len(tasks)),
            "totalTasks": len(tasks),
            "completedTasks": completed,
        }
