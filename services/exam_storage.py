"""Local exam attempt caches.

- ExamAttemptStorage: per-user, persistent, keyed by exam id
    result      -> written once on submit (or backfilled), never expires
    in_progress -> written on start, cleared on submit
- AttemptSessionStore: tab-scoped attempt meta keyed by attempt id
  (the Flask session here), deleted on submit.

Reads never raise: a missing or corrupt entry reads as None.
"""
from __future__ import annotations

import json
import logging
import threading
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, MutableMapping, Optional

from extensions import db
from models.exam_cache import ExamInProgressCache, ExamResultCache

logger = logging.getLogger(__name__)

Listener = Callable[[], None]


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def safe_loads(raw: Optional[str]) -> Optional[Dict[str, Any]]:
    if not raw:
        return None
    try:
        value = json.loads(raw)
    except ValueError:
        return None
    return value if isinstance(value, dict) else None


def safe_dumps(value: Any) -> Optional[str]:
    try:
        return json.dumps(value or {}, ensure_ascii=False)
    except (TypeError, ValueError):
        return None


def _blank(exam_id: Any) -> bool:
    return exam_id is None or exam_id == ""


class StorageEvents:
    """Subscribers notified after every cache write or clear."""

    def __init__(self):
        self._listeners: List[Listener] = []
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._listeners)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        if not callable(listener):
            return lambda: None
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def emit(self) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            listener()


class UserStorageEvents:
    """One StorageEvents per user, so a write only reaches that user's pages."""

    def __init__(self):
        self._by_user: Dict[Any, StorageEvents] = {}
        self._lock = threading.Lock()

    def for_user(self, user_id: Any) -> StorageEvents:
        with self._lock:
            events = self._by_user.get(user_id)
            if events is None:
                events = self._by_user[user_id] = StorageEvents()
            return events


class ExamAttemptStorage:
    def __init__(self, user_id: int, events: Optional[StorageEvents] = None):
        self.user_id = user_id
        self.events = events if events is not None else StorageEvents()

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        return self.events.subscribe(listener)

    def _row(self, model, exam_id: Any):
        return model.query.filter_by(user_id=self.user_id, exam_id=str(exam_id)).first()

    def _read(self, model, exam_id: Any) -> Optional[Dict[str, Any]]:
        if _blank(exam_id):
            return None
        row = self._row(model, exam_id)
        return safe_loads(row.payload_json) if row is not None else None

    def _write(self, model, exam_id: Any, value: Any) -> None:
        if _blank(exam_id):
            return
        raw = safe_dumps(value)
        if raw is None:
            logger.warning("exam %s: %s payload is not serializable, skipped", exam_id, model.__tablename__)
            return

        row = self._row(model, exam_id)
        if row is None:
            row = model(user_id=self.user_id, exam_id=str(exam_id), payload_json=raw)
            db.session.add(row)
        else:
            row.payload_json = raw
        db.session.commit()
        self.events.emit()

    # ---- result ----

    def get_result(self, exam_id: Any) -> Optional[Dict[str, Any]]:
        return self._read(ExamResultCache, exam_id)

    def set_result(self, exam_id: Any, result: Dict[str, Any]) -> None:
        self._write(ExamResultCache, exam_id, result)

    # ---- in progress ----

    def get_in_progress(self, exam_id: Any) -> Optional[Dict[str, Any]]:
        return self._read(ExamInProgressCache, exam_id)

    def set_in_progress(self, exam_id: Any, meta: Dict[str, Any]) -> None:
        self._write(ExamInProgressCache, exam_id, meta)

    def clear_in_progress(self, exam_id: Any) -> None:
        if _blank(exam_id):
            return
        row = self._row(ExamInProgressCache, exam_id)
        if row is None:
            return
        db.session.delete(row)
        db.session.commit()
        self.events.emit()


class AttemptSessionStore:
    """Attempt meta ({examId, courseId, startedAt, endAt, remainingSeconds}) by attempt id."""

    def __init__(self, mapping: MutableMapping[str, Any]):
        self.mapping = mapping

    @staticmethod
    def key(attempt_id: Any) -> str:
        return f"attempt:{attempt_id}"

    def get(self, attempt_id: Any) -> Optional[Dict[str, Any]]:
        raw = self.mapping.get(self.key(attempt_id))
        if isinstance(raw, dict):
            return dict(raw)
        return safe_loads(raw) if isinstance(raw, str) else None

    def set(self, attempt_id: Any, meta: Dict[str, Any]) -> None:
        self.mapping[self.key(attempt_id)] = dict(meta or {})

    def update(self, attempt_id: Any, **changes: Any) -> None:
        meta = self.get(attempt_id)
        if meta is None:
            return
        meta.update(changes)
        self.set(attempt_id, meta)

    def remove(self, attempt_id: Any) -> None:
        self.mapping.pop(self.key(attempt_id), None)
