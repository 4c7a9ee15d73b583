"""
Tests for the local exam caches
"""
from extensions import db
from models.exam_cache import ExamResultCache
from services.exam_storage import AttemptSessionStore, ExamAttemptStorage, StorageEvents, UserStorageEvents


class TestExamAttemptStorage:
    """Test the per-user result / in-progress caches"""

    def test_result_round_trip_is_per_user(self, app, user):
        storage = ExamAttemptStorage(user.id)
        storage.set_result(5, {"attemptId": 77, "score": 8})

        assert storage.get_result(5) == {"attemptId": 77, "score": 8}
        assert storage.get_result("5") == {"attemptId": 77, "score": 8}
        assert ExamAttemptStorage(user.id + 1).get_result(5) is None

    def test_overwrite_keeps_one_row(self, app, user):
        storage = ExamAttemptStorage(user.id)
        storage.set_result(5, {"score": 1})
        storage.set_result(5, {"score": 2})

        assert storage.get_result(5) == {"score": 2}
        assert ExamResultCache.query.count() == 1

    def test_corrupt_payload_reads_as_none(self, app, user):
        db.session.add(ExamResultCache(user_id=user.id, exam_id="5", payload_json="{not json"))
        db.session.commit()

        assert ExamAttemptStorage(user.id).get_result(5) is None

    def test_blank_exam_id_is_ignored(self, app, user):
        storage = ExamAttemptStorage(user.id)
        storage.set_in_progress("", {"attemptId": 1})

        assert storage.get_in_progress("") is None
        assert storage.get_in_progress(None) is None

    def test_unserializable_payload_is_skipped(self, app, user):
        storage = ExamAttemptStorage(user.id)
        storage.set_result(5, {"when": object()})

        assert storage.get_result(5) is None

    def test_clear_in_progress(self, app, user):
        storage = ExamAttemptStorage(user.id)
        storage.set_in_progress(5, {"attemptId": 77})
        storage.clear_in_progress(5)

        assert storage.get_in_progress(5) is None

    def test_listeners_fire_on_every_write(self, app, user):
        events = StorageEvents()
        storage = ExamAttemptStorage(user.id, events)
        fired = []
        unsubscribe = storage.subscribe(lambda: fired.append(True))

        storage.set_in_progress(5, {"attemptId": 77})
        storage.set_result(5, {"score": 8})
        storage.clear_in_progress(5)
        assert len(fired) == 3

        unsubscribe()
        storage.set_result(5, {"score": 9})
        assert len(fired) == 3

    def test_clearing_missing_entry_does_not_notify(self, app, user):
        storage = ExamAttemptStorage(user.id)
        fired = []
        storage.subscribe(lambda: fired.append(True))

        storage.clear_in_progress(5)

        assert fired == []

    def test_writes_only_reach_the_same_user(self, app, user):
        registry = UserStorageEvents()
        mine = ExamAttemptStorage(user.id, registry.for_user(user.id))
        theirs = ExamAttemptStorage(user.id + 1, registry.for_user(user.id + 1))
        mine_fired, theirs_fired = [], []
        mine.subscribe(lambda: mine_fired.append(True))
        theirs.subscribe(lambda: theirs_fired.append(True))

        mine.set_result(5, {"score": 8})

        assert mine_fired == [True]
        assert theirs_fired == []
        assert registry.for_user(user.id) is mine.events

    def test_empty_channel_is_kept(self, app, user):
        events = StorageEvents()
        assert ExamAttemptStorage(user.id, events).events is events


class TestAttemptSessionStore:
    """Test the tab-scoped attempt meta"""

    def test_set_get_update_remove(self):
        mapping = {}
        store = AttemptSessionStore(mapping)

        store.set(77, {"examId": 5, "remainingSeconds": 60})
        assert "attempt:77" in mapping

        store.update(77, remainingSeconds=30)
        assert store.get(77) == {"examId": 5, "remainingSeconds": 30}

        store.remove(77)
        assert store.get(77) is None

    def test_update_of_missing_entry_is_a_no_op(self):
        mapping = {}
        AttemptSessionStore(mapping).update(1, remainingSeconds=5)
        assert mapping == {}

    def test_corrupt_string_reads_as_none(self):
        store = AttemptSessionStore({"attempt:1": "not-json"})
        assert store.get(1) is None
