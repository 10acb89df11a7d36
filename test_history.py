"""History sinks + test controller checks: SQLite in a temp dir, fake remote."""
import random
import threading
import time
from types import SimpleNamespace

import pytest

from acuity import database, history
from acuity.firebase_db import FirebaseDB
from acuity.session import TestController
from acuity.staircase import StaircaseError

RECORD = {
    "timestamp": "2026-03-01T12:30:00+00:00",
    "right_eye": "6/6",
    "left_eye": "6/18",
    "right_logmar": 0.1,
    "left_logmar": 0.4,
}


@pytest.fixture(autouse=True)
def local_db(tmp_path):
    database.init_db(f"sqlite:///{tmp_path / 'history.db'}")
    yield
    database.Session.remove()


class BrokenSink(history.HistorySink):
    name = "broken"

    def append(self, record):
        raise ConnectionError("offline")


class MemorySink(history.HistorySink):
    name = "memory"

    def __init__(self):
        self.records = []

    def append(self, record):
        self.records.append(record)
        return {"ok": True}


def test_local_sink_persists():
    out = history.LocalSink().append(RECORD)
    assert out["ok"] and out["local"]
    rows = database.get_recent_tests()
    assert len(rows) == 1
    assert rows[0]["right_eye"] == "6/6"
    assert rows[0]["left_logmar"] == 0.4
    assert rows[0]["source"] == "local"


def test_fallback_on_remote_failure():
    sink = history.FallbackSink(BrokenSink(), history.LocalSink(source="fallback"))
    out = sink.append(RECORD)
    assert out["local"]
    assert database.get_recent_tests()[0]["source"] == "fallback"


def test_fallback_not_used_when_primary_ok():
    primary = MemorySink()
    sink = history.FallbackSink(primary, history.LocalSink())
    sink.append(RECORD)
    assert primary.records == [RECORD]
    assert database.get_recent_tests() == []


def test_background_save_swallows_total_failure():
    results = []
    sink = history.FallbackSink(BrokenSink(), BrokenSink())
    t = history.save_in_background(sink, RECORD, on_done=results.append)
    t.join(timeout=5)
    assert results and results[0]["ok"] is False


def test_build_sink_without_credentials():
    fb = FirebaseDB()
    assert not fb.is_active
    assert isinstance(history.build_sink(fb), history.LocalSink)


def test_firestore_inactive_raises():
    with pytest.raises(RuntimeError):
        FirebaseDB().add_vision_test(RECORD)


def test_safe_data_cleans_values():
    clean = FirebaseDB._safe_data({"a": None, "b": float("nan"), "c": 1.5})
    assert clean == {"b": 0.0, "c": 1.5}


def _play_left_weaker(ctl: TestController):
    """Right eye perfect, left eye fails at step 3."""
    out = None
    for _ in range(21):
        out = ctl.answer(ctl.session.direction)
    assert out["event"] == "eye_switch"
    assert out["eye_result"]["eye"] == "right"
    for _ in range(10):
        out = ctl.answer(ctl.session.direction)
    wrong = {"up": "down", "down": "up", "left": "right", "right": "left"}
    for _ in range(3):
        out = ctl.answer(wrong[ctl.session.direction.value])
    return out


def test_controller_end_to_end_saves_history():
    sink = MemorySink()
    ctl = TestController(sink=sink, rng=random.Random(3))
    first = ctl.start()
    assert first["eye"] == "right" and first["step_index"] == 0

    out = _play_left_weaker(ctl)
    assert out["event"] == "test_complete"
    assert "trial" not in out
    summary = out["summary"]
    assert summary["weaker_eye"] == "left"
    assert summary["weakness_percentage"] == 30
    assert summary["metrics"]["eyes"]["left"]["severity"] == "Moderate"

    for _ in range(50):
        if sink.records:
            break
        time.sleep(0.02)
    assert sink.records and sink.records[0]["left_eye"] == "6/18"
    assert not ctl.active


def test_controller_summary_survives_storage_failure():
    ctl = TestController(sink=history.FallbackSink(BrokenSink(), BrokenSink()),
                         rng=random.Random(5))
    ctl.start()
    out = _play_left_weaker(ctl)
    assert out["summary"]["weaker_eye"] == "left"


def test_controller_requires_start():
    with pytest.raises(StaircaseError):
        TestController().answer("up")


def test_controller_retry_resets():
    ctl = TestController(rng=random.Random(9))
    ctl.start()
    ctl.answer(ctl.session.direction)
    ctl.answer(ctl.session.direction)
    trial = ctl.start()
    assert ctl.session.run.correct_streak == 0
    assert trial["step_index"] == 0
    assert ctl.summary is None


class SlowUpRng:
    """Always shows "up", and is slow about it."""

    def choice(self, seq):
        time.sleep(0.05)
        return next(d for d in seq if d.value == "up")


def test_concurrent_answers_are_serialized():
    ctl = TestController(rng=SlowUpRng())
    ctl.start()
    threads = [threading.Thread(target=ctl.answer, args=("up",)) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=5)
    assert ctl.session.run.correct_streak == 2


class FakeCollection:
    def __init__(self):
        self.docs = []

    def add(self, data):
        self.docs.append(data)
        return None, SimpleNamespace(id=f"doc{len(self.docs)}")


class FakeFirestore:
    def __init__(self):
        self.collections = {}

    def collection(self, name):
        return self.collections.setdefault(name, FakeCollection())


def test_firestore_sink_writes_clean_record():
    fb = FirebaseDB(collection="visionTests")
    fb._db, fb._initialized = FakeFirestore(), True
    out = history.FirestoreSink(fb).append({**RECORD, "note": None})
    assert out == {"ok": True, "id": "doc1"}
    doc = fb._db.collections["visionTests"].docs[0]
    assert "note" not in doc and "_written_at" in doc
    assert doc["left_eye"] == "6/18"
