"""
============================================================
 Acuity Check — History Sinks
 One "append session record" capability, three flavours:
   LocalSink     → SQLite (acuity.database)
   FirestoreSink → Firestore (acuity.firebase_db)
   FallbackSink  → try remote, fall back to local on failure

 save_in_background() is fire-and-forget: scoring never
 waits on it, and a failed save is only logged.
============================================================
"""

import logging
import threading

from acuity import database
from acuity.firebase_db import FirebaseDB

log = logging.getLogger(__name__)


class HistorySink:
    """Anything that can append a finished-session record."""

    name = "sink"

    def append(self, record: dict) -> dict:
        raise NotImplementedError


class LocalSink(HistorySink):
    name = "local"

    def __init__(self, source: str = "local") -> None:
        self.source = source

    def append(self, record: dict) -> dict:
        row = database.log_vision_test(record, source=self.source)
        return {"ok": True, "local": True, "id": row.id}


class FirestoreSink(HistorySink):
    name = "firestore"

    def __init__(self, db: FirebaseDB) -> None:
        self.db = db

    def append(self, record: dict) -> dict:
        doc_id = self.db.add_vision_test(record)
        return {"ok": True, "id": doc_id}


class FallbackSink(HistorySink):
    """Primary sink first; on any failure the record goes to the fallback."""

    name = "fallback"

    def __init__(self, primary: HistorySink, fallback: HistorySink) -> None:
        self.primary = primary
        self.fallback = fallback

    def append(self, record: dict) -> dict:
        try:
            return self.primary.append(record)
        except Exception as e:
            log.warning("[HISTORY] Saving to %s failed, falling back to %s: %s",
                        self.primary.name, self.fallback.name, e)
        return self.fallback.append(record)


def build_sink(firebase: FirebaseDB | None = None) -> HistorySink:
    """Pick the sink at startup: Firestore with local fallback, or local only."""
    if firebase is not None and firebase.is_active:
        return FallbackSink(FirestoreSink(firebase), LocalSink(source="fallback"))
    return LocalSink()


def save_in_background(sink: HistorySink, record: dict,
                       on_done=None) -> threading.Thread:
    """Run sink.append on a daemon thread (non-blocking)."""
    def _worker():
        try:
            result = sink.append(record)
        except Exception as e:
            log.warning("[HISTORY] Could not save vision test: %s", e)
            result = {"ok": False, "error": str(e)}
        else:
            log.info("[HISTORY] Vision test saved via %s: %s", sink.name, result)
        if on_done is not None:
            on_done(result)

    t = threading.Thread(target=_worker, daemon=True, name="History-Save")
    t.start()
    return t
