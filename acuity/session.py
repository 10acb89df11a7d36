"""
============================================================
 Acuity Check — Test Controller
 Holds the current TestSession for the web layer, routes
 answers through the staircase, and on completion scores
 the session and hands it to the history sink (not awaited).

 HTTP and SocketIO handlers run on separate threads, so every
 read-transition-write of the session happens under one lock.
============================================================
"""

import logging
import threading

from acuity import history, scoring, staircase
from acuity.staircase import StaircaseError, TestSession, Transition

log = logging.getLogger(__name__)


class TestController:
    """One subject, one screen: a single session at a time."""

    __test__ = False  # not a pytest class

    def __init__(self, sink: history.HistorySink | None = None, rng=None) -> None:
        self.sink = sink
        self.rng = rng
        self.session: TestSession | None = None
        self.summary: scoring.Summary | None = None
        self._lock = threading.Lock()

    @property
    def active(self) -> bool:
        session = self.session
        return session is not None and session.active

    def start(self) -> dict:
        """Start (or retry) a test; nothing from a previous run survives."""
        with self._lock:
            self.session = staircase.start_test(self.rng)
            self.summary = None
            trial = staircase.trial_payload(self.session)
        log.info("[ENGINE] Test started (right eye first)")
        return trial

    def current_trial(self) -> dict | None:
        session = self.session
        if session is None or not session.active:
            return None
        return staircase.trial_payload(session)

    def answer(self, direction) -> dict:
        """
        Apply one button press. Returns a dict with the event, the next
        trial (if any), the finished eye's result and, at the end, the
        summary.
        """
        with self._lock:
            if self.session is None:
                raise StaircaseError("No active test; start a new test first")
            t: Transition = staircase.respond(self.session, direction, self.rng)
            self.session = t.session
            if t.event == staircase.TEST_COMPLETE:
                self.summary = scoring.summarize(t.session.right_result, t.session.left_result)
            summary = self.summary

        out = {"event": t.event, "eye": t.session.current_eye}
        if t.eye_result is not None:
            out["eye_result"] = {"eye": t.completed_eye, **t.eye_result.to_dict()}
            log.info("[ENGINE] %s eye finished at %s", t.completed_eye, t.eye_result.acuity_label)

        if t.event == staircase.TEST_COMPLETE:
            out["summary"] = summary.to_dict()
            self._save(summary)
        else:
            out["trial"] = staircase.trial_payload(t.session)
        return out

    def _save(self, summary: scoring.Summary) -> None:
        if self.sink is None:
            return
        history.save_in_background(self.sink, summary.history_record())
