"""
============================================================
 Acuity Check — Staircase Engine
 Per-eye adaptive procedure: 3 correct in a row → next
 (smaller) step, 3 wrong in a row → eye run ends. Right eye
 first, then left, then the session is scored.

 Session state is an immutable TestSession value; every
 response returns a new one via respond().
============================================================
"""

from dataclasses import dataclass, field, replace

import config
from acuity.optotypes import ACUITY_STEPS, LAST_STEP, ROTATIONS, Direction, pick_direction

RIGHT = "right"
LEFT = "left"

# Transition events
NEXT_TRIAL = "next_trial"
ADVANCE = "advance"
EYE_SWITCH = "eye_switch"
TEST_COMPLETE = "test_complete"


class StaircaseError(RuntimeError):
    """Invalid use of the staircase (programmer error, not a runtime fault)."""


@dataclass(frozen=True)
class EyeRunState:
    step_index: int = 0
    correct_streak: int = 0
    wrong_streak: int = 0
    smallest_correct_step: int | None = None


@dataclass(frozen=True)
class EyeResult:
    step_index: int
    acuity_label: str
    logmar: float
    millimeter_size: float

    @classmethod
    def from_step(cls, index: int) -> "EyeResult":
        step = ACUITY_STEPS[index]
        return cls(index, step.acuity_label, step.logmar, step.millimeter_size)

    def to_dict(self) -> dict:
        return {
            "step_index": self.step_index,
            "acuity": self.acuity_label,
            "logmar": self.logmar,
            "mm": self.millimeter_size,
        }


@dataclass(frozen=True)
class TestSession:
    __test__ = False  # not a pytest class

    current_eye: str = RIGHT
    run: EyeRunState = field(default_factory=EyeRunState)
    direction: Direction = Direction.UP
    right_result: EyeResult | None = None
    left_result: EyeResult | None = None
    active: bool = True

    @property
    def step(self):
        return ACUITY_STEPS[self.run.step_index]

    @property
    def complete(self) -> bool:
        return self.right_result is not None and self.left_result is not None


@dataclass(frozen=True)
class Transition:
    session: TestSession
    event: str
    eye_result: EyeResult | None = None
    completed_eye: str | None = None


def start_test(rng=None) -> TestSession:
    """Fresh session: right eye, largest optotype, no streaks."""
    return TestSession(direction=pick_direction(rng))


def finalize_eye(run: EyeRunState) -> EyeResult:
    """Best step answered correctly, or the step the run ended on."""
    index = run.smallest_correct_step
    if index is None:
        index = run.step_index
    return EyeResult.from_step(index)


def _end_eye(session: TestSession, run: EyeRunState, rng) -> Transition:
    result = finalize_eye(run)
    eye = session.current_eye
    if eye == RIGHT:
        nxt = TestSession(
            current_eye=LEFT,
            run=EyeRunState(),
            direction=pick_direction(rng),
            right_result=result,
        )
        return Transition(nxt, EYE_SWITCH, result, RIGHT)

    done = replace(session, run=run, left_result=result, active=False)
    return Transition(done, TEST_COMPLETE, result, LEFT)


def respond(session: TestSession, answer, rng=None) -> Transition:
    """Apply one subject response and return the resulting transition."""
    if not session.active:
        raise StaircaseError("No active test; start a new test first")
    answer = Direction.parse(answer)
    threshold = config.STREAK_THRESHOLD
    run = session.run

    if answer == session.direction:
        run = replace(
            run,
            correct_streak=run.correct_streak + 1,
            wrong_streak=0,
            smallest_correct_step=run.step_index,
        )
        if run.correct_streak >= threshold:
            run = replace(run, correct_streak=0)
            if run.step_index >= LAST_STEP:
                # Smallest optotype passed: maximum score
                return _end_eye(session, run, rng)
            run = replace(run, step_index=_next_step(run.step_index))
            nxt = replace(session, run=run, direction=pick_direction(rng))
            return Transition(nxt, ADVANCE)
    else:
        run = replace(run, correct_streak=0, wrong_streak=run.wrong_streak + 1)
        if run.wrong_streak >= threshold:
            return _end_eye(session, run, rng)

    nxt = replace(session, run=run, direction=pick_direction(rng))
    return Transition(nxt, NEXT_TRIAL)


def _next_step(index: int) -> int:
    if index >= LAST_STEP:
        raise StaircaseError(f"Cannot advance past step {LAST_STEP}")
    return index + 1


def trial_payload(session: TestSession) -> dict:
    """What the UI needs to draw the current optotype."""
    step = session.step
    return {
        "eye": session.current_eye,
        "direction": session.direction.value,
        "rotation": ROTATIONS[session.direction],
        "step_index": session.run.step_index,
        "total_steps": len(ACUITY_STEPS),
        "pixel_size": step.pixel_size,
        "mm": step.millimeter_size,
        "acuity": step.acuity_label,
    }
