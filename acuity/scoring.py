"""
============================================================
 Acuity Check — Scoring & Summary
 Two finalized eye results → weaker-eye analysis, severity
 categories, and the per-eye metrics table.
============================================================
"""

from dataclasses import dataclass
from datetime import datetime, timezone

import config
from acuity.staircase import LEFT, RIGHT, EyeResult

NORMAL = "Normal"
MILD = "Mild"
MODERATE = "Moderate"

_OVERALL_LABELS = {
    NORMAL: "Normal",
    MILD: "Mild Amblyopia",
    MODERATE: "Moderate Amblyopia",
}

SIMILAR_MESSAGE = (
    "Both eyes show similar visual acuity. "
    "Continue regular eye exercises to maintain good vision."
)


def classify_severity(logmar: float) -> str:
    if logmar <= config.SEVERITY_NORMAL_MAX:
        return NORMAL
    if logmar <= config.SEVERITY_MILD_MAX:
        return MILD
    return MODERATE


@dataclass(frozen=True)
class Summary:
    text: str
    similar: bool
    weaker_eye: str | None
    weakness_percentage: int
    right: EyeResult
    left: EyeResult
    finished_at: datetime

    @property
    def right_severity(self) -> str:
        return classify_severity(self.right.logmar)

    @property
    def left_severity(self) -> str:
        return classify_severity(self.left.logmar)

    def metrics(self) -> dict:
        """Per-eye table, as shown on the results screen."""
        rows = {}
        for eye, result in ((RIGHT, self.right), (LEFT, self.left)):
            severity = classify_severity(result.logmar)
            rows[eye] = {
                "acuity": result.acuity_label,
                "logmar": round(result.logmar, 1),
                "mm": result.millimeter_size,
                "distance_m": config.STANDARD_TEST_DISTANCE,
                "severity": severity,
                "overall": _OVERALL_LABELS[severity],
            }
        local = self.finished_at.astimezone()
        return {
            "date": local.strftime("%Y-%m-%d"),
            "time": local.strftime("%H:%M"),
            "eyes": rows,
        }

    def history_record(self) -> dict:
        return {
            "timestamp": self.finished_at.isoformat(),
            "right_eye": self.right.acuity_label,
            "left_eye": self.left.acuity_label,
            "right_logmar": self.right.logmar,
            "left_logmar": self.left.logmar,
        }

    def to_dict(self) -> dict:
        return {
            "summary": self.text,
            "similar": self.similar,
            "weaker_eye": self.weaker_eye,
            "weakness_percentage": self.weakness_percentage,
            "right": self.right.to_dict(),
            "left": self.left.to_dict(),
            "metrics": self.metrics(),
        }


def summarize(right: EyeResult, left: EyeResult,
              finished_at: datetime | None = None) -> Summary:
    """Compare both eyes. Similar below a 0.1 logMAR difference."""
    finished_at = finished_at or datetime.now(timezone.utc)
    # rounded so that one table step (0.1) is never read as 0.0999...
    diff = round(abs(right.logmar - left.logmar), 6)

    if diff < config.SIMILARITY_THRESHOLD:
        return Summary(SIMILAR_MESSAGE, True, None, 0, right, left, finished_at)

    weaker = LEFT if left.logmar > right.logmar else RIGHT
    stronger = RIGHT if weaker == LEFT else LEFT
    pct = int(round(diff * 100))
    text = (
        f"The {weaker} eye is {pct}% weaker than the {stronger} eye. "
        f"Training games will now be adjusted to stimulate the {weaker} eye "
        f"and improve its strength."
    )
    return Summary(text, False, weaker, pct, right, left, finished_at)
