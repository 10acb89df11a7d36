"""
============================================================
 Acuity Check — Optotype Table
 Static "C" optotype sizes (largest → smallest) and the
 four gap directions.
============================================================
"""

import random
from dataclasses import dataclass
from enum import Enum


class Direction(str, Enum):
    """Orientation of the optotype's gap."""
    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"

    @classmethod
    def parse(cls, value) -> "Direction":
        """Accept a Direction or its string value (case-insensitive)."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"Unknown direction: {value!r}") from None


# Rotation of the "C" glyph for each gap direction (degrees)
ROTATIONS = {
    Direction.RIGHT: 0,
    Direction.DOWN: 90,
    Direction.LEFT: 180,
    Direction.UP: 270,
}


@dataclass(frozen=True)
class AcuityStep:
    millimeter_size: float
    acuity_label: str
    pixel_size: int
    logmar: float


# Sizes for a ~40cm viewing distance (1mm ≈ 2.5px on typical screens)
ACUITY_STEPS = (
    AcuityStep(87.0, "6/60", 218, 1.0),
    AcuityStep(52.2, "6/36", 131, 0.8),
    AcuityStep(34.8, "6/24", 87, 0.6),
    AcuityStep(26.0, "6/18", 65, 0.4),
    AcuityStep(17.4, "6/12", 44, 0.3),
    AcuityStep(13.0, "6/9", 33, 0.2),
    AcuityStep(8.7, "6/6", 22, 0.1),
)

LAST_STEP = len(ACUITY_STEPS) - 1


def pick_direction(rng=None) -> Direction:
    """Uniformly random direction, independent of previous trials."""
    rng = rng or random
    return rng.choice(list(Direction))
