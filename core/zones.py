"""
Zone classification of normalized image points.

The board is split into four named zones around a neutral centre. Horizontal
zones are checked before vertical ones, so a point that is both far left and
far up resolves to LEFT.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Tuple

from utils.failures import ConfigError


class Zone(Enum):
    LEFT = "left"
    RIGHT = "right"
    TOP = "top"
    BOTTOM = "bottom"
    NONE = "none"

    @classmethod
    def placed(cls) -> Tuple["Zone", ...]:
        """Zones that can hold an object (everything except NONE)."""
        return (cls.LEFT, cls.RIGHT, cls.TOP, cls.BOTTOM)

    @classmethod
    def parse(cls, name: str) -> "Zone":
        try:
            return cls(str(name).strip().lower())
        except ValueError:
            raise ConfigError(f"Unknown zone '{name}'") from None


@dataclass(frozen=True)
class ZoneThresholds:
    """Normalized [0, 1] split lines. Rejected unless left_x < right_x and top_y < bottom_y."""

    left_x: float = 0.33
    right_x: float = 0.66
    top_y: float = 0.33
    bottom_y: float = 0.66

    def __post_init__(self):
        for name in ("left_x", "right_x", "top_y", "bottom_y"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ConfigError(f"Zone threshold {name}={value} outside [0, 1]")
        if self.left_x >= self.right_x:
            raise ConfigError(
                f"Zone thresholds require left_x < right_x (got {self.left_x} >= {self.right_x})"
            )
        if self.top_y >= self.bottom_y:
            raise ConfigError(
                f"Zone thresholds require top_y < bottom_y (got {self.top_y} >= {self.bottom_y})"
            )


class ZoneClassifier:
    """Assigns a normalized detection centre to one of the fixed zones."""

    def __init__(self, thresholds: ZoneThresholds):
        self.thresholds = thresholds

    def classify(self, x: float, y: float) -> Zone:
        t = self.thresholds
        if x < t.left_x:
            return Zone.LEFT
        if x > t.right_x:
            return Zone.RIGHT
        if y < t.top_y:
            return Zone.TOP
        if y > t.bottom_y:
            return Zone.BOTTOM
        return Zone.NONE
