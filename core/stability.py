"""
Debouncing of per-cycle configurations.

The gate keeps one candidate configuration and counts how many consecutive
cycles repeated it. The first sighting of a new candidate leaves the counter
at zero, so with stability_frames = K the K-th identical observation in a
row is the one that makes the gate stable. Becoming stable fires exactly
once; staying stable does not fire again.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from core.configuration import Configuration
from utils.failures import ConfigError


class GateState(Enum):
    UNSTABLE = "unstable"
    STABILIZING = "stabilizing"
    STABLE = "stable"


@dataclass(frozen=True)
class StabilitySettings:
    stability_frames: int = 10

    def __post_init__(self):
        if self.stability_frames < 1:
            raise ConfigError(f"stability_frames must be >= 1, got {self.stability_frames}")


class StabilityGate:
    def __init__(self, settings: StabilitySettings):
        self.settings = settings
        self.candidate: Optional[Configuration] = None
        self.consecutive_matches = 0

    @property
    def required_matches(self) -> int:
        # matches counted after the first sighting
        return self.settings.stability_frames - 1

    @property
    def state(self) -> GateState:
        if self.candidate is None:
            return GateState.UNSTABLE
        if self.consecutive_matches >= self.required_matches:
            return GateState.STABLE
        if self.consecutive_matches == 0:
            return GateState.UNSTABLE
        return GateState.STABILIZING

    @property
    def is_stable(self) -> bool:
        return self.state is GateState.STABLE

    def update(self, configuration: Configuration) -> bool:
        """
        Feed one cycle's configuration.

        Returns True only on the cycle that makes the gate stable.
        """
        if self.candidate is not None and configuration == self.candidate:
            self.consecutive_matches += 1
        else:
            self.candidate = configuration
            self.consecutive_matches = 0
        return self.consecutive_matches == self.required_matches

    def changed(self, configuration: Configuration) -> bool:
        """Whether this configuration would replace the current candidate."""
        return self.candidate is None or configuration != self.candidate

    def reset(self) -> None:
        self.candidate = None
        self.consecutive_matches = 0
