"""
Protocol definitions (interfaces) for the SecureFab Node.

These define the contracts that adapters must implement,
enabling dependency injection and easy testing/swapping.
"""
from typing import Protocol, Optional, runtime_checkable
import numpy as np

from core.events import StereoFrame
from core.steps import Step


@runtime_checkable
class StereoSource(Protocol):
    """Interface for any stereo-frame-producing component (headset, video file, etc.)."""

    def start(self) -> bool:
        """Initialize and begin frame acquisition. Returns True on success."""
        ...

    def read_frame(self) -> Optional[StereoFrame]:
        """
        Read the next available stereo pair.

        Returns:
            A StereoFrame, or None if no frame is available.
        """
        ...

    def stop(self) -> None:
        """Release resources and stop frame acquisition."""
        ...


@runtime_checkable
class InferenceBackend(Protocol):
    """Interface for the opaque detector."""

    def infer(self, image: np.ndarray) -> np.ndarray:
        """
        Run the detector on one image.

        Args:
            image: float32 [H, W, 3] with values in [0, 1].

        Returns:
            Raw tensor of shape [A, 4 + C]: box regression then class scores.
        """
        ...


@runtime_checkable
class StepProvider(Protocol):
    """Interface for the step-progression controller as seen by validation."""

    @property
    def current_step(self) -> Optional[Step]:
        ...

    def has_next_step(self) -> bool:
        ...
