"""
Typed event definitions (messages) for the SecureFab Node pipeline.

Pipeline messages are immutable and live in the shared buffers between
stages. Bus events are low-frequency control-plane notifications.
"""
from dataclasses import dataclass, field
from typing import Optional, Tuple
import time

import numpy as np

from core.configuration import Configuration
from core.steps import Step


# ─── Pipeline Messages (published through shared buffers) ─────────────────

@dataclass(frozen=True)
class StereoFrame:
    """A rectified stereo pair with capture metadata."""
    left: np.ndarray               # uint8 HxWx3
    right: np.ndarray              # uint8 HxWx3
    timestamp: int                 # monotonic, nanoseconds
    camera_matrix: np.ndarray      # 3x3 intrinsics, pixel units

    @property
    def size(self) -> Tuple[int, int]:
        """(width, height) in pixels."""
        h, w = self.left.shape[:2]
        return w, h


@dataclass(frozen=True)
class InferenceInput:
    """Detector-ready image and the stereo frame it was prepared from."""
    frame: StereoFrame
    image: np.ndarray              # float32 [H, W, 3], RGB, values in [0, 1]


@dataclass(frozen=True)
class Detection:
    """One confident, non-suppressed detection with a normalized box."""
    box: Tuple[float, float, float, float]   # xmin, ymin, xmax, ymax in [0, 1]
    class_id: int
    confidence: float

    def __post_init__(self):
        xmin, ymin, xmax, ymax = self.box
        if not (xmin < xmax and ymin < ymax):
            raise ValueError(f"Degenerate detection box {self.box}")
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"Detection confidence {self.confidence} outside [0, 1]")

    @property
    def center(self) -> Tuple[float, float]:
        xmin, ymin, xmax, ymax = self.box
        return (xmin + xmax) / 2.0, (ymin + ymax) / 2.0

    @property
    def width(self) -> float:
        return self.box[2] - self.box[0]

    @property
    def height(self) -> float:
        return self.box[3] - self.box[1]


@dataclass(frozen=True)
class DetectionBatch:
    """Output of one inference cycle, tied to the frame it was computed on."""
    detections: Tuple[Detection, ...]
    frame: Optional[StereoFrame] = None
    timestamp: float = field(default_factory=time.monotonic)


@dataclass(frozen=True)
class MappedObject:
    """A detection localized in world space for one mapping cycle."""
    slot: int
    detection: Detection
    label_text: str
    camera_point: np.ndarray       # (3,) camera space, meters
    world_point: np.ndarray        # (3,) world space, meters
    scale: np.ndarray              # (3,) x/y from box size, z fixed
    world_pose: np.ndarray         # 4x4


@dataclass(frozen=True)
class RenderSlot:
    """What the rendering collaborator draws for one detection slot."""
    index: int
    label_text: str
    world_pose: Optional[np.ndarray]
    visible: bool
    confidence: float = 0.0


# ─── Event Bus Events (control plane, low-frequency) ─────────────────────

@dataclass
class ConfigurationValidated:
    """Published once per emitted validation (match or mismatch)."""
    matched: bool
    detected: Configuration
    expected: Configuration
    step_id: int
    timestamp: float = field(default_factory=time.time)


@dataclass
class AdvanceRequested:
    """Auto-advance timer fired for the given step."""
    step_id: int
    timestamp: float = field(default_factory=time.time)


@dataclass
class StepChanged:
    """Published by the step manager when the current step changes."""
    step: Step
    index: int
    total: int
    timestamp: float = field(default_factory=time.time)


@dataclass
class ProcedureComplete:
    """Advance was requested on the last step."""
    total_steps: int = 0
    timestamp: float = field(default_factory=time.time)


@dataclass
class RenderUpdate:
    """Per-slot label/pose/visibility for the rendering collaborator."""
    slots: Tuple[RenderSlot, ...] = ()
    timestamp: float = field(default_factory=time.time)


@dataclass
class StageFailed:
    """A stage stopped because of a contract violation."""
    stage: str
    reason: str = ""
    timestamp: float = field(default_factory=time.time)


@dataclass
class ShutdownRequested:
    """Published to signal a graceful shutdown of all components."""
    reason: str = "user"
    timestamp: float = field(default_factory=time.time)
