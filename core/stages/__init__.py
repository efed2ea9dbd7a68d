"""
Pipeline stages for the SecureFab Node.

Each stage is a periodic thread; stages are connected only by named shared
buffers that always hold the latest value:

    CaptureStage (30 Hz) → [vst_image_fp32]
    InferenceStage (5 Hz) → [nms_detections]
    MappingStage (5 Hz) → [mapped_objects] → RenderStage (5 Hz) → RenderUpdate
    ValidationStage (30 Hz) ← [nms_detections]  ↕ EventBus

A reader that runs faster than its writer sees the same value again; no
stage waits for a fresher one.
"""
from .base import PeriodicStage, StageContext
from .capture import CaptureStage
from .inference import InferenceStage
from .mapping import MappingStage
from .render import RenderStage
from .validation import ValidationStage, ZoneObserver

__all__ = [
    "PeriodicStage", "StageContext",
    "CaptureStage", "InferenceStage", "MappingStage", "RenderStage",
    "ValidationStage", "ZoneObserver",
]
