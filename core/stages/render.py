"""
Render Stage — turns the latest mapped objects into per-slot render state
and publishes it on the bus for the rendering collaborator.
"""
from typing import Tuple

from core.buffers import StageSpec
from core.events import MappedObject, RenderSlot, RenderUpdate
from core.labels import fixed_width
from core.stages.base import PeriodicStage, StageContext
from utils.constants import BUFFER_MAPPED


def build_slots(
    mapped: Tuple[MappedObject, ...],
    max_detections: int,
    confidence_threshold: float,
) -> Tuple[RenderSlot, ...]:
    """Exactly `max_detections` slots; slots with no mapped object are hidden."""
    by_slot = {m.slot: m for m in mapped}
    slots = []
    for index in range(max_detections):
        obj = by_slot.get(index)
        if obj is None:
            slots.append(RenderSlot(index=index, label_text=fixed_width(""), world_pose=None, visible=False))
            continue
        confidence = obj.detection.confidence
        slots.append(RenderSlot(
            index=index,
            label_text=obj.label_text,
            world_pose=obj.world_pose,
            visible=confidence > confidence_threshold,
            confidence=confidence,
        ))
    return tuple(slots)


class RenderStage(PeriodicStage):
    NAME = "RenderStage"
    INPUTS = (BUFFER_MAPPED,)

    def __init__(self, spec: StageSpec, context: StageContext):
        """
        Args:
            spec: Stage description; params `max_detections`, `confidence_threshold`.
            context: Shared pipeline handles.
        """
        super().__init__(spec, context)
        self.max_detections = int(spec.params.get("max_detections", 4))
        self.confidence_threshold = float(spec.params.get("confidence_threshold", 0.5))

    def step(self) -> None:
        snapshot = self.read(BUFFER_MAPPED)
        mapped = () if snapshot.empty else snapshot.value
        slots = build_slots(mapped, self.max_detections, self.confidence_threshold)
        self.context.bus.publish(RenderUpdate(slots=slots))
