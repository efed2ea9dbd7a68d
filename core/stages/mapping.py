"""
Mapping Stage — localizes the latest detections in world space.

Uses the stereo frame the detections were computed on, so image content,
timestamp and head pose all belong to the same instant. Detections with no
pose or no stereo match are dropped for this cycle only.
"""
from core.buffers import StageSpec
from core.events import DetectionBatch
from core.spatial import SpatialMapper
from core.stages.base import PeriodicStage, StageContext
from utils.constants import BUFFER_DETECTIONS, BUFFER_MAPPED


class MappingStage(PeriodicStage):
    NAME = "MappingStage"
    INPUTS = (BUFFER_DETECTIONS,)
    OUTPUTS = (BUFFER_MAPPED,)

    def __init__(self, spec: StageSpec, context: StageContext, mapper: SpatialMapper):
        super().__init__(spec, context)
        self.mapper = mapper
        self._last_version = 0

    def step(self) -> None:
        snapshot = self.read(BUFFER_DETECTIONS)
        if snapshot.empty or snapshot.version == self._last_version:
            return
        self._last_version = snapshot.version

        batch: DetectionBatch = snapshot.value
        if batch.frame is None:
            self.logger.debug("Detection batch carries no frame, skipping")
            return

        mapped = self.mapper.map_all(batch.detections, batch.frame)
        skipped = len(batch.detections) - len(mapped)
        if skipped:
            self.logger.debug(f"{skipped} of {len(batch.detections)} detection(s) not localized")
        self.publish(BUFFER_MAPPED, tuple(mapped))
