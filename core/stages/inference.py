"""
Inference Stage — runs the detector on the latest prepared image and
publishes the post-processed detections.

This is where the heavy CPU/GPU work happens, completely decoupled from
frame capture timing. An image that was already processed is not run
again.
"""
from core.buffers import StageSpec
from core.events import DetectionBatch, InferenceInput
from core.postprocess import PostProcessor
from core.protocols import InferenceBackend
from core.stages.base import PeriodicStage, StageContext
from utils.constants import BUFFER_DETECTIONS, BUFFER_IMAGE


class InferenceStage(PeriodicStage):
    """
    Pipeline Stage 1: AI inference.

    Consumes the prepared image, calls the opaque detector and turns its raw
    [A, 4+C] tensor into at most `max_detections` Detection messages.
    """

    NAME = "InferenceStage"
    INPUTS = (BUFFER_IMAGE,)
    OUTPUTS = (BUFFER_DETECTIONS,)

    def __init__(
        self,
        spec: StageSpec,
        context: StageContext,
        backend: InferenceBackend,
        postprocessor: PostProcessor,
    ):
        super().__init__(spec, context)
        self.backend = backend
        self.postprocessor = postprocessor
        self._last_version = 0

    def step(self) -> None:
        snapshot = self.read(BUFFER_IMAGE)
        if snapshot.empty or snapshot.version == self._last_version:
            return
        self._last_version = snapshot.version

        prepared: InferenceInput = snapshot.value
        raw = self.backend.infer(prepared.image)
        detections = self.postprocessor.process(raw)

        self.publish(BUFFER_DETECTIONS, DetectionBatch(detections=tuple(detections), frame=prepared.frame))

        if detections:
            self.logger.debug(
                f"{len(detections)} detection(s), max confidence "
                f"{max(d.confidence for d in detections):.2f}"
            )
