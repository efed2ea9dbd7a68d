"""
Capture Stage — reads stereo frames from a StereoSource and publishes them.

Runs at camera rate. Publishes the detector-ready image (left eye, resized,
RGB, float32 in [0, 1]) together with the stereo frame it came from, so the
inference stage does no image preparation of its own and mapping works on
the same frame the detections were computed on.
"""
import time
from typing import Tuple

import cv2
import numpy as np

from core.buffers import StageSpec
from core.events import InferenceInput, StereoFrame
from core.protocols import StereoSource
from core.stages.base import PeriodicStage, StageContext
from utils.constants import BUFFER_IMAGE, DEFAULT_INPUT_SIZE


def prepare_image(frame: StereoFrame, input_size: Tuple[int, int]) -> np.ndarray:
    """Left eye -> float32 RGB tensor of shape [H, W, 3] for the detector."""
    resized = cv2.resize(frame.left, input_size, interpolation=cv2.INTER_LINEAR)
    rgb = cv2.cvtColor(resized, cv2.COLOR_BGR2RGB)
    return rgb.astype(np.float32) / 255.0


class CaptureStage(PeriodicStage):
    """
    Pipeline Stage 0: Frame acquisition.

    Reads frames from any StereoSource (headset passthrough, video file, etc.)
    and overwrites the frame and image buffers with the latest pair.
    """

    NAME = "CaptureStage"
    OUTPUTS = (BUFFER_IMAGE,)

    def __init__(self, spec: StageSpec, context: StageContext, source: StereoSource):
        """
        Args:
            spec: Stage description; params `loop_video`, `source_type`,
                  `input_width`, `input_height`.
            context: Shared pipeline handles.
            source: Any object implementing the StereoSource protocol.
        """
        super().__init__(spec, context)
        self.source = source
        self.loop_video = bool(spec.params.get("loop_video", True))
        self.source_type = spec.params.get("source_type", "unknown")
        self.input_size = (
            int(spec.params.get("input_width", DEFAULT_INPUT_SIZE)),
            int(spec.params.get("input_height", DEFAULT_INPUT_SIZE)),
        )
        self.finished = False

    def on_start(self) -> bool:
        if not self.source.start():
            self.logger.error("Frame source failed to start")
            return False
        self.logger.info(f"Capture source ready ({self.source_type})")
        return True

    def on_stop(self) -> None:
        self.source.stop()

    def step(self) -> None:
        if self.finished:
            return

        frame = self.source.read_frame()

        if frame is None:
            # End of source (video file ended, camera dropped, etc.)
            if self.source_type == "video" and self.loop_video:
                self.logger.info("Video ended — looping back to start")
                self.source.stop()
                if not self.source.start():
                    self.logger.error("Failed to restart video source")
                    self.finished = True
            elif self.source_type == "video":
                self.logger.info("Video playback finished")
                self.finished = True
            else:
                # Camera glitch, brief retry
                time.sleep(0.1)
            return

        self.publish(BUFFER_IMAGE, InferenceInput(frame=frame, image=prepare_image(frame, self.input_size)))
