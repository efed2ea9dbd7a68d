"""Stereo Input Handler - Reads side-by-side stereo video for testing.

Implements the StereoSource protocol. Each video frame holds the left eye
in its left half and the right eye in its right half; both halves are
resized to the configured eye size and stamped with a monotonic timestamp.
The headset is assumed stationary, so an identity head pose is recorded
for every frame.
"""
import time
from pathlib import Path
from typing import Optional, Tuple

import cv2
import numpy as np

from core.events import StereoFrame
from Handlers.Head_Pose_Handler import PoseHistory
from utils.logger import Logger


def default_camera_matrix(width: int, height: int, fov_deg: float = 90.0) -> np.ndarray:
    """Pinhole intrinsics with square pixels and a centred principal point."""
    fx = (width / 2.0) / np.tan(np.radians(fov_deg) / 2.0)
    return np.array([
        [fx, 0.0, width / 2.0],
        [0.0, fx, height / 2.0],
        [0.0, 0.0, 1.0],
    ], dtype=np.float64)


class StereoInputHandler:
    """Handles side-by-side stereo video input.

    Implements the StereoSource protocol:
        start() -> bool
        read_frame() -> Optional[StereoFrame]
        stop() -> None
    """

    def __init__(
        self,
        video_path: str,
        eye_size: Tuple[int, int] = (1280, 960),
        camera_matrix: Optional[np.ndarray] = None,
        poses: Optional[PoseHistory] = None,
    ):
        """
        Initialize the stereo input handler.

        Args:
            video_path: Path to the side-by-side video file.
            eye_size: (width, height) of each eye after resizing.
            camera_matrix: 3x3 intrinsics for the resized eye image.
            poses: Pose history that receives one identity pose per frame.
        """
        self.video_path = video_path
        self.eye_size = eye_size
        self.camera_matrix = (
            np.asarray(camera_matrix, dtype=np.float64)
            if camera_matrix is not None
            else default_camera_matrix(*eye_size)
        )
        self.poses = poses
        self.logger = Logger("StereoInputHandler")
        self.cap: Optional[cv2.VideoCapture] = None
        self.logger.info(f"StereoInputHandler initialized with video: {video_path}")

    # ── StereoSource protocol ─────────────────────────────────────────

    def start(self) -> bool:
        """Open the video file for reading."""
        if not Path(self.video_path).exists():
            self.logger.error(f"Video file not found: {self.video_path}")
            return False

        self.cap = cv2.VideoCapture(self.video_path)
        if not self.cap.isOpened():
            self.logger.error(f"Failed to open video file: {self.video_path}")
            return False

        self.logger.info(f"Video file opened: {self.video_path}")
        return True

    def read_frame(self) -> Optional[StereoFrame]:
        """Read the next side-by-side frame and split it into a stereo pair."""
        if self.cap is None:
            return None

        ret, frame = self.cap.read()
        if not ret:
            return None

        return self.split(frame, time.monotonic_ns())

    def stop(self) -> None:
        """Release the video capture resources."""
        if self.cap is not None:
            self.cap.release()
            self.cap = None
            self.logger.info("Video capture released")

    # ── Helpers ───────────────────────────────────────────────────────

    def split(self, frame: np.ndarray, timestamp: int) -> StereoFrame:
        half = frame.shape[1] // 2
        left = cv2.resize(frame[:, :half], self.eye_size, interpolation=cv2.INTER_AREA)
        right = cv2.resize(frame[:, half:2 * half], self.eye_size, interpolation=cv2.INTER_AREA)

        if self.poses is not None:
            self.poses.record(timestamp, np.eye(4))

        return StereoFrame(left=left, right=right, timestamp=timestamp, camera_matrix=self.camera_matrix)
