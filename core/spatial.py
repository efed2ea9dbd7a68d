"""
2-D detection -> 3-D world position.

The box centre is matched along the same row of the rectified right image
to get a disparity, back-projected through the intrinsics to a camera-space
point, corrected for camera axis conventions and display parallax, and
finally moved into world space with the head pose valid at the frame's
timestamp.
"""
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

import cv2
import numpy as np

from core.events import Detection, MappedObject, StereoFrame
from core.labels import LabelMap
from utils.failures import ConfigError, PoseUnavailable, SensorGap, StereoUnavailable
from utils.logger import Logger

# timestamp (ns) -> 4x4 camera-to-world transform, or None if unknown
PoseLookup = Callable[[int], Optional[np.ndarray]]


@dataclass(frozen=True)
class MappingSettings:
    baseline_m: float = 0.064
    reference_depth: float = 2000.0
    depth_scale: float = 0.05
    axis_multiplier: Tuple[float, float, float] = (1.0, -1.0, 1.0)
    position_offset: Tuple[float, float, float] = (0.1, 0.0, 0.0)
    patch_size: int = 15
    max_disparity: int = 128
    min_disparity: float = 0.5
    min_match_score: float = 0.6

    def __post_init__(self):
        if self.baseline_m <= 0 or self.reference_depth <= 0:
            raise ConfigError("baseline_m and reference_depth must be positive")
        if self.depth_scale <= 0:
            raise ConfigError("depth_scale must be positive")
        if self.patch_size < 3 or self.patch_size % 2 == 0:
            raise ConfigError(f"patch_size must be an odd number >= 3, got {self.patch_size}")
        if self.max_disparity < 1 or self.min_disparity < 0:
            raise ConfigError("disparity bounds must be positive")
        if len(self.axis_multiplier) != 3 or len(self.position_offset) != 3:
            raise ConfigError("axis_multiplier and position_offset need 3 components")


def to_gray(image: np.ndarray) -> np.ndarray:
    if image.ndim == 3:
        return cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
    return image


def transform_matrix(translation: np.ndarray, scale: np.ndarray) -> np.ndarray:
    """4x4 TRS matrix with identity rotation."""
    m = np.diag([scale[0], scale[1], scale[2], 1.0])
    m[:3, 3] = translation
    return m


class SpatialMapper:
    def __init__(self, settings: MappingSettings, pose_lookup: PoseLookup, labels: Optional[LabelMap] = None):
        self.settings = settings
        self.pose_lookup = pose_lookup
        self.labels = labels or LabelMap()
        self.logger = Logger("SpatialMapper")

    # ── Stereo ───────────────────────────────────────────────────────

    def find_disparity(self, left_gray: np.ndarray, right_gray: np.ndarray, u: int, v: int) -> float:
        """
        Disparity (left x - right x, pixels) of the patch centred at (u, v).

        Raises:
            StereoUnavailable: patch off-image, textureless, or no confident match.
        """
        half = self.settings.patch_size // 2
        h, w = left_gray.shape[:2]
        if u - half < 0 or v - half < 0 or u + half >= w or v + half >= h:
            raise StereoUnavailable(f"Patch at ({u}, {v}) leaves the image")

        template = left_gray[v - half:v + half + 1, u - half:u + half + 1]
        if float(template.std()) < 1e-3:
            raise StereoUnavailable(f"Textureless patch at ({u}, {v})")

        # matching point in the right image lies at or left of u on the same row
        x_lo = max(0, u - half - self.settings.max_disparity)
        strip = right_gray[v - half:v + half + 1, x_lo:u + half + 1]
        if strip.shape[1] < template.shape[1]:
            raise StereoUnavailable(f"Search strip too narrow at ({u}, {v})")

        scores = cv2.matchTemplate(strip, template, cv2.TM_CCOEFF_NORMED)[0]
        best = int(np.argmax(scores))
        best_score = float(scores[best])
        if not np.isfinite(best_score) or best_score < self.settings.min_match_score:
            raise StereoUnavailable(f"No stereo match at ({u}, {v}) (score {best_score:.2f})")

        offset = 0.0
        if 0 < best < scores.size - 1:
            left_s, right_s = float(scores[best - 1]), float(scores[best + 1])
            denom = left_s - 2.0 * best_score + right_s
            if denom < 0:
                offset = 0.5 * (left_s - right_s) / denom

        x_right = x_lo + best + offset + half
        disparity = u - x_right
        if disparity < self.settings.min_disparity:
            raise StereoUnavailable(f"Disparity {disparity:.2f}px too small at ({u}, {v})")
        return disparity

    def back_project(self, frame: StereoFrame, x_norm: float, y_norm: float) -> np.ndarray:
        """Camera-space point (meters) for a normalized image position."""
        width, height = frame.size
        u = int(round(x_norm * (width - 1)))
        v = int(round(y_norm * (height - 1)))

        disparity = self.find_disparity(to_gray(frame.left), to_gray(frame.right), u, v)

        k = np.asarray(frame.camera_matrix, dtype=np.float64)
        fx, fy, cx, cy = k[0, 0], k[1, 1], k[0, 2], k[1, 2]
        z = fx * self.settings.baseline_m / disparity
        return np.array([(u - cx) * z / fx, (v - cy) * z / fy, z], dtype=np.float64)

    # ── Size / pose ──────────────────────────────────────────────────

    def estimate_scale(self, detection: Detection, frame_size: Tuple[int, int]) -> np.ndarray:
        width, height = frame_size
        return np.array([
            detection.width * width / self.settings.reference_depth,
            detection.height * height / self.settings.reference_depth,
            self.settings.depth_scale,
        ], dtype=np.float64)

    def correct_axes(self, camera_point: np.ndarray) -> np.ndarray:
        return (
            camera_point * np.asarray(self.settings.axis_multiplier, dtype=np.float64)
            + np.asarray(self.settings.position_offset, dtype=np.float64)
        )

    def head_pose(self, timestamp: int) -> np.ndarray:
        pose = self.pose_lookup(timestamp)
        if pose is None:
            raise PoseUnavailable(f"No head pose for timestamp {timestamp}")
        pose = np.asarray(pose, dtype=np.float64)
        if pose.shape != (4, 4):
            raise PoseUnavailable(f"Head pose for {timestamp} has shape {pose.shape}")
        return pose

    # ── Public API ───────────────────────────────────────────────────

    def map_detection(self, detection: Detection, frame: StereoFrame, slot: int = 0) -> MappedObject:
        """
        Localize one detection.

        Raises:
            SensorGap: no pose for the frame timestamp or no stereo match.
        """
        pose = self.head_pose(frame.timestamp)
        x, y = detection.center
        camera_point = self.back_project(frame, x, y)
        scale = self.estimate_scale(detection, frame.size)
        corrected = self.correct_axes(camera_point)

        local = transform_matrix(corrected, scale)
        world_pose = pose @ local
        world_point = (pose @ np.append(corrected, 1.0))[:3]

        return MappedObject(
            slot=slot,
            detection=detection,
            label_text=self.labels.label_text(detection.class_id),
            camera_point=camera_point,
            world_point=world_point,
            scale=scale,
            world_pose=world_pose,
        )

    def map_all(self, detections: Sequence[Detection], frame: StereoFrame) -> List[MappedObject]:
        """Map every detection, skipping the ones hit by a sensor gap."""
        mapped: List[MappedObject] = []
        for slot, detection in enumerate(detections):
            try:
                mapped.append(self.map_detection(detection, frame, slot))
            except SensorGap as e:
                self.logger.debug(f"Slot {slot} skipped: {e.message}")
        return mapped
