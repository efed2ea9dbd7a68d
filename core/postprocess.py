"""
Detector output post-processing.

Turns the raw per-anchor tensor of an anchor-free detector ([A, 4 + C]: box
centre/size followed by per-class scores) into a short, score-ordered list
of confident, non-overlapping detections with normalized boxes.
"""
from dataclasses import dataclass
from typing import List, Sequence, Tuple

import numpy as np

from core.events import Detection
from utils.constants import DEFAULT_INPUT_SIZE, DEFAULT_NUM_ANCHORS, DEFAULT_NUM_CLASSES
from utils.failures import ConfigError, ContractViolation
from utils.logger import Logger

Box = Tuple[float, float, float, float]


@dataclass(frozen=True)
class PostProcessorSettings:
    confidence_threshold: float = 0.5
    iou_threshold: float = 0.5
    max_detections: int = 4
    num_anchors: int = DEFAULT_NUM_ANCHORS
    num_classes: int = DEFAULT_NUM_CLASSES
    input_width: int = DEFAULT_INPUT_SIZE
    input_height: int = DEFAULT_INPUT_SIZE

    def __post_init__(self):
        if not 0.0 < self.confidence_threshold <= 1.0:
            raise ConfigError(f"confidence_threshold must be in (0, 1], got {self.confidence_threshold}")
        if not 0.0 < self.iou_threshold <= 1.0:
            raise ConfigError(f"iou_threshold must be in (0, 1], got {self.iou_threshold}")
        if self.max_detections < 1:
            raise ConfigError(f"max_detections must be >= 1, got {self.max_detections}")
        if self.num_anchors < 1 or self.num_classes < 1:
            raise ConfigError("num_anchors and num_classes must be positive")
        if self.input_width <= 0 or self.input_height <= 0:
            raise ConfigError("input size must be positive")


def iou(a: Box, b: Box) -> float:
    """Intersection over union of two (xmin, ymin, xmax, ymax) boxes; 0 when disjoint."""
    ix = min(a[2], b[2]) - max(a[0], b[0])
    iy = min(a[3], b[3]) - max(a[1], b[1])
    if ix <= 0.0 or iy <= 0.0:
        return 0.0
    inter = ix * iy
    union = (a[2] - a[0]) * (a[3] - a[1]) + (b[2] - b[0]) * (b[3] - b[1]) - inter
    if union <= 0.0:
        return 0.0
    return inter / union


def non_max_suppression(detections: Sequence[Detection], iou_threshold: float) -> List[Detection]:
    """
    Greedy class-agnostic NMS.

    Candidates are visited in score-descending order (stable for ties); a
    candidate is dropped if its IoU with any already-kept box exceeds the
    threshold. Running it again on its own output returns the same list.
    """
    ordered = sorted(detections, key=lambda d: d.confidence, reverse=True)
    kept: List[Detection] = []
    for candidate in ordered:
        if all(iou(candidate.box, k.box) <= iou_threshold for k in kept):
            kept.append(candidate)
    return kept


class PostProcessor:
    """Decode, threshold, suppress and truncate raw detector output."""

    def __init__(self, settings: PostProcessorSettings):
        self.settings = settings
        self.logger = Logger("PostProcessor")

    @property
    def expected_shape(self) -> Tuple[int, int]:
        return self.settings.num_anchors, 4 + self.settings.num_classes

    def decode_boxes(self, regression: np.ndarray) -> np.ndarray:
        """(cx, cy, w, h) in input pixels -> normalized, clipped (xmin, ymin, xmax, ymax)."""
        centers = regression[:, 0:2]
        half = regression[:, 2:4] / 2.0
        corners = np.concatenate([centers - half, centers + half], axis=1)
        scale = np.array(
            [self.settings.input_width, self.settings.input_height] * 2, dtype=np.float64
        )
        return np.clip(corners / scale, 0.0, 1.0)

    def process(self, raw: np.ndarray) -> List[Detection]:
        """
        Run the full post-processing chain on one inference output.

        Raises:
            ContractViolation: if the tensor shape does not match the configured
                anchor and class counts.
        """
        raw = np.asarray(raw, dtype=np.float64)
        if raw.ndim != 2 or raw.shape != self.expected_shape:
            raise ContractViolation(
                f"Detector output shape {raw.shape} != expected {self.expected_shape}"
            )

        scores = raw[:, 4:]
        # argmax returns the first maximum, so ties resolve to the lowest class index
        class_ids = np.argmax(scores, axis=1)
        best = scores[np.arange(scores.shape[0]), class_ids]

        candidates = np.flatnonzero(best >= self.settings.confidence_threshold)
        if candidates.size == 0:
            return []

        boxes = self.decode_boxes(raw[candidates, :4])
        order = np.argsort(-best[candidates], kind="stable")

        detections: List[Detection] = []
        for i in order:
            xmin, ymin, xmax, ymax = (float(v) for v in boxes[i])
            if xmin >= xmax or ymin >= ymax:
                continue
            detections.append(Detection(
                box=(xmin, ymin, xmax, ymax),
                class_id=int(class_ids[candidates[i]]),
                confidence=float(min(best[candidates[i]], 1.0)),
            ))

        kept = non_max_suppression(detections, self.settings.iou_threshold)
        result = kept[:self.settings.max_detections]
        self.logger.debug(
            f"{candidates.size} candidate(s) -> {len(kept)} after NMS -> {len(result)} kept"
        )
        return result
