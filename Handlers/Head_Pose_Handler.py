"""Head Pose Handler - Timestamped head-pose history.

Implements the PoseProvider protocol. The frame source (or the XR runtime)
records one camera-to-world transform per frame; the mapping stage looks
the pose up by the frame's timestamp.
"""
import bisect
import threading
from typing import List, Optional

import numpy as np

from utils.logger import Logger


class PoseHistory:
    """Bounded, thread-safe history of (timestamp, 4x4 pose) samples.

    Implements the PoseProvider protocol:
        lookup(timestamp) -> Optional[np.ndarray]
    """

    def __init__(self, capacity: int = 256, tolerance_ns: int = 50_000_000):
        """
        Args:
            capacity: Number of samples kept; the oldest are dropped first.
            tolerance_ns: Maximum distance between the requested timestamp
                          and the nearest recorded one.
        """
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self.capacity = capacity
        self.tolerance_ns = tolerance_ns
        self.logger = Logger("PoseHistory")

        self._timestamps: List[int] = []
        self._poses: List[np.ndarray] = []
        self._lock = threading.Lock()

    def record(self, timestamp: int, pose: np.ndarray) -> None:
        pose = np.asarray(pose, dtype=np.float64)
        if pose.shape != (4, 4):
            raise ValueError(f"Pose must be 4x4, got {pose.shape}")

        with self._lock:
            index = bisect.bisect_left(self._timestamps, timestamp)
            if index < len(self._timestamps) and self._timestamps[index] == timestamp:
                self._poses[index] = pose
                return
            self._timestamps.insert(index, timestamp)
            self._poses.insert(index, pose)

            overflow = len(self._timestamps) - self.capacity
            if overflow > 0:
                del self._timestamps[:overflow]
                del self._poses[:overflow]

    def lookup(self, timestamp: int) -> Optional[np.ndarray]:
        """Pose nearest to `timestamp`, or None if nothing lies within tolerance."""
        with self._lock:
            if not self._timestamps:
                return None

            index = bisect.bisect_left(self._timestamps, timestamp)
            candidates = [i for i in (index - 1, index) if 0 <= i < len(self._timestamps)]
            best = min(candidates, key=lambda i: abs(self._timestamps[i] - timestamp))

            if abs(self._timestamps[best] - timestamp) > self.tolerance_ns:
                return None
            return self._poses[best].copy()

    def __len__(self) -> int:
        with self._lock:
            return len(self._timestamps)
