"""
Structured error handling and failure tracking for SecureFab Node.
"""
import threading
import time
from typing import Dict, List, Optional

from utils.logger import Logger


class SecureFabError(Exception):
    """Base class for all SecureFab exceptions."""
    def __init__(self, message: str, critical: bool = False):
        super().__init__(message)
        self.message = message
        self.critical = critical
        self.timestamp = time.time()


class ConfigError(SecureFabError):
    """Invalid configuration, rejected at startup."""
    def __init__(self, message: str):
        super().__init__(message, critical=True)


class ContractViolation(SecureFabError):
    """An upstream collaborator broke its contract (tensor shape, step list)."""
    def __init__(self, message: str):
        super().__init__(message, critical=True)


class StepListError(ContractViolation):
    """The step list is empty, malformed, or its ids are not 0..N-1."""
    pass


class SensorGap(SecureFabError):
    """Transient sensor/geometry gap. The cycle is skipped for the affected detection."""
    pass


class PoseUnavailable(SensorGap):
    """No head pose is known for the requested timestamp."""
    pass


class StereoUnavailable(SensorGap):
    """No usable stereo correspondence for the requested image point."""
    pass


class FailureManager:
    """Tracks recurring failures per error type inside a sliding time window."""

    def __init__(self, settings: Optional[dict] = None):
        """
        Initialize the failure manager.

        Args:
            settings: Dictionary containing 'threshold' and 'window_seconds'
        """
        self.logger = Logger("FailureManager")

        self.settings = settings or {}
        self.threshold = self.settings.get('threshold', 5)
        self.window_seconds = self.settings.get('window_seconds', 300)

        self.failures: Dict[str, List[float]] = {}
        self._lock = threading.Lock()

    def record_failure(self, error: Exception):
        """
        Record a failure incident (thread-safe).

        Args:
            error: The exception that occurred.
        """
        with self._lock:
            error_type = type(error).__name__
            now = time.time()

            timestamps = self.failures.setdefault(error_type, [])
            timestamps.append(now)

            cutoff = now - self.window_seconds
            self.failures[error_type] = [t for t in timestamps if t > cutoff]

            if isinstance(error, SecureFabError):
                msg = f"Failure detected: {error_type} - {error.message}"
                if error.critical:
                    self.logger.error(f"CRITICAL: {msg}")
                else:
                    self.logger.warning(msg)
            else:
                self.logger.error(f"Unexpected failure: {error_type} - {error}")

            if len(self.failures[error_type]) >= self.threshold:
                self.logger.warning(
                    f"Resilience Alert: '{error_type}' exceeded threshold "
                    f"({self.threshold} in {self.window_seconds}s)"
                )

    def count(self, error_type: str) -> int:
        """Number of failures of this type currently inside the window."""
        with self._lock:
            return len(self.failures.get(error_type, []))

