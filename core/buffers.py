"""
Named single-writer / multi-reader buffers shared between stages.

A writer publishes by swapping in a new immutable snapshot; readers get
whatever snapshot is current and never block waiting for a fresh one. The
lock is held only for the swap or the copy of the reference, never while a
stage computes.
"""
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Generic, Mapping, Optional, Tuple, TypeVar

from utils.failures import ConfigError, ContractViolation

T = TypeVar("T")


@dataclass(frozen=True)
class Snapshot(Generic[T]):
    value: Optional[T]
    version: int = 0
    published_at: float = 0.0

    @property
    def empty(self) -> bool:
        return self.version == 0


class SharedBuffer(Generic[T]):
    def __init__(self, name: str):
        self.name = name
        self._lock = threading.Lock()
        self._snapshot: Snapshot[T] = Snapshot(value=None)

    def publish(self, value: T) -> int:
        """Replace the published value. Returns the new version."""
        with self._lock:
            version = self._snapshot.version + 1
            self._snapshot = Snapshot(value=value, version=version, published_at=time.monotonic())
        return version

    def read(self) -> Snapshot[T]:
        with self._lock:
            return self._snapshot

    @property
    def version(self) -> int:
        return self.read().version


class BufferRegistry:
    """All named buffers of one pipeline instance."""

    def __init__(self):
        self._buffers: Dict[str, SharedBuffer] = {}
        self._lock = threading.Lock()

    def declare(self, name: str) -> SharedBuffer:
        with self._lock:
            if name not in self._buffers:
                self._buffers[name] = SharedBuffer(name)
            return self._buffers[name]

    def get(self, name: str) -> SharedBuffer:
        with self._lock:
            buffer = self._buffers.get(name)
        if buffer is None:
            raise ContractViolation(f"Buffer '{name}' was never declared")
        return buffer

    def names(self) -> Tuple[str, ...]:
        with self._lock:
            return tuple(sorted(self._buffers))

    def __contains__(self, name: str) -> bool:
        with self._lock:
            return name in self._buffers


@dataclass(frozen=True)
class StageSpec:
    """Declarative description of one periodic stage."""
    name: str
    rate_hz: float
    inputs: Tuple[str, ...] = ()
    outputs: Tuple[str, ...] = ()
    params: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if self.rate_hz <= 0:
            raise ConfigError(f"Stage '{self.name}' needs a positive rate, got {self.rate_hz}")

    @property
    def period(self) -> float:
        return 1.0 / self.rate_hz
