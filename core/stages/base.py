"""
Periodic stage thread.

Every stage runs the same loop: check the shutdown flag, skip the cycle
while the pipeline is not initialized, run one `step()`, then sleep for
whatever is left of the period. Stages only exchange data through the
named buffers listed in their StageSpec.
"""
import time
from dataclasses import dataclass
from threading import Thread, Event
from typing import Any, Tuple

from core.buffers import BufferRegistry, Snapshot, StageSpec
from core.bus import EventBus
from core.events import StageFailed
from utils.failures import ContractViolation, FailureManager
from utils.logger import Logger


@dataclass
class StageContext:
    """Shared handles every stage of one pipeline receives."""
    buffers: BufferRegistry
    stop_event: Event
    ready: Event
    bus: EventBus
    failures: FailureManager


class PeriodicStage(Thread):
    """Base class for the pipeline stages. Subclasses implement `step()`."""

    NAME = "Stage"
    INPUTS: Tuple[str, ...] = ()
    OUTPUTS: Tuple[str, ...] = ()

    def __init__(self, spec: StageSpec, context: StageContext):
        super().__init__(name=spec.name, daemon=True)
        self.spec = spec
        self.context = context
        self.stop_event = context.stop_event
        self.logger = Logger(spec.name)

        self.cycles = 0
        self.skipped_cycles = 0
        self.failed = False

    # ── Buffer access ────────────────────────────────────────────────

    def read(self, name: str) -> Snapshot:
        if name not in self.spec.inputs:
            raise ContractViolation(f"{self.spec.name} does not declare input '{name}'")
        return self.context.buffers.get(name).read()

    def publish(self, name: str, value: Any) -> int:
        if name not in self.spec.outputs:
            raise ContractViolation(f"{self.spec.name} does not declare output '{name}'")
        return self.context.buffers.get(name).publish(value)

    # ── Lifecycle hooks ──────────────────────────────────────────────

    def on_start(self) -> bool:
        """Acquire resources before the first cycle. Returning False aborts the stage."""
        return True

    def on_stop(self) -> None:
        """Release resources after the last cycle."""
        pass

    def step(self) -> None:
        raise NotImplementedError

    # ── Loop ─────────────────────────────────────────────────────────

    def run_cycle(self) -> bool:
        """
        Run one cycle with the stage-boundary error policy.

        Returns False when the stage must stop.
        """
        if not self.context.ready.is_set():
            self.skipped_cycles += 1
            return True

        try:
            self.step()
        except ContractViolation as e:
            self.failed = True
            self.logger.critical(f"Contract violation, stopping stage: {e.message}")
            self.context.failures.record_failure(e)
            self.context.bus.publish(StageFailed(stage=self.spec.name, reason=e.message))
            return False
        except Exception as e:
            self.context.failures.record_failure(e)
            self.logger.exception(f"Cycle failed: {e}")
        finally:
            self.cycles += 1
        return True

    def run(self) -> None:
        """Main stage loop — runs until stop_event is set."""
        if not self.on_start():
            self.failed = True
            self.logger.error("Stage failed to start")
            self.context.bus.publish(StageFailed(stage=self.spec.name, reason="start failed"))
            return

        self.logger.info(f"{self.spec.name} running ({self.spec.rate_hz:g} Hz)")
        period = self.spec.period

        while not self.stop_event.is_set():
            loop_start = time.monotonic()

            if not self.run_cycle():
                break

            # Precise pacing (subtract processing time), woken early on shutdown
            elapsed = time.monotonic() - loop_start
            remaining = period - elapsed
            if remaining > 0:
                self.stop_event.wait(remaining)

        self.on_stop()
        self.logger.info(f"{self.spec.name} stopped")

    @classmethod
    def describe(cls, rate_hz: float, **params) -> StageSpec:
        """StageSpec with this stage's fixed buffer wiring."""
        return StageSpec(
            name=cls.NAME,
            rate_hz=rate_hz,
            inputs=cls.INPUTS,
            outputs=cls.OUTPUTS,
            params=params,
        )
