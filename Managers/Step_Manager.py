"""
Step Manager - Tracks progress through the training procedure.

Publishes StepChanged whenever the current step changes and
ProcedureComplete when asked to advance past the last step. Auto-advance
requests from the validator arrive as AdvanceRequested events and are
honoured only while they still refer to the current step.
"""
from threading import Lock
from typing import Optional, Sequence

from core.bus import EventBus
from core.events import AdvanceRequested, ProcedureComplete, StepChanged
from core.steps import Step, validate_steps
from utils.logger import Logger


class StepManager:
    """Thread-safe step-progression controller."""

    def __init__(self, steps: Sequence[Step], bus: EventBus):
        """
        Args:
            steps: Procedure steps; validated here (StepListError if malformed).
            bus: EventBus for StepChanged / ProcedureComplete.
        """
        self.steps = validate_steps(steps)
        self.bus = bus
        self.logger = Logger("StepManager")
        self._index = 0
        self._completed = False
        self._lock = Lock()

        self.bus.subscribe(AdvanceRequested, self._on_advance_requested)
        self.logger.info(f"Step manager ready with {len(self.steps)} step(s)")

    # ── Queries ──────────────────────────────────────────────────────

    @property
    def total_steps(self) -> int:
        return len(self.steps)

    @property
    def current_index(self) -> int:
        with self._lock:
            return self._index

    @property
    def current_step(self) -> Step:
        with self._lock:
            return self.steps[self._index]

    @property
    def completed(self) -> bool:
        with self._lock:
            return self._completed

    def has_next_step(self) -> bool:
        with self._lock:
            return self._index < len(self.steps) - 1

    def has_previous_step(self) -> bool:
        with self._lock:
            return self._index > 0

    def progress_text(self) -> str:
        with self._lock:
            return f"Step {self._index + 1} of {len(self.steps)}"

    def progress_percentage(self) -> float:
        with self._lock:
            return (self._index + 1) / len(self.steps) * 100.0

    def get_step(self, step_id: int) -> Optional[Step]:
        if 0 <= step_id < len(self.steps):
            return self.steps[step_id]
        return None

    # ── Navigation ───────────────────────────────────────────────────

    def next_step(self) -> bool:
        """
        Move to the next step.

        On the last step this publishes ProcedureComplete instead and
        returns False.
        """
        with self._lock:
            if self._index >= len(self.steps) - 1:
                self._completed = True
                complete = True
            else:
                complete = False
                self._index += 1

        if complete:
            self.logger.info("Procedure complete")
            self.bus.publish(ProcedureComplete(total_steps=len(self.steps)))
            return False

        self._announce()
        return True

    def previous_step(self) -> bool:
        with self._lock:
            if self._index == 0:
                return False
            self._index -= 1
            self._completed = False
        self._announce()
        return True

    def set_step_by_id(self, step_id: int) -> bool:
        """Ids equal positions once the list is validated."""
        return self.set_step_by_index(step_id)

    def set_step_by_index(self, index: int) -> bool:
        with self._lock:
            if not 0 <= index < len(self.steps):
                self.logger.warning(f"Invalid step index: {index}")
                return False
            self._index = index
            self._completed = False
        self._announce()
        return True

    def reset(self) -> None:
        """Return to the first step."""
        self.set_step_by_index(0)

    def _announce(self) -> None:
        with self._lock:
            index = self._index
        step = self.steps[index]
        self.logger.info(f"Step {index + 1}/{len(self.steps)}: {step.title}")
        self.bus.publish(StepChanged(step=step, index=index, total=len(self.steps)))

    def _on_advance_requested(self, event: AdvanceRequested) -> None:
        with self._lock:
            stale = event.step_id != self.steps[self._index].id
        if stale:
            self.logger.debug(f"Ignoring advance request for step {event.step_id}")
            return
        self.next_step()

    def detach(self) -> None:
        self.bus.unsubscribe(AdvanceRequested, self._on_advance_requested)
