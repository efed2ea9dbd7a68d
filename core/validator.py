"""
Validation of stable configurations against the active step.

Each accepted call publishes one ConfigurationValidated event. Calls that
arrive sooner than `min_interval_s` after the last emitted event are
suppressed. A match can arm an auto-advance deadline; the deadline is
checked by `tick()` on the validation task and publishes AdvanceRequested
when it passes without having been cancelled.
"""
import time
from dataclasses import dataclass
from typing import Callable, Optional

from core.bus import EventBus
from core.configuration import Configuration
from core.events import AdvanceRequested, ConfigurationValidated
from core.steps import Step
from utils.failures import ConfigError
from utils.logger import Logger


@dataclass(frozen=True)
class ValidationSettings:
    min_interval_s: float = 0.5
    auto_advance: bool = False
    auto_advance_delay_s: float = 1.0

    def __post_init__(self):
        if self.min_interval_s < 0:
            raise ConfigError(f"min_interval_s must be >= 0, got {self.min_interval_s}")
        if self.auto_advance_delay_s < 0:
            raise ConfigError(f"auto_advance_delay_s must be >= 0, got {self.auto_advance_delay_s}")


class Validator:
    def __init__(
        self,
        settings: ValidationSettings,
        bus: EventBus,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.settings = settings
        self.bus = bus
        self.clock = clock
        self.logger = Logger("Validator")

        self._last_emitted_at: Optional[float] = None
        self._last_result: Optional[bool] = None
        self._advance_deadline: Optional[float] = None
        self._advance_step_id: Optional[int] = None

    @property
    def last_result(self) -> Optional[bool]:
        return self._last_result

    @property
    def auto_advance_armed(self) -> bool:
        return self._advance_deadline is not None

    def validate(
        self,
        detected: Configuration,
        step: Step,
        has_next_step: bool = False,
    ) -> Optional[bool]:
        """
        Compare `detected` with the step's expected configuration.

        Returns the match result, or None when the call was rate-limited.
        """
        now = self.clock()
        if (
            self._last_emitted_at is not None
            and now - self._last_emitted_at < self.settings.min_interval_s
        ):
            self.logger.debug("Validation suppressed by rate limit")
            return None

        matched = detected == step.expected
        self._last_emitted_at = now

        if matched != self._last_result:
            if matched:
                self.logger.info(f"Configuration CORRECT for step {step.id}: {detected}")
            else:
                self.logger.info(
                    f"Configuration INCORRECT for step {step.id}: {detected} "
                    f"(expected {step.expected})"
                )
        self._last_result = matched

        self.bus.publish(ConfigurationValidated(
            matched=matched,
            detected=detected,
            expected=step.expected,
            step_id=step.id,
        ))

        if matched and self.settings.auto_advance and has_next_step and not self.auto_advance_armed:
            self._advance_deadline = now + self.settings.auto_advance_delay_s
            self._advance_step_id = step.id
            self.logger.info(f"Auto-advance armed: {self.settings.auto_advance_delay_s}s")
        elif not matched:
            self.cancel_auto_advance()

        return matched

    def tick(self) -> bool:
        """Fire the auto-advance request if its deadline has passed."""
        if self._advance_deadline is None or self.clock() < self._advance_deadline:
            return False
        step_id = self._advance_step_id
        self.cancel_auto_advance()
        self.logger.info(f"Auto-advance requested from step {step_id}")
        self.bus.publish(AdvanceRequested(step_id=step_id))
        return True

    def cancel_auto_advance(self) -> None:
        if self._advance_deadline is not None:
            self.logger.debug("Auto-advance cancelled")
        self._advance_deadline = None
        self._advance_step_id = None

    def reset(self) -> None:
        """Forget rate-limit and result history (used on step change)."""
        self.cancel_auto_advance()
        self._last_emitted_at = None
        self._last_result = None
