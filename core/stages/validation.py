"""
Validation Stage — the main-rate task that turns detections into a zone
configuration, debounces it and validates stable layouts against the
current step.

Owns the stability gate and the validator. Step changes arrive on the bus
(possibly from another thread) and reset both under the same lock that
guards a cycle.
"""
from threading import RLock
from typing import List, Optional, Tuple

from core.buffers import StageSpec
from core.bus import EventBus
from core.configuration import Configuration, ConfigurationAggregator
from core.events import Detection, DetectionBatch, StepChanged
from core.labels import LabelMap
from core.protocols import StepProvider
from core.stability import StabilityGate
from core.stages.base import PeriodicStage, StageContext
from core.validator import Validator
from core.zones import Zone, ZoneClassifier
from utils.constants import BUFFER_DETECTIONS


class ZoneObserver:
    """Detections -> Configuration for a single cycle."""

    def __init__(self, classifier: ZoneClassifier, labels: LabelMap):
        self.classifier = classifier
        self.labels = labels
        self.aggregator = ConfigurationAggregator()

    def assignments(self, detections: Tuple[Detection, ...]) -> List[Tuple[Detection, Zone, Optional[str]]]:
        result = []
        for detection in detections:
            label = self.labels.object_label(detection.class_id)
            if label is None:
                continue
            x, y = detection.center
            result.append((detection, self.classifier.classify(x, y), label))
        return result

    def observe(self, detections: Tuple[Detection, ...]) -> Configuration:
        return self.aggregator.aggregate(self.assignments(detections))


class ValidationStage(PeriodicStage):
    """
    Pipeline Stage 4: zone configuration validation.

    Every cycle copies the latest detection list, classifies and aggregates
    it, feeds the stability gate and, on the cycle the gate becomes stable,
    validates once against the current step. If the validator rate-limits
    that call, it is retried on later cycles while the same layout stays
    stable, so every stable layout gets exactly one result.
    """

    NAME = "ValidationStage"
    INPUTS = (BUFFER_DETECTIONS,)

    def __init__(
        self,
        spec: StageSpec,
        context: StageContext,
        observer: ZoneObserver,
        gate: StabilityGate,
        validator: Validator,
        steps: StepProvider,
    ):
        super().__init__(spec, context)
        self.observer = observer
        self.gate = gate
        self.validator = validator
        self.steps = steps
        self._lock = RLock()
        self.last_configuration: Optional[Configuration] = None
        self.pending_validation = False

        context.bus.subscribe(StepChanged, self._on_step_changed)

    def step(self) -> None:
        snapshot = self.read(BUFFER_DETECTIONS)
        batch: Optional[DetectionBatch] = None if snapshot.empty else snapshot.value
        detections = batch.detections if batch is not None else ()

        configuration = self.observer.observe(detections)

        with self._lock:
            self.last_configuration = configuration

            if self.gate.changed(configuration):
                self.pending_validation = False
                if self.gate.candidate is not None:
                    self.validator.cancel_auto_advance()
                    self.logger.debug(f"Configuration changed: {configuration}")

            if self.gate.update(configuration):
                self.logger.info(f"Configuration stable: {configuration}")
                self._validate(configuration)
            elif self.pending_validation and self.gate.is_stable:
                self._validate(configuration)

            self.validator.tick()

    def _validate(self, configuration: Configuration) -> None:
        # A rate-limited call stays pending while the same layout holds
        current = self.steps.current_step
        if current is None:
            self.pending_validation = False
            return
        result = self.validator.validate(configuration, current, self.steps.has_next_step())
        self.pending_validation = result is None
        if self.pending_validation:
            self.logger.debug("Stable configuration waiting for the rate limit")

    def _on_step_changed(self, event: StepChanged) -> None:
        with self._lock:
            self.gate.reset()
            self.validator.reset()
            self.last_configuration = None
            self.pending_validation = False
        self.logger.info(f"Step changed to {event.step.id}, stability reset")

    def detach(self, bus: EventBus) -> None:
        bus.unsubscribe(StepChanged, self._on_step_changed)
