"""
SecureFab Node — Entry Point

Periodic stages + shared buffers + Event Bus:
    CaptureStage (30 Hz) → [vst_image_fp32] → InferenceStage (5 Hz) → [nms_detections]
    [nms_detections] → MappingStage (5 Hz) → [mapped_objects] → RenderStage (5 Hz) → RenderUpdate
    [nms_detections] → ValidationStage (30 Hz) → ConfigurationValidated / AdvanceRequested
                                                        ↕ EventBus
                                                StepManager → StepChanged / ProcedureComplete
"""
import sys
import signal
import argparse
from threading import Event
from typing import Optional

from utils.config import Config
from utils.failures import FailureManager, SecureFabError
from utils.logger import Logger
from utils.settings import load_settings

from core.bus import EventBus
from core.events import (
    ConfigurationValidated, ProcedureComplete, ShutdownRequested, StageFailed, StepChanged,
)


def parse_args():
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(description="SecureFab Node - Guided Workbench Training")
    parser.add_argument(
        '--video', '-v',
        type=str,
        required=True,
        help='Path to a side-by-side stereo video file'
    )
    parser.add_argument(
        '--steps', '-s',
        type=str,
        default=None,
        help='Path to the procedure steps JSON (overrides config)'
    )
    parser.add_argument(
        '--model', '-m',
        type=str,
        default=None,
        help='Path to the ONNX detector (overrides config)'
    )
    parser.add_argument(
        '--auto-advance',
        action='store_true',
        help='Advance to the next step automatically after a correct layout'
    )
    return parser.parse_args()


class SecureFabNode:
    """
    SecureFab Node Orchestrator.

    Constructs the pipeline once and exposes start() / stop():
      - Periodic stages (Capture, Inference, Mapping, Render, Validation)
        connected by named shared buffers, owned by a PipelineScheduler
      - StepManager and logging subscribers on the EventBus
    """

    def __init__(
        self,
        video_path: str,
        steps_path: Optional[str] = None,
        model_path: Optional[str] = None,
        auto_advance: bool = False,
        config: Optional[Config] = None,
    ):
        # ── 1. Foundation ────────────────────────────────────────────
        overrides = {}
        if steps_path:
            overrides.setdefault('steps', {})['path'] = steps_path
        if model_path:
            overrides.setdefault('detection', {})['model_path'] = model_path
        if auto_advance:
            overrides.setdefault('validation', {})['auto_advance'] = True

        self.config = config or Config(overrides=overrides)
        Logger.setup(self.config.get('logging', {}))
        self.logger = Logger("SecureFabNode")
        self.logger.info("Initializing SecureFab Node...")

        # Rejects bad configuration before anything runs
        self.settings = load_settings(self.config)

        # Shared shutdown signal
        self.stop_event = Event()
        self.failures = FailureManager(self.config.get('failures', {}))
        self.bus = EventBus(failures=self.failures)

        # ── 2. Procedure ─────────────────────────────────────────────
        from Handlers.Steps_Loader_Handler import load_steps
        from Managers.Step_Manager import StepManager

        self.step_manager = StepManager(load_steps(self.settings.steps_path), self.bus)

        # ── 3. Collaborators (frame source, head pose, detector) ─────
        from Handlers.Head_Pose_Handler import PoseHistory
        from Handlers.Stereo_Input_Handler import StereoInputHandler
        from Handlers.Model_Inference_Handler import ModelInferenceHandler

        self.poses = PoseHistory()
        self.frame_source = StereoInputHandler(
            video_path,
            eye_size=self.settings.camera.size,
            camera_matrix=self.settings.camera.camera_matrix(),
            poses=self.poses,
        )
        self.detector = ModelInferenceHandler(str(self.settings.model_path))
        self.detector.load()

        # ── 4. Pipeline ──────────────────────────────────────────────
        self.scheduler = self._build_pipeline()

        # ── 5. Bus subscribers ───────────────────────────────────────
        self.bus.subscribe(ConfigurationValidated, self._on_validated)
        self.bus.subscribe(StepChanged, self._on_step_changed)
        self.bus.subscribe(ProcedureComplete, self._on_procedure_complete)
        self.bus.subscribe(StageFailed, self._on_stage_failed)
        self.bus.subscribe(ShutdownRequested, self._on_shutdown_requested)

        # ── 6. OS Signals ────────────────────────────────────────────
        self._setup_signals()
        self.logger.info("SecureFab Node initialized successfully")

    def _build_pipeline(self):
        from core.labels import LabelMap
        from core.postprocess import PostProcessor
        from core.scheduler import PipelineScheduler
        from core.spatial import SpatialMapper
        from core.stability import StabilityGate
        from core.validator import Validator
        from core.zones import ZoneClassifier
        from core.stages import (
            CaptureStage, InferenceStage, MappingStage, RenderStage, ValidationStage, ZoneObserver,
        )

        s = self.settings
        scheduler = PipelineScheduler(self.bus, failures=self.failures, stop_event=self.stop_event)
        context = scheduler.context
        labels = LabelMap(tracked=s.tracked_objects)

        scheduler.add(CaptureStage(
            CaptureStage.describe(
                s.rates.capture_hz,
                loop_video=s.camera.loop_video,
                source_type="video",
                input_width=s.postprocess.input_width,
                input_height=s.postprocess.input_height,
            ),
            context,
            source=self.frame_source,
        ))
        scheduler.add(InferenceStage(
            InferenceStage.describe(s.rates.inference_hz),
            context,
            backend=self.detector,
            postprocessor=PostProcessor(s.postprocess),
        ))
        scheduler.add(MappingStage(
            MappingStage.describe(s.rates.mapping_hz),
            context,
            mapper=SpatialMapper(s.mapping, self.poses.lookup, labels),
        ))
        scheduler.add(RenderStage(
            RenderStage.describe(
                s.rates.render_hz,
                max_detections=s.postprocess.max_detections,
                confidence_threshold=s.postprocess.confidence_threshold,
            ),
            context,
        ))
        scheduler.add(ValidationStage(
            ValidationStage.describe(s.rates.validation_hz),
            context,
            observer=ZoneObserver(ZoneClassifier(s.zones), labels),
            gate=StabilityGate(s.stability),
            validator=Validator(s.validation, self.bus),
            steps=self.step_manager,
        ))
        return scheduler

    def _setup_signals(self):
        """Handle OS signals for graceful shutdown."""
        def handler(sig, frame):
            self.logger.info("Shutdown signal received")
            self.stop_event.set()
        signal.signal(signal.SIGINT, handler)
        signal.signal(signal.SIGTERM, handler)

    # ── Bus handlers ─────────────────────────────────────────────────

    def _on_validated(self, event: ConfigurationValidated):
        status = "CORRECT" if event.matched else "INCORRECT"
        self.logger.info(f"[{self.step_manager.progress_text()}] Layout {status}: {event.detected}")

    def _on_step_changed(self, event: StepChanged):
        self.logger.info(f"{event.step.instruction_text()} (expected {event.step.expected})")

    def _on_procedure_complete(self, event: ProcedureComplete):
        self.logger.info(f"Procedure complete ({event.total_steps} steps)")
        self.bus.publish(ShutdownRequested(reason="procedure complete"))

    def _on_stage_failed(self, event: StageFailed):
        self.logger.error(f"Stage {event.stage} stopped: {event.reason}")

    def _on_shutdown_requested(self, event: ShutdownRequested):
        self.logger.info(f"Shutdown requested: {event.reason}")
        self.stop_event.set()

    # ── Lifecycle ────────────────────────────────────────────────────

    def start(self):
        """Start all pipeline stages and block until shutdown is requested."""
        self.logger.info("Starting SecureFab Node services...")

        self.scheduler.initialize()
        self.scheduler.start()
        self.step_manager.reset()

        try:
            while not self.stop_event.wait(0.5):
                pass
        finally:
            self.stop()

    def stop(self):
        """Gracefully shutdown all components."""
        if not self.scheduler.initialized and not any(s.is_alive() for s in self.scheduler.stages):
            return  # Already stopped

        self.stop_event.set()
        self.logger.info("Stopping SecureFab Node...")

        self.scheduler.stop(timeout=self.settings.shutdown_timeout_s)
        self.bus.clear()

        self.logger.info("SecureFab Node stopped successfully")


if __name__ == "__main__":
    args = parse_args()

    try:
        node = SecureFabNode(
            video_path=args.video,
            steps_path=args.steps,
            model_path=args.model,
            auto_advance=args.auto_advance,
        )
    except SecureFabError as e:
        Logger("SecureFabNode").critical(f"Startup failed: {e.message}")
        sys.exit(1)

    node.start()
