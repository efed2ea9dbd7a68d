"""
Owner of one pipeline's periodic stages.

    initialize()  declare every buffer the stage specs name, then raise the
                  "pipelines initialized" flag
    start()       start every stage thread
    stop()        set the shutdown flag and join each stage with a bound

Stages started before initialize() simply skip their cycles.
"""
from threading import Event
from typing import List, Optional

from core.buffers import BufferRegistry
from core.bus import EventBus
from core.stages.base import PeriodicStage, StageContext
from utils.failures import FailureManager
from utils.logger import Logger


class PipelineScheduler:
    def __init__(
        self,
        bus: EventBus,
        failures: Optional[FailureManager] = None,
        stop_event: Optional[Event] = None,
    ):
        self.logger = Logger("PipelineScheduler")
        self.context = StageContext(
            buffers=BufferRegistry(),
            stop_event=stop_event or Event(),
            ready=Event(),
            bus=bus,
            failures=failures or FailureManager(),
        )
        self.stages: List[PeriodicStage] = []

    @property
    def buffers(self) -> BufferRegistry:
        return self.context.buffers

    @property
    def initialized(self) -> bool:
        return self.context.ready.is_set()

    def add(self, stage: PeriodicStage) -> PeriodicStage:
        if stage.context is not self.context:
            raise ValueError(f"Stage {stage.spec.name} was built for another pipeline")
        self.stages.append(stage)
        return stage

    def initialize(self) -> None:
        for stage in self.stages:
            for name in stage.spec.inputs + stage.spec.outputs:
                self.buffers.declare(name)
        self.context.ready.set()
        self.logger.info(
            f"Pipeline initialized: {len(self.stages)} stage(s), buffers {', '.join(self.buffers.names())}"
        )

    def start(self) -> None:
        for stage in self.stages:
            stage.start()
        self.logger.info("Pipeline stages running")

    def stop(self, timeout: float = 1.0) -> List[str]:
        """
        Signal shutdown and join every stage for at most `timeout` seconds each.

        Returns the names of stages that were still running afterwards; their
        in-flight cycle is abandoned.
        """
        self.context.stop_event.set()
        self.context.ready.clear()

        stuck = []
        for stage in self.stages:
            if stage.is_alive():
                stage.join(timeout=timeout)
            if stage.is_alive():
                stuck.append(stage.spec.name)

        if stuck:
            self.logger.warning(f"Stages still running after shutdown: {', '.join(stuck)}")
        else:
            self.logger.info("All pipeline stages stopped")
        return stuck

    def failed_stages(self) -> List[str]:
        return [stage.spec.name for stage in self.stages if stage.failed]
