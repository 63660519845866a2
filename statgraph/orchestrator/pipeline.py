"""Stage pipeline: a left fold over stage handlers with short-circuit on error."""

import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Any

from statgraph.config.constants import PipelineStage, PipelineStatus
from statgraph.infrastructure.logging.logger import StructuredLogger
from statgraph.infrastructure.logging.session_logger import SessionLogger
from statgraph.orchestrator.state import PipelineState
from statgraph.orchestrator.step_timer import timed_step

logger = logging.getLogger(__name__)

StageHandler = Callable[[PipelineState], Awaitable[dict[str, Any]]]


@dataclass(frozen=True)
class Stage:
    """A named stage. A best-effort stage's failure is logged and skipped."""

    name: PipelineStage
    handler: StageHandler
    best_effort: bool = False


def _loggable(update: dict[str, Any]) -> dict[str, Any]:
    return {
        key: value.to_payload() if hasattr(value, "to_payload") else value
        for key, value in update.items()
    }


class StagePipeline:
    """Runs stages in fixed order, merging each partial update into the state.

    The first non-best-effort stage that reports an error ends the run; no
    later stage executes and the returned state carries that error.
    """

    def __init__(self, stages: Sequence[Stage], structured_logger: StructuredLogger | None = None):
        self.stages = list(stages)
        self.structured_logger = structured_logger or StructuredLogger(__name__)

    @property
    def stage_names(self) -> list[str]:
        return [stage.name.value for stage in self.stages]

    async def run(
        self,
        state: PipelineState,
        session_logger: SessionLogger | None = None,
    ) -> PipelineState:
        for stage in self.stages:
            async with timed_step(stage.name, session_logger, input_text=state.query) as step:
                update = await self._run_stage(stage, state)
                step.set_result(_loggable(update))

            error = update.get("error")
            if error:
                if stage.best_effort:
                    logger.warning("Best-effort stage %s failed, continuing: %s", stage.name.value, error)
                    continue
                self.structured_logger.log_error(stage.name.value, error, context=state.summary())
                failed = state.merge({"error": error})
                self.structured_logger.log_step(
                    PipelineStatus.FAILED.value, failed.summary(), duration_ms=step.elapsed_ms
                )
                return failed

            state = state.merge(update)
            self.structured_logger.log_step(stage.name.value, state.summary(), duration_ms=step.elapsed_ms)

        self.structured_logger.log_step(PipelineStatus.COMPLETED.value, state.summary())
        return state

    async def _run_stage(self, stage: Stage, state: PipelineState) -> dict[str, Any]:
        # Stage exceptions are reduced to an error message here; cancellation is not caught.
        try:
            update = await stage.handler(state)
        except Exception as e:
            logger.error("Stage %s raised: %s", stage.name.value, e, exc_info=True)
            return {"error": f"Stage {stage.name.value} failed: {e}"}
        return update or {}
