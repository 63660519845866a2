"""Async context manager for timing and logging pipeline stages."""

import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from statgraph.config.constants import PipelineStage, log_pipeline_step
from statgraph.infrastructure.logging.session_logger import SessionLogger


class StepContext:
    """Mutable context for a timed pipeline stage."""

    def __init__(self) -> None:
        self.result: Any = None
        self.input_text: str | None = None
        self.elapsed_ms: float = 0.0

    def set_result(self, result: Any, *, input_text: str | None = None) -> None:
        self.result = result
        if input_text is not None:
            self.input_text = input_text


@asynccontextmanager
async def timed_step(
    stage: PipelineStage,
    logger: SessionLogger | None = None,
    *,
    input_text: str | None = None,
) -> AsyncGenerator[StepContext, None]:
    """Time a pipeline stage and log its result."""
    log_pipeline_step(stage)
    ctx = StepContext()
    ctx.input_text = input_text
    start = time.perf_counter()
    try:
        yield ctx
    finally:
        ctx.elapsed_ms = (time.perf_counter() - start) * 1000
        if logger is not None and ctx.result is not None:
            logger.log_stage_result(
                stage_name=stage.value,
                result=ctx.result,
                input_text=ctx.input_text,
                execution_time_ms=ctx.elapsed_ms,
            )
