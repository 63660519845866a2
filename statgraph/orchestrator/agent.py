"""Query agent: the main and clarification stage graphs."""

import logging
import uuid

from statgraph.config.constants import PipelineStage
from statgraph.config.settings import Settings
from statgraph.errors import StageError
from statgraph.infrastructure.llm.oracle import LLMOracle
from statgraph.infrastructure.logging.session_logger import SessionLogger
from statgraph.orchestrator.models import ClarificationResult
from statgraph.orchestrator.pipeline import Stage, StagePipeline
from statgraph.orchestrator.stages import (
    ClarifyQueryHandler,
    GenerateDashboardHandler,
    SelectSectionHandler,
    SelectStatformHandler,
    SelectViewCellsHandler,
)
from statgraph.orchestrator.state import PipelineState
from statgraph.services.catalog.service import CatalogService
from statgraph.services.dashboard.generator import DashboardAssembler
from statgraph.services.dashboard.models import DashboardData

logger = logging.getLogger(__name__)


def build_main_pipeline(
    oracle: LLMOracle,
    catalog: CatalogService,
    assembler: DashboardAssembler,
    settings: Settings,
) -> StagePipeline:
    return StagePipeline(
        [
            Stage(PipelineStage.SELECT_STATFORM, SelectStatformHandler(oracle, catalog, settings).handle),
            Stage(PipelineStage.SELECT_SECTION, SelectSectionHandler(oracle, catalog, settings).handle),
            Stage(PipelineStage.SELECT_VIEW_CELLS, SelectViewCellsHandler(oracle, catalog, settings).handle),
            Stage(PipelineStage.GENERATE_DASHBOARD, GenerateDashboardHandler(assembler).handle),
        ]
    )


def build_clarify_pipeline(
    oracle: LLMOracle,
    catalog: CatalogService,
    settings: Settings,
) -> StagePipeline:
    return StagePipeline(
        [Stage(PipelineStage.CLARIFY, ClarifyQueryHandler(oracle, catalog, settings).handle)]
    )


class QueryAgent:
    """Entry point for running a question through the stage graphs."""

    def __init__(
        self,
        oracle: LLMOracle,
        catalog: CatalogService,
        assembler: DashboardAssembler,
        settings: Settings,
    ):
        self.settings = settings
        self.main_pipeline = build_main_pipeline(oracle, catalog, assembler, settings)
        self.clarify_pipeline = build_clarify_pipeline(oracle, catalog, settings)

    def _session_logger(self) -> SessionLogger:
        return SessionLogger(
            base_dir=self.settings.llm_session_logs_dir,
            enabled=self.settings.llm_session_logs,
        )

    async def _run(self, pipeline: StagePipeline, question: str, session_id: str) -> PipelineState:
        session_logger = self._session_logger()
        session_logger.start_session(session_id, question)
        state = PipelineState(query=question)
        try:
            state = await pipeline.run(state, session_logger)
        finally:
            session_logger.end_session(success=not state.failed, final_message=state.error or "")
        return state

    async def process_query(self, question: str, job_id: str | None = None) -> DashboardData:
        """
        Run the main graph for a question.

        Raises:
            StageError: a stage failed; the message is the stage's error
        """
        state = await self._run(self.main_pipeline, question, job_id or uuid.uuid4().hex)
        if state.error:
            raise StageError("pipeline", state.error)
        if state.dashboard_data is None:
            raise StageError("pipeline", "Pipeline finished without a dashboard")
        return state.dashboard_data

    async def get_clarifications(self, question: str) -> ClarificationResult:
        """Run the clarification graph for a question."""
        state = await self._run(self.clarify_pipeline, question, f"clarify-{uuid.uuid4().hex[:8]}")
        if state.error:
            raise StageError(PipelineStage.CLARIFY.value, state.error)
        if state.clarification is None:
            raise StageError(PipelineStage.CLARIFY.value, "No clarification options were produced")
        return state.clarification
