"""Statform selection stage."""

import logging
from typing import Any

from statgraph.config.constants import PipelineStage
from statgraph.config.prompts import build_statform_system_prompt, build_statform_user_message
from statgraph.errors import ExternalServiceError, StageError
from statgraph.orchestrator.models import StatformSelection
from statgraph.orchestrator.stages.base import StageHandlerBase, stage_failure
from statgraph.orchestrator.state import PipelineState

logger = logging.getLogger(__name__)


class SelectStatformHandler(StageHandlerBase):
    """Picks one or two statistical forms for the question."""

    async def handle(self, state: PipelineState) -> dict[str, Any]:
        try:
            statforms = await self.catalog.get_statforms()
            if not statforms:
                raise StageError(PipelineStage.SELECT_STATFORM.value, "statform list is empty")

            result = await self.oracle.chat_json(
                build_statform_system_prompt(statforms),
                build_statform_user_message(state.query),
                StatformSelection,
                self.settings.statform_temperature,
            )

            known_ids = {statform.id for statform in statforms}
            unknown = [i for i in result.statform_ids if i not in known_ids]
            if unknown:
                raise StageError(PipelineStage.SELECT_STATFORM.value, f"unknown statform ids {unknown}")
        except (StageError, ExternalServiceError) as e:
            return stage_failure("select statforms", e)

        logger.info(
            "Selected statforms %s%s",
            result.statform_ids,
            f" | {result.reasoning}" if result.reasoning else "",
        )
        return {"statform_selection": result}
