"""Section selection stage."""

import logging
from typing import Any

from statgraph.config.constants import PipelineStage
from statgraph.config.prompts import build_section_system_prompt, build_section_user_message
from statgraph.errors import ExternalServiceError, StageError
from statgraph.orchestrator.models import SectionSelection
from statgraph.orchestrator.stages.base import StageHandlerBase, stage_failure
from statgraph.orchestrator.state import PipelineState

logger = logging.getLogger(__name__)


class SelectSectionHandler(StageHandlerBase):
    """Picks the section of the selected statforms. Never defaults."""

    async def handle(self, state: PipelineState) -> dict[str, Any]:
        try:
            if state.statform_selection is None or not state.statform_selection.statform_ids:
                raise StageError(
                    PipelineStage.SELECT_SECTION.value, "no statforms were selected in the previous stage"
                )

            statform_ids = state.statform_selection.statform_ids
            sections = await self.catalog.get_sections(statform_ids)
            if not sections:
                raise StageError(
                    PipelineStage.SELECT_SECTION.value, f"no sections for statforms {statform_ids}"
                )

            result = await self.oracle.chat_json(
                build_section_system_prompt(sections),
                build_section_user_message(state.query),
                SectionSelection,
                self.settings.section_temperature,
            )

            if result.section_id not in {section.id for section in sections}:
                raise StageError(
                    PipelineStage.SELECT_SECTION.value, f"unknown section id {result.section_id}"
                )
        except (StageError, ExternalServiceError) as e:
            return stage_failure("select a section", e)

        logger.info(
            "Selected section %s (%s)%s",
            result.section_id,
            result.section_name,
            f" | {result.reasoning}" if result.reasoning else "",
        )
        return {"section_selection": result}
