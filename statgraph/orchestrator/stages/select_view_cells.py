"""View and cell selection stage."""

import logging
from typing import Any

from statgraph.config.constants import PipelineStage
from statgraph.config.prompts import build_view_cells_system_prompt, build_view_cells_user_message
from statgraph.errors import ExternalServiceError, StageError
from statgraph.orchestrator.models import ViewSelection
from statgraph.orchestrator.stages.base import StageHandlerBase, stage_failure
from statgraph.orchestrator.state import PipelineState
from statgraph.services.catalog.service import format_schema_for_llm

logger = logging.getLogger(__name__)

UNKNOWN_STATFORM_NAME = "Неизвестная статформа"


class SelectViewCellsHandler(StageHandlerBase):
    """Picks the views to aggregate and the cell coordinates to read."""

    async def handle(self, state: PipelineState) -> dict[str, Any]:
        try:
            if state.statform_selection is None or state.section_selection is None:
                raise StageError(
                    PipelineStage.SELECT_VIEW_CELLS.value,
                    "statforms or section were not selected in the previous stages",
                )

            section = state.section_selection
            views = await self.catalog.get_views(section.section_id)
            if not views:
                raise StageError(
                    PipelineStage.SELECT_VIEW_CELLS.value, f"no views for section {section.section_id}"
                )

            # Views of one section share a layout, so the first one describes them all.
            first_view = views[0]
            schema = await self.catalog.build_table_schema(
                first_view.id, first_view.name, sample_rows=self.settings.schema_sample_rows
            )

            statform_id = state.statform_selection.statform_ids[0]
            statform_name = await self.catalog.get_statform_name(statform_id) or UNKNOWN_STATFORM_NAME

            result = await self.oracle.chat_json(
                build_view_cells_system_prompt(format_schema_for_llm(schema), views),
                build_view_cells_user_message(state.query, section.section_name, statform_name),
                ViewSelection,
                self.settings.view_cells_temperature,
            )

            known_ids = {view.id for view in views}
            unknown = [i for i in result.view_ids if i not in known_ids]
            if unknown:
                raise StageError(PipelineStage.SELECT_VIEW_CELLS.value, f"unknown view ids {unknown}")
        except (StageError, ExternalServiceError) as e:
            return stage_failure("select views and cell coordinates", e)

        cell = result.cell_coordinates
        logger.info(
            "Selected views %s, cell row=%s col=%s%s",
            result.view_ids,
            cell.row_index,
            cell.col_index,
            f" | {result.reasoning}" if result.reasoning else "",
        )
        return {"view_selection": result}
