"""Dashboard generation stage."""

import logging
from typing import Any

from statgraph.config.constants import PipelineStage
from statgraph.errors import DashboardError, ExternalServiceError, StageError
from statgraph.orchestrator.state import PipelineState
from statgraph.orchestrator.stages.base import stage_failure
from statgraph.services.dashboard.generator import DashboardAssembler
from statgraph.services.dashboard.models import (
    CellCoordinate,
    DashboardInput,
    DashboardMetadata,
)

logger = logging.getLogger(__name__)


class GenerateDashboardHandler:
    """Hands the resolved selection to the dashboard assembler. No oracle call."""

    def __init__(self, assembler: DashboardAssembler):
        self.assembler = assembler

    async def handle(self, state: PipelineState) -> dict[str, Any]:
        try:
            selection = state.view_selection
            if selection is None:
                raise StageError(
                    PipelineStage.GENERATE_DASHBOARD.value,
                    "views and cell were not selected in the previous stage",
                )

            similar = selection.similar_cell_coordinate
            dashboard_input = DashboardInput(
                query=state.query,
                view_ids=list(selection.view_ids),
                cell=CellCoordinate(
                    col_index=selection.cell_coordinates.col_index,
                    row_index=selection.cell_coordinates.row_index,
                ),
                similar_cell=(
                    CellCoordinate(col_index=similar.col_index, row_index=similar.row_index)
                    if similar is not None
                    else None
                ),
                metadata=DashboardMetadata(
                    view_names=list(selection.metadata.view_names),
                    section_name=selection.metadata.section_name,
                    statform_name=selection.metadata.statform_name,
                ),
            )
            dashboard = await self.assembler.generate(dashboard_input)
        except (StageError, DashboardError, ExternalServiceError) as e:
            return stage_failure("generate the dashboard", e)

        logger.info("Dashboard generated for views %s", dashboard_input.view_ids)
        return {"dashboard_data": dashboard}
