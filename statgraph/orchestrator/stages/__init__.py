"""Stage handlers of the query resolution pipeline."""

from statgraph.orchestrator.stages.clarify import ClarifyQueryHandler
from statgraph.orchestrator.stages.generate_dashboard import GenerateDashboardHandler
from statgraph.orchestrator.stages.select_section import SelectSectionHandler
from statgraph.orchestrator.stages.select_statform import SelectStatformHandler
from statgraph.orchestrator.stages.select_view_cells import SelectViewCellsHandler

__all__ = [
    "ClarifyQueryHandler",
    "GenerateDashboardHandler",
    "SelectSectionHandler",
    "SelectStatformHandler",
    "SelectViewCellsHandler",
]
