"""Pipeline state model."""

from dataclasses import dataclass, fields, replace
from typing import Any, Optional

from statgraph.orchestrator.models import (
    ClarificationResult,
    SectionSelection,
    StatformSelection,
    ViewSelection,
)
from statgraph.services.dashboard.models import DashboardData


@dataclass(frozen=True)
class PipelineState:
    """State passed through the pipeline.

    Immutable: each stage returns a partial update and ``merge`` builds the
    next state, so a failed stage leaves nothing half-written.
    """

    # Input
    query: str

    # Clarify graph
    clarification: Optional[ClarificationResult] = None

    # Main graph
    statform_selection: Optional[StatformSelection] = None
    section_selection: Optional[SectionSelection] = None
    view_selection: Optional[ViewSelection] = None
    dashboard_data: Optional[DashboardData] = None

    error: Optional[str] = None

    def merge(self, update: dict[str, Any]) -> "PipelineState":
        known = {f.name for f in fields(self)}
        unknown = set(update) - known
        if unknown:
            raise ValueError(f"Unknown state fields: {sorted(unknown)}")
        return replace(self, **update)

    @property
    def failed(self) -> bool:
        return self.error is not None

    def summary(self) -> dict[str, Any]:
        """Compact view of the state for structured logs."""
        return {
            "query": self.query,
            "statform_ids": self.statform_selection.statform_ids if self.statform_selection else None,
            "section_id": self.section_selection.section_id if self.section_selection else None,
            "view_ids": self.view_selection.view_ids if self.view_selection else None,
            "has_clarification": self.clarification is not None,
            "has_dashboard": self.dashboard_data is not None,
            "error": self.error,
        }
