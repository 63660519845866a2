"""Dashboard assembly: years, fan-out extraction, summation and formatting."""

import asyncio
import logging

from statgraph.errors import DashboardError, GraphSourceError
from statgraph.infrastructure.graph.source import GraphDataSource
from statgraph.services.dashboard.extractor import (
    CellExtractor,
    sum_federal_data_multi_view,
    sum_regional_data_multi_view,
)
from statgraph.services.dashboard.formatter import LinearChartFormatter, RussiaMapChartFormatter
from statgraph.services.dashboard.models import (
    Dashboard,
    DashboardData,
    DashboardInput,
    ExtractedFederalData,
    ExtractedRegionalData,
)

logger = logging.getLogger(__name__)


def intersect_years(years_per_view: list[list[int]]) -> list[int]:
    """Years present in every view, ascending."""
    if not years_per_view:
        return []
    common = set(years_per_view[0])
    for years in years_per_view[1:]:
        common &= set(years)
    return sorted(common)


class DashboardAssembler:
    """Builds the two-chart dashboard for a resolved cell across one or more views."""

    def __init__(
        self,
        source: GraphDataSource,
        extractor: CellExtractor | None = None,
        linear_formatter: LinearChartFormatter | None = None,
        map_formatter: RussiaMapChartFormatter | None = None,
    ):
        self.source = source
        self.extractor = extractor or CellExtractor()
        self.linear_formatter = linear_formatter or LinearChartFormatter()
        self.map_formatter = map_formatter or RussiaMapChartFormatter()

    async def generate(self, dashboard_input: DashboardInput) -> DashboardData:
        """
        Assemble the dashboard.

        Raises:
            DashboardError: invalid input, or the views share no year
            GraphSourceError: the graph store failed while reading data
        """
        self._validate(dashboard_input)
        view_ids = dashboard_input.view_ids

        years_per_view = await asyncio.gather(
            *(self.source.get_available_years(view_id) for view_id in view_ids)
        )
        years = intersect_years(list(years_per_view))
        if not years:
            raise DashboardError(f"Views {view_ids} have no year in common")
        logger.info("Common years for views %s: %s", view_ids, years)

        # All federal and regional reads are issued together and awaited before summation.
        results = await asyncio.gather(
            *(self._extract_federal(view_id, dashboard_input, years) for view_id in view_ids),
            *(self._extract_regional(view_id, dashboard_input, years) for view_id in view_ids),
        )
        federal_per_view: list[ExtractedFederalData] = list(results[: len(view_ids)])
        regional_per_view: list[ExtractedRegionalData] = list(results[len(view_ids):])

        federal = sum_federal_data_multi_view(federal_per_view, years)
        regional = sum_regional_data_multi_view(regional_per_view, years)

        description = await self._describe(dashboard_input, years[0])
        return DashboardData(
            dashboard=Dashboard(
                title=dashboard_input.query,
                description=description,
                charts=[
                    self.linear_formatter.format(federal, years),
                    self.map_formatter.format(regional, years),
                ],
            )
        )

    def _validate(self, dashboard_input: DashboardInput) -> None:
        if not dashboard_input.view_ids:
            raise DashboardError("No views selected")
        if any(view_id < 0 for view_id in dashboard_input.view_ids):
            raise DashboardError(f"Invalid view id in {dashboard_input.view_ids}")
        for cell in filter(None, (dashboard_input.cell, dashboard_input.similar_cell)):
            if cell.col_index < 0 or cell.row_index < 0:
                raise DashboardError(
                    f"Cell coordinates must be non-negative, got [{cell.row_index}, {cell.col_index}]"
                )
        if not dashboard_input.query or not dashboard_input.query.strip():
            raise DashboardError("Query must not be empty")

    async def _extract_federal(
        self, view_id: int, dashboard_input: DashboardInput, years: list[int]
    ) -> ExtractedFederalData:
        federal = await self.source.get_federal_data(view_id, years)
        return self.extractor.extract_federal_data(
            federal, dashboard_input.cell, years, similar=dashboard_input.similar_cell
        )

    async def _extract_regional(
        self, view_id: int, dashboard_input: DashboardInput, years: list[int]
    ) -> ExtractedRegionalData:
        rows = await self.source.get_regional_data(view_id, years)
        return self.extractor.extract_regional_data(
            rows, dashboard_input.cell, years, similar=dashboard_input.similar_cell
        )

    async def _describe(self, dashboard_input: DashboardInput, year: int) -> str:
        """Name the cell from the first view's headers; fall back to its coordinates."""
        cell = dashboard_input.cell
        metadata = dashboard_input.metadata
        context = [
            f"Статформа: {metadata.statform_name}",
            f"Раздел: {metadata.section_name}",
            f"Представление: {', '.join(metadata.view_names)}",
        ]
        try:
            layout = await self.source.get_table_schema(dashboard_input.view_ids[0], year)
        except GraphSourceError as e:
            logger.warning("Table layout unavailable for description, using coordinates: %s", e)
            return " | ".join([f"Ячейка [{cell.row_index}, {cell.col_index}]", *context])

        column_name = _label_at(layout.headers, cell.col_index) or f"Колонка {cell.col_index}"
        row_name = _label_at(layout.row_labels, cell.row_index) or f"Строка {cell.row_index}"
        return " | ".join([f"{column_name}, {row_name}", *context])


def _label_at(labels: list[str], index: int) -> str | None:
    if 0 <= index < len(labels):
        label = labels[index].strip()
        return label or None
    return None
