"""Lookups over statforms, sections, views and table layouts."""

import logging

from statgraph.errors import GraphSourceError
from statgraph.infrastructure.cache.ttl_cache import TTLCache
from statgraph.infrastructure.graph.source import GraphDataSource
from statgraph.services.catalog.models import Section, Statform, TableSchema, View

logger = logging.getLogger(__name__)

_STATFORMS_QUERY = """
MATCH (n:СТАТФОРМА)
RETURN n.name AS name, n.description AS description, id(n) AS id
ORDER BY n.name
"""

_SECTIONS_QUERY = """
MATCH (parent)-[:СОДЕРЖИТ]->(child)
WHERE id(parent) IN $statformIds
RETURN id(child) AS id, child.name AS name, child.full_name AS fullName
ORDER BY child.name
"""

_VIEWS_QUERY = """
MATCH (parent)-[:СОДЕРЖИТ]->(child)
WHERE id(parent) = $sectionId
RETURN id(child) AS id, child.name AS name, child.view_type AS viewType
ORDER BY child.name
"""


class CatalogService:
    """Catalog navigation for the narrowing stages.

    The statform list rarely changes and is cached; sections, views and
    table layouts are read on every call.
    """

    def __init__(self, source: GraphDataSource, cache: TTLCache | None = None):
        self.source = source
        self.cache = cache or TTLCache(max_size=32, ttl_seconds=600)

    async def get_statforms(self) -> list[Statform]:
        return await self.cache.get_or_load("statforms", self._load_statforms)

    async def _load_statforms(self) -> list[Statform]:
        records = await self.source.execute_query(_STATFORMS_QUERY)
        statforms = [
            Statform(id=int(r["id"]), name=r["name"] or "", description=r.get("description") or "")
            for r in records
        ]
        logger.info("Loaded %s statforms", len(statforms))
        return statforms

    async def get_statform_name(self, statform_id: int) -> str | None:
        for statform in await self.get_statforms():
            if statform.id == statform_id:
                return statform.name
        return None

    async def get_sections(self, statform_ids: list[int]) -> list[Section]:
        records = await self.source.execute_query(
            _SECTIONS_QUERY, {"statformIds": [int(i) for i in statform_ids]}
        )
        sections = [
            Section(id=int(r["id"]), name=r["name"] or "", full_name=r.get("fullName") or "")
            for r in records
        ]
        logger.info("Loaded %s sections for statforms %s", len(sections), statform_ids)
        return sections

    async def get_views(self, section_id: int) -> list[View]:
        records = await self.source.execute_query(_VIEWS_QUERY, {"sectionId": int(section_id)})
        views = [
            View(id=int(r["id"]), name=r["name"] or "", view_type=r.get("viewType") or "")
            for r in records
        ]
        logger.info("Loaded %s views for section %s", len(views), section_id)
        return views

    async def build_table_schema(self, view_id: int, view_name: str, sample_rows: int = 5) -> TableSchema:
        """Describe a view's table from its most recent year that has data.

        Raises:
            GraphSourceError: the view reports no years, or no year has data
        """
        available_years = await self.source.get_available_years(view_id)
        if not available_years:
            raise GraphSourceError(f"No data available for view {view_id}")

        sample_year = None
        table = None
        for year in sorted(available_years, reverse=True):
            try:
                federal = await self.source.get_federal_data(view_id, [year])
            except GraphSourceError as e:
                logger.debug("No data for view %s in %s (%s), trying an earlier year", view_id, year, e)
                continue
            if federal.get(year):
                sample_year, table = year, federal[year]
                break

        if sample_year is None or not table:
            years = ", ".join(str(y) for y in available_years)
            raise GraphSourceError(f"No data for any of the available years: {years}")

        headers = [str(cell) for cell in table[0]]
        row_names = [
            str(row[1])
            for row in table[1:]
            if len(row) > 1 and row[1] is not None and str(row[1]).strip()
        ]
        sample = table[: min(sample_rows + 1, len(table))]

        logger.info(
            "Schema for view %s: %s years, %s sample rows, %s row names",
            view_id,
            len(available_years),
            len(sample),
            len(row_names),
        )
        return TableSchema(
            view_id=view_id,
            view_name=view_name,
            available_years=available_years,
            sample_year=sample_year,
            sample_data=sample,
            headers=headers,
            row_names=row_names,
        )


def format_schema_for_llm(schema: TableSchema) -> str:
    """Render the sample rows with ``[row,col]`` markers on every cell."""
    lines = [
        f"View: {schema.view_name} (ID: {schema.view_id})",
        f"Available years: {', '.join(str(y) for y in schema.available_years)}",
        "",
        f"Table layout sample (year {schema.sample_year}):",
        "",
    ]
    for row_index, row in enumerate(schema.sample_data):
        lines.append(
            " | ".join(f"[{row_index},{col_index}] {cell}" for col_index, cell in enumerate(row))
        )
    return "\n".join(lines)
