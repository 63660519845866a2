"""Neo4j-backed graph data source."""

import asyncio
import json
import logging
import re
from typing import Any

from neo4j import AsyncDriver, AsyncGraphDatabase, RoutingControl
from neo4j.exceptions import DriverError, Neo4jError

from statgraph.config.constants import YEAR_PROPERTY_PREFIX
from statgraph.config.settings import Settings
from statgraph.errors import GraphSourceError
from statgraph.infrastructure.graph.source import Matrix, RegionDataRow, TableLayout

logger = logging.getLogger(__name__)

_COLUMN_KEY = re.compile(r"^col_(\d+)$")


def create_neo4j_driver(settings: Settings) -> AsyncDriver:
    """Build the async driver; connections are opened lazily by the pool."""
    return AsyncGraphDatabase.driver(
        settings.neo4j_uri,
        auth=(settings.neo4j_username, settings.neo4j_password),
        connection_acquisition_timeout=settings.neo4j_timeout,
    )


def _year_key(year: int) -> str:
    return f"{YEAR_PROPERTY_PREFIX}{int(year)}"


def rows_to_matrix(rows: list[Any]) -> Matrix:
    """Convert ``[{col_0: .., col_1: ..}, ...]`` rows into a list of lists.

    Columns are ordered by their numeric suffix; a row missing a column gets
    None in that position. Rows that are already lists pass through.
    """
    matrix: Matrix = []
    for row in rows:
        if isinstance(row, dict):
            indexed = {}
            for key, value in row.items():
                match = _COLUMN_KEY.match(str(key))
                if match:
                    indexed[int(match.group(1))] = value
            width = max(indexed) + 1 if indexed else 0
            matrix.append([indexed.get(i) for i in range(width)])
        elif isinstance(row, (list, tuple)):
            matrix.append(list(row))
        else:
            matrix.append([row])
    return matrix


def decode_matrix(raw: Any) -> Matrix | None:
    """Normalize a stored year property (JSON string, list of dicts, or lists)."""
    if raw is None:
        return None
    if isinstance(raw, str):
        raw = json.loads(raw)
    if not isinstance(raw, list):
        return None
    return rows_to_matrix(raw)


class Neo4jGraphSource:
    """Graph data source over the statistical form graph.

    Views carry one ``data_<year>`` property per reported year; regional
    values live on the relationships from a view to its region nodes.
    """

    def __init__(self, driver: AsyncDriver, timeout: float = 30.0, database: str | None = None):
        self.driver = driver
        self.timeout = timeout
        self.database = database

    async def close(self) -> None:
        await self.driver.close()

    async def execute_query(
        self, query: str, params: dict[str, Any] | None = None
    ) -> list[dict[str, Any]]:
        """Run a read query and return its records as dicts."""
        try:
            result = await asyncio.wait_for(
                self.driver.execute_query(
                    query,
                    parameters_=params or {},
                    database_=self.database,
                    routing_=RoutingControl.READ,
                ),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            raise GraphSourceError(f"Graph query timed out after {self.timeout}s") from e
        except (Neo4jError, DriverError) as e:
            raise GraphSourceError(f"Graph query failed: {e}") from e
        return [record.data() for record in result.records]

    async def get_available_years(self, view_id: int) -> list[int]:
        records = await self.execute_query(
            "MATCH (view) WHERE id(view) = $viewId RETURN keys(view) AS property_names",
            {"viewId": view_id},
        )
        if not records:
            raise GraphSourceError(f"View {view_id} not found")

        years = set()
        for name in records[0].get("property_names") or []:
            if not name.startswith(YEAR_PROPERTY_PREFIX):
                continue
            suffix = name[len(YEAR_PROPERTY_PREFIX):]
            if suffix.isdigit():
                years.add(int(suffix))

        logger.debug("Available years for view %s: %s", view_id, sorted(years))
        return sorted(years)

    async def get_federal_data(self, view_id: int, years: list[int]) -> dict[int, Matrix]:
        if not years:
            return {}
        properties = ", ".join(f"view.{_year_key(y)} AS {_year_key(y)}" for y in years)
        records = await self.execute_query(
            f"MATCH (view) WHERE id(view) = $viewId RETURN {properties}",
            {"viewId": view_id},
        )
        if not records:
            raise GraphSourceError(f"Federal data for view {view_id} not found")

        record = records[0]
        federal: dict[int, Matrix] = {}
        for year in years:
            try:
                matrix = decode_matrix(record.get(_year_key(year)))
            except json.JSONDecodeError as e:
                logger.warning("Unparsable federal matrix for view %s, year %s: %s", view_id, year, e)
                matrix = None
            if matrix is None:
                logger.warning("No federal data for view %s, year %s", view_id, year)
            federal[year] = matrix or []
        return federal

    async def get_regional_data(self, view_id: int, years: list[int]) -> list[RegionDataRow]:
        properties = "".join(f", r.{_year_key(y)} AS {_year_key(y)}" for y in years)
        records = await self.execute_query(
            "MATCH (view)-[r]->(region) WHERE id(view) = $viewId "
            "RETURN region.unicode AS regionCode, region.name AS regionName, "
            f"region.federalDistrict AS federalDistrict{properties}",
            {"viewId": view_id},
        )
        if not records:
            logger.warning("No regional data for view %s", view_id)
            return []

        rows = []
        for record in records:
            row = RegionDataRow(
                region_code=record.get("regionCode"),
                region_name=record.get("regionName"),
                federal_district=record.get("federalDistrict"),
            )
            for year in years:
                try:
                    row.data[year] = decode_matrix(record.get(_year_key(year)))
                except json.JSONDecodeError as e:
                    logger.warning(
                        "Unparsable regional matrix for %s (%s): %s", row.region_code, year, e
                    )
                    row.data[year] = None
            rows.append(row)

        logger.debug("Regional data for view %s: %s regions", view_id, len(rows))
        return rows

    async def get_table_schema(self, view_id: int, year: int) -> TableLayout:
        key = _year_key(year)
        records = await self.execute_query(
            f"MATCH (view) WHERE id(view) = $viewId RETURN view.{key} AS tableData",
            {"viewId": view_id},
        )
        if not records or not records[0].get("tableData"):
            raise GraphSourceError(f"Table layout for view {view_id}, year {year} not found")

        try:
            data = decode_matrix(records[0]["tableData"]) or []
        except json.JSONDecodeError as e:
            raise GraphSourceError(f"Table layout for view {view_id} is not valid JSON: {e}") from e

        headers = [str(cell) for cell in data[0]] if data else []
        # Column 0 holds row numbers, column 1 the row titles.
        row_labels = [str(row[1]) if len(row) > 1 else "" for row in data]
        return TableLayout(data=data, headers=headers, row_labels=row_labels)
