"""Graph data source interface and records."""

from dataclasses import dataclass, field
from typing import Any, Protocol

# A table matrix: ordered rows of ordered cells (numbers, numeric strings, labels or None).
Matrix = list[list[Any]]


@dataclass
class RegionDataRow:
    """One region's matrices for a view, keyed by year."""

    region_code: str | None
    region_name: str | None
    federal_district: str | None
    data: dict[int, Matrix | None] = field(default_factory=dict)


@dataclass
class TableLayout:
    """A view's matrix for one year with its header row and row labels."""

    data: Matrix
    headers: list[str]
    row_labels: list[str]


class GraphDataSource(Protocol):
    """Read-only access to statistical tables keyed by view id and year."""

    async def get_available_years(self, view_id: int) -> list[int]: ...

    async def get_federal_data(self, view_id: int, years: list[int]) -> dict[int, Matrix]: ...

    async def get_regional_data(self, view_id: int, years: list[int]) -> list[RegionDataRow]: ...

    async def get_table_schema(self, view_id: int, year: int) -> TableLayout: ...

    async def execute_query(
        self, query: str, params: dict[str, Any] | None = None
    ) -> list[dict[str, Any]]: ...
