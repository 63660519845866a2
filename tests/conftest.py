"""Pytest configuration and fixtures."""

from typing import Any

import pytest
import pytest_asyncio
from pydantic import ValidationError

from statgraph.config.settings import Settings
from statgraph.errors import GraphSourceError, OracleResponseError
from statgraph.infrastructure.graph.source import Matrix, RegionDataRow, TableLayout
from statgraph.infrastructure.queue.database import (
    create_queue_engine,
    create_session_factory,
    init_queue_schema,
)


@pytest.fixture
def settings():
    """Provide settings fixture."""
    return Settings(
        _env_file=None,
        llm_api_key="test-key",
        callback_api_key="callback-key",
        callback_retry_delay=0,
        llm_session_logs=False,
    )


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    """Queue store on a temporary SQLite file."""
    engine = create_queue_engine(f"sqlite+aiosqlite:///{tmp_path / 'queue.db'}")
    await init_queue_schema(engine)
    yield create_session_factory(engine)
    await engine.dispose()


class FakeGraphSource:
    """In-memory graph source keyed by view id."""

    def __init__(
        self,
        years: dict[int, list[int]] | None = None,
        federal: dict[int, dict[int, Matrix]] | None = None,
        regional: dict[int, list[RegionDataRow]] | None = None,
        query_results: dict[str, list[dict[str, Any]]] | None = None,
    ):
        self.years = years or {}
        self.federal = federal or {}
        self.regional = regional or {}
        self.query_results = query_results or {}
        self.queries: list[tuple[str, dict[str, Any] | None]] = []

    async def execute_query(self, query: str, params: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        self.queries.append((query, params))
        for marker, records in self.query_results.items():
            if marker in query:
                return records
        return []

    async def get_available_years(self, view_id: int) -> list[int]:
        if view_id not in self.years:
            raise GraphSourceError(f"View {view_id} not found")
        return sorted(self.years[view_id])

    async def get_federal_data(self, view_id: int, years: list[int]) -> dict[int, Matrix]:
        stored = self.federal.get(view_id, {})
        return {year: stored.get(year, []) for year in years}

    async def get_regional_data(self, view_id: int, years: list[int]) -> list[RegionDataRow]:
        return [
            RegionDataRow(
                region_code=row.region_code,
                region_name=row.region_name,
                federal_district=row.federal_district,
                data={year: row.data.get(year) for year in years},
            )
            for row in self.regional.get(view_id, [])
        ]

    async def get_table_schema(self, view_id: int, year: int) -> TableLayout:
        matrix = self.federal.get(view_id, {}).get(year)
        if not matrix:
            raise GraphSourceError(f"No table for view {view_id} in {year}")
        return TableLayout(
            data=matrix,
            headers=[str(cell) for cell in matrix[0]],
            row_labels=[str(row[1]) if len(row) > 1 else "" for row in matrix],
        )


def table(value: Any, rows: int = 3, cols: int = 3, at: tuple[int, int] = (1, 2)) -> Matrix:
    """A small matrix with a header row and ``value`` at ``at`` (row, col)."""
    matrix: Matrix = [[f"Колонка {c}" for c in range(cols)]]
    for r in range(1, rows):
        matrix.append([str(r), f"Строка {r}", *([None] * (cols - 2))])
    row, col = at
    matrix[row][col] = value
    return matrix


class FakeOracle:
    """Answers ``chat_json`` from canned payloads keyed by schema class.

    A payload that is an exception instance is raised instead.
    """

    def __init__(self, answers: dict[type, Any] | None = None):
        self.answers = answers or {}
        self.calls: list[tuple[str, str, str]] = []

    async def chat_json(self, system_prompt: str, user_message: str, schema: type, temperature: float):
        self.calls.append((schema.__name__, system_prompt, user_message))
        answer = self.answers.get(schema)
        if isinstance(answer, Exception):
            raise answer
        if answer is None:
            raise OracleResponseError(f"No canned answer for {schema.__name__}")
        try:
            return schema.model_validate(answer)
        except ValidationError as e:
            raise OracleResponseError(f"Canned answer does not match {schema.__name__}: {e}") from e


@pytest.fixture
def make_source():
    return FakeGraphSource


@pytest.fixture
def make_table():
    return table


@pytest.fixture
def make_oracle():
    return FakeOracle
