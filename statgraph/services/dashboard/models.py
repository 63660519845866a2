"""Dashboard service models."""

from dataclasses import dataclass, field
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


@dataclass(frozen=True)
class CellValue:
    """A parsed table cell; ``is_null`` always mirrors ``value is None``."""

    value: float | None
    is_null: bool

    def __post_init__(self) -> None:
        if self.is_null != (self.value is None):
            raise ValueError(f"Inconsistent CellValue: value={self.value!r}, is_null={self.is_null}")

    @classmethod
    def of(cls, value: float | None) -> "CellValue":
        return cls(value=value, is_null=value is None)

    @classmethod
    def null(cls) -> "CellValue":
        return cls(value=None, is_null=True)


@dataclass
class ExtractedFederalData:
    years: list[int]
    data_by_year: dict[int, CellValue] = field(default_factory=dict)


@dataclass(frozen=True)
class RegionValue:
    region_code: str
    value: float | None
    region_name: str | None = None


@dataclass
class ExtractedRegionalData:
    years: list[int]
    regions_by_year: dict[int, list[RegionValue]] = field(default_factory=dict)
    all_region_codes: set[str] = field(default_factory=set)


@dataclass(frozen=True)
class CellCoordinate:
    col_index: int
    row_index: int


@dataclass(frozen=True)
class DashboardMetadata:
    view_names: list[str]
    section_name: str
    statform_name: str


@dataclass(frozen=True)
class DashboardInput:
    """Everything the assembler needs: the question, views and the resolved cell."""

    query: str
    view_ids: list[int]
    cell: CellCoordinate
    metadata: DashboardMetadata
    similar_cell: CellCoordinate | None = None


# =============================================================================
# Chart payloads (serialized with camelCase keys)
# =============================================================================

class _ChartModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class LinearPoint(_ChartModel):
    x: int
    y: float | None


class LinearSeries(_ChartModel):
    points: list[LinearPoint]


class LinearChartData(_ChartModel):
    years: list[LinearSeries]


class LinearChart(_ChartModel):
    type: Literal["linear"] = "linear"
    title: str
    data: LinearChartData


class MapRegion(_ChartModel):
    region_code: str = Field(alias="regionCode")
    value: float | None


class MapYear(_ChartModel):
    year: int
    regions: list[MapRegion]


class RussiaMapChartData(_ChartModel):
    years: list[MapYear]


class RussiaMapChart(_ChartModel):
    type: Literal["russia_map"] = "russia_map"
    title: str
    data: RussiaMapChartData


class Dashboard(_ChartModel):
    title: str
    description: str
    charts: list[LinearChart | RussiaMapChart]


class DashboardData(_ChartModel):
    dashboard: Dashboard

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True)
