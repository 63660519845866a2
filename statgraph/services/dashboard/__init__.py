"""Dashboard assembly from graph table cells."""

from statgraph.services.dashboard.generator import DashboardAssembler, intersect_years
from statgraph.services.dashboard.models import (
    CellCoordinate,
    CellValue,
    DashboardData,
    DashboardInput,
    DashboardMetadata,
)

__all__ = [
    "CellCoordinate",
    "CellValue",
    "DashboardAssembler",
    "DashboardData",
    "DashboardInput",
    "DashboardMetadata",
    "intersect_years",
]
