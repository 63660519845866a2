"""Catalog entries of the statistical form graph."""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class Statform:
    id: int
    name: str
    description: str = ""


@dataclass(frozen=True)
class Section:
    id: int
    name: str
    full_name: str = ""


@dataclass(frozen=True)
class View:
    id: int
    name: str
    view_type: str = ""


@dataclass
class TableSchema:
    """Layout of a view's table as shown to the view and cell selection stage."""

    view_id: int
    view_name: str
    available_years: list[int]
    sample_year: int
    sample_data: list[list[Any]]
    headers: list[str] = field(default_factory=list)
    row_names: list[str] = field(default_factory=list)
