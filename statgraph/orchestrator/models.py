"""Structured results the oracle returns for each stage."""

from pydantic import BaseModel, ConfigDict, Field


class _StageResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class ClarificationSuggestion(_StageResult):
    """One disambiguation option shown to the user."""

    id: int = Field(ge=1, le=7)
    label: str = Field(max_length=15)
    description: str = Field(min_length=30, max_length=80)


class ClarificationResult(_StageResult):
    suggestions: list[ClarificationSuggestion] = Field(min_length=4, max_length=7)
    reasoning: str | None = None


class StatformSelection(_StageResult):
    statform_ids: list[int] = Field(alias="statformIds", min_length=1, max_length=2)
    reasoning: str | None = None


class SectionSelection(_StageResult):
    section_id: int = Field(alias="sectionId")
    section_name: str = Field(alias="sectionName")
    reasoning: str | None = None


class CellCoordinates(_StageResult):
    col_index: int = Field(alias="colIndex", ge=0)
    row_index: int = Field(alias="rowIndex", ge=0)


class ViewSelectionMetadata(_StageResult):
    view_names: list[str] = Field(alias="viewNames")
    section_name: str = Field(alias="sectionName")
    statform_name: str = Field(alias="statformName")


class ViewSelection(_StageResult):
    """Views to aggregate and the cell to read, shared by all views."""

    view_ids: list[int] = Field(alias="viewIds", min_length=1)
    cell_coordinates: CellCoordinates = Field(alias="cellCoordinates")
    similar_cell_coordinate: CellCoordinates | None = Field(default=None, alias="similarCellCoordinate")
    metadata: ViewSelectionMetadata
    reasoning: str | None = None
