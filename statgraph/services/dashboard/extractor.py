"""Cell extraction and multi-view summation."""

import logging
import math
import re
from typing import Any

from statgraph.config.constants import REGION_CODE_PATTERN
from statgraph.infrastructure.graph.source import Matrix, RegionDataRow
from statgraph.services.dashboard.models import (
    CellCoordinate,
    CellValue,
    ExtractedFederalData,
    ExtractedRegionalData,
    RegionValue,
)
from statgraph.services.dashboard.similar import merge_similar_cell

logger = logging.getLogger(__name__)

# Whitespace (including non-breaking and thin spaces) and apostrophes used as digit grouping.
_GROUPING_CHARS = re.compile(r"[\s']")
_COMMA_GROUPED = re.compile(r"^[+-]?\d{1,3}(,\d{3})+$")


def parse_cell_value(raw: Any) -> float | None:
    """Turn a raw matrix cell into a number, or None when it holds no number.

    Numbers pass through. Strings lose whitespace and thousands separators
    before parsing; a lone comma is read as a decimal comma unless it groups
    exactly three digits.
    """
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        value = float(raw)
        return value if math.isfinite(value) else None
    if not isinstance(raw, str):
        logger.debug("Cannot convert %r to a number", raw)
        return None

    text = _GROUPING_CHARS.sub("", raw)
    if not text:
        return None
    if "," in text:
        if "." in text or _COMMA_GROUPED.match(text):
            text = text.replace(",", "")
        elif text.count(",") == 1:
            text = text.replace(",", ".")
        else:
            return None
    try:
        value = float(text)
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def is_valid_region_code(code: Any) -> bool:
    return isinstance(code, str) and REGION_CODE_PATTERN.match(code) is not None


def read_cell(matrix: Matrix | None, cell: CellCoordinate) -> CellValue:
    """Bounds-checked read of one cell; anything out of range is null."""
    if not isinstance(matrix, list):
        return CellValue.null()
    if not 0 <= cell.row_index < len(matrix):
        return CellValue.null()
    row = matrix[cell.row_index]
    if not isinstance(row, list) or not 0 <= cell.col_index < len(row):
        return CellValue.null()
    return CellValue.of(parse_cell_value(row[cell.col_index]))


class CellExtractor:
    """Reads one coordinate out of a view's federal and regional matrices."""

    def _read(
        self,
        matrix: Matrix | None,
        cell: CellCoordinate,
        similar: CellCoordinate | None,
        context: str,
    ) -> CellValue:
        primary = read_cell(matrix, cell)
        if similar is None:
            return primary
        return merge_similar_cell(primary, read_cell(matrix, similar), context)

    def extract_federal_data(
        self,
        federal_data: dict[int, Matrix],
        cell: CellCoordinate,
        years: list[int],
        similar: CellCoordinate | None = None,
    ) -> ExtractedFederalData:
        data_by_year: dict[int, CellValue] = {}
        for year in years:
            matrix = federal_data.get(year)
            if not matrix:
                logger.warning("Federal data for %s is missing", year)
                data_by_year[year] = CellValue.null()
                continue
            if not 0 <= cell.row_index < len(matrix):
                logger.warning(
                    "row_index %s is out of bounds (%s rows) for %s", cell.row_index, len(matrix), year
                )
            value = self._read(matrix, cell, similar, f"federal {year}")
            data_by_year[year] = value
            if value.is_null:
                logger.debug("No federal value for %s at [%s, %s]", year, cell.row_index, cell.col_index)

        return ExtractedFederalData(years=list(years), data_by_year=data_by_year)

    def extract_regional_data(
        self,
        rows: list[RegionDataRow],
        cell: CellCoordinate,
        years: list[int],
        similar: CellCoordinate | None = None,
    ) -> ExtractedRegionalData:
        regions_by_year: dict[int, list[RegionValue]] = {year: [] for year in years}
        all_region_codes: set[str] = set()

        for row in rows:
            if not is_valid_region_code(row.region_code):
                logger.warning(
                    "Skipping region with invalid code %r (name: %r)", row.region_code, row.region_name
                )
                continue

            all_region_codes.add(row.region_code)
            for year in years:
                value = self._read(
                    row.data.get(year), cell, similar, f"{row.region_code} {year}"
                )
                regions_by_year[year].append(
                    RegionValue(region_code=row.region_code, value=value.value, region_name=row.region_name)
                )

        for year in years:
            regions = regions_by_year[year]
            filled = sum(1 for r in regions if r.value is not None)
            logger.info("Regional data for %s: %s/%s regions have values", year, filled, len(regions))

        return ExtractedRegionalData(
            years=list(years), regions_by_year=regions_by_year, all_region_codes=all_region_codes
        )


def sum_federal_data_multi_view(
    multi_view_data: list[ExtractedFederalData],
    years: list[int],
) -> ExtractedFederalData:
    """Per year, sum the non-null values of all views; null only when every view is null."""
    data_by_year: dict[int, CellValue] = {}
    for year in years:
        values = [
            cell.value
            for view in multi_view_data
            if (cell := view.data_by_year.get(year)) is not None and not cell.is_null
        ]
        if not values:
            logger.warning("No values to sum for %s", year)
            data_by_year[year] = CellValue.null()
            continue
        data_by_year[year] = CellValue.of(sum(values))
    return ExtractedFederalData(years=list(years), data_by_year=data_by_year)


def sum_regional_data_multi_view(
    multi_view_data: list[ExtractedRegionalData],
    years: list[int],
) -> ExtractedRegionalData:
    """Per region and year, sum the non-null values of all views.

    The region set is the union across views, in first-seen order; the
    display name comes from the first view that supplies one.
    """
    ordered_codes: list[str] = []
    for view in multi_view_data:
        for year in view.years:
            for region in view.regions_by_year.get(year, []):
                if region.region_code not in ordered_codes:
                    ordered_codes.append(region.region_code)
        for code in sorted(view.all_region_codes - set(ordered_codes)):
            ordered_codes.append(code)

    regions_by_year: dict[int, list[RegionValue]] = {}
    for year in years:
        by_code: dict[str, list[RegionValue]] = {}
        for view in multi_view_data:
            for region in view.regions_by_year.get(year, []):
                by_code.setdefault(region.region_code, []).append(region)

        aggregated = []
        for code in ordered_codes:
            entries = by_code.get(code, [])
            values = [e.value for e in entries if e.value is not None]
            name = next((e.region_name for e in entries if e.region_name), None)
            aggregated.append(
                RegionValue(region_code=code, value=sum(values) if values else None, region_name=name)
            )
        regions_by_year[year] = aggregated

    return ExtractedRegionalData(
        years=list(years), regions_by_year=regions_by_year, all_region_codes=set(ordered_codes)
    )
