"""Chart formatters for the dashboard payload."""

import logging

from statgraph.services.dashboard.models import (
    ExtractedFederalData,
    ExtractedRegionalData,
    LinearChart,
    LinearChartData,
    LinearPoint,
    LinearSeries,
    MapRegion,
    MapYear,
    RussiaMapChart,
    RussiaMapChartData,
)

logger = logging.getLogger(__name__)

LINEAR_CHART_TITLE = "Федеральные данные по годам"
RUSSIA_MAP_CHART_TITLE = "Данные по регионам России"


class LinearChartFormatter:
    """Federal series as one line of (year, value) points."""

    def format(self, data: ExtractedFederalData, years: list[int]) -> LinearChart:
        # Ordered by the caller's year list, not by dict order.
        points = []
        for year in years:
            cell = data.data_by_year.get(year)
            points.append(LinearPoint(x=year, y=cell.value if cell is not None else None))

        filled = sum(1 for p in points if p.y is not None)
        logger.info("Linear chart: %s/%s points have values", filled, len(points))

        return LinearChart(
            title=LINEAR_CHART_TITLE,
            data=LinearChartData(years=[LinearSeries(points=points)]),
        )


class RussiaMapChartFormatter:
    """Regional values per year for the map of Russia."""

    def format(self, data: ExtractedRegionalData, years: list[int]) -> RussiaMapChart:
        map_years = []
        for year in years:
            regions = [
                MapRegion(region_code=r.region_code, value=r.value)
                for r in data.regions_by_year.get(year, [])
            ]
            map_years.append(MapYear(year=year, regions=regions))

        logger.info(
            "Russia map chart: %s years, %s regions", len(map_years), len(data.all_region_codes)
        )
        return RussiaMapChart(
            title=RUSSIA_MAP_CHART_TITLE,
            data=RussiaMapChartData(years=map_years),
        )
