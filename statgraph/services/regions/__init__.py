"""Region name resolution."""

from statgraph.services.regions.mapper import RegionMapper

__all__ = ["RegionMapper"]
