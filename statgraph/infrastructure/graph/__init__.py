"""Graph store access."""

from statgraph.infrastructure.graph.neo4j_client import Neo4jGraphSource, create_neo4j_driver
from statgraph.infrastructure.graph.source import GraphDataSource, Matrix, RegionDataRow, TableLayout

__all__ = [
    "GraphDataSource",
    "Matrix",
    "Neo4jGraphSource",
    "RegionDataRow",
    "TableLayout",
    "create_neo4j_driver",
]
