"""Statistical form catalog."""

from statgraph.services.catalog.models import Section, Statform, TableSchema, View
from statgraph.services.catalog.service import CatalogService, format_schema_for_llm

__all__ = [
    "CatalogService",
    "Section",
    "Statform",
    "TableSchema",
    "View",
    "format_schema_for_llm",
]
