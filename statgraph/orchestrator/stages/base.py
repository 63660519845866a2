"""Shared pieces of the stage handlers."""

import logging
from typing import Any

from statgraph.config.settings import Settings
from statgraph.infrastructure.llm.oracle import LLMOracle
from statgraph.services.catalog.service import CatalogService

logger = logging.getLogger(__name__)


class StageHandlerBase:
    """Holds the collaborators every narrowing stage uses."""

    def __init__(self, oracle: LLMOracle, catalog: CatalogService, settings: Settings):
        self.oracle = oracle
        self.catalog = catalog
        self.settings = settings


def stage_failure(action: str, error: Exception) -> dict[str, Any]:
    """Partial update reporting a failed stage."""
    message = f"Could not {action}: {error}"
    logger.error(message)
    return {"error": message}
