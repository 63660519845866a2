"""
Constants, enums, and static values.
"""

import logging
import re
from enum import Enum

logger = logging.getLogger(__name__)

# Canonical ISO 3166-2:RU code as stored on region nodes.
REGION_CODE_PATTERN = re.compile(r"^RU-[A-Z0-9]{2,3}$")

YEAR_PROPERTY_PREFIX = "data_"


class PipelineStage(str, Enum):
    """Pipeline execution stages."""
    CLARIFY = "clarify_query"
    SELECT_STATFORM = "select_statform"
    SELECT_SECTION = "select_section"
    SELECT_VIEW_CELLS = "select_view_cells"
    GENERATE_DASHBOARD = "generate_dashboard"


class PipelineStageDescription(str, Enum):
    """Pipeline execution stage descriptions."""
    CLARIFY = "Suggest clarifying options for an ambiguous question"
    SELECT_STATFORM = "Select the statistical forms that answer the question"
    SELECT_SECTION = "Select the section of the chosen forms"
    SELECT_VIEW_CELLS = "Select the views and the table cell holding the metric"
    GENERATE_DASHBOARD = "Assemble federal and regional charts for the chosen cell"


class PipelineStatus(str, Enum):
    """Pipeline execution status."""
    COMPLETED = "completed"
    FAILED = "failed"


class JobStatus(str, Enum):
    """Lifecycle of a queued job. Completed jobs are deleted from the store."""
    PENDING = "pending"
    ACTIVE = "active"
    DELIVERING = "delivering"
    FAILED = "failed"


class CallbackStatus(str, Enum):
    """Terminal status reported to the callback receiver."""
    COMPLETED = "completed"
    FAILED = "failed"


class NotificationState(str, Enum):
    """Delivery state of a queued notification."""
    PENDING = "pending"
    ACTIVE = "active"
    FAILED = "failed"


def log_pipeline_step(stage: PipelineStage) -> None:
    """Log the start of a pipeline stage with its description."""
    description = PipelineStageDescription[stage.name].value
    logger.info("%s: %s", stage.value, description)
