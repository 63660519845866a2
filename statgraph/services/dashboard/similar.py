"""Merge rule for a cell and its "similar" cell from a changed table layout.

Kept apart from extraction so it can be removed once layouts stabilize.
"""

import logging

from statgraph.services.dashboard.models import CellValue

logger = logging.getLogger(__name__)


def merge_similar_cell(primary: CellValue, similar: CellValue, context: str = "") -> CellValue:
    """Combine the primary and similar cell for one year.

    Exactly one non-null: that value. Both null: null. Both non-null: null,
    with a logged conflict; neither source is preferred.
    """
    if primary.is_null and similar.is_null:
        return CellValue.null()
    if primary.is_null:
        return similar
    if similar.is_null:
        return primary

    logger.warning(
        "Conflicting values for %s: primary=%s, similar=%s; using null",
        context or "cell",
        primary.value,
        similar.value,
    )
    return CellValue.null()
