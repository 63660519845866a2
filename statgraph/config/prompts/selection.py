"""
Prompts for the three narrowing stages: statform, section, view and cell.
"""

from collections.abc import Sequence
from typing import Any


def _format_items(items: Sequence[Any]) -> str:
    return "\n".join(f"- [{item.id}] {item.name}" for item in items)


# =============================================================================
# Statform selection
# =============================================================================

def build_statform_system_prompt(statforms: Sequence[Any]) -> str:
    """Build system prompt for statform selection."""
    return (
        "Select the statistical reporting forms (statforms) whose data answers the user's question. "
        "Pick one form, or two when the indicator is split across forms.\n\n"
        "## Available statforms\n\n"
        f"{_format_items(statforms)}\n\n"
        "## Output Format\n\n"
        '{"statformIds": [1], "reasoning": "<short justification>"}'
    )


def build_statform_user_message(query: str) -> str:
    return f"Question: {query}"


# =============================================================================
# Section selection
# =============================================================================

def build_section_system_prompt(sections: Sequence[Any]) -> str:
    """Build system prompt for section selection."""
    return (
        "Select the single section of the chosen statforms that contains the indicator "
        "the user asks about.\n\n"
        "## Available sections\n\n"
        f"{_format_items(sections)}\n\n"
        "## Output Format\n\n"
        '{"sectionId": 1, "sectionName": "<name>", "reasoning": "<short justification>"}'
    )


def build_section_user_message(query: str) -> str:
    return f"Question: {query}"


# =============================================================================
# View and cell selection
# =============================================================================

def build_view_cells_system_prompt(schema_text: str, views: Sequence[Any]) -> str:
    """Build system prompt for view and cell selection.

    All views of one section share the table layout, so a single schema
    describes every view in the list.
    """
    return (
        "Select the views and the table cell that hold the requested indicator. "
        "Row and column indexes are zero-based and refer to the data matrix shown below. "
        "When the table layout changed between years and another cell carries the same "
        "metric, report it as similarCellCoordinate.\n\n"
        "## Views\n\n"
        f"{_format_items(views)}\n\n"
        "## Table layout\n\n"
        f"{schema_text}\n\n"
        "## Output Format\n\n"
        "{\n"
        '  "viewIds": [1],\n'
        '  "cellCoordinates": {"colIndex": 0, "rowIndex": 0},\n'
        '  "similarCellCoordinate": null,\n'
        '  "metadata": {"viewNames": ["<name>"], "sectionName": "<name>", "statformName": "<name>"},\n'
        '  "reasoning": "<short justification>"\n'
        "}"
    )


def build_view_cells_user_message(query: str, section_name: str, statform_name: str) -> str:
    return f"Question: {query}\nStatform: {statform_name}\nSection: {section_name}"
