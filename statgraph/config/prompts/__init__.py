"""System prompts for the query resolution stages."""

from statgraph.config.prompts.clarify import build_clarify_system_prompt, build_clarify_user_message
from statgraph.config.prompts.selection import (
    build_section_system_prompt,
    build_section_user_message,
    build_statform_system_prompt,
    build_statform_user_message,
    build_view_cells_system_prompt,
    build_view_cells_user_message,
)

__all__ = [
    "build_clarify_system_prompt",
    "build_clarify_user_message",
    "build_section_system_prompt",
    "build_section_user_message",
    "build_statform_system_prompt",
    "build_statform_user_message",
    "build_view_cells_system_prompt",
    "build_view_cells_user_message",
]
