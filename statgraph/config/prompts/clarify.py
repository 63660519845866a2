"""
Prompt for the clarification stage.
"""


def build_clarify_system_prompt(catalog_overview: str) -> str:
    """Build system prompt for the clarification agent."""
    return (
        "You help users of a Russian statistical reporting database phrase precise questions. "
        "The user's question may be ambiguous. Propose between 4 and 7 refinements, each pointing "
        "at a concrete indicator that the catalog below can answer. "
        "\n\n"
        "## Catalog\n\n"
        f"{catalog_overview}\n\n"
        "## Output Format\n\n"
        "{\n"
        '  "suggestions": [\n'
        '    {"id": 1, "label": "<max 15 chars>", "description": "<30 to 80 chars>"}\n'
        "  ],\n"
        '  "reasoning": "<short justification>"\n'
        "}\n"
        "Use ids 1 to 7 in order. Write labels and descriptions in Russian."
    )


def build_clarify_user_message(query: str) -> str:
    return f"Question: {query}"
