"""Text processing utilities."""

import re


def normalize_text(text: str) -> str:
    """
    Normalize text for processing.

    Args:
        text: Input text

    Returns:
        Text with runs of whitespace collapsed and ends trimmed
    """
    text = re.sub(r"\s+", " ", text)
    text = text.strip()
    return text


def truncate(text: str, limit: int) -> str:
    """Cut text to at most *limit* characters, marking the cut with an ellipsis."""
    if len(text) <= limit:
        return text
    return text[: max(limit - 1, 0)] + "…"
