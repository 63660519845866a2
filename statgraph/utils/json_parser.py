"""
JSON Parser utility for extracting JSON from LLM responses.
"""
import json
import logging
import re
from typing import Any, Dict

logger = logging.getLogger(__name__)

_FENCED_BLOCK = re.compile(r"^\s*```(?:json)?\s*\n?(.*?)\n?\s*```\s*$", re.DOTALL | re.IGNORECASE)


class JSONParseError(ValueError):
    """Raised when a response holds no JSON object."""


class JSONParser:
    """Helper class to extract clean JSON from LLM responses."""

    @staticmethod
    def parse_object(text: str) -> Dict[str, Any]:
        """Parse a JSON object from text.

        Strict ``json.loads`` first; if that fails, the only fallback is a
        response that consists of exactly one fenced code block, whose body is
        parsed strictly. Anything else raises ``JSONParseError``.
        """
        try:
            result = json.loads(text)
        except json.JSONDecodeError as strict_error:
            match = _FENCED_BLOCK.match(text or "")
            if not match:
                raise JSONParseError(f"Response is not valid JSON: {strict_error}") from strict_error
            try:
                result = json.loads(match.group(1))
            except json.JSONDecodeError as fenced_error:
                raise JSONParseError(
                    f"Fenced block is not valid JSON: {fenced_error}"
                ) from fenced_error
            logger.debug("JSONParser: parsed JSON from fenced code block")

        if not isinstance(result, dict):
            raise JSONParseError(f"Expected a JSON object, got {type(result).__name__}")
        return result

