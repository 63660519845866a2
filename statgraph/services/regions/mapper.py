"""Resolve free-text region names to ISO 3166-2:RU codes."""

import json
import logging
from pathlib import Path

from statgraph.errors import RegionNotFoundError
from statgraph.utils.text_processing import normalize_text

logger = logging.getLogger(__name__)

_DEFAULT_REFERENCE = Path(__file__).parent / "data" / "regions.json"
_PREFIX_LENGTH = 5


class RegionMapper:
    """Name-to-code resolver backed by a reference table.

    Unlike the extraction path, which drops rows with bad codes, an
    unresolved name here is a hard error.
    """

    def __init__(self, regions: dict[str, str], typo_fixes: dict[str, str] | None = None):
        self.regions = regions
        self.typo_fixes = typo_fixes or {}

    @classmethod
    def from_file(cls, path: Path | str = _DEFAULT_REFERENCE) -> "RegionMapper":
        reference = json.loads(Path(path).read_text(encoding="utf-8"))
        mapper = cls(reference["regions"], reference.get("typo_fixes", {}))
        logger.info("Loaded %s regions from %s", len(mapper.regions), path)
        return mapper

    def normalize(self, name: str) -> str:
        """lowercase, fix known typos, then underscores to spaces and collapse whitespace."""
        normalized = name.lower()
        # Typo keys are stored with underscores, so look them up first.
        fixed = self.typo_fixes.get(normalized)
        if fixed is not None:
            logger.debug("Fixed region typo: %r -> %r", normalized, fixed)
            normalized = fixed
        return normalize_text(normalized.replace("_", " "))

    def resolve(self, name: str) -> str:
        """
        Map a region name to its code.

        Tries an exact match, then titles starting with the first word, then
        titles containing the first five letters of that word (only for words
        of five letters or more).

        Raises:
            RegionNotFoundError: no strategy matched
        """
        normalized = self.normalize(name)

        code = self.regions.get(normalized)
        if code is not None:
            return code

        key_word = normalized.split(" ")[0] if normalized else ""
        if key_word:
            for title, code in self.regions.items():
                if title.startswith(key_word):
                    logger.debug("Region %r matched %r by first word", name, title)
                    return code

        if len(key_word) >= _PREFIX_LENGTH:
            prefix = key_word[:_PREFIX_LENGTH]
            for title, code in self.regions.items():
                if prefix in title:
                    logger.debug("Region %r matched %r by prefix %r", name, title, prefix)
                    return code

        logger.warning("Region not found: %s", name)
        raise RegionNotFoundError(name)
