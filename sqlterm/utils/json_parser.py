"""
JSON Parser utility for extracting JSON from LLM responses.
"""

import json
import logging
import re
from typing import Any

logger = logging.getLogger(__name__)


class JSONParser:
    """Helper class to extract clean JSON from LLM responses."""

    @staticmethod
    def extract_json(text: str) -> dict[str, Any]:
        """Attempts to extract a JSON object from text."""
        try:
            parsed = json.loads(text)
            if isinstance(parsed, dict):
                return parsed
        except json.JSONDecodeError:
            pass

        # Try code blocks first, then any brace-delimited object
        for pattern in (r"```(?:json)?\s*(\{.*?\})\s*```", r"(\{.*\})"):
            match = re.search(pattern, text, re.DOTALL)
            if match:
                try:
                    parsed = json.loads(match.group(1))
                except json.JSONDecodeError:
                    continue
                if isinstance(parsed, dict):
                    return parsed

        # Return empty dict as fallback (caller should handle this)
        logger.warning("JSONParser: Could not extract JSON from text, returning empty dict")
        return {}
