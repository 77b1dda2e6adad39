# services/recipes/input_safety.py
import re
from typing import Any, Optional

MAX_INGREDIENTS = 20
MAX_DIETARY_RESTRICTIONS = 10
MAX_ALLERGENS = 10
MAX_COMBINED_INPUT_LENGTH = 1000

MAX_REFERENCE_TITLE_LENGTH = 200
MAX_REFERENCE_DESCRIPTION_LENGTH = 2000
MAX_REFERENCE_INGREDIENTS = 50
MAX_REFERENCE_INGREDIENT_LENGTH = 200


class InputSanitizer:
    """Cleans user-supplied text before it is embedded in a prompt"""

    # Markup and script fragments the browser UI also strips
    UNSAFE_PATTERNS = [
        re.compile(r"[<>]"),
        re.compile(r"javascript:", re.IGNORECASE),
        re.compile(r"on\w+=", re.IGNORECASE),
        re.compile(r"data:", re.IGNORECASE),
    ]

    def sanitize_text(self, value: Any, max_length: Optional[int] = None) -> str:
        """Strip unsafe fragments and surrounding whitespace; non-strings become ''"""
        if not isinstance(value, str):
            return ""

        cleaned = value
        for pattern in self.UNSAFE_PATTERNS:
            cleaned = pattern.sub("", cleaned)
        cleaned = cleaned.strip()

        if max_length is not None:
            cleaned = cleaned[:max_length].rstrip()
        return cleaned

    def sanitize_entries(
        self, values: Any, limit: int, max_length: Optional[int] = None
    ) -> list[str]:
        """
        Keep the first `limit` usable strings of a list, each cut to `max_length`.

        Anything that is not a list yields []. Entries that are not strings or
        are blank after cleaning are dropped before the cap is applied.
        """
        if not isinstance(values, list):
            return []

        entries = []
        for value in values:
            cleaned = self.sanitize_text(value, max_length)
            if cleaned:
                entries.append(cleaned)
            if len(entries) == limit:
                break
        return entries

    def combined_length(self, *groups: list[str]) -> int:
        return sum(len(entry) for group in groups for entry in group)


input_sanitizer = InputSanitizer()
