"""Text normalization helpers."""

import re
import unicodedata
from typing import List

_WHITESPACE_RE = re.compile(r"\s+")


def _is_punctuation(ch: str) -> bool:
    return unicodedata.category(ch).startswith("P")


def clean_text(text: str) -> str:
    """Remove punctuation, collapse whitespace runs and trim.

    Case is preserved; lowercasing happens in ``tokenize``.
    """
    # Remove all punctuation
    output = "".join(ch for ch in text if not _is_punctuation(ch))

    # Replace all whitespace sequences with a single space
    output = _WHITESPACE_RE.sub(" ", output)

    return output.strip()


def tokenize(text: str) -> List[str]:
    """Split raw text into lowercase terms."""
    cleaned = clean_text(text)
    if not cleaned:
        return []
    return [segment.lower() for segment in cleaned.split(" ") if segment]
