"""
Text Normalizer
===============
Removes presentation markup left in extracted exam text before segmentation.

The only rewrite is the inline line-break tag (``<br>``, ``<br/>``,
``<br />``), which collapses into a single space.
"""

from __future__ import annotations

import re

BREAK_PATTERN = re.compile(r"<br\s*/?>", re.IGNORECASE)


def normalize_text(text: str) -> str:
    """Replace every inline line-break tag with one space."""
    if not text:
        return text
    # Repeat until stable: "<br<br>>" leaves a fresh "<br >" after one pass.
    # Each pass shrinks the text, so this terminates.
    while BREAK_PATTERN.search(text):
        text = BREAK_PATTERN.sub(" ", text)
    return text


def contains_break_markup(text: str) -> bool:
    return bool(BREAK_PATTERN.search(text or ""))
