"""
Marker Tokenizer
================
Classifies each line of normalized exam text by the marker it starts with
(question number, option label, answer keyword, explanation keyword).

The state machine only sees ``Token`` objects, so the segmentation grammar
can be exercised without going through the regular expressions below.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional

# ─── Anchor Patterns ──────────────────────────────────────────────────────────

# Matches "1. ", "12) ", "3.", "1.What" at start of line (not "2.5" or "1.2.3")
QUESTION_PATTERN = re.compile(r"^\s*(\d+)[.)](?!\d)\s*")

# Matches "Question: 1", "Question 42", "QUESTION 7." at start of line
QUESTION_WORD_PATTERN = re.compile(
    r"^\s*Question\s*:?\s*(\d+)\b[.:)]?\s*", re.IGNORECASE
)

# Matches "Answer: B", "Ans. A", "Correct Answers - A, C", "Key: D"
# (not "Key-value ...")
ANSWER_PATTERN = re.compile(
    r"^\s*(?:Correct\s+)?(?:Answers?|Ans|Key)\s*(?:[.:]|\s-)\s*", re.IGNORECASE
)

# Matches a lone "Answer" / "Correct Answer" line
ANSWER_BARE_PATTERN = re.compile(
    r"^\s*(?:Correct\s+)?(?:Answers?|Ans|Key)\s*$", re.IGNORECASE
)

# Matches "Answer B" / "Answer A, C" with no delimiter
ANSWER_INLINE_PATTERN = re.compile(
    r"^\s*(?:Correct\s+)?(?:Answers?|Ans)\s+"
    r"(?=[A-Z](?:\s*(?:[,/&;]|and)\s*[A-Z])*\s*$)",
    re.IGNORECASE,
)

# Matches "Explanation:", "Reference:", "Rationale" (colon or end of line)
EXPLANATION_PATTERN = re.compile(
    r"^\s*(Explanation|Reference|Rationale)\s*(?::\s*|$)", re.IGNORECASE
)

# Matches "A.", "B)", "(C)" style options, but not abbreviations like "U.S."
OPTION_PATTERN = re.compile(
    r"^\s*(?:\(([A-Z])\)|([A-Z])[.)])(?![A-Za-z]\.)\s*"
)

# Lines that are page furniture rather than exam content
IGNORE_PATTERNS = [
    re.compile(r"^\s*(Page\s*)?\d+\s*(/|of)\s*\d+\s*$",
               re.IGNORECASE),  # "8/528", "Page 8 of 528"
    re.compile(r"^https?://[^\s]+$"),  # Lone URLs
]


class TokenKind(str, Enum):
    QUESTION = "question"
    OPTION = "option"
    ANSWER = "answer"
    EXPLANATION = "explanation"
    TEXT = "text"


@dataclass(frozen=True)
class Token:
    """One classified, non-blank line."""
    kind: TokenKind
    line_no: int
    value: str = ""
    label: Optional[str] = None
    number: Optional[int] = None
    raw: str = ""


def is_noise(line: str) -> bool:
    return any(p.match(line) for p in IGNORE_PATTERNS)


def classify_line(line: str, line_no: int = 0) -> Token:
    """Classify a single stripped line into a Token."""
    for pattern in (QUESTION_PATTERN, QUESTION_WORD_PATTERN):
        match = pattern.match(line)
        if match:
            return Token(
                kind=TokenKind.QUESTION,
                line_no=line_no,
                value=line[match.end():].strip(),
                number=int(match.group(1)),
                raw=line,
            )

    for pattern in (ANSWER_PATTERN, ANSWER_BARE_PATTERN, ANSWER_INLINE_PATTERN):
        match = pattern.match(line)
        if match:
            return Token(
                kind=TokenKind.ANSWER,
                line_no=line_no,
                value=line[match.end():].strip(),
                raw=line,
            )

    match = EXPLANATION_PATTERN.match(line)
    if match:
        return Token(
            kind=TokenKind.EXPLANATION,
            line_no=line_no,
            value=line[match.end():].strip(),
            raw=line,
        )

    match = OPTION_PATTERN.match(line)
    if match:
        return Token(
            kind=TokenKind.OPTION,
            line_no=line_no,
            value=line[match.end():].strip(),
            label=match.group(1) or match.group(2),
            raw=line,
        )

    return Token(kind=TokenKind.TEXT, line_no=line_no, value=line, raw=line)


def tokenize(text: str, ignore_noise: bool = True) -> list[Token]:
    """
    Split text into lines and classify each one.

    Blank lines are dropped. With ``ignore_noise`` set, page counters and
    lone URLs are dropped too.

    Args:
        text: Normalized exam text.
        ignore_noise: Skip page furniture lines.

    Returns:
        Tokens in source order; ``line_no`` is 1-based.
    """
    tokens: list[Token] = []
    for line_no, line in enumerate(text.split("\n"), start=1):
        line_str = line.strip()
        if not line_str:
            continue
        if ignore_noise and is_noise(line_str):
            continue
        tokens.append(classify_line(line_str, line_no))
    return tokens
