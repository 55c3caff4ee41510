"""
Data Models
===========
Pydantic models for structured question parsing output.
All models are serializable to JSON for downstream question-bank tooling.
"""

from __future__ import annotations

import string
from collections import Counter
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, computed_field, model_validator


# ─── Enums ────────────────────────────────────────────────────────────────────


class CheckType(str, Enum):
    """Structural checks applied to every candidate question."""
    EMPTY_PROMPT = "empty_prompt"
    INSUFFICIENT_CHOICES = "insufficient_choices"
    MISSING_ANSWER = "missing_answer"
    UNRESOLVED_ANSWER = "unresolved_answer"
    NON_POSITIVE_NUMBER = "non_positive_number"
    DUPLICATE_NUMBER = "duplicate_number"
    NON_MONOTONIC_NUMBER = "non_monotonic_number"


class Severity(str, Enum):
    """Whether a violation invalidates the record or is advisory only."""
    ERROR = "error"
    WARNING = "warning"


class NumberPolicy(str, Enum):
    """How duplicate / out-of-order question numbers are treated."""
    IGNORE = "ignore"
    ADVISORY = "advisory"
    STRICT = "strict"


def positional_labels(count: int) -> list[str]:
    """Labels A, B, C, ... by position (numbers past Z)."""
    letters = string.ascii_uppercase
    return [
        letters[i] if i < len(letters) else str(i + 1)
        for i in range(count)
    ]


# ─── Question Model ──────────────────────────────────────────────────────────


class Question(BaseModel):
    """
    One parsed exam item.

    ``labels`` runs parallel to ``choices`` and holds the option label found
    in the source ("A", "B", ...). ``correct_answers`` references choices by
    label, or by 1-based position when the reference is a bare number.
    """
    number: int
    prompt: str = ""
    choices: list[str] = Field(default_factory=list)
    labels: list[str] = Field(default_factory=list)
    correct_answers: list[str] = Field(default_factory=list)
    explanation: str = ""

    @model_validator(mode="after")
    def _default_labels(self) -> "Question":
        if self.choices and not self.labels:
            self.labels = positional_labels(len(self.choices))
        if len(self.labels) != len(self.choices):
            raise ValueError(
                f"Question {self.number} has {len(self.labels)} labels "
                f"for {len(self.choices)} choices"
            )
        return self

    def label_matches(self, ref: str) -> list[int]:
        """Indices of every choice whose label equals ``ref`` (case-insensitive)."""
        key = ref.strip().upper()
        if not key:
            return []
        return [
            idx
            for idx, (label, _) in enumerate(zip(self.labels, self.choices))
            if label.upper() == key
        ]

    def resolve_answer(self, ref: str) -> Optional[int]:
        """Return the choice index ``ref`` points to, or None if it dangles."""
        matches = self.label_matches(ref)
        if len(matches) == 1:
            return matches[0]
        if matches:
            return None

        ref = ref.strip()
        if ref.isdigit():
            position = int(ref)
            if 1 <= position <= len(self.choices):
                return position - 1
        return None

    @property
    def correct_indices(self) -> list[int]:
        indices = []
        for ref in self.correct_answers:
            idx = self.resolve_answer(ref)
            if idx is not None and idx not in indices:
                indices.append(idx)
        return indices

    @property
    def unresolved_answers(self) -> list[str]:
        return [
            ref for ref in self.correct_answers
            if self.resolve_answer(ref) is None
        ]

    def to_record(self) -> dict:
        """JSON object written by the storage layer."""
        return {
            "number": self.number,
            "prompt": self.prompt,
            "choices": list(self.choices),
            "labels": list(self.labels),
            "correct_answers": list(self.correct_answers),
            "explanation": self.explanation,
        }


# ─── Validation Models ───────────────────────────────────────────────────────


class Violation(BaseModel):
    """A failed check on one record, locatable by question number."""
    number: int
    index: int = Field(
        ge=0,
        description="Position of the record in the parsed sequence"
    )
    check: CheckType
    severity: Severity = Severity.ERROR
    message: str
    context: Optional[dict] = None


class ValidationReport(BaseModel):
    """Post-parse validation report."""
    total_questions: int = 0
    valid_questions: list[Question] = Field(default_factory=list)
    invalid_numbers: list[int] = Field(default_factory=list)
    violations: list[Violation] = Field(default_factory=list)
    warnings: list[Violation] = Field(default_factory=list)
    missing_numbers: list[int] = Field(default_factory=list)
    duplicate_numbers: list[int] = Field(default_factory=list)
    no_questions_found: bool = Field(
        default=False,
        description="Source had content but no question marker was found"
    )

    @computed_field
    @property
    def is_valid(self) -> bool:
        return not self.violations and not self.no_questions_found

    @computed_field
    @property
    def valid_count(self) -> int:
        return len(self.valid_questions)

    @computed_field
    @property
    def success_rate(self) -> float:
        if self.total_questions == 0:
            return 0.0
        return round(self.valid_count / self.total_questions * 100, 2)

    @computed_field
    @property
    def check_breakdown(self) -> dict[str, int]:
        counts = Counter(v.check.value for v in self.violations + self.warnings)
        return dict(sorted(counts.items()))

    def raise_for_errors(self):
        """Raise ValidationFailure if the run is not valid."""
        if not self.is_valid:
            from .exceptions import ValidationFailure
            raise ValidationFailure(self)


# ─── Parse Result Models ─────────────────────────────────────────────────────


class SourceMetadata(BaseModel):
    """Metadata about where the parsed text came from."""
    identifier: str = ""
    kind: str = "text"
    page_count: Optional[int] = None
    char_count: int = 0
    line_count: int = 0
    text_hash: str = ""


class ParseVersion(BaseModel):
    """Version tracking for a parse run."""
    parser_version: str = "1.0.0"
    parse_timestamp: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )
    token_count: int = 0
    candidate_count: int = 0


class ParseResult(BaseModel):
    """
    Complete output of a parse run: every candidate question in source order
    plus the validation report that classifies them.
    """
    source: SourceMetadata = Field(default_factory=SourceMetadata)
    parse_version: ParseVersion = Field(default_factory=ParseVersion)
    questions: list[Question] = Field(default_factory=list)
    validation: ValidationReport = Field(default_factory=ValidationReport)
