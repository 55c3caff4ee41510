from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import ValidationReport


class SourceError(RuntimeError):
    """Raised when exam text cannot be acquired from a source."""


class UnsupportedSourceError(SourceError):
    """Raised when no text source can read an identifier."""


class OutputError(RuntimeError):
    """Raised when a record sequence cannot be persisted or loaded."""


class ValidationFailure(Exception):
    """Raised when a caller rejects a run whose report is not valid."""

    def __init__(self, report: "ValidationReport"):
        self.report = report
        if report.no_questions_found:
            message = "No questions found in non-empty source text"
        else:
            numbers = ", ".join(str(n) for n in report.invalid_numbers[:10])
            if len(report.invalid_numbers) > 10:
                numbers += ", ..."
            message = (
                f"{len(report.invalid_numbers)} of {report.total_questions} "
                f"questions failed validation (numbers: {numbers})"
            )
        super().__init__(message)
