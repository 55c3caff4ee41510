"""
Validation Engine
=================
Post-parse classification of candidate questions.

Per-record checks, in order:
    1. Prompt is non-empty
    2. At least two choices, all non-empty
    3. At least one correct answer
    4. Every correct answer resolves to an existing choice
    5. Question number is positive

Sequence checks (duplicate / out-of-order numbers) follow the configured
NumberPolicy. Never silently drops a record: every rejection is reported
with the question number and the failed check.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Optional

from .models import (
    CheckType,
    NumberPolicy,
    Question,
    Severity,
    ValidationReport,
    Violation,
)

logger = logging.getLogger(__name__)


def check_question(question: Question, index: int = 0) -> list[Violation]:
    """Run every per-record check and return all failures, in check order."""
    violations: list[Violation] = []

    def fail(check: CheckType, message: str, context: Optional[dict] = None):
        violations.append(Violation(
            number=question.number,
            index=index,
            check=check,
            message=message,
            context=context,
        ))

    if not question.prompt.strip():
        fail(CheckType.EMPTY_PROMPT, "Question has no prompt text")

    non_empty = [c for c in question.choices if c.strip()]
    if len(question.choices) < 2 or len(non_empty) != len(question.choices):
        fail(
            CheckType.INSUFFICIENT_CHOICES,
            f"Question needs at least two non-empty choices "
            f"(found {len(non_empty)} of {len(question.choices)})",
            {"choice_count": len(question.choices),
             "non_empty_count": len(non_empty)},
        )

    if not question.correct_answers:
        fail(CheckType.MISSING_ANSWER, "Question has no correct answer")
    else:
        dangling = question.unresolved_answers
        if dangling:
            fail(
                CheckType.UNRESOLVED_ANSWER,
                f"Answer reference(s) {', '.join(dangling)} match no choice "
                f"(labels: {', '.join(question.labels) or 'none'})",
                {"unresolved": dangling, "labels": list(question.labels)},
            )

    if question.number <= 0:
        fail(
            CheckType.NON_POSITIVE_NUMBER,
            f"Question number {question.number} is not positive",
        )

    return violations


class ValidationEngine:
    """
    Classifies parsed questions as valid or invalid and produces a report.

    Args:
        number_policy: How duplicate / non-monotonic numbers are treated.
        exhaustive: Report every failed check per record instead of only
            the first one.
    """

    def __init__(
        self,
        number_policy: NumberPolicy = NumberPolicy.ADVISORY,
        exhaustive: bool = False,
    ):
        self.number_policy = NumberPolicy(number_policy)
        self.exhaustive = exhaustive

    def validate(
        self,
        questions: list[Question],
        expect_questions: bool = False,
    ) -> ValidationReport:
        """
        Run full validation on parsed questions.

        Args:
            questions: Candidate questions in source order.
            expect_questions: The source had content, so an empty candidate
                list means every question marker was missed.

        Returns:
            ValidationReport partitioning the records. Records themselves
            are never modified.
        """
        report = ValidationReport()

        if not questions:
            if expect_questions:
                logger.error(
                    "Source text has content but no question markers were found"
                )
                report.no_questions_found = True
            else:
                logger.warning("No questions to validate")
            return report

        report.total_questions = len(questions)

        numbers = [q.number for q in questions]
        number_counts = Counter(numbers)
        report.duplicate_numbers = sorted(
            num for num, count in number_counts.items() if count > 1
        )

        # Gaps in the positive number range (informational)
        positive = [n for n in numbers if n > 0]
        if positive:
            expected = set(range(min(positive), max(positive) + 1))
            report.missing_numbers = sorted(expected - set(positive))

        sequence_issues = self._check_sequence(questions)

        for index, question in enumerate(questions):
            errors = check_question(question, index)
            if errors and not self.exhaustive:
                errors = errors[:1]

            for issue in sequence_issues.get(index, []):
                if self.number_policy == NumberPolicy.STRICT:
                    errors.append(issue)
                else:
                    report.warnings.append(issue)

            if errors:
                report.violations.extend(errors)
                report.invalid_numbers.append(question.number)
            else:
                report.valid_questions.append(question)

        self._log_summary(report)
        return report

    def _check_sequence(self, questions: list[Question]) -> dict[int, list[Violation]]:
        """Duplicate and non-monotonic numbers, keyed by record index."""
        issues: dict[int, list[Violation]] = {}
        if self.number_policy == NumberPolicy.IGNORE:
            return issues

        severity = (
            Severity.ERROR
            if self.number_policy == NumberPolicy.STRICT
            else Severity.WARNING
        )
        seen: set[int] = set()
        previous: Optional[int] = None

        for index, q in enumerate(questions):
            if q.number in seen:
                issues.setdefault(index, []).append(Violation(
                    number=q.number,
                    index=index,
                    check=CheckType.DUPLICATE_NUMBER,
                    severity=severity,
                    message=f"Question number {q.number} appears more than once",
                ))
            elif previous is not None and q.number <= previous:
                issues.setdefault(index, []).append(Violation(
                    number=q.number,
                    index=index,
                    check=CheckType.NON_MONOTONIC_NUMBER,
                    severity=severity,
                    message=(
                        f"Question number {q.number} follows {previous} "
                        f"out of order"
                    ),
                    context={"previous": previous},
                ))
            seen.add(q.number)
            previous = q.number

        return issues

    def _log_summary(self, report: ValidationReport):
        logger.info("=" * 60)
        logger.info("VALIDATION REPORT")
        logger.info("=" * 60)
        logger.info(f"Total Questions Detected: {report.total_questions}")
        logger.info(
            f"Valid Questions: {report.valid_count} ({report.success_rate}%)"
        )
        logger.info(f"Invalid Questions: {len(report.invalid_numbers)}")
        logger.info(f"Missing Question Numbers: {len(report.missing_numbers)}")
        logger.info(
            f"Duplicate Question Numbers: {len(report.duplicate_numbers)}"
        )

        if report.check_breakdown:
            logger.info("Check Breakdown:")
            for check, count in report.check_breakdown.items():
                logger.info(f"  • {check}: {count}")

        for violation in report.violations:
            logger.warning(
                f"Question {violation.number}: [{violation.check.value}] "
                f"{violation.message}"
            )

        logger.info("=" * 60)
