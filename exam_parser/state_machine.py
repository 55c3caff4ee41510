"""
State Machine Parser
====================
Deterministic state machine that segments a stream of marker tokens into
candidate multiple-choice questions (number, prompt, choices, answers).

Parsing is total: malformed spans produce candidates with empty fields and
are left for the validator to reject.
"""

from __future__ import annotations

import logging
import re
from enum import Enum
from typing import Iterable, Optional

from .models import Question
from .normalizer import normalize_text
from .tokenizer import Token, TokenKind, tokenize

logger = logging.getLogger(__name__)

# "The correct answer is D", "Answers are: A, C"
ANSWER_PHRASE_PATTERN = re.compile(
    r"^(?:the\s+)?(?:correct\s+)?(?:answer|option|choice)s?\s+(?:is|are)\s*:?\s*",
    re.IGNORECASE,
)

# One reference candidate: "B", "(C)", "[D]", "3", "BD"
ANSWER_TOKEN_PATTERN = re.compile(
    r"[(\[]?([A-Za-z]+|\d+)[)\]]?(?=[\s,;/&+.:]|$)"
)

# Separators between references: "A, C", "B/D", "A and C", "A & B", "A C"
ANSWER_SEPARATOR_PATTERN = re.compile(r"\s*(?:[,;/&+]|\band\b)\s*|\s+")

# Punctuation between the reference run and trailing commentary
ANSWER_TRAILER_CHARS = " .:;,-"


def _reference_letters(token: str, label_set: set[str]) -> Optional[list[str]]:
    if token.isdigit():
        return [token]
    if len(token) == 1 and token.isupper():
        return [token]
    if token.isupper() and label_set and all(ch in label_set for ch in token):
        return list(token)
    return None


def split_answer_text(
    text: str, labels: Iterable[str] = ()
) -> tuple[list[str], str]:
    """
    Split the text after an answer marker into references and commentary.

    References are read only from the leading run of label-like tokens and
    their separators ("B", "A, C", "B/D", "A and C", "(C)"). The run ends at
    the first token that is not a reference or at sentence punctuation; the
    rest of the text is returned as commentary. A compact run such as "BD"
    is split into letters when every letter is a known option label.

    When the text does not start with a reference, the whole text is kept
    as one verbatim reference so that it reaches the validator instead of
    being dropped.
    """
    cleaned = text.strip()
    if not cleaned:
        return [], ""

    phrase = ANSWER_PHRASE_PATTERN.match(cleaned)
    if phrase:
        cleaned = cleaned[phrase.end():]

    label_set = {label.upper() for label in labels}
    refs: list[str] = []
    pos = 0

    while True:
        match = ANSWER_TOKEN_PATTERN.match(cleaned, pos)
        if not match:
            break
        letters = _reference_letters(match.group(1), label_set)
        if letters is None:
            break
        for ref in letters:
            if ref not in refs:
                refs.append(ref)
        pos = match.end()

        separator = ANSWER_SEPARATOR_PATTERN.match(cleaned, pos)
        if not separator or separator.end() == len(cleaned):
            break
        pos = separator.end()

    if not refs:
        verbatim = cleaned.strip(".()[]: ")
        if not verbatim:
            return [], ""
        if len(verbatim) == 1 and verbatim.isalpha():
            verbatim = verbatim.upper()
        return [verbatim], ""

    return refs, cleaned[pos:].lstrip(ANSWER_TRAILER_CHARS).strip()


def parse_answer_references(
    text: str, labels: Iterable[str] = ()
) -> list[str]:
    """Choice references found at the start of an answer text."""
    return split_answer_text(text, labels)[0]


class ParserState(Enum):
    """Position of the parser inside the current question span."""
    SEEK_QUESTION = "SEEK_QUESTION"
    IN_PROMPT = "IN_PROMPT"
    IN_CHOICES = "IN_CHOICES"
    IN_ANSWER = "IN_ANSWER"
    IN_EXPLANATION = "IN_EXPLANATION"


class StateMachineParser:
    """
    Finite State Machine that transforms an ordered sequence of Tokens
    into candidate Question records.
    """

    def __init__(self, ignore_noise: bool = True):
        self.ignore_noise = ignore_noise
        self.reset()

    def reset(self):
        """Reset the state machine for a fresh parsing run."""
        self.state = ParserState.SEEK_QUESTION
        self.current_question: Optional[Question] = None
        self.answer_text = ""
        self.questions: list[Question] = []
        self.question_numbers: set[int] = set()
        self.skipped_lines = 0

    def parse(self, text: str) -> list[Question]:
        """Normalize, tokenize and parse text into candidate questions."""
        tokens = tokenize(normalize_text(text), ignore_noise=self.ignore_noise)
        return self.parse_tokens(tokens)

    def parse_tokens(self, tokens: Iterable[Token]) -> list[Question]:
        """Parse tokens into candidate questions, in order of appearance."""
        self.reset()

        for token in tokens:
            self._process_token(token)

        self.finalize()

        if self.skipped_lines:
            logger.debug(
                f"Skipped {self.skipped_lines} preamble lines before the "
                f"first question"
            )
        return self.questions

    def finalize(self):
        """Finalize any pending (in-progress) question at end of parsing."""
        if self.current_question:
            self._finalize_question()
        self.state = ParserState.SEEK_QUESTION

    def _process_token(self, token: Token):
        if token.kind == TokenKind.QUESTION:
            self._start_new_question(token)
            return

        if self.state == ParserState.SEEK_QUESTION:
            self.skipped_lines += 1
            return

        if token.kind == TokenKind.OPTION and self.state in (
            ParserState.IN_PROMPT, ParserState.IN_CHOICES
        ):
            self._start_new_option(token)
            return

        if token.kind == TokenKind.ANSWER:
            self.state = ParserState.IN_ANSWER
            self._append_text(token.value)
            return

        if token.kind == TokenKind.EXPLANATION:
            self.state = ParserState.IN_EXPLANATION
            self._append_text(token.value)
            return

        # A line after a complete answer is commentary, not more references
        if self.state == ParserState.IN_ANSWER and self.answer_text:
            self.state = ParserState.IN_EXPLANATION

        self._append_text(token.raw or token.value)

    def _start_new_question(self, token: Token):
        """Finalize previous and start fresh state."""
        if self.current_question:
            self._finalize_question()

        logger.debug(f"Detected question {token.number} at line {token.line_no}")

        if token.number in self.question_numbers:
            logger.debug(f"Question number {token.number} seen before")

        self.current_question = Question(number=token.number)
        self.answer_text = ""
        self.state = ParserState.IN_PROMPT
        self.question_numbers.add(token.number)
        self._append_text(token.value)

    def _start_new_option(self, token: Token):
        """Switch to IN_CHOICES and open a new choice."""
        self.state = ParserState.IN_CHOICES
        self.current_question.labels.append(token.label)
        self.current_question.choices.append(token.value)

    def _append_text(self, text: str):
        """Append text to the active part of the current question."""
        if not self.current_question or not text:
            return

        q = self.current_question

        if self.state == ParserState.IN_PROMPT:
            q.prompt = _join(q.prompt, text)

        elif self.state == ParserState.IN_CHOICES:
            q.choices[-1] = _join(q.choices[-1], text)

        elif self.state == ParserState.IN_ANSWER:
            self.answer_text = _join(self.answer_text, text)

        elif self.state == ParserState.IN_EXPLANATION:
            q.explanation = _join(q.explanation, text)

    def _finalize_question(self):
        q = self.current_question
        q.correct_answers, commentary = split_answer_text(
            self.answer_text, q.labels
        )
        if commentary:
            # Text after the references on the answer line comes first
            q.explanation = _join(commentary, q.explanation)

        if not q.choices:
            logger.debug(f"Question {q.number} has no choices section")
        if not q.correct_answers:
            logger.debug(f"Question {q.number} has no answer section")

        self.questions.append(q)
        self.current_question = None
        self.answer_text = ""


def _join(existing: str, text: str) -> str:
    return f"{existing} {text}" if existing else text


def parse_questions(text: str, ignore_noise: bool = True) -> list[Question]:
    """Convenience wrapper: normalized text in, candidate questions out."""
    return StateMachineParser(ignore_noise=ignore_noise).parse(text)
