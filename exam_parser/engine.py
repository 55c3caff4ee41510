"""
Exam Parser Engine
==================
Main orchestrator that combines text acquisition, normalization, state
machine parsing and validation into a complete extraction pipeline.

Usage:
    engine = ParserEngine(config)
    result = engine.parse("path/to/exam.pdf")
    engine.save(result)

Architecture:
    Source → raw text → normalize_text → tokenize → StateMachineParser →
    candidate Questions → ValidationEngine → ParseResult → JSON
"""

from __future__ import annotations

import hashlib
import logging
import os
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from . import __version__
from .models import (
    NumberPolicy,
    ParseResult,
    ParseVersion,
    Question,
    SourceMetadata,
)
from .normalizer import normalize_text
from .sources import ProgressCallback, resolve_source
from .state_machine import StateMachineParser
from .storage import DEFAULT_OUTPUT_PATH, save_questions, save_report
from .tokenizer import tokenize
from .validator import ValidationEngine

logger = logging.getLogger(__name__)

ON_INVALID_CHOICES = ("abort", "skip", "keep")


@dataclass
class ParserConfig:
    """Configuration for the parser engine."""

    # Output settings
    output_path: str = DEFAULT_OUTPUT_PATH
    report_path: Optional[str] = None

    # Validation
    number_policy: NumberPolicy = NumberPolicy.ADVISORY
    exhaustive: bool = False
    on_invalid: str = "abort"

    # Parsing
    ignore_noise: bool = True

    # Acquisition
    page_range: Optional[tuple[int, int]] = None
    download_to: Optional[str] = None
    timeout: float = 60

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = None


class ParserEngine:
    """
    Main exam parsing engine.

    Orchestrates the full pipeline:
        1. Text acquisition (plain text, PDF file or PDF URL)
        2. Normalization
        3. State machine parsing
        4. Validation
        5. Output selection and persistence

    Each call works on its own copy of the text and its own parser, so one
    engine can be reused across documents.
    """

    def __init__(self, config: Optional[ParserConfig] = None):
        self.config = config or ParserConfig()
        if self.config.on_invalid not in ON_INVALID_CHOICES:
            raise ValueError(
                f"on_invalid must be one of {ON_INVALID_CHOICES}, "
                f"got {self.config.on_invalid!r}"
            )
        self._setup_logging()

    def _setup_logging(self):
        """Configure logging based on config."""
        log_level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        # Configure root logger for the exam_parser package
        package_logger = logging.getLogger("exam_parser")
        package_logger.setLevel(log_level)

        formatter = logging.Formatter(
            "[%(asctime)s] %(levelname)-8s %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

        # Console handler
        if not package_logger.handlers:
            console = logging.StreamHandler()
            console.setLevel(log_level)
            console.setFormatter(formatter)
            package_logger.addHandler(console)
        else:
            for handler in package_logger.handlers:
                handler.setLevel(log_level)

        # File handler
        if self.config.log_file and not any(
            isinstance(h, logging.FileHandler)
            and h.baseFilename == os.path.abspath(self.config.log_file)
            for h in package_logger.handlers
        ):
            log_dir = Path(self.config.log_file).parent
            log_dir.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(
                self.config.log_file, encoding="utf-8"
            )
            file_handler.setLevel(log_level)
            file_handler.setFormatter(formatter)
            package_logger.addHandler(file_handler)

    def parse(
        self,
        identifier: str,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> ParseResult:
        """
        Acquire text for a source identifier and run the core pipeline.

        Args:
            identifier: Path to a .pdf/.txt file or an http(s) PDF URL.
            progress_callback: Callback(page_num, total_pages) per page.

        Returns:
            ParseResult with candidates and the validation report.

        Raises:
            FileNotFoundError: If a local source doesn't exist.
            SourceError: If the source cannot be fetched or read.
        """
        source = resolve_source(
            identifier,
            page_range=self.config.page_range,
            cache_path=self.config.download_to,
            timeout=self.config.timeout,
        )

        logger.info(f"Phase 1: Text acquisition ({source.kind})")
        text = source.read(identifier, progress_callback=progress_callback)

        metadata = SourceMetadata(
            identifier=identifier,
            kind=source.kind,
            page_count=source.page_count(identifier),
        )
        return self.process_text(text, metadata)

    def process_text(
        self,
        text: str,
        source: Optional[SourceMetadata] = None,
    ) -> ParseResult:
        """
        Run normalize → parse → validate over an in-memory string.

        Never raises on malformed text; problems end up in the report.
        """
        start_time = time.time()
        source = source or SourceMetadata()
        source.char_count = len(text)
        source.line_count = text.count("\n") + 1 if text else 0
        source.text_hash = hashlib.sha256(text.encode("utf-8")).hexdigest()

        logger.info("Phase 2: Normalization")
        normalized = normalize_text(text)

        logger.info("Phase 3: State machine parsing")
        tokens = tokenize(normalized, ignore_noise=self.config.ignore_noise)
        parser = StateMachineParser(ignore_noise=self.config.ignore_noise)
        questions = parser.parse_tokens(tokens)

        logger.info("Phase 4: Validation")
        validator = ValidationEngine(
            number_policy=self.config.number_policy,
            exhaustive=self.config.exhaustive,
        )
        validation = validator.validate(
            questions, expect_questions=bool(tokens)
        )

        result = ParseResult(
            source=source,
            parse_version=ParseVersion(
                parser_version=__version__,
                token_count=len(tokens),
                candidate_count=len(questions),
            ),
            questions=questions,
            validation=validation,
        )

        elapsed = time.time() - start_time
        logger.info(
            f"Parse complete in {elapsed:.2f}s: "
            f"{len(questions)} candidates, "
            f"{validation.valid_count} valid"
        )
        return result

    def select_output(self, result: ParseResult) -> list[Question]:
        """
        Apply the on_invalid policy to decide which records get written.

        Raises:
            ValidationFailure: Under "abort" when the report is not valid.
        """
        policy = self.config.on_invalid
        report = result.validation

        if policy == "abort":
            report.raise_for_errors()
            return list(report.valid_questions)

        if policy == "skip":
            if report.no_questions_found:
                logger.warning("No questions found; writing an empty list")
            elif not report.is_valid:
                logger.warning(
                    f"Skipping {len(report.invalid_numbers)} invalid "
                    f"questions: {report.invalid_numbers}"
                )
            return list(report.valid_questions)

        return list(result.questions)

    def save(self, result: ParseResult) -> Path:
        """Persist the selected records (and the report if configured)."""
        if self.config.report_path:
            save_report(result.validation, self.config.report_path)

        questions = self.select_output(result)
        return save_questions(questions, self.config.output_path)
