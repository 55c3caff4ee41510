"""
JSON Storage
============
Persists validated record sequences and validation reports as JSON, and
loads saved record files back for re-validation.

Record file layout (array, pretty-printed):
    [
      {"number": 1, "prompt": "...", "choices": [...], "labels": [...],
       "correct_answers": [...], "explanation": "..."},
      ...
    ]
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Union

from pydantic import ValidationError

from .exceptions import OutputError
from .models import Question, ValidationReport

logger = logging.getLogger(__name__)

DEFAULT_OUTPUT_PATH = "json/questions.json"

PathLike = Union[str, Path]


def save_questions(questions: list[Question], output_path: PathLike) -> Path:
    """Write questions as a JSON array, creating parent directories."""
    data = [q.to_record() for q in questions]
    path = _write_json(data, output_path)
    logger.info(f"Saved {len(questions)} questions: {path}")
    return path


def save_report(report: ValidationReport, output_path: PathLike) -> Path:
    """Write a validation report (without the embedded valid records)."""
    data = report.model_dump(mode="json", exclude={"valid_questions"})
    path = _write_json(data, output_path)
    logger.info(f"Saved validation report: {path}")
    return path


def load_questions(input_path: PathLike) -> list[Question]:
    """
    Load questions from a record array, or from a full parse result
    object with a ``questions`` key.
    """
    path = Path(input_path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        raise
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Failed to read JSON: {e}")
        raise OutputError(f"Cannot read {path}: {e}") from e

    if isinstance(data, dict):
        data = data.get("questions", [])
    if not isinstance(data, list):
        raise OutputError(f"{path} does not contain a question array")

    try:
        return [Question.model_validate(item) for item in data]
    except ValidationError as e:
        raise OutputError(f"Malformed question record in {path}: {e}") from e


def _write_json(data, output_path: PathLike) -> Path:
    path = Path(output_path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False, default=str)
    except (OSError, TypeError, ValueError) as e:
        logger.error(f"Failed to save JSON: {e}")
        raise OutputError(f"Cannot write {path}: {e}") from e
    return path
