"""
MCQ Engine
==========
Orchestrator that combines parsing, answer-key reconciliation,
validation, shuffling and output generation into one pipeline.

Usage:
    engine = McqEngine(EngineConfig(exam=ExamConfig(shuffle_answers=True)))
    result = engine.process(exam_text, answer_key_text)
    print(result.output_text)

Architecture:
    text → McqParser → rows → apply_answer_key → ValidationEngine →
    shuffle (sections, questions, answers) → generator → ExamResult
"""

from __future__ import annotations

import json
import logging
import random
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

from . import __version__
from .generator import (
    build_answer_sheet,
    generate_answer_key,
    generate_exam_html,
    generate_exam_output,
)
from .models import AnswerSheet, ExamConfig, Row, ShuffleMode, ValidationResult
from .shuffle import shuffle
from .text_parser import McqParser, apply_answer_key, parse_answer_key
from .validator import ValidationEngine

logger = logging.getLogger(__name__)

LOG_FORMAT = "[%(asctime)s] %(levelname)-8s %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class ExamValidationError(RuntimeError):
    """Raised when an invalid exam is sent to generation."""

    def __init__(self, validation: ValidationResult):
        self.validation = validation
        super().__init__(
            f"Exam has {validation.error_count} invalid rows "
            f"(first at row {validation.first_error_row_id})"
        )


def load_exam_config(path: str) -> ExamConfig:
    """Read an ``ExamConfig`` from a JSON file."""
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config not found: {path}")
    return ExamConfig.model_validate_json(
        config_path.read_text(encoding="utf-8")
    )


@dataclass
class EngineConfig:
    """Configuration for the MCQ engine."""

    exam: ExamConfig = field(default_factory=ExamConfig)

    # Shuffling
    seed: Optional[int] = None

    # Refuse to generate output while rows are invalid
    require_valid: bool = True

    # Output settings
    output_dir: Optional[str] = None

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = None


class ExamResult(BaseModel):
    """Complete output of one pipeline run."""
    engine_version: str = __version__
    timestamp: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )
    config: ExamConfig
    rows: list[Row] = Field(default_factory=list)
    validation: ValidationResult
    questions_without_keys: list[int] = Field(default_factory=list)
    shuffles: list[ShuffleMode] = Field(default_factory=list)
    output_text: str = ""
    output_marked_text: str = ""
    output_html: str = ""
    answer_key: list[str] = Field(default_factory=list)
    answer_sheet: AnswerSheet = Field(default_factory=AnswerSheet)


class McqEngine:
    """
    Main MCQ pipeline.

    Runs:
        1. Parsing (text → rows)
        2. Answer-key reconciliation (optional)
        3. Validation
        4. Shuffling, per the enabled modes
        5. Output generation
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig()
        self.rng = random.Random(self.config.seed)
        self.parser = McqParser()
        self.validator = ValidationEngine()
        self._setup_logging()

    def _setup_logging(self):
        """Configure logging based on config."""
        log_level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        package_logger = logging.getLogger("mcq_shuffle")
        package_logger.setLevel(log_level)

        # Console handler
        if not package_logger.handlers:
            console = logging.StreamHandler()
            console.setLevel(log_level)
            console.setFormatter(
                logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
            )
            package_logger.addHandler(console)

        # File handler
        if self.config.log_file:
            log_dir = Path(self.config.log_file).parent
            log_dir.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(
                self.config.log_file, encoding="utf-8"
            )
            file_handler.setLevel(log_level)
            file_handler.setFormatter(
                logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
            )
            package_logger.addHandler(file_handler)

    def load_rows(
        self,
        text: str,
        answer_key_text: Optional[str] = None,
    ) -> ValidationResult:
        """Parse, reconcile the key (when given) and validate."""
        rows = self.parser.parse(text)
        logger.info(f"Parsed {len(rows)} rows")

        if answer_key_text:
            rows = apply_answer_key(rows, parse_answer_key(answer_key_text))

        return self.validator.validate(rows)

    def process(
        self,
        text: str,
        answer_key_text: Optional[str] = None,
        name: str = "exam",
    ) -> ExamResult:
        """
        Run the full pipeline over exam text.

        Args:
            text: Raw exam text.
            answer_key_text: Optional answer-key text merged into the rows.
            name: File stem used when saving to ``output_dir``.

        Returns:
            ExamResult with the final rows and every rendered output.

        Raises:
            ExamValidationError: If the rows are invalid and
                ``require_valid`` is set.
        """
        start_time = time.time()
        exam = self.config.exam

        validation = self.load_rows(text, answer_key_text)
        if not validation.is_valid and self.config.require_valid:
            raise ExamValidationError(validation)

        missing_keys = self.validator.find_questions_without_keys(
            validation.rows
        )

        rows = validation.rows
        for mode in exam.shuffle_modes:
            logger.info(f"Shuffling {mode.value}")
            rows = shuffle(rows, mode, self.rng)

        result = ExamResult(
            config=exam,
            rows=rows,
            validation=validation,
            questions_without_keys=missing_keys,
            shuffles=exam.shuffle_modes,
            output_text=generate_exam_output(rows, exam),
            output_marked_text=generate_exam_output(rows, exam, mark_keys=True),
            output_html=generate_exam_html(rows, exam),
            answer_key=generate_answer_key(rows, exam.start_number),
            answer_sheet=build_answer_sheet(
                rows, exam.start_number, exam.answer_sheet_columns
            ),
        )

        elapsed = time.time() - start_time
        logger.info(
            f"Exam generated in {elapsed:.2f}s — "
            f"{len(result.answer_sheet.questions)} questions"
        )

        if self.config.output_dir:
            self.save(result, name)

        return result

    def process_file(
        self,
        exam_path: str,
        answer_key_path: Optional[str] = None,
    ) -> ExamResult:
        """
        Run the pipeline over files.

        Raises:
            FileNotFoundError: If either file doesn't exist.
        """
        text = self._read_text(exam_path)
        key_text = self._read_text(answer_key_path) if answer_key_path else None
        return self.process(text, key_text, name=Path(exam_path).stem)

    def save(self, result: ExamResult, stem: str) -> Path:
        """Write the exam text, marked copy, answer key and JSON snapshot to ``output_dir``."""
        output_dir = Path(self.config.output_dir or "output")
        output_dir.mkdir(parents=True, exist_ok=True)

        (output_dir / f"{stem}.txt").write_text(
            result.output_text + "\n", encoding="utf-8"
        )
        (output_dir / f"{stem}_marked.txt").write_text(
            result.output_marked_text + "\n", encoding="utf-8"
        )
        (output_dir / f"{stem}_key.txt").write_text(
            "\n".join(result.answer_key) + "\n", encoding="utf-8"
        )

        json_file = output_dir / f"{stem}_result.json"
        with open(json_file, "w", encoding="utf-8") as f:
            json.dump(
                result.model_dump(mode="json"),
                f,
                indent=2,
                ensure_ascii=False,
            )

        logger.info(f"Output saved to: {output_dir}")
        return json_file

    def _read_text(self, path: str) -> str:
        file_path = Path(path)
        if not file_path.exists():
            raise FileNotFoundError(f"File not found: {path}")
        return file_path.read_text(encoding="utf-8")
