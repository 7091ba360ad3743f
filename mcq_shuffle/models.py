"""
Data Models
===========
Pydantic models for the flat MCQ row model and exam configuration.

The exam is a flat ordered list of ``Row`` objects. Hierarchy
(section → question → answer) is implied by order and re-derived by
segmentation whenever it is needed; no tree is ever stored.
Rows are immutable: every change produces a new list.
"""

from __future__ import annotations

import math
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field


# ─── Constants ────────────────────────────────────────────────────────────────

ANSWER_LETTERS = ("A", "B", "C", "D", "E")

# Bubble sheets can show more options than the text grammar accepts
SHEET_LETTERS = ("A", "B", "C", "D", "E", "F", "G", "H")

SECTION_LABEL = "S"
ERROR_LABEL = "error"


# ─── Enums ────────────────────────────────────────────────────────────────────


class RowKind(str, Enum):
    """Type of a row in the flat exam representation."""
    SECTION = "section"
    QUESTION = "question"
    ANSWER = "answer"
    EMPTY = "empty"
    ERROR = "error"


class ShuffleMode(str, Enum):
    """Granularity of a shuffle pass."""
    SECTIONS = "sections"
    QUESTIONS = "questions"
    ANSWERS = "answers"


# ─── Row Model ────────────────────────────────────────────────────────────────


class Row(BaseModel):
    """
    One atomic entry of the exam: a section header, a question stem,
    an answer option, a blank separator or an unparseable block.
    """
    model_config = ConfigDict(frozen=True)

    id: int = Field(ge=0, description="Dense position assigned on rebuild")
    kind: RowKind
    label: str = ""
    text: str = ""
    is_key: bool = Field(
        default=False,
        description="Marked as a correct option (answers only)",
    )
    locked: bool = Field(
        default=False,
        description="Keeps its position during shuffling",
    )
    original_number: Optional[int] = Field(
        default=None,
        description="Question number as parsed, kept across shuffles",
    )


def make_row(
    row_id: int,
    kind: RowKind,
    label: str = "",
    text: str = "",
    original_number: Optional[int] = None,
) -> Row:
    return Row(
        id=row_id,
        kind=kind,
        label=label,
        text=text,
        original_number=original_number,
    )


def reindex_rows(rows: list[Row]) -> list[Row]:
    """Reassign dense ids (1, 2, 3, ...) in list order."""
    return [
        row if row.id == index else row.model_copy(update={"id": index})
        for index, row in enumerate(rows, start=1)
    ]


def toggle_locked(rows: list[Row], index: int) -> list[Row]:
    """Return a copy of ``rows`` with the lock flag at ``index`` flipped."""
    target = rows[index]
    updated = list(rows)
    updated[index] = target.model_copy(update={"locked": not target.locked})
    return updated


def toggle_key(rows: list[Row], index: int) -> list[Row]:
    """Return a copy of ``rows`` with the correctness flag at ``index`` flipped."""
    target = rows[index]
    if target.kind != RowKind.ANSWER:
        raise ValueError(
            f"Row {target.id} is a {target.kind.value} row; "
            f"only answers can be marked correct"
        )
    updated = list(rows)
    updated[index] = target.model_copy(update={"is_key": not target.is_key})
    return updated


# ─── Validation Result ────────────────────────────────────────────────────────


class ValidationResult(BaseModel):
    """Outcome of a grammar check over a row list."""
    is_valid: bool = True
    first_error_row_id: Optional[int] = None
    rows: list[Row] = Field(default_factory=list)

    @computed_field
    @property
    def error_count(self) -> int:
        return sum(1 for row in self.rows if row.kind == RowKind.ERROR)


# ─── Configuration ────────────────────────────────────────────────────────────


class FormatSettings(BaseModel):
    """Label decoration used when rendering the exam."""
    question_prefix: str = ""
    question_postfix: str = ". "
    answer_prefix: str = ""
    answer_postfix: str = ". "
    answer_lowercase: bool = False
    correct_prefix: str = "*"


class ExamConfig(BaseModel):
    """Exam generation settings."""
    shuffle_sections: bool = False
    shuffle_questions: bool = False
    shuffle_answers: bool = False
    start_number: int = Field(default=1, ge=0)
    format: FormatSettings = Field(default_factory=FormatSettings)
    answer_sheet_columns: int = Field(default=4, ge=1, le=8)

    @property
    def shuffle_modes(self) -> list[ShuffleMode]:
        """Enabled shuffle passes, in the order they are applied."""
        modes = []
        if self.shuffle_sections:
            modes.append(ShuffleMode.SECTIONS)
        if self.shuffle_questions:
            modes.append(ShuffleMode.QUESTIONS)
        if self.shuffle_answers:
            modes.append(ShuffleMode.ANSWERS)
        return modes


# ─── Answer Sheet ─────────────────────────────────────────────────────────────


class AnswerSheetQuestion(BaseModel):
    """One bubble-sheet line: question number and its correct letters."""
    number: int
    correct_answers: list[str] = Field(default_factory=list)


class AnswerSheet(BaseModel):
    """Questions and layout for a printable bubble answer sheet."""
    questions: list[AnswerSheetQuestion] = Field(default_factory=list)
    columns: int = Field(default=4, ge=1)
    max_answers: int = Field(default=5, ge=1, le=len(SHEET_LETTERS))

    @computed_field
    @property
    def letters(self) -> list[str]:
        return list(SHEET_LETTERS[:self.max_answers])

    def layout(self) -> list[list[AnswerSheetQuestion]]:
        """Split the questions into ``columns`` top-to-bottom columns."""
        per_column = math.ceil(len(self.questions) / self.columns)
        return [
            self.questions[i * per_column:(i + 1) * per_column]
            for i in range(self.columns)
        ]
