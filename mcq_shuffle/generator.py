"""
Output Generator
================
Renders a (validated, possibly shuffled) row list as exam text, HTML,
an answer-key summary and bubble answer-sheet data.

Questions are renumbered from ``ExamConfig.start_number`` on output;
the row labels themselves are left alone.
"""

from __future__ import annotations

import html
import logging
from typing import Optional

from .models import (
    SHEET_LETTERS,
    AnswerSheet,
    AnswerSheetQuestion,
    ExamConfig,
    Row,
    RowKind,
)

logger = logging.getLogger(__name__)

DEFAULT_POSTFIX = ") "


def _answer_letter(row: Row, config: ExamConfig) -> str:
    if config.format.answer_lowercase:
        return row.label.lower()
    return row.label


def generate_exam_output(
    rows: list[Row],
    config: Optional[ExamConfig] = None,
    mark_keys: bool = False,
) -> str:
    """
    Render the exam as plain text.

    With ``mark_keys`` correct answers are preceded by
    ``format.correct_prefix`` (the grader's copy).
    """
    config = config or ExamConfig()
    fmt = config.format
    question_postfix = fmt.question_postfix or DEFAULT_POSTFIX
    answer_postfix = fmt.answer_postfix or DEFAULT_POSTFIX

    output = ""
    number = config.start_number

    for row in rows:
        if row.kind == RowKind.SECTION:
            output += f"\n{row.text}\n\n"
        elif row.kind == RowKind.QUESTION:
            output += f"{fmt.question_prefix}{number}{question_postfix}{row.text}\n"
            number += 1
        elif row.kind == RowKind.ANSWER:
            letter = _answer_letter(row, config)
            marker = fmt.correct_prefix if mark_keys and row.is_key else ""
            output += f"   {marker}{fmt.answer_prefix}{letter}{answer_postfix}{row.text}\n"
        elif row.kind == RowKind.EMPTY:
            output += "\n"

    return output.strip()


def generate_exam_html(rows: list[Row], config: Optional[ExamConfig] = None) -> str:
    """Render the exam as an HTML fragment for rich-text paste."""
    config = config or ExamConfig()
    fmt = config.format
    question_postfix = html.escape(fmt.question_postfix or DEFAULT_POSTFIX)
    answer_postfix = html.escape(fmt.answer_postfix or DEFAULT_POSTFIX)
    question_prefix = html.escape(fmt.question_prefix)
    answer_prefix = html.escape(fmt.answer_prefix)

    output = ""
    number = config.start_number

    for row in rows:
        text = html.escape(row.text)
        if row.kind == RowKind.SECTION:
            output += f"<b>{text}</b><br><br>"
        elif row.kind == RowKind.QUESTION:
            output += f"<b>{question_prefix}{number}{question_postfix}{text}</b><br>"
            number += 1
        elif row.kind == RowKind.ANSWER:
            letter = _answer_letter(row, config)
            output += (
                f"&nbsp;&nbsp;&nbsp;{answer_prefix}{letter}{answer_postfix}"
                f"{text}<br>"
            )
        elif row.kind == RowKind.EMPTY:
            output += "<br>"

    return output


def generate_answer_key(rows: list[Row], start_number: int = 1) -> list[str]:
    """
    Summarise the correct letters per question.

    Returns:
        Lines such as ``["1. B", "2. A, C"]``. Questions without a
        marked answer are left out.
    """
    lines: list[str] = []
    number = start_number - 1
    letters: list[str] = []

    def flush():
        if letters:
            lines.append(f"{number}. {', '.join(letters)}")

    for row in rows:
        if row.kind == RowKind.QUESTION:
            flush()
            letters = []
            number += 1
        elif row.kind == RowKind.ANSWER and row.is_key:
            letters.append(row.label)

    flush()
    return lines


def renumber_questions(rows: list[Row], start_number: int = 1) -> list[Row]:
    """Rewrite question labels sequentially; ``original_number`` is kept."""
    renumbered: list[Row] = []
    number = start_number

    for row in rows:
        if row.kind == RowKind.QUESTION:
            row = row.model_copy(update={"label": str(number)})
            number += 1
        renumbered.append(row)

    return renumbered


def build_answer_sheet(
    rows: list[Row],
    start_number: int = 1,
    columns: int = 4,
) -> AnswerSheet:
    """
    Collect ``(number, correct letters)`` for every question that has
    answers, numbered the same way as the exam text.
    """
    questions: list[AnswerSheetQuestion] = []
    number = start_number - 1
    letters: list[str] = []
    answer_count = 0
    max_answers = 0

    def flush():
        nonlocal max_answers
        if letters or answer_count:
            questions.append(
                AnswerSheetQuestion(number=number, correct_answers=letters)
            )
            max_answers = max(max_answers, answer_count)

    for row in rows:
        if row.kind == RowKind.QUESTION:
            flush()
            letters = []
            answer_count = 0
            number += 1
        elif row.kind == RowKind.ANSWER:
            answer_count += 1
            if row.is_key:
                letters.append(row.label)

    flush()

    if max_answers > len(SHEET_LETTERS):
        logger.warning(
            f"Answer sheet limited to {len(SHEET_LETTERS)} bubbles, "
            f"largest question has {max_answers} answers"
        )

    return AnswerSheet(
        questions=questions,
        columns=columns,
        max_answers=min(max_answers, len(SHEET_LETTERS)) or 5,
    )
