"""
Validation Engine
=================
Structural grammar check for the flat row model.

The accepted label sequence is::

    ∅ S ∅ # A B C D E ∅ # A B ∅ S ∅ # A B C ∅ ...

where S = section, # = question number, A–E = answers and ∅ = empty row.
A question may stop after B, C or D. Every row is checked only against
its immediate neighbours (plus the row after next for sections), so a
single bad row is flagged locally instead of failing the whole exam.

Also reports questions that have no correct answer marked.
"""

from __future__ import annotations

import logging
import re
from typing import Optional

from .models import (
    ANSWER_LETTERS,
    SECTION_LABEL,
    Row,
    RowKind,
    ValidationResult,
)

logger = logging.getLogger(__name__)

_NUMBER_LABEL = re.compile(r"[0-9]+")


def is_question_label(label: str) -> bool:
    return bool(_NUMBER_LABEL.fullmatch(label))


def _label_at(rows: list[Row], index: int) -> str:
    if 0 <= index < len(rows):
        return rows[index].label
    return ""


def row_has_error(rows: list[Row], index: int) -> bool:
    """Check the row at ``index`` against its neighbours' labels."""
    label = rows[index].label
    previous = _label_at(rows, index - 1)
    following = _label_at(rows, index + 1)

    if label == SECTION_LABEL:
        after_next = _label_at(rows, index + 2)
        return (
            previous != ""
            or following != ""
            or not is_question_label(after_next)
        )

    if label == "":
        return (
            previous == "A"
            or is_question_label(previous)
            or following in ANSWER_LETTERS
        )

    if is_question_label(label):
        return previous != "" or following != "A"

    if label == "A":
        return not is_question_label(previous) or following != "B"

    if label in ("B", "C", "D"):
        position = ANSWER_LETTERS.index(label)
        return (
            previous != ANSWER_LETTERS[position - 1]
            or following not in (ANSWER_LETTERS[position + 1], "")
        )

    if label == "E":
        return previous != "D" or following != ""

    return False


class ValidationEngine:
    """
    Validates row lists and reports unkeyed questions.
    """

    def validate(self, rows: list[Row]) -> ValidationResult:
        """
        Run the grammar check over ``rows``.

        Args:
            rows: Row list to check. It is never modified.

        Returns:
            ValidationResult holding a copy of the rows in which every
            offending row (and every row that was already an error)
            has kind ERROR.
        """
        if not rows:
            return ValidationResult(is_valid=True, rows=[])

        validated: list[Row] = []
        first_error_row_id: Optional[int] = None

        for index, row in enumerate(rows):
            if row.kind == RowKind.ERROR or row_has_error(rows, index):
                if row.kind != RowKind.ERROR:
                    row = row.model_copy(update={"kind": RowKind.ERROR})
                if first_error_row_id is None:
                    first_error_row_id = row.id
            validated.append(row)

        result = ValidationResult(
            is_valid=first_error_row_id is None,
            first_error_row_id=first_error_row_id,
            rows=validated,
        )

        if result.is_valid:
            logger.info(f"Validation passed: {len(rows)} rows")
        else:
            logger.info(
                f"Validation failed: {result.error_count} error rows, "
                f"first at row {first_error_row_id}"
            )
        return result

    def find_questions_without_keys(self, rows: list[Row]) -> list[int]:
        """Question numbers whose answers carry no correct mark."""
        missing: list[int] = []
        current_number: Optional[int] = None
        has_key = False

        for row in rows:
            if row.kind == RowKind.QUESTION:
                if current_number is not None and not has_key:
                    missing.append(current_number)
                current_number = (
                    int(row.label) if is_question_label(row.label) else None
                )
                has_key = False
            elif row.kind == RowKind.ANSWER and row.is_key:
                has_key = True

        if current_number is not None and not has_key:
            missing.append(current_number)

        if missing:
            logger.warning(
                f"{len(missing)} questions have no correct answer: "
                f"{', '.join(str(n) for n in missing)}"
            )
        return missing


def validate_parsed_mcq(rows: list[Row]) -> ValidationResult:
    return ValidationEngine().validate(rows)


def find_questions_without_keys(rows: list[Row]) -> list[int]:
    return ValidationEngine().find_questions_without_keys(rows)
