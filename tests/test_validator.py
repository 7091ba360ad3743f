"""
Test Suite for the Validation Engine
====================================
Grammar checks over row label sequences and unkeyed-question reports.
"""

from __future__ import annotations

from mcq_shuffle.models import Row, RowKind
from mcq_shuffle.text_parser import parse_mcq
from mcq_shuffle.validator import (
    ValidationEngine,
    find_questions_without_keys,
    is_question_label,
    validate_parsed_mcq,
)


def make_rows(*labels: str, keys: tuple[int, ...] = ()) -> list[Row]:
    """Build rows from labels; ``keys`` are indexes of correct answers."""
    rows = []
    for index, label in enumerate(labels):
        if label == "S":
            kind = RowKind.SECTION
        elif label == "":
            kind = RowKind.EMPTY
        elif label == "error":
            kind = RowKind.ERROR
        elif label.isdigit():
            kind = RowKind.QUESTION
        else:
            kind = RowKind.ANSWER
        rows.append(Row(
            id=index + 1,
            kind=kind,
            label=label,
            text=f"row {index + 1}",
            is_key=index in keys,
        ))
    return rows


def error_labels(result):
    return [r.label for r in result.rows if r.kind == RowKind.ERROR]


class TestQuestionLabel:

    def test_numeric(self):
        assert is_question_label("1")
        assert is_question_label("120")

    def test_non_numeric(self):
        assert not is_question_label("")
        assert not is_question_label("S")
        assert not is_question_label("1a")


class TestValidationEngine:
    """Test the per-row grammar."""

    def test_empty_rows_are_valid(self):
        result = validate_parsed_mcq([])
        assert result.is_valid
        assert result.first_error_row_id is None
        assert result.rows == []

    def test_full_valid_sequence(self):
        rows = make_rows(
            "S", "", "1", "A", "B", "C", "D", "E", "",
            "2", "A", "B", "",
            "S", "", "3", "A", "B", "C", "",
        )
        result = validate_parsed_mcq(rows)
        assert result.is_valid
        assert result.error_count == 0

    def test_parsed_exam_is_valid(self):
        rows = parse_mcq(
            "Final exam\n1. Q? A. x B. y C. z\n### Part 2\n2. Q? A. x B. y"
        )
        assert validate_parsed_mcq(rows).is_valid

    def test_missing_empty_between_questions(self):
        rows = make_rows("1", "A", "B", "2", "A", "B", "")
        result = validate_parsed_mcq(rows)

        assert not result.is_valid
        second_question = result.rows[3]
        assert second_question.label == "2"
        assert second_question.kind == RowKind.ERROR
        # "B" is followed by a number instead of "C" or an empty row
        assert result.rows[2].kind == RowKind.ERROR
        assert result.first_error_row_id == 3

    def test_single_answer_question(self):
        result = validate_parsed_mcq(make_rows("1", "A", ""))
        assert error_labels(result) == ["A", ""]

    def test_question_without_answers(self):
        result = validate_parsed_mcq(make_rows("1", "", "2", "A", "B", ""))
        assert error_labels(result) == ["1", ""]

    def test_section_must_precede_question(self):
        result = validate_parsed_mcq(make_rows("S", "", "S", "", "1", "A", "B", ""))
        assert [r.id for r in result.rows if r.kind == RowKind.ERROR] == [1]

    def test_section_after_answer(self):
        result = validate_parsed_mcq(make_rows("1", "A", "B", "S", "", "2", "A", "B", ""))
        assert "S" in error_labels(result)

    def test_empty_inside_answers(self):
        result = validate_parsed_mcq(make_rows("1", "A", "", "B", ""))
        labels = error_labels(result)
        assert "" in labels
        assert "B" in labels

    def test_answers_out_of_order(self):
        result = validate_parsed_mcq(make_rows("1", "A", "C", "B", ""))
        assert error_labels(result) == ["A", "C", "B"]

    def test_sixth_answer_rejected(self):
        result = validate_parsed_mcq(
            make_rows("1", "A", "B", "C", "D", "E", "F", "")
        )
        assert error_labels(result) == ["E"]

    def test_existing_errors_are_kept(self):
        rows = make_rows("1", "A", "B", "", "error", "", "2", "A", "B", "")
        result = validate_parsed_mcq(rows)

        assert not result.is_valid
        assert result.first_error_row_id == 5
        assert error_labels(result) == ["error"]

    def test_input_not_modified(self):
        rows = make_rows("1", "A", "")
        before = [r.kind for r in rows]

        result = validate_parsed_mcq(rows)

        assert [r.kind for r in rows] == before
        assert result.rows is not rows

    def test_labels_and_ids_preserved(self):
        rows = make_rows("1", "A", "", "2", "A", "B", "")
        result = validate_parsed_mcq(rows)
        assert [r.label for r in result.rows] == [r.label for r in rows]
        assert [r.id for r in result.rows] == [r.id for r in rows]

    def test_validation_is_a_fixed_point(self):
        rows = make_rows("S", "1", "A", "B", "", "2", "A", "", "3", "", "4", "A", "B")
        once = validate_parsed_mcq(rows)
        twice = validate_parsed_mcq(once.rows)

        assert [r.kind for r in twice.rows] == [r.kind for r in once.rows]
        assert twice.first_error_row_id == once.first_error_row_id


class TestQuestionsWithoutKeys:
    """Test unkeyed-question detection."""

    def test_all_keyed(self):
        rows = make_rows("1", "A", "B", "", "2", "A", "B", "", keys=(1, 6))
        assert find_questions_without_keys(rows) == []

    def test_reports_unkeyed_including_last(self):
        rows = make_rows(
            "1", "A", "B", "",
            "2", "A", "B", "",
            "3", "A", "B", "",
            keys=(6,),
        )
        assert find_questions_without_keys(rows) == [1, 3]

    def test_question_without_answers_is_unkeyed(self):
        rows = make_rows("1", "", "2", "A", "B", "", keys=(4,))
        assert ValidationEngine().find_questions_without_keys(rows) == [1]

    def test_no_questions(self):
        assert find_questions_without_keys(make_rows("S", "")) == []

    def test_star_keys_from_parser(self):
        rows = parse_mcq("1. Q? *A. x B. y\n2. Q? A. x B. y")
        assert find_questions_without_keys(rows) == [2]
