"""
Text Parser
===========
Turns free-form pasted exam text into the flat row model, and parses
answer-key text into a question → letters mapping that can be merged
back into the rows.

Supported question formats:
    - Inline:     "1. Question? A. answer B. answer"
    - Multiline:  "1. (0.2 Point)\\nQuestion\\na. answer\\nb. answer"
    - Sections:   "### Part 1"
    - Keys:       "*C. correct answer"
"""

from __future__ import annotations

import logging
import re

from .models import (
    ERROR_LABEL,
    SECTION_LABEL,
    Row,
    RowKind,
    make_row,
    reindex_rows,
)

logger = logging.getLogger(__name__)

# ─── Patterns ─────────────────────────────────────────────────────────────────

# LF, CR, CRLF, VT, FF, NEL, LS, PS
LINE_BREAK_PATTERN = re.compile(r"\r\n|[\n\r\x0b\x0c\x85\u2028\u2029]")

# "1." / "12)" question start, or "### Header" section start
BLOCK_START_PATTERN = re.compile(
    r"^[^\S\n]*(?:(\d{1,3})[.)]|(###.*))", re.MULTILINE
)

# Question number with an optional "(0.5 Point)" style annotation
QUESTION_NUMBER_PATTERN = re.compile(r"^\s*(\d{1,3})[.)]\s*(\([^)]*\))?\s*")

# First answer marker: "A. ", "*b) "
ANSWER_START_PATTERN = re.compile(r"(?:^|(?<=\s))\*?\s*[A-Ea-e][.)]\s+")

# One answer, running up to the next answer marker
ANSWER_PATTERN = re.compile(
    r"(\*)?\s*([A-Ea-e])[.)]\s+((?:(?!\s\*?\s*[A-Ea-e][.)]\s).)+)",
    re.DOTALL,
)

# "1. B", "2) A, C", "3 D", "4: abc"
ANSWER_KEY_LINE_PATTERN = re.compile(r"^\s*(\d+)[.):\s]+([A-Ea-e,\s]+)")


class BlockParseError(ValueError):
    """Raised when a question block does not start with a question number."""


def normalize_text(text: str) -> str:
    """Unify every line-break code point to ``\\n`` and trim the result."""
    return LINE_BREAK_PATTERN.sub("\n", text or "").strip()


class McqParser:
    """
    Splits exam text into section and question blocks and expands each
    block into rows. Malformed question blocks degrade to a single error
    row so the rest of the document still parses.
    """

    def parse(self, text: str) -> list[Row]:
        """Parse raw exam text into rows. Never raises."""
        normalized = normalize_text(text)
        if not normalized:
            return []

        rows: list[Row] = []
        matches = list(BLOCK_START_PATTERN.finditer(normalized))

        if not matches:
            logger.debug("No block markers found, treating text as a section")
            rows.append(make_row(0, RowKind.SECTION, SECTION_LABEL, normalized))
            rows.append(make_row(0, RowKind.EMPTY))
            return reindex_rows(rows)

        preamble = normalized[:matches[0].start()].strip()
        if preamble:
            rows.append(make_row(0, RowKind.SECTION, SECTION_LABEL, preamble))
            rows.append(make_row(0, RowKind.EMPTY))

        for index, match in enumerate(matches):
            end = (
                matches[index + 1].start()
                if index + 1 < len(matches)
                else len(normalized)
            )
            block = normalized[match.start():end]

            if match.group(2) is not None:
                title = match.group(2)[3:].strip()
                logger.debug(f"Detected section: {title!r}")
                rows.append(make_row(0, RowKind.SECTION, SECTION_LABEL, title))
            else:
                try:
                    rows.extend(self.parse_question_block(block))
                except BlockParseError as e:
                    logger.warning(f"Unparseable question block: {e}")
                    rows.append(make_row(0, RowKind.ERROR, ERROR_LABEL, block))
            rows.append(make_row(0, RowKind.EMPTY))

        return reindex_rows(rows)

    def parse_question_block(self, block: str) -> list[Row]:
        """
        Expand one question block into a question row and its answers.

        Args:
            block: Text from a question number up to the next block start.

        Returns:
            The question row followed by zero or more answer rows
            (ids are left at 0 for the caller to assign).

        Raises:
            BlockParseError: If the block has no leading question number.
        """
        number_match = QUESTION_NUMBER_PATTERN.match(block)
        if not number_match:
            raise BlockParseError(
                f"missing question number in {block[:40]!r}"
            )

        number = number_match.group(1)
        remainder = block[number_match.end():]

        answer_start = ANSWER_START_PATTERN.search(remainder)
        if answer_start:
            stem = remainder[:answer_start.start()].strip()
            answers_text = remainder[answer_start.start():]
        else:
            stem = remainder.strip()
            answers_text = ""

        logger.debug(f"Detected question {number}")
        rows = [
            make_row(0, RowKind.QUESTION, number, stem, int(number)),
        ]

        for answer in ANSWER_PATTERN.finditer(answers_text):
            content = re.sub(r"\s*\n\s*", " ", answer.group(3)).strip()
            row = make_row(0, RowKind.ANSWER, answer.group(2).upper(), content)
            if answer.group(1):
                row = row.model_copy(update={"is_key": True})
            rows.append(row)

        return rows


def parse_mcq(text: str) -> list[Row]:
    """Parse exam text into rows (see ``McqParser.parse``)."""
    return McqParser().parse(text)


# ─── Answer Key ───────────────────────────────────────────────────────────────


def parse_answer_key(text: str) -> dict[int, list[str]]:
    """
    Parse answer-key text into ``{question_number: [letters]}``.

    Lines that do not look like ``<number><sep><letters>`` are skipped.
    """
    answer_key: dict[int, list[str]] = {}

    for line in normalize_text(text).split("\n"):
        if not line.strip():
            continue

        match = ANSWER_KEY_LINE_PATTERN.match(line)
        if not match:
            continue

        letters = re.sub(r"[^A-E]", "", match.group(2).upper())
        if not letters:
            continue

        answer_key[int(match.group(1))] = list(letters)

    return answer_key


def apply_answer_key(
    rows: list[Row],
    answer_key: dict[int, list[str]],
) -> list[Row]:
    """
    Merge an answer key into the rows.

    All existing marks are cleared first; answers are then marked when
    their letter is listed for the question they belong to.
    """
    updated: list[Row] = []
    current_number = None
    marked = 0

    for row in rows:
        if row.kind == RowKind.QUESTION:
            current_number = int(row.label) if row.label.isdecimal() else None
        elif row.kind == RowKind.ANSWER:
            is_key = (
                current_number is not None
                and row.label in answer_key.get(current_number, [])
            )
            marked += is_key
            if row.is_key != is_key:
                row = row.model_copy(update={"is_key": is_key})
        updated.append(row)

    logger.info(
        f"Applied answer key for {len(answer_key)} questions "
        f"({marked} answers marked)"
    )
    return reindex_rows(updated)
