"""
Shuffle Engine
==============
Randomises sections, questions and answers of a row list while keeping
locked rows in place, then reletters answers so every question reads
A, B, C, ... again.

The row list is segmented on every call:

    rows      → [section, section, ...]
    section   → [header block, question block, question block, ...]
    block     → [question, answer, answer, ..., empty]

Each shuffle permutes one level of that structure with a Fisher-Yates
pass that skips pinned indexes. All functions return new lists; the
input is never modified.
"""

from __future__ import annotations

import logging
import random
import string
from typing import Optional, Sequence, TypeVar

from .models import Row, RowKind, ShuffleMode

logger = logging.getLogger(__name__)

T = TypeVar("T")


def locked_fisher_yates(
    items: Sequence[T],
    locked_indexes: Sequence[int],
    rng: Optional[random.Random] = None,
) -> list[T]:
    """
    Shuffle ``items`` uniformly, except that every index in
    ``locked_indexes`` keeps its element.

    Args:
        items: Elements to shuffle.
        locked_indexes: Positions whose elements must not move.
        rng: Source of ``randrange``; defaults to a fresh ``random.Random``.

    Returns:
        A new, shuffled list.
    """
    rng = rng or random.Random()
    pinned = sorted(set(i for i in locked_indexes if 0 <= i < len(items)))
    pinned_set = set(pinned)

    free = [item for i, item in enumerate(items) if i not in pinned_set]

    for i in range(len(free) - 1, 0, -1):
        j = rng.randrange(i + 1)
        free[i], free[j] = free[j], free[i]

    for index in pinned:
        free.insert(index, items[index])

    return free


# ─── Segmentation ─────────────────────────────────────────────────────────────


def split_into_sections(rows: Sequence[Row]) -> list[list[Row]]:
    """Group rows into sections, each starting at a section row."""
    sections: list[list[Row]] = []

    for row in rows:
        if row.kind == RowKind.SECTION or not sections:
            sections.append([row])
        else:
            sections[-1].append(row)

    return sections


def split_section_into_questions(section: Sequence[Row]) -> list[list[Row]]:
    """
    Group one section into blocks.

    The first block is the section header (section row and its empty
    row) when there is one. Rows that precede the first question are
    kept in that leading block; without a header they form a leading
    block of their own. Every question row then starts a new block.
    """
    blocks: list[list[Row]] = []
    rows = list(section)

    if rows and rows[0].kind == RowKind.SECTION:
        header_size = 2 if len(rows) > 1 and rows[1].kind == RowKind.EMPTY else 1
        blocks.append(rows[:header_size])
        rows = rows[header_size:]

    for row in rows:
        if row.kind == RowKind.QUESTION or not blocks:
            blocks.append([row])
        else:
            blocks[-1].append(row)

    return blocks


def has_leading_block(blocks: list[list[Row]]) -> bool:
    """True when the first block is a header or pre-question rows."""
    return bool(blocks) and blocks[0][0].kind != RowKind.QUESTION


def split_into_sections_and_questions(
    rows: Sequence[Row],
) -> list[list[list[Row]]]:
    return [
        split_section_into_questions(section)
        for section in split_into_sections(rows)
    ]


def reletter_answers(rows: Sequence[Row]) -> list[Row]:
    """Relabel each question's answers A, B, C, ... in list order."""
    relettered: list[Row] = []
    position = 0

    for row in rows:
        if row.kind == RowKind.QUESTION:
            position = 0
        elif row.kind == RowKind.ANSWER:
            letter = string.ascii_uppercase[position % 26]
            position += 1
            if row.label != letter:
                row = row.model_copy(update={"label": letter})
        relettered.append(row)

    return relettered


# ─── Shuffles ─────────────────────────────────────────────────────────────────


def shuffle_sections(
    rows: Sequence[Row],
    rng: Optional[random.Random] = None,
) -> list[Row]:
    """Reorder whole sections; questions inside a section keep their order."""
    sections = split_into_sections(rows)
    locked = [i for i, section in enumerate(sections) if section[0].locked]

    logger.debug(
        f"Shuffling {len(sections)} sections ({len(locked)} locked)"
    )
    shuffled = locked_fisher_yates(sections, locked, rng)
    return [row for section in shuffled for row in section]


def shuffle_questions(
    rows: Sequence[Row],
    rng: Optional[random.Random] = None,
) -> list[Row]:
    """Reorder question blocks inside each section; answers keep their order."""
    result: list[Row] = []

    for blocks in split_into_sections_and_questions(rows):
        locked = [
            i for i, block in enumerate(blocks)
            if block[0].locked or (i == 0 and has_leading_block(blocks))
        ]
        logger.debug(
            f"Shuffling {len(blocks)} blocks in section ({len(locked)} pinned)"
        )
        for block in locked_fisher_yates(blocks, locked, rng):
            result.extend(block)

    return result


def shuffle_answers(
    rows: Sequence[Row],
    rng: Optional[random.Random] = None,
) -> list[Row]:
    """
    Reorder the answers of every question and reletter them.

    The question row and the block's last row never move, nor do
    locked rows or non-answer rows inside the block. Correct marks
    travel with their answer.
    """
    result: list[Row] = []
    shuffled_count = 0

    for blocks in split_into_sections_and_questions(rows):
        for block in blocks:
            if block[0].kind != RowKind.QUESTION:
                result.extend(block)
                continue

            last = len(block) - 1
            locked = [
                i for i, row in enumerate(block)
                if i in (0, last) or row.locked or row.kind != RowKind.ANSWER
            ]
            result.extend(locked_fisher_yates(block, locked, rng))
            shuffled_count += 1

    logger.debug(f"Shuffled answers of {shuffled_count} questions")
    return reletter_answers(result)


_SHUFFLES = {
    ShuffleMode.SECTIONS: shuffle_sections,
    ShuffleMode.QUESTIONS: shuffle_questions,
    ShuffleMode.ANSWERS: shuffle_answers,
}


def shuffle(
    rows: Sequence[Row],
    mode: ShuffleMode | str,
    rng: Optional[random.Random] = None,
) -> list[Row]:
    """Run one shuffle pass at the given granularity."""
    return _SHUFFLES[ShuffleMode(mode)](rows, rng)
