"""
CLI Interface
=============
Command-line interface for the MCQ shuffle engine.

Usage:
    python -m mcq_shuffle parse <exam.txt>
    python -m mcq_shuffle validate <exam.txt> [--key key.txt]
    python -m mcq_shuffle key <key.txt>
    python -m mcq_shuffle generate <exam.txt> [options]
    python -m mcq_shuffle sheet <exam.txt> [options]

Use ``-`` as the file name to read from stdin.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from . import __version__
from .engine import (
    EngineConfig,
    ExamValidationError,
    McqEngine,
    load_exam_config,
)
from .generator import build_answer_sheet
from .models import AnswerSheet, ExamConfig, Row, RowKind, ValidationResult
from .text_parser import parse_answer_key

console = Console()


@click.group()
@click.version_option(version=__version__, prog_name="mcq-shuffle")
def cli():
    """MCQ Shuffle — parse, validate and shuffle multiple choice exams."""
    pass


@cli.command()
@click.argument("exam_file", type=click.File("r", encoding="utf-8"))
@click.option(
    "--json-output",
    is_flag=True,
    default=False,
    help="Output only the JSON rows to stdout (for programmatic use)",
)
def parse(exam_file, json_output: bool):
    """Parse exam text and show the resulting rows."""
    engine = McqEngine(EngineConfig(log_level="ERROR" if json_output else "WARNING"))
    validation = engine.load_rows(exam_file.read())

    if json_output:
        print(json.dumps(
            validation.model_dump(mode="json"),
            indent=2,
            ensure_ascii=False,
        ))
        return

    _display_rows(validation.rows)
    _display_validation(validation)


@cli.command()
@click.argument("exam_file", type=click.File("r", encoding="utf-8"))
@click.option(
    "--key", "-k", "key_file",
    default=None,
    type=click.File("r", encoding="utf-8"),
    help="Answer-key file merged into the exam before validating",
)
def validate(exam_file, key_file):
    """Validate exam structure and report questions without keys."""
    engine = McqEngine(EngineConfig(log_level="WARNING"))
    validation = engine.load_rows(
        exam_file.read(),
        key_file.read() if key_file else None,
    )
    missing = engine.validator.find_questions_without_keys(validation.rows)

    console.print()
    console.print(
        Panel.fit(
            f"[bold cyan]Validation Report[/]\n"
            f"[dim]File: {exam_file.name}[/]",
            border_style="cyan",
        )
    )
    _display_validation(validation, missing)

    if not validation.is_valid:
        _display_rows([r for r in validation.rows if r.kind == RowKind.ERROR])
        sys.exit(1)


@cli.command()
@click.argument("key_file", type=click.File("r", encoding="utf-8"))
def key(key_file):
    """Parse an answer-key file and show the letters per question."""
    answer_key = parse_answer_key(key_file.read())

    table = Table(title="Answer Key", border_style="cyan")
    table.add_column("Question", justify="right", style="bold")
    table.add_column("Correct")

    for number, letters in sorted(answer_key.items()):
        table.add_row(str(number), ", ".join(letters))

    console.print(table)
    console.print(f"[dim]{len(answer_key)} questions[/]")


@cli.command()
@click.argument("exam_file", type=click.File("r", encoding="utf-8"))
@click.option(
    "--key", "-k", "key_file",
    default=None,
    type=click.File("r", encoding="utf-8"),
    help="Answer-key file merged into the exam",
)
@click.option(
    "--config", "-c", "config_path",
    default=None,
    type=click.Path(exists=True, dir_okay=False),
    help="JSON exam configuration file",
)
@click.option(
    "--shuffle-sections/--no-shuffle-sections",
    default=None,
    help="Shuffle section order",
)
@click.option(
    "--shuffle-questions/--no-shuffle-questions",
    default=None,
    help="Shuffle questions within each section",
)
@click.option(
    "--shuffle-answers/--no-shuffle-answers",
    default=None,
    help="Shuffle answer options and reletter them",
)
@click.option(
    "--start-number", "-s",
    default=None,
    type=click.IntRange(min=0),
    help="Number of the first question in the output",
)
@click.option(
    "--lowercase/--no-lowercase",
    default=None,
    help="Print answer letters in lower case",
)
@click.option(
    "--seed",
    default=None,
    type=int,
    help="Random seed for reproducible shuffles",
)
@click.option(
    "--output", "-o",
    default=None,
    help="Directory for exam text, answer key and JSON result",
)
@click.option(
    "--allow-errors",
    is_flag=True,
    default=False,
    help="Generate output even when rows fail validation",
)
@click.option(
    "--log-level",
    default="WARNING",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    help="Logging level",
)
@click.option(
    "--log-file",
    default=None,
    help="Path to log file",
)
@click.option(
    "--json-output",
    is_flag=True,
    default=False,
    help="Output only JSON result to stdout (for programmatic use)",
)
def generate(
    exam_file,
    key_file,
    config_path: Optional[str],
    shuffle_sections: Optional[bool],
    shuffle_questions: Optional[bool],
    shuffle_answers: Optional[bool],
    start_number: Optional[int],
    lowercase: Optional[bool],
    seed: Optional[int],
    output: Optional[str],
    allow_errors: bool,
    log_level: str,
    log_file: Optional[str],
    json_output: bool,
):
    """Shuffle an exam and print the exam text and answer key."""

    if json_output:
        log_level = "ERROR"

    try:
        exam = load_exam_config(config_path) if config_path else ExamConfig()
        exam = _apply_overrides(
            exam,
            shuffle_sections=shuffle_sections,
            shuffle_questions=shuffle_questions,
            shuffle_answers=shuffle_answers,
            start_number=start_number,
            lowercase=lowercase,
        )

        engine = McqEngine(EngineConfig(
            exam=exam,
            seed=seed,
            require_valid=not allow_errors,
            output_dir=output,
            log_level=log_level,
            log_file=log_file,
        ))
        result = engine.process(
            exam_file.read(),
            key_file.read() if key_file else None,
            name=_stem(exam_file.name),
        )

    except ExamValidationError as e:
        console.print(f"[red]Error:[/] {e}")
        _display_rows([r for r in e.validation.rows if r.kind == RowKind.ERROR])
        sys.exit(1)
    except (FileNotFoundError, RuntimeError, ValueError) as e:
        console.print(f"[red]Error:[/] {e}")
        sys.exit(1)

    if json_output:
        print(json.dumps(
            result.model_dump(mode="json"),
            indent=2,
            ensure_ascii=False,
        ))
        return

    modes = ", ".join(m.value for m in result.shuffles) or "none"
    console.print(
        Panel.fit(
            f"[bold cyan]MCQ Shuffle v{__version__}[/]\n"
            f"[dim]Shuffled: {modes}[/]",
            border_style="cyan",
        )
    )
    console.print(result.output_text, markup=False, highlight=False)
    console.print()

    console.print("[bold]Answer key[/]")
    for line in result.answer_key:
        console.print(line, markup=False, highlight=False)

    if result.questions_without_keys:
        console.print(
            f"[yellow]⚠ No correct answer for questions: "
            f"{', '.join(str(n) for n in result.questions_without_keys)}[/]"
        )


@cli.command()
@click.argument("exam_file", type=click.File("r", encoding="utf-8"))
@click.option(
    "--key", "-k", "key_file",
    default=None,
    type=click.File("r", encoding="utf-8"),
    help="Answer-key file merged into the exam",
)
@click.option(
    "--columns",
    default=4,
    type=click.IntRange(1, 8),
    help="Number of answer-sheet columns",
)
@click.option(
    "--start-number", "-s",
    default=1,
    type=click.IntRange(min=0),
    help="Number of the first question",
)
def sheet(exam_file, key_file, columns: int, start_number: int):
    """Show a bubble answer sheet with the correct answers filled in."""
    engine = McqEngine(EngineConfig(log_level="WARNING"))
    validation = engine.load_rows(
        exam_file.read(),
        key_file.read() if key_file else None,
    )
    _display_answer_sheet(
        build_answer_sheet(validation.rows, start_number, columns)
    )


# ─── Helpers ──────────────────────────────────────────────────────────────────


def _apply_overrides(exam: ExamConfig, lowercase: Optional[bool], **flags) -> ExamConfig:
    """Overlay CLI options that were given onto the loaded config."""
    update = {name: value for name, value in flags.items() if value is not None}
    if lowercase is not None:
        update["format"] = exam.format.model_copy(
            update={"answer_lowercase": lowercase}
        )
    return exam.model_copy(update=update)


def _stem(name: str) -> str:
    if name in ("-", "<stdin>"):
        return "exam"
    return Path(name).stem


# ─── Display Helpers ──────────────────────────────────────────────────────────


_KIND_STYLES = {
    RowKind.SECTION: "bold cyan",
    RowKind.QUESTION: "bold",
    RowKind.ANSWER: "",
    RowKind.EMPTY: "dim",
    RowKind.ERROR: "bold red",
}


def _display_rows(rows: list[Row]):
    """Display rows as a rich table."""
    table = Table(title="Rows", border_style="cyan")
    table.add_column("Id", justify="right")
    table.add_column("Kind")
    table.add_column("Label", justify="center")
    table.add_column("Text", overflow="fold")
    table.add_column("Key", justify="center")
    table.add_column("Lock", justify="center")

    for row in rows:
        table.add_row(
            str(row.id),
            row.kind.value,
            row.label,
            row.text,
            "[green]✓[/]" if row.is_key else "",
            "🔒" if row.locked else "",
            style=_KIND_STYLES[row.kind],
        )

    console.print(table)
    console.print()


def _display_validation(
    validation: ValidationResult,
    missing_keys: Optional[list[int]] = None,
):
    """Display validation summary as a rich table."""
    table = Table(title="Validation", border_style="green")
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")
    table.add_column("Status", justify="center")

    def status_icon(ok: bool) -> str:
        return "[green]✓[/]" if ok else "[red]✗[/]"

    questions = sum(1 for r in validation.rows if r.kind == RowKind.QUESTION)
    table.add_row("Rows", str(len(validation.rows)), status_icon(bool(validation.rows)))
    table.add_row("Questions", str(questions), status_icon(questions > 0))
    table.add_row(
        "Error Rows",
        str(validation.error_count),
        status_icon(validation.is_valid),
    )
    if validation.first_error_row_id is not None:
        table.add_row("First Error Row", str(validation.first_error_row_id), "")

    if missing_keys is not None:
        table.add_row(
            "Questions Without Key",
            ", ".join(str(n) for n in missing_keys) or "0",
            "[green]✓[/]" if not missing_keys else "[yellow]⚠[/]",
        )

    console.print(table)
    console.print()


def _display_answer_sheet(answer_sheet: AnswerSheet):
    """Display the bubble answer sheet, column by column."""
    table = Table(title="ANSWER SHEET", border_style="cyan", show_lines=False)
    columns = [c for c in answer_sheet.layout() if c]

    for _ in columns:
        table.add_column("No.", justify="right", style="bold")
        table.add_column(" ".join(answer_sheet.letters))

    depth = max((len(c) for c in columns), default=0)
    for i in range(depth):
        cells = []
        for column in columns:
            if i < len(column):
                question = column[i]
                bubbles = " ".join(
                    "●" if letter in question.correct_answers else "○"
                    for letter in answer_sheet.letters
                )
                cells.extend([str(question.number), bubbles])
            else:
                cells.extend(["", ""])
        table.add_row(*cells)

    console.print(table)
    console.print(
        f"[dim]{len(answer_sheet.questions)} questions, "
        f"{answer_sheet.max_answers} options[/]"
    )
