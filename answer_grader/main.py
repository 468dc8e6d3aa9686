"""
Answer Grader CLI Application.

Provides a command-line interface for grading photographed handwritten
answers with OCR and LLM-based evaluation.
"""

import logging
from pathlib import Path
from typing import Annotated, Optional, TypeVar

import typer
from pydantic import BaseModel, ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from answer_grader.config import Settings, get_settings
from answer_grader.extractors import TesseractExtractor, is_supported_file
from answer_grader.grading import BatchCoordinator, GradingOrchestrator
from answer_grader.models import AnswerImage, GradingResult, Question, StudentInfo
from answer_grader.records import build_submission_record, save_records

# Create Typer app
app = typer.Typer(
    name="answer-grader",
    help="Grade photographed handwritten answers with OCR and an LLM",
    add_completion=False,
)

console = Console()
ModelT = TypeVar("ModelT", bound=BaseModel)

QuestionOption = Annotated[str, typer.Option("--question", "-q", help="Question text")]
MaxMarksOption = Annotated[int, typer.Option("--max-marks", "-m", min=1, help="Maximum marks")]
SubjectOption = Annotated[Optional[str], typer.Option("--subject", "-s", help="Subject")]
AnswerKeyOption = Annotated[
    Optional[str], typer.Option("--answer-key", help="Reference answer (optional)")
]
NumberOption = Annotated[int, typer.Option("--number", "-n", min=1, help="Question number")]
SessionOption = Annotated[str, typer.Option("--session-id", help="Grading session identifier")]
OutputOption = Annotated[
    Optional[Path],
    typer.Option("--output", "-o", help="Write submission records to this JSON file"),
]
VerboseOption = Annotated[bool, typer.Option("--verbose", "-v", help="Show debug logging")]


def configure_logging(settings: Settings, verbose: bool = False) -> None:
    """Route log records through rich at the configured level."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else settings.log_level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
        force=True,
    )


def _load_settings(verbose: bool) -> Settings:
    try:
        settings = get_settings()
    except ValidationError as e:
        console.print(f"[red]Configuration Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)
    configure_logging(settings, verbose)
    return settings


def _validated(model: type[ModelT], label: str, **fields: object) -> ModelT:
    """Build a model from CLI input, exiting with a readable error if it is invalid."""
    try:
        return model(**fields)
    except ValidationError as e:
        console.print(f"[red]Error:[/red] Invalid {label}: {escape(str(e))}")
        raise typer.Exit(1)


def _build_question(
    number: int, text: str, subject: str | None, max_marks: int, answer_key: str | None
) -> Question:
    return _validated(
        Question,
        "question",
        number=number,
        text=text,
        subject=subject,
        max_marks=max_marks,
        answer_key=answer_key,
    )


@app.command()
def grade(
    image_file: Annotated[Path, typer.Argument(help="Path to the answer image or scanned PDF")],
    question: QuestionOption,
    max_marks: MaxMarksOption,
    subject: SubjectOption = None,
    answer_key: AnswerKeyOption = None,
    number: NumberOption = 1,
    student_name: Annotated[
        str, typer.Option("--student-name", help="Student name")
    ] = "Student 1",
    roll_number: Annotated[str, typer.Option("--roll-number", help="Roll number")] = "001",
    session_id: SessionOption = "cli",
    output: OutputOption = None,
    verbose: VerboseOption = False,
) -> None:
    """
    Grade a single answer image.

    The image is read with OCR and graded by the configured model; if the
    model is unavailable, heuristic grading is used instead.
    """
    settings = _load_settings(verbose)

    if not image_file.is_file():
        console.print(f"[red]Error:[/red] Image file not found: {image_file}")
        raise typer.Exit(1)

    q = _build_question(number, question, subject, max_marks, answer_key)
    info = _validated(StudentInfo, "student", student_name=student_name, roll_number=roll_number)

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
        transient=True,
    ) as progress:
        progress.add_task("Reading and grading answer...", total=None)
        orchestrator = GradingOrchestrator.from_settings(settings)
        result = orchestrator.grade_answer_image(q, image_file.read_bytes(), info)

    _display_result(result)

    if output:
        record = build_submission_record(
            result, session_id=session_id, file_name=image_file.name, question_number=q.number
        )
        saved_path = save_records([record], output)
        console.print(f"\n[green]Record saved to:[/green] {saved_path}")


@app.command()
def batch(
    directory: Annotated[Path, typer.Argument(help="Directory of answer images")],
    question: QuestionOption,
    max_marks: MaxMarksOption,
    subject: SubjectOption = None,
    answer_key: AnswerKeyOption = None,
    number: NumberOption = 1,
    workers: Annotated[
        Optional[int], typer.Option("--workers", "-w", min=1, max=16, help="Concurrent gradings")
    ] = None,
    session_id: SessionOption = "cli",
    output: OutputOption = None,
    verbose: VerboseOption = False,
) -> None:
    """
    Grade every answer image in a directory.

    Files are graded in name order; each gets a placeholder student
    identity ("Student N", roll "00N").
    """
    settings = _load_settings(verbose)

    if not directory.is_dir():
        console.print(f"[red]Error:[/red] Directory not found: {directory}")
        raise typer.Exit(1)

    files = sorted(p for p in directory.iterdir() if is_supported_file(p))
    if not files:
        console.print(f"[yellow]No answer images found in {directory}[/yellow]")
        raise typer.Exit(1)

    q = _build_question(number, question, subject, max_marks, answer_key)
    images = [
        AnswerImage(
            data=path.read_bytes(),
            file_name=path.name,
            student_info=StudentInfo.default_for(position),
        )
        for position, path in enumerate(files, start=1)
    ]

    coordinator = BatchCoordinator(
        GradingOrchestrator.from_settings(settings),
        max_workers=workers or settings.batch_workers,
    )

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
        transient=True,
    ) as progress:
        progress.add_task(f"Grading {len(images)} answers...", total=None)
        outcome = coordinator.grade_batch(q, images)

    table = Table(title=f"Question {q.number}: {q.text}")
    table.add_column("File", style="cyan")
    table.add_column("Student")
    table.add_column("Marks", justify="right")
    table.add_column("Grade", justify="center")
    table.add_column("Source")
    table.add_column("Confidence", justify="right")

    for image, result in zip(images, outcome.results):
        if result is None:
            table.add_row(image.file_name, "-", "-", "-", "cancelled", "-")
            continue
        table.add_row(
            image.file_name,
            result.student_info.student_name if result.student_info else "-",
            f"{result.marks}/{result.max_marks}",
            result.letter_grade,
            result.source.value,
            str(result.confidence),
        )

    console.print(table)

    summary = outcome.summary
    console.print(
        Panel(
            f"Total: {summary.total}   Graded: {summary.graded}   "
            f"Errored: {summary.errored}   Cancelled: {summary.cancelled}\n"
            f"Average: [bold]{summary.average_percentage:.1f}%[/bold]",
            title="Batch Summary",
        )
    )

    if output:
        records = [
            build_submission_record(
                result, session_id=session_id, file_name=image.file_name, question_number=q.number
            )
            for image, result in zip(images, outcome.results)
            if result is not None
        ]
        saved_path = save_records(records, output)
        console.print(f"\n[green]{len(records)} records saved to:[/green] {saved_path}")


@app.command()
def health() -> None:
    """
    Check if the grading system is operational.

    Verifies OCR availability, configuration and API connectivity.
    """
    settings = _load_settings(verbose=False)
    console.print("[bold]Answer Grader Health Check[/bold]\n")

    console.print("[dim]Checking configuration...[/dim]")
    console.print(f"  API Base URL: {settings.llm_base_url}")
    console.print(f"  Model: {settings.llm_model}")
    console.print(f"  OCR Engine: {settings.ocr_engine.value} ({settings.ocr_language})")
    console.print(f"  Batch Workers: {settings.batch_workers}")

    healthy = True

    console.print("\n[dim]Checking OCR engine...[/dim]")
    if TesseractExtractor.is_available():
        console.print("[green]✓ Tesseract is installed[/green]")
    else:
        console.print("[red]✗ Tesseract not found[/red]")
        healthy = False

    console.print("\n[dim]Checking API connectivity...[/dim]")
    if GradingOrchestrator.from_settings(settings).health_check():
        console.print("[green]✓ API is reachable[/green]")
    else:
        console.print("[yellow]⚠ API is not reachable; heuristic grading will be used[/yellow]")

    if not healthy:
        raise typer.Exit(1)

    console.print("\n[green]All systems operational[/green]")


def _display_result(result: GradingResult) -> None:
    """Display a grading result."""
    percentage = result.percentage
    score_color = "green" if percentage >= 70 else "yellow" if percentage >= 50 else "red"
    console.print(
        Panel(
            f"[{score_color}][bold]{result.marks} / {result.max_marks}[/bold] "
            f"({percentage:.1f}%, grade {result.letter_grade})[/{score_color}]\n"
            f"Graded via {result.source.value}, confidence {result.confidence}/10, "
            f"OCR confidence {result.ocr_confidence:.0f}%",
            title="Final Score",
        )
    )

    if result.confidence <= 4:
        console.print("[yellow]⚠ Low-confidence grade; please review manually[/yellow]")

    console.print(Panel(result.feedback or "-", title="Feedback"))
    if result.strengths:
        console.print(Panel(result.strengths, title="Strengths"))
    if result.improvements:
        console.print(Panel(result.improvements, title="Improvements"))


if __name__ == "__main__":
    app()
