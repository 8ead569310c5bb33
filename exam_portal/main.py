"""
Exam Portal CLI Application.

Provides a command-line interface for grading exam answers, submitting
them on behalf of a user, and reviewing stored submissions.
"""

import json
from pathlib import Path
from typing import Annotated, Any, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from exam_portal.config import get_settings
from exam_portal.exams import ExamLoadError, ExamStore, ExamValidationError, ExamValidator
from exam_portal.grading import GradingEngine, MalformedExamError
from exam_portal.log import setup_logging
from exam_portal.models import ExamReview, ScoreReport, Submission
from exam_portal.service import ExamPortal, InvalidSubmissionError, SubmissionNotFoundError
from exam_portal.storage import StorageError

# Create Typer app
app = typer.Typer(
    name="exam-portal",
    help="Grade, submit and review structured exams",
    add_completion=False,
)

console = Console()

STATUS_ICONS = {"correct": "✅", "partial": "⚠️", "wrong": "❌"}


@app.callback()
def main(
    log_level: Annotated[
        str,
        typer.Option("--log-level", envvar="EXAM_PORTAL_LOG_LEVEL", help="Logging level"),
    ] = "WARNING",
) -> None:
    """Exam Portal command line."""
    setup_logging(log_level.upper())


def _read_answers(answers_file: Path) -> dict[str, Any]:
    """Load a JSON object of answers from disk."""
    if not answers_file.exists():
        console.print(f"[red]Error:[/red] Answers file not found: {answers_file}")
        raise typer.Exit(1)
    try:
        answers = json.loads(answers_file.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        console.print(f"[red]Error:[/red] Answers file is not valid JSON: {e}")
        raise typer.Exit(1)
    if not isinstance(answers, dict):
        console.print("[red]Error:[/red] Answers file must hold a JSON object")
        raise typer.Exit(1)
    return answers


@app.command()
def grade(
    exam_file: Annotated[Path, typer.Argument(help="Path to the exam definition JSON")],
    answers_file: Annotated[Path, typer.Argument(help="Path to the submitted answers JSON")],
    output: Annotated[
        Optional[Path],
        typer.Option("--output", "-o", help="Write the score report JSON to this file"),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Show the per-problem breakdown"),
    ] = False,
) -> None:
    """
    Grade answers against an exam without storing anything.

    The score report is printed as JSON unless --output is given.
    """
    try:
        exam = ExamStore.parse(_load_json(exam_file), source=exam_file)
        ExamValidator().validate_or_raise(exam)
        answers = _read_answers(answers_file)

        report = GradingEngine().grade(exam, answers)

        _display_report(report, verbose)

        payload = json.dumps(report.as_mapping(), indent=2)
        if output:
            output.write_text(payload, encoding="utf-8")
            console.print(f"\n[green]Report saved to:[/green] {output}")
        else:
            console.print_json(payload)

    except ExamLoadError as e:
        console.print(f"[red]Exam Load Error:[/red] {e}")
        raise typer.Exit(1)
    except ExamValidationError as e:
        console.print(f"[red]Exam Validation Error:[/red] {e}")
        raise typer.Exit(1)
    except MalformedExamError as e:
        console.print(f"[red]Malformed Exam:[/red] {e}")
        raise typer.Exit(1)


@app.command()
def submit(
    user_id: Annotated[str, typer.Argument(help="Submitting user id")],
    answers_file: Annotated[Path, typer.Argument(help="Path to the submitted answers JSON")],
    exam_id: Annotated[
        Optional[str],
        typer.Option("--exam-id", "-e", help="Exam identifier (defaults to the configured exam)"),
    ] = None,
) -> None:
    """
    Grade and store a user's answers. Each user may submit an exam once.
    """
    try:
        settings = get_settings()
        answers = _read_answers(answers_file)

        portal = ExamPortal(settings)
        submission = portal.submit(user_id, exam_id or settings.default_exam_id, answers)

        console.print("[green]Exam submitted successfully[/green]")
        _display_report(submission.report, verbose=True)

    except (InvalidSubmissionError, StorageError) as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    except ExamLoadError as e:
        console.print(f"[red]Exam Load Error:[/red] {e}")
        raise typer.Exit(1)
    except (ExamValidationError, MalformedExamError) as e:
        console.print(f"[red]Exam Validation Error:[/red] {e}")
        raise typer.Exit(1)


@app.command()
def status(
    user_id: Annotated[str, typer.Argument(help="User id")],
    exam_id: Annotated[
        Optional[str],
        typer.Option("--exam-id", "-e", help="Exam identifier (defaults to the configured exam)"),
    ] = None,
) -> None:
    """
    Show whether a user has submitted an exam, and the stored scores.
    """
    try:
        portal = ExamPortal(get_settings())
        submission = portal.check_status(user_id, exam_id)
    except (InvalidSubmissionError, StorageError) as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    if submission is None:
        console.print(f"[yellow]No submission found for {user_id}[/yellow]")
        return

    _display_submission(submission)


@app.command()
def review(
    user_id: Annotated[str, typer.Argument(help="User id")],
    exam_id: Annotated[
        Optional[str],
        typer.Option("--exam-id", "-e", help="Exam identifier (defaults to the configured exam)"),
    ] = None,
) -> None:
    """
    Review a stored submission problem by problem.
    """
    try:
        portal = ExamPortal(get_settings())
        exam_review = portal.review(user_id, exam_id)
    except (InvalidSubmissionError, SubmissionNotFoundError, StorageError) as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    except ExamLoadError as e:
        console.print(f"[red]Exam Load Error:[/red] {e}")
        raise typer.Exit(1)

    _display_review(exam_review)


@app.command()
def validate_exam(
    exam_file: Annotated[Path, typer.Argument(help="Path to the exam definition JSON")],
) -> None:
    """
    Validate an exam definition without grading anything.
    """
    try:
        exam = ExamStore.parse(_load_json(exam_file), source=exam_file)
    except ExamLoadError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    is_valid, issues = ExamValidator().validate(exam)

    table = Table(title="Blocks")
    table.add_column("Block", style="cyan")
    table.add_column("Problems", justify="right")
    for block in exam.blocks:
        table.add_row(block.title or "(untitled)", str(len(block.problems)))
    console.print(table)
    console.print(f"\n[bold]Total Points:[/bold] {exam.total_allocation}")

    if is_valid:
        console.print("\n[green]✓ Exam is valid[/green]")
        for issue in issues:
            console.print(f"  [yellow]•[/yellow] {issue}")
    else:
        console.print("\n[yellow]⚠ Validation issues found:[/yellow]")
        for issue in issues:
            console.print(f"  • {issue}")
        raise typer.Exit(1)


def _load_json(path: Path) -> Any:
    """Read and decode a JSON file, reporting failures as ExamLoadError."""
    if not path.exists():
        raise ExamLoadError("File does not exist", path)
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ExamLoadError(f"Invalid JSON: {e}", path, cause=e) from e


def _display_report(report: ScoreReport, verbose: bool = False) -> None:
    """Display a score report as a summary panel and optional table."""
    score_color = "green" if report.percentage >= 70 else "yellow" if report.percentage >= 50 else "red"
    console.print(
        Panel(
            f"[{score_color}][bold]{report.total} / {report.max_total}[/bold] "
            f"({report.percentage:.1f}%)[/{score_color}]",
            title="Final Score",
        )
    )

    if verbose:
        table = Table(title="Score Breakdown")
        table.add_column("Problem", style="cyan")
        table.add_column("Type")
        table.add_column("Score", justify="right")

        for score in report.problem_scores:
            table.add_row(score.problem_id, score.problem_type, f"{score.earned}/{score.allocation}")

        console.print(table)


def _display_submission(submission: Submission) -> None:
    console.print(
        Panel(
            f"User: {submission.user_id}\n"
            f"Exam: {submission.exam_id}\n"
            f"Submitted: {submission.submitted_at.isoformat()}",
            title="Submission",
        )
    )
    _display_report(submission.report, verbose=True)


def _display_review(exam_review: ExamReview) -> None:
    """Render the review block by block."""
    for block in exam_review.blocks:
        table = Table(title=block.title or "Block")
        table.add_column("#", style="cyan")
        table.add_column("Type")
        table.add_column("Options")
        table.add_column("Your Answer")
        table.add_column("Key")
        table.add_column("Score", justify="right")

        for problem in block.problems:
            options = " ".join(
                f"[{'green' if o.correct else 'red'}]{'[bold]' if o.selected else ''}"
                f"{o.label}{'[/bold]' if o.selected else ''}[/]"
                for o in problem.options
            )
            table.add_row(
                problem.problem_id,
                problem.problem_type,
                options,
                escape(_format_answer(problem.submitted)),
                escape(_format_answer(problem.correct_answer)),
                f"{STATUS_ICONS[problem.status.value]} {problem.earned}/{problem.allocation}",
            )

        console.print(table)

    console.print(f"\n[bold]Total:[/bold] {exam_review.total} / {exam_review.max_total}")


def _format_answer(value: Any) -> str:
    if value is None:
        return "-"
    if isinstance(value, dict):
        return ", ".join(f"{k}: {v}" for k, v in value.items())
    if isinstance(value, (list, tuple)):
        return ",".join(str(v) for v in value)
    return str(value)


if __name__ == "__main__":
    app()
