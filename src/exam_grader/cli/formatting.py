"""
CLI Output Formatting

Rich text formatting utilities for exams, results and errors.
"""

from typing import Sequence

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..core.exceptions import ExamGraderException
from ..exams.types import ExamInstance, ExamResult

console = Console()

STATUS_COLORS = {
    'generated': 'blue',
    'submitted': 'yellow',
    'graded': 'green',
    'manually_graded': 'cyan',
    'under_review': 'magenta',
}


def _status_text(status: str) -> str:
    color = STATUS_COLORS.get(status, 'white')
    return f"[{color}]{status}[/{color}]"


def _score_text(value) -> str:
    if value is None:
        return "-"
    if isinstance(value, float):
        return f"{value:g}"
    return str(value)


def format_exam_table(exams: Sequence[ExamInstance], title: str = "Exams") -> Table:
    """Format a list of exams as a Rich table."""
    table = Table(title=title, show_header=True, header_style="bold blue")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Candidate", style="magenta")
    table.add_column("Status", justify="center")
    table.add_column("Questions", justify="right")
    table.add_column("Score", justify="right", style="green")
    table.add_column("%", justify="right")
    table.add_column("Qualified", justify="center")
    table.add_column("Generated", style="dim")

    for exam in exams:
        qualified = "-" if exam.qualified is None else ("[green]yes[/green]" if exam.qualified else "[red]no[/red]")
        table.add_row(
            str(exam.id),
            exam.candidate_id,
            _status_text(exam.status.value),
            str(exam.total_questions),
            _score_text(exam.final_score),
            _score_text(exam.percentage),
            qualified,
            exam.generated_at.strftime('%Y-%m-%d %H:%M') if exam.generated_at else 'N/A',
        )

    return table


def format_question_table(exam: ExamInstance) -> Table:
    """Per-question view of an exam: answer, automatic verdict and manual credit."""
    table = Table(title=f"Exam {exam.id}", show_header=True, header_style="bold blue")
    table.add_column("#", justify="right", style="cyan")
    table.add_column("Id", style="dim")
    table.add_column("Type")
    table.add_column("Question")
    table.add_column("Answer")
    table.add_column("Auto", justify="center")
    table.add_column("Manual", justify="right")

    for index, question in enumerate(exam.questions):
        answer = exam.submitted_answers.get(str(index))
        if isinstance(answer, list):
            answer = ", ".join(answer)
        verdict = exam.question_results[index] if index < len(exam.question_results) else None
        verdict_text = "-" if verdict is None else ("[green]✓[/green]" if verdict else "[red]✗[/red]")
        record = exam.manual_grades.get(question.id)
        table.add_row(
            str(index),
            question.id,
            question.type.value,
            question.text[:60] + ("..." if len(question.text) > 60 else ""),
            str(answer) if answer is not None else "-",
            verdict_text,
            f"{record.score:g}" if record else "-",
        )

    return table


def format_result_panel(result: ExamResult) -> Panel:
    """Format an exam result as a Rich panel."""
    verdict = "[bold green]QUALIFIED[/bold green]" if result.qualified else "[bold red]NOT QUALIFIED[/bold red]"
    body = (
        f"Score: [bold]{result.score:g}[/bold] / {result.total}\n"
        f"Percentage: [bold]{result.percentage:.2f}%[/bold]\n"
        f"Automatic: {result.auto_score}  Manual: {result.manual_score:g}\n"
        f"Status: {_status_text(result.status.value)}\n\n"
        f"{verdict}"
    )
    return Panel.fit(body, title=f"Result for exam {result.exam_id}", border_style="blue")


def format_error(error: ExamGraderException) -> str:
    """One-line error text with the stable error kind."""
    return f"[red]Error ({error.kind}): {error.message}[/red]"
