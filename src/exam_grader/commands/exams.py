"""
Exam Commands

CLI commands for generating, submitting, grading and reporting on exams.
"""

import json
from pathlib import Path
from typing import Any, Callable

import click
import pandas as pd
import yaml
from rich.console import Console
from rich.table import Table

from ..cli.formatting import (
    format_error, format_exam_table, format_question_table, format_result_panel
)
from ..core.database import get_db_session, init_database
from ..core.exceptions import ExamGraderException, ValidationError
from ..exams.lifecycle import ExamLifecycleController
from ..exams.types import ExamStatus
from ..reporting import export_exams, status_breakdown, summarize_exams
from ..storage.repositories import ExamRepository
from ..utils.clock import utcnow
from ..utils.logging import get_logger

console = Console()
logger = get_logger(__name__)

DATETIME_FORMATS = ['%Y-%m-%d', '%Y-%m-%dT%H:%M:%S', '%Y-%m-%d %H:%M:%S']


def _run(ctx: click.Context, action: Callable[[ExamLifecycleController], Any]) -> Any:
    """Run an action against a controller bound to a fresh session.

    Engine errors are printed with their kind and end the command with exit code 1.
    """
    config = ctx.obj['config']
    try:
        init_database()
        with get_db_session() as session:
            controller = ExamLifecycleController(ExamRepository(session), config)
            return action(controller)
    except ExamGraderException as e:
        logger.warning(f"Command failed: {e}")
        console.print(format_error(e))
        ctx.exit(1)


def _load_document(path: str) -> Any:
    """Read a JSON or YAML file."""
    text = Path(path).read_text(encoding='utf-8')
    try:
        if path.endswith(('.yaml', '.yml')):
            return yaml.safe_load(text)
        return json.loads(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ValidationError(f"Could not parse {path}: {e}", field_name="file") from e


@click.command()
@click.argument('candidate_id')
@click.argument('questions_file', type=click.Path(exists=True, dir_okay=False))
@click.option('--last-attempt', type=click.DateTime(formats=DATETIME_FORMATS),
              help='Time of a previous attempt (the latest stored exam still counts)')
@click.pass_context
def generate(ctx, candidate_id, questions_file, last_attempt):
    """Create an exam for a candidate from a question file.

    \b
    📋 EXAMPLES:

    exam-grader exam generate cand-42 questions.json
    exam-grader exam generate cand-42 questions.yaml --last-attempt 2024-01-01

    \b
    💡 The file holds a list of questions (or a mapping with a 'questions' key).
    """
    def action(controller):
        document = _load_document(questions_file)
        if isinstance(document, dict):
            document = document.get('questions')
        if not isinstance(document, list):
            raise ValidationError("Question file must contain a list of questions", field_name="questions")

        exam = controller.generate_exam(candidate_id, document, last_attempt_at=last_attempt)
        console.print(f"[green]✓ Generated exam {exam.id} with {exam.total_questions} questions[/green]")
        return exam

    _run(ctx, action)


@click.command()
@click.argument('exam_id')
@click.argument('answers_file', type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def submit(ctx, exam_id, answers_file):
    """Submit answers for an exam and auto-grade them.

    \b
    📋 EXAMPLES:

    exam-grader exam submit 3f2a... answers.json

    \b
    💡 Answers are keyed by question index: {"0": "Paris", "1": ["A", "B"]}
    """
    def action(controller):
        exam = controller.submit_answers(exam_id, _load_document(answers_file))
        console.print(f"[green]✓ Exam {exam.id} graded[/green]")
        console.print(f"Automatic score: [bold]{exam.auto_score}[/bold] / {exam.total_questions} "
                      f"({exam.percentage:.2f}%)")
        return exam

    _run(ctx, action)


@click.command()
@click.argument('exam_id')
@click.argument('question_id')
@click.argument('score', type=float)
@click.option('--feedback', '-f', default='', help='Reviewer feedback')
@click.pass_context
def grade(ctx, exam_id, question_id, score, feedback):
    """Record a manual grade (0 to 1) for a free-text question.

    \b
    📋 EXAMPLES:

    exam-grader exam grade 3f2a... 3 0.5 --feedback "Partially correct"
    """
    def action(controller):
        exam = controller.record_manual_grade(exam_id, question_id, score, feedback)
        console.print(f"[green]✓ Recorded {score:g} for question {question_id}[/green]")
        console.print(f"Final score: [bold]{exam.final_score:g}[/bold] / {exam.total_questions} "
                      f"({exam.percentage:.2f}%)")
        return exam

    _run(ctx, action)


@click.command()
@click.argument('exam_id')
@click.option('--json', 'as_json', is_flag=True, help='Print the result as JSON')
@click.pass_context
def result(ctx, exam_id, as_json):
    """Show the score and qualification for a graded exam."""
    def action(controller):
        exam_result = controller.compute_result(exam_id)
        if as_json:
            click.echo(json.dumps(exam_result.to_dict(), indent=2))
        else:
            console.print(format_result_panel(exam_result))
        return exam_result

    _run(ctx, action)


@click.command()
@click.argument('exam_id')
@click.pass_context
def show(ctx, exam_id):
    """Show an exam question by question."""
    def action(controller):
        exam = controller.get_exam(exam_id)
        console.print(format_question_table(exam))
        console.print(f"[dim]Status: {exam.status.value}[/dim]")
        return exam

    _run(ctx, action)


@click.command('list')
@click.option('--candidate', '-c', help='Filter by candidate id')
@click.option('--status', type=click.Choice([s.value for s in ExamStatus]), help='Filter by status')
@click.option('--qualified/--not-qualified', default=None, help='Filter by qualification')
@click.option('--limit', '-l', type=int, default=20, help='Number of exams to show')
@click.option('--offset', type=int, default=0, help='Number of exams to skip')
@click.pass_context
def list_exams(ctx, candidate, status, qualified, limit, offset):
    """List exams, newest first."""
    def action(controller):
        exams = controller.list_exams(candidate_id=candidate, status=status,
                                      qualified=qualified, limit=limit, offset=offset)
        if not exams:
            console.print("[yellow]No exams found matching criteria[/yellow]")
            return exams
        console.print(format_exam_table(exams))
        console.print(f"\n[dim]Showing {len(exams)} exams[/dim]")
        return exams

    _run(ctx, action)


@click.command()
@click.argument('exam_id')
@click.pass_context
def review(ctx, exam_id):
    """Hold a graded exam's result until it is approved."""
    def action(controller):
        exam = controller.hold_for_review(exam_id)
        console.print(f"[magenta]Exam {exam.id} held for review[/magenta]")
        return exam

    _run(ctx, action)


@click.command()
@click.argument('exam_id')
@click.option('--delay', 'delay_minutes', type=int, default=None,
              help='Minutes until the result becomes visible (config default if omitted)')
@click.pass_context
def approve(ctx, exam_id, delay_minutes):
    """Approve an exam and schedule its result visibility."""
    def action(controller):
        exam = controller.approve_exam(exam_id, delay_minutes)
        console.print(f"[green]✓ Exam {exam.id} approved; visible at "
                      f"{exam.visible_at.strftime('%Y-%m-%d %H:%M')} UTC[/green]")
        return exam

    _run(ctx, action)


@click.command()
@click.argument('candidate_id')
@click.option('--last-attempt', type=click.DateTime(formats=DATETIME_FORMATS),
              help='Time of a previous attempt (the latest stored exam still counts)')
@click.pass_context
def eligibility(ctx, candidate_id, last_attempt):
    """Check whether a candidate may start a new exam."""
    def action(controller):
        allowed = controller.check_attempt_eligibility(candidate_id, last_attempt)
        if allowed:
            console.print(f"[green]Candidate {candidate_id} may start a new exam[/green]")
        else:
            console.print(f"[yellow]Candidate {candidate_id} is still in the "
                          f"{controller.attempt_gate.cooldown_days:g}-day cooldown[/yellow]")
        return allowed

    _run(ctx, action)


@click.command()
@click.option('--candidate', '-c', help='Only include one candidate')
@click.pass_context
def stats(ctx, candidate):
    """Show pass rate and score statistics across exams."""
    def action(controller):
        exams = controller.list_exams(candidate_id=candidate)
        if not exams:
            console.print("[yellow]No exams found[/yellow]")
            return None

        summary = summarize_exams(exams)
        table = Table(title="Exam Statistics")
        table.add_column("Metric", style="cyan")
        table.add_column("Value", style="green")
        table.add_row("Total Exams", f"{summary['total_exams']:,}")
        table.add_row("Scored Exams", f"{summary['scored_exams']:,}")
        table.add_row("Pass Rate", f"{summary['pass_rate']:.2f}%")
        table.add_row("Mean Percentage", f"{summary['mean_percentage']:.2f}%")
        table.add_row("Median Percentage", f"{summary['median_percentage']:.2f}%")
        console.print(table)

        breakdown = status_breakdown(exams)
        status_table = Table(title="By Status")
        status_table.add_column("Status", style="cyan")
        status_table.add_column("Count", justify="right")
        status_table.add_column("Mean %", justify="right")
        status_table.add_column("Qualified", justify="right", style="green")
        for row in breakdown.to_dict('records'):
            mean = '-' if pd.isna(row['mean_percentage']) else f"{row['mean_percentage']:.2f}"
            status_table.add_row(row['status'], str(row['count']), mean, str(int(row['qualified'])))
        console.print(status_table)
        return summary

    _run(ctx, action)


@click.command()
@click.option('--format', 'export_format', type=click.Choice(['json', 'csv']), default='json',
              help='Export format')
@click.option('--output', '-o', type=click.Path(), help='Output file path')
@click.option('--status', type=click.Choice([s.value for s in ExamStatus]), help='Filter by status')
@click.pass_context
def export(ctx, export_format, output, status):
    """Export exam results to JSON or CSV."""
    def action(controller):
        exams = controller.list_exams(status=status)
        if not exams:
            console.print("[yellow]No exam data found to export[/yellow]")
            return None

        path = Path(output) if output else Path(
            f"exams_export_{utcnow().strftime('%Y%m%d_%H%M%S')}.{export_format}"
        )
        export_exams(exams, path, export_format)
        console.print(f"\n[green]✓ Exported {len(exams)} exam(s) to {path}[/green]")
        return path

    _run(ctx, action)
