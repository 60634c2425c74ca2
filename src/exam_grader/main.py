"""
CLI Entry Point

Command-line interface for the exam grader using Click with rich output.
"""

import sys
from pathlib import Path

import click
from rich.console import Console
from rich.panel import Panel

from .core.config import get_config, reload_config
from .core.exceptions import ExamGraderException
from .utils.logging import get_logger, setup_logging
from .commands import (
    approve, database_init, eligibility, export, generate, grade, list_exams,
    result, review, show, stats, submit
)

console = Console()
logger = get_logger(__name__)


@click.group(invoke_without_command=True)
@click.option('--config', '-c', type=click.Path(exists=True), help='Configuration file path')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.option('--debug', is_flag=True, help='Enable debug mode')
@click.pass_context
def cli(ctx, config, verbose, debug):
    """exam-grader - generate, grade and review candidate exams"""
    ctx.ensure_object(dict)

    try:
        if config:
            app_config = reload_config(Path(config))
        else:
            app_config = get_config()

        if debug:
            app_config.debug = debug

        if verbose or debug:
            app_config.logging.level = 'DEBUG'
        setup_logging(app_config)

        ctx.obj['config'] = app_config

    except ExamGraderException as e:
        console.print(f"[red]Error initializing application: {e.message}[/red]")
        sys.exit(1)

    if ctx.invoked_subcommand is None:
        _display_banner()


def _display_banner():
    """Display application banner."""
    banner = Panel.fit(
        "[bold blue]exam-grader[/bold blue]\n"
        "[dim]Exam grading and evaluation engine[/dim]\n\n"
        "Use --help for available commands",
        title="📝 Exam Grader",
        border_style="blue"
    )
    console.print(banner)


# ===== EXAM COMMANDS =====

@cli.group()
def exam():
    """Exam lifecycle commands."""
    pass


exam.add_command(generate)
exam.add_command(submit)
exam.add_command(grade)
exam.add_command(result)
exam.add_command(show)
exam.add_command(list_exams, name='list')
exam.add_command(review)
exam.add_command(approve)
exam.add_command(eligibility)
exam.add_command(stats)
exam.add_command(export)


# ===== DATABASE COMMANDS =====

cli.add_command(database_init, name='init-db')


def main():
    """Main entry point with top-level error handling."""
    try:
        cli()
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user[/yellow]")
        sys.exit(1)
    except ExamGraderException as e:
        logger.error(f"Application error: {str(e)}")
        console.print(f"[red]Error: {str(e)}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
