"""
Database Commands

Schema management for the exam store.
"""

import click
from rich.console import Console

from ..core.database import check_database_connection, init_database, reset_database
from ..core.exceptions import DatabaseError
from ..utils.logging import get_logger

console = Console()
logger = get_logger(__name__)


@click.command()
@click.option('--force', is_flag=True, help='Drop and recreate all tables')
@click.pass_context
def init(ctx, force):
    """Create the exam tables.

    \b
    📋 EXAMPLES:

    exam-grader init-db
    exam-grader init-db --force

    \b
    ⚠️ --force deletes every stored exam and manual grade.
    """
    url = ctx.obj['config'].database.url
    try:
        if force:
            if not click.confirm(f"Drop all exam data in {url}?", default=False):
                console.print("[yellow]Aborted[/yellow]")
                return
            reset_database()
        else:
            init_database()
        check_database_connection()
    except DatabaseError as e:
        logger.error(f"Database initialization failed: {e}")
        console.print(f"[red]Error ({e.kind}): {e.message}[/red]")
        ctx.exit(1)

    console.print(f"[green]✓ Database ready at {url}[/green]")
