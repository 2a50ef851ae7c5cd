import logging
import os
import subprocess
import sys
from typing import Dict, Optional

import typer

from .config import settings
from .database import initialize_database
from .errors import NotFoundError
from .library import Library
from .ui_helpers import print_loans_result, print_quota_result, print_stats_result, set_output_mode

# Options shared by every command, filled in by the callback
state: Dict[str, Optional[str]] = {"db_file": None}

# --- Typer CLI application ---
app = typer.Typer(help="Library catalog CLI")


@app.callback()
def _global_options(
    output: Optional[str] = typer.Option(
        None,
        "--output",
        "-o",
        help="Output format: plain | json | rich (default: plain)",
    ),
    db_file: Optional[str] = typer.Option(
        None,
        "--db-file",
        help="SQLite database file (default: LIBRARY_DB_FILE or settings)",
    ),
):
    """Global options for the CLI (output mode, database file)."""
    logging.basicConfig(level=settings.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    if output:
        set_output_mode(output)
    state["db_file"] = db_file


def _db_file() -> str:
    return state["db_file"] or settings.data_file


def _library() -> Library:
    return Library(db_file=_db_file())


@app.command("init-db")
def cli_init_db():
    """Create the catalog tables if they do not exist."""
    db_file = _db_file()
    initialize_database(db_file)
    print(f"Database initialized at {db_file}")


@app.command("serve")
def cli_serve(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address (default: API_HOST)"),
    port: Optional[int] = typer.Option(None, "--port", help="Port (default: API_PORT)"),
):
    """Start the HTTP API with uvicorn."""
    host = host or settings.api_host
    port = int(port or settings.api_port)
    print(f"Starting API on http://{host}:{port}/")
    args = [
        sys.executable,
        "-m", "uvicorn",
        "library_catalog.api:app",
        "--host", host,
        "--port", str(port),
    ]
    env = dict(os.environ)
    if state["db_file"]:
        env["LIBRARY_DB_FILE"] = state["db_file"]
    try:
        subprocess.run(args, env=env)
    except KeyboardInterrupt:
        print("Server stopped.")


@app.command("sweep")
def cli_sweep():
    """Mark every ACTIVE loan past its due date as OVERDUE."""
    promoted = _library().loans.update_overdue_loans()
    print(f"Marked {promoted} loan(s) as OVERDUE.")


@app.command("overdue")
def cli_overdue():
    """List loans currently flagged OVERDUE."""
    print_loans_result(_library().loans.overdue(), title="Overdue loans", empty_message="No overdue loans.")


@app.command("quota")
def cli_quota(member_id: int = typer.Argument(..., help="Member id")):
    """Show how many more books a member may borrow."""
    try:
        quota = _library().loans.quota(member_id)
    except NotFoundError as e:
        print(f"Error: {e.message}")
        raise typer.Exit(code=1)
    print_quota_result(quota)


@app.command("stats")
def cli_stats():
    """Show catalog statistics."""
    print_stats_result(_library().get_statistics())


if __name__ == "__main__":
    app()
