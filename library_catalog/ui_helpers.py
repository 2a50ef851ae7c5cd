import os
import json
from typing import List, Any, Dict

from rich.console import Console
from rich.table import Table
from rich.panel import Panel

from .models import Loan

# Environment variable to control CLI output mode
# Allowed values: 'plain' (default), 'json', 'rich'
OUTPUT_MODE_ENV = "LIB_CLI_OUTPUT"

_console = Console()


def set_output_mode(mode: str) -> None:
    mode = (mode or "").lower().strip()
    if mode in {"plain", "json", "rich"}:
        os.environ[OUTPUT_MODE_ENV] = mode


def get_output_mode() -> str:
    return os.environ.get(OUTPUT_MODE_ENV, "plain").lower()


def _loan_row(loan: Loan) -> Dict[str, Any]:
    return {
        "id": loan.id,
        "memberId": loan.member_id,
        "bookId": loan.book_id,
        "loanDate": loan.loan_date.isoformat(),
        "dueDate": loan.due_date.isoformat(),
        "status": loan.status.value,
    }


def print_loans_result(loans: List[Loan], title: str = "Loans", empty_message: str = "No loans.") -> None:
    """Print loans in the current output mode under the given title.
    - plain: one 'Loan <id>: member <m>, book <b>, due <date> [STATUS]' line per loan
    - json: JSON array
    - rich: Rich table
    """
    mode = get_output_mode()

    if not loans:
        print(empty_message)
        return

    if mode == "json":
        print(json.dumps([_loan_row(loan) for loan in loans], ensure_ascii=False))
    elif mode == "rich":
        table = Table(title=title, show_lines=True, header_style="bold cyan")
        for column in ("Loan", "Member", "Book", "Loan date", "Due date", "Status"):
            table.add_column(column)
        for loan in loans:
            table.add_row(str(loan.id), str(loan.member_id), str(loan.book_id), loan.loan_date.isoformat(),
                          loan.due_date.isoformat(), f"[red]{loan.status.value}[/]")
        _console.print(table)
    else:
        for loan in loans:
            print(f"Loan {loan.id}: member {loan.member_id}, book {loan.book_id}, "
                  f"due {loan.due_date.isoformat()} [{loan.status.value}]")


def print_quota_result(quota: Dict[str, Any]) -> None:
    mode = get_output_mode()

    if mode == "json":
        print(json.dumps({
            "memberId": quota["member_id"],
            "remainingQuota": quota["remaining_quota"],
            "canBorrow": quota["can_borrow"],
            "maxLoansPerMember": quota["max_loans_per_member"],
        }))
    elif mode == "rich":
        style = "green" if quota["can_borrow"] else "red"
        content = (f"[bold]Remaining quota:[/] {quota['remaining_quota']} / {quota['max_loans_per_member']}\n"
                   f"[bold]Can borrow:[/] [{style}]{'yes' if quota['can_borrow'] else 'no'}[/]")
        _console.print(Panel.fit(content, title=f"Member {quota['member_id']}", border_style=style))
    else:
        print(f"Member {quota['member_id']}")
        print(f"Remaining quota: {quota['remaining_quota']} / {quota['max_loans_per_member']}")
        print(f"Can borrow: {'yes' if quota['can_borrow'] else 'no'}")


def print_stats_result(stats: Dict[str, Any]) -> None:
    """Print statistics in the current output mode.
    - plain: one 'Label: value' line per counter
    - json: JSON object
    - rich: Panel with the main metrics
    """
    mode = get_output_mode()

    if not stats:
        print("No statistics available.")
        return

    available = stats.get("available_books", 0)
    members = stats.get("active_members", 0)
    overdue = stats.get("overdue_loans", 0)

    if mode == "json":
        print(json.dumps({"available_books": available, "active_members": members, "overdue_loans": overdue}))
    elif mode == "rich":
        content = (f"[bold]Available Books:[/] {available}\n[bold]Active Members:[/] {members}\n"
                   f"[bold]Overdue Loans:[/] {overdue}")
        _console.print(Panel.fit(content, title="Stats", border_style="blue"))
    else:
        print(f"Available Books: {available}")
        print(f"Active Members: {members}")
        print(f"Overdue Loans: {overdue}")
