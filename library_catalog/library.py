from datetime import date
from typing import Any, Callable, Dict, Optional

from .config import settings
from .database import initialize_database
from .services import AuthorManager, BookManager, CategoryManager, LoanManager, MemberManager
from .store import EntityStore


class Library:
    """Wires the entity store and the catalog managers together."""

    def __init__(self, db_file: Optional[str] = None, max_loans_per_member: Optional[int] = None,
                 clock: Callable[[], date] = date.today) -> None:
        self.db_file = db_file or settings.data_file
        initialize_database(self.db_file)  # Ensure the tables exist
        self.store = EntityStore(self.db_file)

        self.authors = AuthorManager(self.store)
        self.categories = CategoryManager(self.store)
        self.members = MemberManager(self.store, clock=clock)
        self.books = BookManager(self.store, self.authors, self.categories)
        self.loans = LoanManager(
            self.store,
            self.members,
            self.books,
            max_loans_per_member=settings.max_loans_per_member if max_loans_per_member is None else max_loans_per_member,
            clock=clock,
        )

    def get_statistics(self) -> Dict[str, Any]:
        """Headline counters for the CLI ``stats`` command."""
        return {
            "available_books": self.books.count_available(),
            "active_members": self.members.count_active(),
            "overdue_loans": len(self.loans.overdue()),
        }
