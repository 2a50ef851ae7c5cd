"""Loan rule engine.

Lending rules:

1. a suspended member cannot borrow;
2. a book can only be lent while it has an available copy;
3. a member holds at most ``max_loans_per_member`` ACTIVE loans at once;
4. a member cannot hold two ACTIVE loans of the same book.

A loan is created ACTIVE, becomes OVERDUE only through
:meth:`LoanManager.update_overdue_loans` and becomes RETURNED (terminal) only
through :meth:`LoanManager.return_book`.

Create and return run in immediate transactions: the database write lock is
held from the first precondition check to the commit, so two requests for the
same book or member are applied one after the other.
"""
import logging
from datetime import date
from typing import Callable, Dict, List, Any

from ..errors import BusinessRuleViolation
from ..models import Loan, LoanStatus
from .base import BaseManager
from .books import BookManager
from .members import MemberManager

logger = logging.getLogger(__name__)

DEFAULT_MAX_LOANS_PER_MEMBER = 3


class LoanManager(BaseManager[Loan]):
    resource = "Loan"
    table = "loans"

    def __init__(self, store, members: MemberManager, books: BookManager,
                 max_loans_per_member: int = DEFAULT_MAX_LOANS_PER_MEMBER,
                 clock: Callable[[], date] = date.today) -> None:
        super().__init__(store)
        self.members = members
        self.books = books
        self.max_loans_per_member = max_loans_per_member
        self.clock = clock

    # ------------------------- Lifecycle ------------------------- #
    def create(self, member_id: int, book_id: int, due_date: date) -> Loan:
        """Lend a book to a member, checking the lending rules in order."""
        with self.store.transaction(immediate=True) as session:
            member = self.members.require(session, member_id)
            if not member.active:
                raise self._violation(
                    f"Member {member_id} account is suspended; borrowing is not allowed", "account_suspended"
                )

            book = self.books.require(session, book_id)
            if book.available_copies <= 0:
                raise self._violation(f"No copies available for book '{book.title}'", "no_copies_available")

            active_loans = session.loans.count(member_id=member_id, status=LoanStatus.ACTIVE)
            if active_loans >= self.max_loans_per_member:
                raise self._violation(
                    f"Member {member_id} has reached the limit of {self.max_loans_per_member} active loans",
                    "quota_exceeded",
                )

            if session.loans.exists(member_id=member_id, book_id=book_id, status=LoanStatus.ACTIVE):
                raise self._violation(
                    f"Member {member_id} has already borrowed book '{book.title}' and not returned it",
                    "already_borrowed",
                )

            if not session.books.take_copy(book_id):
                raise self._violation(f"No copies available for book '{book.title}'", "no_copies_available")

            loan = Loan(member_id=member_id, book_id=book_id, loan_date=self.clock(),
                        due_date=due_date, status=LoanStatus.ACTIVE)
            session.loans.save(loan)
        logger.info(f"Loan {loan.id} created: member={member_id}, book={book_id}, due={due_date.isoformat()}")
        return loan

    def return_book(self, loan_id: int) -> Loan:
        """Record the return of a loan, whether it is ACTIVE or OVERDUE."""
        with self.store.transaction(immediate=True) as session:
            loan = self.require(session, loan_id)
            if loan.status == LoanStatus.RETURNED:
                raise self._violation(f"Loan {loan_id} has already been returned", "already_returned")
            loan.return_date = self.clock()
            loan.status = LoanStatus.RETURNED
            session.books.put_back_copy(loan.book_id)
            session.loans.save(loan)
        logger.info(f"Loan {loan_id} returned: book={loan.book_id}")
        return loan

    def update_overdue_loans(self) -> int:
        """Mark every ACTIVE loan past its due date as OVERDUE.

        Returns the number of loans promoted. Running it again right away
        promotes nothing, since promoted loans are no longer ACTIVE.
        """
        today = self.clock()
        promoted = 0
        with self.store.transaction(immediate=True) as session:
            for loan in session.loans.find(status=LoanStatus.ACTIVE):
                if loan.is_overdue(today):
                    loan.status = LoanStatus.OVERDUE
                    session.loans.save(loan)
                    promoted += 1
        logger.info(f"Overdue sweep for {today.isoformat()}: {promoted} loan(s) marked OVERDUE")
        return promoted

    @staticmethod
    def _violation(message: str, code: str) -> BusinessRuleViolation:
        logger.warning(f"Loan rule violated ({code}): {message}")
        return BusinessRuleViolation(message, code=code)

    # ------------------------- Queries ------------------------- #
    def by_member(self, member_id: int) -> List[Loan]:
        """All loans of a member, newest first."""
        with self.store.transaction() as session:
            self.members.require(session, member_id)
            return session.loans.find(order_by="-loan_date,-id", member_id=member_id)

    def active_by_member(self, member_id: int) -> List[Loan]:
        with self.store.transaction() as session:
            self.members.require(session, member_id)
            return session.loans.find(member_id=member_id, status=LoanStatus.ACTIVE)

    def by_book(self, book_id: int) -> List[Loan]:
        with self.store.transaction() as session:
            self.books.require(session, book_id)
            return session.loans.find(book_id=book_id)

    def overdue(self) -> List[Loan]:
        """Loans flagged OVERDUE by the last sweep."""
        with self.store.transaction() as session:
            return session.loans.find(status=LoanStatus.OVERDUE)

    def count_active(self, member_id: int) -> int:
        with self.store.transaction() as session:
            self.members.require(session, member_id)
            return session.loans.count(member_id=member_id, status=LoanStatus.ACTIVE)

    def count_total(self, member_id: int) -> int:
        with self.store.transaction() as session:
            self.members.require(session, member_id)
            return session.loans.count(member_id=member_id)

    def remaining_quota(self, member_id: int) -> int:
        return max(0, self.max_loans_per_member - self.count_active(member_id))

    def can_borrow(self, member_id: int) -> bool:
        return self.count_active(member_id) < self.max_loans_per_member

    def quota(self, member_id: int) -> Dict[str, Any]:
        active = self.count_active(member_id)
        return {
            "member_id": member_id,
            "remaining_quota": max(0, self.max_loans_per_member - active),
            "can_borrow": active < self.max_loans_per_member,
            "max_loans_per_member": self.max_loans_per_member,
        }
