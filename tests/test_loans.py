import threading
from datetime import date, timedelta

import pytest

from library_catalog.errors import BusinessRuleViolation, NotFoundError
from library_catalog.library import Library
from library_catalog.models import Author, Book, LoanStatus, Member

TODAY = date(2024, 3, 1)
DUE = TODAY + timedelta(days=14)


def _books(lib, author, count, copies=1):
    return [
        lib.books.create(Book(isbn=f"978000000{i:04d}", title=f"Volume {i}", author_id=author.id,
                              total_copies=copies))
        for i in range(count)
    ]


def _violation_code(call, *args):
    with pytest.raises(BusinessRuleViolation) as exc_info:
        call(*args)
    return exc_info.value.code


# --- Lending ---
def test_create_loan_takes_a_copy(lib, member, book):
    loan = lib.loans.create(member.id, book.id, DUE)

    assert loan.id is not None
    assert loan.status is LoanStatus.ACTIVE
    assert loan.loan_date == TODAY
    assert loan.due_date == DUE
    assert loan.return_date is None
    assert lib.books.get(book.id).available_copies == 1


def test_return_puts_the_copy_back(lib, member, book):
    loan = lib.loans.create(member.id, book.id, DUE)
    returned = lib.loans.return_book(loan.id)

    assert returned.status is LoanStatus.RETURNED
    assert returned.return_date == TODAY
    assert lib.books.get(book.id).available_copies == 2


def test_suspended_member_cannot_borrow(lib, member, book):
    lib.members.suspend(member.id)
    assert _violation_code(lib.loans.create, member.id, book.id, DUE) == "account_suspended"
    assert lib.books.get(book.id).available_copies == 2


def test_unknown_member_or_book_is_not_found(lib, member, book):
    with pytest.raises(NotFoundError):
        lib.loans.create(999, book.id, DUE)
    with pytest.raises(NotFoundError):
        lib.loans.create(member.id, 999, DUE)


def test_suspension_is_checked_before_book_lookup(lib, member):
    lib.members.suspend(member.id)
    assert _violation_code(lib.loans.create, member.id, 999, DUE) == "account_suspended"


def test_quota_ceiling(lib, member, author):
    books = _books(lib, author, 4)
    for b in books[:3]:
        lib.loans.create(member.id, b.id, DUE)

    assert _violation_code(lib.loans.create, member.id, books[3].id, DUE) == "quota_exceeded"
    assert lib.loans.count_active(member.id) == 3
    assert lib.books.get(books[3].id).available_copies == 1


def test_quota_is_configurable(tmp_path, clock):
    small = Library(db_file=str(tmp_path / "small.db"), max_loans_per_member=1, clock=clock)
    reader = small.members.create(Member(email="r@example.com", first_name="R", last_name="Eader"))
    writer = small.authors.create(Author(first_name="Octavia", last_name="Butler"))
    books = _books(small, writer, 2)

    small.loans.create(reader.id, books[0].id, DUE)
    assert _violation_code(small.loans.create, reader.id, books[1].id, DUE) == "quota_exceeded"


def test_no_duplicate_active_loan_until_returned(lib, member, book):
    first = lib.loans.create(member.id, book.id, DUE)
    assert _violation_code(lib.loans.create, member.id, book.id, DUE) == "already_borrowed"

    lib.loans.return_book(first.id)
    second = lib.loans.create(member.id, book.id, DUE)
    assert second.status is LoanStatus.ACTIVE


def test_returning_twice_is_rejected(lib, member, book):
    loan = lib.loans.create(member.id, book.id, DUE)
    lib.loans.return_book(loan.id)

    assert _violation_code(lib.loans.return_book, loan.id) == "already_returned"
    assert lib.books.get(book.id).available_copies == 2


def test_return_missing_loan_is_not_found(lib):
    with pytest.raises(NotFoundError):
        lib.loans.return_book(1)


def test_single_copy_scenario(lib, author, member):
    solo = _books(lib, author, 1)[0]
    other = lib.members.create(Member(email="grace@example.com", first_name="Grace", last_name="Hopper"))

    loan = lib.loans.create(member.id, solo.id, DUE)
    assert lib.books.get(solo.id).available_copies == 0
    assert [b.id for b in lib.books.unavailable()] == [solo.id]

    assert _violation_code(lib.loans.create, other.id, solo.id, DUE) == "no_copies_available"

    lib.loans.return_book(loan.id)
    assert lib.loans.create(other.id, solo.id, DUE).member_id == other.id


def test_availability_checked_before_quota(lib, author, member):
    books = _books(lib, author, 4)
    for b in books[:3]:
        lib.loans.create(member.id, b.id, DUE)
    other = lib.members.create(Member(email="grace@example.com", first_name="Grace", last_name="Hopper"))
    lib.loans.create(other.id, books[3].id, DUE)

    assert _violation_code(lib.loans.create, member.id, books[3].id, DUE) == "no_copies_available"


def test_concurrent_borrowers_share_the_last_copy(lib, author):
    solo = _books(lib, author, 1)[0]
    readers = [
        lib.members.create(Member(email=f"reader{i}@example.com", first_name="Reader", last_name=str(i)))
        for i in range(8)
    ]
    barrier = threading.Barrier(len(readers))
    outcomes = []
    lock = threading.Lock()

    def borrow(member_id):
        barrier.wait()
        try:
            lib.loans.create(member_id, solo.id, DUE)
            result = "ok"
        except BusinessRuleViolation as exc:
            result = exc.code
        with lock:
            outcomes.append(result)

    threads = [threading.Thread(target=borrow, args=(r.id,)) for r in readers]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sorted(outcomes) == ["no_copies_available"] * 7 + ["ok"]
    assert lib.books.get(solo.id).available_copies == 0
    assert len(lib.loans.by_book(solo.id)) == 1


# --- Overdue sweep ---
def test_sweep_promotes_only_past_due_active_loans(lib, clock, author, member):
    early, late = _books(lib, author, 2)
    overdue_loan = lib.loans.create(member.id, early.id, TODAY + timedelta(days=1))
    on_time = lib.loans.create(member.id, late.id, TODAY + timedelta(days=30))

    clock.today = TODAY + timedelta(days=2)
    assert lib.loans.update_overdue_loans() == 1

    assert lib.loans.get(overdue_loan.id).status is LoanStatus.OVERDUE
    assert lib.loans.get(on_time.id).status is LoanStatus.ACTIVE
    assert [loan.id for loan in lib.loans.overdue()] == [overdue_loan.id]


def test_sweep_is_idempotent(lib, clock, member, book):
    lib.loans.create(member.id, book.id, TODAY)
    clock.today = TODAY + timedelta(days=1)

    assert lib.loans.update_overdue_loans() == 1
    assert lib.loans.update_overdue_loans() == 0


def test_loan_due_today_is_not_overdue(lib, member, book):
    lib.loans.create(member.id, book.id, TODAY)
    assert lib.loans.update_overdue_loans() == 0


def test_overdue_then_return_scenario(lib, clock, member, book):
    loan = lib.loans.create(member.id, book.id, TODAY + timedelta(days=7))
    clock.today = TODAY + timedelta(days=10)
    lib.loans.update_overdue_loans()

    # An overdue loan no longer counts against the quota
    assert lib.loans.count_active(member.id) == 0

    returned = lib.loans.return_book(loan.id)
    assert returned.status is LoanStatus.RETURNED
    assert returned.return_date == TODAY + timedelta(days=10)
    assert lib.books.get(book.id).available_copies == 2
    assert lib.loans.overdue() == []
    assert lib.loans.update_overdue_loans() == 0


# --- Queries ---
def test_quota_summary_adds_up(lib, author, member):
    books = _books(lib, author, 3)
    for taken, b in enumerate(books, start=1):
        lib.loans.create(member.id, b.id, DUE)
        quota = lib.loans.quota(member.id)
        assert quota["remaining_quota"] + lib.loans.count_active(member.id) == 3
        assert quota["remaining_quota"] == 3 - taken
        assert quota["max_loans_per_member"] == 3

    assert lib.loans.remaining_quota(member.id) == 0
    assert lib.loans.can_borrow(member.id) is False


def test_remaining_quota_is_never_negative(lib, clock, author, member):
    books = _books(lib, author, 3)
    for b in books:
        lib.loans.create(member.id, b.id, DUE)

    tighter = Library(db_file=lib.db_file, max_loans_per_member=1, clock=clock)
    assert tighter.loans.remaining_quota(member.id) == 0
    assert tighter.loans.quota(member.id)["can_borrow"] is False


def test_member_queries_require_member(lib):
    for query in (lib.loans.by_member, lib.loans.active_by_member, lib.loans.count_active,
                  lib.loans.count_total, lib.loans.quota):
        with pytest.raises(NotFoundError):
            query(404)


def test_by_member_lists_newest_first(lib, clock, author, member):
    first, second = _books(lib, author, 2)
    older = lib.loans.create(member.id, first.id, DUE)
    clock.today = TODAY + timedelta(days=3)
    newer = lib.loans.create(member.id, second.id, DUE)
    lib.loans.return_book(older.id)

    assert [loan.id for loan in lib.loans.by_member(member.id)] == [newer.id, older.id]
    assert [loan.id for loan in lib.loans.active_by_member(member.id)] == [newer.id]
    assert lib.loans.count_total(member.id) == 2
    assert lib.loans.count_active(member.id) == 1


def test_by_book(lib, member, book):
    loan = lib.loans.create(member.id, book.id, DUE)
    assert [loan.id for loan in lib.loans.by_book(book.id)] == [loan.id]
    with pytest.raises(NotFoundError):
        lib.loans.by_book(999)


def test_statistics(lib, clock, member, book):
    lib.loans.create(member.id, book.id, TODAY)
    clock.today = TODAY + timedelta(days=1)
    lib.loans.update_overdue_loans()

    assert lib.get_statistics() == {"available_books": 1, "active_members": 1, "overdue_loans": 1}
