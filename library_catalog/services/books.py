import logging
from typing import List

from ..errors import BusinessRuleViolation, ConflictError, NotFoundError
from ..models import Book, BookPatch
from ..validators import ISBNValidator
from .authors import AuthorManager
from .base import CrudManager
from .categories import CategoryManager

logger = logging.getLogger(__name__)


class BookManager(CrudManager[Book]):
    """Book CRUD keyed by ISBN, category links and availability queries."""

    resource = "Book"
    table = "books"

    def __init__(self, store, authors: AuthorManager, categories: CategoryManager) -> None:
        super().__init__(store)
        self.authors = authors
        self.categories = categories

    @staticmethod
    def _check_copies(book: Book, on_loan: int = 0) -> None:
        """Available copies plus copies out on loan must fit in the total."""
        if book.total_copies < on_loan:
            raise BusinessRuleViolation(
                f"Total copies ({book.total_copies}) cannot be less than the copies on loan ({on_loan})",
                code="invalid_copy_count",
            )
        if book.available_copies < 0:
            raise BusinessRuleViolation("Available copies cannot be negative", code="invalid_copy_count")
        if book.available_copies + on_loan > book.total_copies:
            raise BusinessRuleViolation(
                f"Available copies ({book.available_copies}) plus {on_loan} on loan cannot exceed "
                f"total copies ({book.total_copies})",
                code="invalid_copy_count",
            )

    # ------------------------- CRUD ------------------------- #
    def create(self, book: Book) -> Book:
        book.isbn = ISBNValidator.normalize_isbn(book.isbn)
        with self.store.transaction(immediate=True) as session:
            if session.books.exists(isbn=book.isbn):
                raise ConflictError(f"A book with ISBN '{book.isbn}' already exists")
            self.authors.require(session, book.author_id)
            if book.available_copies is None:
                book.available_copies = book.total_copies
            self._check_copies(book)
            book.id = None
            session.books.save(book)
        logger.info(f"Book created: id={book.id}, isbn={book.isbn}, copies={book.total_copies}")
        return book

    def update(self, book_id: int, patch: BookPatch) -> Book:
        if patch.isbn is not None:
            patch.isbn = ISBNValidator.normalize_isbn(patch.isbn)
        with self.store.transaction(immediate=True) as session:
            book = self.require(session, book_id)
            if patch.isbn is not None and patch.isbn != book.isbn and session.books.exists(isbn=patch.isbn):
                raise ConflictError(f"A book with ISBN '{patch.isbn}' already exists")
            if patch.author_id is not None and patch.author_id != book.author_id:
                self.authors.require(session, patch.author_id)
            on_loan = book.total_copies - book.available_copies
            patch.apply_to(book)
            if patch.total_copies is not None and patch.available_copies is None:
                book.available_copies = book.total_copies - on_loan
            self._check_copies(book, on_loan)
            session.books.save(book)
        return book

    def get_by_isbn(self, isbn: str) -> Book:
        isbn = ISBNValidator.normalize_isbn(isbn)
        with self.store.transaction() as session:
            book = session.books.find_one(isbn=isbn)
        if book is None:
            raise NotFoundError(f"Book with ISBN '{isbn}' not found")
        return book

    def exists(self, isbn: str) -> bool:
        with self.store.transaction() as session:
            return session.books.exists(isbn=ISBNValidator.normalize_isbn(isbn))

    # ------------------------- Searches ------------------------- #
    def search_by_title(self, title: str) -> List[Book]:
        with self.store.transaction() as session:
            return session.books.search("title", title)

    def by_author(self, author_id: int) -> List[Book]:
        with self.store.transaction() as session:
            self.authors.require(session, author_id)
            return session.books.find(author_id=author_id)

    def by_category(self, category_id: int) -> List[Book]:
        with self.store.transaction() as session:
            self.categories.require(session, category_id)
            return session.books.in_category(category_id)

    # ------------------------- Category links ------------------------- #
    def add_category(self, book_id: int, category_id: int) -> Book:
        return self._change_link(book_id, category_id, add=True)

    def remove_category(self, book_id: int, category_id: int) -> Book:
        return self._change_link(book_id, category_id, add=False)

    def _change_link(self, book_id: int, category_id: int, add: bool) -> Book:
        with self.store.transaction(immediate=True) as session:
            book = self.require(session, book_id)
            self.categories.require(session, category_id)
            if add:
                session.book_categories.add(book_id, category_id)
            else:
                session.book_categories.remove(book_id, category_id)
        return book

    def category_ids(self, book_id: int) -> List[int]:
        with self.store.transaction() as session:
            return session.book_categories.category_ids(book_id)

    # ------------------------- Availability ------------------------- #
    def available(self) -> List[Book]:
        with self.store.transaction() as session:
            return session.books.where("available_copies > 0")

    def unavailable(self) -> List[Book]:
        with self.store.transaction() as session:
            return session.books.where("available_copies <= 0")

    def count_available(self) -> int:
        with self.store.transaction() as session:
            return session.books.count_where("available_copies > 0")

    def available_in_category(self, category_name: str) -> List[Book]:
        with self.store.transaction() as session:
            return session.books.available_in_category(category_name)
