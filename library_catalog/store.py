"""Entity store over the SQLite catalog database.

The managers never write SQL for plain CRUD: they open a transaction on the
:class:`EntityStore` and work through the :class:`Table` objects of the
:class:`Session` it yields. A table offers lookup by id, lookup by fields or by
a predicate, save (insert-or-update) and delete, and hands back flat entity
records from :mod:`library_catalog.models`.
"""
from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from dataclasses import fields
from datetime import date
from enum import Enum
from typing import Generic, Iterable, Iterator, List, Optional, Type, TypeVar

from .config import settings
from .database import get_db_connection
from .errors import ConflictError
from .models import Author, Book, Category, Loan, Member

E = TypeVar("E")


def _to_column(value):
    """Convert a Python value to what SQLite stores for it."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, date):
        return value.isoformat()
    return value


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class Table(Generic[E]):
    """Mapping-style access to one entity table."""

    def __init__(self, conn: sqlite3.Connection, model: Type[E]) -> None:
        self.conn = conn
        self.model = model
        self.name = model.__tablename__
        self.columns = [f.name for f in fields(model)]

    # ------------------------- Query helpers ------------------------- #
    def _check_columns(self, names: Iterable[str]) -> None:
        unknown = set(names) - set(self.columns)
        if unknown:
            raise ValueError(f"Unknown column(s) for {self.name}: {', '.join(sorted(unknown))}")

    def _criteria(self, criteria: dict) -> tuple[str, list]:
        self._check_columns(criteria)
        clauses: List[str] = []
        params: list = []
        for name, value in criteria.items():
            if value is None:
                clauses.append(f"{name} IS NULL")
            else:
                clauses.append(f"{name} = ?")
                params.append(_to_column(value))
        return " AND ".join(clauses) or "1 = 1", params

    def _order(self, order_by: Optional[str]) -> str:
        """Build an ORDER BY clause from ``"title"`` / ``"-loan_date,-id"`` style strings."""
        if not order_by:
            return ""
        parts = []
        for item in order_by.split(","):
            item = item.strip()
            name = item.lstrip("-")
            self._check_columns([name])
            parts.append(f"{name} {'DESC' if item.startswith('-') else 'ASC'}")
        return " ORDER BY " + ", ".join(parts)

    def _fetch(self, sql: str, params: Iterable = ()) -> List[E]:
        rows = self.conn.execute(sql, list(params)).fetchall()
        return [self.model.from_dict(dict(row)) for row in rows]

    # ------------------------- Lookups ------------------------- #
    def get(self, entity_id: int) -> Optional[E]:
        found = self._fetch(f"SELECT * FROM {self.name} WHERE id = ?", (entity_id,))
        return found[0] if found else None

    def all(self, order_by: Optional[str] = "id") -> List[E]:
        return self._fetch(f"SELECT * FROM {self.name}{self._order(order_by)}")

    def find(self, order_by: Optional[str] = "id", **criteria) -> List[E]:
        """Return the records whose columns equal the given values."""
        clause, params = self._criteria(criteria)
        return self._fetch(f"SELECT * FROM {self.name} WHERE {clause}{self._order(order_by)}", params)

    def find_one(self, **criteria) -> Optional[E]:
        found = self.find(**criteria)
        return found[0] if found else None

    def exists(self, **criteria) -> bool:
        return self.count(**criteria) > 0

    def count(self, **criteria) -> int:
        clause, params = self._criteria(criteria)
        return self.conn.execute(f"SELECT COUNT(*) FROM {self.name} WHERE {clause}", params).fetchone()[0]

    def where(self, predicate: str, params: Iterable = (), order_by: Optional[str] = "id") -> List[E]:
        """Return the records matching a SQL predicate over this table's columns."""
        return self._fetch(f"SELECT * FROM {self.name} WHERE {predicate}{self._order(order_by)}", params)

    def count_where(self, predicate: str, params: Iterable = ()) -> int:
        return self.conn.execute(f"SELECT COUNT(*) FROM {self.name} WHERE {predicate}", list(params)).fetchone()[0]

    def search(self, column: str, term: str, order_by: Optional[str] = "id") -> List[E]:
        """Case-insensitive "contains" match on a text column."""
        self._check_columns([column])
        pattern = f"%{_escape_like(term.lower())}%"
        return self.where(f"LOWER({column}) LIKE ? ESCAPE '\\'", (pattern,), order_by)

    # ------------------------- Writes ------------------------- #
    def save(self, entity: E) -> E:
        """Insert the entity when it has no id (or its id is unknown), update it otherwise."""
        row = {name: _to_column(getattr(entity, name)) for name in self.columns if name != "id"}
        try:
            if entity.id is not None:
                assignments = ", ".join(f"{name} = ?" for name in row)
                cursor = self.conn.execute(
                    f"UPDATE {self.name} SET {assignments} WHERE id = ?", [*row.values(), entity.id]
                )
                if cursor.rowcount:
                    return entity
                row["id"] = entity.id
            names = ", ".join(row)
            placeholders = ", ".join("?" for _ in row)
            cursor = self.conn.execute(
                f"INSERT INTO {self.name} ({names}) VALUES ({placeholders})", list(row.values())
            )
        except sqlite3.IntegrityError as exc:
            if "UNIQUE" in str(exc):
                raise ConflictError(f"Duplicate value rejected by {self.name}: {exc}") from exc
            raise
        if entity.id is None:
            entity.id = cursor.lastrowid
        return entity

    def delete(self, entity_id: int) -> bool:
        cursor = self.conn.execute(f"DELETE FROM {self.name} WHERE id = ?", (entity_id,))
        return cursor.rowcount > 0


class BookTable(Table[Book]):
    """Book table with the copy counters used by the loan workflow."""

    def take_copy(self, book_id: int) -> bool:
        """Decrement available copies only if one is left. Returns False otherwise."""
        cursor = self.conn.execute(
            "UPDATE books SET available_copies = available_copies - 1 WHERE id = ? AND available_copies > 0",
            (book_id,),
        )
        return cursor.rowcount == 1

    def put_back_copy(self, book_id: int) -> None:
        self.conn.execute("UPDATE books SET available_copies = available_copies + 1 WHERE id = ?", (book_id,))

    def in_category(self, category_id: int) -> List[Book]:
        return self._fetch(
            "SELECT b.* FROM books b JOIN book_categories bc ON bc.book_id = b.id "
            "WHERE bc.category_id = ? ORDER BY b.id",
            (category_id,),
        )

    def available_in_category(self, category_name: str) -> List[Book]:
        return self._fetch(
            "SELECT DISTINCT b.* FROM books b "
            "JOIN book_categories bc ON bc.book_id = b.id "
            "JOIN categories c ON c.id = bc.category_id "
            "WHERE c.name = ? AND b.available_copies > 0 "
            "ORDER BY b.title ASC",
            (category_name,),
        )


class BookCategoryLinks:
    """Set-membership operations on the book <-> category relation."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn

    def add(self, book_id: int, category_id: int) -> None:
        self.conn.execute(
            "INSERT OR IGNORE INTO book_categories (book_id, category_id) VALUES (?, ?)", (book_id, category_id)
        )

    def remove(self, book_id: int, category_id: int) -> None:
        self.conn.execute(
            "DELETE FROM book_categories WHERE book_id = ? AND category_id = ?", (book_id, category_id)
        )

    def category_ids(self, book_id: int) -> List[int]:
        rows = self.conn.execute(
            "SELECT category_id FROM book_categories WHERE book_id = ? ORDER BY category_id", (book_id,)
        ).fetchall()
        return [row[0] for row in rows]


class Session:
    """The tables of one open transaction."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn
        self.authors: Table[Author] = Table(conn, Author)
        self.categories: Table[Category] = Table(conn, Category)
        self.books = BookTable(conn, Book)
        self.members: Table[Member] = Table(conn, Member)
        self.loans: Table[Loan] = Table(conn, Loan)
        self.book_categories = BookCategoryLinks(conn)


class EntityStore:
    """Opens one connection and one transaction per catalog operation."""

    def __init__(self, db_file: Optional[str] = None, timeout: Optional[float] = None) -> None:
        self.db_file = db_file or settings.data_file
        self.timeout = timeout

    @contextmanager
    def transaction(self, immediate: bool = False) -> Iterator[Session]:
        """Yield a :class:`Session`; commit on success, roll back and re-raise on error.

        ``immediate=True`` takes the database write lock before the first read,
        so check-then-write sequences cannot interleave with another writer.
        """
        conn = get_db_connection(self.db_file, self.timeout)
        try:
            conn.execute("BEGIN IMMEDIATE" if immediate else "BEGIN")
            try:
                yield Session(conn)
            except Exception:
                conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")
        finally:
            conn.close()
