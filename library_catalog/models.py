"""Flat entity records and patch structures for the catalog.

Entities reference each other by id only (``Book.author_id``,
``Loan.member_id``...). Relations are resolved through the store, never via
in-memory back-references.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from datetime import date
from enum import Enum
from typing import Optional


def _as_date(value) -> Optional[date]:
    if value is None or isinstance(value, date):
        return value
    return date.fromisoformat(str(value))


class LoanStatus(str, Enum):
    ACTIVE = "ACTIVE"
    RETURNED = "RETURNED"
    OVERDUE = "OVERDUE"


@dataclass
class Author:
    first_name: str
    last_name: str
    nationality: Optional[str] = None
    birth_year: Optional[int] = None
    id: Optional[int] = None

    __tablename__ = "authors"

    def __str__(self) -> str:  # pragma: no cover - string formatting trivial
        return f"{self.first_name} {self.last_name}"

    def to_dict(self) -> dict:
        return asdict(self)

    @staticmethod
    def from_dict(data: dict) -> "Author":
        return Author(
            id=data.get("id"),
            first_name=data["first_name"],
            last_name=data["last_name"],
            nationality=data.get("nationality"),
            birth_year=data.get("birth_year"),
        )


@dataclass
class Category:
    name: str
    description: Optional[str] = None
    id: Optional[int] = None

    __tablename__ = "categories"

    def to_dict(self) -> dict:
        return asdict(self)

    @staticmethod
    def from_dict(data: dict) -> "Category":
        return Category(id=data.get("id"), name=data["name"], description=data.get("description"))


@dataclass
class Book:
    isbn: str
    title: str
    author_id: int
    total_copies: int
    available_copies: Optional[int] = None
    publication_year: Optional[int] = None
    id: Optional[int] = None

    __tablename__ = "books"

    def __str__(self) -> str:  # pragma: no cover - string formatting trivial
        return f"{self.title} (ISBN: {self.isbn})"

    @property
    def is_available(self) -> bool:
        return (self.available_copies or 0) > 0

    def to_dict(self) -> dict:
        return asdict(self)

    @staticmethod
    def from_dict(data: dict) -> "Book":
        return Book(
            id=data.get("id"),
            isbn=data["isbn"],
            title=data["title"],
            author_id=data["author_id"],
            total_copies=data["total_copies"],
            available_copies=data.get("available_copies"),
            publication_year=data.get("publication_year"),
        )


@dataclass
class Member:
    email: str
    first_name: str
    last_name: str
    membership_date: Optional[date] = None
    active: bool = True
    id: Optional[int] = None

    __tablename__ = "members"

    def to_dict(self) -> dict:
        return asdict(self)

    @staticmethod
    def from_dict(data: dict) -> "Member":
        return Member(
            id=data.get("id"),
            email=data["email"],
            first_name=data["first_name"],
            last_name=data["last_name"],
            membership_date=_as_date(data.get("membership_date")),
            active=bool(data.get("active", True)),
        )


@dataclass
class Loan:
    member_id: int
    book_id: int
    loan_date: date
    due_date: date
    return_date: Optional[date] = None
    status: LoanStatus = LoanStatus.ACTIVE
    id: Optional[int] = None

    __tablename__ = "loans"

    def is_overdue(self, today: date) -> bool:
        """A loan is overdue when it has not been returned and its due date has passed."""
        return self.return_date is None and today > self.due_date

    def to_dict(self) -> dict:
        return asdict(self)

    @staticmethod
    def from_dict(data: dict) -> "Loan":
        return Loan(
            id=data.get("id"),
            member_id=data["member_id"],
            book_id=data["book_id"],
            loan_date=_as_date(data["loan_date"]),
            due_date=_as_date(data["due_date"]),
            return_date=_as_date(data.get("return_date")),
            status=LoanStatus(data.get("status", LoanStatus.ACTIVE)),
        )


# --- Patches ---
# A patch carries optional values: a field left as None keeps the stored
# value, any other value overwrites it.

class Patch:
    def changes(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name) is not None}

    def apply_to(self, entity):
        for name, value in self.changes().items():
            setattr(entity, name, value)
        return entity


@dataclass
class AuthorPatch(Patch):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    nationality: Optional[str] = None
    birth_year: Optional[int] = None


@dataclass
class CategoryPatch(Patch):
    name: Optional[str] = None
    description: Optional[str] = None


@dataclass
class BookPatch(Patch):
    isbn: Optional[str] = None
    title: Optional[str] = None
    author_id: Optional[int] = None
    publication_year: Optional[int] = None
    total_copies: Optional[int] = None
    available_copies: Optional[int] = None


@dataclass
class MemberPatch(Patch):
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    membership_date: Optional[date] = None
    active: Optional[bool] = None
