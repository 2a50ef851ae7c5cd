"""Request and response models for the HTTP API.

JSON payloads use camelCase keys (``firstName``, ``availableCopies``...);
snake_case keys are accepted on input too.
"""
from datetime import date
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .models import (Author, AuthorPatch, Book, BookPatch, Category, CategoryPatch, LoanStatus, Member,
                     MemberPatch)
from .validators import EmailValidator, ISBNValidator, TextValidator


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Authors ---
class AuthorModel(CamelModel):
    id: int
    first_name: str
    last_name: str
    nationality: Optional[str] = None
    birth_year: Optional[int] = None


class AuthorCreateModel(CamelModel):
    first_name: str
    last_name: str
    nationality: Optional[str] = None
    birth_year: Optional[int] = Field(default=None, ge=1000, description="Year of birth, at least 1000")

    @field_validator("first_name", "last_name")
    @classmethod
    def _not_blank(cls, value, info):
        return TextValidator.require(value, info.field_name)

    def to_entity(self) -> Author:
        return Author(**self.model_dump())


class AuthorUpdateModel(CamelModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    nationality: Optional[str] = None
    birth_year: Optional[int] = Field(default=None, ge=1000)

    @field_validator("first_name", "last_name")
    @classmethod
    def _not_blank(cls, value, info):
        return TextValidator.require(value, info.field_name)

    def to_patch(self) -> AuthorPatch:
        return AuthorPatch(**self.model_dump(exclude_none=True))


# --- Categories ---
class CategoryModel(CamelModel):
    id: int
    name: str
    description: Optional[str] = None


class CategoryCreateModel(CamelModel):
    name: str
    description: Optional[str] = Field(default=None, max_length=500)

    @field_validator("name")
    @classmethod
    def _not_blank(cls, value, info):
        return TextValidator.require(value, info.field_name)

    def to_entity(self) -> Category:
        return Category(**self.model_dump())


class CategoryUpdateModel(CamelModel):
    name: Optional[str] = None
    description: Optional[str] = Field(default=None, max_length=500)

    @field_validator("name")
    @classmethod
    def _not_blank(cls, value, info):
        return TextValidator.require(value, info.field_name)

    def to_patch(self) -> CategoryPatch:
        return CategoryPatch(**self.model_dump(exclude_none=True))


# --- Books ---
class BookModel(CamelModel):
    id: int
    isbn: str
    title: str
    author_id: int
    publication_year: Optional[int] = None
    total_copies: int
    available_copies: int
    category_ids: List[int] = Field(default_factory=list)


class BookCreateModel(CamelModel):
    isbn: str
    title: str
    author_id: int
    publication_year: Optional[int] = Field(default=None, ge=1000)
    total_copies: int = Field(ge=1)
    available_copies: Optional[int] = Field(default=None, ge=0, description="Defaults to totalCopies")

    @field_validator("isbn")
    @classmethod
    def _normalize_isbn(cls, value):
        return TextValidator.require(ISBNValidator.normalize_isbn(value), "isbn")

    @field_validator("title")
    @classmethod
    def _not_blank(cls, value, info):
        return TextValidator.require(value, info.field_name)

    def to_entity(self) -> Book:
        return Book(**self.model_dump())


class BookUpdateModel(CamelModel):
    isbn: Optional[str] = None
    title: Optional[str] = None
    author_id: Optional[int] = None
    publication_year: Optional[int] = Field(default=None, ge=1000)
    total_copies: Optional[int] = Field(default=None, ge=1)
    available_copies: Optional[int] = Field(default=None, ge=0)

    @field_validator("isbn")
    @classmethod
    def _normalize_isbn(cls, value):
        if value is None:
            return None
        return TextValidator.require(ISBNValidator.normalize_isbn(value), "isbn")

    @field_validator("title")
    @classmethod
    def _not_blank(cls, value, info):
        return TextValidator.require(value, info.field_name)

    def to_patch(self) -> BookPatch:
        return BookPatch(**self.model_dump(exclude_none=True))


# --- Members ---
class MemberModel(CamelModel):
    id: int
    email: str
    first_name: str
    last_name: str
    membership_date: date
    active: bool


class MemberCreateModel(CamelModel):
    email: str
    first_name: str
    last_name: str
    membership_date: Optional[date] = Field(default=None, description="Defaults to today")
    active: bool = True

    @field_validator("email")
    @classmethod
    def _valid_email(cls, value):
        return EmailValidator.normalize(value)

    @field_validator("first_name", "last_name")
    @classmethod
    def _not_blank(cls, value, info):
        return TextValidator.require(value, info.field_name)

    def to_entity(self) -> Member:
        return Member(**self.model_dump())


class MemberUpdateModel(CamelModel):
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    membership_date: Optional[date] = None
    active: Optional[bool] = None

    @field_validator("email")
    @classmethod
    def _valid_email(cls, value):
        return EmailValidator.normalize(value)

    @field_validator("first_name", "last_name")
    @classmethod
    def _not_blank(cls, value, info):
        return TextValidator.require(value, info.field_name)

    def to_patch(self) -> MemberPatch:
        return MemberPatch(**self.model_dump(exclude_none=True))


# --- Loans ---
class LoanModel(CamelModel):
    id: int
    member_id: int
    book_id: int
    loan_date: date
    due_date: date
    return_date: Optional[date] = None
    status: LoanStatus


class QuotaModel(CamelModel):
    member_id: int
    remaining_quota: int
    can_borrow: bool
    max_loans_per_member: int


# --- Misc ---
class HealthModel(BaseModel):
    status: str
    version: str


class ErrorModel(BaseModel):
    error: str
    code: str
