"""HTTP API for the library catalog.

All catalog routes live under ``/api``. Reads are public; POST, PUT and
DELETE require an ``X-API-Key`` header matching ``settings.api_key``.
"""
import logging
from datetime import date
from functools import lru_cache
from typing import List, Optional

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Query, Request, Response, Security
from fastapi.responses import JSONResponse
from fastapi.security import APIKeyHeader

from .config import settings
from .errors import BusinessRuleViolation, CatalogError, ConflictError, NotFoundError
from .library import Library
from .models import Author, Book, Category, Loan, Member
from .schemas import (AuthorCreateModel, AuthorModel, AuthorUpdateModel, BookCreateModel, BookModel,
                      BookUpdateModel, CategoryCreateModel, CategoryModel, CategoryUpdateModel, ErrorModel,
                      HealthModel, LoanModel, MemberCreateModel, MemberModel, MemberUpdateModel, QuotaModel)

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.app_name, version=settings.app_version)
router = APIRouter(prefix="/api")


# --- Dependencies ---
@lru_cache(maxsize=1)
def get_library() -> Library:
    """Process-wide Library bound to ``settings.data_file``."""
    return Library()


api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


def get_api_key(api_key: Optional[str] = Security(api_key_header)):
    """Guard for write operations."""
    if api_key == settings.api_key:
        return api_key
    raise HTTPException(status_code=403, detail="Could not validate credentials")


write_access = [Depends(get_api_key)]
error_responses = {
    400: {"model": ErrorModel, "description": "Business rule violated"},
    404: {"model": ErrorModel, "description": "Resource not found"},
    409: {"model": ErrorModel, "description": "Uniqueness conflict"},
}


# --- Error handling ---
def _status_for(exc: CatalogError) -> int:
    if isinstance(exc, NotFoundError):
        return 404
    if isinstance(exc, ConflictError):
        return 409
    if isinstance(exc, BusinessRuleViolation):
        return 400
    return 500


@app.exception_handler(CatalogError)
async def catalog_error_handler(request: Request, exc: CatalogError):
    status_code = _status_for(exc)
    logger.info(f"{request.method} {request.url.path} -> {status_code}: {exc.message}")
    return JSONResponse(status_code=status_code, content={"error": exc.message, "code": exc.code})


# --- Conversion helpers ---
def _author(author: Author) -> AuthorModel:
    return AuthorModel(**author.to_dict())


def _category(category: Category) -> CategoryModel:
    return CategoryModel(**category.to_dict())


def _book(library: Library, book: Book) -> BookModel:
    return BookModel(**book.to_dict(), category_ids=library.books.category_ids(book.id))


def _member(member: Member) -> MemberModel:
    return MemberModel(**member.to_dict())


def _loan(loan: Loan) -> LoanModel:
    return LoanModel(**loan.to_dict())


# --- Health ---
@app.get("/health", response_model=HealthModel)
def health():
    return HealthModel(status="ok", version=settings.app_version)


# --- Authors ---
@router.get("/authors", response_model=List[AuthorModel])
def list_authors(library: Library = Depends(get_library)):
    return [_author(a) for a in library.authors.list_all()]


@router.get("/authors/search/lastname", response_model=List[AuthorModel])
def search_authors_by_last_name(last_name: str = Query(..., alias="lastName"),
                                library: Library = Depends(get_library)):
    return [_author(a) for a in library.authors.search_by_last_name(last_name)]


@router.get("/authors/search/nationality", response_model=List[AuthorModel])
def search_authors_by_nationality(nationality: str, library: Library = Depends(get_library)):
    return [_author(a) for a in library.authors.search_by_nationality(nationality)]


@router.get("/authors/{author_id}", response_model=AuthorModel, responses=error_responses)
def get_author(author_id: int, library: Library = Depends(get_library)):
    return _author(library.authors.get(author_id))


@router.post("/authors", response_model=AuthorModel, status_code=201, dependencies=write_access,
             responses=error_responses)
def create_author(payload: AuthorCreateModel, library: Library = Depends(get_library)):
    return _author(library.authors.create(payload.to_entity()))


@router.put("/authors/{author_id}", response_model=AuthorModel, dependencies=write_access,
            responses=error_responses)
def update_author(author_id: int, payload: AuthorUpdateModel, library: Library = Depends(get_library)):
    return _author(library.authors.update(author_id, payload.to_patch()))


@router.delete("/authors/{author_id}", status_code=204, dependencies=write_access, responses=error_responses)
def delete_author(author_id: int, library: Library = Depends(get_library)):
    library.authors.delete(author_id)
    return Response(status_code=204)


# --- Categories ---
@router.get("/categories", response_model=List[CategoryModel])
def list_categories(library: Library = Depends(get_library)):
    return [_category(c) for c in library.categories.list_all()]


@router.get("/categories/search/name", response_model=CategoryModel, responses=error_responses)
def get_category_by_name(name: str, library: Library = Depends(get_library)):
    return _category(library.categories.get_by_name(name))


@router.get("/categories/{category_id}", response_model=CategoryModel, responses=error_responses)
def get_category(category_id: int, library: Library = Depends(get_library)):
    return _category(library.categories.get(category_id))


@router.post("/categories", response_model=CategoryModel, status_code=201, dependencies=write_access,
             responses=error_responses)
def create_category(payload: CategoryCreateModel, library: Library = Depends(get_library)):
    return _category(library.categories.create(payload.to_entity()))


@router.put("/categories/{category_id}", response_model=CategoryModel, dependencies=write_access,
            responses=error_responses)
def update_category(category_id: int, payload: CategoryUpdateModel, library: Library = Depends(get_library)):
    return _category(library.categories.update(category_id, payload.to_patch()))


@router.delete("/categories/{category_id}", status_code=204, dependencies=write_access,
               responses=error_responses)
def delete_category(category_id: int, library: Library = Depends(get_library)):
    library.categories.delete(category_id)
    return Response(status_code=204)


# --- Books ---
@router.get("/books", response_model=List[BookModel])
def list_books(library: Library = Depends(get_library)):
    return [_book(library, b) for b in library.books.list_all()]


@router.get("/books/available", response_model=List[BookModel])
def list_available_books(library: Library = Depends(get_library)):
    return [_book(library, b) for b in library.books.available()]


@router.get("/books/unavailable", response_model=List[BookModel])
def list_unavailable_books(library: Library = Depends(get_library)):
    return [_book(library, b) for b in library.books.unavailable()]


@router.get("/books/available/category", response_model=List[BookModel])
def list_available_books_in_category(category_name: str = Query(..., alias="categoryName"),
                                     library: Library = Depends(get_library)):
    return [_book(library, b) for b in library.books.available_in_category(category_name)]


@router.get("/books/stats/available-count", response_model=int)
def count_available_books(library: Library = Depends(get_library)):
    return library.books.count_available()


@router.get("/books/search/isbn", response_model=BookModel, responses=error_responses)
def get_book_by_isbn(isbn: str, library: Library = Depends(get_library)):
    return _book(library, library.books.get_by_isbn(isbn))


@router.get("/books/search/title", response_model=List[BookModel])
def search_books_by_title(title: str, library: Library = Depends(get_library)):
    return [_book(library, b) for b in library.books.search_by_title(title)]


@router.get("/books/author/{author_id}", response_model=List[BookModel], responses=error_responses)
def list_books_by_author(author_id: int, library: Library = Depends(get_library)):
    return [_book(library, b) for b in library.books.by_author(author_id)]


@router.get("/books/category/{category_id}", response_model=List[BookModel], responses=error_responses)
def list_books_by_category(category_id: int, library: Library = Depends(get_library)):
    return [_book(library, b) for b in library.books.by_category(category_id)]


@router.get("/books/{book_id}", response_model=BookModel, responses=error_responses)
def get_book(book_id: int, library: Library = Depends(get_library)):
    return _book(library, library.books.get(book_id))


@router.post("/books", response_model=BookModel, status_code=201, dependencies=write_access,
             responses=error_responses)
def create_book(payload: BookCreateModel, library: Library = Depends(get_library)):
    return _book(library, library.books.create(payload.to_entity()))


@router.put("/books/{book_id}", response_model=BookModel, dependencies=write_access, responses=error_responses)
def update_book(book_id: int, payload: BookUpdateModel, library: Library = Depends(get_library)):
    return _book(library, library.books.update(book_id, payload.to_patch()))


@router.delete("/books/{book_id}", status_code=204, dependencies=write_access, responses=error_responses)
def delete_book(book_id: int, library: Library = Depends(get_library)):
    library.books.delete(book_id)
    return Response(status_code=204)


@router.post("/books/{book_id}/category/{category_id}", response_model=BookModel, dependencies=write_access,
             responses=error_responses)
def add_category_to_book(book_id: int, category_id: int, library: Library = Depends(get_library)):
    return _book(library, library.books.add_category(book_id, category_id))


@router.delete("/books/{book_id}/category/{category_id}", response_model=BookModel, dependencies=write_access,
               responses=error_responses)
def remove_category_from_book(book_id: int, category_id: int, library: Library = Depends(get_library)):
    return _book(library, library.books.remove_category(book_id, category_id))


# --- Members ---
@router.get("/members", response_model=List[MemberModel])
def list_members(library: Library = Depends(get_library)):
    return [_member(m) for m in library.members.list_all()]


@router.get("/members/search/email", response_model=MemberModel, responses=error_responses)
def get_member_by_email(email: str, library: Library = Depends(get_library)):
    return _member(library.members.get_by_email(email))


@router.get("/members/status/active", response_model=List[MemberModel])
def list_active_members(library: Library = Depends(get_library)):
    return [_member(m) for m in library.members.list_active()]


@router.get("/members/stats/active-count", response_model=int)
def count_active_members(library: Library = Depends(get_library)):
    return library.members.count_active()


@router.get("/members/{member_id}", response_model=MemberModel, responses=error_responses)
def get_member(member_id: int, library: Library = Depends(get_library)):
    return _member(library.members.get(member_id))


@router.post("/members", response_model=MemberModel, status_code=201, dependencies=write_access,
             responses=error_responses)
def create_member(payload: MemberCreateModel, library: Library = Depends(get_library)):
    return _member(library.members.create(payload.to_entity()))


@router.put("/members/{member_id}", response_model=MemberModel, dependencies=write_access,
            responses=error_responses)
def update_member(member_id: int, payload: MemberUpdateModel, library: Library = Depends(get_library)):
    return _member(library.members.update(member_id, payload.to_patch()))


@router.delete("/members/{member_id}", status_code=204, dependencies=write_access, responses=error_responses)
def delete_member(member_id: int, library: Library = Depends(get_library)):
    library.members.delete(member_id)
    return Response(status_code=204)


@router.post("/members/{member_id}/suspend", response_model=MemberModel, dependencies=write_access,
             responses=error_responses)
def suspend_member(member_id: int, library: Library = Depends(get_library)):
    return _member(library.members.suspend(member_id))


@router.post("/members/{member_id}/activate", response_model=MemberModel, dependencies=write_access,
             responses=error_responses)
def activate_member(member_id: int, library: Library = Depends(get_library)):
    return _member(library.members.activate(member_id))


# --- Loans ---
@router.get("/loans", response_model=List[LoanModel])
def list_loans(library: Library = Depends(get_library)):
    return [_loan(loan) for loan in library.loans.list_all()]


@router.get("/loans/overdue", response_model=List[LoanModel])
def list_overdue_loans(library: Library = Depends(get_library)):
    return [_loan(loan) for loan in library.loans.overdue()]


@router.get("/loans/member/{member_id}", response_model=List[LoanModel], responses=error_responses)
def list_loans_by_member(member_id: int, library: Library = Depends(get_library)):
    return [_loan(loan) for loan in library.loans.by_member(member_id)]


@router.get("/loans/member/{member_id}/active", response_model=List[LoanModel], responses=error_responses)
def list_active_loans_by_member(member_id: int, library: Library = Depends(get_library)):
    return [_loan(loan) for loan in library.loans.active_by_member(member_id)]


@router.get("/loans/book/{book_id}", response_model=List[LoanModel], responses=error_responses)
def list_loans_by_book(book_id: int, library: Library = Depends(get_library)):
    return [_loan(loan) for loan in library.loans.by_book(book_id)]


@router.get("/loans/stats/member/{member_id}/active-count", response_model=int, responses=error_responses)
def count_active_loans(member_id: int, library: Library = Depends(get_library)):
    return library.loans.count_active(member_id)


@router.get("/loans/stats/member/{member_id}/total-count", response_model=int, responses=error_responses)
def count_total_loans(member_id: int, library: Library = Depends(get_library)):
    return library.loans.count_total(member_id)


@router.get("/loans/quota/member/{member_id}", response_model=QuotaModel, responses=error_responses)
def get_borrow_quota(member_id: int, library: Library = Depends(get_library)):
    return QuotaModel(**library.loans.quota(member_id))


@router.get("/loans/{loan_id}", response_model=LoanModel, responses=error_responses)
def get_loan(loan_id: int, library: Library = Depends(get_library)):
    return _loan(library.loans.get(loan_id))


@router.post("/loans", response_model=LoanModel, status_code=201, dependencies=write_access,
             responses=error_responses)
def create_loan(member_id: int = Query(..., alias="memberId"),
                book_id: int = Query(..., alias="bookId"),
                due_date: date = Query(..., alias="dueDate"),
                library: Library = Depends(get_library)):
    """Lend a book. Parameters come from the query string, not the body."""
    return _loan(library.loans.create(member_id, book_id, due_date))


@router.post("/loans/{loan_id}/return", response_model=LoanModel, dependencies=write_access,
             responses=error_responses)
def return_loan(loan_id: int, library: Library = Depends(get_library)):
    return _loan(library.loans.return_book(loan_id))


app.include_router(router)
