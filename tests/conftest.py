from datetime import date

import pytest
from fastapi.testclient import TestClient

from library_catalog.api import app, get_library
from library_catalog.config import settings
from library_catalog.library import Library
from library_catalog.models import Author, Book, Category, Member

TODAY = date(2024, 3, 1)


class FakeClock:
    """Callable clock whose date tests can move forward."""

    def __init__(self, today: date) -> None:
        self.today = today

    def __call__(self) -> date:
        return self.today


@pytest.fixture
def clock():
    return FakeClock(TODAY)


@pytest.fixture
def lib(tmp_path, request, clock):
    # A fresh database file for every test
    db_file = str(tmp_path / f"test_{request.node.name}.db")
    return Library(db_file=db_file, max_loans_per_member=3, clock=clock)


@pytest.fixture
def author(lib):
    return lib.authors.create(Author(first_name="Ursula", last_name="Le Guin", nationality="American",
                                     birth_year=1929))


@pytest.fixture
def book(lib, author):
    return lib.books.create(Book(isbn="9780441478125", title="The Left Hand of Darkness",
                                 author_id=author.id, total_copies=2, publication_year=1969))


@pytest.fixture
def category(lib):
    return lib.categories.create(Category(name="Science Fiction", description="Speculative fiction"))


@pytest.fixture
def member(lib):
    return lib.members.create(Member(email="ada@example.com", first_name="Ada", last_name="Lovelace"))


@pytest.fixture
def client(lib):
    app.dependency_overrides[get_library] = lambda: lib
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def headers():
    return {"X-API-Key": settings.api_key}
