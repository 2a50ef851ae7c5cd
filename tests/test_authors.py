import pytest

from library_catalog.errors import ConflictError, NotFoundError
from library_catalog.models import Author, AuthorPatch, Book


def test_create_and_get_author(lib, author):
    loaded = lib.authors.get(author.id)
    assert loaded.first_name == "Ursula"
    assert loaded.last_name == "Le Guin"
    assert loaded.birth_year == 1929


def test_duplicate_name_pair_conflicts(lib, author):
    with pytest.raises(ConflictError):
        lib.authors.create(Author(first_name="Ursula", last_name="Le Guin"))


def test_same_last_name_different_first_name_is_allowed(lib, author):
    other = lib.authors.create(Author(first_name="Charles", last_name="Le Guin"))
    assert other.id != author.id
    assert len(lib.authors.search_by_last_name("Le Guin")) == 2


def test_get_missing_author_raises_not_found(lib):
    with pytest.raises(NotFoundError) as exc_info:
        lib.authors.get(99)
    assert exc_info.value.message == "Author with id 99 not found"
    assert exc_info.value.code == "not_found"


def test_update_overwrites_present_fields_only(lib, author):
    updated = lib.authors.update(author.id, AuthorPatch(nationality="US"))
    assert updated.nationality == "US"
    assert updated.first_name == "Ursula"
    assert updated.birth_year == 1929
    assert lib.authors.get(author.id).nationality == "US"


def test_update_to_existing_name_pair_conflicts(lib, author):
    other = lib.authors.create(Author(first_name="Jorge", last_name="Borges"))
    with pytest.raises(ConflictError):
        lib.authors.update(other.id, AuthorPatch(first_name="Ursula", last_name="Le Guin"))


def test_update_missing_author_raises_not_found(lib):
    with pytest.raises(NotFoundError):
        lib.authors.update(5, AuthorPatch(nationality="US"))


def test_search_by_nationality_is_exact(lib, author):
    lib.authors.create(Author(first_name="Jorge", last_name="Borges", nationality="Argentine"))
    assert [a.last_name for a in lib.authors.search_by_nationality("Argentine")] == ["Borges"]
    assert lib.authors.search_by_nationality("argentine") == []


def test_exists(lib, author):
    assert lib.authors.exists("Ursula", "Le Guin") is True
    assert lib.authors.exists("Ursula", "Major") is False


def test_delete_author_removes_their_books(lib, author, book):
    lib.authors.delete(author.id)
    assert lib.authors.list_all() == []
    with pytest.raises(NotFoundError):
        lib.books.get(book.id)


def test_delete_missing_author_raises_not_found(lib):
    with pytest.raises(NotFoundError):
        lib.authors.delete(1)


def test_books_keep_author_reference_by_id(lib, author):
    created = lib.books.create(Book(isbn="9780060512750", title="The Dispossessed", author_id=author.id,
                                    total_copies=1))
    assert [b.id for b in lib.books.by_author(author.id)] == [created.id]
