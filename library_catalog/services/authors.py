import logging
from typing import List

from ..errors import ConflictError
from ..models import Author, AuthorPatch
from .base import CrudManager

logger = logging.getLogger(__name__)


class AuthorManager(CrudManager[Author]):
    """Author CRUD. The (first name, last name) pair is checked for uniqueness here, not in storage."""

    resource = "Author"
    table = "authors"

    def create(self, author: Author) -> Author:
        with self.store.transaction(immediate=True) as session:
            if session.authors.exists(first_name=author.first_name, last_name=author.last_name):
                raise ConflictError(f"An author named {author.first_name} {author.last_name} already exists")
            author.id = None
            session.authors.save(author)
        logger.info(f"Author created: id={author.id}, name={author}")
        return author

    def update(self, author_id: int, patch: AuthorPatch) -> Author:
        with self.store.transaction(immediate=True) as session:
            author = self.require(session, author_id)
            first_name = patch.first_name or author.first_name
            last_name = patch.last_name or author.last_name
            if (first_name, last_name) != (author.first_name, author.last_name):
                clashes = session.authors.find(first_name=first_name, last_name=last_name)
                if any(other.id != author_id for other in clashes):
                    raise ConflictError(f"An author named {first_name} {last_name} already exists")
            patch.apply_to(author)
            session.authors.save(author)
        return author

    def search_by_last_name(self, last_name: str) -> List[Author]:
        with self.store.transaction() as session:
            return session.authors.find(last_name=last_name)

    def search_by_nationality(self, nationality: str) -> List[Author]:
        with self.store.transaction() as session:
            return session.authors.find(nationality=nationality)

    def exists(self, first_name: str, last_name: str) -> bool:
        with self.store.transaction() as session:
            return session.authors.exists(first_name=first_name, last_name=last_name)
