import logging
from typing import Generic, List, TypeVar

from ..errors import NotFoundError
from ..store import EntityStore, Session, Table

logger = logging.getLogger(__name__)

E = TypeVar("E")


class BaseManager(Generic[E]):
    """Shared list and get operations for one entity table.

    Subclasses set ``resource`` (used in error messages) and ``table`` (the
    :class:`~library_catalog.store.Session` attribute holding their records).
    """

    resource = "Entity"
    table = ""

    def __init__(self, store: EntityStore) -> None:
        self.store = store

    def _table(self, session: Session) -> Table[E]:
        return getattr(session, self.table)

    def require(self, session: Session, entity_id: int) -> E:
        """Fetch a record inside an open transaction or raise NotFoundError."""
        entity = self._table(session).get(entity_id)
        if entity is None:
            raise NotFoundError.for_id(self.resource, entity_id)
        return entity

    def list_all(self) -> List[E]:
        with self.store.transaction() as session:
            return self._table(session).all()

    def get(self, entity_id: int) -> E:
        with self.store.transaction() as session:
            return self.require(session, entity_id)


class CrudManager(BaseManager[E]):
    """Adds delete-by-id for entities the catalog lets callers remove."""

    def delete(self, entity_id: int) -> None:
        with self.store.transaction(immediate=True) as session:
            self.require(session, entity_id)
            self._table(session).delete(entity_id)
        logger.info(f"{self.resource} {entity_id} deleted")
