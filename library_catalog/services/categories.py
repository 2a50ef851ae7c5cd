import logging

from ..errors import ConflictError, NotFoundError
from ..models import Category, CategoryPatch
from .base import CrudManager

logger = logging.getLogger(__name__)


class CategoryManager(CrudManager[Category]):
    resource = "Category"
    table = "categories"

    def create(self, category: Category) -> Category:
        with self.store.transaction(immediate=True) as session:
            if session.categories.exists(name=category.name):
                raise ConflictError(f"A category named '{category.name}' already exists")
            category.id = None
            session.categories.save(category)
        logger.info(f"Category created: id={category.id}, name={category.name}")
        return category

    def update(self, category_id: int, patch: CategoryPatch) -> Category:
        with self.store.transaction(immediate=True) as session:
            category = self.require(session, category_id)
            if patch.name is not None and patch.name != category.name and session.categories.exists(name=patch.name):
                raise ConflictError(f"A category named '{patch.name}' already exists")
            patch.apply_to(category)
            session.categories.save(category)
        return category

    def get_by_name(self, name: str) -> Category:
        with self.store.transaction() as session:
            category = session.categories.find_one(name=name)
        if category is None:
            raise NotFoundError(f"Category '{name}' not found")
        return category

    def exists(self, name: str) -> bool:
        with self.store.transaction() as session:
            return session.categories.exists(name=name)
