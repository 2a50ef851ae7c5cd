"""Catalog managers.

- authors: author CRUD and name searches
- categories: category CRUD
- members: member CRUD, suspension and activation
- books: book CRUD, category links and availability queries
- loans: the loan rule engine and its query surface
"""
from .authors import AuthorManager
from .books import BookManager
from .categories import CategoryManager
from .loans import LoanManager
from .members import MemberManager

__all__ = ["AuthorManager", "BookManager", "CategoryManager", "LoanManager", "MemberManager"]
