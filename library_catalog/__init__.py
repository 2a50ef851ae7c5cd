"""Library Catalog - Core Application Package

This package contains the catalog backend modules including:
- API endpoints (api.py)
- CLI interface (main.py)
- Catalog managers and the loan rule engine (services/)
- Entity store and database layer (store.py, database.py)
- Domain models and request/response schemas (models.py, schemas.py)
"""
