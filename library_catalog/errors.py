"""Error taxonomy shared by the managers, the store and the API layer."""


class CatalogError(Exception):
    """Base class for failures surfaced to the caller of a catalog operation."""

    default_code = "catalog_error"

    def __init__(self, message: str, code: str | None = None) -> None:
        self.message = message
        self.code = code or self.default_code
        super().__init__(message)


class NotFoundError(CatalogError):
    """A referenced author, book, category, member or loan does not exist."""

    default_code = "not_found"

    @classmethod
    def for_id(cls, resource: str, identifier) -> "NotFoundError":
        return cls(f"{resource} with id {identifier} not found")


class ConflictError(CatalogError):
    """A create or update would violate a uniqueness rule."""

    default_code = "conflict"


class BusinessRuleViolation(CatalogError):
    """A lending or inventory rule rejected the operation."""

    default_code = "business_rule_violation"
