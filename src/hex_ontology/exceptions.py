"""Errors raised by edit operations and project loading."""


class OntologyError(Exception):
    """Base class for structural edit errors."""


class NotFoundError(OntologyError):
    """Raised when an identifier does not name an existing item."""

    def __init__(self, kind: str, item_id: str):
        self.kind = kind
        self.item_id = item_id
        super().__init__(f"{kind} not found: {item_id}")


class InvalidReferenceError(OntologyError):
    """Raised when an edit would create a dangling or role-incompatible link."""


class ProjectFormatError(Exception):
    """Raised when a project file cannot be parsed."""
