"""Repository-specific exceptions.

Duplicate records are not errors here: insert-if-absent reports them as
``DedupResult.SKIPPED``.
"""


class RepositoryError(Exception):
    """Base exception for repository operations."""


class NotFoundError(RepositoryError):
    """Entity not found in database."""

    def __init__(self, entity_type: str, identifier: str | int):
        self.entity_type = entity_type
        self.identifier = identifier
        super().__init__(f"{entity_type} not found: {identifier}")
