"""Exceptions raised by the migration pipeline."""

from typing import Any, Dict, List, Optional


class MigrationError(Exception):
    """Base class for errors that abort a migration run."""
    pass


class IdMismatchError(MigrationError):
    """The remote service allocated an issue number other than the ticket id."""

    def __init__(self, ticket_id: int, issue_id: Optional[int]):
        self.ticket_id = ticket_id
        self.issue_id = issue_id
        super().__init__(
            f"Ticket #{ticket_id} was imported as issue #{issue_id}; "
            f"remote issue numbering has drifted"
        )


class ImportJobFailedError(MigrationError):
    """The remote import job for a ticket finished with status 'failed'."""

    def __init__(self, ticket_id: int, errors: Optional[List[Dict[str, Any]]] = None):
        self.ticket_id = ticket_id
        self.errors = errors or []
        super().__init__(f"Import of ticket #{ticket_id} failed: {self.errors}")


__all__ = ['MigrationError', 'IdMismatchError', 'ImportJobFailedError']
