"""
Read-only access to a Trac database.

Exposes the ticket, ticket_change, attachment and session_attribute tables as
model objects. Any database supported by SQLAlchemy works (Trac ships with
SQLite, PostgreSQL and MySQL backends).
"""

import logging
from typing import Any, Dict, Iterator, List, Optional, Union

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine

from .models import AttachmentEvent, ChangeEvent, Ticket

logger = logging.getLogger(__name__)


class TracStore:
    """Read-only table accessors over a Trac database."""

    TICKETS_QUERY = text(
        "SELECT id, type, time, changetime, component, severity, priority, owner, "
        "reporter, version, milestone, status, resolution, summary, description, keywords "
        "FROM ticket WHERE id >= :min_id ORDER BY id"
    )
    CHANGES_QUERY = text(
        "SELECT ticket, time, author, field, oldvalue, newvalue "
        "FROM ticket_change WHERE ticket = :ticket_id ORDER BY time"
    )
    ATTACHMENTS_QUERY = text(
        "SELECT id, filename, size, time, description, author "
        "FROM attachment WHERE type = 'ticket' AND id = :ticket_id"
    )
    SESSION_ATTRIBUTE_QUERY = text(
        "SELECT value FROM session_attribute "
        "WHERE sid = :sid AND name = :name AND authenticated = 1"
    )

    def __init__(self, database: Union[str, Engine]):
        """
        Initialize the store.

        Args:
            database: SQLAlchemy database URL or an existing Engine
        """
        if isinstance(database, Engine):
            self.engine = database
        else:
            self.engine = create_engine(database)
        logger.debug(f"Initialized Trac store on {self.engine.url!r}")

    def tickets(self, min_id: int = 1) -> Iterator[Ticket]:
        """Yield tickets with id >= min_id in ascending id order."""
        with self.engine.connect() as connection:
            rows = connection.execute(self.TICKETS_QUERY, {'min_id': min_id}).mappings().all()

        for row in rows:
            yield self._ticket_from_row(row)

    def changes(self, ticket_id: int) -> List[ChangeEvent]:
        """Return the change events of one ticket in source order."""
        with self.engine.connect() as connection:
            rows = connection.execute(self.CHANGES_QUERY, {'ticket_id': ticket_id}).mappings().all()

        return [
            ChangeEvent(
                ticket_id=int(row['ticket']),
                field=row['field'],
                oldvalue=row['oldvalue'],
                newvalue=row['newvalue'],
                author=row['author'] or '',
                time=int(row['time'])
            )
            for row in rows
        ]

    def attachments(self, ticket_id: int) -> List[AttachmentEvent]:
        """Return the attachments of one ticket in source order."""
        # attachment.id is a text column shared with wiki pages
        with self.engine.connect() as connection:
            rows = connection.execute(
                self.ATTACHMENTS_QUERY, {'ticket_id': str(ticket_id)}
            ).mappings().all()

        return [
            AttachmentEvent(
                ticket_id=ticket_id,
                filename=row['filename'],
                description=row['description'] or '',
                size=int(row['size'] or 0),
                author=row['author'] or '',
                time=int(row['time'])
            )
            for row in rows
        ]

    def get_session_attribute(self, sid: str, name: str) -> Optional[str]:
        """Return one attribute of an authenticated user session, if set."""
        with self.engine.connect() as connection:
            value = connection.execute(
                self.SESSION_ATTRIBUTE_QUERY, {'sid': sid, 'name': name}
            ).scalar()
        return value or None

    @staticmethod
    def _ticket_from_row(row: Dict[str, Any]) -> Ticket:
        return Ticket(
            id=int(row['id']),
            summary=row['summary'] or '',
            reporter=row['reporter'] or '',
            status=row['status'] or '',
            time=int(row['time']),
            changetime=int(row['changetime']) if row['changetime'] else None,
            description=row['description'] or '',
            resolution=row['resolution'] or None,
            priority=row['priority'] or None,
            component=row['component'] or None,
            type=row['type'] or None,
            severity=row['severity'] or None,
            version=row['version'] or None,
            keywords=row['keywords'] or None,
            owner=row['owner'] or None,
            milestone=row['milestone'] or None
        )

    def close(self) -> None:
        """Release pooled connections."""
        self.engine.dispose()


__all__ = ['TracStore']
