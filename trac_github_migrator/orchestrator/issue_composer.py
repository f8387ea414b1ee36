"""Assembles GitHub issue import payloads from Trac tickets."""

import logging
from typing import List, Optional

from ..converters import TracWikiConverter
from ..identity_resolver import IdentityResolver
from ..models import (
    ComposedIssue,
    EventKind,
    IssueComment,
    MergedEvent,
    Ticket,
    trac_time_to_iso,
)

logger = logging.getLogger(__name__)

METADATA_FIELDS = ('component', 'priority', 'resolution', 'keywords')
METADATA_SEPARATOR = ' | '
ENTRY_SEPARATOR = '\n\n___\n\n'


class IssueComposer:
    """Builds a ComposedIssue from a ticket and its merged history."""

    def __init__(
        self,
        converter: TracWikiConverter,
        identity_resolver: IdentityResolver,
        single_post: bool = False
    ):
        """
        Initialize the composer.

        Args:
            converter: Wiki converter for the ticket description
            identity_resolver: Resolver for the reporter handle
            single_post: Fold all history into the issue body instead of comments
        """
        self.converter = converter
        self.identity_resolver = identity_resolver
        self.single_post = single_post

    def compose(
        self,
        ticket: Ticket,
        events: List[MergedEvent],
        labels: List[str],
        closed_at: Optional[int],
        single_post: Optional[bool] = None
    ) -> ComposedIssue:
        """
        Compose the import payload for one ticket.

        Args:
            ticket: Source ticket
            events: Time-ordered merged events, without the initial report
            labels: Final label set
            closed_at: Time the ticket was last closed, if ever
            single_post: Override the composer's single post mode

        Returns:
            ComposedIssue ready for submission
        """
        if single_post is None:
            single_post = self.single_post

        initial = self.initial_report(ticket)
        entries = [event for event in events if event.text]

        if single_post:
            body = self._with_metadata(
                ticket, ENTRY_SEPARATOR.join([initial.text] + [e.text for e in entries])
            )
            comments: List[IssueComment] = []
        else:
            body = self._with_metadata(ticket, initial.text)
            comments = [
                IssueComment(body=event.text, created_at=trac_time_to_iso(event.time))
                for event in entries
            ]

        closed = ticket.is_closed
        return ComposedIssue(
            title=ticket.summary,
            body=body,
            labels=list(labels),
            closed=closed,
            created_at=trac_time_to_iso(ticket.time),
            updated_at=trac_time_to_iso(ticket.changetime) if ticket.changetime else None,
            closed_at=trac_time_to_iso(closed_at) if closed and closed_at else None,
            comments=comments
        )

    def initial_report(self, ticket: Ticket) -> MergedEvent:
        """Synthesize the event describing the ticket's creation."""
        author = self.identity_resolver.resolve_author(ticket.reporter)
        text = f"_{author}_ created the issue"
        if ticket.description and ticket.description.strip():
            text += "\n\n" + self.converter.translate(ticket.description)

        return MergedEvent(
            kind=EventKind.INITIAL,
            time=ticket.time,
            author=ticket.reporter,
            text=text,
            field='description'
        )

    @staticmethod
    def metadata_line(ticket: Ticket) -> str:
        """Summarize the ticket's classification fields on one line."""
        parts = []
        for name in METADATA_FIELDS:
            value = getattr(ticket, name)
            if value and value.strip():
                parts.append(f"**{name}:** {value.strip()}")
        return METADATA_SEPARATOR.join(parts)

    def _with_metadata(self, ticket: Ticket, text: str) -> str:
        metadata = self.metadata_line(ticket)
        if not metadata:
            return text
        return f"{metadata}\n\n{text}"


__all__ = ['IssueComposer']
