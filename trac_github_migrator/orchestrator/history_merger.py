"""
Change history merging for Trac tickets.

Combines a ticket's field changes and attachments into one chronological
event list, renders each event as Markdown, and replays label transitions
to derive the final label set and closing time.
"""

import logging
import os
from typing import Iterable, List, Optional, Set, Union
from urllib.parse import quote

from ..converters import TracWikiConverter
from ..identity_resolver import IdentityResolver
from ..models import (
    FINAL_LABEL_FIELDS,
    AttachmentEvent,
    ChangeEvent,
    EventKind,
    LabelRules,
    MergedEvent,
    MergeResult,
    Ticket,
    classify_field,
)

logger = logging.getLogger(__name__)

HistoryEvent = Union[ChangeEvent, AttachmentEvent]

IMAGE_EXTENSIONS = ('.png', '.jpg', '.jpeg', '.gif')

# Trac field name -> wording used in rendered sentences
FIELD_TITLES = {'summary': 'title'}


class ChangeHistoryMerger:
    """Merges and renders the history of a single ticket."""

    def __init__(
        self,
        converter: TracWikiConverter,
        identity_resolver: IdentityResolver,
        attachment_url: Optional[str] = None
    ):
        """
        Initialize the merger.

        Args:
            converter: Wiki converter used for comment and attachment text
            identity_resolver: Resolver turning handles into display authors
            attachment_url: Optional base URL under which attachments are served
                as {attachment_url}/{ticket id}/{filename}
        """
        self.converter = converter
        self.identity_resolver = identity_resolver
        self.attachment_url = attachment_url.rstrip('/') if attachment_url else None

    def merge(
        self,
        ticket: Ticket,
        changes: Iterable[ChangeEvent],
        attachments: Iterable[AttachmentEvent],
        label_rules: LabelRules
    ) -> MergeResult:
        """
        Merge, render and replay a ticket's history.

        Args:
            ticket: Ticket holding the final field values
            changes: Change events in source order
            attachments: Attachment events in source order
            label_rules: Label lookup per field category

        Returns:
            MergeResult with time-ordered events, sorted labels and closing time
        """
        # sorted() is stable, equal timestamps keep source order
        history: List[HistoryEvent] = sorted(
            list(changes) + list(attachments), key=lambda event: event.time
        )

        labels: Set[str] = set()
        closed_at: Optional[int] = None
        events: List[MergedEvent] = []

        for event in history:
            kind = classify_field(event.field)

            if kind is EventKind.COMMENT and not (event.newvalue or '').strip():
                continue

            if kind is not EventKind.ATTACHMENT:
                self._replay_labels(labels, event, label_rules)
                if event.field == 'status' and event.newvalue == 'closed':
                    closed_at = event.time

            if kind is EventKind.IGNORED:
                continue

            text = self.render(event, kind)
            if text is None:
                continue
            events.append(MergedEvent(
                kind=kind,
                time=event.time,
                author=event.author,
                text=text,
                field=event.field
            ))

        for category in FINAL_LABEL_FIELDS:
            labels.add(label_rules.get(category, {}).get(getattr(ticket, category)))
        labels.discard(None)

        logger.debug(
            f"Ticket #{ticket.id}: merged {len(history)} changes into {len(events)} events, "
            f"labels={sorted(labels)}"
        )
        return MergeResult(events=events, labels=sorted(labels), closed_at=closed_at)

    @staticmethod
    def _replay_labels(labels: Set[str], event: ChangeEvent, label_rules: LabelRules) -> None:
        rules = label_rules.get(event.field)
        if not rules:
            return
        old_label = rules.get(event.oldvalue)
        new_label = rules.get(event.newvalue)
        if old_label:
            labels.discard(old_label)
        if new_label:
            labels.add(new_label)

    def render(self, event: HistoryEvent, kind: EventKind) -> Optional[str]:
        """Render one history event as Markdown, None when nothing is to be said."""
        author = self.identity_resolver.resolve_author(event.author)

        if kind is EventKind.COMMENT:
            return f"_{author}_ commented\n\n{self.converter.translate(event.newvalue)}"

        if kind is EventKind.ATTACHMENT:
            return self._render_attachment(event, author)

        if kind is EventKind.DESCRIPTION_EDIT:
            return f"_{author}_ edited the issue description"

        if kind is EventKind.FIELD_CHANGE:
            return self._render_field_change(event, author)

        return None

    @staticmethod
    def _render_field_change(event: ChangeEvent, author: str) -> Optional[str]:
        name = FIELD_TITLES.get(event.field, event.field)
        old = (event.oldvalue or '').strip()
        new = (event.newvalue or '').strip()

        if old and new:
            return f"_{author}_ changed {name} from `{old}` to `{new}`"
        if old:
            return f"_{author}_ removed {name} (was `{old}`)"
        if new:
            return f"_{author}_ set {name} to `{new}`"
        return None

    def _render_attachment(self, event: AttachmentEvent, author: str) -> str:
        name = event.filename
        size = f"{event.size / 1024.0:.1f} KiB"

        if self.attachment_url:
            url = f"{self.attachment_url}/{event.ticket_id}/{quote(name)}"
            text = f"_{author}_ uploaded file [`{name}`]({url}) ({size})"
            if os.path.splitext(name)[1].lower() in IMAGE_EXTENSIONS:
                text += f"\n\n![{name}]({url})"
        else:
            text = f"_{author}_ uploaded file `{name}` ({size})"

        if event.description and event.description.strip():
            text += "\n\n" + self.converter.translate(event.description)
        return text


__all__ = ['ChangeHistoryMerger', 'MergeResult']
