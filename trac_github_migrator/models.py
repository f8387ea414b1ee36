"""Data models for the Trac to GitHub migration pipeline."""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

logger = logging.getLogger('trac_github_migrator')

# Raw value -> label name, keyed by category (component, type, priority, ...)
LabelRules = Dict[str, Dict[str, str]]

# Revision number (no leading "r") -> commit sha
RevisionMap = Dict[str, str]


def trac_time_to_iso(timestamp: int) -> str:
    """Convert a Trac microsecond epoch timestamp to an ISO-8601 UTC instant."""
    moment = datetime.fromtimestamp(timestamp // 1000000, tz=timezone.utc)
    return moment.strftime('%Y-%m-%dT%H:%M:%SZ')


class EventKind(Enum):
    """Closed set of merged event kinds."""
    INITIAL = "initial"
    FIELD_CHANGE = "field_change"
    COMMENT = "comment"
    ATTACHMENT = "attachment"
    DESCRIPTION_EDIT = "description"
    IGNORED = "ignored"


STRUCTURED_FIELDS = frozenset({
    'owner', 'status', 'summary', 'resolution', 'priority',
    'component', 'type', 'severity', 'platform', 'milestone'
})

IGNORED_FIELDS = frozenset({'keywords', 'cc', 'reporter', 'version'})

# Fields whose final ticket value seeds the label set after replay
FINAL_LABEL_FIELDS = ('component', 'type', 'resolution', 'priority', 'severity', 'version')


def classify_field(field_name: str) -> EventKind:
    """
    Map a Trac change field onto exactly one event kind.

    Unknown custom fields are treated as structured field changes.
    """
    if field_name == 'comment':
        return EventKind.COMMENT
    if field_name == 'attachment':
        return EventKind.ATTACHMENT
    if field_name == 'description':
        return EventKind.DESCRIPTION_EDIT
    # _comment0, _comment1, ... hold superseded comment text
    if field_name in IGNORED_FIELDS or field_name.startswith('_comment'):
        return EventKind.IGNORED
    if field_name not in STRUCTURED_FIELDS:
        logger.debug(f"Treating custom field '{field_name}' as a field change")
    return EventKind.FIELD_CHANGE


@dataclass(frozen=True)
class Ticket:
    """A Trac ticket as read from the source database."""

    id: int
    summary: str
    reporter: str
    status: str
    time: int
    changetime: Optional[int] = None
    description: str = ''
    resolution: Optional[str] = None
    priority: Optional[str] = None
    component: Optional[str] = None
    type: Optional[str] = None
    severity: Optional[str] = None
    version: Optional[str] = None
    keywords: Optional[str] = None
    owner: Optional[str] = None
    milestone: Optional[str] = None

    @property
    def is_closed(self) -> bool:
        return self.status == 'closed'


@dataclass(frozen=True)
class ChangeEvent:
    """One recorded field mutation from the ticket_change table."""

    ticket_id: int
    field: str
    oldvalue: Optional[str]
    newvalue: Optional[str]
    author: str
    time: int


@dataclass(frozen=True)
class AttachmentEvent:
    """A file attached to a ticket, merged as an 'attachment' change."""

    ticket_id: int
    filename: str
    description: str
    size: int
    author: str
    time: int

    @property
    def field(self) -> str:
        return 'attachment'


@dataclass
class MergedEvent:
    """A renderable unit of ticket history."""

    kind: EventKind
    time: int
    author: str
    text: Optional[str] = None
    field: Optional[str] = None


@dataclass
class MergeResult:
    """Output of the change history merge."""

    events: List[MergedEvent] = field(default_factory=list)
    labels: List[str] = field(default_factory=list)
    closed_at: Optional[int] = None


@dataclass
class IssueComment:
    """One comment of a composed issue."""

    body: str
    created_at: str

    def to_dict(self) -> Dict[str, Any]:
        return {'body': self.body, 'created_at': self.created_at}


@dataclass
class ComposedIssue:
    """Issue import payload assembled from a ticket and its history."""

    title: str
    body: str
    labels: List[str]
    closed: bool
    created_at: str
    updated_at: Optional[str] = None
    closed_at: Optional[str] = None
    comments: List[IssueComment] = field(default_factory=list)

    def to_payload(self) -> Dict[str, Any]:
        """Render the GitHub issue import request document."""
        issue = {
            'title': self.title,
            'body': self.body,
            'created_at': self.created_at,
            'closed': self.closed,
            'labels': list(self.labels)
        }
        if self.updated_at:
            issue['updated_at'] = self.updated_at
        if self.closed_at:
            issue['closed_at'] = self.closed_at

        return {
            'issue': issue,
            'comments': [comment.to_dict() for comment in self.comments]
        }


class ImportJobState(Enum):
    """Status of a remote issue import job."""
    SUBMITTED = "submitted"
    PENDING = "pending"
    IMPORTED = "imported"
    FAILED = "failed"


@dataclass
class ImportJob:
    """Remote issue import job descriptor."""

    id: Optional[int]
    url: str
    status: ImportJobState
    issue_id: Optional[int] = None
    errors: List[Dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_response(cls, data: Dict[str, Any]) -> 'ImportJob':
        """Build a job from the JSON returned by the import endpoints."""
        try:
            status = ImportJobState(data.get('status', 'submitted'))
        except ValueError:
            logger.warning(f"Unknown import status '{data.get('status')}', treating as pending")
            status = ImportJobState.PENDING

        issue_id = None
        issue_url = data.get('issue_url')
        if issue_url:
            tail = issue_url.rstrip('/').rsplit('/', 1)[-1]
            if tail.isdigit():
                issue_id = int(tail)

        return cls(
            id=data.get('id'),
            url=data.get('url', ''),
            status=status,
            issue_id=issue_id,
            errors=data.get('errors') or []
        )

    @property
    def is_pending(self) -> bool:
        return self.status in (ImportJobState.SUBMITTED, ImportJobState.PENDING)


class TicketState(Enum):
    """Per-ticket progress through the import driver."""
    NOT_STARTED = "not_started"
    CHECKED = "checked"
    SUBMITTED = "submitted"
    POLLING = "polling"
    RESOLVED = "resolved"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class TicketResult:
    """Outcome of driving one ticket through the import."""

    ticket_id: int
    state: TicketState = TicketState.NOT_STARTED
    issue_id: Optional[int] = None
    job_url: Optional[str] = None
    reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'ticket_id': self.ticket_id,
            'state': self.state.value,
            'issue_id': self.issue_id,
            'job_url': self.job_url,
            'reason': self.reason
        }


__all__ = [
    'AttachmentEvent',
    'ChangeEvent',
    'ComposedIssue',
    'EventKind',
    'FINAL_LABEL_FIELDS',
    'IGNORED_FIELDS',
    'ImportJob',
    'ImportJobState',
    'IssueComment',
    'LabelRules',
    'MergeResult',
    'MergedEvent',
    'RevisionMap',
    'STRUCTURED_FIELDS',
    'Ticket',
    'TicketResult',
    'TicketState',
    'classify_field',
    'trac_time_to_iso'
]
