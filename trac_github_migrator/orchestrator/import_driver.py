"""
Import driver for migrating Trac tickets to GitHub issues.

Walks the ticket range in ascending id order and pushes each ticket through
check -> compose -> submit -> poll -> verify before touching the next one.
Issue numbers on GitHub must line up with Trac ticket ids, so any drift
aborts the run.
"""

import json
import logging
import time
from typing import Any, Callable, Dict, List, Optional

from tqdm import tqdm

from ..exceptions import IdMismatchError, ImportJobFailedError
from ..logger import ProgressTracker
from ..models import (
    ComposedIssue,
    ImportJob,
    ImportJobState,
    LabelRules,
    Ticket,
    TicketResult,
    TicketState,
)
from .cancellation import CancellationToken
from .history_merger import ChangeHistoryMerger
from .issue_composer import IssueComposer

logger = logging.getLogger(__name__)


class ImportDriver:
    """Drives the GitHub issue import for a range of Trac tickets."""

    DEFAULT_POLL_INTERVAL = 1.0

    def __init__(
        self,
        store,
        client,
        merger: ChangeHistoryMerger,
        composer: IssueComposer,
        label_rules: Optional[LabelRules] = None,
        safe_checks: bool = True,
        skip_closed: bool = False,
        start_id: Optional[int] = None,
        dry_run: bool = False,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        cancel_token: Optional[CancellationToken] = None,
        show_progress: bool = True,
        sleep: Callable[[float], None] = time.sleep
    ):
        """
        Initialize the import driver.

        Args:
            store: Trac store exposing tickets(), changes() and attachments()
            client: GitHub client exposing get_issue(), latest_issue_number(),
                create_import() and get_import()
            merger: Change history merger
            composer: Issue composer
            label_rules: Label lookup per field category
            safe_checks: Skip already present issues and verify every import
            skip_closed: Do not migrate tickets whose status is closed
            start_id: First ticket id, defaults to one past the newest issue
            dry_run: Compose issues and log them without submitting
            poll_interval: Seconds to wait between import status polls
            cancel_token: Token sampled before each ticket
            show_progress: Display a tqdm progress bar
            sleep: Sleep function used while polling
        """
        self.store = store
        self.client = client
        self.merger = merger
        self.composer = composer
        self.label_rules = label_rules or {}
        self.safe_checks = safe_checks
        self.skip_closed = skip_closed
        self.start_id = start_id
        self.dry_run = dry_run
        self.poll_interval = poll_interval
        self.cancel_token = cancel_token or CancellationToken()
        self.show_progress = show_progress
        self._sleep = sleep

        self.last_migrated_id: Optional[int] = None
        self.results: List[TicketResult] = []

    def resolve_start_id(self) -> int:
        """Return the configured start id, or one past the newest remote issue."""
        if self.start_id:
            return self.start_id

        latest = self.client.latest_issue_number()
        self.last_migrated_id = latest or None
        logger.info(f"Newest issue on GitHub is #{latest}, starting at ticket #{latest + 1}")
        return latest + 1

    def run(self) -> Dict[str, Any]:
        """
        Migrate every ticket from the start id onwards.

        Returns:
            Statistics dictionary with per-ticket results

        Raises:
            IdMismatchError: If an issue was created under an unexpected number
            ImportJobFailedError: If GitHub reports a failed import job
        """
        start_id = self.resolve_start_id()
        tickets = list(self.store.tickets(min_id=start_id))
        self.results = []
        cancelled = False

        logger.info(
            f"Migrating {len(tickets)} tickets from #{start_id} "
            f"(safe_checks={self.safe_checks}, skip_closed={self.skip_closed}, dry_run={self.dry_run})"
        )

        with ProgressTracker(len(tickets), 'tickets') as progress:
            for ticket in tqdm(tickets, desc="Migrating tickets", unit="ticket",
                               disable=not self.show_progress):
                if self.cancel_token.cancelled:
                    logger.warning(
                        f"Cancellation requested ({self.cancel_token.reason}), "
                        f"stopping before ticket #{ticket.id}"
                    )
                    cancelled = True
                    break

                try:
                    self.migrate_ticket(ticket)
                except (IdMismatchError, ImportJobFailedError):
                    progress.increment(success=False)
                    raise
                progress.increment(success=True)

        return self._build_stats(cancelled, progress)

    def migrate_ticket(self, ticket: Ticket) -> TicketResult:
        """
        Push one ticket through the import state machine.

        Args:
            ticket: Ticket to migrate

        Returns:
            TicketResult describing where the ticket ended up
        """
        result = TicketResult(ticket_id=ticket.id)
        self.results.append(result)

        if self.skip_closed and ticket.is_closed:
            return self._skip(result, 'closed')

        if self.safe_checks:
            if self.client.get_issue(ticket.id) is not None:
                return self._skip(result, 'already migrated')
            result.state = TicketState.CHECKED

        issue = self.compose(ticket)

        if self.dry_run:
            logger.info(f"[DRY RUN] Would import ticket #{ticket.id}: {issue.title}")
            logger.debug(json.dumps(issue.to_payload(), indent=2))
            return self._skip(result, 'dry run')

        job = self.client.create_import(issue.to_payload())
        result.state = TicketState.SUBMITTED
        result.job_url = job.url

        if not self.safe_checks:
            logger.info(f"Submitted ticket #{ticket.id}: status={job.status.value} url={job.url}")
            self.last_migrated_id = ticket.id
            return result

        result.state = TicketState.POLLING
        job = self.wait_for_import(job)

        if job.status is ImportJobState.FAILED:
            result.state = TicketState.FAILED
            result.reason = 'import failed'
            logger.error(f"Import of ticket #{ticket.id} failed: {job.errors}")
            raise ImportJobFailedError(ticket.id, job.errors)

        if job.issue_id != ticket.id:
            result.state = TicketState.FAILED
            result.issue_id = job.issue_id
            result.reason = 'id mismatch'
            raise IdMismatchError(ticket.id, job.issue_id)

        result.state = TicketState.RESOLVED
        result.issue_id = job.issue_id
        self.last_migrated_id = ticket.id
        logger.info(f"Verified ticket #{ticket.id} as issue #{job.issue_id}")
        return result

    def compose(self, ticket: Ticket) -> ComposedIssue:
        """Merge a ticket's history and compose its import payload."""
        changes = self.store.changes(ticket.id)
        attachments = self.store.attachments(ticket.id)
        merged = self.merger.merge(ticket, changes, attachments, self.label_rules)

        logger.info(
            f"Composing ticket #{ticket.id} ({len(changes)} changes, "
            f"{len(attachments)} attachments): \"{ticket.summary[:50]}\""
        )
        return self.composer.compose(ticket, merged.events, merged.labels, merged.closed_at)

    def wait_for_import(self, job: ImportJob) -> ImportJob:
        """Poll an import job until it leaves the pending state."""
        polls = 0
        while job.is_pending:
            self._sleep(self.poll_interval)
            job = self.client.get_import(job.url)
            polls += 1
            logger.debug(f"Import job {job.id} is {job.status.value} after {polls} polls")
        return job

    def _skip(self, result: TicketResult, reason: str) -> TicketResult:
        result.state = TicketState.SKIPPED
        result.reason = reason
        logger.info(f"Skipping ticket #{result.ticket_id}: {reason}")
        return result

    def _build_stats(self, cancelled: bool, progress: ProgressTracker) -> Dict[str, Any]:
        imported = [r for r in self.results
                    if r.state in (TicketState.RESOLVED, TicketState.SUBMITTED)]
        skipped = [r for r in self.results if r.state is TicketState.SKIPPED]

        stats = {
            'processed': len(self.results),
            'imported': len(imported),
            'skipped': len(skipped),
            'last_migrated_id': self.last_migrated_id,
            'cancelled': cancelled,
            'results': [r.to_dict() for r in self.results],
            'progress': progress.get_stats()
        }

        logger.info(
            f"Migration finished: {stats['imported']} imported, {stats['skipped']} skipped, "
            f"last migrated id {self.last_migrated_id}"
            f" in {stats['progress']['elapsed_time_formatted']}"
            + (" (cancelled)" if cancelled else "")
        )
        return stats


__all__ = ['ImportDriver']
