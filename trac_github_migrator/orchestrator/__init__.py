"""Orchestrator package for the ticket transformation and import pipeline.

Package Structure:
- history_merger: Merges change and attachment events into a rendered timeline
- issue_composer: Builds GitHub issue import payloads
- import_driver: Submits, polls and verifies imports across a ticket range
- cancellation: Cooperative cancellation token checked between tickets
"""

from .cancellation import CancellationToken
from .history_merger import ChangeHistoryMerger
from .import_driver import ImportDriver
from .issue_composer import IssueComposer

__all__ = [
    'CancellationToken',
    'ChangeHistoryMerger',
    'ImportDriver',
    'IssueComposer'
]
