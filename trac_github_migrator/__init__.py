"""Trac to GitHub Issue Migration Tool

Imports Trac tickets into a GitHub repository so that every issue keeps the
number, history, attachments and labels of the ticket it came from.

Features:
- Trac wiki markup to GitHub Markdown translation
- svn revision to git commit linking through a revision map
- Chronological change history rendered as issue comments
- Label derivation from configurable category rules
- Safe mode that skips existing issues and verifies every import
- Cooperative cancellation on SIGINT/SIGTERM

Basic Usage:
    1. Copy config.yaml.example to config.yaml
    2. Fill in the Trac database URL and the GitHub repository settings
    3. Run: trac-github-migrate --config config.yaml

Example Configuration (config.yaml):
    trac:
        database_url: "sqlite:///trac/db/trac.db"

    github:
        repo: "owner/project"
        token: ${GITHUB_TOKEN}
"""

__version__ = "1.0.0"
__description__ = "Trac ticket to GitHub issue migration tool"

# Import and expose key classes for public API
from .models import (
    AttachmentEvent,
    ChangeEvent,
    ComposedIssue,
    EventKind,
    ImportJob,
    ImportJobState,
    Ticket,
    TicketState
)
from .exceptions import IdMismatchError, ImportJobFailedError, MigrationError
from .config_loader import ConfigLoader, get_nested
from .logger import setup_logging, ProgressTracker, log_section, log_config

# Expose main entry point for CLI
from .migrate import main as cli_main

__all__ = [
    # Version info
    '__version__',
    '__description__',

    # Core data models
    'AttachmentEvent',
    'ChangeEvent',
    'ComposedIssue',
    'EventKind',
    'ImportJob',
    'ImportJobState',
    'Ticket',
    'TicketState',

    # Errors
    'IdMismatchError',
    'ImportJobFailedError',
    'MigrationError',

    # Configuration
    'ConfigLoader',
    'get_nested',

    # Logging
    'setup_logging',
    'ProgressTracker',
    'log_section',
    'log_config',

    # CLI entry point
    'cli_main',
]
