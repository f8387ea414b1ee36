#!/usr/bin/env python3
"""
Trac to GitHub Issue Migration Tool - Main CLI Entry Point

This script provides the command-line interface for importing Trac tickets,
with their full change history, into a GitHub repository through the issue
import API so that issue numbers match the original ticket ids.
"""

import argparse
import logging
import sys
from typing import Any, Dict, Optional, Sequence

import yaml

from . import __version__
from .config_loader import ConfigLoader, get_nested
from .converters import TracWikiConverter, load_revision_map
from .exceptions import MigrationError
from .identity_resolver import IdentityResolver
from .importers import GitHubClient
from .logger import log_config, log_section, setup_logging
from .orchestrator import CancellationToken, ChangeHistoryMerger, ImportDriver, IssueComposer
from .trac_store import TracStore


def create_argument_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser for CLI."""
    parser = argparse.ArgumentParser(
        description="Migrate Trac tickets to GitHub issues with matching numbers",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Continue after the newest issue on GitHub
  trac-github-migrate --config config.yaml

  # Start at a specific ticket
  trac-github-migrate --start-id 120

  # Link svn revisions to git commits
  trac-github-migrate --revmap revmap.txt

  # Fold history into a single post per issue
  trac-github-migrate --single-post

  # Preview without submitting anything
  trac-github-migrate --dry-run -vv
        """
    )

    parser.add_argument(
        '--version',
        action='version',
        version=f'%(prog)s {__version__}'
    )

    parser.add_argument(
        '--config',
        type=str,
        default='config.yaml',
        help='Path to configuration YAML file (default: config.yaml)'
    )

    parser.add_argument(
        '--start-id',
        type=int,
        help='First ticket id to migrate (default: one past the newest issue)'
    )

    parser.add_argument(
        '--revmap',
        type=str,
        help='Path to a "rNNN <sha>" revision map file'
    )

    parser.add_argument(
        '--skip-closed',
        action=argparse.BooleanOptionalAction,
        default=None,
        help='Skip tickets that are closed'
    )

    parser.add_argument(
        '--single-post',
        action=argparse.BooleanOptionalAction,
        default=None,
        help='Put the whole ticket history into the issue body'
    )

    parser.add_argument(
        '--safe-checks',
        action=argparse.BooleanOptionalAction,
        default=None,
        help='Skip existing issues and verify each import before continuing'
    )

    parser.add_argument(
        '--dry-run',
        action=argparse.BooleanOptionalAction,
        default=None,
        help='Compose issues and log them without submitting'
    )

    parser.add_argument(
        '--log-file',
        type=str,
        help='Write logs to this file in addition to the console'
    )

    parser.add_argument(
        '-v', '--verbose',
        action='count',
        default=0,
        help='Increase verbosity (-v for INFO, -vv for DEBUG)'
    )

    return parser


def build_driver(
    config: Dict[str, Any],
    cancel_token: Optional[CancellationToken] = None,
    store: Optional[TracStore] = None,
    client: Optional[GitHubClient] = None
) -> ImportDriver:
    """Wire the migration components together from a validated config."""
    migration = config.get('migration', {})

    store = store or TracStore(get_nested(config, 'trac.database_url'))
    client = client or GitHubClient.from_config(config)

    resolver = IdentityResolver(store, config.get('users') or {})
    converter = TracWikiConverter(revision_map=load_revision_map(migration.get('revmap_path')))
    merger = ChangeHistoryMerger(converter, resolver, attachment_url=migration.get('attachment_url'))
    composer = IssueComposer(converter, resolver, single_post=migration.get('single_post', False))

    return ImportDriver(
        store,
        client,
        merger,
        composer,
        label_rules=config.get('labels') or {},
        safe_checks=migration.get('safe_checks', True),
        skip_closed=migration.get('skip_closed', False),
        start_id=migration.get('start_id'),
        dry_run=migration.get('dry_run', False),
        poll_interval=migration.get('poll_interval', ImportDriver.DEFAULT_POLL_INTERVAL),
        cancel_token=cancel_token,
        show_progress=sys.stderr.isatty()
    )


def run_migration(config: Dict[str, Any], logger: logging.Logger) -> int:
    """Execute the migration and map its outcome to an exit code."""
    cancel_token = CancellationToken()
    cancel_token.install_signal_handlers()

    try:
        driver = build_driver(config, cancel_token)
    except FileNotFoundError as e:
        logger.error(str(e))
        return 1

    log_section("Migration")
    try:
        stats = driver.run()
    except MigrationError as e:
        logger.critical(f"Migration aborted: {e}")
        logger.critical(f"Last migrated ticket: {driver.last_migrated_id}")
        return 2
    finally:
        driver.store.close()

    logger.info(
        f"Processed {stats['processed']} tickets: {stats['imported']} imported, "
        f"{stats['skipped']} skipped"
    )
    if stats['last_migrated_id'] is not None:
        logger.info(f"Last migrated ticket: #{stats['last_migrated_id']}")

    if stats['cancelled']:
        logger.warning("Migration cancelled before all tickets were processed")
        return 130
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point for the migration CLI."""
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    try:
        config = ConfigLoader.load(args.config)
        config = ConfigLoader.merge_with_args(config, args)
        ConfigLoader.validate(config)
    except (FileNotFoundError, ValueError, yaml.YAMLError) as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    logging_config = config.get('logging', {}) or {}
    try:
        logger = setup_logging(
            verbosity=args.verbose,
            log_file=logging_config.get('file'),
            level=logging_config.get('level')
        )
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    logger.info(f"Trac to GitHub migration v{__version__}")
    log_config(config)

    return run_migration(config, logger)


if __name__ == '__main__':
    sys.exit(main())
