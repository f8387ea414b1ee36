"""Loader for revision number to commit sha lookup tables."""

import logging
import os
from typing import Optional

from ..models import RevisionMap

logger = logging.getLogger(__name__)


def load_revision_map(path: Optional[str]) -> RevisionMap:
    """
    Load a revision map file.

    Each non-empty line holds a revision and a commit identifier separated by
    whitespace, e.g. ``r1234 0123abcd...``. The leading ``r`` is optional and
    stripped. Lines starting with ``#`` are skipped.

    Args:
        path: Path to the revision map file, or None for an empty map

    Returns:
        Mapping from revision number string to commit sha

    Raises:
        FileNotFoundError: If the path does not exist
    """
    if not path:
        return {}

    if not os.path.exists(path):
        raise FileNotFoundError(f"Revision map not found: {path}")

    revision_map: RevisionMap = {}
    skipped = 0

    with open(path, 'r', encoding='utf-8') as f:
        for line_number, line in enumerate(f, start=1):
            line = line.strip()
            if not line or line.startswith('#'):
                continue

            parts = line.split()
            if len(parts) < 2:
                logger.warning(f"{path}:{line_number}: expected '<revision> <commit>', skipping")
                skipped += 1
                continue

            revision = parts[0].lstrip('rR')
            if not revision.isdigit():
                logger.warning(f"{path}:{line_number}: invalid revision '{parts[0]}', skipping")
                skipped += 1
                continue

            revision_map[revision] = parts[1]

    logger.info(f"Loaded {len(revision_map)} revisions from {path} ({skipped} skipped)")
    return revision_map


__all__ = ['load_revision_map']
