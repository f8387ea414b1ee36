"""Converters package for Trac wiki markup to GitHub Markdown translation."""

import logging

from .revision_map import load_revision_map
from .wiki_converter import TracWikiConverter, translate

logger = logging.getLogger('trac_github_migrator.converters')


__all__ = [
    'TracWikiConverter',
    'load_revision_map',
    'translate'
]
