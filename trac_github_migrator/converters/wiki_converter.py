"""
Trac wiki markup to GitHub Markdown conversion.

The conversion is a fixed sequence of regular expression rewrites. Rule order
matters: code is rewritten first, and every later rule only operates on the
text outside of the resulting code spans and fences.
"""

import logging
import re
from typing import List, Optional

from ..models import RevisionMap

logger = logging.getLogger(__name__)

DEFAULT_COMMIT_URL_BASE = '../commit/'


class TracWikiConverter:
    """Converts one Trac wiki document into GitHub flavored Markdown."""

    # CommitTicketUpdater comments
    COMMIT_REF_BLOCK = re.compile(r'\{\{\{\n(#!CommitTicketReference .+?)\}\}\}', re.DOTALL)
    COMMIT_REF_LINE = re.compile(r'^#!CommitTicketReference[^\n]*(?:\n|$)', re.MULTILINE)

    # Code
    INLINE_CODE = re.compile(r'\{\{\{([^\n]+?)\}\}\}')
    CODE_BLOCK = re.compile(r'\{\{\{(.+?)\}\}\}', re.DOTALL)
    PROCESSOR = re.compile(r'[ \t]*\n?[ \t]*#!([\w+-]+)[^\n]*(?:\n|$)')
    CODE_SEGMENT = re.compile(r'```.*?```|`[^`\n]+`', re.DOTALL)
    PLACEHOLDER = re.compile(r'\x00(\d+)\x00')

    # Headings, innermost first
    HEADINGS = [
        (re.compile(r'^[ \t]*={4}[ \t]+(.+?)[ \t]+={4}(?:[ \t]*#\S+)?[ \t]*$', re.MULTILINE), '#### '),
        (re.compile(r'^[ \t]*={3}[ \t]+(.+?)[ \t]+={3}(?:[ \t]*#\S+)?[ \t]*$', re.MULTILINE), '### '),
        (re.compile(r'^[ \t]*={2}[ \t]+(.+?)[ \t]+={2}(?:[ \t]*#\S+)?[ \t]*$', re.MULTILINE), '## '),
        (re.compile(r'^[ \t]*=[ \t]+(.+?)[ \t]+=(?:[ \t]*#\S+)?[ \t]*$', re.MULTILINE), '# '),
    ]

    # Links
    LABELLED_LINK = re.compile(r'\[(https?://[^\s\[\]]+)\s+([^\[\]]+)\]')
    CAMELCASE_ESCAPE = re.compile(r'!((?:[A-Z][a-z0-9]+){2,})\b')

    # Font styles
    BOLD = re.compile(r"'''(.+?)'''")
    ITALIC = re.compile(r"''(.+?)''")
    SLASH_ITALIC = re.compile(r'(?<![:/\w])//(\S(?:[^\n]*?\S)?)(?<!:)//')

    # Lists
    BULLET = re.compile(r'^([ \t]+)\*(?=[ \t])', re.MULTILINE)
    NUMBERED = re.compile(r'^([ \t]+)(\d+)\.(?=[ \t])', re.MULTILINE)

    # Revisions, narrowest spelling last so the wider ones are not shadowed
    CHANGESET_URL = re.compile(r'(?<![(\w])https?://[^\s\[\]()]+/changeset/(\d+)[^\s\[\]()]*')
    CHANGESET_QUOTED = re.compile(r'\[changeset:"r?(\d+)"[^\]]*\]')
    CHANGESET_BARE = re.compile(r'\[changeset:r?(\d+)\]')
    REVISION_TOKEN = re.compile(r'\br(\d+)\b')

    TICKET_REF = re.compile(r'\bticket:(\d+)\b')

    def __init__(
        self,
        revision_map: Optional[RevisionMap] = None,
        commit_url_base: str = DEFAULT_COMMIT_URL_BASE
    ):
        """
        Initialize the converter.

        Args:
            revision_map: Optional lookup from revision number to commit sha
            commit_url_base: URL prefix that a commit sha is appended to
        """
        self.revision_map = revision_map or {}
        self.commit_url_base = commit_url_base

    def translate(self, text: Optional[str]) -> str:
        """Convert a document and quote it for nesting below an event header."""
        return self.quote(self.convert(text))

    def convert(self, text: Optional[str]) -> str:
        """
        Convert Trac wiki markup to Markdown without quoting.

        Args:
            text: Trac wiki document, may be None or empty

        Returns:
            Markdown document
        """
        if not text:
            return ''

        text = text.replace('\r\n', '\n').replace('\r', '\n').replace('\x00', '')

        text = self.COMMIT_REF_BLOCK.sub(r'\1', text)
        text = self.COMMIT_REF_LINE.sub('', text)

        text = self.INLINE_CODE.sub(r'`\1`', text)
        text = self.CODE_BLOCK.sub(self._fence, text)

        # Code is masked while the prose rules run
        stashed: List[str] = []

        def stash(match):
            stashed.append(match.group(0))
            return f'\x00{len(stashed) - 1}\x00'

        text = self.CODE_SEGMENT.sub(stash, text)
        text = self._convert_prose(text)
        return self.PLACEHOLDER.sub(lambda m: stashed[int(m.group(1))], text)

    def _convert_prose(self, text: str) -> str:
        """Apply the rules that must not touch code."""
        if not text:
            return text

        for pattern, marker in self.HEADINGS:
            text = pattern.sub(lambda m, marker=marker: marker + m.group(1), text)

        text = self.LABELLED_LINK.sub(r'[\2](\1)', text)
        text = self.CAMELCASE_ESCAPE.sub(r'\1', text)

        text = self.BOLD.sub(r'**\1**', text)
        text = self.ITALIC.sub(r'*\1*', text)
        text = self.SLASH_ITALIC.sub(r'_\1_', text)

        text = self.BULLET.sub(r'\1-', text)
        text = self.NUMBERED.sub(r'\1\2.', text)

        for pattern in (self.CHANGESET_URL, self.CHANGESET_QUOTED,
                        self.CHANGESET_BARE, self.REVISION_TOKEN):
            text = pattern.sub(lambda m: self.revision_link(m.group(1)), text)

        text = self.TICKET_REF.sub(r'#\1', text)
        return text

    def _fence(self, match: 're.Match') -> str:
        body = match.group(1)
        language = ''

        processor = self.PROCESSOR.match(body)
        if processor:
            language = processor.group(1)
            body = body[processor.end():]

        body = body.strip('\n')
        prefix = ''
        if match.start() > 0 and match.string[match.start() - 1] != '\n':
            prefix = '\n'
        return f'{prefix}```{language}\n{body}\n```'

    def revision_link(self, revision: str) -> str:
        """Render a revision as a commit link when mapped, else as a changeset reference."""
        sha = self.revision_map.get(revision)
        if sha:
            return f'[{sha[:7]}]({self.commit_url_base}{sha})'
        return f'[changeset:{revision}]'

    @staticmethod
    def quote(text: str) -> str:
        """Prefix every line with the Markdown block quote marker."""
        lines: List[str] = text.rstrip().split('\n')
        return '\n'.join(f'> {line}' if line else '>' for line in lines)


def translate(text: Optional[str], revision_map: Optional[RevisionMap] = None) -> str:
    """Convenience wrapper converting and quoting a single document."""
    return TracWikiConverter(revision_map).translate(text)


__all__ = ['TracWikiConverter', 'translate', 'DEFAULT_COMMIT_URL_BASE']
