"""Maps Trac author handles to email addresses and GitHub mentions."""

import logging
from typing import Dict, Optional

logger = logging.getLogger(__name__)


class IdentityResolver:
    """
    Resolves Trac author handles for display in GitHub comments.

    Handles are looked up once in the Trac session store for an email
    address; misses are cached as the handle itself. Resolved values found in
    the username map become ``@login`` mentions.
    """

    EMAIL_ATTRIBUTE = 'email'

    def __init__(self, store, usernames: Optional[Dict[str, str]] = None):
        """
        Initialize the resolver.

        Args:
            store: Object exposing get_session_attribute(sid, name)
            usernames: Mapping from Trac handle or email to GitHub login
        """
        self.store = store
        self.usernames = usernames or {}
        self._email_cache: Dict[str, str] = {}

    def resolve_email(self, handle: str) -> str:
        """Return the email registered for a handle, or the handle itself."""
        if handle not in self._email_cache:
            email = self.store.get_session_attribute(handle, self.EMAIL_ATTRIBUTE)
            if email:
                logger.debug(f"Resolved '{handle}' to {email}")
            self._email_cache[handle] = email or handle
        return self._email_cache[handle]

    def resolve_author(self, handle: Optional[str]) -> str:
        """
        Resolve a handle to the text shown as event author.

        Args:
            handle: Trac author handle

        Returns:
            '@login' when mapped, otherwise the email or the raw handle
        """
        if not handle:
            return 'anonymous'

        resolved = self.resolve_email(handle)
        login = self.usernames.get(resolved) or self.usernames.get(handle)
        if login:
            return f'@{login}'
        return resolved

    @property
    def cache_size(self) -> int:
        return len(self._email_cache)


__all__ = ['IdentityResolver']
