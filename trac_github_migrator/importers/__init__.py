"""Import package for creating migrated tickets on GitHub.

Package Structure:
- github_client: REST client for the GitHub issue import API
"""

from .github_client import GitHubClient

__all__ = ['GitHubClient']
