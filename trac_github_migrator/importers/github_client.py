"""
GitHub REST API client for the Trac migrator.

This module wraps the parts of the GitHub API the migration needs: the
issue import endpoints (asynchronous bulk creation of an issue with its
comments), single issue lookup, and lookup of the newest issue number.
Authentication, retries and rate limiting are handled here.
"""

import logging
import time
from typing import Any, Dict, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ..models import ImportJob

logger = logging.getLogger(__name__)


class GitHubClient:
    """GitHub REST API client with retry logic and rate limiting."""

    DEFAULT_API_URL = 'https://api.github.com'
    DEFAULT_TIMEOUT = 30
    DEFAULT_MAX_RETRIES = 3
    DEFAULT_RETRY_BACKOFF = 0.5
    IMPORT_MEDIA_TYPE = 'application/vnd.github.golden-comet-preview+json'

    def __init__(
        self,
        repo: str,
        token: str,
        api_url: str = DEFAULT_API_URL,
        verify_ssl: bool = True,
        timeout: int = DEFAULT_TIMEOUT,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_backoff_factor: float = DEFAULT_RETRY_BACKOFF
    ):
        """
        Initialize GitHub client.

        Args:
            repo: Target repository as 'owner/name'
            token: Personal access token with repo scope
            api_url: API base URL (differs on GitHub Enterprise)
            verify_ssl: Whether to verify SSL certificates
            timeout: Request timeout in seconds
            max_retries: Maximum number of retries for failed requests
            retry_backoff_factor: Backoff factor for retries
        """
        self.repo = repo
        self.api_url = api_url.rstrip('/')
        self.verify_ssl = verify_ssl
        self.timeout = timeout

        self.session = requests.Session()
        self.session.headers.update({
            'Authorization': f'token {token}',
            'Accept': 'application/vnd.github+json'
        })

        retry_strategy = Retry(
            total=max_retries,
            backoff_factor=retry_backoff_factor,
            status_forcelist=[500, 502, 503, 504],
            allowed_methods=['GET'],
            raise_on_status=False
        )

        adapter = HTTPAdapter(max_retries=retry_strategy)
        self.session.mount('http://', adapter)
        self.session.mount('https://', adapter)

        logger.debug(f"Initialized GitHub client for {repo} at {self.api_url}")

    @property
    def repo_url(self) -> str:
        return f"{self.api_url}/repos/{self.repo}"

    def _rate_limit_wait(self, response: requests.Response) -> Optional[float]:
        """Return seconds to wait if the response is a rate limit rejection."""
        if response.status_code == 429:
            retry_after = response.headers.get('Retry-After', '1')
            try:
                return float(int(retry_after))
            except ValueError:
                return 1.0

        if response.status_code == 403 and response.headers.get('X-RateLimit-Remaining') == '0':
            reset = response.headers.get('X-RateLimit-Reset')
            try:
                return max(float(reset) - time.time(), 0.0) + 1.0
            except (TypeError, ValueError):
                return 60.0

        return None

    def _make_request(
        self,
        method: str,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None
    ) -> requests.Response:
        """
        Make HTTP request with error handling and rate limit handling.

        Args:
            method: HTTP method (GET, POST)
            url: Absolute URL
            params: Query parameters
            json: JSON payload for POST requests
            headers: Extra request headers

        Returns:
            The response of a successful request

        Raises:
            requests.RequestException: For HTTP errors
        """
        logger.debug(f"{method} {url}")

        try:
            response = self.session.request(
                method=method,
                url=url,
                params=params,
                json=json,
                headers=headers,
                verify=self.verify_ssl,
                timeout=self.timeout
            )

            logger.debug(f"Response status: {response.status_code}")

            wait_time = self._rate_limit_wait(response)
            if wait_time is not None:
                logger.warning(f"Rate limited ({response.status_code}). Retrying after {wait_time:.0f}s")
                time.sleep(wait_time)
                return self._make_request(method, url, params=params, json=json, headers=headers)

            response.raise_for_status()
            return response

        except requests.RequestException as e:
            logger.error(f"Request failed: {method} {url} - {str(e)}")
            if getattr(e, 'response', None) is not None:
                logger.error(f"Response: {e.response.text}")
            raise

    def get_issue(self, number: int) -> Optional[Dict[str, Any]]:
        """
        Fetch an existing issue by number.

        Returns None when the issue does not exist or the lookup fails; a
        failed lookup is never treated as proof that the issue exists.
        """
        url = f"{self.repo_url}/issues/{number}"
        try:
            response = self.session.get(url, verify=self.verify_ssl, timeout=self.timeout)
        except requests.RequestException as e:
            logger.warning(f"Lookup of issue #{number} failed: {e}")
            return None

        if response.status_code == 200:
            return response.json()

        if response.status_code != 404:
            logger.warning(f"Lookup of issue #{number} returned HTTP {response.status_code}")
        return None

    def latest_issue_number(self) -> int:
        """Return the number of the most recently created issue, 0 if none."""
        response = self._make_request(
            'GET',
            f"{self.repo_url}/issues",
            params={'state': 'all', 'sort': 'created', 'direction': 'desc', 'per_page': 1}
        )
        issues = response.json()
        if not issues:
            return 0
        return int(issues[0]['number'])

    def create_import(self, payload: Dict[str, Any]) -> ImportJob:
        """Submit an issue with its comments to the import endpoint."""
        response = self._make_request(
            'POST',
            f"{self.repo_url}/import/issues",
            json=payload,
            headers={'Accept': self.IMPORT_MEDIA_TYPE}
        )
        return ImportJob.from_response(response.json())

    def get_import(self, url: str) -> ImportJob:
        """Fetch the current state of an import job by its URL."""
        response = self._make_request('GET', url, headers={'Accept': self.IMPORT_MEDIA_TYPE})
        return ImportJob.from_response(response.json())

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> 'GitHubClient':
        """
        Create client from configuration dictionary.

        Args:
            config: Configuration dict with 'github' section

        Returns:
            Configured GitHubClient instance
        """
        github_config = config.get('github', {})
        advanced_config = config.get('advanced', {})

        return cls(
            repo=github_config.get('repo'),
            token=github_config.get('token'),
            api_url=github_config.get('api_url', cls.DEFAULT_API_URL),
            verify_ssl=advanced_config.get('verify_ssl', True),
            timeout=advanced_config.get('request_timeout', cls.DEFAULT_TIMEOUT),
            max_retries=advanced_config.get('max_retries', cls.DEFAULT_MAX_RETRIES),
            retry_backoff_factor=advanced_config.get('retry_backoff_factor', cls.DEFAULT_RETRY_BACKOFF)
        )


__all__ = ['GitHubClient']
