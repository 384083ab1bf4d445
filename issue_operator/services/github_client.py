"""GitHub issues REST client"""
import logging
import time
from dataclasses import dataclass
from typing import Any, List, Optional

import requests

from issue_operator.config import settings
from issue_operator.services.errors import IssueNotFoundError, RemoteServiceError
from issue_operator.services.github_models import CLOSED, OPEN, RemoteIssue, issue_payload
from issue_operator.services.matcher import match_issue

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GitHubClientConfig:
    """Endpoint and protocol settings for GitHubClient"""

    base_url: str = "https://api.github.com"
    accept: str = "application/vnd.github.v3+json"
    content_type: str = "application/json"
    timeout_s: float = 30.0

    @classmethod
    def from_settings(cls, s=settings) -> "GitHubClientConfig":
        return cls(
            base_url=s.github_api_url,
            accept=s.github_accept,
            timeout_s=s.github_request_timeout_seconds,
        )


class GitHubClient:
    """Issue operations against one GitHub API endpoint.

    ``session`` must already carry the credentials. ``deadline`` is a
    ``time.monotonic()`` instant; request timeouts are clipped to what is left
    of it, and no request is started once it has passed. requests applies the
    timeout per socket wait, so a response that finishes after the deadline is
    rejected instead of decoded.
    """

    def __init__(
        self,
        session: requests.Session,
        config: Optional[GitHubClientConfig] = None,
        deadline: Optional[float] = None,
    ):
        self.session = session
        self.config = config or GitHubClientConfig()
        self.deadline = deadline

    def __enter__(self) -> "GitHubClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def close(self) -> None:
        self.session.close()

    def _url(self, owner: str, repo: str, number: Optional[int] = None) -> str:
        base = self.config.base_url.rstrip("/")
        if number is None:
            return f"{base}/repos/{owner}/{repo}/issues"
        return f"{base}/repos/{owner}/{repo}/issues/{int(number)}"

    def _timeout(self) -> float:
        if self.deadline is None:
            return self.config.timeout_s
        remaining = self.deadline - time.monotonic()
        if remaining <= 0:
            raise RemoteServiceError("reconcile deadline exceeded before GitHub request")
        return min(self.config.timeout_s, remaining)

    def _send(self, method: str, url: str, payload: Optional[dict] = None) -> Any:
        """Send one request and return the decoded JSON body."""
        headers = {"Accept": self.config.accept, "Content-Type": self.config.content_type}
        try:
            # The context manager releases the connection on every path.
            with self.session.request(
                method, url, json=payload, headers=headers, timeout=self._timeout()
            ) as response:
                if not response.ok:
                    raise RemoteServiceError(
                        f"GitHub {method} {url} failed with status code: {response.status_code}",
                        status_code=response.status_code,
                    )
                if self.deadline is not None and time.monotonic() >= self.deadline:
                    raise RemoteServiceError(f"reconcile deadline exceeded during GitHub {method} {url}")
                try:
                    return response.json()
                except ValueError as e:
                    raise RemoteServiceError(f"Failed to decode GitHub response from {url}: {e}") from e
        except requests.RequestException as e:
            raise RemoteServiceError(f"GitHub {method} {url} failed: {e}") from e

    def list_issues(self, owner: str, repo: str) -> List[RemoteIssue]:
        """List the repository's issues"""
        url = self._url(owner, repo)
        try:
            data = self._send("GET", url)
            if not isinstance(data, list):
                raise RemoteServiceError(f"Expected a list of issues from {url}, got {type(data).__name__}")
            return [RemoteIssue.from_api(item) for item in data]
        except (KeyError, TypeError, ValueError) as e:
            logger.error(f"Malformed issue in listing for {owner}/{repo}: {e}")
            raise RemoteServiceError(f"Malformed issue in listing for {owner}/{repo}: {e}") from e
        except RemoteServiceError as e:
            logger.error(f"Failed to list issues for {owner}/{repo}: {e}")
            raise

    def _send_issue(self, method: str, url: str, payload: dict) -> RemoteIssue:
        data = self._send(method, url, payload)
        if not isinstance(data, dict):
            raise RemoteServiceError(f"Expected an issue object from {url}, got {type(data).__name__}")
        try:
            return RemoteIssue.from_api(data)
        except (KeyError, TypeError, ValueError) as e:
            raise RemoteServiceError(f"Malformed issue returned by {url}: {e}") from e

    def create_issue(self, owner: str, repo: str, title: str, body: str) -> RemoteIssue:
        """Create a new open issue"""
        try:
            issue = self._send_issue("POST", self._url(owner, repo), issue_payload(title, body, OPEN))
            logger.info(f"Created issue #{issue.number} in {owner}/{repo}")
            return issue
        except RemoteServiceError as e:
            logger.error(f"Failed to create issue in {owner}/{repo}: {e}")
            raise

    def update_issue(self, owner: str, repo: str, number: int, body: str, title: str) -> RemoteIssue:
        """Rewrite an issue's title and body, leaving it open"""
        try:
            issue = self._send_issue("POST", self._url(owner, repo, number), issue_payload(title, body, OPEN))
            logger.info(f"Updated issue #{number} in {owner}/{repo}")
            return issue
        except RemoteServiceError as e:
            logger.error(f"Failed to update issue #{number} in {owner}/{repo}: {e}")
            raise

    def close_issue(self, owner: str, repo: str, desired, *, prefer_number: bool = False) -> RemoteIssue:
        """Close the remote issue matching ``desired`` (title, description).

        Raises IssueNotFoundError when nothing matches.
        """
        issues = self.list_issues(owner, repo)
        found = match_issue(
            issues,
            desired.title,
            getattr(desired, "issue_number", None),
            prefer_number=prefer_number,
        )
        if found is None:
            raise IssueNotFoundError(f"issue not found: {desired.title!r} in {owner}/{repo}", status_code=404)

        try:
            issue = self._send_issue(
                "POST",
                self._url(owner, repo, found.number),
                issue_payload(desired.title, desired.description, CLOSED),
            )
            logger.info(f"Closed issue #{found.number} in {owner}/{repo}")
            return issue
        except RemoteServiceError as e:
            logger.error(f"Failed to close issue #{found.number} in {owner}/{repo}: {e}")
            raise
