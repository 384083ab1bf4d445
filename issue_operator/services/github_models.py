"""GitHub issue payloads"""
from dataclasses import dataclass
from typing import Any, Dict, Optional

OPEN = "open"
CLOSED = "closed"


@dataclass(frozen=True)
class RemoteIssue:
    """An issue as returned by the GitHub issues API"""

    number: int
    title: str
    body: str = ""
    state: str = OPEN
    url: str = ""
    pull_request_url: Optional[str] = None

    @property
    def has_pull_request(self) -> bool:
        return self.pull_request_url is not None

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "RemoteIssue":
        """Build from a decoded API object.

        GitHub sends ``pull_request``; ``pullRequest`` is accepted as well.
        An empty body comes back as ``null``.
        """
        link = data.get("pull_request") or data.get("pullRequest")
        pr_url = None
        if isinstance(link, dict):
            pr_url = link.get("url") or link.get("html_url") or ""
        return cls(
            number=int(data["number"]),
            title=str(data.get("title") or ""),
            body=data.get("body") or "",
            state=str(data.get("state") or OPEN),
            url=str(data.get("url") or ""),
            pull_request_url=pr_url,
        )


def issue_payload(title: str, body: str, state: str) -> Dict[str, str]:
    """Request body shared by create, update and close."""
    return {"title": title, "body": body, "state": state}
