"""Parsing of ``owner/repo`` references"""
import re
from dataclasses import dataclass

from issue_operator.services.errors import MalformedReferenceError

REPO_PATTERN = r"^[a-zA-Z0-9_.-]+/[a-zA-Z0-9_.-]+$"
_REPO_RE = re.compile(REPO_PATTERN)


@dataclass(frozen=True)
class RepoRef:
    owner: str
    repo: str

    def __str__(self) -> str:
        return f"{self.owner}/{self.repo}"


def parse_repo_ref(value: str) -> RepoRef:
    """Split ``"owner/repo"`` into its parts."""
    value = (value or "").strip()
    if not _REPO_RE.match(value):
        raise MalformedReferenceError(f"invalid repository reference {value!r}, expected 'owner/repo'")
    owner, repo = value.split("/", 1)
    return RepoRef(owner=owner, repo=repo)
