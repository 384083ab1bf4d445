"""Locating the remote issue that corresponds to a desired issue"""
from typing import Iterable, Optional

from issue_operator.services.github_models import RemoteIssue


def find_issue(issues: Iterable[RemoteIssue], title: str) -> Optional[RemoteIssue]:
    """Return the first issue whose title equals ``title`` exactly.

    Later issues with the same title are never considered.
    """
    for issue in issues:
        if issue.title == title:
            return issue
    return None


def find_issue_by_number(issues: Iterable[RemoteIssue], number: Optional[int]) -> Optional[RemoteIssue]:
    if number is None:
        return None
    for issue in issues:
        if issue.number == number:
            return issue
    return None


def match_issue(
    issues: Iterable[RemoteIssue],
    title: str,
    number: Optional[int] = None,
    *,
    prefer_number: bool = False,
) -> Optional[RemoteIssue]:
    """Match by remembered number first (when enabled), then by title."""
    issues = list(issues)
    if prefer_number:
        found = find_issue_by_number(issues, number)
        if found is not None:
            return found
    return find_issue(issues, title)
