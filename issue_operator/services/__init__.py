"""Services"""

from issue_operator.services.github_client import GitHubClient
from issue_operator.services.reconciler import IssueReconciler
from issue_operator.services.store import ResourceStore

__all__ = ["GitHubClient", "IssueReconciler", "ResourceStore"]
