"""API routes"""

from issue_operator.api import admission, desired_issues, secrets

__all__ = ["desired_issues", "secrets", "admission"]
