"""Resource store models"""

from issue_operator.models.base import Base
from issue_operator.models.desired_issue import DesiredIssue
from issue_operator.models.secret import Secret

__all__ = [
    "Base",
    "DesiredIssue",
    "Secret",
]
