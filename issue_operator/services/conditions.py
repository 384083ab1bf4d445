"""Status conditions for desired issues.

Conditions are stored on the resource as a JSON list, one record per type::

    {"type": "OpenIssue", "status": true, "reason": "IssueExists",
     "message": "Issue is open", "lastTransitionTime": "2024-05-01T10:00:00+00:00"}

``lastTransitionTime`` only moves when ``status`` flips.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from issue_operator.services.github_models import RemoteIssue

OPEN_ISSUE = "OpenIssue"
ISSUE_HAS_PR = "IssueHasPR"


@dataclass(frozen=True)
class Condition:
    type: str
    status: bool
    reason: str
    message: str

    def to_record(self, transition_time: datetime) -> Dict[str, Any]:
        return {
            "type": self.type,
            "status": self.status,
            "reason": self.reason,
            "message": self.message,
            "lastTransitionTime": transition_time.isoformat(),
        }


def build_conditions(issue: Optional[RemoteIssue]) -> List[Condition]:
    """Derive conditions from the issue a sync cycle ended up with.

    OpenIssue is always true: a failed create aborts the cycle before this.
    """
    conditions = [Condition(OPEN_ISSUE, True, "IssueExists", "Issue is open")]
    if issue is not None and issue.has_pull_request:
        conditions.append(Condition(ISSUE_HAS_PR, True, "IssueHasAPRLink", "Issue has a PR"))
    else:
        conditions.append(Condition(ISSUE_HAS_PR, False, "IssueHasNoPR", "Issue does not have a PR"))
    return conditions


def find_condition(records: Iterable[Dict[str, Any]], condition_type: str) -> Optional[Dict[str, Any]]:
    for record in records or ():
        if record.get("type") == condition_type:
            return record
    return None


def set_condition(
    records: Iterable[Dict[str, Any]],
    condition: Condition,
    now: Optional[datetime] = None,
) -> List[Dict[str, Any]]:
    """Upsert ``condition`` by type and return a new list of records."""
    now = now or datetime.now(timezone.utc)
    result: List[Dict[str, Any]] = []
    replaced = False
    for record in records or ():
        if record.get("type") != condition.type:
            result.append(dict(record))
            continue
        if replaced:
            # Collapse duplicate records of one type.
            continue
        replaced = True
        if record.get("status") == condition.status and record.get("lastTransitionTime"):
            updated = condition.to_record(now)
            updated["lastTransitionTime"] = record["lastTransitionTime"]
        else:
            updated = condition.to_record(now)
        result.append(updated)
    if not replaced:
        result.append(condition.to_record(now))
    return result


def apply_conditions(
    records: Iterable[Dict[str, Any]],
    conditions: Iterable[Condition],
    now: Optional[datetime] = None,
) -> List[Dict[str, Any]]:
    result = [dict(r) for r in records or ()]
    for condition in conditions:
        result = set_condition(result, condition, now)
    return result
