"""Desired issue reconciliation.

One call to ``IssueReconciler.reconcile`` is one cycle for one resource:

    fetch -> parse owner/repo -> deletion check -> list issues -> match
          -> create / update / nothing -> conditions -> status -> requeue

The reconciler keeps no state between cycles; everything it needs to remember
lives on the resource (finalizers and status).
"""

import enum
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, List, Optional, Tuple

from issue_operator.config import settings
from issue_operator.services.conditions import apply_conditions, build_conditions
from issue_operator.services.credentials import CredentialProvider
from issue_operator.services.errors import (
    DeletionHandled,
    DeletionMayBeHandled,
    ReconcileError,
)
from issue_operator.services.github_client import GitHubClient, GitHubClientConfig
from issue_operator.services.github_models import RemoteIssue
from issue_operator.services.matcher import match_issue
from issue_operator.services.repo_ref import RepoRef, parse_repo_ref

logger = logging.getLogger(__name__)

MATCH_BY_TITLE = "title"
MATCH_BY_NUMBER = "number"


class LifecyclePhase(str, enum.Enum):
    """Where a resource stands in the finalizer protocol"""

    ACTIVE = "active"
    # Deletion requested, our finalizer still holds the resource.
    FINALIZING = "finalizing"
    # Deletion requested, our finalizer is already gone.
    PENDING_DELETION = "pending_deletion"


class IssueAction(str, enum.Enum):
    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"
    CLOSED = "closed"
    NONE = "none"


@dataclass(frozen=True)
class ReconcileResult:
    """Outcome of one cycle; ``requeue_after`` is in seconds."""

    requeue_after: Optional[float] = None
    action: IssueAction = IssueAction.NONE
    issue: Optional[RemoteIssue] = None


def contains_finalizer(resource, finalizer: str) -> bool:
    return finalizer in (resource.finalizers or [])


def add_finalizer(resource, finalizer: str) -> bool:
    """Add ``finalizer``; returns True if the resource changed."""
    if contains_finalizer(resource, finalizer):
        return False
    resource.finalizers = list(resource.finalizers or []) + [finalizer]
    return True


def remove_finalizer(resource, finalizer: str) -> bool:
    """Remove ``finalizer``; returns True if the resource changed."""
    if not contains_finalizer(resource, finalizer):
        return False
    resource.finalizers = [f for f in resource.finalizers if f != finalizer]
    return True


def lifecycle_phase(resource, finalizer: str) -> LifecyclePhase:
    if resource.deletion_timestamp is None:
        return LifecyclePhase.ACTIVE
    if contains_finalizer(resource, finalizer):
        return LifecyclePhase.FINALIZING
    return LifecyclePhase.PENDING_DELETION


class IssueReconciler:
    """Keeps one GitHub issue per desired issue resource in sync"""

    def __init__(
        self,
        store,
        credentials: CredentialProvider,
        *,
        client_factory: Callable[..., GitHubClient] = GitHubClient,
        client_config: Optional[GitHubClientConfig] = None,
        finalizer: Optional[str] = None,
        requeue_after_s: Optional[float] = None,
        match_strategy: Optional[str] = None,
        deadline_s: Optional[float] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.store = store
        self.credentials = credentials
        self.client_factory = client_factory
        self.client_config = client_config or GitHubClientConfig.from_settings()
        self.finalizer = finalizer or settings.finalizer
        self.requeue_after_s = requeue_after_s if requeue_after_s is not None else settings.requeue_after_seconds
        self.match_strategy = match_strategy or settings.issue_match_strategy
        if self.match_strategy not in (MATCH_BY_TITLE, MATCH_BY_NUMBER):
            raise ValueError(f"Unknown issue match strategy: {self.match_strategy!r}")
        self.deadline_s = deadline_s if deadline_s is not None else settings.reconcile_deadline_seconds
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    @property
    def _prefer_number(self) -> bool:
        return self.match_strategy == MATCH_BY_NUMBER

    def reconcile(self, namespace: str, name: str) -> ReconcileResult:
        """Run one cycle for ``namespace/name``.

        Real failures are logged and re-raised as ReconcileError subclasses.
        """
        key = f"{namespace}/{name}"
        started = time.monotonic()

        try:
            resource = self.store.get(namespace, name)
            if resource is None:
                logger.info(f"DesiredIssue {key} not found, nothing to reconcile")
                return ReconcileResult()

            ref = parse_repo_ref(resource.repo)
            self._check_deletion(resource, ref, started)

            with self._open_client(started) as client:
                issues = client.list_issues(ref.owner, ref.repo)
                found = match_issue(
                    issues,
                    resource.title,
                    resource.issue_number,
                    prefer_number=self._prefer_number,
                )
                issue, action = self._handle_issue(client, ref, resource, found)

            self._update_status(resource, issue)
        except DeletionHandled:
            logger.info(f"DesiredIssue {key} deletion has been handled")
            return ReconcileResult(action=IssueAction.CLOSED)
        except DeletionMayBeHandled:
            logger.info(f"DesiredIssue {key} may have been deleted already")
            return ReconcileResult()
        except ReconcileError as e:
            logger.error(f"Failed to reconcile DesiredIssue {key}: {e}")
            raise

        logger.info(f"Reconciled DesiredIssue {key}: issue #{issue.number} {action.value}")
        return ReconcileResult(requeue_after=self.requeue_after_s, action=action, issue=issue)

    def _open_client(self, started: float) -> GitHubClient:
        session = self.credentials.authenticated_session()
        deadline = started + self.deadline_s if self.deadline_s else None
        return self.client_factory(session, config=self.client_config, deadline=deadline)

    def _check_deletion(self, resource, ref: RepoRef, started: float) -> None:
        """Run the finalizer protocol.

        Returns normally only for active resources (finalizer ensured);
        otherwise raises a DeletionSentinel or a ReconcileError.
        """
        phase = lifecycle_phase(resource, self.finalizer)

        if phase is LifecyclePhase.FINALIZING:
            with self._open_client(started) as client:
                client.close_issue(ref.owner, ref.repo, resource, prefer_number=self._prefer_number)
            remove_finalizer(resource, self.finalizer)
            self.store.update(resource)
            raise DeletionHandled()

        if phase is LifecyclePhase.PENDING_DELETION:
            raise DeletionMayBeHandled()

        if add_finalizer(resource, self.finalizer):
            self.store.update(resource)

    def _handle_issue(
        self,
        client: GitHubClient,
        ref: RepoRef,
        resource,
        found: Optional[RemoteIssue],
    ) -> Tuple[RemoteIssue, IssueAction]:
        """Create, update or leave the remote issue.

        Returns the issue the status should describe; when nothing changed
        that is the matched issue itself.
        """
        if found is None:
            created = client.create_issue(ref.owner, ref.repo, resource.title, resource.description)
            return created, IssueAction.CREATED

        if found.body != resource.description or found.title != resource.title:
            updated = client.update_issue(
                ref.owner, ref.repo, found.number, resource.description, resource.title
            )
            return updated, IssueAction.UPDATED

        return found, IssueAction.UNCHANGED

    def _update_status(self, resource, issue: Optional[RemoteIssue]) -> None:
        now = self.clock()
        conditions: List[dict] = apply_conditions(resource.conditions or [], build_conditions(issue), now)
        resource.conditions = conditions
        if self._prefer_number and issue is not None:
            resource.issue_number = issue.number
        self.store.update_status(resource)
