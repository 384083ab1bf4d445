"""Reconciliation error types.

``ReconcileError`` subclasses are real failures: they abort the cycle and are
surfaced so the dispatcher can retry with backoff. ``DeletionSentinel``
subclasses only signal that the deletion protocol already finished the cycle.
"""

from typing import Optional


class ReconcileError(Exception):
    """A reconcile cycle failed and should be retried."""


class MalformedReferenceError(ReconcileError, ValueError):
    """The resource's repo reference is not of the form ``owner/repo``."""


class CredentialError(ReconcileError):
    """The API token secret is missing or unusable."""


class RemoteServiceError(ReconcileError):
    """A GitHub request failed (transport, HTTP status or decoding)."""

    def __init__(self, message: str, *, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class IssueNotFoundError(RemoteServiceError):
    """No remote issue matches the desired one."""


class PersistenceError(ReconcileError):
    """Writing the resource (finalizers or status) back to the store failed."""


class DeletionSentinel(Exception):
    """Deletion handling ended the cycle; not a failure."""


class DeletionHandled(DeletionSentinel):
    """The remote issue was closed and the finalizer released."""


class DeletionMayBeHandled(DeletionSentinel):
    """Deletion is in progress but our finalizer is already gone."""
