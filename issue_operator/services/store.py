"""Resource store backed by SQLAlchemy"""
import logging
from typing import Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from issue_operator.models import DesiredIssue, Secret
from issue_operator.models.base import utcnow
from issue_operator.services.errors import PersistenceError

logger = logging.getLogger(__name__)


class ResourceStore:
    """Reads and writes desired issues the way a platform API server would.

    A resource that has been asked to go away is only removed once its
    finalizer list is empty.
    """

    def __init__(self, db: Session):
        self.db = db

    def _commit(self, what: str) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError(f"Failed to {what}: {e}") from e

    def get(self, namespace: str, name: str) -> Optional[DesiredIssue]:
        try:
            return (
                self.db.query(DesiredIssue)
                .filter(DesiredIssue.namespace == namespace, DesiredIssue.name == name)
                .first()
            )
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to read {namespace}/{name}: {e}") from e

    def list(self, namespace: Optional[str] = None) -> List[DesiredIssue]:
        query = self.db.query(DesiredIssue)
        if namespace is not None:
            query = query.filter(DesiredIssue.namespace == namespace)
        return query.order_by(DesiredIssue.namespace, DesiredIssue.name).all()

    def create(self, namespace: str, name: str, repo: str, title: str, description: str = "") -> DesiredIssue:
        resource = DesiredIssue(
            namespace=namespace,
            name=name,
            repo=repo,
            title=title,
            description=description or "",
            finalizers=[],
            conditions=[],
        )
        self.db.add(resource)
        self._commit(f"create {namespace}/{name}")
        self.db.refresh(resource)
        return resource

    def update_spec(self, resource: DesiredIssue, repo: str, title: str, description: str) -> DesiredIssue:
        resource.repo = repo
        resource.title = title
        resource.description = description or ""
        self._commit(f"update {resource.namespace}/{resource.name}")
        self.db.refresh(resource)
        return resource

    def update(self, resource: DesiredIssue) -> None:
        """Persist metadata changes (finalizers).

        Removes the resource once deletion was requested and nothing blocks it.
        """
        if resource.deletion_timestamp is not None and not resource.finalizers:
            logger.info(f"Removing {resource.namespace}/{resource.name}: no finalizers left")
            self.db.delete(resource)
        self._commit(f"update {resource.namespace}/{resource.name}")

    def update_status(self, resource: DesiredIssue) -> None:
        """Persist status (conditions, observed issue number)."""
        self._commit(f"update status of {resource.namespace}/{resource.name}")

    def request_deletion(self, resource: DesiredIssue) -> bool:
        """Ask for removal; returns True if the resource is gone right away."""
        if not resource.finalizers:
            self.db.delete(resource)
            self._commit(f"delete {resource.namespace}/{resource.name}")
            return True
        if resource.deletion_timestamp is None:
            resource.deletion_timestamp = utcnow()
            self._commit(f"mark {resource.namespace}/{resource.name} for deletion")
        return False

    def get_secret(self, namespace: str, name: str) -> Optional[Secret]:
        return self.db.query(Secret).filter(Secret.namespace == namespace, Secret.name == name).first()

    def put_secret(self, namespace: str, name: str, data: Dict[str, str]) -> Secret:
        secret = self.get_secret(namespace, name)
        if secret is None:
            secret = Secret(namespace=namespace, name=name, data=dict(data))
            self.db.add(secret)
        else:
            secret.data = dict(data)
        self._commit(f"store secret {namespace}/{name}")
        self.db.refresh(secret)
        return secret
