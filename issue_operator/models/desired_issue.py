"""Desired issue resource model"""
from sqlalchemy import JSON, Column, DateTime, Integer, String, Text, UniqueConstraint

from issue_operator.models.base import Base, utcnow


class DesiredIssue(Base):
    """Declarative description of one GitHub issue.

    ``repo``, ``title`` and ``description`` are the spec, written by users.
    The reconciler only ever touches ``finalizers`` and the status fields
    (``conditions`` and ``issue_number``).
    """

    __tablename__ = "desired_issues"
    __table_args__ = (
        UniqueConstraint("namespace", "name", name="uq_desired_issues_namespace_name"),
    )

    id = Column(Integer, primary_key=True, index=True)
    namespace = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)

    # Spec
    repo = Column(String, nullable=False)  # "owner/repo"
    title = Column(String, nullable=False)
    description = Column(Text, nullable=False, default="")

    # Metadata
    # JSON columns don't track in-place mutation: always assign a new list.
    finalizers = Column(JSON, nullable=False, default=list)
    deletion_timestamp = Column(DateTime, nullable=True)
    resource_version = Column(Integer, nullable=False)

    # Status
    conditions = Column(JSON, nullable=False, default=list)
    issue_number = Column(Integer, nullable=True)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    # Every UPDATE is conditional on the version we read.
    __mapper_args__ = {"version_id_col": resource_version}

    def __repr__(self):
        return f"<DesiredIssue(namespace='{self.namespace}', name='{self.name}', repo='{self.repo}')>"
