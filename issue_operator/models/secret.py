"""Secret model"""
from sqlalchemy import JSON, Column, DateTime, Integer, String, UniqueConstraint

from issue_operator.models.base import Base, utcnow


class Secret(Base):
    """Named bag of string values (API tokens and the like)"""

    __tablename__ = "secrets"
    __table_args__ = (UniqueConstraint("namespace", "name", name="uq_secrets_namespace_name"),)

    id = Column(Integer, primary_key=True, index=True)
    namespace = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    data = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    def __repr__(self):
        # Never include values.
        return f"<Secret(namespace='{self.namespace}', name='{self.name}', keys={sorted(self.data or {})})>"
