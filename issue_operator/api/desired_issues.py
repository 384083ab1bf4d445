"""Desired issue resource endpoints"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from issue_operator.models.base import get_db
from issue_operator.scheduler import scheduler
from issue_operator.services.errors import PersistenceError
from issue_operator.services.repo_ref import REPO_PATTERN
from issue_operator.services.store import ResourceStore

router = APIRouter(prefix="/api/namespaces/{namespace}/desiredissues", tags=["desired-issues"])


class DesiredIssueSpec(BaseModel):
    repo: str = Field(..., pattern=REPO_PATTERN)
    title: str = Field(..., min_length=1)
    description: str = ""


class DesiredIssueCreate(DesiredIssueSpec):
    name: str = Field(..., min_length=1)


class DesiredIssueResponse(BaseModel):
    namespace: str
    name: str
    repo: str
    title: str
    description: str
    finalizers: List[str] = []
    deletion_timestamp: Optional[datetime] = None
    conditions: List[Dict[str, Any]] = []
    issue_number: Optional[int] = None
    resource_version: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


def _get_or_404(store: ResourceStore, namespace: str, name: str):
    resource = store.get(namespace, name)
    if not resource:
        raise HTTPException(status_code=404, detail="DesiredIssue not found")
    return resource


@router.get("/", response_model=List[DesiredIssueResponse])
def list_desired_issues(namespace: str, db: Session = Depends(get_db)):
    """List desired issues in a namespace"""
    return ResourceStore(db).list(namespace)


@router.post("/", response_model=DesiredIssueResponse, status_code=201)
def create_desired_issue(namespace: str, body: DesiredIssueCreate, db: Session = Depends(get_db)):
    """Create a desired issue"""
    store = ResourceStore(db)
    if store.get(namespace, body.name):
        raise HTTPException(status_code=409, detail="DesiredIssue already exists")
    try:
        resource = store.create(namespace, body.name, body.repo, body.title, body.description)
    except PersistenceError as e:
        raise HTTPException(status_code=409, detail=str(e))
    scheduler.enqueue(namespace, body.name)
    return resource


@router.get("/{name}", response_model=DesiredIssueResponse)
def get_desired_issue(namespace: str, name: str, db: Session = Depends(get_db)):
    """Get a desired issue, status included"""
    return _get_or_404(ResourceStore(db), namespace, name)


@router.put("/{name}", response_model=DesiredIssueResponse)
def update_desired_issue(namespace: str, name: str, body: DesiredIssueSpec, db: Session = Depends(get_db)):
    """Replace a desired issue's spec"""
    store = ResourceStore(db)
    resource = _get_or_404(store, namespace, name)
    try:
        resource = store.update_spec(resource, body.repo, body.title, body.description)
    except PersistenceError as e:
        raise HTTPException(status_code=409, detail=str(e))
    scheduler.enqueue(namespace, name)
    return resource


@router.delete("/{name}")
def delete_desired_issue(namespace: str, name: str, db: Session = Depends(get_db)):
    """Request deletion; the issue is closed before the resource goes away"""
    store = ResourceStore(db)
    resource = _get_or_404(store, namespace, name)
    try:
        removed = store.request_deletion(resource)
    except PersistenceError as e:
        raise HTTPException(status_code=409, detail=str(e))
    if removed:
        return {"message": "DesiredIssue deleted", "removed": True}
    scheduler.enqueue(namespace, name)
    return {"message": "DesiredIssue deletion requested", "removed": False}
