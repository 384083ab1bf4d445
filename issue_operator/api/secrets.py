"""Secret endpoints"""
from typing import Dict, List

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from issue_operator.models.base import get_db
from issue_operator.services.store import ResourceStore

router = APIRouter(prefix="/api/namespaces/{namespace}/secrets", tags=["secrets"])


class SecretWrite(BaseModel):
    data: Dict[str, str]


class SecretResponse(BaseModel):
    namespace: str
    name: str
    keys: List[str]


def _response(secret) -> SecretResponse:
    # Values are write-only.
    return SecretResponse(namespace=secret.namespace, name=secret.name, keys=sorted(secret.data or {}))


@router.put("/{name}", response_model=SecretResponse)
def put_secret(namespace: str, name: str, body: SecretWrite, db: Session = Depends(get_db)):
    """Create or replace a secret"""
    return _response(ResourceStore(db).put_secret(namespace, name, body.data))


@router.get("/{name}", response_model=SecretResponse)
def get_secret(namespace: str, name: str, db: Session = Depends(get_db)):
    """Show which keys a secret holds"""
    secret = ResourceStore(db).get_secret(namespace, name)
    if not secret:
        raise HTTPException(status_code=404, detail="Secret not found")
    return _response(secret)
