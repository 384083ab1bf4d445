"""Namespace admission webhook.

Logs who created, updated or deleted a namespace and always lets the request
through. It shares nothing with the reconciler.
"""
import logging
from functools import lru_cache
from typing import Any, Dict, Optional

from fastapi import APIRouter
from pydantic import BaseModel, Field

from issue_operator.config import settings
from issue_operator.services.admission_logger import AdmissionLogger

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admission", tags=["admission"])


class UserInfo(BaseModel):
    username: str = ""


class AdmissionRequest(BaseModel):
    uid: str = ""
    operation: str = ""
    user_info: UserInfo = Field(default_factory=UserInfo, alias="userInfo")
    object: Optional[Dict[str, Any]] = None
    old_object: Optional[Dict[str, Any]] = Field(default=None, alias="oldObject")

    class Config:
        populate_by_name = True


class AdmissionReview(BaseModel):
    api_version: str = Field(default="admission.k8s.io/v1", alias="apiVersion")
    kind: str = "AdmissionReview"
    request: Optional[AdmissionRequest] = None

    class Config:
        populate_by_name = True


def _review_response(review: AdmissionReview, allowed: bool, code: int, message: str) -> Dict[str, Any]:
    uid = review.request.uid if review.request else ""
    return {
        "apiVersion": review.api_version,
        "kind": "AdmissionReview",
        "response": {
            "uid": uid,
            "allowed": allowed,
            "status": {"code": code, "message": message},
        },
    }


def _decode_namespace(request: AdmissionRequest) -> Dict[str, Any]:
    """Return the namespace the request is about (deletes only carry oldObject)."""
    obj = request.object or request.old_object
    if not obj:
        raise ValueError("there is no content to decode")
    kind = obj.get("kind")
    if kind and kind != "Namespace":
        raise ValueError(f"expected a Namespace, got {kind}")
    return obj


def handle_review(review: AdmissionReview, admission_logger: AdmissionLogger) -> Dict[str, Any]:
    if review.request is None:
        return _review_response(review, False, 400, "admission review has no request")

    try:
        namespace = _decode_namespace(review.request)
    except ValueError as e:
        return _review_response(review, False, 400, str(e))

    username = review.request.user_info.username
    operation = review.request.operation
    try:
        admission_logger.record(username, operation)
    except OSError as e:
        logger.error(f"Failed to record {operation} by {username!r}: {e}")
        return _review_response(review, False, 500, str(e))

    ns_name = (namespace.get("metadata") or {}).get("name", "")
    logger.info(f"Namespace {ns_name!r} {operation} by {username!r}")
    return _review_response(review, True, 200, "Username written")


@lru_cache(maxsize=None)
def _admission_logger(path: str) -> AdmissionLogger:
    return AdmissionLogger(path)


@router.post("/namespaces")
def review_namespace(review: AdmissionReview):
    """Admission review endpoint for namespace operations"""
    return handle_review(review, _admission_logger(settings.admission_log_path))
