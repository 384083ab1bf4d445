"""Main FastAPI application"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from issue_operator.api import admission, desired_issues, secrets
from issue_operator.config import settings
from issue_operator.models.base import init_db
from issue_operator.scheduler import scheduler
from issue_operator.security import BasicAuthMiddleware

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    logger.info("Starting GitHub Issue Operator")
    init_db()
    scheduler.start()
    yield
    logger.info("Stopping GitHub Issue Operator")
    scheduler.stop()


app = FastAPI(
    title="GitHub Issue Operator",
    description="Keep GitHub issues in sync with desired issue resources",
    version="0.1.0",
    lifespan=lifespan,
)

if settings.auth_enabled:
    if not settings.auth_username or not settings.auth_password:
        raise RuntimeError("AUTH_ENABLED=true requires AUTH_USERNAME and AUTH_PASSWORD to be set")
    app.add_middleware(
        BasicAuthMiddleware,
        username=settings.auth_username,
        password=settings.auth_password,
    )

app.include_router(desired_issues.router)
app.include_router(secrets.router)
app.include_router(admission.router)


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "service": "GitHub Issue Operator"}

