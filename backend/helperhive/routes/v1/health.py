# backend/helperhive/routes/v1/health.py
"""Liveness endpoint for load balancers and uptime checks."""

from datetime import datetime, timezone
import os

from fastapi import APIRouter, Response
from pydantic import BaseModel

from ... import __version__
from ...core.config import settings
from ...core.constants import BRAND_NAME

router = APIRouter(tags=["health"])

COMMIT_ENV_VARS = ("GIT_SHA", "COMMIT_SHA")


class HealthResponse(BaseModel):
    status: str
    service: str
    version: str
    environment: str
    timestamp: str
    git_sha: str


def deployed_commit() -> str:
    for name in COMMIT_ENV_VARS:
        value = (os.getenv(name) or "").strip()
        if value:
            return value
    return "unknown"


@router.get("", response_model=HealthResponse)
def health_check(response: Response) -> HealthResponse:
    """Answers without touching the database or the broker."""
    commit = deployed_commit()
    response.headers["X-Commit-Sha"] = commit
    return HealthResponse(
        status="healthy",
        service=f"{BRAND_NAME.lower()}-api",
        version=__version__,
        environment=settings.environment,
        timestamp=datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
        git_sha=commit,
    )
