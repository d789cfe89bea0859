# backend/helperhive/run.py
"""
Local runners.

    helperhive                # uvicorn API server, reloading in development
    helperhive worker         # Celery worker on the notifications queue
    helperhive beat           # Celery beat (outbox dispatch schedule)
"""

import os
import subprocess
import sys
from typing import List, Optional

import uvicorn

from .core.config import settings


def _celery(args: List[str]) -> int:
    cmd = [sys.executable, "-m", "celery", "-A", "helperhive.tasks.celery_app", *args]
    return subprocess.run(cmd).returncode


def main(argv: Optional[List[str]] = None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)
    command = argv[0] if argv else "api"

    if command == "worker":
        queues = os.getenv("CELERY_QUEUES", "notifications,celery")
        return _celery(["worker", "--loglevel=info", "--concurrency=2", "-Q", queues])
    if command == "beat":
        return _celery(["beat", "--loglevel=info"])
    if command != "api":
        print(f"Unknown command: {command} (expected api, worker or beat)", file=sys.stderr)
        return 2

    uvicorn.run(
        "helperhive.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        reload=settings.environment == "development",
        log_level=settings.log_level.lower(),
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
