#!/usr/bin/env python3
"""Entry point to run the matching API server."""
from __future__ import annotations

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent))

import uvicorn

from talentnest.config import get_env
from talentnest.log import get_logger

log = get_logger(__name__)


def _check_setup() -> bool:
    """Return True if required credentials are missing."""
    missing: list[str] = []
    if not get_env("ADMIN_SECRET_KEY"):
        missing.append("ADMIN_SECRET_KEY")
    if not (get_env("EMBEDDING_API_KEY") or get_env("OPENAI_API_KEY")):
        missing.append("EMBEDDING_API_KEY (or OPENAI_API_KEY)")
    if missing:
        log.error("Missing settings in .env: %s", ", ".join(missing))
        return True
    if not get_env("GROQ_API_KEY"):
        log.warning("No GROQ_API_KEY — shortlisted applicants will not get feedback")
    return False


if __name__ == "__main__":
    if _check_setup():
        sys.exit(1)

    host = get_env("HOST", "0.0.0.0")
    port = int(get_env("PORT", "8000"))
    log.info("Starting matcher on %s:%d", host, port)
    uvicorn.run("talentnest.server:create_app", factory=True, host=host, port=port)
