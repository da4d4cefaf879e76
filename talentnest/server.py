"""FastAPI app exposing the admin resume-matching stream.

    GET /api/v1/admin/match-talents/{job_id}   text/event-stream

Each event is ``data: <json>\\n\\n`` with at least ``step`` and ``success``.
The pipeline runs on a worker thread; when the client disconnects the run
is cancelled so no further remote calls are made.
"""
from __future__ import annotations

import asyncio
import json
from typing import Any, AsyncIterator

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.responses import JSONResponse, StreamingResponse

from talentnest.auth import ADMIN_COOKIE, AdminSession, AuthError, signing_key, verify_admin_token
from talentnest.config import MatchingConfig, get_env, load_matching_config
from talentnest.log import get_logger
from talentnest.matcher import MatchingRun, TalentMatcher
from talentnest.rate_limit import DailyCallLimiter, RateLimitExceeded
from talentnest.stores import get_store

log = get_logger(__name__)

router = APIRouter(prefix="/api/v1/admin")

_SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def format_sse(event: dict[str, Any]) -> str:
    return f"data: {json.dumps(event, default=str)}\n\n"


def require_admin(request: Request) -> AdminSession:
    return verify_admin_token(
        request.cookies.get(ADMIN_COOKIE),
        secret=request.app.state.admin_secret,
    )


async def stream_run(request: Request, run: MatchingRun, poll_interval: float = 1.0) -> AsyncIterator[str]:
    """Relay run events as SSE frames; cancel the run if the client leaves."""
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue = asyncio.Queue()
    done = object()

    def pump() -> None:
        try:
            for event in run.events():
                loop.call_soon_threadsafe(queue.put_nowait, event)
        except RuntimeError:
            # event loop already closed; the client is gone
            run.cancel()
            return
        try:
            loop.call_soon_threadsafe(queue.put_nowait, done)
        except RuntimeError:
            pass

    worker = loop.run_in_executor(None, pump)
    try:
        while True:
            try:
                event = await asyncio.wait_for(queue.get(), timeout=poll_interval)
            except asyncio.TimeoutError:
                if await request.is_disconnected():
                    log.info("Client disconnected from match stream for job %s", run.job_id)
                    break
                continue
            if event is done:
                break
            yield format_sse(event)
    finally:
        run.cancel()
        if worker.done() and not worker.cancelled() and worker.exception():
            log.error("Match worker crashed: %s", worker.exception())


@router.get("/match-talents/{job_id}")
async def match_talents(
    job_id: str,
    request: Request,
    session: AdminSession = Depends(require_admin),
):
    request.app.state.limiter.acquire(session.admin_id, exempt=session.is_super_admin)
    log.info("Admin %s started matching for job %s", session.admin_id, job_id)
    run = request.app.state.matcher.start(job_id)
    poll = request.app.state.config.pipeline.disconnect_poll_interval
    return StreamingResponse(
        stream_run(request, run, poll),
        media_type="text/event-stream",
        headers=_SSE_HEADERS,
    )


def _auth_error(request: Request, exc: AuthError) -> JSONResponse:
    return JSONResponse({"success": False, "message": exc.message}, status_code=exc.status_code)


def _rate_limited(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    return JSONResponse({"success": False, "message": exc.message}, status_code=429)


def create_app(
    matcher: TalentMatcher | None = None,
    *,
    config: MatchingConfig | None = None,
    limiter: DailyCallLimiter | None = None,
    admin_secret: str | None = None,
) -> FastAPI:
    secret = signing_key(admin_secret)
    config = config or load_matching_config()
    if matcher is None:
        store = get_store(get_env)
        matcher = TalentMatcher(jobs=store, talents=store, applications=store, config=config)

    app = FastAPI(title="TalentNest Matcher")
    app.state.config = config
    app.state.matcher = matcher
    app.state.limiter = limiter or DailyCallLimiter(config.rate_limit)
    app.state.admin_secret = secret
    app.add_exception_handler(AuthError, _auth_error)
    app.add_exception_handler(RateLimitExceeded, _rate_limited)
    app.include_router(router)
    return app
