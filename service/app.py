"""HTTP routes around the poll engine.

Session coverage travels in a signed cookie; everything else is JSON or a
redirect.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.middleware.sessions import SessionMiddleware

from datasource.base import BaseDataSource, FetchError
from poll_core import __version__
from poll_core.coverage import SessionCoverage
from poll_core.engine import PollEngine
from poll_core.errors import CandidateNotFound, CapacityError, CoverageExhausted
from poll_core.schemas import Candidate, VoteDirection
from snapshots import PeriodicSaver, SnapshotError

logger = logging.getLogger(__name__)

COVERAGE_KEY = "coverage"
SESSION_COOKIE = "hotpolls_session"


def _session_coverage(request: Request) -> SessionCoverage:
    return SessionCoverage.from_token(request.session.get(COVERAGE_KEY))


def _store_coverage(request: Request, coverage: SessionCoverage) -> None:
    request.session[COVERAGE_KEY] = coverage.to_token()


def _detail_document(candidate: Candidate) -> dict[str, Any]:
    details = candidate.details
    return {
        "slug": candidate.slug,
        "name": details.name,
        "office": details.office,
        "party": details.party,
        "quote": details.quote or "",
        "years_in_office": details.years_in_office or "",
        "term_year": details.term_year,
        "term_length": details.term_length,
        "image_url": details.image_url,
    }


def create_app(
    engine: PollEngine,
    *,
    session_secret: str,
    source: BaseDataSource | None = None,
    saver: PeriodicSaver | None = None,
) -> FastAPI:
    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        if saver is not None:
            saver.start()
        try:
            yield
        finally:
            if saver is not None:
                await asyncio.to_thread(saver.stop, final_save=True)

    app = FastAPI(title="hotpolls", version=__version__, lifespan=lifespan)
    app.add_middleware(SessionMiddleware, secret_key=session_secret, session_cookie=SESSION_COOKIE)

    @app.exception_handler(CandidateNotFound)
    async def candidate_not_found(_: Request, exc: CandidateNotFound) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.get("/")
    def next_candidate(request: Request) -> RedirectResponse:
        try:
            slug, coverage = engine.next_for_session(_session_coverage(request))
        except CoverageExhausted:
            raise HTTPException(status_code=404, detail="No candidates loaded") from None
        _store_coverage(request, coverage)
        return RedirectResponse(url=f"/vote/{slug}", status_code=302)

    @app.get("/vote/{slug}")
    def vote_page(slug: str, request: Request) -> dict[str, Any]:
        candidate = engine.get_candidate(slug)
        _store_coverage(request, engine.mark_visited(_session_coverage(request), slug))
        return _detail_document(candidate)

    @app.post("/vote/{slug}/{direction}")
    def cast_vote(slug: str, direction: VoteDirection) -> RedirectResponse:
        _ = engine.cast_vote(slug, direction)
        return RedirectResponse(url=f"/stats/{slug}", status_code=303)

    @app.get("/stats/{slug}")
    def stats(slug: str) -> dict[str, Any]:
        candidate = engine.get_candidate(slug)
        document = _detail_document(candidate)
        document.update({"hot": candidate.hot, "not": candidate.not_, "score": candidate.score})
        return document

    @app.get("/index.json")
    def index() -> list[dict[str, Any]]:
        return [summary.to_dict() for summary in engine.summaries()]

    @app.post("/reload_data")
    def reload_data() -> dict[str, Any]:
        if source is None:
            raise HTTPException(status_code=503, detail="No data source configured")
        try:
            report = engine.refresh(source)
        except FetchError as exc:
            raise HTTPException(status_code=502, detail=str(exc)) from exc
        except CapacityError as exc:
            logger.error(f"Reload rejected: {exc}")
            raise HTTPException(status_code=409, detail=str(exc)) from exc
        return {
            "inserted": len(report.inserted),
            "updated": len(report.updated),
            "membership_changed": report.membership_changed,
            "version": engine.assignment.version,
        }

    @app.post("/save_data")
    def save_data() -> dict[str, Any]:
        try:
            saved = engine.save_snapshot()
        except SnapshotError as exc:
            logger.error(f"Manual save failed: {exc}")
            raise HTTPException(status_code=500, detail=str(exc)) from exc
        return {"saved": saved}

    return app
