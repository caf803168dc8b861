"""API routes: JSON endpoints plus the server-rendered identifier page."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Cookie, File, HTTPException, Response, UploadFile
from fastapi.responses import HTMLResponse, RedirectResponse

from app.agents.page_controller import PageController, PageSessions, UIState, phase_of
from app.errors import AnalysisError, ReadError, ValidationError
from app.models.gemini import GeminiWrapper
from app.schemas.tree import AnalyzeResponse, FormatRequest, FormatResponse, PageStateResponse
from app.services import image_loader
from app.services.formatter import format_report
from app.services.render import render_page

logger = logging.getLogger(__name__)
router = APIRouter()
page_router = APIRouter()

SESSION_COOKIE = "treeid_session"

# ---------------------------------------------------------------------------
# Global references, set from main.py at startup
# ---------------------------------------------------------------------------
_client: GeminiWrapper | None = None
_sessions: PageSessions | None = None


def set_client(client: GeminiWrapper, sessions: PageSessions) -> None:
    global _client, _sessions
    _client = client
    _sessions = sessions


def get_client() -> GeminiWrapper:
    if _client is None:
        raise HTTPException(status_code=503, detail="Analysis client not initialised.")
    return _client


def get_sessions() -> PageSessions:
    if _sessions is None:
        raise HTTPException(status_code=503, detail="Page sessions not initialised.")
    return _sessions


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

async def _session(response: Response, session_id: str | None) -> PageController:
    sid, controller = await get_sessions().get(session_id)
    if sid != session_id:
        response.set_cookie(SESSION_COOKIE, sid, httponly=True, samesite="lax")
    return controller


def _state_response(state: UIState) -> PageStateResponse:
    return PageStateResponse(
        phase=phase_of(state),
        is_loading=state.is_loading,
        error=state.error,
        image_url=state.image.data_url if state.image else None,
        image_source=state.image.source if state.image else None,
        report=state.report,
        blocks=format_report(state.report) if state.report else [],
    )


# ---------------------------------------------------------------------------
# Stateless endpoints
# ---------------------------------------------------------------------------

@router.post("/analyze", response_model=AnalyzeResponse)
async def analyze_image(image: UploadFile = File(...)) -> AnalyzeResponse:
    client = get_client()
    try:
        encoded = await image_loader.load_upload(image)
    except (ValidationError, ReadError) as exc:
        raise HTTPException(status_code=422, detail=exc.message) from exc

    try:
        report = await client.analyze(encoded)
    except AnalysisError as exc:
        logger.warning("Analysis failed for %s: %s", image.filename, exc.message)
        raise HTTPException(status_code=502, detail=exc.message) from exc

    return AnalyzeResponse(report=report, blocks=format_report(report))


@router.post("/format", response_model=FormatResponse)
def format_text(body: FormatRequest) -> FormatResponse:
    return FormatResponse(blocks=format_report(body.report))


# ---------------------------------------------------------------------------
# Page state endpoints (JSON)
# ---------------------------------------------------------------------------

@router.get("/page", response_model=PageStateResponse)
async def get_page(
    response: Response, treeid_session: str | None = Cookie(None),
) -> PageStateResponse:
    controller = await _session(response, treeid_session)
    return _state_response(controller.state)


@router.post("/page/upload", response_model=PageStateResponse)
async def upload_to_page(
    response: Response,
    image: UploadFile = File(...),
    treeid_session: str | None = Cookie(None),
) -> PageStateResponse:
    controller = await _session(response, treeid_session)
    return _state_response(await controller.select_file(image))


@router.post("/page/reidentify", response_model=PageStateResponse)
async def reidentify_page(
    response: Response, treeid_session: str | None = Cookie(None),
) -> PageStateResponse:
    controller = await _session(response, treeid_session)
    return _state_response(await controller.reidentify())


# ---------------------------------------------------------------------------
# HTML page
# ---------------------------------------------------------------------------

def _redirect_home(session_id: str | None, controller_sid: str) -> RedirectResponse:
    redirect = RedirectResponse("/", status_code=303)
    if controller_sid != session_id:
        redirect.set_cookie(SESSION_COOKIE, controller_sid, httponly=True, samesite="lax")
    return redirect


@page_router.get("/", response_class=HTMLResponse)
async def home(treeid_session: str | None = Cookie(None)) -> HTMLResponse:
    sid, controller = await get_sessions().get(treeid_session)
    page = HTMLResponse(render_page(controller.state))
    if sid != treeid_session:
        page.set_cookie(SESSION_COOKIE, sid, httponly=True, samesite="lax")
    return page


@page_router.post("/upload")
async def upload_form(
    image: UploadFile = File(...), treeid_session: str | None = Cookie(None),
) -> RedirectResponse:
    sid, controller = await get_sessions().get(treeid_session)
    await controller.select_file(image)
    return _redirect_home(treeid_session, sid)


@page_router.post("/reidentify")
async def reidentify_form(treeid_session: str | None = Cookie(None)) -> RedirectResponse:
    sid, controller = await get_sessions().get(treeid_session)
    await controller.reidentify()
    return _redirect_home(treeid_session, sid)
