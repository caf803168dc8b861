"""PageController: owns the page state and sequences load → analyze → format.

State transitions are computed by the pure ``reduce`` function; the
controller only performs the awaited I/O and dispatches events:

    Idle → Loading → {Ready, Failed}, re-entrant on upload / re-identify.

Every analysis gets a fresh ``request_id``. Completions carrying an older id
are dropped, so a slow response can never overwrite a newer request.
"""

from __future__ import annotations

import itertools
import logging
import uuid
from collections import OrderedDict
from pathlib import Path
from typing import Literal, Union

from fastapi import UploadFile
from pydantic import BaseModel, ConfigDict

from app.errors import GENERIC_ANALYSIS_MESSAGE, AnalysisError, LoadError, TreeIdError
from app.models.gemini import DEFAULT_ANALYSIS, GeminiWrapper
from app.schemas.tree import EncodedImage
from app.services import image_loader

logger = logging.getLogger(__name__)

NO_IMAGE_MESSAGE = "Please upload a tree photo first"

Phase = Literal["idle", "loading", "ready", "failed"]


# ---------------------------------------------------------------------------
# State
# ---------------------------------------------------------------------------

class UIState(BaseModel):
    model_config = ConfigDict(frozen=True)

    image: EncodedImage | None = None
    report: str | None = None
    is_loading: bool = False
    error: str | None = None
    request_id: int = 0


def phase_of(state: UIState) -> Phase:
    if state.is_loading:
        return "loading"
    if state.error:
        return "failed"
    if state.image is not None or state.report:
        return "ready"
    return "idle"


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------

class _Event(BaseModel):
    model_config = ConfigDict(frozen=True)


class LoadStarted(_Event):
    pass


class DefaultLoaded(_Event):
    image: EncodedImage
    report: str


class LoadFailed(_Event):
    message: str


class UploadRejected(_Event):
    message: str


class ImageSelected(_Event):
    image: EncodedImage


class AnalysisStarted(_Event):
    request_id: int


class AnalysisSucceeded(_Event):
    request_id: int
    report: str


class AnalysisFailed(_Event):
    request_id: int
    message: str | None = None


Event = Union[
    LoadStarted, DefaultLoaded, LoadFailed, UploadRejected,
    ImageSelected, AnalysisStarted, AnalysisSucceeded, AnalysisFailed,
]


def reduce(state: UIState, event: Event) -> UIState:
    """Return the state that follows *event*. Never mutates *state*."""
    if isinstance(event, LoadStarted):
        return state.model_copy(update={"is_loading": True, "error": None})

    if isinstance(event, DefaultLoaded):
        return state.model_copy(update={
            "image": event.image, "report": event.report, "is_loading": False, "error": None,
        })

    if isinstance(event, (LoadFailed, UploadRejected)):
        # image and report stay as they were
        return state.model_copy(update={"is_loading": False, "error": event.message})

    if isinstance(event, ImageSelected):
        # a report only belongs to the image that produced it
        return state.model_copy(update={"image": event.image, "report": None, "error": None})

    if isinstance(event, AnalysisStarted):
        return state.model_copy(update={
            "is_loading": True, "error": None, "request_id": event.request_id,
        })

    if isinstance(event, (AnalysisSucceeded, AnalysisFailed)):
        if event.request_id != state.request_id:
            return state
        if isinstance(event, AnalysisSucceeded):
            return state.model_copy(update={"report": event.report, "is_loading": False, "error": None})
        return state.model_copy(update={
            "is_loading": False, "error": event.message or GENERIC_ANALYSIS_MESSAGE,
        })

    raise TypeError(f"Unknown event: {event!r}")


# ---------------------------------------------------------------------------
# Controller
# ---------------------------------------------------------------------------

class PageController:
    """One page's state plus the async operations that drive it."""

    def __init__(self, client: GeminiWrapper, *, default_image: str | Path | None = None) -> None:
        self.client = client
        self.default_image = default_image
        self.state = UIState()
        self._request_ids = itertools.count(1)

    def dispatch(self, event: Event) -> UIState:
        self.state = reduce(self.state, event)
        return self.state

    async def mount(self) -> UIState:
        """Show the bundled photo with its built-in analysis; no service call."""
        self.dispatch(LoadStarted())
        try:
            image = await image_loader.load_default(self.default_image)
        except LoadError as exc:
            return self.dispatch(LoadFailed(message=exc.message))
        return self.dispatch(DefaultLoaded(image=image, report=DEFAULT_ANALYSIS))

    async def select_file(self, file: UploadFile) -> UIState:
        try:
            image = await image_loader.load_upload(file)
        except TreeIdError as exc:
            logger.info("Upload rejected (%s): %s", type(exc).__name__, exc.message)
            return self.dispatch(UploadRejected(message=exc.message))
        self.dispatch(ImageSelected(image=image))
        return await self._analyze(image)

    async def reidentify(self) -> UIState:
        """Run the analysis again on the current image without re-reading it."""
        if self.state.image is None:
            return self.dispatch(UploadRejected(message=NO_IMAGE_MESSAGE))
        return await self._analyze(self.state.image)

    async def _analyze(self, image: EncodedImage) -> UIState:
        request_id = next(self._request_ids)
        self.dispatch(AnalysisStarted(request_id=request_id))
        try:
            report = await self.client.analyze(image)
        except AnalysisError as exc:
            logger.warning("Analysis %d failed: %s", request_id, exc.message)
            return self.dispatch(AnalysisFailed(request_id=request_id, message=exc.message))
        except Exception:
            logger.exception("Analysis %d failed unexpectedly", request_id)
            return self.dispatch(AnalysisFailed(request_id=request_id))
        if request_id != self.state.request_id:
            logger.info("Discarding stale analysis %d (current %d).", request_id, self.state.request_id)
        return self.dispatch(AnalysisSucceeded(request_id=request_id, report=report))


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------

class PageSessions:
    """In-memory controllers keyed by session id, oldest evicted first."""

    def __init__(self, client: GeminiWrapper, *, default_image: str | Path | None = None,
                 max_sessions: int = 1000) -> None:
        self.client = client
        self.default_image = default_image
        self.max_sessions = max_sessions
        self._sessions: OrderedDict[str, PageController] = OrderedDict()

    def __len__(self) -> int:
        return len(self._sessions)

    async def get(self, session_id: str | None) -> tuple[str, PageController]:
        """Return ``(session_id, controller)``, creating and mounting a new one if needed."""
        if session_id and session_id in self._sessions:
            self._sessions.move_to_end(session_id)
            return session_id, self._sessions[session_id]

        session_id = uuid.uuid4().hex
        controller = PageController(self.client, default_image=self.default_image)
        await controller.mount()
        self._sessions[session_id] = controller
        while len(self._sessions) > self.max_sessions:
            self._sessions.popitem(last=False)
        return session_id, controller
