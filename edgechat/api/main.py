"""FastAPI application for EdgeChat."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse, PlainTextResponse
from pydantic import BaseModel, ConfigDict, Field
from starlette.exceptions import HTTPException as StarletteHTTPException

from edgechat import __app_name__, __version__
from edgechat.ai.providers.base import ProviderError
from edgechat.ai.registry import build_provider
from edgechat.core.config import EdgeChatConfig, load_config
from edgechat.core.log import configure_logging
from edgechat.core.router import MissingSessionIdError, SessionRouter
from edgechat.memory.session_store import StoreError, build_store

logger = logging.getLogger(__name__)

_INDEX_HTML = Path(__file__).parent / "static" / "index.html"


def build_router(config: EdgeChatConfig) -> SessionRouter:
    """Wire store, provider and settings into a SessionRouter."""
    return SessionRouter(
        store=build_store(config.storage),
        provider=build_provider(config.ai),
        ai_config=config.ai,
        session_config=config.session,
    )


# ---------------------------------------------------------------------------
# Pydantic models
# ---------------------------------------------------------------------------


class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str | None = None
    session_id: str | None = Field(default=None, alias="sessionId")


class TurnModel(BaseModel):
    role: str
    content: str


class ChatResponse(BaseModel):
    reply: str
    history: list[TurnModel]


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _get_router(request: Request) -> SessionRouter:
    router = getattr(request.app.state, "router", None)
    assert router is not None, "Session router not initialized"
    return router


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------


def create_app(
    config: EdgeChatConfig | None = None,
    router: SessionRouter | None = None,
) -> FastAPI:
    """Build the app; ``router`` skips config-driven wiring (used by tests)."""

    @asynccontextmanager
    async def _lifespan(app: FastAPI):  # noqa: ANN001
        cfg = config
        if router is not None:
            app.state.router = router
        else:
            cfg = cfg or load_config()
            app.state.router = build_router(cfg)
        configure_logging(debug=bool(cfg and cfg.system.debug))
        logger.info(
            "%s ready (provider=%s)", __app_name__, app.state.router.provider.name
        )
        yield

    app = FastAPI(title=f"{__app_name__} API", version=__version__, lifespan=_lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # -----------------------------------------------------------------------
    # Error mapping
    # -----------------------------------------------------------------------

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException):  # noqa: ANN202
        if exc.status_code in (404, 405):
            return PlainTextResponse("not found", status_code=404)
        return _error(exc.status_code, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def _invalid_body(request: Request, exc: RequestValidationError):  # noqa: ANN202
        logger.info("Rejected request body: %s", exc.errors())
        return _error(400, "invalid request body")

    @app.exception_handler(MissingSessionIdError)
    async def _missing_session(request: Request, exc: MissingSessionIdError):  # noqa: ANN202
        return _error(400, "missing session id")

    @app.exception_handler(ProviderError)
    async def _provider_failed(request: Request, exc: ProviderError):  # noqa: ANN202
        logger.error("Generation failed: %s", exc)
        return _error(502, "generation failed")

    @app.exception_handler(StoreError)
    async def _store_failed(request: Request, exc: StoreError):  # noqa: ANN202
        logger.error("Session storage failed: %s", exc)
        return _error(500, "internal error")

    @app.exception_handler(Exception)
    async def _unhandled(request: Request, exc: Exception):  # noqa: ANN202
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return _error(500, "internal error")

    # -----------------------------------------------------------------------
    # Endpoints
    # -----------------------------------------------------------------------

    @app.api_route("/", methods=["GET", "HEAD"], response_class=HTMLResponse)
    async def index() -> HTMLResponse:
        return HTMLResponse(_INDEX_HTML.read_text(encoding="utf-8"))

    @app.post("/api/chat", response_model=ChatResponse)
    async def chat(
        req: ChatRequest,
        session_router: SessionRouter = Depends(_get_router),
    ):  # noqa: ANN201
        message = (req.message or "").strip()
        if not message:
            return _error(400, "empty message")
        result = await session_router.handle_message(req.session_id, message)
        return ChatResponse.model_validate(result.to_dict())

    @app.get("/api/health")
    def health(session_router: SessionRouter = Depends(_get_router)) -> dict:
        provider = session_router.provider
        return {
            "status": "operational",
            "provider": provider.name,
            "provider_available": provider.is_available(),
            "sessions": session_router.session_count(),
        }

    return app


app = create_app()
