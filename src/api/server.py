"""FastAPI application exposing the assistant over HTTP and WebSocket."""

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

import structlog
from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .. import __version__
from ..config.settings import Settings, load_settings
from ..exceptions import (
    USER_SAFE_ERROR,
    AssistantError,
    InvalidPayloadError,
    TurnProcessingError,
)
from ..llm.interface import ChatModel
from ..services import AssistantServices, build_services
from . import websocket
from .schemas import (
    DEFAULT_SESSION,
    ChatRequest,
    ChatResponse,
    HistoryEntry,
    HistoryResponse,
    NoteEntry,
    NotesResponse,
    StateResponse,
    SweepResponse,
)

logger = structlog.get_logger()


def _services(request: Request) -> AssistantServices:
    return request.app.state.services


def create_app(
    settings: Optional[Settings] = None,
    chat_model: Optional[ChatModel] = None,
) -> FastAPI:
    """Build the app; the database opens when the app starts up."""
    settings = settings or load_settings()
    services = build_services(settings, chat_model=chat_model)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        await services.start()
        logger.info("Assistant service started", model_provider=settings.model_provider)
        try:
            yield
        finally:
            await services.close()
            logger.info("Assistant service stopped")

    app = FastAPI(title="Knowledge Assistant", version=__version__, lifespan=lifespan)
    app.state.services = services
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(websocket.router)

    @app.exception_handler(AssistantError)
    async def assistant_error(request: Request, exc: AssistantError) -> JSONResponse:
        logger.error(
            "Request failed",
            path=request.url.path,
            error=str(exc),
            error_type=type(exc).__name__,
        )
        return JSONResponse(status_code=500, content={"detail": USER_SAFE_ERROR})

    @app.get("/health")
    async def health(request: Request) -> Dict[str, Any]:
        svc = _services(request)
        return {
            "ok": await svc.db.health_check(),
            "model_provider": svc.settings.model_provider,
            "version": __version__,
        }

    @app.post("/chat", response_model=ChatResponse)
    async def chat(
        req: ChatRequest,
        request: Request,
        agent_id: Optional[str] = Query(None, alias="agentId"),
    ) -> ChatResponse:
        session_id = req.session_id or agent_id or DEFAULT_SESSION
        try:
            reply = await _services(request).conversation.handle_turn(
                session_id, req.message
            )
        except InvalidPayloadError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except TurnProcessingError as exc:
            raise HTTPException(status_code=500, detail=USER_SAFE_ERROR) from exc
        return ChatResponse(reply=reply)

    @app.get("/history", response_model=HistoryResponse)
    async def history(
        request: Request,
        agent_id: Optional[str] = Query(None, alias="agentId"),
        limit: Optional[int] = Query(None, ge=1, le=1000),
    ) -> HistoryResponse:
        svc = _services(request)
        messages = await svc.conversation.get_history(
            agent_id or DEFAULT_SESSION,
            limit or svc.settings.history_default_limit,
        )
        return HistoryResponse(history=[HistoryEntry(**m.to_dict()) for m in messages])

    @app.get("/state", response_model=StateResponse)
    async def state(
        request: Request,
        agent_id: Optional[str] = Query(None, alias="agentId"),
    ) -> StateResponse:
        current = await _services(request).state_store.get_state(
            agent_id or DEFAULT_SESSION
        )
        return StateResponse(state=current.to_record())

    @app.get("/notes", response_model=NotesResponse)
    async def notes(
        request: Request,
        agent_id: Optional[str] = Query(None, alias="agentId"),
        limit: int = Query(50, ge=1, le=500),
    ) -> NotesResponse:
        found = await _services(request).knowledge.list_notes(
            agent_id or DEFAULT_SESSION, limit
        )
        return NotesResponse(notes=[NoteEntry(**n.to_dict()) for n in found])

    @app.post("/maintenance/sweep", response_model=SweepResponse)
    async def sweep(
        request: Request,
        agent_id: Optional[str] = Query(None, alias="agentId"),
    ) -> SweepResponse:
        result = await _services(request).sweeper.sweep(agent_id or DEFAULT_SESSION)
        return SweepResponse(
            session_id=result.session_id,
            deleted=result.deleted,
            remaining=result.remaining,
        )

    return app
