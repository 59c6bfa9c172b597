from __future__ import annotations

import logging
from collections.abc import Mapping

import uvicorn
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST
from pydantic import BaseModel, field_validator

from parley.chat.identity import ContextIdentity
from parley.chat.orchestrator import ConversationOrchestrator
from parley.core.metrics import metrics_generate_latest
from parley.errors import AuthError, ChatError, ErrorKind
from parley.models.turns import Cursor, Turn, TurnPage

logger = logging.getLogger(__name__)

STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.rate_limited: 429,
    ErrorKind.auth_error: 401,
    ErrorKind.service_unavailable: 503,
    ErrorKind.malformed_response: 502,
    ErrorKind.storage_error: 503,
    ErrorKind.general: 500,
}


class SendTurnPayload(BaseModel):
    text: str

    @field_validator("text")
    @classmethod
    def _validate_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("text must not be empty")
        return value


def _turns_json(turns: list[Turn]) -> list[dict[str, object]]:
    return [turn.model_dump(mode="json") for turn in turns]


def _page_json(page: TurnPage) -> dict[str, object]:
    cursor = page.cursor
    return {
        "turns": _turns_json(page.turns),
        "has_more": page.has_more,
        "cursor": cursor.encode() if cursor is not None else None,
    }


class WebChannel:
    """HTTP front end for every configured chat surface.

    Callers authenticate with ``Authorization: Bearer <token>``; each token
    maps to one actor id.
    """

    channel_name = "web"

    def __init__(
        self,
        orchestrators: Mapping[str, ConversationOrchestrator],
        identity: ContextIdentity,
        tokens: Mapping[str, str],
        host: str = "127.0.0.1",
        port: int = 8430,
        metrics_enabled: bool = True,
    ) -> None:
        self.host = host
        self.port = port
        self._orchestrators = dict(orchestrators)
        self._identity = identity
        self._tokens = dict(tokens)
        self._metrics_enabled = metrics_enabled

        self.app = FastAPI(title="Parley WebChannel")
        self._setup_routes()

    def _actor_for(self, request: Request) -> str:
        header = request.headers.get("authorization", "")
        scheme, _, token = header.partition(" ")
        actor_id = self._tokens.get(token.strip()) if scheme.lower() == "bearer" else None
        if not actor_id:
            raise AuthError("missing or invalid bearer token")
        return actor_id

    def _orchestrator(self, surface: str) -> ConversationOrchestrator:
        orchestrator = self._orchestrators.get(surface)
        if orchestrator is None:
            raise HTTPException(status_code=404, detail=f"unknown surface {surface!r}")
        return orchestrator

    def _setup_routes(self) -> None:
        @self.app.exception_handler(ChatError)
        async def chat_error_handler(request: Request, exc: ChatError) -> JSONResponse:
            status = STATUS_BY_KIND.get(exc.kind, 500)
            if status >= 500:
                logger.warning("%s %s failed: %s", request.method, request.url.path, exc)
            return JSONResponse({"error": exc.kind.value, "detail": str(exc)}, status_code=status)

        @self.app.get("/health")
        async def health() -> JSONResponse:
            return JSONResponse({"status": "ok", "surfaces": sorted(self._orchestrators)})

        @self.app.get("/metrics")
        async def metrics() -> Response:
            if not self._metrics_enabled:
                raise HTTPException(status_code=404)
            return Response(metrics_generate_latest(), media_type=CONTENT_TYPE_LATEST)

        @self.app.get("/api/{surface}/contacts")
        async def contacts(surface: str, request: Request, refresh: bool = False) -> JSONResponse:
            orchestrator = self._orchestrator(surface)
            with self._identity.bind(self._actor_for(request)):
                await orchestrator.initialize()
                found = await orchestrator.load_contacts(refresh=refresh)
            return JSONResponse({"contacts": [contact.model_dump(mode="json") for contact in found]})

        @self.app.get("/api/{surface}/conversations/{conversation_id}/turns")
        async def turns(
            surface: str,
            conversation_id: str,
            request: Request,
            cursor: str | None = None,
            refresh: bool = False,
        ) -> JSONResponse:
            orchestrator = self._orchestrator(surface)
            try:
                decoded = Cursor.decode(cursor) if cursor else None
            except ValueError as exc:
                raise HTTPException(status_code=400, detail=str(exc)) from exc
            with self._identity.bind(self._actor_for(request)):
                page = await orchestrator.load_page(conversation_id, cursor=decoded, refresh=refresh)
            return JSONResponse(_page_json(page))

        @self.app.post("/api/{surface}/conversations/{conversation_id}/turns")
        async def send(
            surface: str,
            conversation_id: str,
            payload: SendTurnPayload,
            request: Request,
        ) -> JSONResponse:
            orchestrator = self._orchestrator(surface)
            with self._identity.bind(self._actor_for(request)):
                result = await orchestrator.send_turn(conversation_id, payload.text)
            return JSONResponse({"turns": _turns_json(result)})

        @self.app.post("/api/{surface}/conversations/{conversation_id}/more")
        async def more(surface: str, conversation_id: str, request: Request) -> JSONResponse:
            orchestrator = self._orchestrator(surface)
            with self._identity.bind(self._actor_for(request)):
                page = await orchestrator.load_more(conversation_id)
            if page is None:
                return JSONResponse({"turns": [], "has_more": False, "cursor": None, "skipped": True})
            return JSONResponse({**_page_json(page), "skipped": False})

    async def serve(self, log_level: str = "info") -> None:
        config = uvicorn.Config(self.app, host=self.host, port=self.port, log_level=log_level)
        server = uvicorn.Server(config)
        logger.info("serving %s on %s:%d", sorted(self._orchestrators), self.host, self.port)
        try:
            await server.serve()
        finally:
            for orchestrator in self._orchestrators.values():
                await orchestrator.drain_notifications()


__all__ = ["STATUS_BY_KIND", "SendTurnPayload", "WebChannel"]
