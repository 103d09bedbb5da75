"""FastAPI application relaying widget conversations to the upstream LLM API."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel, Field

from .config import DEFAULT_SYSTEM_PROMPT, load_config
from .upstream import OpenRouterClient, UpstreamError, create_from_config

logger = logging.getLogger(__name__)


# -----------------------------
# Pydantic request/response
# -----------------------------
class ChatMessage(BaseModel):
    role: Literal["system", "user", "assistant"]
    content: str


class ChatRequest(BaseModel):
    messages: List[ChatMessage] = Field(default_factory=list)


class ChatResponse(BaseModel):
    content: str
    usage: Dict[str, Any] = Field(default_factory=dict)


# -----------------------------
# Utilities
# -----------------------------
def _get_system_prompt(cfg: Dict[str, Any]) -> str:
    sys_prompt = cfg.get("assistant", {}).get("system_prompt") or DEFAULT_SYSTEM_PROMPT
    return str(sys_prompt).strip()


def build_messages(system_prompt: str, messages: List[ChatMessage]) -> List[Dict[str, str]]:
    """Prepend the fixed system message to the caller's conversation."""
    out: List[Dict[str, str]] = [{"role": "system", "content": system_prompt}]
    out.extend({"role": m.role, "content": m.content} for m in messages)
    return out


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


# -----------------------------
# App factory
# -----------------------------
def create_app(
    config_path: Optional[str] = None,
    upstream: Optional[OpenRouterClient] = None,
    cfg: Optional[Dict[str, Any]] = None,
) -> FastAPI:
    cfg = cfg if cfg is not None else load_config(config_path)
    server_cfg = cfg.get("server", {})

    upstream = upstream or create_from_config(cfg)
    system_prompt = _get_system_prompt(cfg)

    if not upstream.configured:
        logger.warning("OPENROUTER_API_KEY is not set; /api/chat will answer with an error")

    app = FastAPI(title="Delegate AI Assistant", version="0.1.0")
    # Any website may embed the widget, so any origin may call the proxy.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=server_cfg.get("cors_origins") or ["*"],
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
        max_age=3600,
    )

    @app.exception_handler(RequestValidationError)
    async def invalid_body(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.warning("rejected request to %s: %s", request.url.path, exc.errors())
        return _error(422, "Invalid request body")

    static_dir = Path(server_cfg.get("static_dir") or "static")

    @app.get("/api/health")
    def health() -> Dict[str, str]:
        return {"status": "ok"}

    @app.get("/embed.js")
    def embed_script():
        script = static_dir / "embed.js"
        if not script.is_file():
            return _error(404, "embed.js not found")
        return FileResponse(
            script,
            media_type="application/javascript",
            headers={"Access-Control-Allow-Origin": "*"},
        )

    @app.post("/api/chat", response_model=ChatResponse)
    async def chat(req: ChatRequest):
        if not upstream.configured:
            return _error(500, "OpenRouter API key not configured")

        try:
            result = await upstream.complete(build_messages(system_prompt, req.messages))
        except UpstreamError as e:
            logger.error("OpenRouter API error (%s): %s", e.status_code, e.body)
            return _error(e.status_code, str(e))
        except Exception:
            logger.exception("Error while relaying chat request")
            return _error(500, "Internal server error")

        return ChatResponse(content=result.content, usage=result.usage or {})

    # Mounted last so the API routes above take precedence.
    if static_dir.is_dir():
        app.mount("/", StaticFiles(directory=str(static_dir)), name="static")
    else:
        logger.info("Static dir not found, skipping mount: %s", static_dir)

    return app
