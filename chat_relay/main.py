"""FastAPI application entrypoint."""
import logging
import os
import sys
from pathlib import Path

# Project root (parent of chat_relay/)
_ROOT = Path(__file__).resolve().parent.parent

# .env must be loaded before Settings properties are first read (endpoint URLs, RELEVANCE_API_KEY).
from dotenv import load_dotenv
load_dotenv(_ROOT / ".env", override=True)

# Running the file directly (python chat_relay/main.py) needs the project root importable
if __name__ == "__main__" or "chat_relay" not in sys.modules:
    if str(_ROOT) not in sys.path:
        sys.path.insert(0, str(_ROOT))

from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from chat_relay.api.routes import router
from chat_relay.core.agent_client import AgentClient
from chat_relay.core.chat_service import ChatService
from chat_relay.core.config import get_settings
from chat_relay.core.webhook_client import FirstContactClient

logging.basicConfig(level=getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO))
_log = logging.getLogger(__name__)

# Prevent third-party HTTP libs from logging at DEBUG (the Authorization header carries the API key)
for _name in ("httpx", "httpcore", "hpack", "urllib3"):
    logging.getLogger(_name).setLevel(logging.WARNING)


def build_chat_service(http: httpx.AsyncClient) -> ChatService:
    config = get_settings().relay_config()
    return ChatService(FirstContactClient(http, config), AgentClient(http, config), config)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # One client for the whole process; safe for concurrent use by overlapping chat turns
    async with httpx.AsyncClient(timeout=get_settings().http_timeout_seconds) as http:
        app.state.chat_service = build_chat_service(http)
        if not get_settings().api_key:
            _log.info("RELEVANCE_API_KEY not set: trigger/knowledge calls go out without Authorization.")
        yield


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_origin_regex=settings.cors_origin_regex,
        allow_credentials=True,
        allow_methods=["POST", "OPTIONS", "GET"],
        allow_headers=["*"],
    )
    app.include_router(router)

    @app.get("/")
    def root() -> dict:
        return {"message": f"{settings.api_title} is running", "docs": "/docs", "health": "/api/chat/health"}

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    host = os.getenv("HOST", "127.0.0.1")  # 127.0.0.1 = localhost only
    port = int(os.getenv("PORT", "8000"))
    uvicorn.run("chat_relay.main:app", host=host, port=port, reload=os.getenv("RELOAD", "0").strip().lower() in ("1", "true", "yes"))
