"""FastAPI application entry point.

Startup sequence: init model gateway → session store → bot → DB → vault.
"""

import json
import os
import time
from collections import defaultdict
from contextlib import asynccontextmanager

import structlog
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.requests import Request as StarletteRequest
from starlette.responses import JSONResponse

from backend.agent.sourcing import SourcingAgent
from backend.api.routes import router
from backend.api.telegram_webhook import router as telegram_router
from backend.bot.handler import create_bot_handler
from backend.core.database import init_db
from backend.core.llm_gateway import ModelGateway
from backend.core.session_store import create_session_store
from backend.core.vault import VaultStore

load_dotenv()

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    logger.info("startup.begin")

    gateway = ModelGateway()
    app.state.gateway = gateway
    app.state.agent = SourcingAgent(gateway)
    logger.info("startup.gateway_initialized", healthy=gateway.is_healthy(), model=gateway.model_name)
    if not gateway.is_healthy():
        logger.warning("startup.no_llm_key", hint="Set LLM_API_KEY in .env")

    store = create_session_store()
    app.state.session_store = store
    app.state.bot = create_bot_handler(app.state.agent, store=store)
    logger.info("startup.bot_initialized", configured=app.state.bot.transport.is_configured())

    init_db()
    app.state.vault = VaultStore()
    logger.info("startup.db_initialized")

    logger.info("startup.complete")
    yield
    app.state.bot.transport.close()
    logger.info("shutdown.complete")


app = FastAPI(
    title="Vendor Nexus API",
    description="Conversational vendor sourcing assistant",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS for Streamlit frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Rate limiter: per-session request throttling
RATE_LIMIT = int(os.environ.get("RATE_LIMIT_PER_MIN", "10"))
_rate_buckets: dict[str, list[float]] = defaultdict(list)


@app.middleware("http")
async def rate_limit_middleware(request: Request, call_next):
    """Enforce per-session rate limiting on the chat endpoints."""
    if not request.url.path.startswith("/chat") or request.method != "POST":
        return await call_next(request)

    # Read request body to extract session_id
    body = await request.body()
    try:
        data = json.loads(body)
        session_id = data.get("session_id", "unknown")
    except (ValueError, AttributeError):
        session_id = "unknown"

    now = time.monotonic()

    # Prune timestamps older than 60s
    _rate_buckets[session_id] = [t for t in _rate_buckets[session_id] if now - t < 60]
    window = _rate_buckets[session_id]

    if len(window) >= RATE_LIMIT:
        logger.warning("rate_limit.exceeded", session_id=session_id)
        return JSONResponse(
            status_code=429,
            content={"detail": "Too many requests. Please wait a moment."},
        )

    window.append(now)

    # Reconstruct the request with the already-read body
    async def receive_body():
        return {"type": "http.request", "body": body}

    request = StarletteRequest(request.scope, receive_body)
    return await call_next(request)


app.include_router(router)
app.include_router(telegram_router)
