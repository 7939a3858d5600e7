"""FastAPI endpoints for the Vendor Nexus API.

POST /chat - run a follow-up turn on the UI-held history
POST /chat/start - run the first turn from a requirement form
GET|POST /vault, GET|DELETE /vault/{session_id} - session vault
POST /export - vendor report as CSV
POST /extract - text from an attached spec sheet
GET /health - component health check
"""

import time

import structlog
from fastapi import APIRouter, File, HTTPException, Request, UploadFile
from fastapi.responses import Response

from backend.agent.prompts import build_requirement_echo, build_requirement_prompt
from backend.agent.sourcing import TurnResult
from backend.api.schemas import (
    ChatRequest,
    ChatResponse,
    ExportRequest,
    ExtractResponse,
    MessageRecord,
    StartRequest,
    Vendor,
    VaultSession,
)
from backend.core.conversation import bounded
from backend.core.document_parser import attachment_label, extract_text
from backend.core.exporter import EXPORT_FILENAME, export_csv
from backend.core.vendors import merge

logger = structlog.get_logger(__name__)

router = APIRouter()


def _respond(result: TurnResult, existing: list[Vendor], start: float,
             echo: str | None = None) -> ChatResponse:
    turn_vendors = merge([], result.vendors)
    merged = merge(existing, turn_vendors)
    latency_ms = int((time.monotonic() - start) * 1000)

    logger.info("chat.response", latency_ms=latency_ms, fallback=result.fallback,
                block=result.block_status.value, new_vendors=len(turn_vendors), total=len(merged))

    return ChatResponse(
        text=result.text,
        vendors=turn_vendors,
        merged_vendors=merged,
        fallback=result.fallback,
        echo=echo,
        latency_ms=latency_ms,
    )


@router.post("/chat", response_model=ChatResponse)
def chat(request: ChatRequest, req: Request):
    """Send the windowed history to the model and merge any vendors found."""
    start = time.monotonic()
    logger.info("chat.request", session_id=request.session_id, messages=len(request.messages))

    history = bounded([MessageRecord(role=m.role, content=m.content) for m in request.messages])
    result = req.app.state.agent.ask(history)
    return _respond(result, request.vendors, start)


@router.post("/chat/start", response_model=ChatResponse)
def chat_start(request: StartRequest, req: Request):
    """First turn: the requirement fields go to the model as one composite message."""
    start = time.monotonic()
    requirement = request.requirement
    logger.info("chat.start", session_id=request.session_id, item=requirement.item_name)

    prompt = MessageRecord(role="user", content=build_requirement_prompt(requirement))
    result = req.app.state.agent.ask([prompt])
    return _respond(result, request.vendors, start, echo=build_requirement_echo(requirement))


@router.get("/vault", response_model=list[VaultSession])
def list_sessions(req: Request):
    return req.app.state.vault.list()


@router.get("/vault/{session_id}", response_model=VaultSession)
def get_session(session_id: str, req: Request):
    session = req.app.state.vault.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found.")
    return session


@router.post("/vault", response_model=VaultSession)
def save_session(session: VaultSession, req: Request):
    """Upsert a session snapshot; the response carries its assigned id."""
    return req.app.state.vault.save(session)


@router.delete("/vault/{session_id}", response_model=list[VaultSession])
def delete_session(session_id: str, req: Request):
    return req.app.state.vault.delete(session_id)


@router.post("/export")
def export(request: ExportRequest):
    """One CSV row per vendor, in the order received."""
    content = export_csv(request.vendors)
    logger.info("export.csv", vendors=len(request.vendors), size=len(content))
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{EXPORT_FILENAME}"'},
    )


@router.post("/extract", response_model=ExtractResponse)
def extract(file: UploadFile = File(...)):
    """Extract text from an uploaded file. Failures come back as placeholder text."""
    filename = file.filename or "attachment"
    text = extract_text(filename, file.file.read(), file.content_type or "")
    return ExtractResponse(filename=filename, text=text, label=attachment_label(filename, text))


@router.get("/health")
def health(req: Request):
    """Check health of all backend components."""
    components = {}

    components["llm"] = "ok" if req.app.state.gateway.is_healthy() else "error"

    bot = req.app.state.bot
    components["telegram"] = "ok" if bot is not None and bot.transport.is_configured() else "error"

    try:
        req.app.state.vault.list()
        components["vault"] = "ok"
    except Exception:
        components["vault"] = "error"

    errors = [k for k, v in components.items() if v == "error"]
    if not errors:
        status = "healthy"
    elif len(errors) == len(components):
        status = "unhealthy"
    else:
        status = "degraded"

    return {"status": status, "components": components}


@router.get("/")
@router.head("/")
def root_health():
    """Basic root health check for deployment platforms."""
    return {"status": "ok", "service": "vendor-nexus-api"}
