"""HTTP command surface exposing the chat session."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import APIRouter, FastAPI, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from .errors import ErrorKind
from .models import SendResult, StatusReport
from .session.machine import ChatSession

_STATUS_CODES = {
    ErrorKind.NOT_READY: 409,
    ErrorKind.LOGIN_TIMEOUT: 503,
    ErrorKind.ELEMENT_NOT_FOUND: 502,
    ErrorKind.NAVIGATION_FAILED: 502,
    ErrorKind.INTERNAL: 500,
}


class SendRequest(BaseModel):
    message: Optional[str] = None


def status_code_for(result: SendResult) -> int:
    if result.error is None:
        return 200
    return _STATUS_CODES.get(result.error.kind, 500)


def create_app(session: ChatSession) -> FastAPI:
    app = FastAPI(title="Browser Chat Relay")
    router = APIRouter()

    @router.get("/test")
    def test_connection() -> Dict[str, Any]:
        return {
            "message": "Server is working!",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    @router.get("/status", response_model=StatusReport)
    def get_status() -> StatusReport:
        return session.get_status()

    # Sync handlers run on the thread pool; the session rejects overlapping sends.
    @router.post("/send", response_model=SendResult)
    def send_message(payload: SendRequest) -> JSONResponse:
        message = (payload.message or "").strip()
        if not message:
            raise HTTPException(status_code=400, detail="Message is required")
        result = session.send_message(message)
        return JSONResponse(
            status_code=status_code_for(result),
            content=result.model_dump(mode="json"),
        )

    @router.post("/shutdown")
    def shutdown() -> Dict[str, str]:
        session.shutdown()
        return {"status": "closed"}

    app.include_router(router)
    return app
