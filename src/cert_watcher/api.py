"""HTTP API exposing certificate chain analysis."""

import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from cert_watcher.chain import analyze_host
from cert_watcher.config import settings
from cert_watcher.exceptions import (
    CertWatcherError,
    ConnectionTimeoutError,
    InputError,
)
from cert_watcher.reporter import record_to_dict

logger = logging.getLogger(__name__)

app = FastAPI(title="Cert-Watcher API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["GET"],
    allow_headers=["*"],
)


def _status_for(exc: CertWatcherError) -> int:
    if isinstance(exc, InputError):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(exc, ConnectionTimeoutError):
        return status.HTTP_504_GATEWAY_TIMEOUT
    return status.HTTP_502_BAD_GATEWAY


@app.exception_handler(CertWatcherError)
async def cert_watcher_error_handler(request: Request, exc: CertWatcherError) -> JSONResponse:
    logger.error(f"Error analyzing {request.query_params.get('domain')}: {exc}")
    return JSONResponse(status_code=_status_for(exc), content={"error": str(exc)})


@app.get("/", response_class=PlainTextResponse)
def root() -> str:
    return "Cert-Watcher API is running"


@app.get("/health")
def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/api/analyze")
async def analyze(domain: Optional[str] = None) -> Any:
    if not domain or not domain.strip():
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": "Domain is required"})

    record = await analyze_host(
        domain,
        port=settings.port,
        timeout=settings.connect_timeout,
        max_depth=settings.max_chain_depth,
    )
    payload: Dict[str, Any] = record_to_dict(record)
    return payload
