"""
BugHunter Pro - Subdomain Discovery Service
Author: ha-2
GitHub: https://github.com/ha-2
License: CC BY-NC 4.0
"""

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.staticfiles import StaticFiles
from fastapi.responses import FileResponse, StreamingResponse
from typing import Optional
import logging
import os

from app.config import clamp_concurrency, get_settings
from app.errors import DomainValidationError
from app.schemas import ScanRequest, ScanResponse, SessionSnapshot, SubdomainInfo
from app.services.candidates import normalize_domain
from app.services.models import SessionStatus
from app.services.session import InMemorySessionStore, ScanSession
from app.services.streaming import SSE_HEADERS, run_while_connected, stream_session
from app.services.subdomain_enum import run_scan, scan_domain

# Set up logging
logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper())
logger = logging.getLogger(__name__)

app = FastAPI(
    title="BugHunter Pro API",
    description="Subdomain discovery with live verification",
    version="1.0.0"
)

app.state.session_store = InMemorySessionStore()

# Mount static files
BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
static_dir = os.path.join(BASE_DIR, "static")
INDEX_PATH = os.path.join(BASE_DIR, "static", "index.html")

@app.get("/", include_in_schema=False)
async def root():
    return FileResponse(INDEX_PATH)

app.mount("/static", StaticFiles(directory=static_dir), name="static")

def _settings_for(verify_http: Optional[bool], max_concurrency: Optional[int]):
    """Apply per-request overrides on top of environment settings"""
    settings = get_settings()
    update = {}
    if verify_http is not None:
        update["verify_http"] = verify_http
    if max_concurrency is not None:
        update["concurrency"] = clamp_concurrency(max_concurrency)
    return settings.model_copy(update=update) if update else settings

def _validated_domain(raw: Optional[str]) -> str:
    try:
        return normalize_domain(raw)
    except DomainValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

def _stream(request: Request, domain: str, verify_http: Optional[bool], max_concurrency: Optional[int]):
    settings = _settings_for(verify_http, max_concurrency)
    session = ScanSession(domain)
    events = run_scan(session, settings)
    return StreamingResponse(
        stream_session(session, events, request.app.state.session_store, request),
        media_type="text/event-stream",
        headers={**SSE_HEADERS, "X-Scan-Session": session.id},
    )

@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy"}

@app.get("/scan/stream")
async def stream_scan_get(
    request: Request,
    domain: Optional[str] = Query(None),
    verify_http: Optional[bool] = Query(None),
    max_concurrency: Optional[int] = Query(None),
):
    """Stream discovery events for a domain given as a query parameter"""
    return _stream(request, _validated_domain(domain), verify_http, max_concurrency)

@app.post("/scan/stream")
async def stream_scan_post(request: Request, scan_request: ScanRequest):
    """Stream discovery events for a domain given in the JSON body"""
    domain = _validated_domain(scan_request.domain)
    return _stream(request, domain, scan_request.verify_http, scan_request.max_concurrency)

@app.post("/scan", response_model=ScanResponse)
async def scan_subdomains(request: Request, scan_request: ScanRequest):
    """Scan subdomains for a given domain and return every hit at once"""
    domain = _validated_domain(scan_request.domain)
    settings = _settings_for(scan_request.verify_http, scan_request.max_concurrency)

    session = ScanSession(domain)
    finished = await run_while_connected(
        session,
        scan_domain(domain, settings, session=session),
        request.app.state.session_store,
        request,
    )
    if finished is None:
        raise HTTPException(status_code=499, detail="Client closed request")
    if session.status == SessionStatus.FAILED:
        logger.error(f"Scan failed for domain {domain}: {session.error}")
        raise HTTPException(status_code=500, detail=f"Scan failed: {session.error}")

    return ScanResponse(
        session_id=session.id,
        domain=domain,
        status=session.status.value,
        started_at=session.started_at,
        finished_at=session.finished_at,
        wildcard_detected=session.wildcard_detected,
        subdomains=[
            SubdomainInfo(
                subdomain=hit.subdomain,
                risk_level=hit.risk_level.value,
                source=hit.source.value,
                addresses=hit.addresses,
                http_live=hit.http_live,
                https_live=hit.https_live,
            )
            for hit in session.live_results
        ],
        total_candidates=len(session.candidates),
        checked=session.checked,
        total_found=session.total_found,
        sources=session.summary.get("sources", {}),
        risk=session.summary.get("risk", {}),
        notes=session.notes,
    )

@app.get("/scans/{session_id}", response_model=SessionSnapshot)
async def get_scan(session_id: str, request: Request):
    """State of a scan that is still streaming"""
    session = request.app.state.session_store.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Scan not found")
    return session.snapshot()

@app.delete("/scans/{session_id}", response_model=SessionSnapshot)
async def stop_scan(session_id: str, request: Request):
    """Stop scheduling new probes for a running scan"""
    session = request.app.state.session_store.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Scan not found")
    session.cancel()
    logger.info(f"Stop requested for scan {session_id}")
    return session.snapshot()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
