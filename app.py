#!/usr/bin/env python3
"""
Itinerary Job API — Backend (FastAPI, async)

POST /                  { destination, durationDays } → 202 { jobId }
GET  /status/{job_id}   → 200 job record | 404
GET  /health            → 200

A POST writes a 'processing' job record to Firestore, starts itinerary
generation as a supervised background task and returns immediately.  The
client polls /status/{job_id} until status is 'completed' or 'failed'.

Run locally:
    uvicorn app:app --reload
"""

import logging

import httpx
from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import load_settings
from errors import AuthError, NotFoundError, StoreError, ValidationError
from firestore_client import FirestoreClient
from generation import GenerationClient
from google_auth import TokenProvider
from jobs import JobOrchestrator, TaskSupervisor
from schemas import CreateJobRequest, CreateJobResponse, JobStatusResponse

# ---------------------------------------------------------------------------
# Bootstrap
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s [%(levelname)s] %(message)s',
)
logger = logging.getLogger(__name__)

settings = load_settings()

# ---------------------------------------------------------------------------
# FastAPI application
# ---------------------------------------------------------------------------

app = FastAPI(title='Itinerary Job API', docs_url=None, redoc_url=None)

# ── CORS ─────────────────────────────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=['*'],
    allow_headers=['*'],
)


# CORSMiddleware only answers requests that send Origin; the header is wanted on every response.
@app.middleware('http')
async def allow_origin_header(request: Request, call_next):
    response = await call_next(request)
    if '*' in settings.cors_origins:
        response.headers.setdefault('Access-Control-Allow-Origin', '*')
    return response


# ── Map errors → { "error": "..." } ──────────────────────────────────────────
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={'error': exc.detail})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    problems = '; '.join(
        f"{'.'.join(str(p) for p in err['loc'] if p != 'body')}: {err['msg']}"
        for err in exc.errors()[:3]
    )
    return JSONResponse(status_code=400, content={'error': problems or 'Invalid request body'})


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=400, content={'error': str(exc)})


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={'error': 'Job not found'})


@app.exception_handler(AuthError)
@app.exception_handler(StoreError)
async def upstream_error_handler(request: Request, exc: Exception):
    logger.error('Upstream error on %s %s: %s', request.method, request.url.path, exc)
    return JSONResponse(status_code=502, content={'error': 'Job store is unavailable. Please try again.'})


# ---------------------------------------------------------------------------
# Shared clients (created at startup)
# ---------------------------------------------------------------------------

_http_client: httpx.AsyncClient | None = None
_orchestrator: JobOrchestrator | None = None


def build_orchestrator(http_client: httpx.AsyncClient) -> JobOrchestrator:
    tokens = TokenProvider.from_settings(settings, http_client)
    return JobOrchestrator(
        store      = FirestoreClient.from_settings(settings, tokens, http_client),
        generator  = GenerationClient.from_settings(settings),
        supervisor = TaskSupervisor(),
    )


@app.on_event('startup')
async def startup():
    global _http_client, _orchestrator
    _http_client = httpx.AsyncClient(
        timeout=settings.http_timeout,
        headers={'User-Agent': 'ItineraryJobs/1.0'},
    )
    _orchestrator = build_orchestrator(_http_client)
    logger.info('Itinerary Job API ready (project=%s, collection=%s, model=%s)',
                settings.project_id or '-', settings.collection, settings.llm_model)


@app.on_event('shutdown')
async def shutdown():
    if _orchestrator is not None and _orchestrator.supervisor.pending:
        logger.warning('Waiting for %d background job(s) to finish', _orchestrator.supervisor.pending)
        await _orchestrator.supervisor.drain()
    if _http_client:
        await _http_client.aclose()


def get_orchestrator() -> JobOrchestrator:
    if _orchestrator is None:
        raise HTTPException(status_code=503, detail='Service is starting up')
    return _orchestrator


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

@app.get('/health')
async def health():
    return {'status': 'ok'}


@app.post('/', status_code=202, response_model=CreateJobResponse)
async def create_job(
    body: CreateJobRequest,
    orchestrator: JobOrchestrator = Depends(get_orchestrator),
):
    """
    Create an itinerary job and return its id without waiting for generation.

    The initial record is written before this returns, so an immediate
    GET /status/{jobId} reports 'processing' rather than 404.
    """
    job_id = await orchestrator.create(body.destination, body.duration_days)
    return {'jobId': job_id}


@app.get('/status/{job_id}', response_model=JobStatusResponse)
async def job_status(
    job_id: str,
    orchestrator: JobOrchestrator = Depends(get_orchestrator),
):
    job = await orchestrator.get_status(job_id)
    return job.to_dict()


if __name__ == '__main__':
    import uvicorn
    uvicorn.run('app:app', host='0.0.0.0', port=8000)
