"""FastAPI server for the scheduling & quotation agent.

Run with:
    uv run uvicorn src.server:app --reload --host 0.0.0.0 --port 8000
"""

from __future__ import annotations

import logging
import uuid
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from src.api.routes import router
from src.config import CORS_ORIGINS, QDRANT_COLLECTION, SERVER_HOST, SERVER_PORT
from src.quotation import create_quotation_graph
from src.scheduling import create_scheduling_graph
from src.services.document_store import DocumentStore
from src.services.sandbox_client import PistonClient

# ── Logging ──────────────────────────────────────────────────────────
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
)
logger = logging.getLogger(__name__)


# ── Lifespan: initialise / tear-down shared resources ────────────────
@asynccontextmanager
async def lifespan(application: FastAPI):
    """Build the clients once, compile both graphs and keep them on app state."""
    logger.info("Compiling LangGraph workflows for collection %s…", QDRANT_COLLECTION)
    store = DocumentStore()
    sandbox = PistonClient()
    try:
        application.state.scheduling_graph = create_scheduling_graph(store, sandbox)
        application.state.quotation_graph = create_quotation_graph(store)
        logger.info("Workflows ready.")
        yield
    finally:
        sandbox.close()
        store.client.close()


# ── FastAPI application ──────────────────────────────────────────────
app = FastAPI(
    title="Cleaning Services Scheduling Agent",
    description=(
        "Validates appointment requests against company scheduling rules "
        "and drafts service quotations."
    ),
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Request-ID middleware ────────────────────────────────────────────
@app.middleware("http")
async def add_request_id(request: Request, call_next) -> Response:
    """Attach a unique request ID to every request for log correlation.

    The ID is echoed in the ``X-Request-ID`` response header so clients can
    quote it when reporting a failed validation.
    """
    request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
    request.state.request_id = request_id
    logger.info("[%s] %s %s", request_id, request.method, request.url.path)
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


app.include_router(router, prefix="/api")


@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "service": "Cleaning Services Scheduling Agent",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/api/health",
    }


if __name__ == "__main__":
    logger.info("Starting scheduling agent API server on %s:%d", SERVER_HOST, SERVER_PORT)
    uvicorn.run(
        "src.server:app",
        host=SERVER_HOST,
        port=SERVER_PORT,
        reload=True,
    )
