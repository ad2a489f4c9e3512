"""FastAPI route definitions for the scheduling & quotation API."""

from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, HTTPException, Request

from src.api.schemas import (
    HealthResponse,
    QuotationRequest,
    QuotationResponse,
    SchedulingValidationRequest,
    SchedulingValidationResponse,
)
from src.executor import ValidationExecutionError
from src.quotation import run_quotation
from src.scheduling import run_scheduling_validation

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_graph(request: Request, name: str):
    """Retrieve a compiled graph stored on app state by the lifespan."""
    graph = getattr(request.app.state, name, None)
    if graph is None:
        raise HTTPException(
            status_code=503,
            detail="The service is still starting up. Please try again in a moment.",
        )
    return graph


# ── Endpoints ────────────────────────────────────────────────────────


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return HealthResponse()


@router.post("/scheduling/validate", response_model=SchedulingValidationResponse)
async def validate_scheduling(request: SchedulingValidationRequest, http_request: Request):
    """Check a free-text scheduling request against the stored company rules.

    The graph makes several blocking round-trips (Qdrant, Anthropic,
    Piston), so it runs in a worker thread via ``asyncio.to_thread``.
    """
    graph = _get_graph(http_request, "scheduling_graph")
    request_id = getattr(http_request.state, "request_id", "?")

    try:
        result = await asyncio.to_thread(run_scheduling_validation, graph, request.customer_inquiry)
    except ValidationExecutionError as e:
        logger.exception("[%s] Scheduling validation could not be executed", request_id)
        raise HTTPException(
            status_code=502,
            detail="The scheduling request could not be validated. Please try again.",
        ) from e
    except Exception as e:
        logger.exception("[%s] Error validating scheduling request", request_id)
        raise HTTPException(
            status_code=500,
            detail="An internal error occurred. Please try again.",
        ) from e

    return SchedulingValidationResponse(**result)


@router.post("/quotation", response_model=QuotationResponse)
async def create_quotation(request: QuotationRequest, http_request: Request):
    """Draft a quotation for the requested cleaning service."""
    graph = _get_graph(http_request, "quotation_graph")
    request_id = getattr(http_request.state, "request_id", "?")

    try:
        result = await asyncio.to_thread(run_quotation, graph, request.user_input)
    except Exception as e:
        logger.exception("[%s] Error drafting quotation", request_id)
        raise HTTPException(
            status_code=500,
            detail="An internal error occurred. Please try again.",
        ) from e

    return QuotationResponse(**result)
