"""Pydantic schemas for the FastAPI endpoints."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class SchedulingValidationRequest(BaseModel):
    """A customer's free-text scheduling request."""

    customer_inquiry: str = Field(
        ..., min_length=1, max_length=2000,
        description="The customer's scheduling request, e.g. 'next Tuesday at 10am for 2 hours'",
    )


class SchedulingValidationResponse(BaseModel):
    """Outcome of validating a scheduling request against the company rules."""

    status: Literal["pending", "validation_passed", "validation_failed"]
    validation_errors: list[str] = Field(
        default_factory=list, description="Text of every violated rule, in the order the validator reported them",
    )


class QuotationRequest(BaseModel):
    """The service a customer wants a quotation for."""

    user_input: str = Field(..., min_length=1, max_length=500, description="Requested service")


class QuotationResponse(BaseModel):
    """Drafted quotation."""

    user_input: str
    status: str
    final_quotation: str


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    service: str = "scheduling-agent"
