"""Standardized error response schema."""

from pydantic import BaseModel, Field


class FieldErrorDetail(BaseModel):
    field: str = Field(..., description="Name of the offending input field")
    message: str = Field(..., description="Human-readable reason")


class ErrorResponse(BaseModel):
    """Standard error body for domain exceptions (4xx) and unexpected failures (5xx)."""

    detail: str = Field(..., description="Human-readable error message")
    code: str = Field(..., description="Machine-readable error code")
    errors: list[FieldErrorDetail] | None = Field(
        default=None, description="Field-level validation failures"
    )
