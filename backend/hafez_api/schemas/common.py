"""
Hafez Quraan Backend — Shared Pydantic Schemas
================================================

What:  Envelope, health and base models shared by every route.
Why:   The mobile/web client expects camelCase JSON keys and a uniform
       `{success, message}` / `{success, error}` envelope on every endpoint.

Wire format:
    All models derived from `CamelModel` serialize with camelCase aliases
    (FastAPI serializes response models by alias) and accept either
    camelCase or snake_case keys on input.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model: snake_case attributes, camelCase JSON."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class MessageResponse(BaseModel):
    """Success acknowledgement for write endpoints (no echo of stored state)."""
    success: bool = Field(default=True)
    message: str = Field(description="Human-readable success message")


class ErrorResponse(BaseModel):
    """
    What:  Uniform failure envelope returned by every exception handler.

    Example:
        {"success": false, "error": "Email and OTP are required"}
    """
    success: bool = Field(default=False)
    error: str = Field(description="Human-readable error description")


class RootResponse(BaseModel):
    status: str = Field(default="OK")
    message: str = Field(default="Hafez Quraan API is running")


class HealthResponse(BaseModel):
    """Liveness probe payload. Does not touch the database or mail provider."""
    status: str = Field(description="Always 'OK' while the process is serving")
    timestamp: datetime = Field(description="Current server time (UTC ISO 8601)")
    uptime: float = Field(description="Seconds since the app module was loaded")
