"""Pydantic request and response models for the trial endpoint.

Field names on the wire are camelCase; the Python attributes are
snake_case with aliases.

Models
------
AnonymousGenerateRequest
    Payload for ``POST /api/anonymous-generate``.
AnonymousGenerateResponse
    HTTP 200 body.
TrialExceededResponse
    HTTP 403 body.
ErrorResponse
    Every other failure body.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class AnonymousGenerateRequest(BaseModel):
    """Request body for ``POST /api/anonymous-generate``.

    Attributes:
        prompt: Text prompt; required and non-empty.
        negative_prompt: Optional text describing what to avoid.
        width: Image width in pixels; server default when omitted.
        height: Image height in pixels; server default when omitted.
        steps: Diffusion steps; server default when omitted.
        guidance: CFG scale; server default when omitted.
        fingerprint: Client fingerprint, the trial key.
        session_id: Client session identifier.
    """

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    prompt: str = Field(..., min_length=1)
    negative_prompt: str | None = Field(default=None, alias="negativePrompt")
    width: int | None = Field(default=None, ge=64, le=2048)
    height: int | None = Field(default=None, ge=64, le=2048)
    steps: int | None = Field(default=None, ge=1, le=150)
    guidance: float | None = Field(default=None, ge=0.0, le=35.0)
    fingerprint: str = Field(..., min_length=1)
    session_id: str = Field(..., min_length=1, alias="sessionId")


class AnonymousGenerateResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    image_url: str = Field(..., alias="imageUrl")
    remaining_generations: int = Field(..., alias="remainingGenerations")
    total_used: int = Field(..., alias="totalUsed")
    max_allowed: int = Field(..., alias="maxAllowed")


class TrialExceededResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    error: str = "Trial limit exceeded"
    remaining_generations: int = Field(default=0, alias="remainingGenerations")
    total_used: int = Field(..., alias="totalUsed")
    max_allowed: int = Field(..., alias="maxAllowed")


class ErrorResponse(BaseModel):
    error: str


class HealthResponse(BaseModel):
    status: str = "ok"
    configured: bool
    version: str
