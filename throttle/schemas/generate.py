"""Pydantic schemas for the throttled generation route."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class GenerateRequest(BaseModel):
    """Text generation request forwarded to the configured provider."""

    model_config = ConfigDict(extra="forbid")

    prompt: str = Field(..., min_length=1, max_length=20_000, description="User prompt.")
    system: str | None = Field(
        default=None,
        max_length=4_000,
        description="Optional system prompt overriding the default.",
    )
    max_tokens: int | None = Field(
        default=None,
        ge=1,
        le=4_096,
        description="Upper bound on generated tokens.",
    )


class GenerateResponse(BaseModel):
    text: str = Field(..., description="Generated text.")
