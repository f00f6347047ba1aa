"""Pydantic schemas for the limiter admin routes."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, StrictInt

from throttle.adapters.rate_limit import LimiterStats


class LimiterConfigUpdate(BaseModel):
    """Partial update of the live limiter configuration.

    Non-positive values are accepted on purpose: ``0`` pauses admission
    without losing queued work, which is how operators drain traffic to a
    provider that is throttling us.
    """

    model_config = ConfigDict(extra="forbid")

    max_operations_per_window: StrictInt | None = Field(
        default=None,
        description="Operations admitted per rolling one-second window.",
    )
    queue_warning_threshold: StrictInt | None = Field(
        default=None,
        description="Queue length at which a backpressure warning is logged.",
    )


class LimiterStateResponse(BaseModel):
    """Live limiter configuration and counters."""

    max_operations_per_window: int = Field(
        ..., description="Operations admitted per rolling one-second window."
    )
    queue_warning_threshold: int = Field(
        ..., description="Queue length at which a backpressure warning is logged."
    )
    queue_length: int = Field(
        ..., description="Operations submitted but not yet started."
    )
    in_flight: int = Field(..., description="Operations currently executing.")
    submitted: int = Field(..., description="Operations submitted since startup.")
    completed: int = Field(..., description="Operations that finished successfully.")
    failed: int = Field(..., description="Operations that raised.")

    @classmethod
    def from_stats(cls, stats: LimiterStats) -> "LimiterStateResponse":
        return cls(**stats.as_dict())
