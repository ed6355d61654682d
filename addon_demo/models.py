"""Request models using Pydantic."""

from pydantic import BaseModel, Field


class LogRequest(BaseModel):
    """Message to emit through the application logger."""

    level: str = Field(default="info", max_length=20)
    message: str = Field(default="Test log message", min_length=1, max_length=10000)


class TimeoutRequest(BaseModel):
    """How long to keep the request open, in milliseconds."""

    duration: int = Field(default=35000, ge=0, le=300000)


class CpuRequest(BaseModel):
    """Optional loop count for the CPU burn."""

    iterations: int | None = Field(default=None, ge=1, le=2_000_000_000)
