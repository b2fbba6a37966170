"""Pydantic response models for the HTTP endpoints.

WHY: FastAPI uses these for response serialization and the /docs schema.

RULES:
- All models use Field(description=...) for OpenAPI documentation
- Targets Python 3.10+, written without match/case or PEP 604 unions
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class VerificationResponse(BaseModel):
    """Echo of the SeaTalk callback verification challenge.

    WHY: SeaTalk only enables a callback URL after it answers the
    challenge with the same value.
    """

    seatalk_challenge: str = Field(description="Challenge value from the verification event.")


class HealthResponse(BaseModel):
    """Health check response.

    WHY: Load balancers and orchestrators need a simple endpoint
    to verify the service is alive and ready.
    """

    status: str = Field(description="Service health status.", json_schema_extra={"example": "ok"})
    version: str = Field(description="Service version string.", json_schema_extra={"example": "0.1.0"})
    active_jobs: int = Field(
        description="Number of conversion jobs currently running.",
        json_schema_extra={"example": 0},
    )
