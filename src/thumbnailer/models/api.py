"""
API Schemas
===========

Pydantic models for the HTTP request and response bodies.

Contract:
    POST /generate-thumbnail   {"url": "<source>", "type": "video"}
    GET  /cache-status         -> {"cacheHit": true}
    any error                  -> {"error": "<message>"}
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class GenerateThumbnailRequest(BaseModel):
    """
    Body of POST /generate-thumbnail.

    Both fields are optional at the schema level so that a missing URL or
    a wrong type is reported as a 400 by the service, not as a 422.
    """

    url: Optional[str] = Field(default=None, description="Video source locator")
    type: Optional[str] = Field(default=None, description="Task type, must be 'video'")


class CacheStatus(BaseModel):
    """Result of a read-only cache lookup."""

    model_config = ConfigDict(populate_by_name=True)

    hit: bool = Field(..., alias="cacheHit", description="Entry present and unexpired")


class ErrorResponse(BaseModel):
    """Error payload returned with every non-2xx status."""

    error: str
