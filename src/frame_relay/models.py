"""
Request Schemas
===============

Pydantic models for JSON request bodies.

Frame uploads are raw bytes and have no schema; only the save toggle
carries JSON:

    POST /v1/stream/set_save/{name}
    {"toggle": true}
"""

from pydantic import BaseModel, Field


class ToggleRequest(BaseModel):
    """Body of a save-toggle request."""

    toggle: bool = Field(
        ...,
        description="Whether frames received for the stream are saved to disk",
    )

    model_config = {
        "json_schema_extra": {
            "example": {"toggle": True},
        }
    }
