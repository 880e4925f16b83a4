"""
Pydantic schemas for service versions.

A version is a dated release record that belongs to exactly one
service.  The label is free-form (``1.0.0``, ``2024.06-rc1``...) and the
changelog is optional.  JSON field names are camelCase; Python
attributes stay snake_case.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class VersionCreate(BaseModel):
    """Schema for adding a version to an existing service."""

    version: str = Field("", example="1.2.0")
    changelog: str = Field("", example="Fixed token refresh")


class VersionRead(BaseModel):
    """Schema for reading a version record."""

    id: int
    service_id: int = Field(..., alias="serviceId")
    version: str
    # Empty changelogs are stored as NULL and left out of the JSON body.
    changelog: Optional[str] = None
    created_at: datetime = Field(..., alias="createdAt")

    model_config = {
        "populate_by_name": True,
    }
