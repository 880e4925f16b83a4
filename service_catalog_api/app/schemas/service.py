"""
Pydantic models for catalog services.

List retrieval and single retrieval intentionally use different shapes:
``ServiceSummary`` carries only the flattened version labels so a page
of services stays compact, while ``ServiceDetail`` embeds the full
``VersionRead`` records.
"""

from datetime import datetime
from typing import List

from pydantic import BaseModel, Field

from .version import VersionRead


class ServiceBase(BaseModel):
    name: str = Field(..., example="Auth")
    description: str = Field("", example="AuthZ svc")


class ServiceCreate(ServiceBase):
    """Schema for creating a service together with its first version."""

    version: str = Field("", example="1.0.0")
    changelog: str = Field("", example="Initial release")


class ServiceUpdate(ServiceBase):
    """Schema for replacing a service's name and description."""
    pass


class ServiceCreated(BaseModel):
    id: int


class ServiceSummary(ServiceBase):
    """A service as returned by the list endpoint."""

    id: int
    created_at: datetime = Field(..., alias="createdAt")
    versions: List[str] = Field(default_factory=list)

    model_config = {
        "populate_by_name": True,
    }


class ServiceDetail(ServiceBase):
    """A service with its versions ordered by creation time."""

    id: int
    created_at: datetime = Field(..., alias="createdAt")
    versions: List[VersionRead] = Field(default_factory=list)

    model_config = {
        "populate_by_name": True,
    }
