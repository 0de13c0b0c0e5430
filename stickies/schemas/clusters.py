"""
Cluster Schemas

Pydantic models for the clustering endpoints.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class ClusterRequest(BaseModel):
    """Request body for POST /clusters."""

    k: int = Field(
        default=5,
        ge=1,
        le=50,
        description="Requested number of clusters (clamped to indexed notes)",
    )


class ClusterRead(BaseModel):
    """A cluster and its member note ids."""

    id: str
    name: str
    description: str | None = None
    note_ids: list[str]
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
