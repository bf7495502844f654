"""Snapshot data model for recruitguard."""

from datetime import datetime
from typing import Dict, Any
from pydantic import BaseModel, Field

from recruitguard.models.resource import ResourceType, DeletionType


class Snapshot(BaseModel):
    """Full serialized state of a resource captured before a delete mutation."""

    id: str = Field(..., description="Unique snapshot identifier")
    resource_type: ResourceType = Field(..., description="Type of the snapshotted resource")
    resource_id: str = Field(..., description="ID of the snapshotted resource")
    snapshot_data: Dict[str, Any] = Field(default_factory=dict, description="Pre-mutation field values")
    deletion_type: DeletionType = Field(..., description="SOFT, HARD or ERASURE")
    correlation_id: str = Field(..., description="Correlation ID of the deletion operation")
    deleted_by: str = Field(..., description="Actor ID performing the deletion")
    captured_at: datetime = Field(..., description="When the snapshot was durably written")

    class Config:
        """Pydantic configuration."""
        use_enum_values = True
