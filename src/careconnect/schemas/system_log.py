"""System log schemas."""
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class SystemLogResponse(BaseModel):
    id: int
    user_id: str
    action: str
    metadata: dict[str, Any] = Field(default_factory=dict, validation_alias="details")
    timestamp: datetime

    model_config = ConfigDict(from_attributes=True)


class SystemLogListResponse(BaseModel):
    logs: list[SystemLogResponse]
    total: int
    skip: int
    limit: int
