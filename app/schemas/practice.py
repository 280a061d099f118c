from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class PracticeResponse(BaseModel):
    """Practice as returned to clients."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID = Field(..., description="Practice ID")
    name: str = Field(..., description="Display name")
    owner_id: str = Field(..., description="Owner's user ID")
    created_at: datetime
    updated_at: datetime
