from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class GroupCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)


class GroupJoin(BaseModel):
    invitation_code: str = Field(..., min_length=1, max_length=20)


class GroupResponse(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    owner_id: str
    member_ids: List[str]
    invitation_code: str
    created_at: datetime
    updated_at: datetime
