from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field


class ActivityEventOut(BaseModel):
    event_id: str
    event_type: str
    ts: datetime
    user_id: str
    note_id: Optional[str] = None
    meta: dict[str, Any] = Field(default_factory=dict)
