from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel


class Institution(BaseModel):
    id: UUID
    name: str
    # At most one institution carries the default flag at any time.
    is_default: bool = False
    created_at: datetime
