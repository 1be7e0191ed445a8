from __future__ import annotations

from datetime import date, datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel

_DAYS_PER_YEAR = 365.25


class Patient(BaseModel):
    """A monitored patient.

    ``assigned_clinician_id`` starts out as None and is set exactly once via
    the claim path. ``institution_id`` is fixed at creation time.
    """

    id: UUID
    # The patient's own login; absent for profile-less records.
    user_id: Optional[UUID] = None
    institution_id: Optional[UUID] = None
    assigned_clinician_id: Optional[UUID] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    sex: Optional[str] = None
    date_of_birth: Optional[date] = None
    created_at: datetime

    @property
    def display_name(self) -> str:
        name = f"{self.first_name or ''} {self.last_name or ''}".strip()
        return name or "Unknown"

    def age_on(self, today: date) -> int:
        if self.date_of_birth is None:
            return 0
        return int((today - self.date_of_birth).days // _DAYS_PER_YEAR)

    @property
    def age(self) -> int:
        return self.age_on(date.today())
