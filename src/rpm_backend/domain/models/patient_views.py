from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class PatientSummary(BaseModel):
    """Row shown on the clinician patient list and detail page."""

    id: UUID
    name: str
    age: int
    gender: str
    conditions: List[str] = Field(default_factory=list)
    risk_score: int = 0
    risk_level: str = "low"
    last_sync: datetime


class UnassignedPatient(BaseModel):
    id: UUID
    user_id: Optional[UUID] = None
    name: str
    age: int
    gender: Optional[str] = None
    institution_id: Optional[UUID] = None
    institution_name: Optional[str] = None
    created_at: datetime


class VitalReadingView(BaseModel):
    id: UUID
    patient_id: UUID
    type: str
    value: float
    unit: Optional[str] = None
    timestamp: datetime


class AlertView(BaseModel):
    id: UUID
    patient_id: UUID
    patient_name: str = "Unknown"
    type: str
    message: str
    severity: str
    is_read: bool
    timestamp: datetime
