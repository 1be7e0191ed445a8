from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Dict, Optional
from uuid import UUID

from pydantic import BaseModel


# Stored health type -> label shown on the dashboard.
HEALTH_TYPE_LABELS: Dict[str, str] = {
    "heart_rate": "Heart Rate",
    "blood_pressure_systolic": "Blood Pressure Systolic",
    "blood_pressure_diastolic": "Blood Pressure Diastolic",
    "spo2": "SpO2",
    "temperature": "Temperature",
    "weight": "Weight",
    "steps": "Steps",
    "sleep": "Sleep",
    "hrv": "HRV",
    "respiratory_rate": "Respiratory Rate",
    "blood_glucose": "Blood Glucose",
    "bmi": "BMI",
}

_LABEL_TO_HEALTH_TYPE: Dict[str, str] = {label: key for key, label in HEALTH_TYPE_LABELS.items()}


def to_display_type(health_type: str) -> str:
    return HEALTH_TYPE_LABELS.get(health_type, health_type)


def to_health_type(display_type: str) -> str:
    return _LABEL_TO_HEALTH_TYPE.get(display_type, display_type)


class Alert(BaseModel):
    """Alert raised for a patient, keyed by the patient's own user id."""

    id: UUID
    user_id: UUID
    alert_type: str
    message: str
    severity: str
    is_resolved: bool = False
    triggered_at: datetime
    responded_by_id: Optional[UUID] = None
    responded_at: Optional[datetime] = None


class VitalReading(BaseModel):
    id: UUID
    user_id: UUID
    type: str
    value: float
    unit: Optional[str] = None
    recorded_at: datetime


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class RiskScore(BaseModel):
    id: UUID
    user_id: UUID
    score: int
    level: RiskLevel
    generated_at: datetime
