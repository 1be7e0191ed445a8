from __future__ import annotations

from typing import Optional
from uuid import UUID

from pydantic import BaseModel


class PatientDashboardStats(BaseModel):
    total_patients: int
    high_risk_count: int
    active_alerts: int
    avg_risk_score: int
    unassigned_patients: int
    is_clinician_view: bool = False


class ClinicianDashboardStats(BaseModel):
    """Institution-admin view: the admin manages clinicians, not patients."""

    total_clinicians: int
    approved_clinicians: int
    pending_approvals: int
    avg_performance_score: int
    is_clinician_view: bool = True


class TopPerformer(BaseModel):
    id: UUID
    name: str
    specialty: str
    avg_response_time: str
    avg_response_time_ms: Optional[float] = None
    alerts_responded_to: int
    patient_outcome_rate: int
    performance_score: int
