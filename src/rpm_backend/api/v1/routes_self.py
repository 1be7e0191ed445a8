from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from src.rpm_backend.domain.models.patient_views import AlertView, VitalReadingView
from src.rpm_backend.domain.models.user import Identity, UserRole
from src.rpm_backend.security import require_role
from src.rpm_backend.services.alerts.service import alert_service
from src.rpm_backend.services.patients.service import patient_service

router = APIRouter(prefix="/patient", tags=["patient"])

_patient = require_role(UserRole.PATIENT)


@router.get("/my-vitals", response_model=List[VitalReadingView])
async def my_vitals(
    type: Optional[str] = None,
    days: int = Query(default=30, ge=1, le=365),
    identity: Identity = Depends(_patient),
) -> List[VitalReadingView]:
    return patient_service.my_vitals(identity, reading_type=type, days=days)


@router.get("/my-alerts", response_model=List[AlertView])
async def my_alerts(identity: Identity = Depends(_patient)) -> List[AlertView]:
    return alert_service.my_alerts(identity)
