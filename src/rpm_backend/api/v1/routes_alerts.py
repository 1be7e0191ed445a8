from __future__ import annotations

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from src.rpm_backend.domain.models.monitoring import Alert
from src.rpm_backend.domain.models.patient_views import AlertView
from src.rpm_backend.domain.models.user import Identity, UserRole
from src.rpm_backend.security import require_role
from src.rpm_backend.services.alerts.service import alert_service

router = APIRouter(prefix="/alerts", tags=["alerts"])

# Institution admins pass no role gate here; the scope table denies them too.
_responders = require_role(UserRole.CLINICIAN, UserRole.ADMIN, approved=True)


class AlertReadUpdate(BaseModel):
    is_read: bool


@router.get("", response_model=List[AlertView])
async def list_alerts(identity: Identity = Depends(_responders)) -> List[AlertView]:
    return alert_service.list_alerts(identity)


@router.patch("/{alert_id}", response_model=Alert)
async def update_alert(
    alert_id: UUID,
    payload: AlertReadUpdate,
    identity: Identity = Depends(_responders),
) -> Alert:
    return alert_service.set_read(alert_id, payload.is_read, identity)


@router.patch("/{alert_id}/respond", response_model=Alert)
async def respond_to_alert(alert_id: UUID, identity: Identity = Depends(_responders)) -> Alert:
    return alert_service.respond(alert_id, identity)
