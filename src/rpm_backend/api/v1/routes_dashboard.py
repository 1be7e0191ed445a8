from __future__ import annotations

from typing import List, Union

from fastapi import APIRouter, Depends

from src.rpm_backend.domain.models.dashboard import ClinicianDashboardStats, PatientDashboardStats, TopPerformer
from src.rpm_backend.domain.models.user import Identity, UserRole
from src.rpm_backend.security import require_role
from src.rpm_backend.services.dashboard.service import dashboard_service

router = APIRouter(tags=["dashboard"])

_staff = require_role(UserRole.CLINICIAN, UserRole.ADMIN, UserRole.INSTITUTION_ADMIN, approved=True)


@router.get("/dashboard/stats", response_model=Union[ClinicianDashboardStats, PatientDashboardStats])
async def dashboard_stats(
    identity: Identity = Depends(_staff),
) -> Union[ClinicianDashboardStats, PatientDashboardStats]:
    """Patient counters for clinicians and admins, clinician counters for institution admins."""
    return dashboard_service.stats(identity)


@router.get("/clinicians/top-performers", response_model=List[TopPerformer])
async def top_performers(identity: Identity = Depends(_staff)) -> List[TopPerformer]:
    return dashboard_service.top_performers(identity)
