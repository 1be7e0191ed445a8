from __future__ import annotations

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from src.rpm_backend.domain.models.user import ApprovalStatus, Identity, PendingClinician, UserRole
from src.rpm_backend.security import require_role
from src.rpm_backend.services.users.service import user_service

router = APIRouter(prefix="/admin", tags=["admin"])

_institution_admin = require_role(UserRole.INSTITUTION_ADMIN, approved=True)


class ClinicianDecision(BaseModel):
    clinician_id: UUID


class DecisionResponse(BaseModel):
    message: str


@router.get("/pending-clinicians", response_model=List[PendingClinician])
async def list_pending_clinicians(identity: Identity = Depends(_institution_admin)) -> List[PendingClinician]:
    return user_service.list_pending_clinicians(identity)


@router.post("/approve-clinician", response_model=DecisionResponse)
async def approve_clinician(
    payload: ClinicianDecision,
    identity: Identity = Depends(_institution_admin),
) -> DecisionResponse:
    user_service.set_approval(payload.clinician_id, ApprovalStatus.APPROVED, identity)
    return DecisionResponse(message="Clinician approved successfully")


@router.post("/reject-clinician", response_model=DecisionResponse)
async def reject_clinician(
    payload: ClinicianDecision,
    identity: Identity = Depends(_institution_admin),
) -> DecisionResponse:
    user_service.set_approval(payload.clinician_id, ApprovalStatus.REJECTED, identity)
    return DecisionResponse(message="Clinician rejected")
