from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from src.rpm_backend.domain import errors
from src.rpm_backend.domain.models.patient_views import PatientSummary, UnassignedPatient, VitalReadingView
from src.rpm_backend.domain.models.user import Identity, UserRole
from src.rpm_backend.security import require_role
from src.rpm_backend.services.claims.service import claim_coordinator
from src.rpm_backend.services.patients.service import patient_service

router = APIRouter(prefix="/patients", tags=["patients"])

_staff = require_role(UserRole.CLINICIAN, UserRole.ADMIN, UserRole.INSTITUTION_ADMIN, approved=True)
_clinician = require_role(UserRole.CLINICIAN, approved=True)


def _patient_id(patient_id: str) -> UUID:
    # Any id that cannot name a patient is answered like a missing one.
    try:
        return UUID(patient_id)
    except ValueError:
        raise errors.NotFound("Patient not found")


class ClaimResponse(BaseModel):
    message: str
    patient_id: UUID


# Declared before "/{patient_id}" so "unassigned" is not parsed as an id.
@router.get("/unassigned", response_model=List[UnassignedPatient])
async def list_unassigned_patients(identity: Identity = Depends(_staff)) -> List[UnassignedPatient]:
    return patient_service.list_unassigned(identity)


@router.post("/{patient_id}/claim", response_model=ClaimResponse)
async def claim_patient(
    identity: Identity = Depends(_clinician),
    patient_id: UUID = Depends(_patient_id),
) -> ClaimResponse:
    result = claim_coordinator.claim(patient_id, identity)
    return ClaimResponse(message=result.message, patient_id=result.patient_id)


@router.get("", response_model=List[PatientSummary])
async def list_patients(identity: Identity = Depends(_staff)) -> List[PatientSummary]:
    return patient_service.list_patients(identity)


@router.get("/{patient_id}", response_model=PatientSummary)
async def get_patient(
    identity: Identity = Depends(_staff),
    patient_id: UUID = Depends(_patient_id),
) -> PatientSummary:
    return patient_service.get_patient(patient_id, identity)


@router.get("/{patient_id}/vitals", response_model=List[VitalReadingView])
async def get_patient_vitals(
    identity: Identity = Depends(_staff),
    patient_id: UUID = Depends(_patient_id),
    type: Optional[str] = None,
    days: int = Query(default=7, ge=1, le=365),
) -> List[VitalReadingView]:
    return patient_service.get_vitals(patient_id, identity, reading_type=type, days=days)
