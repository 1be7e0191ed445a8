"""Claiming unassigned patients.

The checks before the write give fast, descriptive rejections for the common
cases. They read a snapshot and are advisory only: the single guarded write
in :meth:`PatientRepository.assign_if_unassigned` is what decides a race.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from src.rpm_backend.domain import errors
from src.rpm_backend.domain.models.user import Identity, UserRole
from src.rpm_backend.infra.db import inmemory as repos
from src.rpm_backend.infra.db.repositories import PatientRepository
from src.rpm_backend.services.audit.service import audit_service

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClaimResult:
    patient_id: UUID
    patient_name: str

    @property
    def message(self) -> str:
        return f"Patient {self.patient_name} has been assigned to you"


class ClaimCoordinator:
    def __init__(self, patient_repository: Optional[PatientRepository] = None) -> None:
        self._patient_repository = patient_repository

    @property
    def patients(self) -> PatientRepository:
        # Resolved per call so a bootstrap swap to SQL repositories is honoured.
        return self._patient_repository or repos.patient_repository

    def claim(self, patient_id: UUID, identity: Identity) -> ClaimResult:
        if identity.role != UserRole.CLINICIAN:
            raise errors.Denied("Only clinicians can claim patients")
        if identity.institution_id is None:
            raise errors.NotLinkedToInstitution("Clinician account is not linked to an institution")

        patient = self.patients.get(patient_id)
        if patient is None:
            raise errors.NotFound("Patient not found")

        if patient.institution_id is None or patient.institution_id != identity.institution_id:
            logger.info(
                "Claim of patient %s refused: clinician %s is in another institution",
                patient_id,
                identity.user_id,
            )
            raise errors.CrossTenant()

        # Only reached inside the caller's institution, so outsiders never
        # learn a foreign patient's assignment state.
        if patient.assigned_clinician_id is not None:
            logger.info("Claim of patient %s refused: already assigned", patient_id)
            raise errors.AlreadyAssigned()

        updated = self.patients.assign_if_unassigned(patient_id, identity.user_id)
        if updated == 0:
            # Contention, not a bug: another clinician won between our read
            # and the guarded write.
            logger.info("Claim of patient %s lost the race for clinician %s", patient_id, identity.user_id)
            raise errors.RaceLost()

        audit_service.log_event(
            action="claim_patient",
            resource_type="patient",
            resource_id=str(patient_id),
            extra={"clinician_id": str(identity.user_id), "institution_id": str(identity.institution_id)},
        )
        return ClaimResult(patient_id=patient_id, patient_name=patient.display_name)


claim_coordinator = ClaimCoordinator()
