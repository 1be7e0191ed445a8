from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional
from uuid import UUID

from src.rpm_backend.domain import errors
from src.rpm_backend.domain.models.monitoring import RiskScore, to_display_type, to_health_type
from src.rpm_backend.domain.models.patient import Patient
from src.rpm_backend.domain.models.patient_views import PatientSummary, UnassignedPatient, VitalReadingView
from src.rpm_backend.domain.models.user import Identity
from src.rpm_backend.infra.db import inmemory as repos
from src.rpm_backend.services.access.scope import Resource, ensure_patient_in_scope, require_scope


def latest_risk_by_user(user_ids: List[UUID]) -> Dict[UUID, RiskScore]:
    """Most recent risk score per user id."""

    latest: Dict[UUID, RiskScore] = {}
    if not user_ids:
        return latest
    # Scores come back oldest first, so later entries overwrite earlier ones.
    for score in repos.risk_score_repository.list_for_users(user_ids):
        latest[score.user_id] = score
    return latest


def _summarize(patient: Patient, risk: Optional[RiskScore]) -> PatientSummary:
    return PatientSummary(
        id=patient.id,
        name=patient.display_name,
        age=patient.age,
        gender=patient.sex or "N/A",
        risk_score=risk.score if risk else 0,
        risk_level=risk.level.value if risk else "low",
        last_sync=risk.generated_at if risk else patient.created_at,
    )


class PatientService:
    """Role-scoped reads over patients and their vitals."""

    def list_unassigned(self, identity: Identity) -> List[UnassignedPatient]:
        scope = require_scope(Resource.UNASSIGNED_PATIENTS, identity)
        patients = repos.patient_repository.list_by_filters(
            unassigned_only=True,
            newest_first=False,
            **scope.patient_filters(),
        )

        institution_names: Dict[UUID, Optional[str]] = {}
        results: List[UnassignedPatient] = []
        for patient in patients:
            name: Optional[str] = None
            if patient.institution_id is not None:
                if patient.institution_id not in institution_names:
                    inst = repos.institution_repository.get(patient.institution_id)
                    institution_names[patient.institution_id] = inst.name if inst else None
                name = institution_names[patient.institution_id]
            results.append(
                UnassignedPatient(
                    id=patient.id,
                    user_id=patient.user_id,
                    name=patient.display_name,
                    age=patient.age,
                    gender=patient.sex,
                    institution_id=patient.institution_id,
                    institution_name=name,
                    created_at=patient.created_at,
                )
            )
        return results

    def list_patients(self, identity: Identity) -> List[PatientSummary]:
        scope = require_scope(Resource.PATIENTS, identity)
        patients = list(repos.patient_repository.list_by_filters(newest_first=True, **scope.patient_filters()))
        if not patients:
            return []

        risks = latest_risk_by_user([p.user_id for p in patients if p.user_id is not None])
        return [_summarize(p, risks.get(p.user_id) if p.user_id else None) for p in patients]

    def get_patient(self, patient_id: UUID, identity: Identity) -> PatientSummary:
        scope = require_scope(Resource.PATIENTS, identity)
        patient = repos.patient_repository.get(patient_id)
        if patient is None:
            raise errors.NotFound("Patient not found")
        ensure_patient_in_scope(scope, patient)

        risk = None
        if patient.user_id is not None:
            risk = latest_risk_by_user([patient.user_id]).get(patient.user_id)
        return _summarize(patient, risk)

    def get_vitals(
        self,
        patient_id: UUID,
        identity: Identity,
        *,
        reading_type: Optional[str] = None,
        days: int = 7,
    ) -> List[VitalReadingView]:
        scope = require_scope(Resource.VITALS, identity)
        patient = repos.patient_repository.get(patient_id)
        if patient is None:
            raise errors.NotFound("Patient not found")
        ensure_patient_in_scope(scope, patient)

        if patient.user_id is None:
            raise errors.NotFound("Patient user_id not found")
        return self._vitals_for_user(patient.user_id, reading_type=reading_type, days=days)

    def my_vitals(
        self,
        identity: Identity,
        *,
        reading_type: Optional[str] = None,
        days: int = 30,
    ) -> List[VitalReadingView]:
        scope = require_scope(Resource.OWN_RECORDS, identity)
        return self._vitals_for_user(scope.user_id, reading_type=reading_type, days=days)

    def _vitals_for_user(self, user_id: UUID, *, reading_type: Optional[str], days: int) -> List[VitalReadingView]:
        since = datetime.now(timezone.utc) - timedelta(days=days)
        readings = repos.vital_reading_repository.list_for_user(
            user_id,
            since=since,
            reading_type=to_health_type(reading_type) if reading_type else None,
        )
        return [
            VitalReadingView(
                id=r.id,
                patient_id=r.user_id,
                type=to_display_type(r.type),
                value=r.value,
                unit=r.unit,
                timestamp=r.recorded_at,
            )
            for r in readings
        ]


patient_service = PatientService()
