from __future__ import annotations

from datetime import datetime
from threading import Lock
from typing import Dict, Iterable, List, Optional, Sequence
from uuid import UUID

from src.rpm_backend.domain.models.institution import Institution
from src.rpm_backend.domain.models.monitoring import Alert, RiskScore, VitalReading
from src.rpm_backend.domain.models.patient import Patient
from src.rpm_backend.domain.models.user import ClinicianProfile, User, UserProfile, UserRole
from src.rpm_backend.infra.db.repositories import (
    AlertRepository,
    InstitutionRepository,
    PatientRepository,
    RiskScoreRepository,
    UserRepository,
    VitalReadingRepository,
)


# The patient, alert and institution repositories hand out copies so that a
# caller holding a previously read row sees a stale snapshot, the same way it
# would with a real database, and take a lock so that conditional writes
# check and set in one step. Vital readings, risk scores and users are only
# ever added or replaced whole, so those stores keep plain dicts.


class InMemoryPatientRepository(PatientRepository):
    def __init__(self) -> None:
        self._patients: Dict[UUID, Patient] = {}
        self._lock = Lock()

    def get(self, patient_id: UUID) -> Optional[Patient]:
        with self._lock:
            patient = self._patients.get(patient_id)
            return patient.model_copy() if patient is not None else None

    def get_by_user(self, user_id: UUID) -> Optional[Patient]:
        with self._lock:
            for patient in self._patients.values():
                if patient.user_id == user_id:
                    return patient.model_copy()
        return None

    def list_by_filters(
        self,
        *,
        institution_id: Optional[UUID] = None,
        assigned_clinician_id: Optional[UUID] = None,
        assigned_clinician_ids: Optional[Sequence[UUID]] = None,
        user_id: Optional[UUID] = None,
        unassigned_only: bool = False,
        newest_first: bool = True,
    ) -> Iterable[Patient]:
        with self._lock:
            snapshot = [p.model_copy() for p in self._patients.values()]

        matches: List[Patient] = []
        for patient in snapshot:
            if institution_id is not None and patient.institution_id != institution_id:
                continue
            if assigned_clinician_id is not None and patient.assigned_clinician_id != assigned_clinician_id:
                continue
            if assigned_clinician_ids is not None and patient.assigned_clinician_id not in assigned_clinician_ids:
                continue
            if user_id is not None and patient.user_id != user_id:
                continue
            if unassigned_only and patient.assigned_clinician_id is not None:
                continue
            matches.append(patient)

        matches.sort(key=lambda p: p.created_at, reverse=newest_first)
        return matches

    def count_unassigned(self, *, institution_id: Optional[UUID] = None) -> int:
        return len(list(self.list_by_filters(institution_id=institution_id, unassigned_only=True)))

    def add(self, patient: Patient) -> None:
        with self._lock:
            self._patients[patient.id] = patient.model_copy()

    def assign_if_unassigned(self, patient_id: UUID, clinician_id: UUID) -> int:
        with self._lock:
            patient = self._patients.get(patient_id)
            if patient is None or patient.assigned_clinician_id is not None:
                return 0
            patient.assigned_clinician_id = clinician_id
            return 1


class InMemoryAlertRepository(AlertRepository):
    def __init__(self) -> None:
        self._alerts: Dict[UUID, Alert] = {}
        self._lock = Lock()

    def get(self, alert_id: UUID) -> Optional[Alert]:
        with self._lock:
            alert = self._alerts.get(alert_id)
            return alert.model_copy() if alert is not None else None

    def list_recent(self, *, user_ids: Optional[Sequence[UUID]] = None, limit: int = 50) -> List[Alert]:
        with self._lock:
            alerts = [
                a.model_copy()
                for a in self._alerts.values()
                if user_ids is None or a.user_id in user_ids
            ]
        alerts.sort(key=lambda a: a.triggered_at, reverse=True)
        return alerts[:limit]

    def count_unresolved(self, user_ids: Sequence[UUID]) -> int:
        with self._lock:
            return sum(1 for a in self._alerts.values() if a.user_id in user_ids and not a.is_resolved)

    def list_responded(self, *, responder_ids: Optional[Sequence[UUID]] = None) -> List[Alert]:
        with self._lock:
            return [
                a.model_copy()
                for a in self._alerts.values()
                if a.responded_by_id is not None
                and a.responded_at is not None
                and (responder_ids is None or a.responded_by_id in responder_ids)
            ]

    def set_resolved(self, alert_id: UUID, is_resolved: bool) -> Optional[Alert]:
        with self._lock:
            alert = self._alerts.get(alert_id)
            if alert is None:
                return None
            alert.is_resolved = is_resolved
            return alert.model_copy()

    def mark_responded_if_unanswered(self, alert_id: UUID, responder_id: UUID, responded_at: datetime) -> int:
        with self._lock:
            alert = self._alerts.get(alert_id)
            if alert is None or alert.responded_by_id is not None:
                return 0
            alert.is_resolved = True
            alert.responded_by_id = responder_id
            alert.responded_at = responded_at
            return 1

    def add(self, alert: Alert) -> None:
        with self._lock:
            self._alerts[alert.id] = alert.model_copy()


class InMemoryVitalReadingRepository(VitalReadingRepository):
    def __init__(self) -> None:
        self._readings: Dict[UUID, VitalReading] = {}

    def list_for_user(
        self,
        user_id: UUID,
        *,
        since: Optional[datetime] = None,
        reading_type: Optional[str] = None,
    ) -> List[VitalReading]:
        readings = [
            r
            for r in self._readings.values()
            if r.user_id == user_id
            and (since is None or r.recorded_at >= since)
            and (reading_type is None or r.type == reading_type)
        ]
        readings.sort(key=lambda r: r.recorded_at, reverse=True)
        return readings

    def add(self, reading: VitalReading) -> None:
        self._readings[reading.id] = reading


class InMemoryRiskScoreRepository(RiskScoreRepository):
    def __init__(self) -> None:
        self._scores: Dict[UUID, RiskScore] = {}

    def list_for_users(self, user_ids: Sequence[UUID]) -> List[RiskScore]:
        scores = [s for s in self._scores.values() if s.user_id in user_ids]
        scores.sort(key=lambda s: s.generated_at)
        return scores

    def add(self, score: RiskScore) -> None:
        self._scores[score.id] = score


class InMemoryUserRepository(UserRepository):
    def __init__(self) -> None:
        self._users: Dict[UUID, User] = {}
        self._profiles: Dict[UUID, UserProfile] = {}
        self._clinician_profiles: Dict[UUID, ClinicianProfile] = {}

    def get(self, user_id: UUID) -> Optional[User]:
        return self._users.get(user_id)

    def list_by_ids(self, user_ids: Sequence[UUID]) -> List[User]:
        return [self._users[uid] for uid in user_ids if uid in self._users]

    def get_profile(self, user_id: UUID) -> Optional[UserProfile]:
        return self._profiles.get(user_id)

    def list_profiles(
        self,
        *,
        role: Optional[UserRole] = None,
        institution_id: Optional[UUID] = None,
    ) -> List[UserProfile]:
        return [
            p
            for p in self._profiles.values()
            if (role is None or p.role == role)
            and (institution_id is None or p.institution_id == institution_id)
        ]

    def list_clinician_profiles(self, user_ids: Sequence[UUID]) -> List[ClinicianProfile]:
        return [self._clinician_profiles[uid] for uid in user_ids if uid in self._clinician_profiles]

    def save(self, user: User) -> None:
        self._users[user.id] = user

    def save_profile(self, profile: UserProfile) -> None:
        self._profiles[profile.user_id] = profile

    def save_clinician_profile(self, profile: ClinicianProfile) -> None:
        self._clinician_profiles[profile.user_id] = profile


class InMemoryInstitutionRepository(InstitutionRepository):
    def __init__(self) -> None:
        self._institutions: Dict[UUID, Institution] = {}
        self._lock = Lock()

    def get(self, institution_id: UUID) -> Optional[Institution]:
        with self._lock:
            inst = self._institutions.get(institution_id)
            return inst.model_copy() if inst is not None else None

    def list_all(self) -> List[Institution]:
        with self._lock:
            institutions = [i.model_copy() for i in self._institutions.values()]
        institutions.sort(key=lambda i: i.name)
        return institutions

    def save(self, institution: Institution) -> None:
        with self._lock:
            self._institutions[institution.id] = institution.model_copy()

    def set_default(self, institution_id: UUID) -> None:
        with self._lock:
            if institution_id not in self._institutions:
                raise KeyError(f"Unknown institution {institution_id}")
            for inst in self._institutions.values():
                inst.is_default = False
            self._institutions[institution_id].is_default = True


patient_repository: PatientRepository = InMemoryPatientRepository()
alert_repository: AlertRepository = InMemoryAlertRepository()
vital_reading_repository: VitalReadingRepository = InMemoryVitalReadingRepository()
risk_score_repository: RiskScoreRepository = InMemoryRiskScoreRepository()
user_repository: UserRepository = InMemoryUserRepository()
institution_repository: InstitutionRepository = InMemoryInstitutionRepository()


def reset_inmemory_repositories() -> None:
    """Replace every repository singleton with a fresh, empty in-memory one."""

    global patient_repository, alert_repository, vital_reading_repository
    global risk_score_repository, user_repository, institution_repository

    patient_repository = InMemoryPatientRepository()
    alert_repository = InMemoryAlertRepository()
    vital_reading_repository = InMemoryVitalReadingRepository()
    risk_score_repository = InMemoryRiskScoreRepository()
    user_repository = InMemoryUserRepository()
    institution_repository = InMemoryInstitutionRepository()
