from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Iterable, List, Optional, Sequence
from uuid import UUID

from src.rpm_backend.domain.models.institution import Institution
from src.rpm_backend.domain.models.monitoring import Alert, RiskScore, VitalReading
from src.rpm_backend.domain.models.patient import Patient
from src.rpm_backend.domain.models.user import ClinicianProfile, User, UserProfile, UserRole


class PatientRepository(ABC):
    @abstractmethod
    def get(self, patient_id: UUID) -> Optional[Patient]:
        raise NotImplementedError

    @abstractmethod
    def get_by_user(self, user_id: UUID) -> Optional[Patient]:
        raise NotImplementedError

    @abstractmethod
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
        raise NotImplementedError

    @abstractmethod
    def count_unassigned(self, *, institution_id: Optional[UUID] = None) -> int:
        raise NotImplementedError

    @abstractmethod
    def add(self, patient: Patient) -> None:
        raise NotImplementedError

    @abstractmethod
    def assign_if_unassigned(self, patient_id: UUID, clinician_id: UUID) -> int:
        """Set the assigned clinician only if none is set at write time.

        Implementations must evaluate the ``assigned_clinician_id IS NULL``
        guard atomically with the write and return the number of rows actually
        modified (0 or 1).
        """

        raise NotImplementedError


class AlertRepository(ABC):
    @abstractmethod
    def get(self, alert_id: UUID) -> Optional[Alert]:
        raise NotImplementedError

    @abstractmethod
    def list_recent(self, *, user_ids: Optional[Sequence[UUID]] = None, limit: int = 50) -> List[Alert]:
        """Newest alerts first; ``user_ids=None`` means every user."""

        raise NotImplementedError

    @abstractmethod
    def count_unresolved(self, user_ids: Sequence[UUID]) -> int:
        raise NotImplementedError

    @abstractmethod
    def list_responded(self, *, responder_ids: Optional[Sequence[UUID]] = None) -> List[Alert]:
        raise NotImplementedError

    @abstractmethod
    def set_resolved(self, alert_id: UUID, is_resolved: bool) -> Optional[Alert]:
        raise NotImplementedError

    @abstractmethod
    def mark_responded_if_unanswered(self, alert_id: UUID, responder_id: UUID, responded_at: datetime) -> int:
        """Record a response only if the alert has none yet; returns rows modified."""

        raise NotImplementedError

    @abstractmethod
    def add(self, alert: Alert) -> None:
        raise NotImplementedError


class VitalReadingRepository(ABC):
    @abstractmethod
    def list_for_user(
        self,
        user_id: UUID,
        *,
        since: Optional[datetime] = None,
        reading_type: Optional[str] = None,
    ) -> List[VitalReading]:
        raise NotImplementedError

    @abstractmethod
    def add(self, reading: VitalReading) -> None:
        raise NotImplementedError


class RiskScoreRepository(ABC):
    @abstractmethod
    def list_for_users(self, user_ids: Sequence[UUID]) -> List[RiskScore]:
        """Scores for the given users, oldest first."""

        raise NotImplementedError

    @abstractmethod
    def add(self, score: RiskScore) -> None:
        raise NotImplementedError


class UserRepository(ABC):
    @abstractmethod
    def get(self, user_id: UUID) -> Optional[User]:
        raise NotImplementedError

    @abstractmethod
    def list_by_ids(self, user_ids: Sequence[UUID]) -> List[User]:
        raise NotImplementedError

    @abstractmethod
    def get_profile(self, user_id: UUID) -> Optional[UserProfile]:
        raise NotImplementedError

    @abstractmethod
    def list_profiles(
        self,
        *,
        role: Optional[UserRole] = None,
        institution_id: Optional[UUID] = None,
    ) -> List[UserProfile]:
        raise NotImplementedError

    @abstractmethod
    def list_clinician_profiles(self, user_ids: Sequence[UUID]) -> List[ClinicianProfile]:
        raise NotImplementedError

    @abstractmethod
    def save(self, user: User) -> None:
        raise NotImplementedError

    @abstractmethod
    def save_profile(self, profile: UserProfile) -> None:
        raise NotImplementedError

    @abstractmethod
    def save_clinician_profile(self, profile: ClinicianProfile) -> None:
        raise NotImplementedError


class InstitutionRepository(ABC):
    @abstractmethod
    def get(self, institution_id: UUID) -> Optional[Institution]:
        raise NotImplementedError

    @abstractmethod
    def list_all(self) -> List[Institution]:
        raise NotImplementedError

    @abstractmethod
    def save(self, institution: Institution) -> None:
        raise NotImplementedError

    @abstractmethod
    def set_default(self, institution_id: UUID) -> None:
        """Make ``institution_id`` the only default, clearing every other flag first."""

        raise NotImplementedError
