from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Dict, Optional
from uuid import UUID, uuid4

import pytest
from httpx import ASGITransport, AsyncClient

from src.rpm_backend.domain.models.institution import Institution
from src.rpm_backend.domain.models.monitoring import Alert, RiskLevel, RiskScore, VitalReading
from src.rpm_backend.domain.models.patient import Patient
from src.rpm_backend.domain.models.user import ApprovalStatus, Identity, User, UserProfile, UserRole
from src.rpm_backend.infra.db import inmemory as repos
from src.rpm_backend.main import app
from src.rpm_backend.security import issue_token
from src.rpm_backend.services.institutions.service import institution_service
from src.rpm_backend.services.ratelimit import service as ratelimit
from src.rpm_backend.services.users.service import user_service


@pytest.fixture(autouse=True)
def fresh_state():
    """Every test starts with empty repositories and rate-limit windows."""

    repos.reset_inmemory_repositories()
    ratelimit.rate_limit_store = ratelimit.LimitsRateLimitStore()
    yield
    repos.reset_inmemory_repositories()


@pytest.fixture
async def client():
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


_DEFAULT_APPROVAL = {
    UserRole.CLINICIAN: ApprovalStatus.APPROVED,
    UserRole.INSTITUTION_ADMIN: ApprovalStatus.APPROVED,
}


class Seed:
    """Writes fixture rows through the same repositories the app reads."""

    def institution(self, name: str = "General Hospital", *, is_default: bool = False) -> Institution:
        return institution_service.create_institution(name=name, is_default=is_default)

    def user(
        self,
        role: UserRole,
        institution_id: Optional[UUID] = None,
        *,
        approval_status: Optional[ApprovalStatus] = None,
        email_confirmed: bool = True,
        full_name: Optional[str] = None,
        unchecked: bool = False,
    ) -> User:
        """Create a user and profile.

        ``unchecked`` writes the profile straight to the repository, for rows
        that predate the tenant-binding rule.
        """

        status = approval_status if approval_status is not None else _DEFAULT_APPROVAL.get(role)
        email = f"{role.value}-{uuid4().hex[:8]}@hospital.org"
        if not unchecked:
            return user_service.register_user(
                email=email,
                role=role,
                institution_id=institution_id,
                approval_status=status,
                email_confirmed=email_confirmed,
                full_name=full_name,
            )

        user = User(
            id=uuid4(),
            email=email,
            approval_status=status,
            email_confirmed=email_confirmed,
            created_at=datetime.now(timezone.utc),
        )
        repos.user_repository.save(user)
        repos.user_repository.save_profile(UserProfile(user_id=user.id, role=role, institution_id=institution_id))
        return user

    def identity(self, user: User) -> Identity:
        profile = repos.user_repository.get_profile(user.id)
        return Identity(
            user_id=user.id,
            email=user.email,
            email_confirmed=user.email_confirmed,
            role=profile.role,
            institution_id=profile.institution_id,
            approval_status=user.approval_status,
        )

    def patient(
        self,
        institution_id: Optional[UUID],
        *,
        assigned_clinician_id: Optional[UUID] = None,
        first_name: str = "Ada",
        last_name: str = "Lovelace",
        with_login: bool = True,
        created_at: Optional[datetime] = None,
    ) -> Patient:
        user_id = self.user(UserRole.PATIENT).id if with_login else None
        patient = Patient(
            id=uuid4(),
            user_id=user_id,
            institution_id=institution_id,
            assigned_clinician_id=assigned_clinician_id,
            first_name=first_name,
            last_name=last_name,
            sex="female",
            date_of_birth=date(1980, 1, 1),
            created_at=created_at or datetime.now(timezone.utc),
        )
        repos.patient_repository.add(patient)
        return patient

    def alert(
        self,
        user_id: UUID,
        *,
        triggered_at: Optional[datetime] = None,
        responded_by_id: Optional[UUID] = None,
        response_minutes: Optional[float] = None,
        is_resolved: bool = False,
    ) -> Alert:
        triggered = triggered_at or datetime.now(timezone.utc)
        responded_at = None
        if responded_by_id is not None and response_minutes is not None:
            responded_at = triggered + timedelta(minutes=response_minutes)
        alert = Alert(
            id=uuid4(),
            user_id=user_id,
            alert_type="heart_rate",
            message="Heart rate above threshold",
            severity="high",
            is_resolved=is_resolved or responded_by_id is not None,
            triggered_at=triggered,
            responded_by_id=responded_by_id,
            responded_at=responded_at,
        )
        repos.alert_repository.add(alert)
        return alert

    def risk(self, user_id: UUID, score: int, level: RiskLevel, *, days_ago: float = 0) -> RiskScore:
        risk = RiskScore(
            id=uuid4(),
            user_id=user_id,
            score=score,
            level=level,
            generated_at=datetime.now(timezone.utc) - timedelta(days=days_ago),
        )
        repos.risk_score_repository.add(risk)
        return risk

    def vital(self, user_id: UUID, reading_type: str, value: float, *, days_ago: float = 0) -> VitalReading:
        reading = VitalReading(
            id=uuid4(),
            user_id=user_id,
            type=reading_type,
            value=value,
            unit="bpm" if reading_type == "heart_rate" else None,
            recorded_at=datetime.now(timezone.utc) - timedelta(days=days_ago),
        )
        repos.vital_reading_repository.add(reading)
        return reading

    @staticmethod
    def headers(user: User) -> Dict[str, str]:
        return {"Authorization": f"Bearer {issue_token(user.id)}"}


@pytest.fixture
def seed() -> Seed:
    return Seed()
