from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional
from uuid import UUID

from sqlalchemy import Boolean, Date, DateTime, Float, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from src.rpm_backend.domain.models.institution import Institution
from src.rpm_backend.domain.models.monitoring import Alert, RiskLevel, RiskScore, VitalReading
from src.rpm_backend.domain.models.patient import Patient
from src.rpm_backend.domain.models.user import (
    ApprovalStatus,
    ClinicianProfile,
    User,
    UserProfile,
    UserRole,
)


class Base(DeclarativeBase):
    pass


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite drops tzinfo on the way back; every stored timestamp is UTC.
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class InstitutionORM(Base):
    __tablename__ = "institutions"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    is_default: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    @classmethod
    def from_domain(cls, institution: Institution) -> "InstitutionORM":
        return cls(
            id=institution.id,
            name=institution.name,
            is_default=institution.is_default,
            created_at=institution.created_at,
        )

    def to_domain(self) -> Institution:
        return Institution(
            id=self.id,
            name=self.name,
            is_default=self.is_default,
            created_at=_aware(self.created_at),
        )


class UserORM(Base):
    __tablename__ = "users"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True)
    email: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    approval_status: Mapped[str | None] = mapped_column(String, nullable=True)
    email_confirmed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    @classmethod
    def from_domain(cls, user: User) -> "UserORM":
        return cls(
            id=user.id,
            email=str(user.email),
            approval_status=user.approval_status.value if user.approval_status else None,
            email_confirmed=user.email_confirmed,
            created_at=user.created_at,
        )

    def to_domain(self) -> User:
        return User(
            id=self.id,
            email=self.email,
            approval_status=ApprovalStatus(self.approval_status) if self.approval_status else None,
            email_confirmed=self.email_confirmed,
            created_at=_aware(self.created_at),
        )


class UserProfileORM(Base):
    __tablename__ = "user_profiles"

    user_id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), ForeignKey("users.id"), primary_key=True)
    role: Mapped[str] = mapped_column(String, nullable=False)
    institution_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("institutions.id"), nullable=True, index=True
    )

    def to_domain(self) -> UserProfile:
        return UserProfile(user_id=self.user_id, role=UserRole(self.role), institution_id=self.institution_id)


class ClinicianProfileORM(Base):
    __tablename__ = "clinician_profiles"

    user_id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), ForeignKey("users.id"), primary_key=True)
    full_name: Mapped[str | None] = mapped_column(String, nullable=True)
    specialty: Mapped[str | None] = mapped_column(String, nullable=True)

    def to_domain(self) -> ClinicianProfile:
        return ClinicianProfile(user_id=self.user_id, full_name=self.full_name, specialty=self.specialty)


class PatientORM(Base):
    __tablename__ = "patients"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True)
    user_id: Mapped[UUID | None] = mapped_column(Uuid(as_uuid=True), nullable=True, index=True)
    institution_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("institutions.id"), nullable=True, index=True
    )
    # Points at a clinician user; the role is enforced by the claim path, not
    # by a constraint.
    assigned_clinician_id: Mapped[UUID | None] = mapped_column(Uuid(as_uuid=True), nullable=True, index=True)
    first_name: Mapped[str | None] = mapped_column(String, nullable=True)
    last_name: Mapped[str | None] = mapped_column(String, nullable=True)
    sex: Mapped[str | None] = mapped_column(String, nullable=True)
    date_of_birth: Mapped[date | None] = mapped_column(Date, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    @classmethod
    def from_domain(cls, patient: Patient) -> "PatientORM":
        return cls(
            id=patient.id,
            user_id=patient.user_id,
            institution_id=patient.institution_id,
            assigned_clinician_id=patient.assigned_clinician_id,
            first_name=patient.first_name,
            last_name=patient.last_name,
            sex=patient.sex,
            date_of_birth=patient.date_of_birth,
            created_at=patient.created_at,
        )

    def to_domain(self) -> Patient:
        return Patient(
            id=self.id,
            user_id=self.user_id,
            institution_id=self.institution_id,
            assigned_clinician_id=self.assigned_clinician_id,
            first_name=self.first_name,
            last_name=self.last_name,
            sex=self.sex,
            date_of_birth=self.date_of_birth,
            created_at=_aware(self.created_at),
        )


class AlertORM(Base):
    __tablename__ = "alerts"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True)
    user_id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), nullable=False, index=True)
    alert_type: Mapped[str] = mapped_column(String, nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    severity: Mapped[str] = mapped_column(String, nullable=False)
    is_resolved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    triggered_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    responded_by_id: Mapped[UUID | None] = mapped_column(Uuid(as_uuid=True), nullable=True, index=True)
    responded_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    @classmethod
    def from_domain(cls, alert: Alert) -> "AlertORM":
        return cls(
            id=alert.id,
            user_id=alert.user_id,
            alert_type=alert.alert_type,
            message=alert.message,
            severity=alert.severity,
            is_resolved=alert.is_resolved,
            triggered_at=alert.triggered_at,
            responded_by_id=alert.responded_by_id,
            responded_at=alert.responded_at,
        )

    def to_domain(self) -> Alert:
        return Alert(
            id=self.id,
            user_id=self.user_id,
            alert_type=self.alert_type,
            message=self.message,
            severity=self.severity,
            is_resolved=self.is_resolved,
            triggered_at=_aware(self.triggered_at),
            responded_by_id=self.responded_by_id,
            responded_at=_aware(self.responded_at),
        )


class VitalReadingORM(Base):
    __tablename__ = "health_readings"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True)
    user_id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), nullable=False, index=True)
    type: Mapped[str] = mapped_column(String, nullable=False)
    value: Mapped[float] = mapped_column(Float, nullable=False)
    unit: Mapped[str | None] = mapped_column(String, nullable=True)
    recorded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    @classmethod
    def from_domain(cls, reading: VitalReading) -> "VitalReadingORM":
        return cls(
            id=reading.id,
            user_id=reading.user_id,
            type=reading.type,
            value=reading.value,
            unit=reading.unit,
            recorded_at=reading.recorded_at,
        )

    def to_domain(self) -> VitalReading:
        return VitalReading(
            id=self.id,
            user_id=self.user_id,
            type=self.type,
            value=self.value,
            unit=self.unit,
            recorded_at=_aware(self.recorded_at),
        )


class RiskScoreORM(Base):
    __tablename__ = "risk_scores"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True)
    user_id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), nullable=False, index=True)
    score: Mapped[int] = mapped_column(Integer, nullable=False)
    level: Mapped[str] = mapped_column(String, nullable=False)
    generated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    @classmethod
    def from_domain(cls, score: RiskScore) -> "RiskScoreORM":
        return cls(
            id=score.id,
            user_id=score.user_id,
            score=score.score,
            level=score.level.value,
            generated_at=score.generated_at,
        )

    def to_domain(self) -> RiskScore:
        return RiskScore(
            id=self.id,
            user_id=self.user_id,
            score=self.score,
            level=RiskLevel(self.level),
            generated_at=_aware(self.generated_at),
        )
