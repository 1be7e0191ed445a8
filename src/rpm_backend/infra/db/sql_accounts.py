from __future__ import annotations

from typing import List, Optional, Sequence
from uuid import UUID

from sqlalchemy import update

from src.rpm_backend.domain.models.institution import Institution
from src.rpm_backend.domain.models.user import ClinicianProfile, User, UserProfile, UserRole
from src.rpm_backend.infra.db.models import ClinicianProfileORM, InstitutionORM, UserORM, UserProfileORM
from src.rpm_backend.infra.db.repositories import InstitutionRepository, UserRepository
from src.rpm_backend.infra.db.session import SessionFactory


class SqlUserRepository(UserRepository):
    def __init__(self, session_factory: SessionFactory) -> None:
        self._session_factory = session_factory

    def get(self, user_id: UUID) -> Optional[User]:
        session = self._session_factory()
        try:
            orm = session.get(UserORM, user_id)
            return orm.to_domain() if orm is not None else None
        finally:
            session.close()

    def list_by_ids(self, user_ids: Sequence[UUID]) -> List[User]:
        if not user_ids:
            return []
        session = self._session_factory()
        try:
            rows = session.query(UserORM).filter(UserORM.id.in_(list(user_ids))).all()
            return [orm.to_domain() for orm in rows]
        finally:
            session.close()

    def get_profile(self, user_id: UUID) -> Optional[UserProfile]:
        session = self._session_factory()
        try:
            orm = session.get(UserProfileORM, user_id)
            return orm.to_domain() if orm is not None else None
        finally:
            session.close()

    def list_profiles(
        self,
        *,
        role: Optional[UserRole] = None,
        institution_id: Optional[UUID] = None,
    ) -> List[UserProfile]:
        session = self._session_factory()
        try:
            query = session.query(UserProfileORM)
            if role is not None:
                query = query.filter(UserProfileORM.role == role.value)
            if institution_id is not None:
                query = query.filter(UserProfileORM.institution_id == institution_id)
            return [orm.to_domain() for orm in query.all()]
        finally:
            session.close()

    def list_clinician_profiles(self, user_ids: Sequence[UUID]) -> List[ClinicianProfile]:
        if not user_ids:
            return []
        session = self._session_factory()
        try:
            rows = session.query(ClinicianProfileORM).filter(ClinicianProfileORM.user_id.in_(list(user_ids))).all()
            return [orm.to_domain() for orm in rows]
        finally:
            session.close()

    def save(self, user: User) -> None:
        session = self._session_factory()
        try:
            # merge() inserts or updates by primary key.
            session.merge(UserORM.from_domain(user))
            session.commit()
        finally:
            session.close()

    def save_profile(self, profile: UserProfile) -> None:
        session = self._session_factory()
        try:
            existing = session.get(UserProfileORM, profile.user_id)
            if existing is None:
                session.add(
                    UserProfileORM(
                        user_id=profile.user_id,
                        role=profile.role.value,
                        institution_id=profile.institution_id,
                    )
                )
            else:
                existing.role = profile.role.value
                existing.institution_id = profile.institution_id
            session.commit()
        finally:
            session.close()

    def save_clinician_profile(self, profile: ClinicianProfile) -> None:
        session = self._session_factory()
        try:
            existing = session.get(ClinicianProfileORM, profile.user_id)
            if existing is None:
                session.add(
                    ClinicianProfileORM(
                        user_id=profile.user_id,
                        full_name=profile.full_name,
                        specialty=profile.specialty,
                    )
                )
            else:
                existing.full_name = profile.full_name
                existing.specialty = profile.specialty
            session.commit()
        finally:
            session.close()


class SqlInstitutionRepository(InstitutionRepository):
    def __init__(self, session_factory: SessionFactory) -> None:
        self._session_factory = session_factory

    def get(self, institution_id: UUID) -> Optional[Institution]:
        session = self._session_factory()
        try:
            orm = session.get(InstitutionORM, institution_id)
            return orm.to_domain() if orm is not None else None
        finally:
            session.close()

    def list_all(self) -> List[Institution]:
        session = self._session_factory()
        try:
            rows = session.query(InstitutionORM).order_by(InstitutionORM.name.asc()).all()
            return [orm.to_domain() for orm in rows]
        finally:
            session.close()

    def save(self, institution: Institution) -> None:
        session = self._session_factory()
        try:
            existing = session.get(InstitutionORM, institution.id)
            if existing is None:
                session.add(InstitutionORM.from_domain(institution))
            else:
                existing.name = institution.name
                existing.is_default = institution.is_default
            session.commit()
        finally:
            session.close()

    def set_default(self, institution_id: UUID) -> None:
        session = self._session_factory()
        try:
            if session.get(InstitutionORM, institution_id) is None:
                raise KeyError(f"Unknown institution {institution_id}")
            # Clear and set in one transaction so no reader sees two defaults.
            session.execute(
                update(InstitutionORM)
                .where(InstitutionORM.is_default.is_(True))
                .values(is_default=False)
                .execution_options(synchronize_session=False)
            )
            session.execute(
                update(InstitutionORM)
                .where(InstitutionORM.id == institution_id)
                .values(is_default=True)
                .execution_options(synchronize_session=False)
            )
            session.commit()
        finally:
            session.close()
