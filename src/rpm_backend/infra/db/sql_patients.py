from __future__ import annotations

from typing import Iterable, Optional, Sequence
from uuid import UUID

from sqlalchemy import func, update

from src.rpm_backend.domain.models.patient import Patient
from src.rpm_backend.infra.db.models import PatientORM
from src.rpm_backend.infra.db.repositories import PatientRepository
from src.rpm_backend.infra.db.session import SessionFactory


class SqlPatientRepository(PatientRepository):
    """SQL-backed PatientRepository.

    Claiming relies on :meth:`assign_if_unassigned`, a single guarded UPDATE
    whose affected-row count tells the caller whether it won.
    """

    def __init__(self, session_factory: SessionFactory) -> None:
        self._session_factory = session_factory

    def get(self, patient_id: UUID) -> Optional[Patient]:
        session = self._session_factory()
        try:
            orm = session.get(PatientORM, patient_id)
            return orm.to_domain() if orm is not None else None
        finally:
            session.close()

    def get_by_user(self, user_id: UUID) -> Optional[Patient]:
        session = self._session_factory()
        try:
            orm = session.query(PatientORM).filter(PatientORM.user_id == user_id).first()
            return orm.to_domain() if orm is not None else None
        finally:
            session.close()

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
        session = self._session_factory()
        try:
            query = session.query(PatientORM)
            if institution_id is not None:
                query = query.filter(PatientORM.institution_id == institution_id)
            if assigned_clinician_id is not None:
                query = query.filter(PatientORM.assigned_clinician_id == assigned_clinician_id)
            if assigned_clinician_ids is not None:
                query = query.filter(PatientORM.assigned_clinician_id.in_(list(assigned_clinician_ids)))
            if user_id is not None:
                query = query.filter(PatientORM.user_id == user_id)
            if unassigned_only:
                query = query.filter(PatientORM.assigned_clinician_id.is_(None))

            order = PatientORM.created_at.desc() if newest_first else PatientORM.created_at.asc()
            return [orm.to_domain() for orm in query.order_by(order).all()]
        finally:
            session.close()

    def count_unassigned(self, *, institution_id: Optional[UUID] = None) -> int:
        session = self._session_factory()
        try:
            query = session.query(func.count(PatientORM.id)).filter(PatientORM.assigned_clinician_id.is_(None))
            if institution_id is not None:
                query = query.filter(PatientORM.institution_id == institution_id)
            return int(query.scalar() or 0)
        finally:
            session.close()

    def add(self, patient: Patient) -> None:
        session = self._session_factory()
        try:
            session.add(PatientORM.from_domain(patient))
            session.commit()
        finally:
            session.close()

    def assign_if_unassigned(self, patient_id: UUID, clinician_id: UUID) -> int:
        session = self._session_factory()
        try:
            stmt = (
                update(PatientORM)
                .where(PatientORM.id == patient_id)
                .where(PatientORM.assigned_clinician_id.is_(None))
                .values(assigned_clinician_id=clinician_id)
                .execution_options(synchronize_session=False)
            )
            result = session.execute(stmt)
            session.commit()
            return result.rowcount
        finally:
            session.close()
