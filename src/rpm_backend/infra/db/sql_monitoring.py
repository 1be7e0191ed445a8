from __future__ import annotations

from datetime import datetime
from typing import List, Optional, Sequence
from uuid import UUID

from sqlalchemy import func, update

from src.rpm_backend.domain.models.monitoring import Alert, RiskScore, VitalReading
from src.rpm_backend.infra.db.models import AlertORM, RiskScoreORM, VitalReadingORM
from src.rpm_backend.infra.db.repositories import (
    AlertRepository,
    RiskScoreRepository,
    VitalReadingRepository,
)
from src.rpm_backend.infra.db.session import SessionFactory


class SqlAlertRepository(AlertRepository):
    def __init__(self, session_factory: SessionFactory) -> None:
        self._session_factory = session_factory

    def get(self, alert_id: UUID) -> Optional[Alert]:
        session = self._session_factory()
        try:
            orm = session.get(AlertORM, alert_id)
            return orm.to_domain() if orm is not None else None
        finally:
            session.close()

    def list_recent(self, *, user_ids: Optional[Sequence[UUID]] = None, limit: int = 50) -> List[Alert]:
        session = self._session_factory()
        try:
            query = session.query(AlertORM)
            if user_ids is not None:
                query = query.filter(AlertORM.user_id.in_(list(user_ids)))
            rows = query.order_by(AlertORM.triggered_at.desc()).limit(limit).all()
            return [orm.to_domain() for orm in rows]
        finally:
            session.close()

    def count_unresolved(self, user_ids: Sequence[UUID]) -> int:
        session = self._session_factory()
        try:
            count = (
                session.query(func.count(AlertORM.id))
                .filter(AlertORM.user_id.in_(list(user_ids)), AlertORM.is_resolved.is_(False))
                .scalar()
            )
            return int(count or 0)
        finally:
            session.close()

    def list_responded(self, *, responder_ids: Optional[Sequence[UUID]] = None) -> List[Alert]:
        session = self._session_factory()
        try:
            query = session.query(AlertORM).filter(
                AlertORM.responded_by_id.is_not(None),
                AlertORM.responded_at.is_not(None),
            )
            if responder_ids is not None:
                query = query.filter(AlertORM.responded_by_id.in_(list(responder_ids)))
            return [orm.to_domain() for orm in query.all()]
        finally:
            session.close()

    def set_resolved(self, alert_id: UUID, is_resolved: bool) -> Optional[Alert]:
        session = self._session_factory()
        try:
            orm = session.get(AlertORM, alert_id)
            if orm is None:
                return None
            orm.is_resolved = is_resolved
            session.commit()
            return orm.to_domain()
        finally:
            session.close()

    def mark_responded_if_unanswered(self, alert_id: UUID, responder_id: UUID, responded_at: datetime) -> int:
        session = self._session_factory()
        try:
            stmt = (
                update(AlertORM)
                .where(AlertORM.id == alert_id)
                .where(AlertORM.responded_by_id.is_(None))
                .values(is_resolved=True, responded_by_id=responder_id, responded_at=responded_at)
                .execution_options(synchronize_session=False)
            )
            result = session.execute(stmt)
            session.commit()
            return result.rowcount
        finally:
            session.close()

    def add(self, alert: Alert) -> None:
        session = self._session_factory()
        try:
            session.add(AlertORM.from_domain(alert))
            session.commit()
        finally:
            session.close()


class SqlVitalReadingRepository(VitalReadingRepository):
    def __init__(self, session_factory: SessionFactory) -> None:
        self._session_factory = session_factory

    def list_for_user(
        self,
        user_id: UUID,
        *,
        since: Optional[datetime] = None,
        reading_type: Optional[str] = None,
    ) -> List[VitalReading]:
        session = self._session_factory()
        try:
            query = session.query(VitalReadingORM).filter(VitalReadingORM.user_id == user_id)
            if since is not None:
                query = query.filter(VitalReadingORM.recorded_at >= since)
            if reading_type is not None:
                query = query.filter(VitalReadingORM.type == reading_type)
            rows = query.order_by(VitalReadingORM.recorded_at.desc()).all()
            return [orm.to_domain() for orm in rows]
        finally:
            session.close()

    def add(self, reading: VitalReading) -> None:
        session = self._session_factory()
        try:
            session.add(VitalReadingORM.from_domain(reading))
            session.commit()
        finally:
            session.close()


class SqlRiskScoreRepository(RiskScoreRepository):
    def __init__(self, session_factory: SessionFactory) -> None:
        self._session_factory = session_factory

    def list_for_users(self, user_ids: Sequence[UUID]) -> List[RiskScore]:
        if not user_ids:
            return []
        session = self._session_factory()
        try:
            rows = (
                session.query(RiskScoreORM)
                .filter(RiskScoreORM.user_id.in_(list(user_ids)))
                .order_by(RiskScoreORM.generated_at.asc())
                .all()
            )
            return [orm.to_domain() for orm in rows]
        finally:
            session.close()

    def add(self, score: RiskScore) -> None:
        session = self._session_factory()
        try:
            session.add(RiskScoreORM.from_domain(score))
            session.commit()
        finally:
            session.close()
