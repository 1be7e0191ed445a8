from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Dict, Iterable, List
from uuid import UUID

from src.rpm_backend.config import settings
from src.rpm_backend.domain import errors
from src.rpm_backend.domain.models.monitoring import Alert
from src.rpm_backend.domain.models.patient_views import AlertView
from src.rpm_backend.domain.models.user import Identity
from src.rpm_backend.infra.db import inmemory as repos
from src.rpm_backend.services.access.scope import Resource, Scope, ScopeKind, require_scope
from src.rpm_backend.services.audit.service import audit_service

logger = logging.getLogger(__name__)


def _to_view(alert: Alert, names: Dict[UUID, str]) -> AlertView:
    return AlertView(
        id=alert.id,
        patient_id=alert.user_id,
        patient_name=names.get(alert.user_id, "Unknown"),
        type=alert.alert_type,
        message=alert.message,
        severity=alert.severity,
        is_read=alert.is_resolved,
        timestamp=alert.triggered_at,
    )


def _patient_names(user_ids: Iterable[UUID]) -> Dict[UUID, str]:
    names: Dict[UUID, str] = {}
    for user_id in set(user_ids):
        patient = repos.patient_repository.get_by_user(user_id)
        if patient is not None:
            names[user_id] = patient.display_name
    return names


class AlertService:
    """Alert reads and acknowledgements, scoped like patients.

    Alerts hang off the patient's own user id, so clinician scope is resolved
    through the patients assigned to the caller.
    """

    def list_alerts(self, identity: Identity) -> List[AlertView]:
        scope = require_scope(Resource.ALERTS, identity)

        if scope.kind == ScopeKind.ASSIGNED:
            patients = repos.patient_repository.list_by_filters(**scope.patient_filters())
            user_ids = [p.user_id for p in patients if p.user_id is not None]
            if not user_ids:
                return []
            alerts = repos.alert_repository.list_recent(user_ids=user_ids, limit=settings.alert_list_limit)
        else:
            alerts = repos.alert_repository.list_recent(limit=settings.alert_list_limit)

        names = _patient_names(a.user_id for a in alerts)
        return [_to_view(a, names) for a in alerts]

    def my_alerts(self, identity: Identity) -> List[AlertView]:
        scope = require_scope(Resource.OWN_RECORDS, identity)
        patients = list(repos.patient_repository.list_by_filters(**scope.patient_filters()))
        if not patients:
            raise errors.NotFound("Patient profile not found")
        patient = patients[0]

        alerts = repos.alert_repository.list_recent(user_ids=[scope.user_id], limit=settings.alert_list_limit)
        names = {scope.user_id: patient.display_name}
        return [_to_view(a, names) for a in alerts]

    def set_read(self, alert_id: UUID, is_read: bool, identity: Identity) -> Alert:
        scope = require_scope(Resource.ALERTS, identity)
        alert = self._get_in_scope(alert_id, scope)

        updated = repos.alert_repository.set_resolved(alert.id, is_read)
        if updated is None:
            raise errors.NotFound("Alert not found")
        return updated

    def respond(self, alert_id: UUID, identity: Identity) -> Alert:
        scope = require_scope(Resource.ALERTS, identity)
        alert = self._get_in_scope(alert_id, scope)

        if alert.responded_by_id is not None:
            raise errors.AlreadyResponded()

        updated = repos.alert_repository.mark_responded_if_unanswered(
            alert.id,
            identity.user_id,
            datetime.now(timezone.utc),
        )
        if updated == 0:
            logger.info("Response to alert %s lost the race for user %s", alert_id, identity.user_id)
            raise errors.AlreadyResponded()

        audit_service.log_event(
            action="respond_alert",
            resource_type="alert",
            resource_id=str(alert_id),
            extra={"responder_id": str(identity.user_id)},
        )
        refreshed = repos.alert_repository.get(alert_id)
        if refreshed is None:
            raise errors.NotFound("Alert not found")
        return refreshed

    def _get_in_scope(self, alert_id: UUID, scope: Scope) -> Alert:
        alert = repos.alert_repository.get(alert_id)
        if alert is None:
            raise errors.NotFound("Alert not found")

        if scope.kind == ScopeKind.ASSIGNED:
            patient = repos.patient_repository.get_by_user(alert.user_id)
            if patient is None or not scope.permits_patient(patient):
                raise errors.Denied("Access denied - patient not assigned to you")
        return alert


alert_service = AlertService()
