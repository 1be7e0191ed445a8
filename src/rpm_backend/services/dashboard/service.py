from __future__ import annotations

import math
from collections import defaultdict
from typing import Dict, List, Optional, Sequence, Union
from uuid import UUID

from src.rpm_backend.domain.models.dashboard import (
    ClinicianDashboardStats,
    PatientDashboardStats,
    TopPerformer,
)
from src.rpm_backend.domain.models.monitoring import RiskLevel
from src.rpm_backend.domain.models.user import ApprovalStatus, Identity, UserRole
from src.rpm_backend.infra.db import inmemory as repos
from src.rpm_backend.services.access.scope import Resource, ScopeKind, require_scope
from src.rpm_backend.services.patients.service import latest_risk_by_user

_MS_PER_MINUTE = 60_000


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _response_times_ms(responder_ids: Optional[Sequence[UUID]] = None) -> Dict[UUID, List[float]]:
    """Positive alert response times (ms) grouped by responder."""

    times: Dict[UUID, List[float]] = defaultdict(list)
    for alert in repos.alert_repository.list_responded(responder_ids=responder_ids):
        if alert.responded_at is None or alert.responded_by_id is None:
            continue
        delta_ms = (alert.responded_at - alert.triggered_at).total_seconds() * 1000
        if delta_ms > 0:
            times[alert.responded_by_id].append(delta_ms)
    return times


def format_response_time(avg_ms: Optional[float]) -> str:
    if not avg_ms:
        return "N/A"
    minutes = int(avg_ms // _MS_PER_MINUTE)
    hours = minutes // 60
    if hours > 0:
        return f"{hours}h {minutes % 60}m"
    return f"{minutes}m"


class DashboardService:
    def stats(self, identity: Identity) -> Union[PatientDashboardStats, ClinicianDashboardStats]:
        scope = require_scope(Resource.DASHBOARD_STATS, identity)
        if scope.kind == ScopeKind.INSTITUTION:
            return self._clinician_stats(scope.institution_id)

        patients = list(repos.patient_repository.list_by_filters(**scope.patient_filters()))
        if scope.kind == ScopeKind.ASSIGNED:
            unassigned = repos.patient_repository.count_unassigned(institution_id=scope.institution_id)
        else:
            unassigned = repos.patient_repository.count_unassigned()

        user_ids = [p.user_id for p in patients if p.user_id is not None]
        if not patients:
            return PatientDashboardStats(
                total_patients=0,
                high_risk_count=0,
                active_alerts=0,
                avg_risk_score=0,
                unassigned_patients=unassigned,
            )

        latest = list(latest_risk_by_user(user_ids).values())
        high_risk = sum(1 for score in latest if score.level == RiskLevel.HIGH)
        avg_risk = _round_half_up(sum(s.score for s in latest) / len(latest)) if latest else 0
        active_alerts = repos.alert_repository.count_unresolved(user_ids) if user_ids else 0

        return PatientDashboardStats(
            total_patients=len(patients),
            high_risk_count=high_risk,
            active_alerts=active_alerts,
            avg_risk_score=avg_risk,
            unassigned_patients=unassigned,
        )

    def _clinician_stats(self, institution_id: Optional[UUID]) -> ClinicianDashboardStats:
        profiles = repos.user_repository.list_profiles(role=UserRole.CLINICIAN, institution_id=institution_id)
        clinicians = repos.user_repository.list_by_ids([p.user_id for p in profiles])

        approved_ids = [c.id for c in clinicians if c.approval_status == ApprovalStatus.APPROVED]
        pending = sum(1 for c in clinicians if c.approval_status == ApprovalStatus.PENDING)

        avg_score = 0
        if approved_ids:
            all_times = [t for times in _response_times_ms(approved_ids).values() for t in times]
            if all_times:
                avg_ms = sum(all_times) / len(all_times)
                avg_score = max(0, _round_half_up(100 - (avg_ms / _MS_PER_MINUTE / 5) * 20))

        return ClinicianDashboardStats(
            total_clinicians=len(clinicians),
            approved_clinicians=len(approved_ids),
            pending_approvals=pending,
            avg_performance_score=avg_score,
        )

    def top_performers(self, identity: Identity, *, limit: int = 5) -> List[TopPerformer]:
        """Rank approved clinicians in scope by response speed and patient outcomes.

        Response time contributes up to 50 points (full marks under five
        minutes on average); the share of assigned patients whose latest risk
        score is below their first contributes the other 50.
        """

        scope = require_scope(Resource.TOP_PERFORMERS, identity)
        institution_filter = scope.institution_id if scope.kind == ScopeKind.INSTITUTION else None
        profiles = repos.user_repository.list_profiles(role=UserRole.CLINICIAN, institution_id=institution_filter)
        if not profiles:
            return []

        clinicians = [
            u
            for u in repos.user_repository.list_by_ids([p.user_id for p in profiles])
            if u.approval_status == ApprovalStatus.APPROVED
        ]
        if not clinicians:
            return []

        clinician_ids = [c.id for c in clinicians]
        display = {p.user_id: p for p in repos.user_repository.list_clinician_profiles(clinician_ids)}
        response_times = _response_times_ms(clinician_ids)

        patients = list(repos.patient_repository.list_by_filters(assigned_clinician_ids=clinician_ids))
        clinician_by_user = {
            p.user_id: p.assigned_clinician_id
            for p in patients
            if p.user_id is not None and p.assigned_clinician_id is not None
        }
        scores_by_user: Dict[UUID, List[int]] = defaultdict(list)
        for score in repos.risk_score_repository.list_for_users(list(clinician_by_user)):
            scores_by_user[score.user_id].append(score.score)

        outcomes: Dict[UUID, List[int]] = defaultdict(lambda: [0, 0])  # [total, improved]
        for user_id, scores in scores_by_user.items():
            if len(scores) < 2:
                continue
            tally = outcomes[clinician_by_user[user_id]]
            tally[0] += 1
            if scores[-1] < scores[0]:
                tally[1] += 1

        performers: List[TopPerformer] = []
        for clinician in clinicians:
            times = response_times.get(clinician.id, [])
            avg_ms = sum(times) / len(times) if times else None
            total, improved = outcomes.get(clinician.id, [0, 0])
            improvement_rate = _round_half_up(improved / total * 100) if total else 0

            score = 0.0
            if avg_ms:
                score += max(0.0, 50 - (avg_ms / _MS_PER_MINUTE / 5) * 10)
            score += improvement_rate / 100 * 50

            profile = display.get(clinician.id)
            performers.append(
                TopPerformer(
                    id=clinician.id,
                    name=(profile.full_name if profile and profile.full_name else str(clinician.email).split("@")[0]),
                    specialty=(profile.specialty if profile and profile.specialty else "General"),
                    avg_response_time=format_response_time(avg_ms),
                    avg_response_time_ms=avg_ms,
                    alerts_responded_to=len(times),
                    patient_outcome_rate=improvement_rate,
                    performance_score=_round_half_up(score),
                )
            )

        performers.sort(key=lambda p: p.performance_score, reverse=True)
        return performers[:limit]


dashboard_service = DashboardService()
