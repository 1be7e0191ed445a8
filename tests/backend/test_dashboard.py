from fastapi import status

from src.rpm_backend.domain.models.monitoring import RiskLevel
from src.rpm_backend.domain.models.user import ApprovalStatus, UserRole
from src.rpm_backend.services.dashboard.service import format_response_time


def test_format_response_time():
    assert format_response_time(None) == "N/A"
    assert format_response_time(4 * 60_000) == "4m"
    assert format_response_time(125 * 60_000) == "2h 5m"


async def test_clinician_dashboard_counts_assigned_patients(client, seed):
    inst = seed.institution("Institution A")
    other_inst = seed.institution("Institution B")
    clinician = seed.user(UserRole.CLINICIAN, inst.id)
    high = seed.patient(inst.id, assigned_clinician_id=clinician.id)
    low = seed.patient(inst.id, assigned_clinician_id=clinician.id)
    seed.patient(inst.id)
    seed.patient(other_inst.id)
    seed.risk(high.user_id, 80, RiskLevel.HIGH)
    seed.risk(low.user_id, 21, RiskLevel.LOW)
    seed.alert(high.user_id)
    seed.alert(low.user_id, is_resolved=True)

    response = await client.get("/api/v1/dashboard/stats", headers=seed.headers(clinician))
    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {
        "total_patients": 2,
        "high_risk_count": 1,
        "active_alerts": 1,
        "avg_risk_score": 51,
        "unassigned_patients": 1,
        "is_clinician_view": False,
    }


async def test_institution_admin_dashboard_is_clinician_view(client, seed):
    inst = seed.institution()
    fast = seed.user(UserRole.CLINICIAN, inst.id)
    seed.user(UserRole.CLINICIAN, inst.id, approval_status=ApprovalStatus.PENDING)
    patient = seed.patient(inst.id, assigned_clinician_id=fast.id)
    seed.alert(patient.user_id, responded_by_id=fast.id, response_minutes=5)

    inst_admin = seed.user(UserRole.INSTITUTION_ADMIN, inst.id)
    response = await client.get("/api/v1/dashboard/stats", headers=seed.headers(inst_admin))

    assert response.json() == {
        "total_clinicians": 2,
        "approved_clinicians": 1,
        "pending_approvals": 1,
        "avg_performance_score": 80,
        "is_clinician_view": True,
    }


async def test_top_performers_rank_by_score_within_institution(client, seed):
    inst = seed.institution("Institution A")
    other_inst = seed.institution("Institution B")
    quick = seed.user(UserRole.CLINICIAN, inst.id, full_name="Dr Quick")
    slow = seed.user(UserRole.CLINICIAN, inst.id)
    seed.user(UserRole.CLINICIAN, other_inst.id, full_name="Dr Elsewhere")

    improving = seed.patient(inst.id, assigned_clinician_id=quick.id)
    seed.risk(improving.user_id, 70, RiskLevel.HIGH, days_ago=5)
    seed.risk(improving.user_id, 30, RiskLevel.LOW)
    seed.alert(improving.user_id, responded_by_id=quick.id, response_minutes=5)

    other = seed.patient(inst.id, assigned_clinician_id=slow.id)
    seed.alert(other.user_id, responded_by_id=slow.id, response_minutes=30)

    response = await client.get("/api/v1/clinicians/top-performers", headers=seed.headers(slow))
    assert response.status_code == status.HTTP_200_OK
    body = response.json()

    assert [p["id"] for p in body] == [str(quick.id), str(slow.id)]
    assert body[0]["name"] == "Dr Quick"
    assert body[0]["performance_score"] == 90
    assert body[0]["patient_outcome_rate"] == 100
    assert body[0]["avg_response_time"] == "5m"
    assert body[1]["performance_score"] == 0
    assert body[1]["specialty"] == "General"


async def test_unlinked_clinician_cannot_load_dashboard(client, seed):
    clinician = seed.user(UserRole.CLINICIAN, None, unchecked=True)
    response = await client.get("/api/v1/dashboard/stats", headers=seed.headers(clinician))
    assert response.status_code == status.HTTP_403_FORBIDDEN
