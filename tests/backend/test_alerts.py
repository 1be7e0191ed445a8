from datetime import datetime, timedelta, timezone

import pytest
from fastapi import status

from src.rpm_backend.domain import errors
from src.rpm_backend.domain.models.user import UserRole
from src.rpm_backend.infra.db import inmemory as repos
from src.rpm_backend.services.alerts.service import alert_service


async def test_clinician_sees_alerts_for_assigned_patients_only(client, seed):
    inst = seed.institution()
    clinician = seed.user(UserRole.CLINICIAN, inst.id)
    mine = seed.patient(inst.id, assigned_clinician_id=clinician.id, first_name="Mine", last_name="Patient")
    other = seed.patient(inst.id)
    now = datetime.now(timezone.utc)
    older = seed.alert(mine.user_id, triggered_at=now - timedelta(hours=2))
    newer = seed.alert(mine.user_id, triggered_at=now - timedelta(hours=1))
    seed.alert(other.user_id)

    response = await client.get("/api/v1/alerts", headers=seed.headers(clinician))
    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert [a["id"] for a in body] == [str(newer.id), str(older.id)]
    assert body[0]["patient_name"] == "Mine Patient"
    assert body[0]["is_read"] is False


async def test_clinician_without_patients_gets_no_alerts(client, seed):
    inst = seed.institution()
    seed.alert(seed.patient(inst.id).user_id)
    clinician = seed.user(UserRole.CLINICIAN, inst.id)

    response = await client.get("/api/v1/alerts", headers=seed.headers(clinician))
    assert response.json() == []


async def test_institution_admin_has_no_alert_access(client, seed):
    inst = seed.institution()
    inst_admin = seed.user(UserRole.INSTITUTION_ADMIN, inst.id)

    response = await client.get("/api/v1/alerts", headers=seed.headers(inst_admin))
    assert response.status_code == status.HTTP_403_FORBIDDEN


async def test_mark_alert_read_respects_assignment(client, seed):
    inst = seed.institution()
    clinician = seed.user(UserRole.CLINICIAN, inst.id)
    stranger = seed.user(UserRole.CLINICIAN, inst.id)
    patient = seed.patient(inst.id, assigned_clinician_id=clinician.id)
    alert = seed.alert(patient.user_id)

    response = await client.patch(
        f"/api/v1/alerts/{alert.id}", json={"is_read": True}, headers=seed.headers(stranger)
    )
    assert response.status_code == status.HTTP_403_FORBIDDEN

    response = await client.patch(
        f"/api/v1/alerts/{alert.id}", json={"is_read": True}, headers=seed.headers(clinician)
    )
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["is_resolved"] is True


async def test_respond_records_responder_once(client, seed):
    inst = seed.institution()
    clinician = seed.user(UserRole.CLINICIAN, inst.id)
    patient = seed.patient(inst.id, assigned_clinician_id=clinician.id)
    alert = seed.alert(patient.user_id)

    response = await client.patch(f"/api/v1/alerts/{alert.id}/respond", headers=seed.headers(clinician))
    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["responded_by_id"] == str(clinician.id)
    assert body["is_resolved"] is True

    response = await client.patch(f"/api/v1/alerts/{alert.id}/respond", headers=seed.headers(clinician))
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["detail"] == "Alert already responded to"


def test_respond_losing_the_conditional_write_is_already_responded(seed, monkeypatch):
    inst = seed.institution()
    clinician = seed.user(UserRole.CLINICIAN, inst.id)
    patient = seed.patient(inst.id, assigned_clinician_id=clinician.id)
    alert = seed.alert(patient.user_id)

    monkeypatch.setattr(repos.alert_repository, "mark_responded_if_unanswered", lambda *args: 0)

    with pytest.raises(errors.AlreadyResponded):
        alert_service.respond(alert.id, seed.identity(clinician))
    assert repos.alert_repository.get(alert.id).responded_by_id is None
