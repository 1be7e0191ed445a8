from datetime import datetime, timedelta, timezone

import pytest
from fastapi import status

from src.rpm_backend.domain.models.monitoring import RiskLevel
from src.rpm_backend.domain.models.user import UserRole
from src.rpm_backend.infra.db import inmemory as repos
from src.rpm_backend.infra.db.bootstrap import install_sql_repositories
from src.rpm_backend.infra.db.session import create_engine_for_url
from src.rpm_backend.infra.db.sql_patients import SqlPatientRepository


@pytest.fixture
def sql_repositories():
    engine = create_engine_for_url("sqlite:///:memory:")
    install_sql_repositories(engine)
    yield engine
    engine.dispose()


def test_bootstrap_swaps_repositories(sql_repositories):
    assert isinstance(repos.patient_repository, SqlPatientRepository)


def test_guarded_update_reports_affected_rows(sql_repositories, seed):
    inst = seed.institution()
    first = seed.user(UserRole.CLINICIAN, inst.id)
    second = seed.user(UserRole.CLINICIAN, inst.id)
    patient = seed.patient(inst.id)

    assert repos.patient_repository.assign_if_unassigned(patient.id, first.id) == 1
    assert repos.patient_repository.assign_if_unassigned(patient.id, second.id) == 0
    assert repos.patient_repository.get(patient.id).assigned_clinician_id == first.id


def test_set_default_keeps_a_single_default(sql_repositories, seed):
    first = seed.institution("First", is_default=True)
    second = seed.institution("Second", is_default=True)

    defaults = [i.id for i in repos.institution_repository.list_all() if i.is_default]
    assert defaults == [second.id]

    repos.institution_repository.set_default(first.id)
    defaults = [i.id for i in repos.institution_repository.list_all() if i.is_default]
    assert defaults == [first.id]


def test_filters_and_ordering_match_in_memory_store(sql_repositories, seed):
    inst = seed.institution()
    clinician = seed.user(UserRole.CLINICIAN, inst.id)
    now = datetime.now(timezone.utc)
    old = seed.patient(inst.id, created_at=now - timedelta(days=3))
    new = seed.patient(inst.id, created_at=now - timedelta(days=1))
    assigned = seed.patient(inst.id, assigned_clinician_id=clinician.id)

    unassigned = repos.patient_repository.list_by_filters(
        institution_id=inst.id, unassigned_only=True, newest_first=False
    )
    assert [p.id for p in unassigned] == [old.id, new.id]
    assert repos.patient_repository.count_unassigned(institution_id=inst.id) == 2
    assert [p.id for p in repos.patient_repository.list_by_filters(assigned_clinician_id=clinician.id)] == [
        assigned.id
    ]


async def test_api_over_sql_store(sql_repositories, client, seed):
    inst = seed.institution()
    clinician = seed.user(UserRole.CLINICIAN, inst.id)
    patient = seed.patient(inst.id, first_name="Grace", last_name="Hopper")
    seed.risk(patient.user_id, 65, RiskLevel.HIGH)
    seed.vital(patient.user_id, "heart_rate", 88, days_ago=1)

    response = await client.post(f"/api/v1/patients/{patient.id}/claim", headers=seed.headers(clinician))
    assert response.status_code == status.HTTP_200_OK

    response = await client.get("/api/v1/patients", headers=seed.headers(clinician))
    body = response.json()
    assert [p["name"] for p in body] == ["Grace Hopper"]
    assert body[0]["risk_level"] == "high"

    response = await client.get(f"/api/v1/patients/{patient.id}/vitals", headers=seed.headers(clinician))
    assert [v["type"] for v in response.json()] == ["Heart Rate"]
