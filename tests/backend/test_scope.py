from datetime import datetime, timezone
from uuid import uuid4

import pytest

from src.rpm_backend.domain import errors
from src.rpm_backend.domain.models.patient import Patient
from src.rpm_backend.domain.models.user import Identity, UserRole
from src.rpm_backend.services.access.scope import (
    Denial,
    DenialCode,
    Resource,
    Scope,
    ScopeKind,
    ensure_patient_in_scope,
    require_scope,
    resolve_scope,
)

INSTITUTION = uuid4()


def _identity(role: UserRole, institution_id=INSTITUTION) -> Identity:
    return Identity(
        user_id=uuid4(),
        email="someone@hospital.org",
        email_confirmed=True,
        role=role,
        institution_id=institution_id,
    )


@pytest.mark.parametrize(
    "resource, role, kind",
    [
        (Resource.PATIENTS, UserRole.ADMIN, ScopeKind.GLOBAL),
        (Resource.PATIENTS, UserRole.INSTITUTION_ADMIN, ScopeKind.INSTITUTION),
        (Resource.PATIENTS, UserRole.CLINICIAN, ScopeKind.ASSIGNED),
        (Resource.VITALS, UserRole.INSTITUTION_ADMIN, ScopeKind.INSTITUTION),
        (Resource.VITALS, UserRole.CLINICIAN, ScopeKind.ASSIGNED),
        (Resource.ALERTS, UserRole.ADMIN, ScopeKind.GLOBAL),
        (Resource.ALERTS, UserRole.CLINICIAN, ScopeKind.ASSIGNED),
        (Resource.DASHBOARD_STATS, UserRole.INSTITUTION_ADMIN, ScopeKind.INSTITUTION),
        (Resource.DASHBOARD_STATS, UserRole.CLINICIAN, ScopeKind.ASSIGNED),
        (Resource.TOP_PERFORMERS, UserRole.CLINICIAN, ScopeKind.INSTITUTION),
        (Resource.UNASSIGNED_PATIENTS, UserRole.ADMIN, ScopeKind.GLOBAL),
        (Resource.UNASSIGNED_PATIENTS, UserRole.INSTITUTION_ADMIN, ScopeKind.INSTITUTION),
        (Resource.UNASSIGNED_PATIENTS, UserRole.CLINICIAN, ScopeKind.INSTITUTION),
        (Resource.OWN_RECORDS, UserRole.PATIENT, ScopeKind.SELF),
        (Resource.CLINICIAN_APPROVALS, UserRole.INSTITUTION_ADMIN, ScopeKind.INSTITUTION),
    ],
)
def test_decision_table_grants(resource, role, kind):
    identity = _identity(role)
    decision = resolve_scope(resource, identity)
    assert isinstance(decision, Scope)
    assert decision.kind == kind
    assert decision.user_id == identity.user_id


@pytest.mark.parametrize(
    "resource, role",
    [
        (Resource.ALERTS, UserRole.INSTITUTION_ADMIN),
        (Resource.PATIENTS, UserRole.PATIENT),
        (Resource.VITALS, UserRole.PATIENT),
        (Resource.OWN_RECORDS, UserRole.CLINICIAN),
        (Resource.OWN_RECORDS, UserRole.ADMIN),
        (Resource.CLINICIAN_APPROVALS, UserRole.ADMIN),
        (Resource.CLINICIAN_APPROVALS, UserRole.CLINICIAN),
    ],
)
def test_decision_table_denials(resource, role):
    decision = resolve_scope(resource, _identity(role))
    assert isinstance(decision, Denial)
    assert decision.code == DenialCode.ROLE_NOT_PERMITTED


@pytest.mark.parametrize(
    "resource, role",
    [
        (Resource.PATIENTS, UserRole.INSTITUTION_ADMIN),
        (Resource.UNASSIGNED_PATIENTS, UserRole.INSTITUTION_ADMIN),
        (Resource.UNASSIGNED_PATIENTS, UserRole.CLINICIAN),
        (Resource.DASHBOARD_STATS, UserRole.CLINICIAN),
        (Resource.TOP_PERFORMERS, UserRole.CLINICIAN),
        (Resource.CLINICIAN_APPROVALS, UserRole.INSTITUTION_ADMIN),
    ],
)
def test_unlinked_tenant_role_is_denied_not_empty(resource, role):
    decision = resolve_scope(resource, _identity(role, institution_id=None))
    assert isinstance(decision, Denial)
    assert decision.code == DenialCode.NOT_LINKED_TO_INSTITUTION

    with pytest.raises(errors.NotLinkedToInstitution) as excinfo:
        require_scope(resource, _identity(role, institution_id=None))
    assert excinfo.value.status_code == 403


def test_unlinked_clinician_still_sees_assigned_patients():
    # The assigned scope does not depend on an institution binding.
    decision = resolve_scope(Resource.PATIENTS, _identity(UserRole.CLINICIAN, institution_id=None))
    assert isinstance(decision, Scope)
    assert decision.kind == ScopeKind.ASSIGNED


def test_patient_filters_per_scope_kind():
    user_id = uuid4()
    assert Scope(ScopeKind.GLOBAL, user_id).patient_filters() == {}
    assert Scope(ScopeKind.INSTITUTION, user_id, INSTITUTION).patient_filters() == {"institution_id": INSTITUTION}
    assert Scope(ScopeKind.ASSIGNED, user_id).patient_filters() == {"assigned_clinician_id": user_id}
    assert Scope(ScopeKind.SELF, user_id).patient_filters() == {"user_id": user_id}


def test_row_checks_distinguish_institution_and_assignment():
    clinician_id = uuid4()
    patient = Patient(
        id=uuid4(),
        institution_id=uuid4(),
        assigned_clinician_id=None,
        created_at=datetime.now(timezone.utc),
    )

    with pytest.raises(errors.Denied, match="not in your institution"):
        ensure_patient_in_scope(Scope(ScopeKind.INSTITUTION, uuid4(), INSTITUTION), patient)
    with pytest.raises(errors.Denied, match="not assigned to you"):
        ensure_patient_in_scope(Scope(ScopeKind.ASSIGNED, clinician_id), patient)

    assigned = patient.model_copy(update={"assigned_clinician_id": clinician_id})
    ensure_patient_in_scope(Scope(ScopeKind.ASSIGNED, clinician_id), assigned)
    ensure_patient_in_scope(Scope(ScopeKind.GLOBAL, uuid4()), patient)


def test_institution_scope_never_matches_patient_without_institution():
    orphan = Patient(id=uuid4(), institution_id=None, created_at=datetime.now(timezone.utc))
    assert not Scope(ScopeKind.INSTITUTION, uuid4(), INSTITUTION).permits_patient(orphan)
