"""Row-visibility rules per resource and role.

:func:`resolve_scope` is a pure lookup over ``_RULES``; it never touches
storage. The result is either a :class:`Scope` describing which rows the
caller may see, or a :class:`Denial` that the HTTP layer turns into a 403.

Two failure modes are kept apart on purpose:

* a tenant-scoped role with no institution binding is a configuration defect
  and is always denied;
* a valid scope that happens to match no rows (a clinician with no patients
  yet) is a normal, empty result.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, NamedTuple, Optional, Tuple, Union
from uuid import UUID

from src.rpm_backend.domain import errors
from src.rpm_backend.domain.models.patient import Patient
from src.rpm_backend.domain.models.user import Identity, UserRole


class Resource(str, Enum):
    PATIENTS = "patients"
    UNASSIGNED_PATIENTS = "unassigned-patients"
    ALERTS = "alerts"
    VITALS = "vitals"
    DASHBOARD_STATS = "dashboard-stats"
    TOP_PERFORMERS = "top-performers"
    # Patient self path: /patient/my-* endpoints.
    OWN_RECORDS = "own-records"
    # Institution-admin review of clinician sign-ups.
    CLINICIAN_APPROVALS = "clinician-approvals"


class ScopeKind(str, Enum):
    GLOBAL = "global"
    INSTITUTION = "institution"
    ASSIGNED = "assigned"
    SELF = "self"


class DenialCode(str, Enum):
    ROLE_NOT_PERMITTED = "role_not_permitted"
    NOT_LINKED_TO_INSTITUTION = "not_linked_to_institution"


@dataclass(frozen=True)
class Scope:
    kind: ScopeKind
    user_id: UUID
    institution_id: Optional[UUID] = None

    def patient_filters(self) -> Dict[str, Any]:
        """Keyword filters for ``PatientRepository.list_by_filters``."""

        if self.kind == ScopeKind.GLOBAL:
            return {}
        if self.kind == ScopeKind.INSTITUTION:
            return {"institution_id": self.institution_id}
        if self.kind == ScopeKind.ASSIGNED:
            return {"assigned_clinician_id": self.user_id}
        return {"user_id": self.user_id}

    def permits_patient(self, patient: Patient) -> bool:
        if self.kind == ScopeKind.GLOBAL:
            return True
        if self.kind == ScopeKind.INSTITUTION:
            return patient.institution_id is not None and patient.institution_id == self.institution_id
        if self.kind == ScopeKind.ASSIGNED:
            return patient.assigned_clinician_id == self.user_id
        return patient.user_id == self.user_id


@dataclass(frozen=True)
class Denial:
    code: DenialCode
    reason: str

    def to_error(self) -> errors.AccessError:
        if self.code == DenialCode.NOT_LINKED_TO_INSTITUTION:
            return errors.NotLinkedToInstitution(self.reason)
        return errors.Denied(self.reason)


ScopeDecision = Union[Scope, Denial]


class _Rule(NamedTuple):
    kind: ScopeKind
    requires_institution: bool = False


_R = Resource
_U = UserRole

# (resource, role) -> rule. A missing key or a None value is a denial.
_RULES: Dict[Tuple[Resource, UserRole], Optional[_Rule]] = {
    (_R.PATIENTS, _U.ADMIN): _Rule(ScopeKind.GLOBAL),
    (_R.PATIENTS, _U.INSTITUTION_ADMIN): _Rule(ScopeKind.INSTITUTION, requires_institution=True),
    (_R.PATIENTS, _U.CLINICIAN): _Rule(ScopeKind.ASSIGNED),
    (_R.UNASSIGNED_PATIENTS, _U.ADMIN): _Rule(ScopeKind.GLOBAL),
    (_R.UNASSIGNED_PATIENTS, _U.INSTITUTION_ADMIN): _Rule(ScopeKind.INSTITUTION, requires_institution=True),
    (_R.UNASSIGNED_PATIENTS, _U.CLINICIAN): _Rule(ScopeKind.INSTITUTION, requires_institution=True),
    (_R.VITALS, _U.ADMIN): _Rule(ScopeKind.GLOBAL),
    (_R.VITALS, _U.INSTITUTION_ADMIN): _Rule(ScopeKind.INSTITUTION, requires_institution=True),
    (_R.VITALS, _U.CLINICIAN): _Rule(ScopeKind.ASSIGNED),
    # Alerts are clinical-response data; institution admins manage clinicians,
    # not patients, so they get no alert access at all.
    (_R.ALERTS, _U.ADMIN): _Rule(ScopeKind.GLOBAL),
    (_R.ALERTS, _U.INSTITUTION_ADMIN): None,
    (_R.ALERTS, _U.CLINICIAN): _Rule(ScopeKind.ASSIGNED),
    (_R.DASHBOARD_STATS, _U.ADMIN): _Rule(ScopeKind.GLOBAL),
    (_R.DASHBOARD_STATS, _U.INSTITUTION_ADMIN): _Rule(ScopeKind.INSTITUTION, requires_institution=True),
    # The clinician dashboard counts unassigned patients in the clinician's
    # institution, so the binding is required here too.
    (_R.DASHBOARD_STATS, _U.CLINICIAN): _Rule(ScopeKind.ASSIGNED, requires_institution=True),
    (_R.TOP_PERFORMERS, _U.ADMIN): _Rule(ScopeKind.GLOBAL),
    (_R.TOP_PERFORMERS, _U.INSTITUTION_ADMIN): _Rule(ScopeKind.INSTITUTION, requires_institution=True),
    (_R.TOP_PERFORMERS, _U.CLINICIAN): _Rule(ScopeKind.INSTITUTION, requires_institution=True),
    (_R.OWN_RECORDS, _U.PATIENT): _Rule(ScopeKind.SELF),
    (_R.CLINICIAN_APPROVALS, _U.INSTITUTION_ADMIN): _Rule(ScopeKind.INSTITUTION, requires_institution=True),
}

_ROLE_LABELS = {
    UserRole.CLINICIAN: "Clinician",
    UserRole.INSTITUTION_ADMIN: "Institution admin",
}


def resolve_scope(resource: Resource, identity: Identity) -> ScopeDecision:
    rule = _RULES.get((resource, identity.role))
    if rule is None:
        return Denial(DenialCode.ROLE_NOT_PERMITTED, "Insufficient permissions")

    if rule.requires_institution and identity.institution_id is None:
        label = _ROLE_LABELS.get(identity.role, "Account")
        return Denial(
            DenialCode.NOT_LINKED_TO_INSTITUTION,
            f"{label} account is not linked to an institution",
        )

    return Scope(kind=rule.kind, user_id=identity.user_id, institution_id=identity.institution_id)


def require_scope(resource: Resource, identity: Identity) -> Scope:
    """Like :func:`resolve_scope` but raises the matching AccessError on denial."""

    decision = resolve_scope(resource, identity)
    if isinstance(decision, Denial):
        raise decision.to_error()
    return decision


def ensure_patient_in_scope(scope: Scope, patient: Patient) -> None:
    """Raise Denied if a single patient row falls outside ``scope``."""

    if scope.permits_patient(patient):
        return
    if scope.kind == ScopeKind.INSTITUTION:
        raise errors.Denied("Access denied - patient not in your institution")
    raise errors.Denied("Access denied - patient not assigned to you")
