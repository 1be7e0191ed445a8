"""Access and assignment failures.

Each error carries the HTTP status and user-facing detail it maps to at the
handler boundary. None of them should be retried automatically: they are
either permanent policy decisions or a one-shot contention outcome the caller
reacts to by refreshing its view.
"""

from __future__ import annotations

from typing import Optional


class AccessError(Exception):
    status_code: int = 400
    default_detail: str = "Request could not be completed"

    def __init__(self, detail: Optional[str] = None) -> None:
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class Denied(AccessError):
    """Role is not permitted for the resource or row."""

    status_code = 403
    default_detail = "Insufficient permissions"


class NotLinkedToInstitution(Denied):
    """A tenant-scoped role has no institution binding (configuration defect)."""

    default_detail = "Account is not linked to an institution"


class CrossTenant(Denied):
    default_detail = "You can only claim patients within your institution"


class NotFound(AccessError):
    status_code = 404
    default_detail = "Not found"


class AlreadyAssigned(AccessError):
    default_detail = "This patient is already assigned to a clinician"


class RaceLost(AccessError):
    """The conditional write matched no row: someone else got there first.

    Expected under contention; not a system error.
    """

    default_detail = "This patient was just claimed by another clinician"


class InvalidProfile(AccessError):
    default_detail = "Clinicians and institution admins must belong to an institution"


class AlreadyResponded(AccessError):
    default_detail = "Alert already responded to"
