from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID, uuid4

from src.rpm_backend.domain import errors
from src.rpm_backend.domain.models.user import (
    TENANT_SCOPED_ROLES,
    ApprovalStatus,
    ClinicianProfile,
    Identity,
    PendingClinician,
    User,
    UserProfile,
    UserRole,
)
from src.rpm_backend.infra.db import inmemory as repos
from src.rpm_backend.services.access.scope import Resource, require_scope
from src.rpm_backend.services.audit.service import audit_service

logger = logging.getLogger(__name__)

_AWAITING_REVIEW = {ApprovalStatus.PENDING, ApprovalStatus.REJECTED}


def validate_profile(profile: UserProfile) -> None:
    """Raise InvalidProfile if a tenant-scoped role lacks an institution."""

    if profile.role in TENANT_SCOPED_ROLES and profile.institution_id is None:
        raise errors.InvalidProfile("Institution is required for this role")
    if profile.institution_id is not None and repos.institution_repository.get(profile.institution_id) is None:
        raise errors.NotFound("Institution not found")


class UserService:
    """Writes to users and their profiles.

    Every profile write is checked by :func:`validate_profile` first, so the
    tenant-binding rule holds no matter which path creates or edits an account.
    """

    def save_profile(self, profile: UserProfile) -> UserProfile:
        validate_profile(profile)
        repos.user_repository.save_profile(profile)
        return profile

    def register_user(
        self,
        *,
        email: str,
        role: UserRole,
        institution_id: Optional[UUID] = None,
        approval_status: Optional[ApprovalStatus] = None,
        email_confirmed: bool = True,
        full_name: Optional[str] = None,
        specialty: Optional[str] = None,
    ) -> User:
        user_id = uuid4()
        profile = UserProfile(user_id=user_id, role=role, institution_id=institution_id)
        validate_profile(profile)

        user = User(
            id=user_id,
            email=email,
            approval_status=approval_status,
            email_confirmed=email_confirmed,
            created_at=datetime.now(timezone.utc),
        )
        repos.user_repository.save(user)
        repos.user_repository.save_profile(profile)
        if role in TENANT_SCOPED_ROLES and (full_name or specialty):
            repos.user_repository.save_clinician_profile(
                ClinicianProfile(user_id=user.id, full_name=full_name, specialty=specialty)
            )
        return user

    def change_role(
        self,
        user_id: UUID,
        *,
        role: UserRole,
        institution_id: Optional[UUID],
        acting: Identity,
    ) -> UserProfile:
        if user_id == acting.user_id:
            raise errors.AccessError("Cannot change your own role")

        user = repos.user_repository.get(user_id)
        if user is None:
            raise errors.NotFound("User not found")

        if role in TENANT_SCOPED_ROLES:
            profile = UserProfile(user_id=user_id, role=role, institution_id=institution_id)
        else:
            profile = UserProfile(user_id=user_id, role=role, institution_id=None)
        self.save_profile(profile)

        if role == UserRole.INSTITUTION_ADMIN:
            repos.user_repository.save(user.model_copy(update={"approval_status": ApprovalStatus.APPROVED}))
            if not repos.user_repository.list_clinician_profiles([user_id]):
                repos.user_repository.save_clinician_profile(
                    ClinicianProfile(user_id=user_id, full_name=str(user.email).split("@")[0])
                )
        elif role in {UserRole.PATIENT, UserRole.ADMIN}:
            repos.user_repository.save(user.model_copy(update={"approval_status": None}))

        audit_service.log_event(
            action="change_role",
            resource_type="user",
            resource_id=str(user_id),
            extra={"role": role.value, "institution_id": str(institution_id) if institution_id else None},
        )
        return profile

    def list_pending_clinicians(self, identity: Identity) -> List[PendingClinician]:
        """Pending and rejected clinicians of the caller's institution, newest first."""

        scope = require_scope(Resource.CLINICIAN_APPROVALS, identity)
        profiles = repos.user_repository.list_profiles(role=UserRole.CLINICIAN, institution_id=scope.institution_id)
        users = [
            u
            for u in repos.user_repository.list_by_ids([p.user_id for p in profiles])
            if u.approval_status in _AWAITING_REVIEW
        ]
        if not users:
            return []

        users.sort(key=lambda u: u.created_at, reverse=True)
        details = {p.user_id: p for p in repos.user_repository.list_clinician_profiles([u.id for u in users])}
        return [
            PendingClinician(
                id=u.id,
                email=u.email,
                approval_status=u.approval_status,
                created_at=u.created_at,
                profile=details.get(u.id),
            )
            for u in users
        ]

    def set_approval(self, clinician_id: UUID, approval_status: ApprovalStatus, identity: Identity) -> User:
        scope = require_scope(Resource.CLINICIAN_APPROVALS, identity)

        profile = repos.user_repository.get_profile(clinician_id)
        user = repos.user_repository.get(clinician_id)
        if (
            user is None
            or profile is None
            or profile.role != UserRole.CLINICIAN
            or profile.institution_id != scope.institution_id
        ):
            logger.warning(
                "Admin %s tried to set approval of unknown or cross-institution clinician %s",
                identity.user_id,
                clinician_id,
            )
            raise errors.NotFound("Clinician not found or not in your institution")

        updated = user.model_copy(update={"approval_status": approval_status})
        repos.user_repository.save(updated)

        action = "approve_clinician" if approval_status == ApprovalStatus.APPROVED else "reject_clinician"
        audit_service.log_event(
            action=action,
            resource_type="user",
            resource_id=str(clinician_id),
            extra={"institution_id": str(scope.institution_id)},
        )
        return updated


user_service = UserService()
