from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr


class UserRole(str, Enum):
    PATIENT = "patient"
    CLINICIAN = "clinician"
    ADMIN = "admin"
    INSTITUTION_ADMIN = "institution_admin"


# Roles that only make sense when bound to exactly one institution.
TENANT_SCOPED_ROLES = frozenset({UserRole.CLINICIAN, UserRole.INSTITUTION_ADMIN})


class ApprovalStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class User(BaseModel):
    id: UUID
    email: EmailStr
    # None means the account never went through an approval step (patients,
    # system admins).
    approval_status: Optional[ApprovalStatus] = None
    email_confirmed: bool = True
    created_at: datetime


class UserProfile(BaseModel):
    """Canonical source of a user's role and tenant membership."""

    user_id: UUID
    role: UserRole
    institution_id: Optional[UUID] = None


class ClinicianProfile(BaseModel):
    user_id: UUID
    full_name: Optional[str] = None
    specialty: Optional[str] = None


class Identity(BaseModel):
    """The verified caller of a request.

    Built by the security layer from a bearer token plus the caller's User and
    UserProfile rows. Everything downstream (scope resolution, claiming) keys
    off this object and never off client-supplied headers or body fields.
    """

    user_id: UUID
    email: EmailStr
    email_confirmed: bool
    role: UserRole
    institution_id: Optional[UUID] = None
    approval_status: Optional[ApprovalStatus] = None


class PendingClinician(BaseModel):
    """Clinician awaiting (or refused) approval, as listed to institution admins."""

    id: UUID
    email: EmailStr
    approval_status: Optional[ApprovalStatus] = None
    created_at: datetime
    profile: Optional[ClinicianProfile] = None
