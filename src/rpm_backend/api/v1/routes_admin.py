from __future__ import annotations

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel

from src.rpm_backend.domain.models.institution import Institution
from src.rpm_backend.domain.models.user import Identity, UserProfile, UserRole
from src.rpm_backend.security import require_role
from src.rpm_backend.services.institutions.service import institution_service
from src.rpm_backend.services.users.service import user_service

_admin = require_role(UserRole.ADMIN)

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(_admin)])


class InstitutionCreate(BaseModel):
    name: str
    is_default: bool = False


class InstitutionUpdate(BaseModel):
    name: Optional[str] = None
    is_default: Optional[bool] = None


class RoleChange(BaseModel):
    role: UserRole
    institution_id: Optional[UUID] = None


@router.post("/institutions", response_model=Institution, status_code=status.HTTP_201_CREATED)
async def create_institution(payload: InstitutionCreate) -> Institution:
    return institution_service.create_institution(name=payload.name, is_default=payload.is_default)


@router.patch("/institutions/{institution_id}", response_model=Institution)
async def update_institution(institution_id: UUID, payload: InstitutionUpdate) -> Institution:
    return institution_service.update_institution(
        institution_id,
        name=payload.name,
        is_default=payload.is_default,
    )


@router.patch("/users/{user_id}/role", response_model=UserProfile)
async def change_user_role(
    user_id: UUID,
    payload: RoleChange,
    identity: Identity = Depends(_admin),
) -> UserProfile:
    return user_service.change_role(
        user_id,
        role=payload.role,
        institution_id=payload.institution_id,
        acting=identity,
    )
