from __future__ import annotations

from typing import List

from fastapi import APIRouter

from src.rpm_backend.domain.models.institution import Institution
from src.rpm_backend.services.institutions.service import institution_service

router = APIRouter(prefix="/institutions", tags=["institutions"])


@router.get("", response_model=List[Institution])
async def list_institutions() -> List[Institution]:
    """Public: used by sign-up forms to pick an institution."""
    return institution_service.list_institutions()
