from __future__ import annotations

from fastapi import APIRouter, Depends

from src.rpm_backend.domain.models.user import Identity
from src.rpm_backend.security import get_current_identity
from src.rpm_backend.services.ratelimit.service import rate_limit

router = APIRouter(prefix="/auth", tags=["auth"])


@router.get("/me", response_model=Identity, dependencies=[Depends(rate_limit())])
async def read_me(identity: Identity = Depends(get_current_identity)) -> Identity:
    """Echo the verified caller, with role and institution from their profile."""
    return identity
