from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID, uuid4

from src.rpm_backend.domain import errors
from src.rpm_backend.domain.models.institution import Institution
from src.rpm_backend.infra.db import inmemory as repos
from src.rpm_backend.services.audit.service import audit_service


class InstitutionService:
    def list_institutions(self) -> List[Institution]:
        """Default institution first, then by name."""

        institutions = repos.institution_repository.list_all()
        return sorted(institutions, key=lambda i: (not i.is_default, i.name))

    def create_institution(self, *, name: str, is_default: bool = False) -> Institution:
        if not name.strip():
            raise errors.AccessError("Institution name is required")

        # Stored without the flag; set_default clears any other default first.
        institution = Institution(
            id=uuid4(),
            name=name.strip(),
            is_default=False,
            created_at=datetime.now(timezone.utc),
        )
        repos.institution_repository.save(institution)
        if is_default:
            repos.institution_repository.set_default(institution.id)

        audit_service.log_event(action="create", resource_type="institution", resource_id=str(institution.id))
        return repos.institution_repository.get(institution.id) or institution

    def update_institution(
        self,
        institution_id: UUID,
        *,
        name: Optional[str] = None,
        is_default: Optional[bool] = None,
    ) -> Institution:
        institution = repos.institution_repository.get(institution_id)
        if institution is None:
            raise errors.NotFound("Institution not found")

        if name is not None:
            if not name.strip():
                raise errors.AccessError("Institution name is required")
            institution.name = name.strip()
        if is_default is False:
            institution.is_default = False
        repos.institution_repository.save(institution)

        if is_default:
            repos.institution_repository.set_default(institution_id)

        audit_service.log_event(action="update", resource_type="institution", resource_id=str(institution_id))
        return repos.institution_repository.get(institution_id) or institution


institution_service = InstitutionService()
