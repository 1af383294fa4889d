"""Caller identity supplied by the upstream authentication layer."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class AuthContext(BaseModel):
    """Verified ``{user_id, tenant_id, is_admin}`` for the current caller."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    tenant_id: str
    is_admin: bool = False

    def can_access(self, tenant_id: str | None) -> bool:
        """Return ``True`` if this caller may read/write a record owned by *tenant_id*."""
        return self.is_admin or (tenant_id is not None and tenant_id == self.tenant_id)
