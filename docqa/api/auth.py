"""Caller identity from trusted gateway headers.

Authentication happens upstream; the gateway forwards the verified
identity as ``X-User-Id``, ``X-Tenant-Id`` and ``X-User-Role``.  A role
of ``admin`` grants cross-tenant access and the admin-only endpoints.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Header

from docqa.models.auth import AuthContext
from docqa.utils.errors import AuthenticationError, AuthorizationError

ADMIN_ROLE = "admin"


def get_auth_context(
    x_user_id: Annotated[str | None, Header()] = None,
    x_tenant_id: Annotated[str | None, Header()] = None,
    x_user_role: Annotated[str | None, Header()] = None,
) -> AuthContext:
    if not x_user_id or not x_tenant_id:
        raise AuthenticationError()
    return AuthContext(
        user_id=x_user_id,
        tenant_id=x_tenant_id,
        is_admin=(x_user_role or "").strip().lower() == ADMIN_ROLE,
    )


def require_admin(auth: Annotated[AuthContext, Depends(get_auth_context)]) -> AuthContext:
    if not auth.is_admin:
        raise AuthorizationError(message="Admin access required")
    return auth


AuthDep = Annotated[AuthContext, Depends(get_auth_context)]
AdminDep = Annotated[AuthContext, Depends(require_admin)]
