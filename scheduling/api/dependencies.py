# ============================================================================
# FILE: scheduling/api/dependencies.py
# Caller identity and request-scoped values
# ============================================================================
from datetime import date, datetime
from typing import Optional
from uuid import UUID
from zoneinfo import ZoneInfo

from fastapi import Depends, Header, HTTPException, status

from scheduling.config.settings import settings
from scheduling.core.principal import Principal, Role


# ============================================================================
# Identity
# ============================================================================

def get_current_principal(
        x_principal_id: Optional[str] = Header(None),
        x_principal_role: Optional[str] = Header(None)
) -> Principal:
    """
    Build the caller from headers set by the upstream gateway.

    Raises:
        HTTPException 401: If either header is missing or malformed
    """
    if not x_principal_id or not x_principal_role:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing principal headers"
        )

    try:
        principal_id = UUID(x_principal_id)
        role = Role(x_principal_role.lower())
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid principal headers"
        )

    # System actions are never taken on behalf of an HTTP caller
    if role == Role.SYSTEM:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid principal headers"
        )

    return Principal(id=principal_id, role=role)


def require_provider(
        provider_id: UUID,
        principal: Principal = Depends(get_current_principal)
) -> Principal:
    """The caller must be the provider named in the path."""
    if not principal.is_provider or principal.id != provider_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the provider can manage this availability"
        )
    return principal


# ============================================================================
# Clock
# ============================================================================

def get_today() -> date:
    """Current date in the service's timezone. Overridden in tests."""
    return datetime.now(ZoneInfo(settings.DEFAULT_TIMEZONE)).date()
