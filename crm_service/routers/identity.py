from __future__ import annotations

from fastapi import APIRouter, Depends

from crm_service.jwks_auth import AuthenticatedIdentity
from crm_service.schemas.identity import IdentityOut
from crm_service.security.dependencies import require_identity

router = APIRouter(tags=["identity"])


@router.get("/me", response_model=IdentityOut)
def me(identity: AuthenticatedIdentity = Depends(require_identity)) -> IdentityOut:
    return IdentityOut(subject=identity.subject, permissions=list(identity.permissions))
