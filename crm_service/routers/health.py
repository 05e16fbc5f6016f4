from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from crm_service.jwks_auth import TokenVerifier
from crm_service.schemas.identity import HealthOut, JwksStatusOut
from crm_service.security.dependencies import get_token_verifier

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthOut)
def health(verifier: TokenVerifier = Depends(get_token_verifier)) -> HealthOut:
    # Reports cache state only; never triggers a JWKS download.
    snapshot = verifier.cache.snapshot
    return HealthOut(
        status="ok",
        timestamp=datetime.now(timezone.utc).isoformat(),
        jwks=JwksStatusOut(
            loaded=snapshot is not None,
            key_count=len(snapshot) if snapshot is not None else 0,
            stale=verifier.cache.is_stale(),
        ),
    )
