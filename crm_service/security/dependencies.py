from __future__ import annotations

import logging

from fastapi import Depends, HTTPException, Request, status

from crm_service.jwks_auth import AuthenticatedIdentity, TokenVerifier, VerificationError
from crm_service.security.auth import extract_bearer_token

logger = logging.getLogger(__name__)


def get_token_verifier(request: Request) -> TokenVerifier:
    verifier = getattr(request.app.state, "token_verifier", None)
    if verifier is None:
        raise RuntimeError("Token verifier not configured. Did app startup run?")
    return verifier


def authenticate_request(
    request: Request,
    verifier: TokenVerifier = Depends(get_token_verifier),
) -> None:
    """
    Global authentication dependency: attach the caller's identity, if any.

    Why a sync dependency (not async middleware)?
    - FastAPI runs it in the threadpool, so a JWKS download on a cache miss
      blocks one worker thread, never the event loop.
    - Registered app-wide, it runs exactly once per request with zero changes
      to route handlers.

    Contract: this never rejects a request. Every failure (no header, bad
    header, any verification error) leaves ``request.state.identity = None``.
    Routes that need an identity use ``require_identity``.
    """

    request.state.identity = None

    token = extract_bearer_token(request)
    if token is None:
        return

    try:
        identity = verifier.verify(token)
    except VerificationError as e:
        logger.info(
            "Bearer token rejected kind=%s path=%s method=%s: %s",
            e.kind.value,
            request.url.path,
            request.method,
            e.detail,
        )
        return

    request.state.identity = identity


def get_identity(request: Request) -> AuthenticatedIdentity | None:
    return getattr(request.state, "identity", None)


def require_identity(request: Request) -> AuthenticatedIdentity:
    identity = get_identity(request)
    if identity is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return identity
