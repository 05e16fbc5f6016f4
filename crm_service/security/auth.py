from __future__ import annotations

import logging

from fastapi import Request

logger = logging.getLogger(__name__)

AUTHORIZATION_HEADER = "Authorization"
BEARER_PREFIX = "Bearer"


def extract_bearer_token(request: Request) -> str | None:
    """
    Return the token from `Authorization: Bearer <token>`, or None.

    - Missing header -> None (anonymous request)
    - Malformed header (wrong scheme, empty token) -> None, logged
    - Never raises: rejecting requests is a downstream decision
    """

    raw = request.headers.get(AUTHORIZATION_HEADER)
    if not raw:
        return None

    scheme, _, token = raw.strip().partition(" ")
    if scheme.lower() != BEARER_PREFIX.lower():
        logger.info("Ignoring non-bearer Authorization header path=%s method=%s", request.url.path, request.method)
        return None

    token = token.strip()
    if not token:
        logger.info("Empty bearer token path=%s method=%s", request.url.path, request.method)
        return None

    return token
