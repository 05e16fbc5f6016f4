from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from starlette.concurrency import run_in_threadpool

from crm_service.jwks_auth import FetchError, TokenVerifier
from crm_service.logging_config import configure_app_logging
from crm_service.routers import health, identity
from crm_service.security.dependencies import authenticate_request
from crm_service.settings import get_settings

logger = logging.getLogger(__name__)


def create_app(verifier: TokenVerifier | None = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        settings = get_settings()
        configure_app_logging(settings.log_level, auth_level=settings.auth_log_level)
        logger.info("App startup beginning")

        app.state.token_verifier = verifier or TokenVerifier.from_config()
        logger.info("Token verifier configured jwks_uri=%s", app.state.token_verifier.fetcher.jwks_uri)

        if settings.jwks_warmup:
            # Best effort: the first request refreshes on its own if this fails.
            try:
                await run_in_threadpool(app.state.token_verifier.fetcher.refresh)
            except FetchError as e:
                logger.warning("JWKS warmup failed: %s", e.detail)

        yield
        # Shutdown (nothing to clean up)

    # Global dependency: attaches request.state.identity, never rejects.
    app = FastAPI(dependencies=[Depends(authenticate_request)], lifespan=lifespan)

    app.include_router(health.router)
    app.include_router(identity.router)

    return app


app = create_app()
