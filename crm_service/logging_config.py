from __future__ import annotations

import logging

APP_LOGGER = "crm_service"
AUTH_LOGGER = "crm_service.jwks_auth"

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_app_logging(level: str = "INFO", auth_level: str | None = None) -> None:
    """
    Set log levels for the service's logger tree.

    `level` (APP_LOG_LEVEL) applies to everything under `crm_service`.
    `auth_level` (APP_AUTH_LOG_LEVEL) overrides it for the key fetch and token
    verification code only, e.g. DEBUG to trace JWKS refreshes without making
    the routers noisy. Uvicorn normally installs handlers first; when run bare,
    a stderr handler is added so startup and fetch logs are not lost.
    """

    if not logging.getLogger().handlers:
        logging.basicConfig(format=LOG_FORMAT)

    app_logger = logging.getLogger(APP_LOGGER)
    app_logger.setLevel(level.upper())
    app_logger.propagate = True

    # NOTSET hands the auth subtree back to the app level.
    auth_logger = logging.getLogger(AUTH_LOGGER)
    auth_logger.setLevel(auth_level.upper() if auth_level else logging.NOTSET)
