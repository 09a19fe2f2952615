"""FastAPI application assembly for the client portal login.

Run with an ASGI server using the factory, e.g.:
    uvicorn app:create_app_from_vault --factory
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.errors import register_error_handlers
from api.middleware import RequestIDMiddleware
from clients.email_client import EmailGatewayClient
from clients.postgres_client import PostgresClient
from clients.valkey_client import ValkeyClient
from clients.vault_client import get_database_url, get_email_config, get_valkey_url
from portal.api import create_portal_router
from portal.config import PortalConfig
from portal.database import PortalDatabase
from portal.issuer import CodeIssuer
from portal.notifier import LoginCodeNotifier
from portal.rate_limiter import RateLimiter
from portal.security_logger import SecurityLogger
from portal.service import PortalAuthService
from portal.verifier import CodeVerifier
from utils.logging_config import setup_logging

logger = logging.getLogger(__name__)

ROUTE_PREFIX = "/send-magic-link"


def build_portal_service(
    config: PortalConfig,
    postgres: PostgresClient,
    valkey: ValkeyClient,
    email_client: EmailGatewayClient,
) -> PortalAuthService:
    """Wire the login flow from infrastructure clients."""
    portal_db = PortalDatabase(postgres)
    notifier = LoginCodeNotifier(email_client, config)

    return PortalAuthService(
        config=config,
        issuer=CodeIssuer(config, portal_db, notifier),
        verifier=CodeVerifier(config, portal_db),
        rate_limiter=RateLimiter(valkey, config),
        security_logger=SecurityLogger(postgres),
    )


def create_app(portal_service: PortalAuthService, config: PortalConfig | None = None) -> FastAPI:
    """FastAPI app with CORS, request ids, error handlers and login routes."""
    config = config or PortalConfig()

    app = FastAPI(title=config.app_name)
    app.add_middleware(RequestIDMiddleware)
    # Added last so it wraps everything, including preflight requests.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_methods=["POST", "OPTIONS"],
        allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
        expose_headers=[RequestIDMiddleware.HEADER, "Retry-After"],
    )
    register_error_handlers(app)

    app.include_router(create_portal_router(portal_service), prefix=ROUTE_PREFIX)

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return app


def create_app_from_vault(config: PortalConfig | None = None) -> FastAPI:
    """Production entry point: secrets from Vault, logging configured."""
    setup_logging()
    config = config or PortalConfig()

    email_config = get_email_config()
    service = build_portal_service(
        config,
        postgres=PostgresClient(get_database_url()),
        valkey=ValkeyClient(get_valkey_url()),
        email_client=EmailGatewayClient(
            gateway_url=email_config["gateway_url"],
            api_key=email_config["api_key"],
            hmac_secret=email_config["hmac_secret"],
            timeout_seconds=config.email_timeout_seconds,
        ),
    )
    logger.info("Client portal login service ready")
    return create_app(service, config)
