"""FastAPI application factory and setup."""

import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import HTTPException, RequestValidationError
from loguru import logger
from starlette.responses import JSONResponse

from src.identity.api.http.app_data import ApplicationDependencies
from src.identity.api.http.middleware.redirect_capture import RedirectCaptureMiddleware
from src.identity.api.http.middleware.session_cookie import SessionCookieMiddleware
from src.identity.api.http.routers.identity import router_identity
from src.identity.api.http.routers.login import router_login
from src.identity.api.utils.app_startup import configure_logging
from src.identity.core.exceptions import (
    ConfigurationDefect,
    DirectoryUnavailable,
    IdentityError,
    IdentityInvariantViolation,
    PendingApproval,
    ProviderError,
)
from src.identity.core.services import (
    AccountManager,
    AccountStore,
    IdentityResolver,
    InMemoryAccountStore,
    OidcClientService,
    RedirectCaptureService,
    SessionAttributeService,
    SessionIdentityCache,
    SqlAccountStore,
    create_directory_engine,
)
from src.identity.core.storage.session_storage import SessionStorage, get_session_storage
from src.identity.runtime.context import get_config

# Seconds a client should wait before retrying when the directory is down
DIRECTORY_RETRY_AFTER_SECONDS = 5


def create_account_store() -> AccountStore:
    db_config = get_config().database
    if not db_config.enabled:
        logger.info("Database disabled, using in-memory account store")
        return InMemoryAccountStore()
    store = SqlAccountStore(create_directory_engine(db_config))
    store.create_tables()
    return store


def build_dependencies(
    session_storage: SessionStorage, account_store: AccountStore | None = None
) -> ApplicationDependencies:
    """Wire the identity services together."""
    account_store = account_store if account_store is not None else create_account_store()
    account_manager = AccountManager(account_store)
    identity_cache = SessionIdentityCache()
    session_attributes = SessionAttributeService(session_storage)
    return ApplicationDependencies(
        account_store=account_store,
        account_manager=account_manager,
        identity_cache=identity_cache,
        identity_resolver=IdentityResolver.with_defaults(account_manager, identity_cache),
        oidc_client_service=OidcClientService(),
        session_attributes=session_attributes,
        redirect_capture=RedirectCaptureService(session_attributes),
    )


# --- Lifecycle hooks ---
async def startup(app: FastAPI) -> None:
    config = get_config()
    logger.info("Starting up application in {} environment", config.app.environment)
    if getattr(app.state, "app_dependencies", None) is None:
        app.state.app_dependencies = build_dependencies(await get_session_storage())
    if not config.oidc.providers:
        logger.warning("No OIDC providers configured, federated login is disabled")


async def shutdown(app: FastAPI) -> None:
    logger.info("Shutting down application")
    app_dependencies: ApplicationDependencies | None = getattr(
        app.state, "app_dependencies", None
    )
    if app_dependencies is not None:
        await app_dependencies.session_attributes.purge_expired()


def _error_response(request: Request, status_code: int, detail: str, headers=None):
    request_id = getattr(request.state, "request_id", "-")
    return JSONResponse(
        status_code=status_code,
        content={"detail": detail, "request_id": request_id},
        headers=headers,
    )


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(PendingApproval)
    async def pending_approval(request: Request, exc: PendingApproval):
        return _error_response(request, 403, str(exc))

    @app.exception_handler(ConfigurationDefect)
    async def configuration_defect(request: Request, exc: ConfigurationDefect):
        logger.error("Identity configuration defect: {}", exc)
        return _error_response(request, 401, "Authentication failed")

    @app.exception_handler(DirectoryUnavailable)
    async def directory_unavailable(request: Request, exc: DirectoryUnavailable):
        logger.error("Account directory unavailable: {}", exc)
        return _error_response(
            request,
            503,
            "Account directory temporarily unavailable",
            headers={"Retry-After": str(DIRECTORY_RETRY_AFTER_SECONDS)},
        )

    @app.exception_handler(ProviderError)
    async def provider_error(request: Request, exc: ProviderError):
        return _error_response(request, 502, "Identity provider error")

    @app.exception_handler(IdentityInvariantViolation)
    async def invariant_violation(request: Request, exc: IdentityInvariantViolation):
        logger.error("Identity invariant violated: {}", exc)
        return _error_response(request, 500, "Internal Server Error")

    @app.exception_handler(IdentityError)
    async def identity_error(request: Request, exc: IdentityError):
        logger.opt(exception=exc).error("Unhandled identity error")
        return _error_response(request, 500, "Internal Server Error")


async def log_requests(request: Request, call_next):
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request.state.request_id = request_id

    xff = request.headers.get("x-forwarded-for")
    client_ip = (
        xff.split(",")[0].strip()
        if xff
        else request.client.host
        if request.client
        else "unknown"
    )

    base_ctx = {
        "request_id": request_id,
        "method": request.method,
        "path": request.url.path,
        "client_ip": client_ip,
    }

    start = time.perf_counter()

    with logger.contextualize(**base_ctx):
        try:
            logger.info("request.start")
            response = await call_next(request)

            duration_ms = (time.perf_counter() - start) * 1000
            logger.bind(
                status_code=response.status_code,
                duration_ms=round(duration_ms, 1),
            ).info("request.end")

            response.headers.setdefault("X-Request-ID", request_id)
            return response

        except HTTPException as exc:
            logger.bind(status_code=exc.status_code).exception("request.error")
            return JSONResponse(
                status_code=exc.status_code,
                content={"detail": exc.detail, "request_id": request_id},
                headers={"X-Request-ID": request_id},
            )

        except RequestValidationError as exc:
            logger.bind(status_code=422).exception("request.validation_error")
            return JSONResponse(
                status_code=422,
                content={"detail": exc.errors(), "request_id": request_id},
                headers={"X-Request-ID": request_id},
            )

        except Exception:
            logger.bind(status_code=500).exception("request.error")
            return JSONResponse(
                status_code=500,
                content={"detail": "Internal Server Error", "request_id": request_id},
                headers={"X-Request-ID": request_id},
            )


def create_app() -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await startup(app)
        try:
            yield
        finally:
            await shutdown(app)

    production = get_config().app.environment == "production"
    app = FastAPI(
        lifespan=lifespan,
        docs_url=None if production else "/docs",
        redoc_url=None if production else "/redoc",
    )

    # Starlette runs the last added middleware first
    app.add_middleware(RedirectCaptureMiddleware)
    app.add_middleware(SessionCookieMiddleware)
    app.middleware("http")(log_requests)

    register_exception_handlers(app)

    app.include_router(router_login)
    app.include_router(router_identity)

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "healthy"}

    return app


configure_logging()
app = create_app()

__all__ = ["app", "build_dependencies", "create_app", "startup", "shutdown"]


if __name__ == "__main__":
    import uvicorn

    config = get_config()
    uvicorn.run(app, host=config.app.host, port=config.app.port, access_log=False)
