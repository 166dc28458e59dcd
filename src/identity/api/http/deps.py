"""FastAPI dependency implementations."""

from fastapi import Request

from src.identity.api.http.app_data import ApplicationDependencies
from src.identity.core.services import (
    IdentityResolver,
    OidcClientService,
    RedirectCaptureService,
    SessionAttributeService,
)


def get_app_dependencies(request: Request) -> ApplicationDependencies:
    return request.app.state.app_dependencies


def get_identity_resolver(request: Request) -> IdentityResolver:
    """Get the identity resolver instance."""
    return get_app_dependencies(request).identity_resolver


def get_oidc_client_service(request: Request) -> OidcClientService:
    """Get the OIDC client service instance."""
    return get_app_dependencies(request).oidc_client_service


def get_session_attributes(request: Request) -> SessionAttributeService:
    """Get the session attribute service instance."""
    return get_app_dependencies(request).session_attributes


def get_redirect_capture(request: Request) -> RedirectCaptureService:
    """Get the redirect capture service instance."""
    return get_app_dependencies(request).redirect_capture


def get_session_id(request: Request) -> str:
    """Session id assigned by ``SessionCookieMiddleware``."""
    return request.state.session_id
