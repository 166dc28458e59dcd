from dataclasses import dataclass

from src.identity.core.services import (
    AccountManager,
    AccountStore,
    IdentityResolver,
    OidcClientService,
    RedirectCaptureService,
    SessionAttributeService,
    SessionIdentityCache,
)


@dataclass
class ApplicationDependencies:
    account_store: AccountStore
    account_manager: AccountManager
    identity_cache: SessionIdentityCache
    identity_resolver: IdentityResolver
    oidc_client_service: OidcClientService
    session_attributes: SessionAttributeService
    redirect_capture: RedirectCaptureService
