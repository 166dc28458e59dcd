from .accounts.account_manager import AccountManager
from .accounts.account_store import AccountStore, InMemoryAccountStore
from .accounts.identity_cache import SessionIdentityCache
from .accounts.sql_account_store import SqlAccountStore, create_directory_engine
from .customizers import (
    LOWEST_PRECEDENCE,
    ClaimsMappingCustomizer,
    CreateAccountCustomizer,
    CustomizerChain,
    RolesMappingsCustomizer,
    UserCustomizer,
)
from .identity_resolver import IdentityResolver
from .oidc_client_service import OidcClientService, TokenResponse
from .redirect import RedirectCaptureService
from .session import SessionAttributeService

__all__ = [
    "LOWEST_PRECEDENCE",
    "AccountManager",
    "AccountStore",
    "ClaimsMappingCustomizer",
    "CreateAccountCustomizer",
    "CustomizerChain",
    "IdentityResolver",
    "InMemoryAccountStore",
    "OidcClientService",
    "RedirectCaptureService",
    "RolesMappingsCustomizer",
    "SessionAttributeService",
    "SessionIdentityCache",
    "SqlAccountStore",
    "TokenResponse",
    "UserCustomizer",
    "create_directory_engine",
]
