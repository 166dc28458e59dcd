"""Entry point turning an authentication event into the final user identity."""

from collections.abc import Iterable

from loguru import logger

from src.identity.core.models.authentication import Authentication
from src.identity.core.models.user import UserDraft
from src.identity.core.services.accounts.account_manager import AccountManager
from src.identity.core.services.accounts.identity_cache import SessionIdentityCache
from src.identity.core.services.customizers import (
    ClaimsMappingCustomizer,
    CreateAccountCustomizer,
    CustomizerChain,
    RolesMappingsCustomizer,
    UserCustomizer,
)


class IdentityResolver:
    """Runs the customizer chain for one authentication event."""

    def __init__(self, chain: CustomizerChain) -> None:
        self._chain = chain

    @classmethod
    def with_defaults(
        cls,
        accounts: AccountManager,
        cache: SessionIdentityCache | None = None,
        extra: Iterable[UserCustomizer] = (),
    ) -> "IdentityResolver":
        """Resolver with the built-in claims, roles and provisioning steps."""
        customizers: list[UserCustomizer] = [
            ClaimsMappingCustomizer(),
            RolesMappingsCustomizer(),
            CreateAccountCustomizer(accounts, cache),
            *extra,
        ]
        return cls(CustomizerChain(customizers))

    @property
    def chain(self) -> CustomizerChain:
        return self._chain

    async def resolve(self, auth: Authentication, draft: UserDraft) -> UserDraft:
        """Final identity of ``draft``.

        Raises:
            PendingApproval: the account awaits moderation
            ConfigurationDefect: claims mapping is misconfigured
            DirectoryUnavailable: the account directory cannot be reached
            IdentityInvariantViolation: the draft lacks its identity fields
        """
        resolved = await self._chain.apply(auth, draft)
        logger.info(
            "Resolved identity {} with roles {}", resolved.identifier, resolved.roles
        )
        return resolved
