"""Account provisioning, the last step of the customizer chain."""

from loguru import logger

from src.identity.core.exceptions import IdentityInvariantViolation, PendingApproval
from src.identity.core.models.authentication import (
    Authentication,
    OAuth2Authentication,
    PreAuthenticatedAuthentication,
)
from src.identity.core.models.user import UserDraft
from src.identity.core.services.accounts.account_manager import AccountManager
from src.identity.core.services.accounts.identity_cache import SessionIdentityCache
from src.identity.core.services.customizers.base import LOWEST_PRECEDENCE, UserCustomizer
from src.identity.entities.core.account import Account


class CreateAccountCustomizer(UserCustomizer):
    """Creates the durable account of federated and pre-authenticated users.

    Runs after every other customizer so the account is created from the
    fully enriched draft. The first time an authentication event is seen
    the account is fetched or created and its organization unique id is
    assigned; later calls for the same event only re-read the account.
    Either way the returned draft mirrors the stored account, and a
    pending account aborts the login with ``PendingApproval``.

    Other authentication types are returned unchanged.
    """

    order = LOWEST_PRECEDENCE

    def __init__(
        self, accounts: AccountManager, cache: SessionIdentityCache | None = None
    ) -> None:
        self._accounts = accounts
        self._cache = cache if cache is not None else SessionIdentityCache()

    @property
    def cache(self) -> SessionIdentityCache:
        return self._cache

    async def apply(self, auth: Authentication, draft: UserDraft) -> UserDraft:
        if isinstance(auth, OAuth2Authentication):
            if not draft.external_provider:
                raise IdentityInvariantViolation("Federated draft has no external provider")
            if not draft.external_uid:
                raise IdentityInvariantViolation("Federated draft has no external uid")
        elif isinstance(auth, PreAuthenticatedAuthentication):
            if not draft.identifier:
                raise IdentityInvariantViolation("Pre-authenticated draft has no identifier")
        else:
            return draft

        account = await self._resolve(auth, draft)

        resolved = UserDraft.from_account(account, external_auth=True)
        if await self._accounts.is_pending_account(resolved):
            logger.info("Login of {} rejected, account is pending", resolved.identifier)
            raise PendingApproval()
        resolved.pending = False

        self._cache.store(auth, account)
        return resolved

    async def _resolve(self, auth: Authentication, draft: UserDraft) -> Account:
        if self._cache.lookup(auth) is not None:
            account = await self._accounts.find(draft)
            if account is not None:
                return account
            logger.info("Cached account of {} is gone, provisioning again", draft.identifier)

        account = await self._accounts.get_or_create(draft)
        org_unique_id = await self._accounts.create_user_org_unique_id_if_missing(
            UserDraft.from_account(account)
        )
        if org_unique_id and not account.organization_unique_id:
            account = account.model_copy(update={"organization_unique_id": org_unique_id})
        return account
