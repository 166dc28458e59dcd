"""Get-or-create of durable accounts from request-scoped user drafts."""

from __future__ import annotations

import asyncio
import weakref

from loguru import logger

from src.identity.core.exceptions import DuplicateKey, IdentityInvariantViolation
from src.identity.core.models.user import UserDraft
from src.identity.core.services.accounts.account_store import AccountStore
from src.identity.entities.core.account import Account
from src.identity.entities.core.organization import Organization
from src.identity.runtime.context import get_config

# Attempts at inserting a federated account whose user name keeps being
# taken by concurrent logins of other identities.
MAX_CREATE_ATTEMPTS = 3


class AccountManager:
    """Resolves drafts to accounts, creating them on first login.

    Federated drafts are matched on their provider and provider-assigned
    uid, pre-authenticated drafts on their identifier. Concurrent first
    logins of one identity are serialized in-process and, across processes,
    reconciled by re-reading after the store rejects a duplicate insert.
    """

    def __init__(self, store: AccountStore) -> None:
        self._store = store
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    @property
    def store(self) -> AccountStore:
        return self._store

    async def find(self, draft: UserDraft) -> Account | None:
        """Look up the account of ``draft`` without creating it."""
        if draft.is_federated:
            return await self._store.find_by_external_uid(
                draft.external_provider, draft.external_uid
            )
        if draft.identifier:
            return await self._store.find_by_identifier(draft.identifier)
        raise IdentityInvariantViolation(
            "Cannot look up an account without identifier or external identity"
        )

    async def get_or_create(self, draft: UserDraft) -> Account:
        """Return the account of ``draft``, creating it if it does not exist.

        Safe to call repeatedly and concurrently: one identity never ends up
        with more than one account.
        """
        account = await self.find(draft)
        if account is not None:
            return account

        async with self._lock_for(draft):
            account = await self.find(draft)
            if account is not None:
                return account
            return await self._create(draft)

    async def create_user_org_unique_id_if_missing(self, draft: UserDraft) -> str | None:
        """Attach the organization unique id to the account of ``draft``.

        Creates the organization the first time one of its members logs in.
        Does nothing when the draft has no organization or already carries
        the id.
        """
        if draft.organization_unique_id or not draft.organization:
            return draft.organization_unique_id

        account = await self.find(draft)
        if account is None:
            return None
        if account.organization_unique_id:
            draft.organization_unique_id = account.organization_unique_id
            return account.organization_unique_id

        organization = await self._find_or_create_organization(
            draft.organization, member=account.identifier
        )
        await self._store.set_organization_unique_id(account.identifier, organization.id)
        draft.organization_unique_id = organization.id
        logger.debug(
            "Assigned organization {} ({}) to {}",
            organization.short_name,
            organization.id,
            account.identifier,
        )
        return organization.id

    async def is_pending_account(self, draft: UserDraft) -> bool:
        """Current moderation status of the account, read from the store.

        Federated drafts are looked up by their external identity: their
        preferred user name may belong to somebody else.
        """
        account = await self.find(draft)
        return account is not None and account.pending

    def compute_pending(self, draft: UserDraft) -> bool:
        """Moderation flag for a new account created from ``draft``."""
        return get_config().moderated_signup_for(draft.external_provider)

    def _lock_for(self, draft: UserDraft) -> asyncio.Lock:
        if draft.is_federated:
            key = f"oauth2:{draft.external_provider}:{draft.external_uid}"
        else:
            key = f"user:{draft.identifier}"
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    async def _create(self, draft: UserDraft) -> Account:
        security = get_config().security
        if not draft.organization and security.default_organization:
            draft.organization = security.default_organization
        pending = self.compute_pending(draft)

        for _ in range(MAX_CREATE_ATTEMPTS):
            identifier = await self._available_identifier(draft)
            account = draft.to_account(pending=pending, identifier=identifier)
            try:
                created = await self._store.insert(account)
            except DuplicateKey as exc:
                existing = await self.find(draft)
                if existing is not None:
                    logger.info(
                        "Account {} was created concurrently, using it", existing.identifier
                    )
                    return existing
                if not draft.is_federated:
                    raise IdentityInvariantViolation(
                        f"Insert of {identifier} collided but no account matches it"
                    ) from exc
                logger.info("User name {} was taken concurrently, retrying", identifier)
                continue

            logger.info(
                "Created account {} (provider={}, pending={})",
                created.identifier,
                created.external_provider,
                created.pending,
            )
            return created

        raise IdentityInvariantViolation(
            f"Could not allocate a user name for {draft.identifier}"
        )

    async def _available_identifier(self, draft: UserDraft) -> str:
        """User name for a new account.

        Federated users get a numeric suffix when their preferred user name
        already belongs to somebody else.
        """
        base = draft.identifier or draft.external_uid
        if not draft.is_federated:
            return base

        candidate, suffix = base, 0
        while await self._store.find_by_identifier(candidate) is not None:
            suffix += 1
            candidate = f"{base}{suffix}"
        if candidate != base:
            logger.info("User name {} is taken, using {}", base, candidate)
        return candidate

    async def _find_or_create_organization(
        self, short_name: str, member: str
    ) -> Organization:
        organization = await self._store.find_organization(short_name)
        if organization is not None:
            return await self._join(organization, member)
        try:
            organization = await self._store.insert_organization(
                Organization(short_name=short_name, name=short_name, members=[member])
            )
            logger.info("Created organization {} ({})", short_name, organization.id)
            return organization
        except DuplicateKey:
            organization = await self._store.find_organization(short_name)
            if organization is None:
                raise
            return await self._join(organization, member)

    async def _join(self, organization: Organization, member: str) -> Organization:
        if member not in organization.members:
            await self._store.add_organization_member(organization.short_name, member)
            organization.members.append(member)
        return organization
