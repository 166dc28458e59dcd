"""Account directory interface and in-memory implementation."""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod

from src.identity.core.exceptions import DuplicateKey
from src.identity.entities.core.account import Account
from src.identity.entities.core.organization import Organization


class AccountStore(ABC):
    """Persistence of accounts and organizations.

    Implementations must reject a second account with an identifier (or an
    external provider/uid pair) already in use by raising ``DuplicateKey``;
    that constraint is what keeps concurrent first logins from creating
    duplicates. Infrastructure failures are raised as
    ``DirectoryUnavailable``.
    """

    @abstractmethod
    async def find_by_identifier(self, identifier: str) -> Account | None:
        """Account with the given user name, if any."""

    @abstractmethod
    async def find_by_external_uid(self, provider: str, uid: str) -> Account | None:
        """Account linked to a federated identity, if any."""

    @abstractmethod
    async def insert(self, account: Account) -> Account:
        """Persist a new account atomically.

        Raises:
            DuplicateKey: identifier or external identity already used
        """

    @abstractmethod
    async def find_organization(self, short_name: str) -> Organization | None:
        """Organization with the given short name, if any."""

    @abstractmethod
    async def insert_organization(self, organization: Organization) -> Organization:
        """Persist a new organization.

        Raises:
            DuplicateKey: short name already used
        """

    @abstractmethod
    async def add_organization_member(self, short_name: str, identifier: str) -> None:
        """Add an account to the members of an organization, once."""

    @abstractmethod
    async def set_organization_unique_id(self, identifier: str, unique_id: str) -> None:
        """Record the organization unique id on an existing account."""


class InMemoryAccountStore(AccountStore):
    """Dict-backed account store.

    Stored records are copied in and out, so callers never share state with
    the store.
    """

    def __init__(self) -> None:
        self._accounts: dict[str, Account] = {}
        self._organizations: dict[str, Organization] = {}
        self._lock = asyncio.Lock()

    async def find_by_identifier(self, identifier: str) -> Account | None:
        account = self._accounts.get(identifier)
        return account.model_copy(deep=True) if account else None

    async def find_by_external_uid(self, provider: str, uid: str) -> Account | None:
        for account in self._accounts.values():
            if account.external_provider == provider and account.external_uid == uid:
                return account.model_copy(deep=True)
        return None

    async def insert(self, account: Account) -> Account:
        async with self._lock:
            if account.identifier in self._accounts:
                raise DuplicateKey(f"Account {account.identifier} already exists")
            if account.external_provider and account.external_uid:
                for existing in self._accounts.values():
                    if (
                        existing.external_provider == account.external_provider
                        and existing.external_uid == account.external_uid
                    ):
                        raise DuplicateKey(
                            f"{account.external_provider} identity already linked to "
                            f"{existing.identifier}"
                        )
            self._accounts[account.identifier] = account.model_copy(deep=True)
        return account.model_copy(deep=True)

    async def find_organization(self, short_name: str) -> Organization | None:
        organization = self._organizations.get(short_name)
        return organization.model_copy(deep=True) if organization else None

    async def insert_organization(self, organization: Organization) -> Organization:
        async with self._lock:
            if organization.short_name in self._organizations:
                raise DuplicateKey(f"Organization {organization.short_name} already exists")
            self._organizations[organization.short_name] = organization.model_copy(deep=True)
        return organization.model_copy(deep=True)

    async def add_organization_member(self, short_name: str, identifier: str) -> None:
        async with self._lock:
            organization = self._organizations.get(short_name)
            if organization is not None and identifier not in organization.members:
                organization.members.append(identifier)
                organization.touch()

    async def set_organization_unique_id(self, identifier: str, unique_id: str) -> None:
        account = self._accounts.get(identifier)
        if account is not None:
            account.organization_unique_id = unique_id
            account.touch()

    def set_pending(self, identifier: str, pending: bool) -> None:
        """Moderation action performed outside the login pipeline."""
        self._accounts[identifier].pending = pending
        self._accounts[identifier].touch()

    def __len__(self) -> int:
        return len(self._accounts)
