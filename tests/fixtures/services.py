"""Service fixtures for testing."""

import pytest

from src.identity.core.services import (
    AccountManager,
    IdentityResolver,
    InMemoryAccountStore,
    SessionIdentityCache,
)
from src.identity.core.storage.session_storage import InMemorySessionStorage
from src.identity.entities.core.account import Account


class CountingAccountStore(InMemoryAccountStore):
    """In-memory store that records how often each write is attempted."""

    def __init__(self) -> None:
        super().__init__()
        self.insert_calls = 0
        self.organization_inserts = 0

    async def insert(self, account: Account) -> Account:
        self.insert_calls += 1
        return await super().insert(account)

    async def insert_organization(self, organization):
        self.organization_inserts += 1
        return await super().insert_organization(organization)


@pytest.fixture
def account_store() -> CountingAccountStore:
    return CountingAccountStore()


@pytest.fixture
def account_manager(account_store: CountingAccountStore) -> AccountManager:
    return AccountManager(account_store)


@pytest.fixture
def identity_cache() -> SessionIdentityCache:
    return SessionIdentityCache()


@pytest.fixture
def identity_resolver(
    account_manager: AccountManager, identity_cache: SessionIdentityCache
) -> IdentityResolver:
    return IdentityResolver.with_defaults(account_manager, identity_cache)


@pytest.fixture
def session_storage() -> InMemorySessionStorage:
    return InMemorySessionStorage()
