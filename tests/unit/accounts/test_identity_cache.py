import gc

from src.identity.core.models.authentication import OAuth2Authentication, PasswordAuthentication
from src.identity.core.services import SessionIdentityCache
from src.identity.entities.core.account import Account


def test_lookup_returns_stored_account(identity_cache: SessionIdentityCache):
    event = OAuth2Authentication(provider="acme", claims={"sub": "42"})
    account = Account(identifier="jdoe")

    assert identity_cache.lookup(event) is None
    identity_cache.store(event, account)
    assert identity_cache.lookup(event) is account


def test_events_are_keyed_by_identity(identity_cache: SessionIdentityCache):
    first = OAuth2Authentication(provider="acme", claims={"sub": "42"})
    same_content = OAuth2Authentication(provider="acme", claims={"sub": "42"})

    identity_cache.store(first, Account(identifier="jdoe"))

    assert identity_cache.lookup(same_content) is None


def test_entries_die_with_their_event(identity_cache: SessionIdentityCache):
    event = PasswordAuthentication(username="jdoe")
    identity_cache.store(event, Account(identifier="jdoe"))
    assert len(identity_cache) == 1

    del event
    gc.collect()

    assert len(identity_cache) == 0
