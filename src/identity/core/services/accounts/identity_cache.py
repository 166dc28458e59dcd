"""Per-authentication memo of resolved accounts."""

from __future__ import annotations

import weakref

from src.identity.core.models.authentication import Authentication
from src.identity.entities.core.account import Account


class SessionIdentityCache:
    """Maps an authentication event to the account it resolved to.

    Keys are held weakly: an entry disappears together with its
    authentication event. The cache only tells whether an event was seen
    before; it is never authoritative for account state.
    """

    def __init__(self) -> None:
        self._accounts: weakref.WeakKeyDictionary[Authentication, Account] = (
            weakref.WeakKeyDictionary()
        )

    def lookup(self, event: Authentication) -> Account | None:
        return self._accounts.get(event)

    def store(self, event: Authentication, account: Account) -> None:
        self._accounts[event] = account

    def __len__(self) -> int:
        return len(self._accounts)
