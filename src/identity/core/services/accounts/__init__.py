from .account_manager import AccountManager
from .account_store import AccountStore, InMemoryAccountStore
from .identity_cache import SessionIdentityCache

__all__ = ["AccountManager", "AccountStore", "InMemoryAccountStore", "SessionIdentityCache"]
