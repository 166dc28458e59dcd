from src.identity.core.models.session import LoginState, SavedRedirect, SessionIdentity
from src.identity.core.storage.session_storage import SessionStorage
from src.identity.runtime.context import get_config

# Short lived: only has to survive the round-trip to the identity provider.
LOGIN_FLOW_TTL_SECONDS = 600


class SessionAttributeService:
    """Per-session attributes kept in the session storage.

    Every attribute is stored under ``session:<session id>:<name>``.
    """

    def __init__(self, session_storage: SessionStorage) -> None:
        self._storage = session_storage

    @staticmethod
    def _key(session_id: str, name: str) -> str:
        return f"session:{session_id}:{name}"

    async def save_redirect(self, session_id: str, redirect: SavedRedirect) -> None:
        await self._storage.set(
            self._key(session_id, "redirect"), redirect, LOGIN_FLOW_TTL_SECONDS
        )

    async def pop_redirect(self, session_id: str) -> SavedRedirect | None:
        return await self._storage.pop(self._key(session_id, "redirect"), SavedRedirect)

    async def save_login_state(self, session_id: str, login_state: LoginState) -> None:
        await self._storage.set(
            self._key(session_id, "login_state"), login_state, LOGIN_FLOW_TTL_SECONDS
        )

    async def pop_login_state(self, session_id: str) -> LoginState | None:
        """Login state is single use: reading it retires it."""
        return await self._storage.pop(self._key(session_id, "login_state"), LoginState)

    async def save_identity(self, session_id: str, identity: SessionIdentity) -> None:
        await self._storage.set(
            self._key(session_id, "identity"),
            identity,
            get_config().app.session_max_age,
        )

    async def get_identity(self, session_id: str) -> SessionIdentity | None:
        return await self._storage.get(self._key(session_id, "identity"), SessionIdentity)

    async def clear(self, session_id: str) -> None:
        for name in ("redirect", "login_state", "identity"):
            await self._storage.delete(self._key(session_id, name))

    async def purge_expired(self) -> int:
        return await self._storage.cleanup_expired()
