"""Capture and replay of the post-login redirect target."""

from loguru import logger

from src.identity.core.models.session import SavedRedirect
from src.identity.core.security import is_allowed_redirect
from src.identity.core.services.session.session_attributes import SessionAttributeService
from src.identity.runtime.context import get_config


class RedirectCaptureService:
    """Remembers where to send the user once the federated login completes.

    ``capture`` runs before the provider handshake and ``consume`` after a
    successful login. A target outside the allow-list is dropped without
    any error, exactly as if none had been supplied.
    """

    def __init__(self, attributes: SessionAttributeService) -> None:
        self._attributes = attributes

    async def capture(self, session_id: str, target: str | None) -> bool:
        """Store ``target`` for the session if it is allow-listed.

        Returns:
            True if the target was stored
        """
        if not target:
            return False
        allow_list = get_config().security.login_redirect_allow_list
        if not is_allowed_redirect(target, allow_list):
            logger.debug("Ignoring redirect target outside the allow-list")
            return False
        await self._attributes.save_redirect(session_id, SavedRedirect(url=target))
        return True

    async def consume(self, session_id: str | None) -> str | None:
        """Read and forget the captured target of the session."""
        if not session_id:
            return None
        saved = await self._attributes.pop_redirect(session_id)
        return saved.url if saved else None

    async def target_after_login(self, session_id: str | None) -> str:
        """Captured target, or the configured default destination."""
        target = await self.consume(session_id)
        return target or get_config().app.default_login_success_url
