"""Maps configured OIDC claims onto the draft of a federated login."""

from loguru import logger

from src.identity.core.claims.extractor import ClaimsExtractor
from src.identity.core.claims.roles import RoleNormalizer
from src.identity.core.models.authentication import Authentication, OAuth2Authentication
from src.identity.core.models.user import UserDraft
from src.identity.core.services.customizers.base import UserCustomizer
from src.identity.runtime.context import get_config


class ClaimsMappingCustomizer(UserCustomizer):
    """Applies the provider's claims mapping: identifier, organization, roles.

    Non OAuth2 events are returned unchanged.
    """

    order = 100

    def __init__(
        self,
        extractor: ClaimsExtractor | None = None,
        normalizer: RoleNormalizer | None = None,
    ) -> None:
        self._extractor = extractor or ClaimsExtractor()
        self._normalizer = normalizer or RoleNormalizer(self._extractor)

    async def apply(self, auth: Authentication, draft: UserDraft) -> UserDraft:
        if not isinstance(auth, OAuth2Authentication):
            return draft

        mapping = get_config().oidc.claims_for(auth.provider)

        identifier = self._extractor.extract_first(mapping.id, auth.claims)
        if identifier:
            logger.debug("Mapped identifier {} from {} claims", identifier, auth.provider)
            draft.identifier = identifier

        organization = self._extractor.extract_first(mapping.organization, auth.claims)
        if organization:
            draft.organization = organization

        return self._normalizer.apply(auth.claims, draft, mapping.roles)
