"""Normalization of federated role names into the internal role alphabet."""

import re
import unicodedata
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from loguru import logger

from src.identity.core.claims.extractor import ClaimsExtractor
from src.identity.core.models.user import UserDraft
from src.identity.runtime.config.config_data import ClaimsPathSpec, RolesMappingConfig

_WHITESPACE = re.compile(r"\s+")
_NOT_ROLE_CHAR = re.compile(r"[^A-Za-z0-9_]")


@dataclass(frozen=True)
class RoleMappingPolicy:
    uppercase: bool = True
    normalize_diacritics: bool = True
    append: bool = True

    @classmethod
    def from_config(cls, config: RolesMappingConfig) -> "RoleMappingPolicy":
        return cls(
            uppercase=config.uppercase,
            normalize_diacritics=config.normalize,
            append=config.append,
        )


def strip_diacritics(value: str) -> str:
    decomposed = unicodedata.normalize("NFD", value)
    return "".join(char for char in decomposed if not unicodedata.combining(char))


class RoleNormalizer:
    """Turns raw role strings into role names and merges them into drafts."""

    def __init__(self, extractor: ClaimsExtractor | None = None) -> None:
        self._extractor = extractor or ClaimsExtractor()

    def normalize(self, raw_role: str, policy: RoleMappingPolicy) -> str:
        """Upper-case, strip accents, underscore whitespace, drop the rest.

        >>> RoleNormalizer().normalize("Évry Cédex", RoleMappingPolicy())
        'EVRY_CEDEX'
        """
        value = raw_role.upper() if policy.uppercase else raw_role
        if policy.normalize_diacritics:
            value = strip_diacritics(value)
        value = _WHITESPACE.sub("_", value)
        return _NOT_ROLE_CHAR.sub("", value)

    def map_roles(
        self,
        path_spec: ClaimsPathSpec,
        claims: Mapping[str, Any],
        policy: RoleMappingPolicy,
    ) -> list[str]:
        raw_roles = self._extractor.extract(path_spec, claims)
        return [self.normalize(raw, policy) for raw in raw_roles]

    def apply(
        self,
        claims: Mapping[str, Any],
        draft: UserDraft,
        config: RolesMappingConfig,
    ) -> UserDraft:
        """Merge the roles mapped from ``claims`` into ``draft``.

        Nothing matched means nothing changes; existing roles are never
        wiped by a mapping that found no roles.
        """
        policy = RoleMappingPolicy.from_config(config)
        roles = [role for role in self.map_roles(config.json_path, claims, policy) if role]
        if not roles:
            return draft

        if policy.append:
            draft.prepend_roles(roles)
        else:
            draft.roles = roles
        logger.debug("Mapped roles {} from claims for {}", roles, draft.identifier)
        return draft
