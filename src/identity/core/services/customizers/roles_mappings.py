"""Static role grants configured under ``security.roles_mappings``."""

import re
from functools import lru_cache

from src.identity.core.models.authentication import Authentication
from src.identity.core.models.user import UserDraft
from src.identity.core.services.customizers.base import UserCustomizer
from src.identity.runtime.context import get_config


@lru_cache(maxsize=128)
def _role_pattern(pattern: str) -> re.Pattern[str]:
    """Compile a role pattern where ``*`` matches any run of characters."""
    return re.compile(".*".join(re.escape(part) for part in pattern.split("*")))


def roles_granted_by(pattern: str, roles: list[str]) -> bool:
    compiled = _role_pattern(pattern)
    return any(compiled.fullmatch(role) for role in roles)


class RolesMappingsCustomizer(UserCustomizer):
    """Adds extra roles to users holding a role that matches a configured pattern.

    Given::

        roles_mappings:
          "ROLE_GP.*": ["ROLE_USER"]
          "ADMIN": ["ROLE_SUPERUSER", "ROLE_ADMINISTRATOR"]

    a user with ``ROLE_GP.GDI.ADMIN`` also gets ``ROLE_USER``. Matching is
    case sensitive and patterns are evaluated against the roles the draft
    had before this step, in configuration order.
    """

    order = 200

    async def apply(self, auth: Authentication, draft: UserDraft) -> UserDraft:
        mappings = get_config().security.roles_mappings
        if not mappings or not draft.roles:
            return draft

        current = list(draft.roles)
        extra: list[str] = []
        for pattern, granted in mappings.items():
            if roles_granted_by(pattern, current):
                extra.extend(granted)
        if extra:
            draft.add_roles(extra)
        return draft
