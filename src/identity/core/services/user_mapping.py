"""Initial user drafts built from what the login flow hands over."""

from collections.abc import Mapping
from typing import Any

from src.identity.core.models.user import UserDraft
from src.identity.runtime.config.config_data import HeaderAuthenticationConfig

DEFAULT_ROLE = "USER"


def _claim(claims: Mapping[str, Any], name: str) -> str | None:
    value = claims.get(name)
    return value if isinstance(value, str) and value else None


def draft_from_oidc_claims(provider: str, claims: Mapping[str, Any]) -> UserDraft:
    """Standard OIDC claims mapped onto a draft.

    The user name comes from ``preferred_username``, falling back to the
    local part of ``email`` and then to ``sub``. Custom claims mappings are
    applied later by the customizer chain.
    """
    subject = _claim(claims, "sub")
    email = _claim(claims, "email")
    identifier = _claim(claims, "preferred_username")
    if identifier is None and email:
        identifier = email.split("@", 1)[0]
    if identifier is None:
        identifier = subject

    return UserDraft(
        identifier=identifier,
        email=email,
        first_name=_claim(claims, "given_name"),
        last_name=_claim(claims, "family_name"),
        roles=[DEFAULT_ROLE],
        external_provider=provider,
        external_uid=subject,
    )


def is_preauthenticated(headers: Mapping[str, str], config: HeaderAuthenticationConfig) -> bool:
    """Whether the request carries identity headers from the trusted proxy."""
    if not config.enabled:
        return False
    return headers.get(config.trigger_header, "").strip().lower() == "true"


def draft_from_headers(
    headers: Mapping[str, str], config: HeaderAuthenticationConfig
) -> UserDraft | None:
    """Draft from pre-authentication headers, ``None`` if there are none.

    ``headers`` must be case insensitive (Starlette ``Headers``) or use
    lower-case names.
    """
    if not is_preauthenticated(headers, config):
        return None

    def header(name: str) -> str | None:
        value = headers.get(name)
        return value.strip() if value and value.strip() else None

    raw_roles = header(config.roles_header) or ""
    roles = [role.strip() for role in raw_roles.split(config.roles_separator) if role.strip()]

    return UserDraft(
        identifier=header(config.username_header),
        email=header(config.email_header),
        first_name=header(config.first_name_header),
        last_name=header(config.last_name_header),
        organization=header(config.organization_header),
        roles=roles or [DEFAULT_ROLE],
    )
