"""OIDC client service for the authorization code flow with PKCE."""

import base64
import time
from typing import Any
from urllib.parse import urlencode

import httpx
from loguru import logger
from pydantic import BaseModel

from src.identity.core.exceptions import ProviderError
from src.identity.runtime.config.config_data import OIDCProviderConfig
from src.identity.runtime.context import get_config


class TokenResponse(BaseModel):
    """OIDC token response model."""

    access_token: str
    token_type: str
    expires_in: int = 3600
    refresh_token: str | None = None
    id_token: str | None = None

    @property
    def expires_at(self) -> int:
        """Calculate absolute expiry timestamp."""
        return int(time.time()) + self.expires_in


def _provider_config(provider: str) -> OIDCProviderConfig:
    providers = get_config().oidc.providers
    if provider not in providers:
        raise ProviderError(f"Unknown OIDC provider: {provider}")
    return providers[provider]


def _client_auth_headers(provider_config: OIDCProviderConfig) -> dict[str, str]:
    headers = {"Content-Type": "application/x-www-form-urlencoded"}
    if provider_config.client_secret:
        credentials = f"{provider_config.client_id}:{provider_config.client_secret}"
        encoded_credentials = base64.b64encode(credentials.encode()).decode()
        headers["Authorization"] = f"Basic {encoded_credentials}"
    return headers


class OidcClientService:
    """Talks to the configured OIDC providers."""

    def __init__(self, timeout: float = 10.0) -> None:
        self._timeout = timeout

    def authorization_url(self, provider: str, state: str, code_challenge: str) -> str:
        """URL of the provider's authorization endpoint for a new login."""
        provider_config = _provider_config(provider)
        params = {
            "client_id": provider_config.client_id,
            "response_type": "code",
            "scope": " ".join(provider_config.scopes),
            "redirect_uri": provider_config.redirect_uri,
            "state": state,
            "code_challenge": code_challenge,
            "code_challenge_method": "S256",
        }
        return f"{provider_config.authorization_endpoint}?{urlencode(params)}"

    async def exchange_code_for_tokens(
        self, code: str, pkce_verifier: str, provider: str
    ) -> TokenResponse:
        """Exchange authorization code for tokens using PKCE.

        Args:
            code: Authorization code from callback
            pkce_verifier: PKCE code verifier
            provider: OIDC provider identifier

        Returns:
            Token response with access/refresh tokens
        """
        provider_config = _provider_config(provider)

        token_data = {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": provider_config.redirect_uri,
            "client_id": provider_config.client_id,
            "code_verifier": pkce_verifier,
        }

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(
                    provider_config.token_endpoint,
                    data=token_data,
                    headers=_client_auth_headers(provider_config),
                )
                response.raise_for_status()
                return TokenResponse(**response.json())
        except httpx.HTTPError as e:
            logger.warning("Token exchange with {} failed: {}", provider, e)
            raise ProviderError(f"Token exchange with {provider} failed") from e

    async def get_user_claims(self, access_token: str, provider: str) -> dict[str, Any]:
        """Claims returned by the provider's userinfo endpoint.

        Args:
            access_token: Access token for userinfo endpoint
            provider: OIDC provider identifier

        Returns:
            Raw claims payload
        """
        provider_config = _provider_config(provider)
        if not provider_config.userinfo_endpoint:
            raise ProviderError(f"Provider {provider} has no userinfo endpoint")

        headers = {"Authorization": f"Bearer {access_token}"}
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.get(provider_config.userinfo_endpoint, headers=headers)
                response.raise_for_status()
                claims = response.json()
        except httpx.HTTPError as e:
            logger.warning("Userinfo request to {} failed: {}", provider, e)
            raise ProviderError(f"Userinfo request to {provider} failed") from e

        if not isinstance(claims, dict) or not claims.get("sub"):
            raise ProviderError(f"Provider {provider} returned claims without subject")
        return claims
