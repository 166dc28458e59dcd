"""Pydantic models for parsing the config.yaml configuration file.

This module contains Pydantic models that correspond to the structure of config.yaml.
These models handle validation and type conversion of the YAML configuration data.
"""

from __future__ import annotations

from typing import Any, Literal

from loguru import logger
from pydantic import BaseModel, Field, computed_field, field_validator


def _as_path_list(value: Any) -> Any:
    """Accept a single path, a list of paths or a ``{path: ...}`` mapping."""
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, dict):
        return _as_path_list(value.get("path"))
    return value


class ClaimsPathSpec(BaseModel):
    """Ordered list of JSONPath expressions evaluated against OIDC claims."""

    path: list[str] = Field(
        default_factory=list, description="JSONPath expressions, evaluated in order"
    )

    @classmethod
    def of(cls, *paths: str) -> ClaimsPathSpec:
        return cls(path=list(paths))

    @classmethod
    def coerce(cls, value: Any) -> Any:
        if isinstance(value, ClaimsPathSpec):
            return value
        return {"path": _as_path_list(value)}

    @field_validator("path", mode="before")
    @classmethod
    def _normalize_path(cls, value: Any) -> Any:
        return _as_path_list(value)


class RolesMappingConfig(BaseModel):
    """How role names found in the claims are turned into internal roles."""

    json_path: ClaimsPathSpec = Field(
        default_factory=ClaimsPathSpec,
        alias="json",
        description="Where to find the role names in the claims",
    )
    uppercase: bool = Field(default=True, description="Upper-case mapped role names")
    normalize: bool = Field(
        default=True, description="Strip accents and diacritics from role names"
    )
    append: bool = Field(
        default=True,
        description="Prepend mapped roles to the existing ones (true) or replace them (false)",
    )

    model_config = {"populate_by_name": True}

    @field_validator("json_path", mode="before")
    @classmethod
    def _coerce_json(cls, value: Any) -> Any:
        return ClaimsPathSpec.coerce(value)


class ClaimsMappingConfig(BaseModel):
    """JSONPath based extraction of identifier, organization and roles."""

    id: ClaimsPathSpec = Field(default_factory=ClaimsPathSpec)
    organization: ClaimsPathSpec = Field(default_factory=ClaimsPathSpec)
    roles: RolesMappingConfig = Field(default_factory=RolesMappingConfig)

    @field_validator("id", "organization", mode="before")
    @classmethod
    def _coerce_paths(cls, value: Any) -> Any:
        return ClaimsPathSpec.coerce(value)

    def merged_with(self, override: ClaimsMappingConfig | None) -> ClaimsMappingConfig:
        """Return a copy where every block explicitly set on ``override`` wins."""
        if override is None:
            return self
        updates = {name: getattr(override, name) for name in override.model_fields_set}
        return self.model_copy(update=updates)


class OIDCProviderConfig(BaseModel):
    """OIDC provider configuration model."""

    authorization_endpoint: str = Field(description="OIDC authorization endpoint URL")
    token_endpoint: str = Field(description="OIDC token endpoint URL")
    userinfo_endpoint: str | None = Field(
        default=None, description="OIDC userinfo endpoint URL"
    )
    issuer: str = Field(description="OIDC issuer URL")
    scopes: list[str] = Field(
        default_factory=lambda: ["openid", "profile", "email"],
        description="OIDC scopes to request during authentication",
    )
    client_id: str = Field(description="Client ID for the OIDC provider")
    client_secret: str | None = Field(
        default=None, description="Client secret for the OIDC provider"
    )
    redirect_uri: str = Field(description="Redirect URI for this provider")
    enabled: bool = Field(default=True, description="Enable this provider")
    moderated_signup: bool | None = Field(
        default=None,
        description="Override the global moderated signup policy for this provider",
    )
    claims: ClaimsMappingConfig | None = Field(
        default=None, description="Provider specific claims mapping overrides"
    )


class OIDCConfig(BaseModel):
    """OIDC configuration model."""

    providers: dict[str, OIDCProviderConfig] = Field(
        default_factory=dict, description="OIDC provider configurations"
    )
    claims: ClaimsMappingConfig = Field(
        default_factory=ClaimsMappingConfig,
        description="Claims mapping applied to every provider",
    )

    def claims_for(self, provider: str | None) -> ClaimsMappingConfig:
        """Effective claims mapping for ``provider``."""
        provider_config = self.providers.get(provider) if provider else None
        if provider_config is None:
            return self.claims
        return self.claims.merged_with(provider_config.claims)


class HeaderAuthenticationConfig(BaseModel):
    """Names of the headers set by the trusted upstream proxy."""

    enabled: bool = Field(default=False, description="Trust pre-authentication headers")
    trigger_header: str = Field(default="preauthenticated")
    username_header: str = Field(default="preauth-username")
    email_header: str = Field(default="preauth-email")
    first_name_header: str = Field(default="preauth-firstname")
    last_name_header: str = Field(default="preauth-lastname")
    organization_header: str = Field(default="preauth-org")
    roles_header: str = Field(default="preauth-roles")
    roles_separator: str = Field(default=";")


class SecurityConfig(BaseModel):
    """Account provisioning and login policies."""

    moderated_signup: bool = Field(
        default=False, description="New accounts wait for moderator approval"
    )
    default_organization: str = Field(
        default="", description="Organization assigned to users that have none"
    )
    login_redirect_allow_list: list[str] = Field(
        default_factory=list,
        description="Prefixes a post-login redirect target must start with",
    )
    roles_mappings: dict[str, list[str]] = Field(
        default_factory=dict,
        description="Extra roles granted to users holding a matching role ('*' wildcard)",
    )
    header_authentication: HeaderAuthenticationConfig = Field(
        default_factory=HeaderAuthenticationConfig
    )


class RedisConfig(BaseModel):
    """Redis configuration model."""

    enabled: bool = Field(default=False, description="Enable Redis service")
    url: str = Field(default="", description="Redis connection URL")
    password: str | None = Field(
        default=None, description="Password for Redis authentication"
    )

    @computed_field
    @property
    def connection_string(self) -> str:
        """Construct the Redis connection string with password if provided."""
        if self.password:
            if "@" in self.url:
                return self.url
            parts = self.url.split("://", 1)
            if len(parts) == 2:
                scheme, rest = parts
                return f"{scheme}://:{self.password}@{rest}"
        return self.url


class DatabaseConfig(BaseModel):
    """Account directory database configuration."""

    enabled: bool = Field(
        default=False, description="Use the SQL account store instead of memory"
    )
    url: str = Field(
        default="sqlite:///./accounts.db", description="Database connection URL"
    )
    pool_size: int = Field(default=20, description="Connection pool size")
    max_overflow: int = Field(default=10, description="Maximum pool overflow")
    pool_timeout: int = Field(default=30, description="Pool timeout in seconds")
    pool_recycle: int = Field(default=1800, description="Pool recycle time in seconds")

    @computed_field
    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")


class LoggingConfig(BaseModel):
    """Logging configuration model."""

    level: str = Field(default="INFO", description="Logging level")
    format: Literal["json", "plain"] = Field(default="plain", description="Log format")
    file: str | None = Field(default=None, description="Log file path")
    max_size_mb: int = Field(default=10, description="Maximum log file size in MB")
    backup_count: int = Field(
        default=5, description="Number of backup log files to keep"
    )


class AppConfig(BaseModel):
    """Application configuration model."""

    environment: Literal["development", "production", "test"] = Field(
        default="development", description="Application environment"
    )
    host: str = Field(default="localhost", description="Application host")
    port: int = Field(default=8000, description="Application port")
    session_cookie_name: str = Field(
        default="gateway_session", description="Name of the session cookie"
    )
    session_max_age: int = Field(
        default=3600, description="Session maximum age in seconds"
    )
    default_login_success_url: str = Field(
        default="/", description="Where to go after login when no redirect was captured"
    )


class ConfigData(BaseModel):
    """Root configuration model that matches the config.yaml structure."""

    app: AppConfig = Field(
        default_factory=AppConfig, description="Application configuration"
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging configuration"
    )
    redis: RedisConfig = Field(
        default_factory=RedisConfig, description="Redis configuration"
    )
    database: DatabaseConfig = Field(
        default_factory=DatabaseConfig, description="Database configuration"
    )
    oidc: OIDCConfig = Field(
        default_factory=OIDCConfig, description="OIDC configuration"
    )
    security: SecurityConfig = Field(
        default_factory=SecurityConfig, description="Security configuration"
    )

    def moderated_signup_for(self, provider: str | None) -> bool:
        """Resolve moderation: provider override, then global default."""
        provider_config = self.oidc.providers.get(provider) if provider else None
        if provider_config is not None and provider_config.moderated_signup is not None:
            logger.debug(
                "Provider {} overrides moderated signup: {}",
                provider,
                provider_config.moderated_signup,
            )
            return provider_config.moderated_signup
        return self.security.moderated_signup
