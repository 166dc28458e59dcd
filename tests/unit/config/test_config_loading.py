"""Unit tests for configuration loading and context overrides."""

from pathlib import Path

import pytest

from src.identity.runtime.config.config_data import (
    ClaimsMappingConfig,
    ClaimsPathSpec,
    ConfigData,
    RolesMappingConfig,
    SecurityConfig,
)
from src.identity.runtime.config.config_template import (
    load_templated_yaml,
    substitute_env_vars,
)
from src.identity.runtime.context import (
    _load_default_config,
    get_config,
    use_config,
    with_context,
)
from tests.fixtures.core import make_config, make_provider

CONFIG_YAML = """
config:
  security:
    moderated_signup: ${GATEWAY_MODERATED:-true}
    default_organization: ACME
    login_redirect_allow_list: ["/app/"]
  oidc:
    claims:
      id: $.login
      organization:
        path: [$.org, $.company]
      roles:
        json: $.groups
        uppercase: false
    providers:
      acme:
        issuer: https://idp.test
        client_id: gateway
        authorization_endpoint: https://idp.test/authorize
        token_endpoint: https://idp.test/token
        redirect_uri: http://localhost:8000/login/oauth2/code/acme
        moderated_signup: false
      legacy:
        enabled: false
        issuer: https://legacy.test
        client_id: gateway
        authorization_endpoint: https://legacy.test/authorize
        token_endpoint: https://legacy.test/token
        redirect_uri: http://localhost:8000/login/oauth2/code/legacy
"""


@pytest.fixture
def config_file(tmp_path: Path, monkeypatch) -> Path:
    monkeypatch.delenv("GATEWAY_MODERATED", raising=False)
    monkeypatch.delenv("APP_ENVIRONMENT", raising=False)
    path = tmp_path / "config.yaml"
    path.write_text(CONFIG_YAML)
    return path


class TestSubstituteEnvVars:
    def test_default_and_set_values(self, monkeypatch):
        monkeypatch.setenv("GATEWAY_HOST", "gw.acme.test")
        monkeypatch.delenv("GATEWAY_PORT", raising=False)

        text = "host: ${GATEWAY_HOST:-localhost} port: ${GATEWAY_PORT:-8000}"
        assert substitute_env_vars(text) == "host: gw.acme.test port: 8000"

    def test_required_variable(self, monkeypatch):
        monkeypatch.delenv("GATEWAY_SECRET", raising=False)

        with pytest.raises(ValueError, match="GATEWAY_SECRET"):
            substitute_env_vars("${GATEWAY_SECRET}")
        with pytest.raises(ValueError, match="set it in .env"):
            substitute_env_vars("${GATEWAY_SECRET:?set it in .env}")


class TestLoadTemplatedYaml:
    def test_loads_claims_mapping(self, config_file):
        config = load_templated_yaml(config_file)

        claims = config.oidc.claims
        assert claims.id.path == ["$.login"]
        assert claims.organization.path == ["$.org", "$.company"]
        assert claims.roles.json_path.path == ["$.groups"]
        assert claims.roles.uppercase is False
        assert claims.roles.normalize is True
        assert config.security.default_organization == "ACME"

    def test_disabled_providers_are_dropped(self, config_file):
        config = load_templated_yaml(config_file)
        assert list(config.oidc.providers) == ["acme"]

    def test_environment_prefixed_overrides(self, config_file, monkeypatch):
        monkeypatch.setenv("APP_ENVIRONMENT", "test")
        monkeypatch.setenv("TEST_GATEWAY_MODERATED", "false")

        config = load_templated_yaml(config_file)
        assert config.security.moderated_signup is False

    def test_moderation_override_per_provider(self, config_file):
        config = load_templated_yaml(config_file)

        assert config.security.moderated_signup is True
        assert config.moderated_signup_for("acme") is False
        assert config.moderated_signup_for("unknown") is True
        assert config.moderated_signup_for(None) is True

    def test_invalid_configuration(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("config:\n  security:\n    moderated_signup: [1, 2]\n")

        with pytest.raises(ValueError, match="Invalid configuration"):
            load_templated_yaml(path)

    def test_missing_default_file(self, tmp_path):
        assert _load_default_config(tmp_path / "absent.yaml") == ConfigData()


class TestClaimsMappingMerge:
    def test_provider_blocks_replace_global_blocks(self):
        global_claims = ClaimsMappingConfig(
            id=ClaimsPathSpec.of("$.login"),
            roles=RolesMappingConfig(json_path=ClaimsPathSpec.of("$.groups")),
        )
        override = ClaimsMappingConfig(roles=RolesMappingConfig(append=False))
        config = make_config(
            claims=global_claims, providers={"acme": make_provider(claims=override)}
        )

        effective = config.oidc.claims_for("acme")

        assert effective.id.path == ["$.login"]
        # the roles block is replaced as a whole
        assert effective.roles.json_path.path == []
        assert effective.roles.append is False
        assert config.oidc.claims_for("other") == global_claims

    def test_path_spec_coercion(self):
        assert ClaimsMappingConfig(id="$.a").id.path == ["$.a"]
        assert ClaimsMappingConfig(id=["$.a", "$.b"]).id.path == ["$.a", "$.b"]
        assert ClaimsMappingConfig(id={"path": "$.a"}).id.path == ["$.a"]
        assert ClaimsMappingConfig(id=None).id.path == []


class TestContextOverrides:
    def test_with_context_merges_partial_override(self):
        with use_config(make_config()):
            override = ConfigData(security=SecurityConfig(moderated_signup=True))
            with with_context(override):
                config = get_config()
                assert config.security.moderated_signup is True
                assert "acme" in config.oidc.providers

            assert get_config().security.moderated_signup is False

    def test_use_config_replaces_everything(self):
        replacement = make_config(providers={})
        with use_config(replacement):
            assert get_config() is replacement
        assert get_config() is not replacement

    def test_with_context_rejects_other_types(self):
        with pytest.raises(ValueError):
            with with_context({"security": {}}):
                pass
