"""
Unit tests for provider configuration models and YAML loading.
"""
import pytest
from pydantic import ValidationError as PydanticValidationError

from provider_gateway.core.config import (
    AuthScheme,
    DEFAULT_OPENROUTER_URL,
    GatewayConfig,
    ProviderConfig,
    ProviderKind,
    default_config,
    load_config,
    parse_config,
)


class TestProviderConfig:
    """Test ProviderConfig model."""

    def test_create_config(self):
        """Test creating a provider config with defaults."""
        config = ProviderConfig(name="qwen-local", kind=ProviderKind.LOCAL)
        assert config.priority == 0
        assert config.enabled is True
        assert config.models == []
        assert config.auth.scheme == AuthScheme.NONE
        assert config.timeout_ms is None

    def test_accepts_camel_case_keys(self):
        """Keys produced by external config tooling are accepted."""
        config = ProviderConfig.model_validate({
            "name": "openrouter",
            "type": "remote",
            "priority": 2,
            "auth": {"type": "api_key", "apiKey": "sk-or-test", "baseUrl": "https://openrouter.ai"},
            "timeout": 30000,
            "retries": 3,
        })
        assert config.kind == ProviderKind.REMOTE
        assert config.auth.scheme == AuthScheme.API_KEY
        assert config.auth.api_key == "sk-or-test"
        assert config.auth.base_url == "https://openrouter.ai"
        assert config.timeout_ms == 30000
        assert config.max_retries == 3

    def test_is_immutable(self):
        """Configs cannot be mutated once built."""
        config = ProviderConfig(name="qwen-local", kind=ProviderKind.LOCAL)
        with pytest.raises(PydanticValidationError):
            config.priority = 5

    @pytest.mark.parametrize("data", [
        {"name": "", "kind": "local"},
        {"name": "x", "kind": "cloud"},
        {"name": "x", "kind": "local", "priority": -1},
        {"name": "x", "kind": "local", "timeout_ms": 0},
    ])
    def test_rejects_invalid(self, data):
        """Test invalid configurations fail validation."""
        with pytest.raises(PydanticValidationError):
            ProviderConfig.model_validate(data)


class TestGatewayConfig:
    """Test gateway configuration loading."""

    def test_parse_config_from_dict(self):
        """Test parsing config from a dictionary."""
        config = parse_config({
            "default_strategy": "cheapest",
            "providers": [
                {"name": "qwen-local", "kind": "local", "auth": {"base_url": "http://gpu-box:8000"}},
                {"name": "openrouter", "kind": "remote", "priority": 2},
            ],
        })
        assert isinstance(config, GatewayConfig)
        assert config.default_strategy == "cheapest"
        assert [p.name for p in config.providers] == ["qwen-local", "openrouter"]
        assert config.providers[0].auth.base_url == "http://gpu-box:8000"

    def test_auth_values_expand_environment(self, monkeypatch):
        """${VAR} auth values are read from the environment."""
        monkeypatch.setenv("TEST_OPENROUTER_KEY", "sk-or-from-env")
        config = parse_config({
            "providers": [{
                "name": "openrouter",
                "kind": "remote",
                "auth": {
                    "scheme": "api_key",
                    "api_key": "${TEST_OPENROUTER_KEY}",
                    "headers": {"X-Title": "${TEST_OPENROUTER_KEY}"},
                },
            }],
        })
        auth = config.providers[0].auth
        assert auth.api_key == "sk-or-from-env"
        assert auth.headers["X-Title"] == "sk-or-from-env"

    def test_load_config_from_file(self, tmp_path):
        """Test loading a YAML file."""
        path = tmp_path / "gateway.yaml"
        path.write_text(
            "default_strategy: fastest\n"
            "providers:\n"
            "  - name: qwen-local\n"
            "    kind: local\n"
            "    priority: 1\n"
            "    auth:\n"
            "      base_url: http://localhost:8000\n"
        )
        config = load_config(str(path))
        assert config.default_strategy == "fastest"
        assert len(config.providers) == 1
        assert config.providers[0].priority == 1

    def test_missing_file_falls_back_to_defaults(self, tmp_path):
        """A missing file yields the default configuration."""
        config = load_config(str(tmp_path / "absent.yaml"))
        assert [p.name for p in config.providers] == ["qwen-local", "openrouter"]

    def test_invalid_file_falls_back_to_defaults(self, tmp_path):
        """A file that fails validation yields the default configuration."""
        path = tmp_path / "gateway.yaml"
        path.write_text("providers:\n  - name: broken\n    kind: nowhere\n")
        config = load_config(str(path))
        assert [p.name for p in config.providers] == ["qwen-local", "openrouter"]

    def test_default_config(self, monkeypatch):
        """Defaults prefer the local provider and read env overrides."""
        monkeypatch.setenv("LOCAL_LLM_URL", "http://gpu-box:9000")
        monkeypatch.setenv("OPENROUTER_API_KEY", "sk-or-env")
        local, remote = default_config().providers

        assert local.kind == ProviderKind.LOCAL
        assert local.priority < remote.priority
        assert local.auth.base_url == "http://gpu-box:9000"
        assert local.endpoint == "http://gpu-box:9000/v1"
        assert remote.auth.api_key == "sk-or-env"
        assert remote.auth.base_url == DEFAULT_OPENROUTER_URL


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
