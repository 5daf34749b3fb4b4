"""Tests for YAML config loading and environment overrides."""

import os

import pytest

from shopchat.config import ShopChatConfig, load_config, resolve_env_vars


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """Isolate from the test-session env and any config in the working directory."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))
    for name in ("DATABASE_URL", "ANTHROPIC_API_KEY", "ANTHROPIC_MODEL", "SHOPCHAT_CONFIG_PATH"):
        monkeypatch.delenv(name, raising=False)
    for name in list(os.environ):
        if name.startswith("SHOPCHAT_"):
            monkeypatch.delenv(name, raising=False)
    return tmp_path


class TestResolveEnvVars:

    def test_replaces_references(self, monkeypatch):
        monkeypatch.setenv("SHOP_TOKEN", "abc")
        assert resolve_env_vars("token=${SHOP_TOKEN}") == "token=abc"

    def test_missing_is_empty(self, monkeypatch):
        monkeypatch.delenv("NOPE_NOT_SET", raising=False)
        assert resolve_env_vars("${NOPE_NOT_SET}") == ""


class TestLoadConfig:

    def test_defaults_without_file(self, clean_env):
        config = load_config()

        assert config == ShopChatConfig()
        assert config.llm.model == "claude-haiku-4-5-20251001"
        assert config.llm.temperature == 0.7
        assert config.llm.max_tokens == 300
        assert config.chat.history_limit == 10
        assert config.chat.serialize_sessions is False
        assert config.catalog.default_platform == "woo"
        assert config.app.is_production is False

    def test_loads_yaml_file(self, clean_env):
        path = clean_env / "custom.yaml"
        path.write_text(
            "app:\n"
            "  environment: production\n"
            "  allowed_origins: [https://shop.example.com]\n"
            "chat:\n"
            "  history_limit: 6\n"
        )

        config = load_config(str(path))

        assert config.app.is_production is True
        assert config.app.allowed_origins == ["https://shop.example.com"]
        assert config.chat.history_limit == 6

    def test_discovers_working_directory_file(self, clean_env):
        (clean_env / "shopchat.yaml").write_text("llm:\n  max_tokens: 512\n")

        assert load_config().llm.max_tokens == 512

    def test_resolves_env_references(self, clean_env, monkeypatch):
        monkeypatch.setenv("MY_ANTHROPIC_KEY", "sk-ant-test")
        path = clean_env / "c.yaml"
        path.write_text("llm:\n  api_key: ${MY_ANTHROPIC_KEY}\n")

        assert load_config(str(path)).llm.api_key == "sk-ant-test"

    def test_prefixed_env_overrides_yaml(self, clean_env, monkeypatch):
        path = clean_env / "c.yaml"
        path.write_text("rate_limit:\n  chat_max_requests: 5\n")
        monkeypatch.setenv("SHOPCHAT_RATE_LIMIT_CHAT_MAX_REQUESTS", "50")
        monkeypatch.setenv("SHOPCHAT_CHAT_SERIALIZE_SESSIONS", "true")
        monkeypatch.setenv("SHOPCHAT_APP_ALLOWED_ORIGINS", "https://a.example, https://b.example")

        config = load_config(str(path))

        assert config.rate_limit.chat_max_requests == 50
        assert config.chat.serialize_sessions is True
        assert config.app.allowed_origins == ["https://a.example", "https://b.example"]

    def test_well_known_env(self, clean_env, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "sqlite:///./other.db")
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant-env")
        monkeypatch.setenv("ANTHROPIC_MODEL", "claude-sonnet-4-5")

        config = load_config()

        assert config.database.url == "sqlite:///./other.db"
        assert config.llm.api_key == "sk-ant-env"
        assert config.llm.model == "claude-sonnet-4-5"

    def test_config_path_env(self, clean_env, monkeypatch):
        path = clean_env / "elsewhere.yaml"
        path.write_text("catalog:\n  timeout_seconds: 3\n")
        monkeypatch.setenv("SHOPCHAT_CONFIG_PATH", str(path))

        assert load_config().catalog.timeout_seconds == 3

    def test_missing_explicit_path_raises(self, clean_env):
        with pytest.raises(FileNotFoundError):
            load_config(str(clean_env / "absent.yaml"))
