"""Tests for configuration loading and validation."""

import pytest
import yaml

from agentchat.cli.config import (
    DEFAULT_BACKSTORY,
    AgentChatConfig,
    ChatBotKitConfig,
    ServerConfig,
    get_config,
    load_config,
    parse_bot_ids,
    resolve_env_vars,
)


class TestDefaults:
    """Tests for section defaults."""

    def test_server_defaults(self):
        cfg = ServerConfig()
        assert cfg.host == "127.0.0.1"
        assert cfg.port == 8000
        assert cfg.log_level == "info"

    def test_chatbotkit_defaults(self):
        """No secret and no allow-list by default."""
        cfg = ChatBotKitConfig()
        assert cfg.api_secret == ""
        assert cfg.base_url == "https://api.chatbotkit.com/v1"
        assert cfg.bot_ids is None
        assert cfg.conversation_page_size == 50

    def test_persona_backstory_names_user(self):
        assert "{user_name}" in DEFAULT_BACKSTORY
        assert AgentChatConfig().persona.backstory == DEFAULT_BACKSTORY

    def test_identity_headers(self):
        cfg = AgentChatConfig()
        assert cfg.auth.email_header == "X-Forwarded-Email"
        assert cfg.auth.name_header == "X-Forwarded-User"


class TestParseBotIds:
    """Tests for the comma-separated bot allow-list."""

    def test_comma_separated(self):
        assert parse_bot_ids("id1, id2 ,id3") == ["id1", "id2", "id3"]

    def test_skips_blank_entries(self):
        assert parse_bot_ids("id1,,  ,id2") == ["id1", "id2"]

    @pytest.mark.parametrize("raw", [None, "", " , "])
    def test_empty_means_all_bots(self, raw):
        assert parse_bot_ids(raw) is None

    def test_list_input(self):
        assert parse_bot_ids(["a", " b "]) == ["a", "b"]

    def test_validator_applies_to_model(self):
        assert ChatBotKitConfig(bot_ids="x,y").bot_ids == ["x", "y"]


class TestResolveEnvVars:
    """Tests for ${VAR} resolution in config values."""

    def test_resolves_env_var(self, monkeypatch):
        monkeypatch.setenv("TEST_SECRET", "my-secret-key")
        assert resolve_env_vars("${TEST_SECRET}") == "my-secret-key"

    def test_passthrough_no_vars(self):
        assert resolve_env_vars("plain-value") == "plain-value"

    def test_missing_env_var_returns_empty(self):
        assert resolve_env_vars("${DEFINITELY_NOT_SET_XYZ}") == ""

    def test_mixed_content(self, monkeypatch):
        monkeypatch.setenv("MY_HOST", "localhost")
        assert resolve_env_vars("http://${MY_HOST}:8000") == "http://localhost:8000"


class TestLoadConfig:
    """Tests for YAML config file loading."""

    def test_defaults_without_file(self):
        """No config file anywhere yields the defaults."""
        cfg = load_config()
        assert cfg == AgentChatConfig()

    def test_explicit_path_missing(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(config_path=str(tmp_path / "missing.yaml"))

    def test_load_from_explicit_path(self, tmp_path):
        config_file = tmp_path / "custom.yaml"
        config_file.write_text(yaml.dump({"server": {"port": 9000}, "client": {"email": "a@example.com"}}))

        cfg = load_config(config_path=str(config_file))
        assert cfg.server.port == 9000
        assert cfg.client.email == "a@example.com"

    def test_discovers_file_in_cwd(self, tmp_path):
        (tmp_path / "agentchat.yaml").write_text(yaml.dump({"persona": {"model": "m-1"}}))
        assert load_config().persona.model == "m-1"

    def test_env_var_override(self, tmp_path, monkeypatch):
        """AGENTCHAT_ env vars override YAML values."""
        config_file = tmp_path / "agentchat.yaml"
        config_file.write_text(yaml.dump({"server": {"port": 8000}}))
        monkeypatch.setenv("AGENTCHAT_SERVER_PORT", "9999")

        assert load_config(config_path=str(config_file)).server.port == 9999

    def test_dollar_var_resolution(self, tmp_path, monkeypatch):
        monkeypatch.setenv("MY_CBK_SECRET", "secret-123")
        config_file = tmp_path / "agentchat.yaml"
        config_file.write_text(yaml.dump({"chatbotkit": {"api_secret": "${MY_CBK_SECRET}"}}))

        assert load_config(config_path=str(config_file)).chatbotkit.api_secret == "secret-123"

    def test_platform_env_vars(self, monkeypatch):
        monkeypatch.setenv("CHATBOTKIT_API_SECRET", "sk-env")
        monkeypatch.setenv("CHATBOTKIT_BOT_IDS", "id1,id2")
        cfg = load_config()
        assert cfg.chatbotkit.api_secret == "sk-env"
        assert cfg.chatbotkit.bot_ids == ["id1", "id2"]

    def test_empty_yaml_file(self, tmp_path):
        config_file = tmp_path / "agentchat.yaml"
        config_file.write_text("")
        assert load_config(config_path=str(config_file)) == AgentChatConfig()


class TestGetConfig:

    def test_cached(self):
        assert get_config() is get_config()

    def test_honours_config_path_env(self, tmp_path, monkeypatch):
        config_file = tmp_path / "elsewhere.yaml"
        config_file.write_text(yaml.dump({"auth": {"api_key": "k" * 40}}))
        monkeypatch.setenv("AGENTCHAT_CONFIG_PATH", str(config_file))
        get_config.cache_clear()

        assert get_config().auth.api_key == "k" * 40
