"""YAML configuration loader with env var resolution and Pydantic validation.

Loads config from (priority order):
1. --config <path> CLI flag / AGENTCHAT_CONFIG_PATH
2. ./agentchat.yaml (working directory)
3. ~/.agentchat/config.yaml (user home)

Environment variables override YAML: AGENTCHAT_<SECTION>_<KEY>.
${VAR} references in YAML values resolve from environment at load time.
CHATBOTKIT_API_SECRET and CHATBOTKIT_BOT_IDS are honoured as-is.
"""

import logging
import os
import re
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, field_validator

logger = logging.getLogger(__name__)

_ENV_VAR_PATTERN = re.compile(r"\$\{([^}]+)\}")

DEFAULT_BACKSTORY = (
    "You are a helpful AI assistant. You are friendly, concise, and "
    "knowledgeable. You help users with their questions and tasks. "
    "The current user is {user_name}."
)


def resolve_env_vars(value: str) -> str:
    """Resolve ${VAR} references in a string from environment variables.

    Args:
        value: String potentially containing ${VAR} references.

    Returns:
        String with all ${VAR} references replaced by their env values.
        Missing env vars resolve to empty string.
    """
    def _replace(match: re.Match) -> str:
        return os.environ.get(match.group(1), "")

    return _ENV_VAR_PATTERN.sub(_replace, value)


def _resolve_env_vars_recursive(data: Any) -> Any:
    """Recursively resolve ${VAR} references in a nested data structure.

    Args:
        data: Dict, list, or scalar value to process.

    Returns:
        Same structure with all string values resolved.
    """
    if isinstance(data, str):
        return resolve_env_vars(data)
    elif isinstance(data, dict):
        return {k: _resolve_env_vars_recursive(v) for k, v in data.items()}
    elif isinstance(data, list):
        return [_resolve_env_vars_recursive(item) for item in data]
    return data


def parse_bot_ids(raw: str | list[str] | None) -> list[str] | None:
    """Parse a comma-separated bot allow-list.

    Args:
        raw: Comma-separated string, list of ids, or None.

    Returns:
        List of trimmed, non-empty ids, or None when no allow-list is set
        (meaning every bot is visible).
    """
    if raw is None:
        return None
    items = raw.split(",") if isinstance(raw, str) else raw
    ids = [str(item).strip() for item in items if str(item).strip()]
    return ids or None


class ServerConfig(BaseModel):
    """Configuration for the API server process."""

    host: str = "127.0.0.1"
    port: int = 8000
    log_level: str = "info"


class ChatBotKitConfig(BaseModel):
    """Remote conversation store (ChatBotKit platform) settings."""

    api_secret: str = ""
    base_url: str = "https://api.chatbotkit.com/v1"
    bot_ids: list[str] | None = None
    timeout_seconds: float = 30.0
    conversation_page_size: int = 50

    @field_validator("bot_ids", mode="before")
    @classmethod
    def _split_bot_ids(cls, value: Any) -> list[str] | None:
        return parse_bot_ids(value)


class PersonaConfig(BaseModel):
    """Inline fallback persona used when no bot id is selected."""

    model: str = "gpt-4o"
    backstory: str = DEFAULT_BACKSTORY


class AuthConfig(BaseModel):
    """Identity forwarding and shared-secret settings.

    The identity provider (an auth proxy in front of the API) forwards the
    signed-in user in the configured headers.
    """

    api_key: str = ""
    email_header: str = "X-Forwarded-Email"
    name_header: str = "X-Forwarded-User"


class ClientConfig(BaseModel):
    """Settings used by the terminal chat client."""

    api_url: str = "http://127.0.0.1:8000"
    email: str = ""
    name: str = ""


class AgentChatConfig(BaseModel):
    """Top-level configuration for agentchat."""

    server: ServerConfig = ServerConfig()
    chatbotkit: ChatBotKitConfig = ChatBotKitConfig()
    persona: PersonaConfig = PersonaConfig()
    auth: AuthConfig = AuthConfig()
    client: ClientConfig = ClientConfig()


def _find_config_file() -> Path | None:
    """Search for config file in standard locations.

    Returns:
        Path to config file if found, None otherwise.
    """
    candidates = [
        Path.cwd() / "agentchat.yaml",
        Path.cwd() / "agentchat.yml",
        Path.home() / ".agentchat" / "config.yaml",
        Path.home() / ".agentchat" / "config.yml",
    ]
    for candidate in candidates:
        if candidate.exists():
            return candidate
    return None


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Apply AGENTCHAT_<SECTION>_<KEY> env var overrides to config data.

    Also maps the platform variables CHATBOTKIT_API_SECRET and
    CHATBOTKIT_BOT_IDS onto the chatbotkit section.

    Args:
        data: Parsed YAML config dict.

    Returns:
        Config dict with env var overrides applied.
    """
    prefix = "AGENTCHAT_"
    known_sections = sorted(
        AgentChatConfig.model_fields.keys(), key=len, reverse=True
    )
    for key, value in os.environ.items():
        if not key.startswith(prefix):
            continue
        suffix = key[len(prefix):].lower()  # e.g. "server_port"
        matched_section = None
        matched_field = None
        for section in known_sections:
            section_prefix = section + "_"
            if suffix.startswith(section_prefix):
                matched_section = section
                matched_field = suffix[len(section_prefix):]
                break
        if matched_section is None or not matched_field:
            continue
        section_data = data.setdefault(matched_section, {})
        if isinstance(section_data, dict):
            section_data[matched_field] = value

    cbk = data.setdefault("chatbotkit", {})
    if isinstance(cbk, dict):
        if os.environ.get("CHATBOTKIT_API_SECRET"):
            cbk["api_secret"] = os.environ["CHATBOTKIT_API_SECRET"]
        if "CHATBOTKIT_BOT_IDS" in os.environ:
            cbk["bot_ids"] = os.environ["CHATBOTKIT_BOT_IDS"]
    return data


def load_config(config_path: str | None = None) -> AgentChatConfig:
    """Load agentchat configuration from YAML file with env var resolution.

    Args:
        config_path: Explicit path to config file. If None, searches
            standard locations (cwd, then ~/.agentchat/). Missing files
            in the standard locations fall back to defaults.

    Returns:
        Parsed and validated AgentChatConfig.

    Raises:
        FileNotFoundError: If an explicit config_path does not exist.
    """
    raw_data: dict[str, Any] = {}
    if config_path:
        path: Path | None = Path(config_path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
    else:
        path = _find_config_file()

    if path is not None:
        logger.info("Loading config from %s", path)
        with open(path) as f:
            raw_data = yaml.safe_load(f) or {}

    data = _resolve_env_vars_recursive(raw_data)
    data = _apply_env_overrides(data)
    return AgentChatConfig(**data)


@lru_cache(maxsize=1)
def get_config() -> AgentChatConfig:
    """Return the process-wide configuration, loaded once."""
    return load_config(config_path=os.environ.get("AGENTCHAT_CONFIG_PATH"))
