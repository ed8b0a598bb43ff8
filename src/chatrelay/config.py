from __future__ import annotations

import os
import tomllib
from pathlib import Path

import msgspec

# Environment variable names for secrets
ENV_BOT_TOKEN = "CHATRELAY_BOT_TOKEN"
ENV_LLM_API_KEY = "CHATRELAY_LLM_API_KEY"

LOCAL_CONFIG_NAME = Path(".chatrelay") / "chatrelay.toml"
HOME_CONFIG_PATH = Path.home() / ".chatrelay" / "chatrelay.toml"


class ConfigError(RuntimeError):
    pass


class LLMConfig(msgspec.Struct, forbid_unknown_fields=True):
    provider: str | None = None
    api_key: str | None = None
    model: str | None = None
    base_url: str | None = None
    system_prompt: str | None = None


class RelaySettings(msgspec.Struct, forbid_unknown_fields=False):
    stream_mode: bool = True
    photo_size_offset: int = 1
    telegraph_enable: bool = False
    llm: LLMConfig = msgspec.field(default_factory=LLMConfig)


def _config_candidates() -> list[Path]:
    candidates = [Path.cwd() / LOCAL_CONFIG_NAME, HOME_CONFIG_PATH]
    if candidates[0] == candidates[1]:
        return [candidates[0]]
    return candidates


def _read_config(cfg_path: Path) -> dict:
    try:
        raw = cfg_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise ConfigError(f"Missing config file {cfg_path}.") from None
    except OSError as e:
        raise ConfigError(f"Failed to read config file {cfg_path}: {e}") from e
    try:
        return tomllib.loads(raw)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Malformed TOML in {cfg_path}: {e}") from None


def load_config(path: str | Path | None = None) -> tuple[dict, Path]:
    if path:
        cfg_path = Path(path).expanduser()
        return _read_config(cfg_path), cfg_path

    for candidate in _config_candidates():
        if candidate.is_file():
            return _read_config(candidate), candidate

    raise ConfigError("Missing chatrelay config.")


def get_bot_token(config: dict, config_path: Path) -> str:
    """Get bot token from environment variable or config file.

    Environment variable CHATRELAY_BOT_TOKEN takes precedence over config file.
    """
    env_token = os.environ.get(ENV_BOT_TOKEN)
    if env_token and env_token.strip():
        return env_token.strip()

    try:
        token = config["bot_token"]
    except KeyError:
        raise ConfigError(
            f"Missing bot token. Set {ENV_BOT_TOKEN} environment variable "
            f"or add `bot_token` to {config_path}."
        ) from None

    if not isinstance(token, str) or not token.strip():
        raise ConfigError(
            f"Invalid `bot_token` in {config_path}; expected a non-empty string."
        )
    return token.strip()


def parse_settings(config: dict, config_path: Path) -> RelaySettings:
    """Validate the relay settings portion of a loaded config.

    CHATRELAY_LLM_API_KEY, when set, replaces `llm.api_key`.
    """
    try:
        settings = msgspec.convert(config, RelaySettings)
    except msgspec.ValidationError as e:
        raise ConfigError(f"Invalid config in {config_path}: {e}") from None

    env_key = os.environ.get(ENV_LLM_API_KEY)
    if env_key and env_key.strip():
        settings.llm.api_key = env_key.strip()
    return settings
