from pathlib import Path

import pytest

from chatrelay.config import (
    ENV_BOT_TOKEN,
    ENV_LLM_API_KEY,
    ConfigError,
    RelaySettings,
    get_bot_token,
    load_config,
    parse_settings,
)


class TestLoadConfig:
    def test_load_from_explicit_path(self, tmp_path: Path) -> None:
        config_file = tmp_path / "config.toml"
        config_file.write_text('bot_token = "test123"')

        config, path = load_config(config_file)

        assert config["bot_token"] == "test123"
        assert path == config_file

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="Missing config file"):
            load_config(tmp_path / "nonexistent.toml")

    def test_malformed_toml_raises(self, tmp_path: Path) -> None:
        bad_file = tmp_path / "bad.toml"
        bad_file.write_text("invalid = [unclosed")

        with pytest.raises(ConfigError, match="Malformed TOML"):
            load_config(bad_file)

    def test_path_exists_but_is_directory(self, tmp_path: Path) -> None:
        dir_path = tmp_path / "config_dir"
        dir_path.mkdir()

        with pytest.raises(ConfigError, match="Failed to read config file"):
            load_config(dir_path)

    def test_discovers_local_config(self, tmp_path: Path, monkeypatch) -> None:
        local = tmp_path / ".chatrelay" / "chatrelay.toml"
        local.parent.mkdir()
        local.write_text("stream_mode = false")
        monkeypatch.chdir(tmp_path)

        config, path = load_config()

        assert config == {"stream_mode": False}
        assert path == local


class TestGetBotToken:
    def test_env_overrides_config(self, monkeypatch) -> None:
        monkeypatch.setenv(ENV_BOT_TOKEN, " env-token ")
        assert get_bot_token({"bot_token": "file"}, Path("c.toml")) == "env-token"

    def test_from_config(self, monkeypatch) -> None:
        monkeypatch.delenv(ENV_BOT_TOKEN, raising=False)
        assert get_bot_token({"bot_token": " abc "}, Path("c.toml")) == "abc"

    def test_missing(self, monkeypatch) -> None:
        monkeypatch.delenv(ENV_BOT_TOKEN, raising=False)
        with pytest.raises(ConfigError, match="Missing bot token"):
            get_bot_token({}, Path("c.toml"))

    def test_blank(self, monkeypatch) -> None:
        monkeypatch.delenv(ENV_BOT_TOKEN, raising=False)
        with pytest.raises(ConfigError, match="bot_token"):
            get_bot_token({"bot_token": "   "}, Path("c.toml"))


class TestParseSettings:
    def test_defaults(self, monkeypatch) -> None:
        monkeypatch.delenv(ENV_LLM_API_KEY, raising=False)
        settings = parse_settings({"bot_token": "x"}, Path("c.toml"))

        assert settings == RelaySettings()
        assert settings.stream_mode is True
        assert settings.photo_size_offset == 1
        assert settings.telegraph_enable is False
        assert settings.llm.provider is None

    def test_full_config(self, monkeypatch) -> None:
        monkeypatch.delenv(ENV_LLM_API_KEY, raising=False)
        settings = parse_settings(
            {
                "stream_mode": False,
                "photo_size_offset": -1,
                "telegraph_enable": True,
                "llm": {"provider": "openai", "api_key": "sk", "model": "gpt"},
            },
            Path("c.toml"),
        )

        assert settings.stream_mode is False
        assert settings.photo_size_offset == -1
        assert settings.telegraph_enable is True
        assert settings.llm.model == "gpt"

    def test_env_api_key(self, monkeypatch) -> None:
        monkeypatch.setenv(ENV_LLM_API_KEY, "sk-env")
        settings = parse_settings({"llm": {"provider": "openai"}}, Path("c.toml"))
        assert settings.llm.api_key == "sk-env"

    def test_wrong_type_raises(self) -> None:
        with pytest.raises(ConfigError, match="c.toml"):
            parse_settings({"photo_size_offset": "big"}, Path("c.toml"))

    def test_unknown_llm_key_raises(self) -> None:
        with pytest.raises(ConfigError, match="Invalid config"):
            parse_settings({"llm": {"api_kye": "typo"}}, Path("c.toml"))
