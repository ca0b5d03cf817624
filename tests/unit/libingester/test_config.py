"""Tests for libingester.config module."""

import pytest

from libingester.config import (
    HatchConfig,
    get_config,
    load_config,
    load_config_file,
    parse_config,
    reset_config,
    set_config,
)


class TestLoadConfig:
    def test_default_config(self, monkeypatch) -> None:
        monkeypatch.delenv("CONFIG_ENV", raising=False)
        config = load_config()
        assert config.name == "libingester"
        assert config.language == "en"
        assert config.archive is True
        assert config.failure_threshold == 0.9
        assert config.storage.backend == "local"

    def test_named_config(self) -> None:
        config = load_config("s3")
        assert config.storage.backend == "s3"
        assert config.storage.bucket == "libingester-hatches"
        assert config.archive is False

    def test_config_env_selects_file(self, monkeypatch) -> None:
        monkeypatch.setenv("CONFIG_ENV", "s3")
        assert load_config().storage.backend == "s3"

    def test_unknown_config_raises(self) -> None:
        with pytest.raises(FileNotFoundError):
            load_config("does-not-exist")


class TestLoadConfigFile:
    def test_explicit_file(self, tmp_path) -> None:
        path = tmp_path / "site.yaml"
        path.write_text("name: my-site\npath: out/hatch\nstorage:\n  local_path: /data\n")

        config = load_config_file(path)

        assert config.name == "my-site"
        assert config.path == "out/hatch"
        assert config.storage.local_path == "/data"
        assert config.storage.prefix == "hatches"

    def test_missing_file_raises(self, tmp_path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config_file(tmp_path / "missing.yaml")


class TestParseConfig:
    def test_empty_dict_gives_defaults(self) -> None:
        assert parse_config({}) == HatchConfig()

    def test_threshold_out_of_range(self) -> None:
        with pytest.raises(ValueError):
            parse_config({"failure_threshold": 1.5})


class TestConfigSingleton:
    def test_set_and_reset(self, monkeypatch) -> None:
        monkeypatch.delenv("CONFIG_ENV", raising=False)
        custom = HatchConfig(name="custom")
        set_config(custom)
        try:
            assert get_config() is custom
        finally:
            reset_config()
        assert get_config().name == "libingester"
        reset_config()
