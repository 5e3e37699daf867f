"""Tests for settings loading."""

from __future__ import annotations

from pathlib import Path

import pytest

from vaultcheck.config import ConfigurationError, Settings


class TestRead:
    def test_returns_value(self) -> None:
        s = Settings(_env_file=None, full_base_url="https://vault.example.test")
        assert s.read("full_base_url") == "https://vault.example.test"

    def test_falsy_values_are_present(self) -> None:
        s = Settings(_env_file=None, ssl_force=False)
        assert s.read("ssl_force") is False

    def test_null_value(self) -> None:
        s = Settings(_env_file=None, full_base_url=None)
        with pytest.raises(ConfigurationError, match="full_base_url"):
            s.read("full_base_url")

    def test_unknown_key(self) -> None:
        with pytest.raises(ConfigurationError, match="Unknown"):
            Settings(_env_file=None).read("no_such_key")


class TestFromConfigDir:
    def test_sections_are_flattened(self, tmp_path: Path) -> None:
        (tmp_path / "app.yaml").write_text(
            "debug: true\nsecurity:\n  salt: s3cr3t\n", encoding="utf-8"
        )
        (tmp_path / "passbolt.yaml").write_text(
            "full_base_url: https://vault.example.test\n"
            "ssl_force: true\n"
            "gpg:\n"
            "  server_key_fingerprint: ABCD\n"
            "email_send:\n"
            "  comment:\n"
            "    add: false\n",
            encoding="utf-8",
        )
        s = Settings.from_config_dir(tmp_path, _env_file=None)
        assert s.debug is True
        assert s.security_salt == "s3cr3t"
        assert s.full_base_url == "https://vault.example.test"
        assert s.ssl_force is True
        assert s.gpg_server_key_fingerprint == "ABCD"
        assert s.email_send == {"comment": {"add": False}}
        assert s.config_dir == tmp_path

    def test_overrides_win(self, tmp_path: Path) -> None:
        (tmp_path / "app.yaml").write_text("debug: true\n", encoding="utf-8")
        s = Settings.from_config_dir(tmp_path, _env_file=None, debug=False)
        assert s.debug is False

    def test_missing_files_use_defaults(self, tmp_path: Path) -> None:
        s = Settings.from_config_dir(tmp_path, _env_file=None)
        assert s.app_version == Settings(_env_file=None).app_version
        assert s.config_dir == tmp_path

    def test_empty_file(self, tmp_path: Path) -> None:
        (tmp_path / "app.yaml").write_text("", encoding="utf-8")
        assert Settings.from_config_dir(tmp_path, _env_file=None).debug is False

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        (tmp_path / "passbolt.yaml").write_text("full_base_url: [unclosed\n", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="passbolt.yaml"):
            Settings.from_config_dir(tmp_path, _env_file=None)
