import os

import pytest

from awsshare.config import COMPOSER_KEY, Settings, read_env_file, save_composer, settings_path


class TestSettings:
    """Tests for .env + environment settings."""

    def test_defaults(self, isolated_settings):
        settings = Settings.load()
        assert settings.composer == "gmail"
        assert settings.browser_mode == "chromium"
        assert settings.headless is False
        assert settings.stealth is True
        assert settings.tab_delay is None
        assert settings.page_settle == 2.0

    def test_settings_path_override(self, isolated_settings):
        assert settings_path() == isolated_settings

    def test_env_file_values(self, isolated_settings):
        isolated_settings.write_text(
            "# comment\n"
            "AWSSHARE_COMPOSER=Outlook\n"
            "AWSSHARE_HEADLESS='true'\n"
            "AWSSHARE_TAB_DELAY=0.5\n"
        )
        settings = Settings.load()
        assert settings.composer == "outlook"
        assert settings.headless is True
        assert settings.tab_delay == 0.5

    def test_environment_wins_over_file(self, isolated_settings, monkeypatch):
        isolated_settings.write_text("AWSSHARE_COMPOSER=yahoo\n")
        monkeypatch.setenv("AWSSHARE_COMPOSER", "protonmail")
        assert Settings.load().composer == "protonmail"

    def test_bad_number(self, isolated_settings, monkeypatch):
        monkeypatch.setenv("AWSSHARE_LOGIN_POLL", "soon")
        with pytest.raises(ValueError, match="AWSSHARE_LOGIN_POLL"):
            Settings.load()

    def test_read_env_file_missing(self, tmp_path):
        assert read_env_file(tmp_path / "nope.env") == {}


class TestSaveComposer:

    def test_creates_file(self, isolated_settings):
        path = save_composer(" Yahoo ")
        assert path == isolated_settings
        assert path.read_text() == "AWSSHARE_COMPOSER=yahoo\n"
        assert os.environ[COMPOSER_KEY] == "yahoo"

    def test_replaces_existing_line_only(self, isolated_settings):
        isolated_settings.write_text("AWSSHARE_HEADLESS=true\nAWSSHARE_COMPOSER=gmail\n# AWSSHARE_COMPOSER=old")
        save_composer("outlook")
        assert isolated_settings.read_text() == (
            "AWSSHARE_HEADLESS=true\nAWSSHARE_COMPOSER=outlook\n# AWSSHARE_COMPOSER=old"
        )

    def test_appends_when_absent(self, isolated_settings):
        isolated_settings.write_text("AWSSHARE_HEADLESS=true")
        save_composer("aol")
        assert isolated_settings.read_text() == "AWSSHARE_HEADLESS=true\nAWSSHARE_COMPOSER=aol\n"
