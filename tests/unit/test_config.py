"""Unit tests for Speak2MeConfig."""

import os
import pytest
from pathlib import Path

from speak2me.config import DEFAULTS, Speak2MeConfig


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "speak2me.yaml"
    path.write_text(
        "recognition:\n"
        "  language: de-AT\n"
        "google_cloud:\n"
        "  credentials_path: creds/service.json\n"
        "assessment:\n"
        "  target_level: b1\n"
        "  api_key_env: SPEAK2ME_TEST_KEY\n",
        encoding="utf-8",
    )
    return path


@pytest.mark.unit
class TestSpeak2MeConfig:
    """Test cases for YAML configuration loading."""

    def test_defaults_without_file(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)

        config = Speak2MeConfig()

        assert config.config_file is None
        assert config.get('recognition.language') == "de-DE"
        assert config.get('recognition.restart_delay_seconds') == 0.1
        assert config.get('recognition.retry_backoff_seconds') == 0.5
        assert config.get_google_credentials_path() is None

    def test_defaults_are_not_shared(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)

        Speak2MeConfig().set('recognition.language', 'en-US')

        assert DEFAULTS['recognition']['language'] == "de-DE"

    def test_default_file_in_working_directory(self, config_file, monkeypatch):
        monkeypatch.chdir(config_file.parent)

        config = Speak2MeConfig()

        assert config.get('recognition.language') == "de-AT"

    def test_explicit_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            Speak2MeConfig(str(tmp_path / "missing.yaml"))

    def test_values_merge_with_defaults(self, config_file):
        config = Speak2MeConfig(str(config_file))

        assert config.get('recognition.language') == "de-AT"
        assert config.get('recognition.restart_delay_seconds') == 0.1
        assert config.get('audio.sample_rate') == 16000

    def test_relative_paths_resolved_against_config_dir(self, config_file):
        config = Speak2MeConfig(str(config_file))

        expected = config_file.parent / "creds" / "service.json"
        assert Path(config.get('google_cloud.credentials_path')) == expected
        assert Path(config.get('logging.file_path')) == config_file.parent / "logs" / "speak2me.log"
        assert os.path.isabs(config.get_google_credentials_path())

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("recognition: [unclosed\n", encoding="utf-8")

        with pytest.raises(ValueError):
            Speak2MeConfig(str(path))

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")

        with pytest.raises(ValueError):
            Speak2MeConfig(str(path))

    def test_non_mapping_file(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")

        with pytest.raises(ValueError):
            Speak2MeConfig(str(path))

    def test_get_missing_key_returns_default(self, config_file):
        config = Speak2MeConfig(str(config_file))

        assert config.get('recognition.unknown') is None
        assert config.get('nope.nested.key', 42) == 42

    def test_set_creates_nested_keys(self, config_file):
        config = Speak2MeConfig(str(config_file))

        config.set('ui.theme.color', 'blue')

        assert config.get('ui.theme.color') == 'blue'

    def test_assessment_api_key_from_environment(self, config_file, monkeypatch):
        monkeypatch.setenv("SPEAK2ME_TEST_KEY", "sk-test")

        config = Speak2MeConfig(str(config_file))

        assert config.get_assessment_api_key() == "sk-test"

    def test_assessment_api_key_missing(self, config_file, monkeypatch):
        monkeypatch.delenv("SPEAK2ME_TEST_KEY", raising=False)

        assert Speak2MeConfig(str(config_file)).get_assessment_api_key() is None
