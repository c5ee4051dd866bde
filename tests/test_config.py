"""Tests for environment loading and runtime settings."""

import os

from safeprompt.core.config import (
    DEFAULT_BASE_URL,
    AnalyzerSettings,
    apply_credential_alias,
    load_environment,
)


def test_alias_copied_when_canonical_missing(no_credentials, monkeypatch):
    monkeypatch.setenv('NVIDIA_API', 'nv-key')

    assert apply_credential_alias() is True
    assert os.environ['OPENAI_API_KEY'] == 'nv-key'


def test_alias_does_not_override(no_credentials, monkeypatch):
    monkeypatch.setenv('NVIDIA_API', 'nv-key')
    monkeypatch.setenv('OPENAI_API_KEY', 'openai-key')

    assert apply_credential_alias() is False
    assert os.environ['OPENAI_API_KEY'] == 'openai-key'


def test_load_environment_from_file(no_credentials, tmp_path, monkeypatch):
    env_file = tmp_path / '.env'
    env_file.write_text('NVIDIA_API=from-dotenv\n')

    assert load_environment(str(env_file)) is True
    assert os.environ['OPENAI_API_KEY'] == 'from-dotenv'


def test_load_environment_without_credentials(no_credentials, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    assert load_environment() is False


def test_settings_defaults():
    settings = AnalyzerSettings()
    assert settings.base_url == DEFAULT_BASE_URL
    assert settings.debounce_seconds == 0.8
    assert settings.max_retries == 0
    assert settings.request_timeout is None


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv('SAFEPROMPT_DEBOUNCE_MS', '250')
    monkeypatch.setenv('SAFEPROMPT_MODEL', 'other/model')

    settings = AnalyzerSettings.from_env()

    assert settings.debounce_seconds == 0.25
    assert settings.model == 'other/model'


def test_invalid_debounce_falls_back(monkeypatch):
    monkeypatch.setenv('SAFEPROMPT_DEBOUNCE_MS', 'soon')
    assert AnalyzerSettings.from_env().debounce_seconds == 0.8


def test_api_key_falls_back_to_alias(no_credentials, monkeypatch):
    monkeypatch.setenv('NVIDIA_API', 'nv-key')

    assert AnalyzerSettings().get_api_key() == 'nv-key'
    assert 'OPENAI_API_KEY' not in os.environ


def test_canonical_key_wins_over_alias(no_credentials, monkeypatch):
    monkeypatch.setenv('NVIDIA_API', 'nv-key')
    monkeypatch.setenv('OPENAI_API_KEY', 'openai-key')

    assert AnalyzerSettings().get_api_key() == 'openai-key'
