"""
Tests for config loading and ${ENV_VAR} resolution.
"""

import pytest

from omaa import config as cfg_mod


@pytest.fixture
def fresh_config():
    orig = cfg_mod._config
    cfg_mod._config = None
    yield
    cfg_mod._config = orig


def test_env_vars_resolved(tmp_path, monkeypatch, fresh_config):
    path = tmp_path / "config.yaml"
    path.write_text(
        "providers:\n"
        "  openai:\n"
        "    api_key: ${OMAA_TEST_OPENAI_KEY}\n"
        "    model: gpt-4o\n"
        "chat:\n"
        "  max_history_messages: 20\n"
    )
    monkeypatch.setenv("OMAA_TEST_OPENAI_KEY", "sk-from-env")

    cfg = cfg_mod.load_config(path)
    assert cfg["providers"]["openai"]["api_key"] == "sk-from-env"
    assert cfg["chat"]["max_history_messages"] == 20
    assert cfg_mod.get_config() is cfg


def test_unset_env_var_is_empty(tmp_path, monkeypatch, fresh_config):
    path = tmp_path / "config.yaml"
    path.write_text("stripe:\n  secret_key: ${OMAA_TEST_UNSET_VAR}\n")
    monkeypatch.delenv("OMAA_TEST_UNSET_VAR", raising=False)
    assert cfg_mod.load_config(path)["stripe"]["secret_key"] == ""


def test_config_path_from_env(tmp_path, monkeypatch, fresh_config):
    path = tmp_path / "alt.yaml"
    path.write_text("access:\n  policy: local\n")
    monkeypatch.setenv("OMAA_CONFIG", str(path))
    assert cfg_mod.get_config()["access"]["policy"] == "local"


def test_missing_config(tmp_path, fresh_config):
    with pytest.raises(FileNotFoundError):
        cfg_mod.load_config(tmp_path / "nope.yaml")


def test_shipped_config_loads(fresh_config, monkeypatch):
    monkeypatch.delenv("OMAA_CONFIG", raising=False)
    cfg = cfg_mod.load_config()
    assert cfg["access"]["policy"] == "remote"
    assert set(cfg["providers"]) == {"openai", "anthropic", "deepseek"}


def test_explicit_path_beats_env(tmp_path, monkeypatch, fresh_config):
    env_path = tmp_path / "env.yaml"
    env_path.write_text("access:\n  policy: local\n")
    explicit = tmp_path / "explicit.yaml"
    explicit.write_text("access:\n  policy: remote\n")
    monkeypatch.setenv("OMAA_CONFIG", str(env_path))
    assert cfg_mod.load_config(explicit)["access"]["policy"] == "remote"
