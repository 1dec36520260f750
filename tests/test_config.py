"""Tests for configuration loading and saving."""

import json

from veritas.config.loader import camel_to_snake, convert_keys, load_config, save_config, snake_to_camel
from veritas.config.schema import Config


def test_key_conversion():
    assert camel_to_snake("maxContextAspects") == "max_context_aspects"
    assert snake_to_camel("max_context_aspects") == "maxContextAspects"
    assert convert_keys({"agents": {"defaults": {"fastModel": "m"}}, "list": [{"apiKey": "k"}]}) == {
        "agents": {"defaults": {"fast_model": "m"}},
        "list": [{"api_key": "k"}],
    }


def test_load_camel_case_file(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({
        "agents": {"defaults": {"workspace": str(tmp_path / "ws"), "fastModel": "gpt-4o-mini"}},
        "knowledge": {"maxContextAspects": 12},
        "audit": {"enabled": False},
    }))
    config = load_config(path)

    assert config.agents.defaults.fast_model == "gpt-4o-mini"
    assert config.knowledge.max_context_aspects == 12
    assert config.knowledge_path == tmp_path / "ws" / ".veritas" / "veritas-knowledge.json"
    assert config.audit_path == tmp_path / "ws" / "logs"
    assert config.audit.enabled is False


def test_invalid_file_falls_back_to_defaults(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("{not json")
    assert load_config(path).agents.defaults.model == Config().agents.defaults.model

    path.write_text(json.dumps({"knowledge": {"maxContextAspects": 0}}))
    assert load_config(path).knowledge.max_context_aspects == 30


def test_environment_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("VERITAS_PROVIDER__API_KEY", "sk-test")
    config = load_config(tmp_path / "missing.json")
    assert config.get_api_key() == "sk-test"


def test_save_writes_camel_case(tmp_path):
    config = Config()
    config.knowledge.storage_path = str(tmp_path / "store.json")
    path = save_config(config, tmp_path / "nested" / "config.json")

    data = json.loads(path.read_text())
    assert data["knowledge"]["storagePath"] == str(tmp_path / "store.json")
    assert "maxTokens" in data["agents"]["defaults"]
    assert load_config(path).knowledge_path == tmp_path / "store.json"
