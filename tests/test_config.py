"""Settings helpers should remain deterministic with mocks."""

import os
from unittest.mock import patch

import pytest


def test_default_settings_values():
    from voyage_gateway.config.settings import Settings

    with patch.dict(os.environ, {}, clear=True):
        cfg = Settings(_env_file=None)

    assert cfg.api_key is None
    assert cfg.api_base == "https://api.voyageai.com/v1"
    assert cfg.embedding_model == "voyage-3-large"
    assert cfg.rerank_model == "rerank-2"
    assert cfg.embedding_token_limit == 3_000_000
    assert cfg.rerank_token_limit == 2_000_000
    assert cfg.rate_limit_window == 60.0
    assert cfg.stream_errors == "raise"
    assert not cfg.has_api_key()


def test_env_overrides_apply():
    with patch.dict(os.environ, {
        "VOYAGE_API_KEY": "env-key",
        "VOYAGE_RERANK_TOKEN_LIMIT": "500",
        "VOYAGE_STREAM_ERRORS": "log",
    }):
        from voyage_gateway.config.settings import Settings

        cfg = Settings()
        assert cfg.api_key == "env-key"
        assert cfg.rerank_token_limit == 500
        assert cfg.stream_errors == "log"
        assert cfg.has_api_key()


def test_api_base_validation():
    from voyage_gateway.config.settings import Settings

    assert Settings(api_base="https://proxy.test/v1/").api_base == "https://proxy.test/v1"
    with pytest.raises(ValueError):
        Settings(api_base="ftp://nope")


def test_load_yaml_config_flattens_sections(tmp_path):
    from voyage_gateway.config.settings import load_yaml_config

    cfg_path = tmp_path / "config.yml"
    cfg_path.write_text(
        "api:\n"
        "  key: yaml-key\n"
        "  timeout: 12\n"
        "rate_limits:\n"
        "  rerank_tokens: 1234\n"
        "  window_seconds: 30\n"
        "streaming:\n"
        "  buffer_size: 8\n"
        "  errors: log\n",
        encoding="utf-8",
    )

    assert load_yaml_config(str(cfg_path)) == {
        "api_key": "yaml-key",
        "timeout": 12,
        "rerank_token_limit": 1234,
        "rate_limit_window": 30,
        "stream_buffer_size": 8,
        "stream_errors": "log",
    }


def test_load_yaml_config_missing_or_empty(tmp_path):
    from voyage_gateway.config.settings import load_yaml_config

    assert load_yaml_config(str(tmp_path / "absent.yml")) == {}

    empty = tmp_path / "empty.yml"
    empty.write_text("", encoding="utf-8")
    assert load_yaml_config(str(empty)) == {}


def test_env_wins_over_yaml(tmp_path, monkeypatch):
    from voyage_gateway.config.settings import create_settings

    cfg_path = tmp_path / "config.yml"
    cfg_path.write_text("models:\n  rerank: rerank-2-lite\n  embedding: voyage-code-3\n", encoding="utf-8")
    monkeypatch.setenv("VOYAGE_CONFIG_PATH", str(cfg_path))
    monkeypatch.setenv("VOYAGE_RERANK_MODEL", "rerank-2")

    cfg = create_settings()

    assert cfg.rerank_model == "rerank-2"
    assert cfg.embedding_model == "voyage-code-3"
