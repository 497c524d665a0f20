"""Tests for config loading and the manager factories."""

import asyncio

import pytest
import yaml

from eodwatch.data.delta_cache import DeltaCacheManager
from eodwatch.data.factory import create_delta_cache_manager_from_config
from eodwatch.data.tiingo import TiingoAdapter
from eodwatch.utils.config_loader import (
    get_tiingo_token,
    load_config_with_secrets,
    load_secrets,
    merge_secrets_into_config,
)


def _write_yaml(path, data):
    path.write_text(yaml.safe_dump(data), encoding="utf-8")


def test_load_secrets_missing_file(tmp_path):
    assert load_secrets(tmp_path) == {}


def test_load_secrets_invalid_yaml(tmp_path):
    (tmp_path / "secrets.yaml").write_text("tiingo: [unclosed", encoding="utf-8")
    assert load_secrets(tmp_path) == {}


def test_get_tiingo_token():
    assert get_tiingo_token({"tiingo": {"api_token": "  abc  "}}) == "abc"
    assert get_tiingo_token({"tiingo": "abc"}) == ""
    assert get_tiingo_token({}) == ""


def test_merge_secrets_into_config_keeps_other_keys():
    config = {"tiingo": {"timeout": 5}, "cache": {"dir": "c"}}

    merged = merge_secrets_into_config(config, {"tiingo": {"api_token": "abc"}, "other": {"x": 1}})

    assert merged == {"tiingo": {"timeout": 5, "api_token": "abc"}, "cache": {"dir": "c"}}
    assert config == {"tiingo": {"timeout": 5}, "cache": {"dir": "c"}}


def test_load_config_with_secrets(tmp_path):
    _write_yaml(tmp_path / "env.yaml", {"tiingo": {"timeout": 9}, "cache": {"max_bars": 10}})
    _write_yaml(tmp_path / "secrets.yaml", {"tiingo": {"api_token": "secret"}})

    config = load_config_with_secrets(tmp_path / "env.yaml")

    assert config["tiingo"] == {"timeout": 9, "api_token": "secret"}
    assert config["cache"] == {"max_bars": 10}


def test_factory_from_config(tmp_path):
    config = {
        "tiingo": {"api_token": "secret", "timeout": 3},
        "cache": {"dir": str(tmp_path / "cache"), "max_bars": 42, "rate_limit_backoff_minutes": 5},
    }

    manager = create_delta_cache_manager_from_config(config)
    try:
        assert isinstance(manager, DeltaCacheManager)
        assert isinstance(manager.source, TiingoAdapter)
        assert manager.store.cache_dir == tmp_path / "cache"
        assert (tmp_path / "cache").is_dir()
    finally:
        asyncio.run(manager.aclose())


def test_factory_cache_dir_override(tmp_path):
    config = {"tiingo": {"api_token": "secret"}, "cache": {"dir": str(tmp_path / "ignored")}}

    manager = create_delta_cache_manager_from_config(config, cache_dir=str(tmp_path / "used"))
    try:
        assert manager.store.cache_dir == tmp_path / "used"
    finally:
        asyncio.run(manager.aclose())


def test_factory_requires_token(tmp_path):
    with pytest.raises(ValueError):
        create_delta_cache_manager_from_config({"cache": {"dir": str(tmp_path)}})
