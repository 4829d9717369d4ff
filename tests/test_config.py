"""Tests for configuration loading and id helpers."""

import random
import re

from aigateway.catalog import default_providers, default_services
from aigateway.config import RATE_LIMIT_PROFILES, settings
from aigateway.utils import ConfigStore, generate_id, random_base36


def test_config_store_merges_yaml_files(tmp_path):
    (tmp_path / "a.yaml").write_text("server:\n  host: 0.0.0.0\n  port: 8080\n")
    (tmp_path / "b.yaml").write_text("server:\n  port: 9090\nlogging:\n  level: DEBUG\n")

    store = ConfigStore()
    store.load(tmp_path)

    assert store.get("server.host") == "0.0.0.0"
    assert store.get("server.port") == 9090
    assert store.get("logging.level") == "DEBUG"
    assert store.get("server.missing", "fallback") == "fallback"


def test_config_store_missing_directory(tmp_path):
    store = ConfigStore()
    store.load(tmp_path / "nope")
    assert store.as_dict() == {}


def test_rate_limit_profiles_from_yaml():
    assert RATE_LIMIT_PROFILES["api"] == {"window_seconds": 900, "max_requests": 100}
    assert RATE_LIMIT_PROFILES["auth"] == {"window_seconds": 900, "max_requests": 5}


def test_generate_id_format():
    assert re.fullmatch(r"api_\d{13}_[0-9a-z]{9}", generate_id("api"))


def test_random_base36_with_rng():
    assert random_base36(6, random.Random(1)) == random_base36(6, random.Random(1))
    assert len(random_base36(32)) == 32


def test_default_catalog():
    providers = default_providers(settings)
    assert [p.id for p in providers] == ["blog-writer-dev", "blog-writer-staging", "blog-writer-prod"]
    assert all(p.environments[0].timeout_ms == settings.BLOG_WRITER_TIMEOUT * 1000 for p in providers)

    services = default_services(settings)
    assert services[0].endpoints[0].url == settings.BLOG_WRITER_API_URL
