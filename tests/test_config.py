"""
Configuration Tests
===================

Defaults, YAML loading and environment overrides.
"""

import logging

import pytest
from pydantic import ValidationError

from thumbnailer.config import Settings, load_config
from thumbnailer.main import create_cache_store, create_extractor
from thumbnailer.cache import InMemoryCacheStore, RedisCacheStore
from thumbnailer.media import OpenCVFrameExtractor, SyntheticFrameExtractor


ENV_VARS = [
    "PORT",
    "THUMBNAILER_PORT",
    "THUMBNAILER_CACHE_ENABLED",
    "THUMBNAILER_CACHE_BACKEND",
    "THUMBNAILER_CACHE_TTL",
    "THUMBNAILER_REDIS_URL",
    "THUMBNAILER_CACHE_FAIL_OPEN",
    "THUMBNAILER_WORKERS",
    "THUMBNAILER_MAX_QUEUE_DEPTH",
    "THUMBNAILER_OUTPUT_WIDTH",
    "THUMBNAILER_OUTPUT_HEIGHT",
    "THUMBNAILER_JPEG_QUALITY",
    "THUMBNAILER_MEDIA_BACKEND",
    "THUMBNAILER_SEEK_SECONDS",
    "THUMBNAILER_LOG_LEVEL",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestDefaults:

    def test_defaults(self):
        settings = Settings()

        assert settings.server.port == 3000
        assert settings.cache.enabled is True
        assert settings.cache.ttl_seconds == 60
        assert settings.output.width == 640
        assert settings.output.height == 360
        assert settings.dispatcher.workers >= 1
        assert settings.media.seek_seconds == 1.0

    def test_output_spec_aspect_ratio(self):
        spec = Settings().output.to_spec()
        assert spec.target_aspect_ratio == pytest.approx(16 / 9)


class TestLoading:

    def test_yaml_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            "cache:\n"
            "  backend: redis\n"
            "  ttl_seconds: 300\n"
            "dispatcher:\n"
            "  workers: 3\n"
            "  max_queue_depth: 10\n"
            "output:\n"
            "  width: 320\n"
            "  height: 180\n"
        )

        settings = load_config(str(path))

        assert settings.cache.backend == "redis"
        assert settings.cache.ttl_seconds == 300
        assert settings.dispatcher.workers == 3
        assert settings.dispatcher.max_queue_depth == 10
        assert settings.output.width == 320

    def test_env_overrides_file(self, tmp_path, monkeypatch):
        path = tmp_path / "config.yaml"
        path.write_text("cache:\n  ttl_seconds: 300\n")
        monkeypatch.setenv("THUMBNAILER_CACHE_TTL", "15")
        monkeypatch.setenv("THUMBNAILER_WORKERS", "5")
        monkeypatch.setenv("THUMBNAILER_CACHE_ENABLED", "false")
        monkeypatch.setenv("THUMBNAILER_MEDIA_BACKEND", "synthetic")

        settings = load_config(str(path))

        assert settings.cache.ttl_seconds == 15
        assert settings.dispatcher.workers == 5
        assert settings.cache.enabled is False
        assert settings.media.backend == "synthetic"

    def test_port_env_takes_precedence(self, tmp_path, monkeypatch):
        monkeypatch.setenv("PORT", "8080")
        monkeypatch.setenv("THUMBNAILER_PORT", "9090")

        settings = load_config(str(tmp_path / "absent.yaml"))
        assert settings.server.port == 8080

    def test_missing_file_warns(self, tmp_path, caplog):
        with caplog.at_level(logging.WARNING, logger="thumbnailer.config"):
            settings = load_config(str(tmp_path / "absent.yaml"))

        assert settings.server.port == 3000
        assert any(
            record.levelno == logging.WARNING and "No config file found" in record.message
            for record in caplog.records
        )

    def test_invalid_values_rejected(self):
        with pytest.raises(ValidationError):
            Settings.model_validate({"cache": {"backend": "memcached"}})
        with pytest.raises(ValidationError):
            Settings.model_validate({"cache": {"ttl_seconds": 0}})
        with pytest.raises(ValidationError):
            Settings.model_validate({"dispatcher": {"workers": 0}})


class TestFactories:

    def test_backends_follow_settings(self):
        settings = Settings.model_validate({
            "cache": {"backend": "redis"},
            "media": {"backend": "synthetic"},
        })

        assert isinstance(create_cache_store(settings), RedisCacheStore)
        assert isinstance(create_extractor(settings), SyntheticFrameExtractor)

    def test_default_backends(self):
        settings = Settings()

        assert isinstance(create_cache_store(settings), InMemoryCacheStore)
        assert isinstance(create_extractor(settings), OpenCVFrameExtractor)
