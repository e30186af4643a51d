import pytest

from xray.config import DEFAULT_ENDPOINT, CollectorConfig, LoggerConfig


class TestLoggerConfig:
    def test_defaults(self):
        config = LoggerConfig(service="svc")

        assert config.endpoint == DEFAULT_ENDPOINT
        assert config.on_error == "log"
        assert config.api_key is None

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("XRAY_SERVICE", "ranker")
        monkeypatch.setenv("XRAY_ENDPOINT", "https://xray.internal/")
        monkeypatch.setenv("XRAY_API_KEY", "secret")
        monkeypatch.setenv("XRAY_DEBUG", "true")
        monkeypatch.setenv("XRAY_ON_ERROR", "throw")

        config = LoggerConfig.from_env()

        assert config.service == "ranker"
        assert config.endpoint == "https://xray.internal"
        assert config.api_key == "secret"
        assert config.debug is True
        assert config.on_error == "throw"

    def test_overrides_win(self, monkeypatch):
        monkeypatch.setenv("XRAY_SERVICE", "ranker")

        assert LoggerConfig.from_env(service="search").service == "search"

    def test_invalid_env_policy(self, monkeypatch):
        monkeypatch.setenv("XRAY_ON_ERROR", "panic")

        with pytest.raises(ValueError):
            LoggerConfig.from_env(service="svc")


class TestCollectorConfig:
    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("XRAY_API_PREFIX", "/api")
        monkeypatch.setenv("XRAY_TRACE_LIST_LIMIT", "10")

        config = CollectorConfig.from_env()

        assert config.api_prefix == "/api"
        assert config.trace_list_limit == 10
        assert config.high_drop_threshold == 0.9
