import json

import pytest

from config.settings import Settings


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({
        "CLICKHOUSE_HOST": "ch.internal",
        "ORDER_PAGE_SIZE": 500,
        "CLASSIFICATION": {"retail_sites": ["shop-a"]},
    }), encoding="utf-8")
    return str(path)


class TestSettings:
    """测试配置加载"""

    def test_file_values_over_defaults(self, config_file):
        settings = Settings(config_file, setup_logging=False)

        assert settings.clickhouse.host == "ch.internal"
        assert settings.clickhouse.port == 8123
        assert settings.report.page_size == 500
        assert settings.report.cache_ttl_seconds == 300
        assert settings.report.accepted_statuses == ["completed", "processing"]
        assert settings.classification == {"retail_sites": ["shop-a"]}

    def test_environment_overrides(self, config_file, monkeypatch):
        monkeypatch.setenv("ORDER_PAGE_SIZE", "250")
        monkeypatch.setenv("USE_MOCK_DATA", "true")
        monkeypatch.setenv("ORDER_ACCEPTED_STATUSES", "completed, on-hold")
        monkeypatch.setenv("CLICKHOUSE_PASSWORD", "12345")

        settings = Settings(config_file, setup_logging=False)

        assert settings.report.page_size == 250
        assert settings.report.use_mock_data is True
        assert settings.report.accepted_statuses == ["completed", "on-hold"]
        assert settings.clickhouse.password == "12345"
        assert not settings.has_clickhouse()

    def test_bad_integer_in_environment(self, config_file, monkeypatch):
        monkeypatch.setenv("REPORT_CACHE_MAX_ENTRIES", "ten")
        with pytest.raises(ValueError):
            Settings(config_file, setup_logging=False)

    def test_missing_or_invalid_file_uses_defaults(self, tmp_path):
        broken = tmp_path / "broken.json"
        broken.write_text("{not json", encoding="utf-8")

        for path in (str(broken), str(tmp_path / "missing.json")):
            settings = Settings(path, setup_logging=False)
            assert settings.clickhouse.host == "localhost"
            assert settings.has_clickhouse()
