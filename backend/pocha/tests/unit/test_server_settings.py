import pytest
from pydantic import ValidationError

from pocha.server.settings import PochaServerSettings


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in ("POCHA_DATA_DIR", "POCHA_LOG_DIR", "POCHA_CORS_ORIGINS"):
        monkeypatch.delenv(name, raising=False)


class TestPochaServerSettings:
    def test_defaults(self):
        settings = PochaServerSettings()

        assert settings.data_dir == "backend/data"
        assert settings.log_dir == "backend/logs"
        assert settings.cors_origins == ["http://localhost:5173"]

    def test_data_dir_from_env(self, monkeypatch):
        monkeypatch.setenv("POCHA_DATA_DIR", "/var/lib/pocha")

        assert PochaServerSettings().data_dir == "/var/lib/pocha"

    def test_cors_origins_json_array(self, monkeypatch):
        monkeypatch.setenv("POCHA_CORS_ORIGINS", '["http://a.com","http://b.com"]')

        assert PochaServerSettings().cors_origins == ["http://a.com", "http://b.com"]

    def test_cors_origins_csv(self, monkeypatch):
        monkeypatch.setenv("POCHA_CORS_ORIGINS", "http://a.com,http://b.com")

        assert PochaServerSettings().cors_origins == ["http://a.com", "http://b.com"]

    def test_cors_origins_empty_disables_cors(self, monkeypatch):
        monkeypatch.setenv("POCHA_CORS_ORIGINS", "")

        assert PochaServerSettings().cors_origins == []

    def test_cors_origins_malformed_json_rejected(self, monkeypatch):
        monkeypatch.setenv("POCHA_CORS_ORIGINS", "[http://a.com")

        with pytest.raises(ValidationError, match="cors_origins"):
            PochaServerSettings()

    def test_data_dir_empty_rejected(self):
        with pytest.raises(ValidationError, match="data_dir"):
            PochaServerSettings(data_dir="")

    def test_log_dir_empty_rejected(self):
        with pytest.raises(ValidationError, match="log_dir"):
            PochaServerSettings(log_dir="")
