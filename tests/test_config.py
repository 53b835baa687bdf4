"""Tests for QueryKeys, QueryConfig and Settings."""

import pytest

from complaint_desk.config import QueryConfig, QueryKeys, Settings


class TestQueryKeys:
    def test_defaults(self):
        keys = QueryKeys()

        assert keys.search == "search"
        assert keys.column_filters == "column_filters"
        assert keys.relations_array_filters == "relations_array_filters"
        assert keys.sort_by_relation_field == "sort_by_relation_field"
        assert keys.per_page == ("perPage", "per_page", "page_size")
        assert keys.negation_prefix == "!"

    def test_empty_key_rejected(self):
        with pytest.raises(ValueError, match="search must not be empty"):
            QueryKeys(search="")


class TestQueryConfig:
    def test_default_config(self):
        config = QueryConfig()

        assert config.max_per_page == 100
        assert config.default_per_page == 10
        assert config.default_page == 1
        assert config.min_per_page == 1
        assert config.page_size_all == "all"
        assert config.strict_mode is False

    def test_invalid_max_per_page(self):
        with pytest.raises(ValueError, match="max_per_page must be >= 1"):
            QueryConfig(max_per_page=0)

    def test_default_exceeds_max(self):
        with pytest.raises(ValueError, match="default_per_page cannot exceed max_per_page"):
            QueryConfig(max_per_page=10, default_per_page=20)

    def test_min_exceeds_max(self):
        with pytest.raises(ValueError, match="min_per_page cannot exceed max_per_page"):
            QueryConfig(max_per_page=10, default_per_page=5, min_per_page=20)

    def test_empty_page_size_all(self):
        with pytest.raises(ValueError, match="page_size_all must not be empty"):
            QueryConfig(page_size_all="")

    def test_validate_page(self):
        config = QueryConfig()

        assert config.validate_page(0) == 1
        assert config.validate_page(-3) == 1
        assert config.validate_page(4) == 4

    def test_validate_per_page(self):
        config = QueryConfig(max_per_page=50, min_per_page=5)

        assert config.validate_per_page(1) == 5
        assert config.validate_per_page(500) == 50
        assert config.validate_per_page(20) == 20


class TestSettings:
    def test_defaults(self):
        settings = Settings()

        assert settings.bcrypt_rounds == 12
        assert settings.log_level == "INFO"
        assert isinstance(settings.query, QueryConfig)

    def test_log_level_is_upper_cased(self):
        assert Settings(log_level="debug").log_level == "DEBUG"

    def test_invalid_bcrypt_rounds(self):
        with pytest.raises(ValueError, match="bcrypt_rounds"):
            Settings(bcrypt_rounds=2)

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("COMPLAINT_DESK_DATABASE_URL", "sqlite://")
        monkeypatch.setenv("COMPLAINT_DESK_STORAGE_DIR", "/tmp/evidence")
        monkeypatch.setenv("COMPLAINT_DESK_BCRYPT_ROUNDS", "6")
        monkeypatch.setenv("COMPLAINT_DESK_STRICT_MODE", "true")

        settings = Settings.from_env()

        assert settings.database_url == "sqlite://"
        assert settings.storage_dir == "/tmp/evidence"
        assert settings.bcrypt_rounds == 6
        assert settings.query.strict_mode is True

    def test_from_env_defaults(self, monkeypatch):
        for name in ("DATABASE_URL", "STORAGE_DIR", "LOG_LEVEL", "BCRYPT_ROUNDS", "STRICT_MODE"):
            monkeypatch.delenv(f"COMPLAINT_DESK_{name}", raising=False)

        settings = Settings.from_env()

        assert settings.database_url == Settings.database_url
        assert settings.query.strict_mode is False
