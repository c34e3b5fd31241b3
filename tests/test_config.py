"""Tests for settings loading."""

from nihongo_srs.config import Settings


class TestSettings:
    def test_yaml_defaults(self):
        settings = Settings()
        assert settings.port == 8000
        assert settings.storage_backend == "json"
        assert settings.review_batch_size == 20

    def test_env_overrides_yaml(self, monkeypatch):
        monkeypatch.setenv("NIHONGO_PORT", "9001")
        monkeypatch.setenv("NIHONGO_STORAGE_BACKEND", "memory")
        settings = Settings()
        assert settings.port == 9001
        assert settings.storage_backend == "memory"

    def test_relative_store_dir_under_project_root(self, tmp_path):
        settings = Settings(project_root=tmp_path, data_dir="store")
        assert settings.store_dir == tmp_path / "store"
        assert settings.store_dir.is_dir()

    def test_catalog_dir(self):
        settings = Settings()
        assert (settings.catalog_dir / "achievements.yaml").exists()
