"""Tests for environment-driven settings."""

import pytest

from rankreel.settings import DEFAULT_CALLBACK_URL, Settings, load_settings


class TestLoadSettings:
    def test_defaults(self):
        settings = load_settings({})
        assert settings == Settings()
        assert settings.callback_url == DEFAULT_CALLBACK_URL
        assert settings.workers == 4
        assert (settings.source_bucket, settings.output_bucket, settings.thumbnail_bucket) == (
            "cache", "output", "thumbnails",
        )

    def test_overrides(self):
        settings = load_settings({
            "RANKREEL_STORAGE_ROOT": "/mnt/buckets",
            "RANKREEL_WORK_DIR": "/scratch",
            "RANKREEL_WORKERS": "2",
            "INTERNAL_SECRET": "s3cret",
            "RANKREEL_OUTPUT_BUCKET": "videos",
        })
        assert settings.storage_root == "/mnt/buckets"
        assert settings.work_dir == "/scratch"
        assert settings.workers == 2
        assert settings.internal_secret == "s3cret"
        assert settings.output_bucket == "videos"

    def test_empty_callback_disables_webhook(self):
        assert load_settings({"RANKREEL_CALLBACK_URL": ""}).callback_url is None

    def test_non_integer_workers(self):
        with pytest.raises(ValueError, match="RANKREEL_WORKERS"):
            load_settings({"RANKREEL_WORKERS": "many"})

    def test_zero_workers(self):
        with pytest.raises(ValueError, match="workers"):
            Settings(workers=0)
