"""Tests for environment-driven settings."""

from app.core.config import Settings


def test_cors_origins_from_comma_list(monkeypatch):
    monkeypatch.setenv("CORS_ORIGINS", "http://a.example, http://b.example,")
    assert Settings(_env_file=None).CORS_ORIGINS == ["http://a.example", "http://b.example"]


def test_cors_origins_from_json_array(monkeypatch):
    monkeypatch.setenv("CORS_ORIGINS", '["http://a.example", "http://b.example"]')
    assert Settings(_env_file=None).CORS_ORIGINS == ["http://a.example", "http://b.example"]


def test_media_prefix_is_normalised(monkeypatch):
    monkeypatch.setenv("MEDIA_URL_PREFIX", "uploads/")
    assert Settings(_env_file=None).MEDIA_URL_PREFIX == "/uploads"
