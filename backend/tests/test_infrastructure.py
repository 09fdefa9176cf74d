"""
Tests for health endpoints, middlewares and shared helpers.
"""

from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import IntegrityError

from rest_api.core.cors import DEFAULT_CORS_ORIGINS, get_cors_origins
from rest_api.core.middlewares import integrity_error_message
from shared.config.logging import mask_email
from shared.config.settings import settings
from shared.infrastructure.db import safe_commit
from shared.utils.validators import validate_image_url


class TestHealth:
    def test_health_check(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert response.json()["service"] == "rest-api"


class TestMiddlewares:
    def test_security_headers(self, client):
        response = client.get("/api/health")
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "DENY"

    def test_request_id_echoed(self, client):
        response = client.get("/api/health", headers={"X-Request-ID": "abc-123"})
        assert response.headers["X-Request-ID"] == "abc-123"

    def test_non_json_body_rejected(self, client, seed_staff_user):
        response = client.post(
            "/api/auth/login",
            content="email=waiter@test.com",
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )
        assert response.status_code == 415


class TestIntegrityErrors:
    @pytest.mark.parametrize(
        "driver_message,expected",
        [
            (
                'duplicate key value violates unique constraint "uq_table_sessions_one_open_per_table"',
                "Table already has an open session",
            ),
            ("UNIQUE constraint failed: users.email", "Email already registered"),
            ("FOREIGN KEY constraint failed", "Referenced record does not exist or is still in use"),
            ("something else", "Conflicting data"),
        ],
    )
    def test_messages(self, driver_message, expected):
        error = IntegrityError("INSERT ...", {}, Exception(driver_message))
        assert integrity_error_message(error) == expected


class TestHelpers:
    def test_safe_commit_rolls_back(self):
        db = MagicMock()
        db.commit.side_effect = RuntimeError("boom")
        with pytest.raises(RuntimeError):
            safe_commit(db)
        db.rollback.assert_called_once()

    @pytest.mark.parametrize(
        "email,masked",
        [
            ("mario@example.com", "ma***@example.com"),
            ("al@example.com", "a***@example.com"),
            (None, "<no-email>"),
            ("broken", "***@invalid"),
        ],
    )
    def test_mask_email(self, email, masked):
        assert mask_email(email) == masked

    def test_cors_defaults(self, monkeypatch):
        monkeypatch.setattr(settings, "allowed_origins", "")
        assert get_cors_origins() == DEFAULT_CORS_ORIGINS
        monkeypatch.setattr(settings, "allowed_origins", "https://a.example, https://b.example")
        assert get_cors_origins() == ["https://a.example", "https://b.example"]

    @pytest.mark.parametrize(
        "url",
        ["ftp://example.com/logo.png", "http://localhost/logo.png", "http://169.254.169.254/x", "https://"],
    )
    def test_image_url_rejected(self, url):
        with pytest.raises(ValueError):
            validate_image_url(url)

    def test_image_url_blank_is_none(self):
        assert validate_image_url("   ") is None
