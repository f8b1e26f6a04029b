from datetime import timedelta

import pytest

from seva.core.config import DEFAULT_TOKEN_LIFETIME, parse_duration, settings


@pytest.mark.parametrize("raw, expected", [
    ("7d", timedelta(days=7)),
    ("12h", timedelta(hours=12)),
    ("30m", timedelta(minutes=30)),
    ("45s", timedelta(seconds=45)),
    (" 2d ", timedelta(days=2)),
])
def test_parse_duration(raw, expected):
    assert parse_duration(raw) == expected


@pytest.mark.parametrize("raw", ["", None, "7", "d7", "7w", "1.5h"])
def test_parse_duration_falls_back(raw):
    assert parse_duration(raw) == DEFAULT_TOKEN_LIFETIME


def test_environment_overrides_are_applied():
    assert settings.DATABASE_URL == "sqlite://"
    assert settings.API_V1_STR == "/api/v1"
    assert settings.CLIENT_ORIGINS == ["https://app.example.com"]
    assert settings.OTP_TWO_FACTOR_TTL_SECONDS == 20
