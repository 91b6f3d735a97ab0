"""Configuration settings behaviour tests."""

from __future__ import annotations

import pytest

from app.config import Settings


def test_defaults_match_discogs_limits() -> None:
    """Default pacing should keep within 60 requests per minute."""

    settings = Settings(_env_file=None)

    assert settings.discogs_page_size == 100
    assert settings.discogs_request_delay == 1.0
    assert settings.master_fetch_max_retries == 3
    assert settings.master_release_sync_default is True
    assert str(settings.discogs_api_url).startswith("https://api.discogs.com")


def test_blank_credentials_are_treated_as_missing() -> None:
    settings = Settings(_env_file=None, DISCOGS_USERNAME="  ", DISCOGS_TOKEN="")

    assert settings.discogs_username is None
    assert settings.discogs_token is None


def test_credentials_are_trimmed() -> None:
    settings = Settings(
        _env_file=None, DISCOGS_USERNAME=" collector ", DISCOGS_TOKEN=" abc123 "
    )

    assert settings.discogs_username == "collector"
    assert settings.discogs_token == "abc123"


def test_user_agent_combines_name_and_version() -> None:
    settings = Settings(_env_file=None, APP_NAME="CrateDigger", APP_VERSION="2.1")

    assert settings.user_agent == "CrateDigger/2.1"


def test_page_size_above_discogs_maximum_raises() -> None:
    """Discogs caps collection pages at 100 items."""

    with pytest.raises(ValueError):
        Settings(_env_file=None, DISCOGS_PAGE_SIZE=250)


def test_negative_request_delay_raises() -> None:
    with pytest.raises(ValueError):
        Settings(_env_file=None, DISCOGS_REQUEST_DELAY=-1)
