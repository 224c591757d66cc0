import pytest

from place_finder.core import config

_ENV_VARS = (
    "GOOGLE_PLACES_API_KEY",
    "PLACES_REQUEST_TIMEOUT",
    "PLACES_MAX_DETAIL_FETCHES",
    "PLACES_BROADEN_THRESHOLD",
    "PLACES_PHOTO_MAX_WIDTH",
    "PLACES_QUERY_OVERRIDES",
    "RATE_LIMIT_MAX_REQUESTS",
    "RATE_LIMIT_WINDOW_SECONDS",
    "RATE_LIMIT_STORAGE_URI",
    "VENDOR_DETECTION_ENABLED",
)


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    config.get_settings.cache_clear()
    yield
    config.get_settings.cache_clear()
