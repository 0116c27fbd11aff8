"""Basic functionality test for LunchTube."""

import random

import pytest

from conftest import FakeAuthService, FakeYouTubeService, make_config
from lunchtube.lunch_processor import LunchProcessor
from lunchtube.models.state import Settings
from lunchtube.services.auth_service import AuthService
from lunchtube.services.youtube_service import YouTubeService
from lunchtube.utils.config import setup_logging, validate_config


def test_processor_initializes_with_all_services(tmp_path):
    """Processor builds its real services from configuration alone."""
    setup_logging("INFO")
    processor = LunchProcessor(make_config(tmp_path))

    assert isinstance(processor.auth_service, AuthService)
    assert isinstance(processor.youtube_service, YouTubeService)
    assert processor.orchestrator.trending_region == "US"
    assert processor.cache.get() is None
    assert processor.watched.ids() == set()
    assert processor.load_settings() == Settings()


def test_on_install_seeds_default_settings(tmp_path):
    processor = LunchProcessor(
        make_config(tmp_path),
        auth_service=FakeAuthService(),
        youtube_service=FakeYouTubeService(),
        rng=random.Random(0),
    )
    processor.on_install()
    assert processor.sync_store.get("settings") == {
        "lunch_start": "12:00",
        "lunch_end": "13:00",
        "max_duration_minutes": 20,
        "video_count": 10,
    }


def test_invalid_config_is_rejected(tmp_path):
    config = make_config(tmp_path)
    config["trending_region"] = "USA"
    config["google_client_id"] = None

    errors = validate_config(config)
    assert len(errors) == 2
    with pytest.raises(ValueError):
        LunchProcessor(config)


def test_saved_token_is_enough_without_client_credentials(tmp_path):
    config = make_config(tmp_path)
    config["google_client_id"] = None
    config["google_client_secret"] = None
    (tmp_path / "token.json").write_text("{}")
    assert validate_config(config) == []


def test_invalid_settings_rejected():
    with pytest.raises(ValueError):
        Settings(lunch_start="25:00")
    with pytest.raises(ValueError):
        Settings(video_count=0)
    with pytest.raises(ValueError):
        Settings(max_duration_minutes=-5)


def test_window_must_start_before_it_ends():
    with pytest.raises(ValueError):
        Settings(lunch_start="13:00", lunch_end="12:00")
    with pytest.raises(ValueError):
        Settings(lunch_start="12:00", lunch_end="12:00")
    assert Settings(lunch_start="12:59", lunch_end="13:00").lunch_end == "13:00"
