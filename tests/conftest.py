"""Pytest configuration and fixtures."""

import os

import pytest

from app.core.config import get_settings


@pytest.fixture(scope="session", autouse=True)
def setup_test_env():
    """Set up test environment variables."""
    os.environ["SNAPSHOT_ENV"] = "test"
    os.environ["ANTHROPIC_API_KEY"] = "test-anthropic-key"
    os.environ["OPENAI_API_KEY"] = ""
    os.environ["FIRECRAWL_API_KEY"] = ""
    os.environ["NARRATIVE_PROVIDER"] = "anthropic"
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(autouse=True)
def fresh_snapshot_cache():
    """Each test starts with an empty process-wide response cache."""
    from app.core.snapshot_cache import get_snapshot_cache

    get_snapshot_cache().clear()
    yield
    get_snapshot_cache().clear()


@pytest.fixture
def reactive_solo_selections():
    from app.core.schemas_snapshot import SnapshotSelections

    return SnapshotSelections(
        presence_channels=["word_of_mouth"],
        team_shape="solo_or_one_helper",
        scheduling="head_notebook",
        invoicing="paper_verbal",
        call_handling="personal_phone",
        business_feeling="reactive_all_the_time",
    )
