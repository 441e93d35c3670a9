"""Shared fixtures."""

import logging

import pytest

from marketmatch.cache.registry import CacheRegistry
from marketmatch.config.models import AppConfig
from marketmatch.logging.context import clear_log_context
from marketmatch.persistence.database import close_database, init_database

from tests.helpers import FakeClock, FakeListingStore, make_candidate, make_provider
from tests.helpers.factories import SEOUL


@pytest.fixture(autouse=True)
def _reset_log_context():
    yield
    clear_log_context()


@pytest.fixture
def restore_root_logger():
    """Undo configure_logging() so later tests keep pytest's handlers."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def app_config():
    return AppConfig()


@pytest.fixture
def registry(clock):
    return CacheRegistry(clock=clock)


@pytest.fixture
def seoul_engineers():
    """Three engineers around Seoul plus one without a location.

    - 1: at the origin, PCB/IoT skills
    - 2: about 5 km away, robotics
    - 3: Busan, about 325 km away, remote-friendly
    - 4: no location, remote-friendly
    """
    return [
        make_candidate(
            1,
            location=SEOUL,
            title="PCB design engineer",
            description="Embedded hardware and PCB layout for IoT devices",
            tags=("PCB design", "IoT"),
            price=100000,
            rating=4.5,
            rating_count=4,
            availability_tier="immediate",
        ),
        make_candidate(
            2,
            location=(37.6, 127.02),
            title="Robotics engineer",
            description="Robot arm control firmware",
            tags=("robotics",),
            price=300000,
        ),
        make_candidate(
            3,
            location=(35.1796, 129.0756),
            title="Firmware engineer",
            description="Low power IoT firmware",
            tags=("IoT", "firmware"),
            is_remote=True,
        ),
        make_candidate(4, title="Remote PCB reviewer", tags=("PCB design",), is_remote=True),
    ]


@pytest.fixture
def fake_store(seoul_engineers):
    providers = [make_provider(c.id) for c in seoul_engineers]
    return FakeListingStore(seoul_engineers, providers)


@pytest.fixture
def database(tmp_path):
    """Initialize a SQLite database in tmp_path for one test."""
    db_url = f"sqlite:///{tmp_path / 'test.db'}"
    init_database(db_url)
    yield db_url
    close_database()
