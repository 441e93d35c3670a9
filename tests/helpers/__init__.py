"""Test helper utilities for marketmatch tests."""

from .clock import FakeClock
from .factories import make_candidate, make_provider
from .fake_store import FakeListingStore
from .fake_summarizers import FailingSummarizer, RecordingSummarizer, SlowSummarizer

__all__ = [
    "FakeClock",
    "FakeListingStore",
    "FailingSummarizer",
    "RecordingSummarizer",
    "SlowSummarizer",
    "make_candidate",
    "make_provider",
]
