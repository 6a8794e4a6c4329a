"""
Pytest configuration for the lazy collection tests.

Puts the project root on the Python path so test files can import the
modules directly, and provides producers that record how often they run.
"""

import sys
from pathlib import Path

# Add the parent directory to the Python path
parent_dir = Path(__file__).parent.parent
if str(parent_dir) not in sys.path:
    sys.path.insert(0, str(parent_dir))

import pytest

from utils import clear_performance_metrics


class CountingProducer:
    """Generator factory that counts runs and pulled items."""

    def __init__(self, values):
        self.values = list(values)
        self.runs = 0
        self.pulled = 0

    def __call__(self):
        self.runs += 1
        for key, value in enumerate(self.values):
            self.pulled += 1
            yield key, value


@pytest.fixture
def counting_producer():
    """Fixture returning a factory of counting producers."""
    return CountingProducer


@pytest.fixture(autouse=True)
def reset_metrics():
    """Each test starts with empty performance metrics."""
    clear_performance_metrics()
    yield
