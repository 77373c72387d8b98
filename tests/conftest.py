"""
pytest configuration and fixtures for Quote Voting System tests
"""

import json
import shutil
import sys
import tempfile
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from api.app import create_app
from api.dependencies import VoteServices
from storage import JsonQuoteStore
from utils import RateLimiter
from voting import SessionLedger, VoteCoordinator, QuoteViews

MAX_VOTES = 5


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files"""
    temp_path = tempfile.mkdtemp()
    yield Path(temp_path)
    shutil.rmtree(temp_path)


@pytest.fixture
def seed_quotes():
    """Two-quote seed used by the basic voting scenario"""
    return [
        {"id": 1, "text": "A", "votes": 0},
        {"id": 2, "text": "B", "votes": 0},
    ]


@pytest.fixture
def sample_quotes():
    """A slightly larger seed with mixed case text and existing votes"""
    return [
        {"id": 1, "text": "Simplicity is the ultimate sophistication.", "votes": 3},
        {"id": 2, "text": "Talk is cheap. Show me the code.", "votes": 7},
        {"id": 3, "text": "Make it work, make it right, make it fast.", "votes": 3},
        {"id": 4, "text": "Deleted code is debugged code.", "votes": 0},
        {"id": 5, "text": "First, solve the problem. Then, write the CODE.", "votes": 7},
    ]


def write_quotes(path: Path, quotes):
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(quotes, f, indent=2)
    return path


@pytest.fixture
def quotes_file(temp_dir, seed_quotes):
    """Quote file seeded with the two-quote scenario"""
    return write_quotes(temp_dir / "quotes.json", seed_quotes)


@pytest.fixture
def store(quotes_file):
    """Initialized JSON quote store"""
    quote_store = JsonQuoteStore(quotes_file)
    quote_store.initialize()
    return quote_store


@pytest.fixture
def sample_store(temp_dir, sample_quotes):
    """Initialized JSON quote store holding sample_quotes"""
    quote_store = JsonQuoteStore(write_quotes(temp_dir / "sample.json", sample_quotes))
    quote_store.initialize()
    return quote_store


@pytest.fixture
def ledger():
    """Ledger with a cap of MAX_VOTES and no expiry"""
    return SessionLedger(max_votes=MAX_VOTES)


@pytest.fixture
def coordinator(store, ledger):
    """Coordinator without rate limiting"""
    return VoteCoordinator(store, ledger)


@pytest.fixture
def services(store, ledger, coordinator):
    return VoteServices(
        store=store,
        ledger=ledger,
        coordinator=coordinator,
        views=QuoteViews(store)
    )


@pytest.fixture
def app(services):
    return create_app(services=services)


@pytest.fixture
def client(app):
    """Test client; cookies persist across requests so it acts as one session"""
    return TestClient(app)


@pytest.fixture
def rate_limited_app(store):
    """App whose coordinator allows only 2 vote attempts per minute per client"""
    ledger = SessionLedger(max_votes=MAX_VOTES)
    coordinator = VoteCoordinator(store, ledger, RateLimiter(max_requests=2, window_seconds=60))
    return create_app(services=VoteServices(
        store=store,
        ledger=ledger,
        coordinator=coordinator,
        views=QuoteViews(store)
    ))


# Pytest configuration
def pytest_configure(config):
    """Configure pytest"""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )
