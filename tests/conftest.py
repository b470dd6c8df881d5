"""
Shared pytest fixtures for bracket tests.

Running tests:
    pytest tests/
"""
import pytest
import sys
import os

# Add src directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from core.models import Participant


def make_participants(count, seeded=True):
    """Participants with ids 1..count, optionally seeded in id order."""
    return [
        Participant(id=i, name=f"Athlete {i}", seed=i if seeded else None)
        for i in range(1, count + 1)
    ]


@pytest.fixture
def four_participants():
    return make_participants(4)


@pytest.fixture
def five_participants():
    return make_participants(5)


@pytest.fixture
def eight_participants():
    return make_participants(8)


@pytest.fixture
def client():
    """Create a test client."""
    from app import app
    app.config['TESTING'] = True
    with app.test_client() as client:
        yield client


@pytest.fixture
def temp_data_dir(tmp_path, monkeypatch):
    """Point the bracket store at a temporary data directory."""
    import app as app_module

    data_dir = tmp_path / "data"
    data_dir.mkdir()
    monkeypatch.setattr(app_module, 'DATA_DIR', str(data_dir))
    return str(data_dir)
