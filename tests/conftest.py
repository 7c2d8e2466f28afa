import pytest

from anamnesis.application.clock import fixed_clock
from anamnesis.application.scheduler import Scheduler
from anamnesis.domain.constants import MS_PER_DAY

# 2024-03-01 12:00:00 UTC
NOW = 1_709_294_400_000


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def scheduler():
    """Scheduler frozen at NOW."""
    return Scheduler(clock=fixed_clock(NOW))


@pytest.fixture
def days_ago():
    def _days_ago(n: float) -> int:
        return NOW - int(n * MS_PER_DAY)

    return _days_ago


@pytest.fixture
def data_dir(tmp_path):
    """Temporary data directory for the JSON store."""
    d = tmp_path / "data"
    d.mkdir()
    return d


@pytest.fixture
def mock_home(tmp_path, monkeypatch):
    """Mocks Path.home() to point to a temp dir."""
    home = tmp_path / "home"
    home.mkdir()

    # Mocking HOME to a temp directory to isolate config
    monkeypatch.setenv("HOME", str(home))
    return home
