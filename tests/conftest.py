from datetime import datetime, timedelta, timezone

import pytest

from marginalia.application.config import SchedulerSettings
from marginalia.application.scheduler import FSRSScheduler, default_scheduler
from marginalia.domain.review.models import Card, CardMemoryState, CardState

NOW = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def mock_home(tmp_path, monkeypatch):
    """Mocks Path.home() to point to a temp dir."""
    home = tmp_path / "home"
    home.mkdir()

    # Isolate from any real config file and MARGINALIA_* variables
    monkeypatch.setenv("HOME", str(home))
    for key in ("REQUEST_RETENTION", "MAXIMUM_INTERVAL", "ENABLE_FUZZ"):
        monkeypatch.delenv(f"MARGINALIA_{key}", raising=False)
    return home


@pytest.fixture(autouse=True)
def reset_default_scheduler():
    default_scheduler.cache_clear()
    yield
    default_scheduler.cache_clear()


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def no_fuzz_scheduler(mock_home):
    return FSRSScheduler(SchedulerSettings(enable_fuzz=False))


@pytest.fixture
def fuzz_scheduler(mock_home):
    return FSRSScheduler(SchedulerSettings(enable_fuzz=True))


def make_state(**overrides) -> CardMemoryState:
    """A card in review, last seen 10 days ago and due now."""
    fields = dict(
        stability=10.0,
        difficulty=5.0,
        elapsed_days=10,
        scheduled_days=10,
        reps=5,
        lapses=0,
        state=CardState.REVIEW,
        due=NOW,
        last_review=NOW - timedelta(days=10),
    )
    fields.update(overrides)
    return CardMemoryState(**fields)


def make_new_state(**overrides) -> CardMemoryState:
    fields = dict(
        stability=0.0,
        difficulty=0.0,
        elapsed_days=0,
        scheduled_days=0,
        reps=0,
        lapses=0,
        state=CardState.NEW,
        due=NOW,
        last_review=None,
    )
    fields.update(overrides)
    return CardMemoryState(**fields)


def make_card(card_id: str, **overrides) -> Card:
    return Card(id=card_id, memory=make_state(**overrides), question=f"Q {card_id}", answer=f"A {card_id}")
