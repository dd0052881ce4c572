import sys
from datetime import date, datetime
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from shiftpay.models import Cadence, Profile
from shiftpay.shift_manager import ShiftManager
from shiftpay.storage import DataStore

NOW = datetime(2024, 1, 10, 12, 0)


def fixed_clock() -> datetime:
    return NOW


@pytest.fixture
def store():
    return DataStore.from_url("sqlite://")


@pytest.fixture
def profile(store):
    profile = Profile(
        id="owner-1",
        name="Sam",
        cadence=Cadence.BIWEEKLY,
        reference_date=date(2024, 1, 1),
        base_rate_cents=2000,
    )
    store.save(profile)
    return profile


@pytest.fixture
def manager(store, profile):
    return ShiftManager(store, clock=fixed_clock)
