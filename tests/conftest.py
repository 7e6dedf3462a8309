"""Shared fixtures."""

from datetime import datetime, timedelta

import pytest

from dialdesk.db.repository import Repository
from dialdesk.models import Lead


@pytest.fixture
def repo(tmp_path):
    """Repository over a throwaway SQLite file."""
    repository = Repository(f"sqlite:///{tmp_path / 'dialdesk-test.db'}")
    repository.init_db()
    yield repository
    repository.engine.dispose()


@pytest.fixture
def make_lead():
    """Factory for leads with distinct, ordered creation times."""
    base = datetime(2026, 3, 2, 9, 0, 0)
    counter = {"n": 0}

    def _make(**fields) -> Lead:
        counter["n"] += 1
        fields.setdefault("business_name", f"Business {counter['n']}")
        fields.setdefault("phone_number", f"0113 496 {counter['n']:04d}")
        fields.setdefault("created_at", base + timedelta(minutes=counter["n"]))
        fields.setdefault("updated_at", fields["created_at"])
        return Lead(**fields)

    return _make
