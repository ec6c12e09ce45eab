"""
Tests for `repositories/instance_repository.py`.

Covers contract rules:
- A row holding only one of id/token maps to a record without a usable
  instance, flagged as stale and still occupied.
- claim_instance only writes a row where both id and token are empty.
"""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from repositories.instance_repository import claim_instance, get_instance_record
from tests.fakes import AGENT_ID, FakeSupabase

NOW = datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    "stored",
    [
        {"instance_id": "inst-stale"},
        {"instance_token": "tok-stale"},
    ],
)
def test_partial_row_is_stale_and_occupied(db: FakeSupabase, stored: dict) -> None:
    db.profile_row(AGENT_ID).update(stored)

    record = get_instance_record(db, AGENT_ID)

    assert record is not None
    assert record.has_instance is False
    assert record.stale_credentials is True
    assert record.is_occupied is True


def test_empty_row_is_free(db: FakeSupabase) -> None:
    record = get_instance_record(db, AGENT_ID)

    assert record is not None
    assert record.is_occupied is False


@pytest.mark.parametrize(
    "stored",
    [
        {"instance_id": "inst-stale"},
        {"instance_token": "tok-stale"},
    ],
)
def test_claim_refuses_partially_filled_row(db: FakeSupabase, stored: dict) -> None:
    db.profile_row(AGENT_ID).update(stored)

    claimed = claim_instance(
        db,
        AGENT_ID,
        instance_id="inst-1",
        instance_token="tok-1",
        instance_name="zapcrojoaosilva2345",
        updated_at=NOW,
    )

    assert claimed is False
    row = db.profile_row(AGENT_ID)
    assert row["instance_id"] == stored.get("instance_id")
    assert row["instance_token"] == stored.get("instance_token")


def test_claim_stores_on_empty_row(db: FakeSupabase) -> None:
    claimed = claim_instance(
        db,
        AGENT_ID,
        instance_id="inst-1",
        instance_token="tok-1",
        instance_name="zapcrojoaosilva2345",
        updated_at=NOW,
    )

    assert claimed is True
    assert db.profile_row(AGENT_ID)["instance_token"] == "tok-1"
