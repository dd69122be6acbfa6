"""Tests for store.py - in-memory capture store and expiry sweep."""
from datetime import timedelta

import pytest

from listing_capture.models.record import CAPTURE_TTL_HOURS, CaptureRecord, CaptureState, utcnow
from listing_capture.services.store import InMemoryCaptureStore


@pytest.fixture
def store():
    return InMemoryCaptureStore()


class TestGetOrCreate:

    def test_creates_once_per_address(self, store):
        first, created = store.get_or_create("569111")
        again, created_again = store.get_or_create("569111")

        assert created is True
        assert created_again is False
        assert again is first

    def test_new_record_defaults(self, store):
        record, _ = store.get_or_create("569111", owner_id="Ana", channel="callbell")

        assert record.state == CaptureState.INITIAL
        assert record.owner_id == "Ana"
        assert record.channel == "callbell"
        assert record.missing_required_fields == {"price", "area", "bathrooms", "address"}

    def test_owner_defaults_to_address(self, store):
        record, _ = store.get_or_create("569222")
        assert record.owner_id == "569222"

    def test_completed_capture_is_replaced(self, store):
        record, _ = store.get_or_create("569111")
        record.transition(CaptureState.COMPLETED)
        store.put(record)

        fresh, created = store.get_or_create("569111")

        assert created is True
        assert fresh.id != record.id
        assert store.get("569111") is fresh

    def test_addresses_are_independent(self, store):
        a, _ = store.get_or_create("569111")
        b, _ = store.get_or_create("569222")

        assert a.id != b.id
        assert len(store.all()) == 2


class TestExpiry:

    def test_touch_pushes_expiry(self):
        record = CaptureRecord.create("569111")
        later = utcnow() + timedelta(hours=5)

        record.touch(later)

        assert record.updated_at == later
        assert record.expires_at == later + timedelta(hours=CAPTURE_TTL_HOURS)

    def test_transition_refreshes_expiry_and_history(self):
        record = CaptureRecord.create("569111")
        before = record.expires_at

        record.transition(CaptureState.RECEIVING)

        assert record.expires_at >= before
        assert record.state_history[-1].state == CaptureState.RECEIVING
        assert record.state_history[-1].at == record.updated_at

    def test_sweep_removes_idle_records(self, store):
        stale, _ = store.get_or_create("569111")
        fresh, _ = store.get_or_create("569222")
        stale.touch(utcnow() - timedelta(hours=CAPTURE_TTL_HOURS + 1))

        evicted = store.sweep()

        assert evicted == ["569111"]
        assert store.get("569111") is None
        assert store.get("569222") is fresh

    def test_sweep_with_explicit_now(self, store):
        store.get_or_create("569111")

        future = utcnow() + timedelta(hours=CAPTURE_TTL_HOURS + 1)

        assert store.sweep(future) == ["569111"]
        assert store.all() == []

    def test_sweep_nothing_expired(self, store):
        store.get_or_create("569111")
        assert store.sweep() == []

    @pytest.mark.asyncio
    async def test_sweep_skips_locked_records(self, store):
        record, _ = store.get_or_create("569111")
        record.touch(utcnow() - timedelta(hours=CAPTURE_TTL_HOURS + 1))

        async with store.lock_for("569111"):
            assert store.sweep() == []
            assert store.get("569111") is record

        assert store.sweep() == ["569111"]

    @pytest.mark.asyncio
    async def test_same_lock_per_address(self, store):
        assert store.lock_for("569111") is store.lock_for("569111")
        assert store.lock_for("569111") is not store.lock_for("569222")


class TestScheduler:

    @pytest.mark.asyncio
    async def test_sweep_job_registered(self):
        from listing_capture.services import scheduler_service

        scheduler_service.start_scheduler()
        try:
            job = scheduler_service.scheduler.get_job("capture_expiry_sweep")
            assert job is not None
        finally:
            scheduler_service.stop_scheduler()

    @pytest.mark.asyncio
    async def test_sweep_errors_are_contained(self):
        from unittest.mock import patch
        from listing_capture.services.scheduler_service import sweep_expired_captures
        from listing_capture.services.store import capture_store

        with patch.object(capture_store, "sweep", side_effect=RuntimeError("boom")):
            assert await sweep_expired_captures() == []
