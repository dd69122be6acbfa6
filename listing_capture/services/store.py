"""
Keyed store of in-flight captures, one per channel address.

CaptureStore is the interface the rest of the app talks to, so a durable
backend can replace the in-memory one. Callers serialize work on one
address with lock_for(address); the sweep skips addresses whose lock is held.
"""
import asyncio
import logging
from datetime import datetime
from typing import Optional

from listing_capture.models.record import CaptureRecord, CaptureState, utcnow

logger = logging.getLogger(__name__)


class CaptureStore:
    def get(self, address: str) -> Optional[CaptureRecord]:
        raise NotImplementedError

    def put(self, record: CaptureRecord):
        raise NotImplementedError

    def delete(self, address: str):
        raise NotImplementedError

    def all(self) -> list[CaptureRecord]:
        raise NotImplementedError

    def sweep(self, now: Optional[datetime] = None) -> list[str]:
        """Remove expired records. Returns the evicted addresses."""
        raise NotImplementedError

    def lock_for(self, address: str) -> asyncio.Lock:
        raise NotImplementedError

    def get_or_create(self, address: str, owner_id: Optional[str] = None, channel: str = "whatsapp") -> tuple[CaptureRecord, bool]:
        """The only creation path. Returns (record, created).

        A completed capture has already been handed off, so the next
        message from that address starts a new one.
        """
        record = self.get(address)
        if record is not None and record.state != CaptureState.COMPLETED:
            return record, False

        record = CaptureRecord.create(address, owner_id=owner_id, channel=channel)
        self.put(record)
        logger.info(f"New capture {record.id} for {address} via {channel}")
        return record, True


class InMemoryCaptureStore(CaptureStore):
    def __init__(self):
        self._records: dict[str, CaptureRecord] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def get(self, address: str) -> Optional[CaptureRecord]:
        return self._records.get(address)

    def put(self, record: CaptureRecord):
        self._records[record.channel_address] = record

    def delete(self, address: str):
        self._records.pop(address, None)
        lock = self._locks.get(address)
        if lock is not None and not lock.locked():
            del self._locks[address]

    def all(self) -> list[CaptureRecord]:
        return list(self._records.values())

    def lock_for(self, address: str) -> asyncio.Lock:
        lock = self._locks.get(address)
        if lock is None:
            lock = self._locks[address] = asyncio.Lock()
        return lock

    def sweep(self, now: Optional[datetime] = None) -> list[str]:
        now = now or utcnow()
        evicted = []

        for address, record in list(self._records.items()):
            if not record.is_expired(now):
                continue
            lock = self._locks.get(address)
            if lock is not None and lock.locked():
                # Mid-update; the next sweep gets it if it stays idle
                continue
            self.delete(address)
            evicted.append(address)
            logger.debug(f"Expired capture {record.id} removed for {address}")

        if evicted:
            logger.info(f"Sweep removed {len(evicted)} expired captures")
        return evicted


capture_store = InMemoryCaptureStore()
