# scheduling/core/locks.py
"""
Write-path serialization for availability and booking writes.

Every read-check-write unit runs inside write_transaction(), which holds:
  * an in-process lock striped by key (threads of one worker), and
  * on PostgreSQL, a transaction-scoped advisory lock per key (all workers).

Keys define the contention domains:
  ("booking", provider, date)         - booking inserts and time checks
  ("weekly_rule", provider, weekday)  - recurring rule writes
  ("override", provider, date)        - date override writes
"""
from contextlib import contextmanager
from datetime import date
from typing import Iterator, Sequence, Tuple
import hashlib
import logging
import threading

from sqlalchemy import text
from sqlalchemy.orm import Session

from scheduling.config.settings import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()

LockKey = Tuple[str, ...]


def booking_lock_key(provider_id, scheduled_date: date) -> LockKey:
    return ("booking", str(provider_id), scheduled_date.isoformat())


def weekly_rule_lock_key(provider_id, day_of_week: int) -> LockKey:
    return ("weekly_rule", str(provider_id), str(day_of_week))


def override_lock_key(provider_id, override_date: date) -> LockKey:
    return ("override", str(provider_id), override_date.isoformat())


def _key_hash(key: LockKey) -> int:
    """Stable signed 64-bit hash, usable as a pg advisory lock id"""
    digest = hashlib.blake2b(":".join(key).encode("utf-8"), digest_size=8).digest()
    return int.from_bytes(digest, "big", signed=True)


class StripedLock:
    """A fixed pool of threading locks addressed by key hash"""

    def __init__(self, stripes: int):
        self._locks = [threading.Lock() for _ in range(stripes)]

    def stripe_for(self, key: LockKey) -> int:
        return _key_hash(key) % len(self._locks)

    @contextmanager
    def hold(self, keys: Sequence[LockKey]) -> Iterator[None]:
        # Fixed acquisition order so two writers never wait on each other in a cycle
        stripes = sorted({self.stripe_for(key) for key in keys})
        acquired = []
        try:
            for stripe in stripes:
                self._locks[stripe].acquire()
                acquired.append(stripe)
            yield
        finally:
            for stripe in reversed(acquired):
                self._locks[stripe].release()


_striped_lock = StripedLock(settings.LOCK_STRIPES)


def _take_advisory_locks(db: Session, keys: Sequence[LockKey]) -> None:
    if db.get_bind().dialect.name != "postgresql":
        return
    for key_id in sorted({_key_hash(key) for key in keys}):
        db.execute(text("SELECT pg_advisory_xact_lock(:key_id)"), {"key_id": key_id})


@contextmanager
def write_transaction(db: Session, *keys: LockKey) -> Iterator[Session]:
    """
    Run one atomic write unit under the given lock keys.

    Commits on success. Any exception rolls the whole unit back and is
    re-raised, so a rejected write never leaves partial state behind.
    """
    with _striped_lock.hold(keys):
        # Re-read rows inside the lock instead of trusting identity-map copies
        db.expire_all()
        try:
            _take_advisory_locks(db, keys)
            yield db
            db.commit()
        except Exception:
            db.rollback()
            logger.debug(f"Rolled back write transaction for {list(keys)}")
            raise
