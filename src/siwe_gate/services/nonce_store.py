"""Single-use challenge nonce storage.

A nonce is looked up by value only. ``validate`` reports an explicit state
instead of leaving callers to compare timestamps, and ``consume`` is the one
compare-and-swap that turns a live nonce into a consumed one. Expiry is
passive: an expired record reads as ``EXPIRED`` whether or not a sweep ran.
"""

from __future__ import annotations

import abc
import enum
import logging
import secrets
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from threading import Lock

from sqlalchemy import delete, false, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from siwe_gate.core.errors import InternalFault
from siwe_gate.core.settings import settings
from siwe_gate.db.time import Clock, ensure_utc, utcnow
from siwe_gate.models import AuthNonce

logger = logging.getLogger(__name__)

NONCE_NUM_BYTES = 16
_MAX_ISSUE_ATTEMPTS = 5


class NonceState(enum.Enum):
    """Outcome of looking a nonce up."""

    LIVE = "live"
    EXPIRED = "expired"
    CONSUMED = "consumed"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class NonceRecord:
    """Snapshot of a stored nonce."""

    value: str
    address: str
    issued_at: datetime
    expires_at: datetime
    consumed: bool = False

    def state_at(self, now: datetime) -> NonceState:
        if self.consumed:
            return NonceState.CONSUMED
        if now >= self.expires_at:
            return NonceState.EXPIRED
        return NonceState.LIVE


@dataclass(frozen=True)
class NonceLookup:
    """Tagged result of :meth:`NonceStore.validate`."""

    state: NonceState
    record: NonceRecord | None = None

    @property
    def is_live(self) -> bool:
        return self.state is NonceState.LIVE


def generate_nonce(num_bytes: int = NONCE_NUM_BYTES) -> str:
    """Return a hex nonce with ``num_bytes`` bytes of entropy.

    Hex keeps the value alphanumeric, which EIP-4361 requires.
    """
    return secrets.token_hex(num_bytes)


class NonceStore(abc.ABC):
    """Owns every nonce record; no other component mutates them."""

    def __init__(self, ttl_seconds: int, clock: Clock | None = None) -> None:
        if ttl_seconds <= 0:
            raise ValueError("Nonce TTL must be positive")
        self.ttl = timedelta(seconds=ttl_seconds)
        self._clock = clock or utcnow

    def now(self) -> datetime:
        return self._clock()

    def _new_record(self, address: str) -> NonceRecord:
        issued_at = self.now()
        return NonceRecord(
            value=generate_nonce(),
            address=address.lower(),
            issued_at=issued_at,
            expires_at=issued_at + self.ttl,
        )

    @abc.abstractmethod
    def issue(self, address: str) -> NonceRecord:
        """Create and store a fresh nonce for ``address``."""

    @abc.abstractmethod
    def validate(self, value: str) -> NonceLookup:
        """Look a nonce up by value and report its state."""

    @abc.abstractmethod
    def consume(self, value: str) -> bool:
        """Mark a live nonce consumed; True only for the caller that flipped it."""

    @abc.abstractmethod
    def sweep(self) -> int:
        """Delete expired records and return how many were removed."""


class InMemoryNonceStore(NonceStore):
    """Process-local store guarded by a single lock."""

    def __init__(self, ttl_seconds: int, clock: Clock | None = None) -> None:
        super().__init__(ttl_seconds, clock)
        self._records: dict[str, NonceRecord] = {}
        self._lock = Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def issue(self, address: str) -> NonceRecord:
        with self._lock:
            record = self._new_record(address)
            while record.value in self._records:
                record = self._new_record(address)
            self._records[record.value] = record
        logger.debug("Issued nonce %s… for %s", record.value[:8], record.address[:10])
        return record

    def validate(self, value: str) -> NonceLookup:
        with self._lock:
            record = self._records.get(value)
        if record is None:
            return NonceLookup(NonceState.NOT_FOUND)
        return NonceLookup(record.state_at(self.now()), record)

    def consume(self, value: str) -> bool:
        now = self.now()
        with self._lock:
            record = self._records.get(value)
            if record is None or record.state_at(now) is not NonceState.LIVE:
                return False
            self._records[value] = replace(record, consumed=True)
        return True

    def sweep(self) -> int:
        now = self.now()
        with self._lock:
            expired = [value for value, record in self._records.items() if now >= record.expires_at]
            for value in expired:
                del self._records[value]
        if expired:
            logger.info("Swept %d expired nonces", len(expired))
        return len(expired)


class SqlNonceStore(NonceStore):
    """Store backed by the ``auth_nonce`` table.

    ``consume`` is a conditional UPDATE; its row count decides the winner, so
    concurrent workers sharing the database cannot both consume one nonce.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        ttl_seconds: int,
        clock: Clock | None = None,
    ) -> None:
        super().__init__(ttl_seconds, clock)
        self._session_factory = session_factory

    @staticmethod
    def _to_record(row: AuthNonce) -> NonceRecord:
        return NonceRecord(
            value=row.value,
            address=row.address,
            issued_at=ensure_utc(row.issued_at),
            expires_at=ensure_utc(row.expires_at),
            consumed=bool(row.consumed),
        )

    def issue(self, address: str) -> NonceRecord:
        for _ in range(_MAX_ISSUE_ATTEMPTS):
            record = self._new_record(address)
            try:
                with self._session_factory() as session:
                    session.add(
                        AuthNonce(
                            value=record.value,
                            address=record.address,
                            issued_at=record.issued_at,
                            expires_at=record.expires_at,
                            consumed=False,
                        )
                    )
                    session.commit()
            except IntegrityError:
                logger.warning("Nonce collision on insert, regenerating")
                continue
            except SQLAlchemyError as err:
                logger.error("Failed to store nonce: %s", err)
                raise InternalFault("Nonce storage unavailable") from err
            logger.debug("Issued nonce %s… for %s", record.value[:8], record.address[:10])
            return record
        raise InternalFault("Could not allocate a unique nonce")

    def validate(self, value: str) -> NonceLookup:
        try:
            with self._session_factory() as session:
                row = session.get(AuthNonce, value)
                record = self._to_record(row) if row is not None else None
        except SQLAlchemyError as err:
            logger.error("Failed to read nonce: %s", err)
            raise InternalFault("Nonce storage unavailable") from err
        if record is None:
            return NonceLookup(NonceState.NOT_FOUND)
        return NonceLookup(record.state_at(self.now()), record)

    def consume(self, value: str) -> bool:
        stmt = (
            update(AuthNonce)
            .where(
                AuthNonce.value == value,
                AuthNonce.consumed == false(),
                AuthNonce.expires_at > self.now(),
            )
            .values(consumed=True)
        )
        try:
            with self._session_factory() as session:
                result = session.execute(stmt)
                session.commit()
        except SQLAlchemyError as err:
            logger.error("Failed to consume nonce: %s", err)
            raise InternalFault("Nonce storage unavailable") from err
        return result.rowcount == 1

    def sweep(self) -> int:
        stmt = delete(AuthNonce).where(AuthNonce.expires_at <= self.now())
        try:
            with self._session_factory() as session:
                result = session.execute(stmt)
                session.commit()
        except SQLAlchemyError as err:
            logger.error("Failed to sweep nonces: %s", err)
            raise InternalFault("Nonce storage unavailable") from err
        removed = int(result.rowcount or 0)
        if removed:
            logger.info("Swept %d expired nonces", removed)
        return removed


_nonce_store: NonceStore | None = None
_store_lock = Lock()


def build_nonce_store() -> NonceStore:
    """Construct the store selected by ``NONCE_BACKEND``."""
    if settings.nonce_backend == "sql":
        from siwe_gate.db.session import SessionLocal, create_tables

        create_tables()
        return SqlNonceStore(SessionLocal, settings.nonce_ttl_seconds)
    return InMemoryNonceStore(settings.nonce_ttl_seconds)


def get_nonce_store() -> NonceStore:
    """Return the process-wide nonce store, creating it on first use."""
    global _nonce_store
    with _store_lock:
        if _nonce_store is None:
            _nonce_store = build_nonce_store()
        return _nonce_store
