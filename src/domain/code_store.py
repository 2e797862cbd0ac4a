"""
Verification code store - in-process keyed store of pending challenges.

The store is the sole owner of the email -> VerificationRecord mapping.
Every read and write goes through one lock, so operations on the same
email are linearized and the background sweep never observes a
half-written record.

Record lifecycle
================

    NO_RECORD -> PENDING            (issue)
    PENDING   -> PENDING            (INVALID_CODE, attempts_used += 1)
    PENDING   -> fresh PENDING      (issue again: code, expiry and attempts reset)
    PENDING   -> fresh PENDING      (reissue: new code, expiry and attempts, same payload)
    PENDING   -> CONFIRMED          (correct code, record deleted)
    PENDING   -> EXPIRED            (lookup or sweep after expires_at, record deleted)
    PENDING   -> EXHAUSTED          (submission once attempts_used hit the ceiling, record deleted)

Records live in process memory only and do not survive a restart.
"""

import logging
import secrets
import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from .payloads import PendingPayload
from .ports import Purpose, VerificationOutcome, VerifyResult

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def normalize_email(email: str) -> str:
    """
    Normalize email address for consistent storage and lookup.

    Applies: strip whitespace + lowercase
    """
    return email.strip().lower()


@dataclass
class VerificationRecord:
    """One pending, single-use verification challenge."""

    email: str
    code: str
    purpose: Purpose
    expires_at: datetime
    payload: PendingPayload | None = None
    attempts_used: int = 0

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at


class VerificationCodeStore:
    """
    Keyed store of pending verification records.

    Construct one per process and hand it to the services that need it.
    The periodic sweep only runs between start() and stop(); sweep() can
    also be called directly.
    """

    def __init__(
        self,
        ttl_seconds: int = 300,
        max_attempts: int = 3,
        code_length: int = 6,
        sweep_interval_seconds: float = 300,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        """
        Initialize an empty store.

        Args:
            ttl_seconds: Lifetime of an issued code
            max_attempts: Wrong submissions tolerated before the record is invalidated
            code_length: Number of digits in a generated code
            sweep_interval_seconds: Delay between background sweeps
            clock: Returns the current aware datetime; injectable for tests
        """
        self.ttl = timedelta(seconds=ttl_seconds)
        self.max_attempts = max_attempts
        self.code_length = code_length
        self.sweep_interval_seconds = sweep_interval_seconds
        self._clock = clock
        self._records: dict[str, VerificationRecord] = {}
        self._lock = threading.Lock()
        self._stop_event = threading.Event()
        self._sweeper: threading.Thread | None = None

    def issue(
        self, email: str, purpose: Purpose, payload: PendingPayload | None = None
    ) -> str:
        """
        Create a fresh record for an email, replacing any previous one.

        Args:
            email: Email address (will be normalized)
            purpose: What the code is being issued for
            payload: Data to release only after successful verification

        Returns:
            The generated code, for out-of-band delivery
        """
        key = normalize_email(email)
        code = self._generate_code()

        with self._lock:
            expires_at = self._clock() + self.ttl
            replaced = key in self._records
            self._records[key] = VerificationRecord(
                email=key,
                code=code,
                purpose=purpose,
                expires_at=expires_at,
                payload=payload,
            )

        logger.info(
            "Verification code issued for %s (purpose=%s, replaced=%s, expires_at=%s)",
            key,
            purpose.value,
            replaced,
            expires_at.isoformat(),
        )
        return code

    def reissue(self, email: str, purpose: Purpose) -> str | None:
        """
        Replace the code of a live record, keeping its purpose and payload.

        The new record gets a fresh expiry and attempt budget. Nothing is
        reissued when there is no live record for this purpose.

        Returns:
            The new code, or None if no live record matched
        """
        key = normalize_email(email)
        code = self._generate_code()

        with self._lock:
            record = self._records.get(key)
            if record is None or record.purpose is not purpose:
                return None
            now = self._clock()
            if record.is_expired(now):
                del self._records[key]
                return None
            self._records[key] = VerificationRecord(
                email=key,
                code=code,
                purpose=purpose,
                expires_at=now + self.ttl,
                payload=record.payload,
            )

        logger.info("Verification code reissued for %s (purpose=%s)", key, purpose.value)
        return code

    def peek_valid(self, email: str) -> bool:
        """Return True if a live record exists; drops it if found expired."""
        return self.pending_purpose(email) is not None

    def pending_purpose(self, email: str) -> Purpose | None:
        """Return the purpose of the live record, if any; drops it if found expired."""
        key = normalize_email(email)

        with self._lock:
            record = self._records.get(key)
            if record is None:
                return None
            if record.is_expired(self._clock()):
                del self._records[key]
                logger.debug("Expired verification record dropped on peek: %s", key)
                return None
            return record.purpose

    def challenge(
        self, email: str, submitted_code: str, purpose: Purpose | None = None
    ) -> VerificationOutcome:
        """
        Check a submitted code against the pending record.

        Checks run in this order: lookup, purpose, expiry, attempt
        ceiling, code comparison. The ceiling is checked against the
        count before this submission, so once `max_attempts` wrong codes
        have been seen the next submission is rejected even if correct.

        A purpose that differs from the stored one is treated as if no
        record existed, and the stored record is left untouched.

        Args:
            email: Email address (will be normalized)
            submitted_code: Code echoed back by the caller
            purpose: Purpose the caller expects the record to carry

        Returns:
            VerificationOutcome; the payload is set only on SUCCESS
        """
        key = normalize_email(email)

        with self._lock:
            record = self._records.get(key)

            if record is None:
                return VerificationOutcome(VerifyResult.NOT_FOUND)

            if purpose is not None and record.purpose is not purpose:
                return VerificationOutcome(VerifyResult.NOT_FOUND)

            if record.is_expired(self._clock()):
                del self._records[key]
                logger.info("Verification code expired for %s", key)
                return VerificationOutcome(VerifyResult.EXPIRED)

            if record.attempts_used >= self.max_attempts:
                del self._records[key]
                logger.warning("Verification attempts exhausted for %s", key)
                return VerificationOutcome(VerifyResult.TOO_MANY_ATTEMPTS)

            # Constant-time comparison of the ASCII digit strings
            if not secrets.compare_digest(record.code.encode(), submitted_code.encode()):
                record.attempts_used += 1
                return VerificationOutcome(VerifyResult.INVALID_CODE)

            del self._records[key]

        logger.info("Verification code confirmed for %s (purpose=%s)", key, record.purpose.value)
        return VerificationOutcome(VerifyResult.SUCCESS, payload=record.payload)

    def discard(self, email: str, code: str | None = None) -> bool:
        """
        Remove the record for an email.

        When `code` is given the record is only removed if it still holds
        that code, so a concurrent re-issue is never thrown away.

        Returns:
            True if a record was removed
        """
        key = normalize_email(email)

        with self._lock:
            record = self._records.get(key)
            if record is None or (code is not None and record.code != code):
                return False
            del self._records[key]
            return True

    def sweep(self) -> int:
        """
        Delete every record whose expiry has passed.

        Safe to call repeatedly; records already gone are simply skipped.

        Returns:
            Number of records removed
        """
        with self._lock:
            now = self._clock()
            expired = [key for key, record in self._records.items() if record.is_expired(now)]
            for key in expired:
                del self._records[key]

        if expired:
            logger.info("Sweep removed %d expired verification record(s)", len(expired))
        return len(expired)

    def start(self) -> None:
        """Start the periodic background sweep. No-op if already running."""
        if self._sweeper is not None and self._sweeper.is_alive():
            return

        self._stop_event.clear()
        self._sweeper = threading.Thread(
            target=self._run_sweeper, name="verification-sweeper", daemon=True
        )
        self._sweeper.start()
        logger.info("Verification sweeper started (interval=%ss)", self.sweep_interval_seconds)

    def stop(self, timeout: float | None = 5.0) -> None:
        """Stop the periodic background sweep and wait for it to exit."""
        self._stop_event.set()
        if self._sweeper is not None:
            self._sweeper.join(timeout)
            self._sweeper = None
            logger.info("Verification sweeper stopped")

    @property
    def running(self) -> bool:
        return self._sweeper is not None and self._sweeper.is_alive()

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def _run_sweeper(self) -> None:
        while not self._stop_event.wait(self.sweep_interval_seconds):
            try:
                self.sweep()
            except Exception:
                # Keep the sweeper alive; the next interval retries
                logger.exception("Verification sweep failed")

    def _generate_code(self) -> str:
        """
        Generate a uniformly distributed numeric code.

        Returns string to preserve leading zeros.
        """
        return f"{secrets.randbelow(10**self.code_length):0{self.code_length}d}"
