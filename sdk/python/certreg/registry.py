"""
The certificate registry store.

Records are keyed by identity and never deleted. A record's status only
moves ACTIVE -> SUSPENDED; validity additionally requires the evaluation
time to be strictly before the expiration date.

All reads and writes of the record map happen under one lock, so a
create racing another create for the same identity sees exactly one
winner, and verify always observes a whole record.
"""

from __future__ import annotations

import enum
import threading
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Dict, List, Optional

import structlog

from .errors import CertificateNotFound, DuplicateCertificate, InvalidIdentity
from .events import CertificateCreated
from .identity import (
    DEFAULT_MAX_FIELD_LENGTH,
    CertificateFields,
    identity_hex,
    parse_identity,
    validate_fields,
    validate_timestamp,
)

if TYPE_CHECKING:
    from .config import RegistrySettings

logger = structlog.get_logger("certreg.registry")

Clock = Callable[[], int]
Listener = Callable[[CertificateCreated], None]


def system_clock() -> int:
    return int(time.time())


class CertificateStatus(str, enum.Enum):
    ACTIVE = "active"
    SUSPENDED = "suspended"


@dataclass
class CertificateRecord:
    identity: bytes
    expiration_date: int
    created_at: int
    fields: Optional[CertificateFields] = None
    status: CertificateStatus = CertificateStatus.ACTIVE

    def is_valid(self, now: int) -> bool:
        return self.status is CertificateStatus.ACTIVE and now < self.expiration_date


class CertificateRegistry:
    def __init__(
        self,
        clock: Clock = system_clock,
        on_duplicate: str = "reject",
        max_field_length: int = DEFAULT_MAX_FIELD_LENGTH,
    ):
        if on_duplicate not in ("reject", "overwrite"):
            raise ValueError(f"Unknown duplicate policy: {on_duplicate!r}")
        self.clock = clock
        self.on_duplicate = on_duplicate
        self.max_field_length = max_field_length
        self._records: Dict[bytes, CertificateRecord] = {}
        self._listeners: List[Listener] = []
        self._lock = threading.RLock()

    @classmethod
    def from_settings(cls, settings: RegistrySettings, clock: Clock = system_clock) -> CertificateRegistry:
        return cls(
            clock=clock,
            on_duplicate=settings.on_duplicate,
            max_field_length=settings.max_field_length,
        )

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def __contains__(self, identity: object) -> bool:
        try:
            key = parse_identity(identity)  # type: ignore[arg-type]
        except InvalidIdentity:
            return False
        with self._lock:
            return key in self._records

    # ─────────────────────────────────────────────
    # Notifications
    # ─────────────────────────────────────────────

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        self._listeners.remove(listener)

    def _notify(self, event: CertificateCreated) -> None:
        # listeners run after the lock is released; the record is already
        # committed and a failing listener does not undo it
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception(
                    "listener_failed",
                    identity=identity_hex(event.identity),
                    listener=getattr(listener, "__name__", type(listener).__name__),
                )

    # ─────────────────────────────────────────────
    # Mutations
    # ─────────────────────────────────────────────

    def create(
        self,
        first_name: str,
        last_name: str,
        organization_name: str,
        issue_date: int,
        expiration_date: int,
        effects: Optional[List[CertificateCreated]] = None,
    ) -> bytes:
        """
        Register a certificate and return its identity.

        Raises CertificateValidationError for malformed fields and
        DuplicateCertificate when the identity is already registered
        (unless the registry overwrites duplicates). The resulting
        CertificateCreated is appended to ``effects`` when a list is
        passed, and delivered to every subscribed listener.
        """
        fields = validate_fields(
            first_name,
            last_name,
            organization_name,
            issue_date,
            expiration_date,
            max_field_length=self.max_field_length,
        )
        return self._insert(fields.identity(), fields.expiration_date, fields, effects)

    def register_certificate(
        self,
        identity: bytes | str,
        expiration_date: int,
        effects: Optional[List[CertificateCreated]] = None,
    ) -> bytes:
        """
        Reduced-shape registration: the caller supplies the identity and
        only the expiration date is stored.
        """
        key = parse_identity(identity)
        validate_timestamp("expiration_date", expiration_date)
        return self._insert(key, expiration_date, None, effects)

    def _insert(
        self,
        identity: bytes,
        expiration_date: int,
        fields: Optional[CertificateFields],
        effects: Optional[List[CertificateCreated]],
    ) -> bytes:
        with self._lock:
            existing = self._records.get(identity)
            status = CertificateStatus.ACTIVE
            if existing is not None:
                if self.on_duplicate == "reject":
                    logger.warning("certificate_duplicate_rejected", identity=identity_hex(identity))
                    raise DuplicateCertificate(identity)
                # an overwrite replaces data, never a suspension
                status = existing.status
                logger.warning(
                    "certificate_overwritten",
                    identity=identity_hex(identity),
                    status=status.value,
                )

            record = CertificateRecord(
                identity=identity,
                expiration_date=expiration_date,
                created_at=self.clock(),
                fields=fields,
                status=status,
            )
            self._records[identity] = record

        event = CertificateCreated(
            identity=identity,
            expiration_date=expiration_date,
            created_at=record.created_at,
            fields=fields,
        )
        logger.info(
            "certificate_created",
            identity=identity_hex(identity),
            expiration_date=expiration_date,
        )
        if effects is not None:
            effects.append(event)
        self._notify(event)
        return identity

    def suspend(self, identity: bytes | str) -> None:
        """
        Suspend a certificate. Idempotent; there is no way back to ACTIVE.
        """
        key = parse_identity(identity)
        with self._lock:
            record = self._records.get(key)
            if record is None:
                logger.warning("certificate_suspend_unknown", identity=identity_hex(key))
                raise CertificateNotFound(key)
            already = record.status is CertificateStatus.SUSPENDED
            record.status = CertificateStatus.SUSPENDED

        if already:
            logger.debug("certificate_already_suspended", identity=identity_hex(key))
        else:
            logger.info("certificate_suspended", identity=identity_hex(key))

    # ─────────────────────────────────────────────
    # Queries
    # ─────────────────────────────────────────────

    def verify(self, identity: bytes | str, now: Optional[int] = None) -> bool:
        """
        True iff the record exists, is ACTIVE and now < expiration_date.
        Never raises: anything that names no record is simply not valid.
        """
        try:
            key = parse_identity(identity)
        except InvalidIdentity:
            return False
        if now is None:
            now = self.clock()
        with self._lock:
            record = self._records.get(key)
            return record is not None and record.is_valid(now)

    def get_record(self, identity: bytes | str) -> CertificateRecord:
        key = parse_identity(identity)
        with self._lock:
            record = self._records.get(key)
            if record is None:
                raise CertificateNotFound(key)
            # callers get a snapshot; status changes go through suspend()
            return CertificateRecord(
                identity=record.identity,
                expiration_date=record.expiration_date,
                created_at=record.created_at,
                fields=record.fields,
                status=record.status,
            )

    def status_of(self, identity: bytes | str, now: Optional[int] = None) -> str:
        """One of "valid", "expired", "suspended" or "unknown"."""
        try:
            record = self.get_record(identity)
        except (CertificateNotFound, InvalidIdentity):
            return "unknown"
        if record.status is CertificateStatus.SUSPENDED:
            return "suspended"
        if now is None:
            now = self.clock()
        return "valid" if record.is_valid(now) else "expired"

    # hash-addressed names used alongside the credential-addressed facade
    verify_by_hash = verify
    suspend_by_hash = suspend

    # reduced-shape names
    verify_certificate = verify
    suspend_certificate = suspend
