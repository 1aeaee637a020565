"""
Registration storage
====================
The two store regions behind the registration protocol:

- pending region: short-lived PendingRegistration rows, keyed by phone
- identity region: durable VerifiedIdentity rows, keyed by phone

Both regions are reached through one RegistrationStore client, built once per
process from an explicit RegistrationStoreConfig and handed to the services.
"""

import dataclasses
import functools
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from django.db import DatabaseError, transaction
from django.db.models import F
from django.utils import timezone

from .exceptions import StoreError, StoreWriteError
from .models import PendingRegistration, VerifiedIdentity

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegistrationStoreConfig:
    """Where the two store regions live."""
    pending_db: str = 'default'
    identity_db: str = 'default'
    region: str = 'local'
    backend: str = 'database'  # database | memory

    @classmethod
    def from_settings(cls) -> 'RegistrationStoreConfig':
        conf = getattr(settings, 'REGISTRATION_STORE', {})
        return cls(
            pending_db=conf.get('PENDING_DB', 'default'),
            identity_db=conf.get('IDENTITY_DB', 'default'),
            region=conf.get('REGION', 'local'),
            backend=conf.get('BACKEND', 'database'),
        )


@dataclass
class PendingRecord:
    phone: str
    identity_key: str
    code: str
    expires_at: datetime
    created_at: datetime = field(default_factory=timezone.now)
    attempts: int = 0

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return (now or timezone.now()) >= self.expires_at


@dataclass
class IdentityRecord:
    phone: str
    identity_key: str
    signed_prekey: str
    signature: str
    one_time_keys: List[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=timezone.now)


class RegistrationStore:
    """Storage client interface shared by the Initiator and the Finalizer."""

    def __init__(self, config: Optional[RegistrationStoreConfig] = None):
        self.config = config or RegistrationStoreConfig()

    # pending region
    def get_pending(self, phone: str, now: Optional[datetime] = None) -> Optional[PendingRecord]:
        """Live pending record for `phone`, or None if absent or expired."""
        raise NotImplementedError

    def put_pending(self, record: PendingRecord) -> None:
        """Write or overwrite the pending record for `record.phone`."""
        raise NotImplementedError

    def delete_pending(self, phone: str, code: Optional[str] = None,
                       now: Optional[datetime] = None) -> bool:
        """
        Conditionally delete the pending record.

        With `code`, only a record still holding that code is removed; with
        `now`, only a record not yet expired. Returns True only for the caller
        whose delete actually removed the row.
        """
        raise NotImplementedError

    def record_failed_attempt(self, phone: str, code: str, max_attempts: int,
                              now: Optional[datetime] = None) -> int:
        """
        Count a wrong code against the live record still holding `code`;
        drop it once `max_attempts` is reached. A record replaced by a newer
        initiate, or already expired, is left alone and 0 is returned.
        """
        raise NotImplementedError

    def purge_expired(self, now: Optional[datetime] = None) -> int:
        raise NotImplementedError

    # identity region
    def get_identity(self, phone: str) -> Optional[IdentityRecord]:
        raise NotImplementedError

    def put_identity(self, record: IdentityRecord) -> None:
        """Write or overwrite the verified identity for `record.phone`."""
        raise NotImplementedError

    def consume_and_commit(self, pending: PendingRecord, identity: IdentityRecord,
                           now: Optional[datetime] = None) -> bool:
        """
        Consume `pending` and write `identity`.

        The conditional delete of the pending record is the commit point: if
        another caller consumed it first, nothing is written and False is
        returned.
        """
        if not self.delete_pending(pending.phone, code=pending.code, now=now):
            return False
        self.put_identity(identity)
        return True


class DatabaseRegistrationStore(RegistrationStore):
    """Both regions as Django models; each region may live on its own database alias."""

    def _pending(self):
        return PendingRegistration.objects.using(self.config.pending_db)

    def _identities(self):
        return VerifiedIdentity.objects.using(self.config.identity_db)

    def get_pending(self, phone, now=None):
        now = now or timezone.now()
        try:
            row = self._pending().filter(phone=phone, expires_at__gt=now).first()
        except DatabaseError as exc:
            raise StoreError(f'Pending lookup failed: {exc}') from exc
        if row is None:
            return None
        return PendingRecord(
            phone=row.phone,
            identity_key=row.identity_key,
            code=row.code,
            expires_at=row.expires_at,
            created_at=row.created_at,
            attempts=row.attempts,
        )

    def put_pending(self, record):
        try:
            self._pending().update_or_create(
                phone=record.phone,
                defaults={
                    'identity_key': record.identity_key,
                    'code': record.code,
                    'attempts': record.attempts,
                    'created_at': record.created_at,
                    'expires_at': record.expires_at,
                }
            )
        except DatabaseError as exc:
            raise StoreWriteError(f'Pending write failed: {exc}') from exc

    def delete_pending(self, phone, code=None, now=None):
        qs = self._pending().filter(phone=phone)
        if code is not None:
            qs = qs.filter(code=code)
        if now is not None:
            qs = qs.filter(expires_at__gt=now)
        try:
            # Single DELETE ... WHERE: only one concurrent caller sees a row removed
            deleted_count, _ = qs.delete()
        except DatabaseError as exc:
            raise StoreWriteError(f'Pending delete failed: {exc}') from exc
        return deleted_count > 0

    def record_failed_attempt(self, phone, code, max_attempts, now=None):
        now = now or timezone.now()
        try:
            with transaction.atomic(using=self.config.pending_db):
                qs = self._pending().filter(phone=phone, code=code, expires_at__gt=now)
                if not qs.update(attempts=F('attempts') + 1):
                    return 0
                attempts = qs.values_list('attempts', flat=True).first() or 0
                if attempts >= max_attempts:
                    qs.delete()
        except DatabaseError as exc:
            raise StoreWriteError(f'Attempt counter update failed: {exc}') from exc
        return attempts

    def purge_expired(self, now=None):
        now = now or timezone.now()
        try:
            deleted_count, _ = self._pending().filter(expires_at__lte=now).delete()
        except DatabaseError as exc:
            raise StoreWriteError(f'Pending purge failed: {exc}') from exc
        return deleted_count

    def get_identity(self, phone):
        try:
            row = self._identities().filter(phone=phone).first()
        except DatabaseError as exc:
            raise StoreError(f'Identity lookup failed: {exc}') from exc
        if row is None:
            return None
        return IdentityRecord(
            phone=row.phone,
            identity_key=row.identity_key,
            signed_prekey=row.signed_prekey,
            signature=row.signature,
            one_time_keys=list(row.one_time_keys or []),
            created_at=row.created_at,
        )

    def put_identity(self, record):
        try:
            self._identities().update_or_create(
                phone=record.phone,
                defaults={
                    'identity_key': record.identity_key,
                    'signed_prekey': record.signed_prekey,
                    'signature': record.signature,
                    'one_time_keys': list(record.one_time_keys),
                    'created_at': record.created_at,
                }
            )
        except DatabaseError as exc:
            raise StoreWriteError(f'Identity write failed: {exc}') from exc

    def consume_and_commit(self, pending, identity, now=None):
        # A failed identity write rolls the consumption back, so the code stays usable
        try:
            with transaction.atomic(using=self.config.pending_db):
                return super().consume_and_commit(pending, identity, now=now)
        except DatabaseError as exc:
            raise StoreWriteError(f'Registration commit failed: {exc}') from exc


class InMemoryRegistrationStore(RegistrationStore):
    """Process-local store for development and tests."""

    def __init__(self, config=None):
        super().__init__(config or RegistrationStoreConfig(backend='memory'))
        self.pending = {}
        self.identities = {}
        self._lock = threading.Lock()

    def get_pending(self, phone, now=None):
        with self._lock:
            record = self.pending.get(phone)
            if record is None or record.is_expired(now):
                return None
            return dataclasses.replace(record)

    def put_pending(self, record):
        with self._lock:
            self.pending[record.phone] = dataclasses.replace(record)

    def delete_pending(self, phone, code=None, now=None):
        with self._lock:
            record = self.pending.get(phone)
            if record is None:
                return False
            if code is not None and record.code != code:
                return False
            if now is not None and record.is_expired(now):
                return False
            del self.pending[phone]
            return True

    def record_failed_attempt(self, phone, code, max_attempts, now=None):
        with self._lock:
            record = self.pending.get(phone)
            if record is None or record.code != code or record.is_expired(now):
                return 0
            record.attempts += 1
            if record.attempts >= max_attempts:
                del self.pending[phone]
            return record.attempts

    def purge_expired(self, now=None):
        now = now or timezone.now()
        with self._lock:
            expired = [phone for phone, rec in self.pending.items() if rec.is_expired(now)]
            for phone in expired:
                del self.pending[phone]
        return len(expired)

    def get_identity(self, phone):
        with self._lock:
            record = self.identities.get(phone)
            return dataclasses.replace(record) if record else None

    def put_identity(self, record):
        with self._lock:
            self.identities[record.phone] = dataclasses.replace(
                record, one_time_keys=list(record.one_time_keys)
            )


def build_registration_store(config: RegistrationStoreConfig) -> RegistrationStore:
    """Factory resolver for the configured store backend."""
    if config.backend == 'database':
        return DatabaseRegistrationStore(config)
    if config.backend == 'memory':
        return InMemoryRegistrationStore(config)
    raise ImproperlyConfigured(f'Unknown registration store backend: {config.backend}')


@functools.lru_cache(maxsize=None)
def get_registration_store() -> RegistrationStore:
    """Process-wide store client, built on first use."""
    config = RegistrationStoreConfig.from_settings()
    logger.info(
        f'Registration store ready: backend={config.backend} region={config.region} '
        f'pending_db={config.pending_db} identity_db={config.identity_db}'
    )
    return build_registration_store(config)
