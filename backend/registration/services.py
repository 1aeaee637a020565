"""
Phone Registration Protocol
===========================
Two-phase enrollment of an end-to-end identity against a phone number.

Phase 1 (initiate): the client claims an Ed25519 identity key for a phone
number. A 6-digit code is issued and a pending registration is written with
a bounded lifetime. The code reaches the user out of band.

Phase 2 (finalize): the client returns the code together with its signed
prekey, the signature over it and a batch of one-time prekeys. The signature
must verify against the identity key claimed in phase 1, which proves the
caller holds the matching private key and not just the intercepted code.
Only then is the pending record consumed and the identity committed.
"""

import logging
import re
from datetime import timedelta

from django.conf import settings
from django.utils import timezone

from . import keys
from .codes import codes_match, generate_code, is_well_formed
from .exceptions import CodeMismatch, InvalidSignature, MalformedInput, PendingNotFound, StoreError
from .signals import registration_initiated
from .stores import IdentityRecord, PendingRecord

logger = logging.getLogger(__name__)

PHONE_RE = re.compile(r'\+[1-9][0-9]{6,14}')


def mask_phone(phone):
    """+15551234567 -> +15*******67"""
    if len(phone) <= 5:
        return '*' * len(phone)
    return phone[:3] + '*' * (len(phone) - 5) + phone[-2:]


def validate_phone(phone):
    if not isinstance(phone, str) or not PHONE_RE.fullmatch(phone):
        raise MalformedInput('phone must be an E.164 number')
    return phone


def validate_code(code):
    if not is_well_formed(code):
        raise MalformedInput('code must be 6 digits')
    return code


def validate_one_time_keys(one_time_keys):
    if not isinstance(one_time_keys, (list, tuple)):
        raise MalformedInput('oneTimeKeys must be a list')
    limit = settings.REGISTRATION_MAX_ONE_TIME_KEYS
    if len(one_time_keys) > limit:
        raise MalformedInput(f'At most {limit} oneTimeKeys per registration')
    for otk in one_time_keys:
        keys.decode_key_material(otk, 'oneTimeKeys')
    return list(one_time_keys)


def initiate(store, phone, identity_key, now=None, ttl=None):
    """
    Phase 1: issue a one-time code for `phone` and park the claimed identity key.

    Any earlier pending registration for the phone is overwritten (last writer
    wins), which also invalidates its code.

    Returns:
        the PendingRecord written
    Raises:
        MalformedInput, StoreWriteError
    """
    phone = validate_phone(phone)
    identity_key = keys.canonical_identity_key(identity_key)
    now = now or timezone.now()
    ttl = settings.REGISTRATION_PENDING_TTL if ttl is None else ttl

    record = PendingRecord(
        phone=phone,
        identity_key=identity_key,
        code=generate_code(),
        created_at=now,
        expires_at=now + timedelta(seconds=ttl),
    )
    store.put_pending(record)
    logger.info(f'Registration initiated for {mask_phone(phone)}, expires {record.expires_at.isoformat()}')

    for receiver, result in registration_initiated.send_robust(
        sender=type(store), phone=phone, code=record.code, expires_at=record.expires_at,
    ):
        if isinstance(result, Exception):
            logger.error(f'Code delivery hook {receiver!r} failed for {mask_phone(phone)}: {result}')

    return record


def finalize(store, phone, code, signed_prekey, signature, one_time_keys, now=None):
    """
    Phase 2: verify the code and the signed prekey, then commit the identity.

    Steps, each short-circuiting:
        1. live pending record for the phone, else PendingNotFound
        2. code match, else CodeMismatch (counted; lock-out after too many)
        3. signature over the signed prekey by the pending identity key,
           else InvalidSignature (the pending record is consumed)
        4. conditional delete of the pending record, then the identity write;
           losing a concurrent race yields PendingNotFound

    Returns:
        the IdentityRecord written
    """
    phone = validate_phone(phone)
    code = validate_code(code)
    signed_prekey_bytes = keys.decode_key_material(signed_prekey, 'signedPreKey', length=keys.PUBLIC_KEY_LENGTH)
    signature_bytes = keys.decode_key_material(signature, 'signature', length=keys.SIGNATURE_LENGTH)
    one_time_keys = validate_one_time_keys(one_time_keys)
    now = now or timezone.now()

    pending = store.get_pending(phone, now=now)
    if pending is None:
        raise PendingNotFound(f'No live registration for {mask_phone(phone)}')

    if not codes_match(pending.code, code):
        attempts = store.record_failed_attempt(
            phone, pending.code, settings.REGISTRATION_MAX_CODE_ATTEMPTS, now=now,
        )
        logger.warning(f'Code mismatch for {mask_phone(phone)} (attempt {attempts})')
        if attempts >= settings.REGISTRATION_MAX_CODE_ATTEMPTS:
            logger.warning(f'SECURITY: Pending registration for {mask_phone(phone)} locked out')
        raise CodeMismatch()

    # Key comes from the pending record, never from this request
    if not keys.verify_signed_prekey(pending.identity_key, signed_prekey_bytes, signature_bytes):
        logger.warning(f'Invalid signed prekey signature for {mask_phone(phone)}')
        try:
            store.delete_pending(phone, code=pending.code)
        except StoreError as exc:
            logger.error(f'Could not consume pending registration for {mask_phone(phone)}: {exc.detail}')
        raise InvalidSignature()

    previous = store.get_identity(phone)
    identity = IdentityRecord(
        phone=phone,
        identity_key=pending.identity_key,
        signed_prekey=signed_prekey,
        signature=signature,
        one_time_keys=one_time_keys,
        created_at=now,
    )
    if not store.consume_and_commit(pending, identity, now=now):
        raise PendingNotFound(f'Registration for {mask_phone(phone)} was already consumed')

    if previous and previous.identity_key != identity.identity_key:
        logger.warning(f'SECURITY: Identity key changed for {mask_phone(phone)} on re-registration')
    logger.info(f'Identity registered for {mask_phone(phone)}: {len(one_time_keys)} one-time keys')
    return identity
