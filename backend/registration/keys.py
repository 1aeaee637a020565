"""
Identity Key Handling
=====================
Key material for phone registration

Key types:
- Identity Key: Ed25519 (signing, 32-byte pubkey), claimed at initiate
- Signed PreKey: 32-byte public key, signed by the identity key at finalize
- One-Time PreKeys: opaque public keys, stored for later key agreement

All key and signature fields travel as canonical standard base64 (with
padding). Anything else is rejected at the boundary with MalformedInput.
"""

import base64
import binascii

from cryptography import exceptions as crypto_exceptions
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey, Ed25519PublicKey
from cryptography.hazmat.primitives.serialization import (
    Encoding, PublicFormat, PrivateFormat, NoEncryption, load_der_public_key,
)

from .exceptions import MalformedInput

PUBLIC_KEY_LENGTH = 32
SIGNATURE_LENGTH = 64

# ASN.1 SubjectPublicKeyInfo prefix for Ed25519 (RFC 8410)
ED25519_SPKI_PREFIX = bytes.fromhex('302a300506032b6570032100')


# ══════════════════════════════════════════════════
# ENCODING
# ══════════════════════════════════════════════════

def b64e(data):
    return base64.b64encode(data).decode('ascii')


def decode_key_material(value, field, length=None):
    """
    Decode a base64 key/signature field from a request.

    Args:
        value: the raw request value
        field: wire name of the field, used in the error detail
        length: exact decoded length required, if any
    Returns:
        decoded bytes
    Raises:
        MalformedInput if the value is missing, not canonical base64,
        or has the wrong length
    """
    if not isinstance(value, str) or not value:
        raise MalformedInput(f'{field} is required')
    try:
        raw = base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise MalformedInput(f'{field} is not valid base64') from exc
    # Rejects base64url, missing padding and non-zero trailing bits
    if b64e(raw) != value:
        raise MalformedInput(f'{field} is not canonical base64')
    if length is not None and len(raw) != length:
        raise MalformedInput(f'{field} must be {length} bytes, got {len(raw)}')
    return raw


# ══════════════════════════════════════════════════
# ED25519 IDENTITY KEYS
# ══════════════════════════════════════════════════

def identity_key_to_spki(raw):
    """Wrap a raw 32-byte Ed25519 public key in its DER SubjectPublicKeyInfo form."""
    if len(raw) != PUBLIC_KEY_LENGTH:
        raise ValueError(f'Ed25519 public key must be {PUBLIC_KEY_LENGTH} bytes')
    return ED25519_SPKI_PREFIX + raw


def identity_key_from_spki(der):
    """Strip the Ed25519 SPKI prefix; raw 32-byte input is returned as is."""
    if len(der) == len(ED25519_SPKI_PREFIX) + PUBLIC_KEY_LENGTH and der.startswith(ED25519_SPKI_PREFIX):
        return der[len(ED25519_SPKI_PREFIX):]
    if len(der) != PUBLIC_KEY_LENGTH:
        raise ValueError('Identity key must be a raw Ed25519 key or its SPKI encoding')
    return der


def load_identity_key(raw):
    """
    Reconstruct the identity public key from its raw bytes or its DER
    SubjectPublicKeyInfo form (the form clients export with their platform
    crypto APIs). Raw keys are rebuilt through the same SPKI encoding.
    """
    public_key = load_der_public_key(identity_key_to_spki(identity_key_from_spki(raw)))
    if not isinstance(public_key, Ed25519PublicKey):
        raise ValueError('Identity key is not an Ed25519 public key')
    return public_key


def canonical_identity_key(value):
    """
    Validate a claimed identity key and return its canonical base64 text.
    Both the raw and the SPKI encodings are accepted; the key is always
    stored as the base64 of the raw 32 bytes.
    """
    raw = decode_key_material(value, 'identityKey')
    try:
        raw = identity_key_from_spki(raw)
        load_identity_key(raw)
    except ValueError as exc:
        raise MalformedInput('identityKey is not an Ed25519 public key') from exc
    return b64e(raw)


def verify_signed_prekey(identity_key, signed_prekey, signature):
    """Verify the signed prekey against the identity key.

    Args:
        identity_key: stored base64 text, raw 32-byte key or its SPKI encoding
        signed_prekey: raw signed prekey bytes (the signed message)
        signature: 64-byte Ed25519 signature

    Returns:
        bool
    """
    try:
        if isinstance(identity_key, str):
            identity_key = base64.b64decode(identity_key, validate=True)
        public_key = load_identity_key(identity_key)
        public_key.verify(signature, signed_prekey)
        return True
    except (crypto_exceptions.InvalidSignature, ValueError, TypeError):
        return False


# ══════════════════════════════════════════════════
# CLIENT-SIDE HELPERS (tooling and tests)
# ══════════════════════════════════════════════════

def generate_identity_keypair():
    """
    Generate an Ed25519 identity keypair.
    Returns: (private_key_bytes: 32 bytes, public_key_bytes: 32 bytes)

    Only clients hold identity private keys; the server never does.
    """
    private_key = Ed25519PrivateKey.generate()
    priv_bytes = private_key.private_bytes(Encoding.Raw, PrivateFormat.Raw, NoEncryption())
    pub_bytes = private_key.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw)
    return priv_bytes, pub_bytes


def sign_prekey(identity_private_key_bytes, signed_prekey_bytes):
    """Sign a prekey with the identity private key. Returns a 64-byte signature."""
    identity_private = Ed25519PrivateKey.from_private_bytes(identity_private_key_bytes)
    return identity_private.sign(signed_prekey_bytes)
