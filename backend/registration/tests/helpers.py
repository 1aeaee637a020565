from cryptography.hazmat.primitives.asymmetric.x25519 import X25519PrivateKey
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat

from registration.keys import b64e, generate_identity_keypair, sign_prekey


def x25519_public_bytes():
    return X25519PrivateKey.generate().public_key().public_bytes(Encoding.Raw, PublicFormat.Raw)


class ClientIdentity:
    """What a device holds while registering: an identity keypair and a signed prekey."""

    def __init__(self, phone='+15551234567', one_time_key_count=3):
        self.phone = phone
        self.private_key, self.public_key = generate_identity_keypair()
        self.identity_key = b64e(self.public_key)
        self.signed_prekey_bytes = x25519_public_bytes()
        self.signed_prekey = b64e(self.signed_prekey_bytes)
        self.signature = b64e(sign_prekey(self.private_key, self.signed_prekey_bytes))
        self.one_time_keys = [b64e(x25519_public_bytes()) for _ in range(one_time_key_count)]

    def initiate_payload(self):
        return {'phone': self.phone, 'identityKey': self.identity_key}

    def finalize_payload(self, code, **overrides):
        payload = {
            'phone': self.phone,
            'code': code,
            'signedPreKey': self.signed_prekey,
            'signature': self.signature,
            'oneTimeKeys': list(self.one_time_keys),
        }
        payload.update(overrides)
        return payload

    def finalize_kwargs(self, code, **overrides):
        kwargs = {
            'phone': self.phone,
            'code': code,
            'signed_prekey': self.signed_prekey,
            'signature': self.signature,
            'one_time_keys': list(self.one_time_keys),
        }
        kwargs.update(overrides)
        return kwargs


def wrong_code(code):
    """A different well-formed 6-digit code."""
    return str((int(code) - 100000 + 1) % 900000 + 100000)
