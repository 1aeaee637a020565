"""Key material decoding, Ed25519 signed prekey verification and one-time codes."""
import base64

from django.test import SimpleTestCase

from registration import codes
from registration.exceptions import MalformedInput
from registration.keys import (
    ED25519_SPKI_PREFIX,
    b64e,
    canonical_identity_key,
    decode_key_material,
    generate_identity_keypair,
    identity_key_to_spki,
    load_identity_key,
    sign_prekey,
    verify_signed_prekey,
)
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat

from .helpers import x25519_public_bytes


class TestDecodeKeyMaterial(SimpleTestCase):

    def test_decodes_canonical_base64(self):
        raw = bytes(range(32))
        self.assertEqual(decode_key_material(b64e(raw), 'signedPreKey', length=32), raw)

    def test_missing_value_rejected(self):
        for value in (None, '', 123, b'AAAA'):
            with self.assertRaises(MalformedInput):
                decode_key_material(value, 'signedPreKey')

    def test_missing_padding_rejected(self):
        encoded = b64e(b'\x01\x02\x03\x04')
        self.assertTrue(encoded.endswith('=='))
        with self.assertRaises(MalformedInput):
            decode_key_material(encoded.rstrip('='), 'signedPreKey')

    def test_urlsafe_alphabet_rejected(self):
        encoded = base64.urlsafe_b64encode(b'\xfb\xff\xfe' * 4).decode('ascii')
        self.assertIn('-', encoded)
        with self.assertRaises(MalformedInput):
            decode_key_material(encoded, 'signedPreKey')

    def test_non_canonical_trailing_bits_rejected(self):
        # 'AB==' decodes to b'\x00' but the canonical form is 'AA=='
        with self.assertRaises(MalformedInput):
            decode_key_material('AB==', 'signedPreKey')

    def test_wrong_length_rejected(self):
        with self.assertRaises(MalformedInput) as ctx:
            decode_key_material(b64e(b'\x00' * 31), 'signedPreKey', length=32)
        self.assertIn('32 bytes', ctx.exception.detail)

    def test_error_names_the_field(self):
        with self.assertRaises(MalformedInput) as ctx:
            decode_key_material('***', 'signature')
        self.assertIn('signature', ctx.exception.detail)


class TestIdentityKeys(SimpleTestCase):

    def test_spki_wrapping(self):
        _, pub = generate_identity_keypair()
        spki = identity_key_to_spki(pub)
        self.assertEqual(len(spki), 44)
        self.assertTrue(spki.startswith(ED25519_SPKI_PREFIX))

    def test_spki_rejects_wrong_length(self):
        with self.assertRaises(ValueError):
            identity_key_to_spki(b'\x00' * 16)

    def test_load_identity_key_round_trip(self):
        _, pub = generate_identity_keypair()
        public_key = load_identity_key(pub)
        self.assertEqual(public_key.public_bytes(Encoding.Raw, PublicFormat.Raw), pub)

    def test_canonical_identity_key_accepts_32_bytes(self):
        _, pub = generate_identity_keypair()
        self.assertEqual(canonical_identity_key(b64e(pub)), b64e(pub))

    def test_short_identity_key_rejected(self):
        # base64 of 'identitykey', 11 bytes
        with self.assertRaises(MalformedInput):
            canonical_identity_key('aWRlbnRpdHlrZXk=')

    def test_load_identity_key_accepts_spki(self):
        _, pub = generate_identity_keypair()
        public_key = load_identity_key(ED25519_SPKI_PREFIX + pub)
        self.assertEqual(public_key.public_bytes(Encoding.Raw, PublicFormat.Raw), pub)

    def test_canonical_identity_key_stores_raw_form_of_spki(self):
        _, pub = generate_identity_keypair()
        self.assertEqual(canonical_identity_key(b64e(ED25519_SPKI_PREFIX + pub)), b64e(pub))

    def test_spki_with_foreign_prefix_rejected(self):
        _, pub = generate_identity_keypair()
        bogus_prefix = bytes(len(ED25519_SPKI_PREFIX))
        with self.assertRaises(ValueError):
            load_identity_key(bogus_prefix + pub)
        with self.assertRaises(MalformedInput):
            canonical_identity_key(b64e(bogus_prefix + pub))

    def test_verify_with_spki_identity_key(self):
        priv, pub = generate_identity_keypair()
        prekey = x25519_public_bytes()
        signature = sign_prekey(priv, prekey)
        self.assertTrue(verify_signed_prekey(ED25519_SPKI_PREFIX + pub, prekey, signature))


class TestSignedPrekeyVerification(SimpleTestCase):

    def setUp(self):
        self.priv, self.pub = generate_identity_keypair()
        self.prekey = x25519_public_bytes()
        self.signature = sign_prekey(self.priv, self.prekey)

    def test_valid_signature(self):
        self.assertEqual(len(self.signature), 64)
        self.assertTrue(verify_signed_prekey(self.pub, self.prekey, self.signature))

    def test_accepts_base64_identity_key(self):
        self.assertTrue(verify_signed_prekey(b64e(self.pub), self.prekey, self.signature))

    def test_wrong_identity_key_fails(self):
        _, other_pub = generate_identity_keypair()
        self.assertFalse(verify_signed_prekey(other_pub, self.prekey, self.signature))

    def test_tampered_prekey_fails(self):
        tampered = bytes([self.prekey[0] ^ 0x01]) + self.prekey[1:]
        self.assertFalse(verify_signed_prekey(self.pub, tampered, self.signature))

    def test_tampered_signature_fails(self):
        tampered = self.signature[:-1] + bytes([self.signature[-1] ^ 0x01])
        self.assertFalse(verify_signed_prekey(self.pub, self.prekey, tampered))

    def test_garbage_identity_key_fails(self):
        self.assertFalse(verify_signed_prekey('not base64!', self.prekey, self.signature))
        self.assertFalse(verify_signed_prekey(b'\x00' * 5, self.prekey, self.signature))


class TestCodes(SimpleTestCase):

    def test_generated_codes_in_range(self):
        for _ in range(500):
            code = codes.generate_code()
            self.assertTrue(codes.is_well_formed(code))
            self.assertTrue(codes.CODE_MIN <= int(code) <= codes.CODE_MAX)

    def test_is_well_formed(self):
        self.assertTrue(codes.is_well_formed('123456'))
        for code in ('12345', '1234567', '12345a', '', None, 123456, ' 123456', '123456\n'):
            self.assertFalse(codes.is_well_formed(code))

    def test_codes_match(self):
        self.assertTrue(codes.codes_match('123456', '123456'))
        self.assertFalse(codes.codes_match('123456', '123457'))
        self.assertFalse(codes.codes_match('123456', 'ü23456'))
