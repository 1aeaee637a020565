from django.db import models
from django.utils import timezone


class PendingRegistration(models.Model):
    """Unconfirmed enrollment attempt, keyed by phone number"""
    phone = models.CharField(max_length=20, unique=True)
    identity_key = models.CharField(
        max_length=64,
        help_text='Claimed Ed25519 identity public key, base64 (32 bytes)'
    )
    code = models.CharField(max_length=6)
    attempts = models.PositiveSmallIntegerField(default=0)
    created_at = models.DateTimeField(default=timezone.now)
    expires_at = models.DateTimeField(db_index=True)

    class Meta:
        db_table = 'pending_registrations'

    def __str__(self):
        return f'Pending registration for {self.phone} (expires {self.expires_at})'


class VerifiedIdentity(models.Model):
    """Durable identity bound to a phone number after a verified registration"""
    phone = models.CharField(max_length=20, unique=True)
    identity_key = models.CharField(
        max_length=64,
        help_text='Ed25519 identity public key, copied from the pending registration'
    )
    signed_prekey = models.CharField(max_length=64, help_text='Signed prekey public, base64 (32 bytes)')
    signature = models.CharField(max_length=100, help_text='Ed25519 signature over the signed prekey, base64')
    one_time_keys = models.JSONField(default=list, blank=True)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = 'verified_identities'
        verbose_name_plural = 'verified identities'

    def __str__(self):
        return f'Identity for {self.phone}'
