from django.contrib import admin
from .models import PendingRegistration, VerifiedIdentity


@admin.register(PendingRegistration)
class PendingRegistrationAdmin(admin.ModelAdmin):
    list_display = ['phone', 'attempts', 'created_at', 'expires_at']
    search_fields = ['phone']
    readonly_fields = ['identity_key', 'code', 'attempts', 'created_at', 'expires_at']


@admin.register(VerifiedIdentity)
class VerifiedIdentityAdmin(admin.ModelAdmin):
    list_display = ['phone', 'created_at']
    search_fields = ['phone']
    readonly_fields = ['identity_key', 'signed_prekey', 'signature', 'one_time_keys', 'created_at']
