from rest_framework import serializers

# Field names used by the earlier boolean-result handlers; still accepted
LEGACY_FIELD_ALIASES = {
    'iKey': 'identityKey',
    'otp': 'code',
    'preKey': 'signedPreKey',
    'sigPreKey': 'signedPreKey',
    'sign': 'signature',
    'otks': 'oneTimeKeys',
}


class RegistrationRequestSerializer(serializers.Serializer):
    """Shape-only parsing of a registration body; key material is checked by the services."""

    def to_internal_value(self, data):
        if hasattr(data, 'items'):
            data = dict(data.items())
            for legacy, current in LEGACY_FIELD_ALIASES.items():
                if legacy in data and current not in data:
                    data[current] = data.pop(legacy)
        return super().to_internal_value(data)


class InitiateRegistrationSerializer(RegistrationRequestSerializer):
    phone = serializers.CharField(max_length=20)
    identityKey = serializers.CharField(source='identity_key', max_length=128)


class FinalizeRegistrationSerializer(RegistrationRequestSerializer):
    phone = serializers.CharField(max_length=20)
    code = serializers.CharField(max_length=16)
    signedPreKey = serializers.CharField(source='signed_prekey', max_length=128)
    signature = serializers.CharField(max_length=256)
    oneTimeKeys = serializers.ListField(
        source='one_time_keys',
        child=serializers.CharField(max_length=256),
        allow_empty=True,
    )
