from django.dispatch import Signal

# Sent after a pending registration is written.
# kwargs: phone, code, expires_at. The receiver owns delivery of the code
# (SMS gateway, push, ...); its failures never fail the initiation.
registration_initiated = Signal()
