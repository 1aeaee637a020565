"""
Registration protocol errors.

Every error carries the HTTP status it maps to and a short, stable reason
string. The views translate them into responses in one place; services and
stores only raise.
"""


class RegistrationError(Exception):
    status_code = 500
    reason = 'registration failed'

    def __init__(self, detail=None):
        self.detail = detail or self.reason
        super().__init__(self.detail)


class InitiationError(RegistrationError):
    """Raised by phase 1 (initiate)."""


class FinalizationError(RegistrationError):
    """Raised by phase 2 (finalize)."""


class MalformedInput(InitiationError, FinalizationError):
    status_code = 400
    reason = 'malformed input'


class StoreError(InitiationError, FinalizationError):
    status_code = 500
    reason = 'store failure'


class StoreWriteError(StoreError):
    reason = 'store write failed'


class PendingNotFound(FinalizationError):
    """No live pending registration for the phone (absent, expired or consumed)."""
    status_code = 500
    reason = 'registration not found'


class CodeMismatch(FinalizationError):
    status_code = 403
    reason = 'code mismatch'


class InvalidSignature(FinalizationError):
    status_code = 401
    reason = 'invalid signature'
