# compass_mfa/errors.py
# Error kinds raised by the 2FA core. Every verification-related kind is shown
# to clients as the same message; `reason` is for logs only.

GENERIC_MESSAGE = "invalid verification code"


class TwoFactorError(Exception):
    reason = "error"
    public_message = GENERIC_MESSAGE
    status_code = 400

    def __init__(self, detail: str = ""):
        super().__init__(detail or self.reason)
        self.detail = detail


class InvalidCodeFormat(TwoFactorError):
    reason = "invalid_code_format"


class InvalidSecretEncoding(TwoFactorError):
    reason = "invalid_secret_encoding"


class Unauthorized(TwoFactorError):
    reason = "unauthorized"


class NoActiveSecret(Unauthorized):
    reason = "no_active_secret"


class VerificationFailed(TwoFactorError):
    reason = "verification_failed"


class ReplayedCode(VerificationFailed):
    reason = "replayed_code"


class TooManyAttempts(TwoFactorError):
    reason = "too_many_attempts"
    public_message = "too many attempts, try again later"
    status_code = 429

    def __init__(self, detail: str = "", retry_after: int = 0):
        super().__init__(detail)
        self.retry_after = retry_after


class EnrollmentConflict(TwoFactorError):
    reason = "enrollment_conflict"
    public_message = "two-factor authentication is already enabled"
    status_code = 409


class PersistenceUnavailable(Exception):
    """The enrollment store could not be reached. Safe to retry."""

    retryable = True
