from typing import Optional


class AppError(Exception):
    """Base class for errors that map to a client-facing response."""

    status_code = 500
    code = "INTERNAL_ERROR"
    default_message = "An error occurred"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AppError):
    status_code = 400
    code = "VALIDATION_ERROR"
    default_message = "Invalid request"


class NotFoundError(AppError):
    status_code = 404
    code = "NOT_FOUND"
    default_message = "Resource not found"


class InvalidCredentialsError(AppError):
    status_code = 400
    code = "INVALID_CREDENTIALS"
    default_message = "Current password is incorrect"


class StateConflictError(AppError):
    """Request is well-formed but not allowed in the current verification state."""

    status_code = 400
    code = "STATE_CONFLICT"


class AlreadyVerifiedError(StateConflictError):
    code = "ALREADY_VERIFIED"
    default_message = "Phone number is already verified"


class PhoneTakenError(StateConflictError):
    code = "PHONE_TAKEN"
    default_message = "This phone number is already registered to another account"


class NoPendingVerificationError(StateConflictError):
    code = "NO_PENDING_VERIFICATION"
    default_message = "No pending phone verification. Please request a new code."


class CodeExpiredError(StateConflictError):
    code = "CODE_EXPIRED"
    default_message = "Verification code has expired. Please request a new code."


class InvalidCodeError(StateConflictError):
    code = "INVALID_CODE"
    default_message = "Invalid verification code"


class NoPhoneOnFileError(StateConflictError):
    code = "NO_PHONE_ON_FILE"
    default_message = "No phone number on file. Please add a phone number first."


class DeliveryFailedError(AppError):
    """The SMS provider rejected or failed to accept the message."""

    status_code = 500
    code = "DELIVERY_FAILED"
    default_message = "Failed to send verification SMS"


class SmsConfigurationError(AppError):
    """SMS delivery is disabled or missing credentials."""

    status_code = 500
    code = "SMS_NOT_CONFIGURED"
    default_message = "SMS service is not configured"
