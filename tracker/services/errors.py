"""Errors raised by the user service; routes translate them into HTTP responses."""


class UserServiceError(Exception):
    """Base error: a stable machine-readable code, a message and the HTTP status to use."""

    code = "user_service_error"
    status_code = 400

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class MissingParameter(UserServiceError):
    code = "missing_parameter"


class InvalidCredentials(UserServiceError):
    code = "invalid_credentials"
    status_code = 401


class AccountDisabled(UserServiceError):
    code = "account_disabled"
    status_code = 401


class PasswordChangeRequired(UserServiceError):
    code = "password_change_required"
    status_code = 401


class InvalidApiCredential(UserServiceError):
    code = "invalid_api_credential"
    status_code = 401


class AccessDenied(UserServiceError):
    code = "access_denied"
    status_code = 403


class AccountCreationDisabled(UserServiceError):
    code = "account_creation_disabled"
    status_code = 403


class NotFound(UserServiceError):
    code = "not_found"
    status_code = 404


class InvalidGroupReference(UserServiceError):
    code = "invalid_group_reference"


class AccountExists(UserServiceError):
    code = "account_exists"
    status_code = 409


class InvalidEmailFormat(UserServiceError):
    code = "invalid_email_format"


class PasswordTooShort(UserServiceError):
    code = "password_too_short"


class UnsupportedBatchOperation(UserServiceError):
    code = "unsupported_batch_operation"


class UnknownMfaProvider(UserServiceError):
    code = "unknown_mfa_provider"
