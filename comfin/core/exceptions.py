from typing import Optional, Any


class ComFinError(Exception):
    """
    Base exception for the Com Financial backend.
    """
    def __init__(self, message: str, code: str = "SERVER_ERROR", status_code: int = 500, details: Optional[Any] = None):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details
        super().__init__(self.message)


class InvalidLoginError(ComFinError):
    """
    Raised when no account exists for the supplied email.
    """
    def __init__(self, message: str = "Invalid credentials", details: Optional[Any] = None):
        super().__init__(message, code="INVALID_LOGIN", status_code=400, details=details)


class InvalidPasswordError(ComFinError):
    """
    Raised when a password does not match the stored hash.
    """
    def __init__(self, message: str = "Invalid credentials", details: Optional[Any] = None):
        super().__init__(message, code="INVALID_PASSWORD", status_code=400, details=details)


class InvalidOtpError(ComFinError):
    """
    Raised when an OTP is wrong, expired or already used.
    """
    def __init__(self, message: str = "Invalid or expired OTP", details: Optional[Any] = None):
        super().__init__(message, code="INVALID_OTP", status_code=400, details=details)


class EmailInUseError(ComFinError):
    def __init__(self, message: str = "User already exists", details: Optional[Any] = None):
        super().__init__(message, code="EMAIL_IN_USE", status_code=400, details=details)


class AuthMethodError(ComFinError):
    """
    Raised when the supplied credential kind does not match the account's mode.
    """
    def __init__(self, auth_method: str, message: Optional[str] = None):
        if message is None:
            if auth_method == "otp":
                message = "This account uses OTP authentication. Please request an OTP."
            else:
                message = "This account uses password authentication. Please provide your password."
        code = "OTP_REQUIRED" if auth_method == "otp" else "PASSWORD_REQUIRED"
        super().__init__(message, code=code, status_code=400, details={"authMethod": auth_method})


class CredentialRequiredError(ComFinError):
    def __init__(self, credential: str):
        message = "OTP is required" if credential == "otp" else "Password is required"
        super().__init__(message, code="CREDENTIAL_REQUIRED", status_code=400, details={"missing": credential})


class AccessDeniedError(ComFinError):
    """
    Raised when an authenticated caller lacks the required role.
    """
    def __init__(self, message: str = "Access denied", details: Optional[Any] = None):
        super().__init__(message, code="ACCESS_DENIED", status_code=403, details=details)


class AuthenticationError(ComFinError):
    """
    Raised when authentication fails.
    """
    def __init__(self, message: str = "Authentication failed", details: Optional[Any] = None):
        super().__init__(message, code="AUTHENTICATION_FAILED", status_code=401, details=details)


class ResourceNotFoundError(ComFinError):
    """
    Raised when a requested resource is not found.
    """
    def __init__(self, message: str = "Resource not found", details: Optional[Any] = None):
        super().__init__(message, code="NOT_FOUND", status_code=404, details=details)


class ValidationError(ComFinError):
    """
    Raised when input validation fails.
    """
    def __init__(self, message: str = "Validation error", code: str = "VALIDATION_ERROR", details: Optional[Any] = None):
        super().__init__(message, code=code, status_code=400, details=details)


class ExternalServiceError(ComFinError):
    """
    Raised when an external service (e.g., SMTP) fails.
    """
    def __init__(self, message: str = "External service error", details: Optional[Any] = None):
        super().__init__(message, code="EXTERNAL_SERVICE_ERROR", status_code=502, details=details)
