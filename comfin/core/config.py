"""
comfin/core/config.py

Purpose: Application configuration

- Loads environment variables
- Centralizes config values (DB URI, JWT secret, SMTP, OTP policy)
- Validates configuration on startup
- Environment-specific settings
"""

from pydantic import Field, validator
from pydantic_settings import BaseSettings
from typing import Optional, Literal


DEFAULT_JWT_SECRET = "change-me-in-production"

# Uploaded bytes live inside the submission document, which MongoDB caps at
# 16 MiB; the rest is left for the applicant fields.
SUBMISSION_BYTES_CEILING = 15 * 1024 * 1024


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Validates all required configs on startup.
    """

    # Environment
    ENVIRONMENT: Literal["development", "staging", "production", "test"] = "development"

    # MongoDB
    MONGODB_URL: str = Field(
        default="mongodb://localhost:27017",
        description="MongoDB connection URI"
    )
    MONGODB_DB_NAME: str = Field(
        default="comfinancial",
        description="MongoDB database name"
    )

    # Session tokens
    JWT_SECRET: str = Field(
        default=DEFAULT_JWT_SECRET,
        description="Secret used to sign session tokens"
    )
    JWT_ALGORITHM: str = Field(
        default="HS256",
        description="JWT signing algorithm"
    )
    ACCESS_TOKEN_EXPIRE_DAYS: int = Field(
        default=5,
        description="Session token lifetime in days"
    )
    TEMP_TOKEN_EXPIRE_MINUTES: int = Field(
        default=15,
        description="Lifetime of the temporary token issued after OTP verification"
    )
    BCRYPT_ROUNDS: int = Field(
        default=10,
        description="bcrypt cost factor"
    )

    # OTP policy
    OTP_EXPIRY_MINUTES: int = Field(
        default=10,
        description="Minutes an issued OTP stays valid"
    )
    OTP_MAX_ATTEMPTS: int = Field(
        default=5,
        description="Wrong guesses allowed before the stored OTP is discarded"
    )

    # Email (SMTP)
    SMTP_HOST: str = Field(
        default="smtp.ethereal.email",
        description="SMTP server host"
    )
    SMTP_PORT: int = Field(
        default=587,
        description="SMTP server port"
    )
    SMTP_USER: Optional[str] = Field(
        default=None,
        description="SMTP username"
    )
    SMTP_PASSWORD: Optional[str] = Field(
        default=None,
        description="SMTP password"
    )
    SMTP_START_TLS: bool = Field(
        default=True,
        description="Upgrade the SMTP connection with STARTTLS"
    )
    EMAIL_FROM: str = Field(
        default="noreply@comfinancial.com",
        description="Sender address for outgoing mail"
    )
    EMAIL_FROM_NAME: str = Field(
        default="Com Financial Services",
        description="Sender display name"
    )

    # Uploads
    MAX_UPLOAD_BYTES: int = Field(
        default=10 * 1024 * 1024,
        description="Maximum size of a single uploaded document"
    )
    MAX_SUBMISSION_BYTES: int = Field(
        default=SUBMISSION_BYTES_CEILING,
        description="Maximum combined size of all documents in one submission"
    )

    # Application
    DEBUG: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    API_PREFIX: str = Field(
        default="/api",
        description="API route prefix"
    )
    CORS_ORIGINS: list = Field(
        default=["*"],
        description="Allowed CORS origins"
    )

    @validator("JWT_SECRET")
    def validate_jwt_secret(cls, v, values):
        """Ensure the signing secret is changed in production."""
        if values.get("ENVIRONMENT") == "production" and v == DEFAULT_JWT_SECRET:
            raise ValueError("JWT_SECRET must be changed in production environment")
        return v

    @validator("MAX_SUBMISSION_BYTES")
    def validate_submission_bytes(cls, v):
        """Keep a submission small enough to be stored as one document."""
        if v > SUBMISSION_BYTES_CEILING:
            raise ValueError(
                f"MAX_SUBMISSION_BYTES cannot exceed {SUBMISSION_BYTES_CEILING} bytes"
            )
        return v

    @validator("SMTP_USER")
    def validate_smtp_user(cls, v, values):
        """Ensure outgoing mail is configured in production."""
        if values.get("ENVIRONMENT") == "production" and not v:
            raise ValueError("SMTP_USER is required in production environment")
        return v

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.ENVIRONMENT == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.ENVIRONMENT == "production"

    @property
    def smtp_configured(self) -> bool:
        return bool(self.SMTP_HOST and self.SMTP_USER and self.SMTP_PASSWORD)

    class Config:
        env_file = ".env"
        case_sensitive = True
        env_file_encoding = "utf-8"


# Global settings instance
settings = Settings()


def validate_settings(config: Optional[Settings] = None):
    """
    Validates critical settings on application startup.
    Raises ValueError if any required setting is missing or invalid.
    """
    config = config or settings
    errors = []

    if not config.MONGODB_URL:
        errors.append("MONGODB_URL is required")

    if not config.MONGODB_DB_NAME:
        errors.append("MONGODB_DB_NAME is required")

    if config.OTP_EXPIRY_MINUTES <= 0:
        errors.append("OTP_EXPIRY_MINUTES must be positive")

    if config.OTP_MAX_ATTEMPTS <= 0:
        errors.append("OTP_MAX_ATTEMPTS must be positive")

    # Production-specific validations
    if config.is_production:
        if config.JWT_SECRET == DEFAULT_JWT_SECRET:
            errors.append("JWT_SECRET must be changed in production")
        if not config.smtp_configured:
            errors.append("SMTP_HOST, SMTP_USER and SMTP_PASSWORD are required in production")

    if errors:
        raise ValueError(f"Configuration validation failed: {', '.join(errors)}")

    return True
