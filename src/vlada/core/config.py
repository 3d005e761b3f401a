"""Vlada billing backend - Configuration Management.

Environment-based configuration using Pydantic settings. Firebase credential
inputs arrive in several inconsistent formats; they are read here verbatim
and normalized later by ``vlada.credentials``.
"""

from functools import lru_cache
import logging
from typing import Literal, Self

from pydantic import Field, ValidationError, model_validator
from pydantic_settings import BaseSettings

from vlada.core.exceptions import ConfigurationError

# Configure logger
logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings with secure defaults and validation."""

    # Environment settings
    environment: str = Field(default="development", alias="ENVIRONMENT")
    debug: bool = Field(default=False, alias="DEBUG")
    testing: bool = Field(default=False, alias="TESTING")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Server settings
    host: str = Field(default="127.0.0.1", alias="HOST")
    port: int = Field(default=8080, alias="PORT")
    cors_origins: list[str] = Field(
        default=["http://localhost:3000"], alias="CORS_ORIGINS"
    )

    # Application settings
    app_name: str = "Vlada Billing Backend"
    app_version: str = "0.1.0"

    # Firebase credential inputs, in resolution priority order
    firebase_service_account_json: str = Field(
        default="", alias="FIREBASE_SERVICE_ACCOUNT_JSON"
    )
    firebase_private_key_base64: str = Field(
        default="", alias="FIREBASE_PRIVATE_KEY_BASE64"
    )
    firebase_private_key: str = Field(default="", alias="FIREBASE_PRIVATE_KEY")

    # Firebase project identity
    firebase_project_id: str = Field(default="", alias="FIREBASE_PROJECT_ID")
    firebase_client_email: str = Field(default="", alias="FIREBASE_CLIENT_EMAIL")
    firebase_storage_bucket: str = Field(default="", alias="FIREBASE_STORAGE_BUCKET")

    # Firebase client lifecycle
    firebase_key_transport: Literal["memory", "file"] = Field(
        default="memory", alias="FIREBASE_KEY_TRANSPORT"
    )
    firebase_verify_storage_target: bool = Field(
        default=True, alias="FIREBASE_VERIFY_STORAGE_TARGET"
    )
    firebase_init_timeout: float = Field(default=30.0, alias="FIREBASE_INIT_TIMEOUT")

    # Upload settings
    signed_url_ttl_days: int = Field(default=7, alias="SIGNED_URL_TTL_DAYS")
    diagnostics_buffer_size: int = Field(default=100, alias="DIAGNOSTICS_BUFFER_SIZE")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
        "populate_by_name": True,
    }

    @model_validator(mode="after")
    def validate_environment_requirements(self) -> Self:
        """Validate numeric limits and warn about missing Firebase identity."""
        if self.firebase_init_timeout <= 0:
            msg = "FIREBASE_INIT_TIMEOUT must be positive"
            raise ValueError(msg)
        if self.signed_url_ttl_days <= 0:
            msg = "SIGNED_URL_TTL_DAYS must be positive"
            raise ValueError(msg)

        if self.is_testing():
            return self

        if self.is_production() and not self.has_explicit_key_material():
            logger.warning(
                "Production mode without explicit Firebase key material; "
                "relying on application default credentials"
            )

        return self

    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment.lower() == "development"

    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment.lower() == "production"

    def is_testing(self) -> bool:
        """Check if running in testing mode."""
        return self.environment.lower() == "testing" or (
            self.testing and self.environment.lower() != "production"
        )

    def has_explicit_key_material(self) -> bool:
        """Check whether any key-bearing Firebase input is set."""
        return any(
            value.strip()
            for value in (
                self.firebase_service_account_json,
                self.firebase_private_key_base64,
                self.firebase_private_key,
            )
        )

    def log_configuration_summary(self) -> None:
        """Log configuration summary for debugging.

        Key-bearing inputs are reported as set/not set, never by value.
        """
        logger.info("Vlada Configuration Summary:")
        logger.info("   - Environment: %s", self.environment)
        logger.info("   - Debug mode: %s", self.debug)
        logger.info("   - Firebase project: %s", self.firebase_project_id or "Not set")
        logger.info(
            "   - Firebase client email: %s", self.firebase_client_email or "Not set"
        )
        logger.info(
            "   - Storage bucket: %s", self.firebase_storage_bucket or "Not set"
        )
        logger.info(
            "   - Service account JSON: %s",
            "set" if self.firebase_service_account_json else "not set",
        )
        logger.info(
            "   - Base64 private key: %s",
            "set" if self.firebase_private_key_base64 else "not set",
        )
        logger.info(
            "   - Raw private key: %s",
            "set" if self.firebase_private_key else "not set",
        )
        logger.info("   - Key transport: %s", self.firebase_key_transport)


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Raises:
        ConfigurationError: If the environment holds invalid values.
    """
    try:
        settings = Settings()
    except ValidationError as e:
        msg = f"Invalid application settings: {e}"
        raise ConfigurationError(msg) from e

    # Log configuration summary in debug mode
    if settings.debug or settings.log_level.upper() == "DEBUG":
        settings.log_configuration_summary()

    return settings
