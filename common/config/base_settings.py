"""
Environment-driven settings shared by Coachie services.

Values come from the process environment or a local ``.env`` file. An
application subclasses ``BaseAppSettings`` to add its own knobs.
"""

from typing import List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseAppSettings(BaseSettings):
    """Connection, identity and HTTP server settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # ==========================================================================
    # MongoDB
    # ==========================================================================
    MONGODB_URI: str = "mongodb://localhost:27017"
    MONGODB_DATABASE: str = "coachie"
    MONGODB_SERVER_SELECTION_TIMEOUT_MS: int = 5000

    # ==========================================================================
    # Firebase
    # ==========================================================================
    FIREBASE_PROJECT_ID: Optional[str] = None
    FIREBASE_CREDENTIALS_PATH: Optional[str] = None
    # Full service-account JSON, for hosts that only offer env vars
    FIREBASE_SERVICE_ACCOUNT_JSON: Optional[str] = None
    FIREBASE_CHECK_REVOKED: bool = False

    # ==========================================================================
    # HTTP Server
    # ==========================================================================
    ENVIRONMENT: str = "development"
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: str = "*"
    CORS_ALLOW_CREDENTIALS: bool = True

    def is_development(self) -> bool:
        return self.ENVIRONMENT.lower() == "development"

    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    def get_cors_origins(self) -> List[str]:
        """CORS_ORIGINS is either "*" or a comma-separated list."""
        if self.CORS_ORIGINS.strip() == "*":
            return ["*"]
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    def validate_required(self) -> None:
        """
        Refuse to start production with settings that only make sense locally.

        Raises:
            ValueError: Listing every problem found
        """
        if not self.is_production():
            return

        problems = []
        has_credentials = (
            self.FIREBASE_CREDENTIALS_PATH or self.FIREBASE_SERVICE_ACCOUNT_JSON or self.FIREBASE_PROJECT_ID
        )
        if not has_credentials:
            problems.append("a Firebase credential or FIREBASE_PROJECT_ID")
        if self.get_cors_origins() == ["*"]:
            problems.append("explicit CORS_ORIGINS")

        if problems:
            raise ValueError("Production configuration requires " + " and ".join(problems))
