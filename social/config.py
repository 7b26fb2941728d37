"""
Coachie social application settings.

Extends the base settings with social-feature limits.
"""

from common.config import BaseAppSettings


class Settings(BaseAppSettings):
    """Social API settings."""

    # ==========================================================================
    # Circle Settings
    # ==========================================================================
    # Capacity for circles created without an explicit size
    DEFAULT_CIRCLE_SIZE: int = 5

    # Upper bound accepted on create
    MAX_CIRCLE_SIZE: int = 50

    # ==========================================================================
    # Content Limits
    # ==========================================================================
    MAX_MESSAGE_LENGTH: int = 2000
    MAX_POST_LENGTH: int = 5000
    MAX_COMMENT_LENGTH: int = 1000

    # ==========================================================================
    # Live Queries
    # ==========================================================================
    # How long a change stream getMore may block waiting for new events
    LIVE_QUERY_MAX_AWAIT_MS: int = 1000


# Global settings instance
settings = Settings()
