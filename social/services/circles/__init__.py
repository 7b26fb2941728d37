"""Circle services."""

from social.services.circles.circle_service import CircleService

__all__ = ["CircleService"]
