"""Notification services."""

from social.services.notifications.notification_service import NotificationService

__all__ = ["NotificationService"]
