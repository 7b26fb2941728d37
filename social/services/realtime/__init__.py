"""Live query support."""

from social.services.realtime.live_query import LiveQuery

__all__ = ["LiveQuery"]
