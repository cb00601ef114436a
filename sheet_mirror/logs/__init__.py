"""Activity logging for sync outcomes."""

from .activity import fetch_activity_entries, log_sync_event

__all__ = ["log_sync_event", "fetch_activity_entries"]
