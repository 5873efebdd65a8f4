"""
Session state and its durable storage.

The session token is persisted to a local JSON file, optionally encrypted
with Fernet, so a login survives process restarts until explicit logout.
"""

from .models import Session, SessionState

__all__ = ["Session", "SessionState"]
