from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class SessionState(str, Enum):
    LOGGED_OUT = "logged_out"
    LOGGED_IN = "logged_in"


class Session(BaseModel):
    """
    The single authenticated identity of a client.

    Fields
    - token: opaque bearer token issued by the backend on login; None when
      logged out. Never validated or decoded locally.
    """

    token: Optional[str] = Field(default=None, description="Session bearer token")

    @property
    def state(self) -> SessionState:
        return SessionState.LOGGED_IN if self.token is not None else SessionState.LOGGED_OUT

    @classmethod
    def empty(cls) -> "Session":
        """Convenience constructor for a logged-out session."""
        return cls()
