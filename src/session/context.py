from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import httpx

from common.api import ApiClient
from common.config import Settings
from state.credential_store import CredentialStore
from todos.synchronizer import TodoSynchronizer
from .manager import SessionManager


@dataclass
class ClientContext:
    """
    Everything a presentation layer needs, wired once per process.

    Use as an async context manager so the HTTP client is closed on exit.
    `logout()` here also drops the in-memory todo list of the old session.
    """

    credentials: CredentialStore
    api: ApiClient
    session: SessionManager
    todos: TodoSynchronizer

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        client: Optional[httpx.AsyncClient] = None,
    ) -> "ClientContext":
        credentials = CredentialStore(settings.credentials_path, fernet_key=settings.fernet_key)
        api = ApiClient(settings.api_url, credentials=credentials, client=client)
        return cls(
            credentials=credentials,
            api=api,
            session=SessionManager(api, credentials),
            todos=TodoSynchronizer(api),
        )

    @classmethod
    def from_env(cls) -> "ClientContext":
        return cls.from_settings(Settings.from_env())

    def logout(self) -> None:
        self.session.logout()
        self.todos.clear()

    async def aclose(self) -> None:
        await self.api.aclose()

    async def __aenter__(self) -> "ClientContext":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()
