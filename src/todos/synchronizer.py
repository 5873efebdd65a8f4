from __future__ import annotations

import logging
from typing import Any, Callable, List, Optional, Sequence, Tuple
from urllib.parse import quote

from pydantic import ValidationError

from common.api import ApiClient, ApiError
from common.results import ErrorKind, Result
from state.credential_store import CredentialStoreError
from .models import Todo


logger = logging.getLogger(__name__)

TODOS_PATH = "/api/todos"

FETCH_FAILED_MESSAGE = "Failed to fetch todos"
ADD_FAILED_MESSAGE = "Failed to add todo"
DELETE_FAILED_MESSAGE = "Failed to delete todo"
REQUIRED_FIELDS_MESSAGE = "Both title and description are required."

Listener = Callable[[Tuple[Todo, ...]], None]


def _parse_todos(payload: Any) -> List[Todo]:
    # Accept a bare list or the `{data: [...]}` envelope used by the auth routes
    if isinstance(payload, dict) and "data" in payload:
        payload = payload["data"]
    if not isinstance(payload, list):
        raise ValueError("Expected a list of todos")
    return [Todo.model_validate(item) for item in payload]


class TodoSynchronizer:
    """
    Owns the in-memory todo list of the current session.

    Notes
    - The backend is the only source of truth. `create` and `remove` never
      patch the list locally; when the server accepts the mutation they await
      a full `fetch_all()` before returning.
    - No locking: concurrent fetches each replace the whole list, so the one
      that completes last wins regardless of start order.
    - A failed fetch leaves the current list untouched.
    - Failures come back as `Result` values with one fixed message per
      operation; server messages are not surfaced here.
    """

    def __init__(self, api: ApiClient) -> None:
        self._api = api
        self._todos: Tuple[Todo, ...] = ()
        self._in_flight = 0
        self._listeners: List[Listener] = []

    # --------------- State ---------------
    @property
    def todos(self) -> Tuple[Todo, ...]:
        return self._todos

    @property
    def is_loading(self) -> bool:
        return self._in_flight > 0

    def get(self, todo_id: str) -> Optional[Todo]:
        """Look up an item in the last fetched list (no network call)."""
        for todo in self._todos:
            if todo.id == todo_id:
                return todo
        return None

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call `listener` with the new list whenever it is replaced.

        Returns a function that removes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def clear(self) -> None:
        """Drop the local list, e.g. after logout."""
        self._replace([])

    def _replace(self, todos: Sequence[Todo]) -> None:
        self._todos = tuple(todos)
        for listener in list(self._listeners):
            try:
                listener(self._todos)
            except Exception:
                # A broken listener must not undo an operation the server already applied
                logger.exception("Todo listener %r failed", listener)

    # --------------- Operations ---------------
    async def fetch_all(self) -> Result[List[Todo]]:
        """Replace the list with the server's current todos."""
        self._in_flight += 1
        try:
            payload = await self._api.get(TODOS_PATH, auth=True)
            todos = _parse_todos(payload)
        except ApiError as exc:
            logger.warning("Fetching todos failed: %s", exc)
            return Result.failure(exc.kind, FETCH_FAILED_MESSAGE, status_code=exc.status_code)
        except CredentialStoreError as exc:
            logger.error("Could not read session token: %s", exc)
            return Result.failure(ErrorKind.STORAGE, FETCH_FAILED_MESSAGE)
        except (ValidationError, ValueError) as exc:
            logger.warning("Malformed todo list: %s", exc)
            return Result.failure(ErrorKind.TRANSPORT, FETCH_FAILED_MESSAGE)
        finally:
            self._in_flight -= 1

        self._replace(todos)
        logger.debug("Fetched %d todos", len(todos))
        return Result.success(list(todos))

    async def create(self, title: str, description: str) -> Result[None]:
        """
        Create a todo, then refresh the list.

        Only emptiness is checked locally, so whitespace-only values go to the
        server as-is. Missing fields fail without any network call.
        """
        if not title or not description:
            return Result.failure(ErrorKind.VALIDATION, REQUIRED_FIELDS_MESSAGE)

        try:
            await self._api.post(
                TODOS_PATH, {"title": title, "description": description}, auth=True
            )
        except ApiError as exc:
            logger.warning("Creating todo failed: %s", exc)
            return Result.failure(exc.kind, ADD_FAILED_MESSAGE, status_code=exc.status_code)
        except CredentialStoreError as exc:
            logger.error("Could not read session token: %s", exc)
            return Result.failure(ErrorKind.STORAGE, ADD_FAILED_MESSAGE)

        await self._refresh_after("create")
        return Result.success()

    async def remove(self, todo_id: str) -> Result[None]:
        """Delete a todo by id, then refresh the list.

        Membership is not checked locally; unknown ids are rejected by the server.
        """
        try:
            await self._api.delete(f"{TODOS_PATH}/{quote(todo_id, safe='')}", auth=True)
        except ApiError as exc:
            logger.warning("Deleting todo %s failed: %s", todo_id, exc)
            return Result.failure(exc.kind, DELETE_FAILED_MESSAGE, status_code=exc.status_code)
        except CredentialStoreError as exc:
            logger.error("Could not read session token: %s", exc)
            return Result.failure(ErrorKind.STORAGE, DELETE_FAILED_MESSAGE)

        await self._refresh_after("remove")
        return Result.success()

    async def _refresh_after(self, operation: str) -> None:
        # The mutation already succeeded server-side; a failed refresh keeps the old list
        refreshed = await self.fetch_all()
        if not refreshed.ok:
            logger.warning("Refresh after %s failed; list may be stale", operation)


__all__ = [
    "TodoSynchronizer",
    "FETCH_FAILED_MESSAGE",
    "ADD_FAILED_MESSAGE",
    "DELETE_FAILED_MESSAGE",
    "REQUIRED_FIELDS_MESSAGE",
]
