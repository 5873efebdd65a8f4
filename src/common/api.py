from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from .results import ErrorKind
from state.credential_store import CredentialStore


logger = logging.getLogger(__name__)

AUTH_STATUSES = (401, 403)


class ApiError(RuntimeError):
    """
    A backend request failed.

    - `status_code` is None when no HTTP response was received (network error,
      timeout) or when a 2xx response could not be parsed.
    - `message` is the server-supplied `message` field, when there was one.
    """

    def __init__(
        self,
        description: str,
        *,
        status_code: Optional[int] = None,
        message: Optional[str] = None,
    ) -> None:
        super().__init__(description)
        self.status_code = status_code
        self.message = message

    @property
    def kind(self) -> ErrorKind:
        if self.status_code is None:
            return ErrorKind.TRANSPORT
        if self.status_code in AUTH_STATUSES:
            return ErrorKind.AUTHENTICATION
        return ErrorKind.SERVER


def _server_message(resp: httpx.Response) -> Optional[str]:
    try:
        body = resp.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        msg = body.get("message")
        if isinstance(msg, str) and msg:
            return msg
    return None


class ApiClient:
    """
    Async client for the todo backend REST API.

    Notes
    - Authenticated calls read the session token from the credential store at
      request time and send it as `Authorization: Bearer <token>`. Without a
      token the request is still sent, with no Authorization header, and the
      backend's rejection is surfaced like any other failure.
    - No retries and no client-side timeout: httpx transport defaults apply.
    - Every failure is raised as `ApiError`.
    """

    def __init__(
        self,
        base_url: str,
        *,
        credentials: CredentialStore,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        if not base_url:
            raise ValueError("base_url is required")
        self._base_url = base_url.rstrip("/")
        self._credentials = credentials
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    # --------------- Public API ---------------
    async def get(self, path: str, *, auth: bool = False) -> Any:
        return await self._request("GET", path, auth=auth)

    async def post(self, path: str, body: Dict[str, Any], *, auth: bool = False) -> Any:
        return await self._request("POST", path, json_body=body, auth=auth)

    async def delete(self, path: str, *, auth: bool = False) -> Any:
        return await self._request("DELETE", path, auth=auth)

    # --------------- Internal ---------------
    def _headers(self, auth: bool) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if auth:
            token = self._credentials.load()
            if token is not None:
                headers["Authorization"] = f"Bearer {token}"
            else:
                logger.debug("No session token; sending request unauthenticated")
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json_body: Optional[Dict[str, Any]] = None,
        auth: bool = False,
    ) -> Any:
        url = f"{self._base_url}/{path.lstrip('/')}"
        headers = self._headers(auth)
        logger.debug("%s %s", method, url)
        try:
            resp = await self._client.request(method, url, json=json_body, headers=headers)
        except httpx.RequestError as exc:
            # Transport failures, undecodable bodies and redirect loops alike
            logger.warning("%s %s failed: %s", method, url, exc)
            raise ApiError(f"{method} {path} failed: {exc}") from exc

        if resp.is_success:
            if not resp.content:
                return None
            try:
                return resp.json()
            except ValueError as exc:
                raise ApiError(f"Malformed JSON from {method} {path}") from exc

        message = _server_message(resp)
        logger.warning("%s %s returned HTTP %s", method, url, resp.status_code)
        raise ApiError(
            f"HTTP {resp.status_code} from {method} {path}: {message or resp.text[:200]}",
            status_code=resp.status_code,
            message=message,
        )


__all__ = ["ApiClient", "ApiError"]
