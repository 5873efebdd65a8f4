from __future__ import annotations

import contextlib
import json
import logging
import os
from pathlib import Path
from typing import Optional
from uuid import uuid4

from cryptography.fernet import Fernet, InvalidToken

from .models import Session


logger = logging.getLogger(__name__)

# Fixed key the token is stored under inside the credentials document
STORAGE_KEY = "token"


class CredentialStoreError(ValueError):
    """Reading or writing the persisted session token failed."""


def _to_fernet(key: str | bytes) -> Fernet:
    """Construct a Fernet instance from a user-provided key.

    The key must be a URL-safe base64-encoded 32-byte key (str or bytes),
    as returned by `cryptography.fernet.Fernet.generate_key()`.
    """
    if isinstance(key, str):
        key_bytes = key.encode("utf-8")
    else:
        key_bytes = key
    return Fernet(key_bytes)


def _dump_session_json(session: Session) -> bytes:
    # Deterministic JSON: stable key order, no extra whitespace
    return json.dumps(
        {STORAGE_KEY: session.token}, separators=(",", ":"), sort_keys=True
    ).encode("utf-8")


def _load_session_json(data: bytes) -> Session:
    raw = json.loads(data.decode("utf-8"))
    if not isinstance(raw, dict):
        raise ValueError("credentials document is not a JSON object")
    return Session.model_validate({"token": raw.get(STORAGE_KEY)})


class CredentialStore:
    """
    File-backed persistence for the session token.

    Usage
    - `save(token)` writes the token durably, replacing any previous one.
    - `load()` returns the stored token, or None if nothing is stored.
    - `clear()` removes the stored token; safe to call repeatedly.

    Writes go to a temporary file next to the target which is then renamed
    over it, so a crash never leaves a half-written credentials file. When a
    Fernet key is given the file content is encrypted at rest.
    """

    def __init__(
        self,
        path: os.PathLike[str] | str,
        *,
        fernet_key: Optional[str | bytes] = None,
    ) -> None:
        self._path = Path(path)
        self._fernet = _to_fernet(fernet_key) if fernet_key else None

    @property
    def path(self) -> Path:
        return self._path

    # -------- Core operations --------
    def load(self) -> Optional[str]:
        """Return the stored token, or None when no credentials are stored.

        Raises:
        - CredentialStoreError if the file cannot be read, decrypted or parsed.
        """
        try:
            data = self._path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as ex:
            raise CredentialStoreError(f"Failed to read {self._path}") from ex

        if self._fernet is not None:
            try:
                data = self._fernet.decrypt(data)
            except InvalidToken as ex:
                raise CredentialStoreError("Failed to decrypt credentials: invalid Fernet token") from ex

        try:
            return _load_session_json(data).token
        except Exception as ex:
            raise CredentialStoreError("Failed to parse credentials JSON") from ex

    def save(self, token: str) -> None:
        payload = _dump_session_json(Session(token=token))
        if self._fernet is not None:
            payload = self._fernet.encrypt(payload)

        tmp = self._path.with_name(f"{self._path.name}.tmp-{uuid4().hex}")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_bytes(payload)
            os.replace(tmp, self._path)
        except OSError as ex:
            with contextlib.suppress(OSError):
                tmp.unlink()
            raise CredentialStoreError(f"Failed to write {self._path}") from ex
        logger.debug("Saved session token to %s", self._path)

    def clear(self) -> None:
        try:
            self._path.unlink(missing_ok=True)
        except OSError as ex:
            raise CredentialStoreError(f"Failed to remove {self._path}") from ex
        logger.debug("Cleared session token at %s", self._path)


__all__ = ["CredentialStore", "CredentialStoreError", "STORAGE_KEY"]
