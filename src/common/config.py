from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, Optional


ENV_API_URL = "TODO_API_URL"
ENV_CREDENTIALS_PATH = "TODO_CREDENTIALS_PATH"
ENV_FERNET_KEY = "TODO_FERNET_KEY"
ENV_PARAM_PREFIX = "TODO_PARAM_PREFIX"

DEFAULT_CREDENTIALS_PATH = Path.home() / ".todo_sync" / "credentials.json"


def _getenv(name: str, default: Optional[str] = None) -> Optional[str]:
    val = os.environ.get(name)
    return val if val not in (None, "") else default


def _require(v: Optional[str], what: str) -> str:
    if not v:
        raise RuntimeError(f"Missing required configuration: {what}")
    return v


def _load_ssm_params(prefix: str, names: Iterable[str]) -> Dict[str, Optional[str]]:
    import boto3
    from botocore.exceptions import ClientError

    ssm = boto3.client("ssm")
    out: Dict[str, Optional[str]] = {k: None for k in names}
    for name in names:
        full = f"{prefix}{name}"
        try:
            resp = ssm.get_parameter(Name=full, WithDecryption=True)
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code")
            if code in ("ParameterNotFound", "AccessDeniedException"):
                out[name] = None
                continue
            raise
        val = resp.get("Parameter", {}).get("Value")
        out[name] = val if isinstance(val, str) and val != "" else None
    return out


@dataclass(frozen=True)
class Settings:
    """
    Client configuration.

    Environment variables
    - `TODO_API_URL`:          backend base URL (required)
    - `TODO_CREDENTIALS_PATH`: session token file (default ~/.todo_sync/credentials.json)
    - `TODO_FERNET_KEY`:       optional Fernet key to encrypt the token file
    - `TODO_PARAM_PREFIX`:     optional SSM prefix; `api_url` and `fernet_key`
                               parameters under it fill in unset variables
    """

    api_url: str
    credentials_path: Path = DEFAULT_CREDENTIALS_PATH
    fernet_key: Optional[str] = None

    @classmethod
    def from_env(cls) -> "Settings":
        api_url = _getenv(ENV_API_URL)
        fernet_key = _getenv(ENV_FERNET_KEY)
        prefix = _getenv(ENV_PARAM_PREFIX)

        if prefix and (api_url is None or fernet_key is None):
            params = _load_ssm_params(prefix, ["api_url", "fernet_key"])
            api_url = api_url or params.get("api_url")
            fernet_key = fernet_key or params.get("fernet_key")

        path = _getenv(ENV_CREDENTIALS_PATH)
        return cls(
            api_url=_require(api_url, ENV_API_URL),
            credentials_path=Path(path).expanduser() if path else DEFAULT_CREDENTIALS_PATH,
            fernet_key=fernet_key,
        )


__all__ = ["Settings"]
