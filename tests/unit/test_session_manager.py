from __future__ import annotations

import asyncio

import httpx

from common.api import ApiClient
from common.results import ErrorKind
from session.manager import GENERIC_ERROR_MESSAGE, SessionManager
from state.credential_store import CredentialStore
from state.models import SessionState


def test_register_does_not_log_in(backend, api, credentials):
    mgr = SessionManager(api, credentials)

    res = asyncio.run(mgr.register("alice", "secret"))

    assert res.ok
    assert backend.users == {"alice": "secret"}
    assert backend.count("POST", "/api/auth/login") == 0
    assert credentials.load() is None
    assert mgr.state is SessionState.LOGGED_OUT


def test_register_duplicate_surfaces_server_message(backend, api, credentials):
    backend.users["alice"] = "secret"
    mgr = SessionManager(api, credentials)

    res = asyncio.run(mgr.register("alice", "other"))

    assert not res.ok
    assert res.error.kind is ErrorKind.SERVER
    assert res.error.message == "Username already exists"
    assert res.error.status_code == 400


def test_login_persists_token(backend, api, credentials):
    backend.users["alice"] = "secret"
    backend.next_token = "abc123"
    mgr = SessionManager(api, credentials)

    res = asyncio.run(mgr.login("alice", "secret"))

    assert res.ok
    assert res.value == "abc123"
    assert credentials.load() == "abc123"
    assert mgr.is_logged_in
    assert mgr.session.token == "abc123"


def test_login_invalid_leaves_store_unchanged(backend, api, credentials):
    backend.users["alice"] = "secret"
    credentials.save("previous")
    mgr = SessionManager(api, credentials)

    res = asyncio.run(mgr.login("alice", "wrong"))

    assert not res.ok
    assert res.error.message == "Invalid credentials"
    assert credentials.load() == "previous"
    assert mgr.session.token == "previous"


def test_login_invalid_from_logged_out_stays_logged_out(backend, api, credentials):
    mgr = SessionManager(api, credentials)
    res = asyncio.run(mgr.login("nobody", "x"))

    assert not res.ok
    assert credentials.load() is None
    assert mgr.state is SessionState.LOGGED_OUT


def test_login_without_server_message_uses_generic(credentials):
    http = httpx.AsyncClient(transport=httpx.MockTransport(lambda _: httpx.Response(502, text="Bad gateway")))
    mgr = SessionManager(ApiClient("http://todo.test", credentials=credentials, client=http), credentials)

    res = asyncio.run(mgr.login("alice", "secret"))

    assert res.error.message == GENERIC_ERROR_MESSAGE
    assert res.error.kind is ErrorKind.SERVER


def test_login_network_failure(credentials):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("down", request=request)

    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    mgr = SessionManager(ApiClient("http://todo.test", credentials=credentials, client=http), credentials)

    res = asyncio.run(mgr.login("alice", "secret"))

    assert res.error.kind is ErrorKind.TRANSPORT
    assert res.error.message == GENERIC_ERROR_MESSAGE
    assert credentials.load() is None


def test_login_response_without_token_is_malformed(credentials):
    http = httpx.AsyncClient(transport=httpx.MockTransport(lambda _: httpx.Response(200, json={"data": {}})))
    mgr = SessionManager(ApiClient("http://todo.test", credentials=credentials, client=http), credentials)

    res = asyncio.run(mgr.login("alice", "secret"))

    assert res.error.kind is ErrorKind.TRANSPORT
    assert credentials.load() is None


def test_login_storage_failure(backend, http_client, tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("x", encoding="utf-8")
    broken = CredentialStore(blocker / "credentials.json")
    backend.users["alice"] = "secret"
    mgr = SessionManager(ApiClient("http://todo.test", credentials=broken, client=http_client), broken)

    res = asyncio.run(mgr.login("alice", "secret"))

    assert res.error.kind is ErrorKind.STORAGE


def test_logout_clears_and_is_idempotent(backend, api, credentials):
    backend.users["alice"] = "secret"
    mgr = SessionManager(api, credentials)
    asyncio.run(mgr.login("alice", "secret"))
    requests_before = len(backend.requests)

    mgr.logout()
    mgr.logout()

    assert credentials.load() is None
    assert mgr.state is SessionState.LOGGED_OUT
    # No server call on logout
    assert len(backend.requests) == requests_before


def test_session_restored_from_store(api, credentials):
    credentials.save("persisted")
    mgr = SessionManager(api, credentials)
    assert mgr.is_logged_in
    assert mgr.session.token == "persisted"
