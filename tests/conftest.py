import json
import os
import sys

import httpx
import pytest


def pytest_configure():
    # Ensure `src/` is importable as top-level for `common.*` imports
    root = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))
    src_path = os.path.join(root, "src")
    if src_path not in sys.path:
        sys.path.insert(0, src_path)


class FakeBackend:
    """In-memory stand-in for the todo REST API, served through httpx.MockTransport."""

    def __init__(self) -> None:
        self.users = {}  # username -> password
        self.sessions = {}  # token -> username
        self.todos = {}  # username -> [ {_id, title, description} ]
        self.requests = []
        self.next_token = None
        self._seq = 0

    def _next_id(self) -> str:
        self._seq += 1
        return f"{self._seq:024x}"

    def _user_for(self, request):
        header = request.headers.get("Authorization", "")
        if not header.startswith("Bearer "):
            return None
        return self.sessions.get(header[len("Bearer "):])

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        body = json.loads(request.content) if request.content else {}

        if request.method == "POST" and path == "/api/auth/register":
            username, password = body.get("username"), body.get("password")
            if not username or not password:
                return httpx.Response(400, json={"message": "Username and password are required"})
            if username in self.users:
                return httpx.Response(400, json={"message": "Username already exists"})
            self.users[username] = password
            self.todos[username] = []
            return httpx.Response(201, json={"message": "User registered successfully"})

        if request.method == "POST" and path == "/api/auth/login":
            username, password = body.get("username"), body.get("password")
            if self.users.get(username) != password or username is None:
                return httpx.Response(400, json={"message": "Invalid credentials"})
            token = self.next_token or f"token-{self._next_id()}"
            self.next_token = None
            self.sessions[token] = username
            return httpx.Response(200, json={"status": "success", "data": {"token": token}})

        if path.startswith("/api/todos"):
            user = self._user_for(request)
            if user is None:
                return httpx.Response(401, json={"message": "No token, authorization denied"})
            items = self.todos.setdefault(user, [])

            if request.method == "GET" and path == "/api/todos":
                return httpx.Response(200, json=list(items))
            if request.method == "POST" and path == "/api/todos":
                if not body.get("title") or not body.get("description"):
                    return httpx.Response(400, json={"message": "Title and description are required"})
                item = {
                    "_id": self._next_id(),
                    "title": body["title"],
                    "description": body["description"],
                    "user": user,
                }
                items.append(item)
                return httpx.Response(201, json=item)
            if request.method == "DELETE":
                todo_id = path.rsplit("/", 1)[-1]
                for item in items:
                    if item["_id"] == todo_id:
                        items.remove(item)
                        return httpx.Response(200, json={"message": "Todo removed"})
                return httpx.Response(404, json={"message": "Todo not found"})

        return httpx.Response(404, json={"message": "Not found"})

    def count(self, method: str, path: str) -> int:
        return sum(1 for r in self.requests if r.method == method and r.url.path == path)


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def http_client(backend):
    return httpx.AsyncClient(transport=httpx.MockTransport(backend.handler))


@pytest.fixture
def credentials(tmp_path):
    from state.credential_store import CredentialStore

    return CredentialStore(tmp_path / "credentials.json")


@pytest.fixture
def api(credentials, http_client):
    from common.api import ApiClient

    return ApiClient("http://todo.test", credentials=credentials, client=http_client)
