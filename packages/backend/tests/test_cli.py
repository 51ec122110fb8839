"""tm-client tests — click commands against a mocked HTTP transport."""

import json

import httpx
import pytest
from click.testing import CliRunner

from taskmanager.cli import main as cli
from taskmanager.cli.credentials import Credentials


@pytest.fixture()
def cred_file(tmp_path, monkeypatch):
    path = tmp_path / "cred.json"
    monkeypatch.setenv("TM_CREDENTIALS_FILE", str(path))
    return path


@pytest.fixture()
def server(monkeypatch):
    """Route the CLI's HTTP calls to a handler; records every request."""
    state = {"handler": None, "requests": []}

    def handle(request: httpx.Request) -> httpx.Response:
        state["requests"].append(request)
        return state["handler"](request)

    def fake_client(address, token=None):
        headers = {"Authorization": f"Bearer {token}"} if token else None
        return httpx.AsyncClient(
            base_url=address, headers=headers, transport=httpx.MockTransport(handle)
        )

    monkeypatch.setattr(cli, "_client", fake_client)
    return state


def invoke(*args):
    return CliRunner().invoke(cli.main, list(args))


def test_ping_success(server):
    server["handler"] = lambda req: httpx.Response(200, text="pong")
    result = invoke("ping")
    assert result.exit_code == 0
    assert "Success!" in result.output
    assert server["requests"][0].url.path == "/ping"


def test_ping_unexpected_body(server):
    server["handler"] = lambda req: httpx.Response(200, text="nope")
    result = invoke("ping")
    assert result.exit_code == 1


def test_ping_unreachable(server):
    def refuse(req):
        raise httpx.ConnectError("connection refused", request=req)

    server["handler"] = refuse
    result = invoke("ping")
    assert result.exit_code == 1


def test_register(server):
    server["handler"] = lambda req: httpx.Response(
        201, json={"id": 1, "email": "a@b.com", "created_at": "2024-01-01T00:00:00Z"}
    )
    result = invoke("register", "-e", "a@b.com", "-p", "Strong1!pw")
    assert result.exit_code == 0
    assert json.loads(server["requests"][0].content) == {
        "email": "a@b.com",
        "password": "Strong1!pw",
    }


def test_register_rejected(server):
    server["handler"] = lambda req: httpx.Response(400, json={"error": "weak"})
    result = invoke("register", "-e", "a@b.com", "-p", "weak")
    assert result.exit_code == 1
    assert "400" in result.output


def test_login_saves_token(server, cred_file):
    server["handler"] = lambda req: httpx.Response(200, json={"token": "tok-123"})
    result = invoke("login", "-e", "a@b.com", "-p", "Strong1!pw")
    assert result.exit_code == 0
    assert Credentials.load(cred_file) == Credentials(token="tok-123")
    assert oct(cred_file.stat().st_mode & 0o777) == "0o600"


def test_login_rejected_exit_code(server, cred_file):
    server["handler"] = lambda req: httpx.Response(401, json={"error": "invalid credentials"})
    result = invoke("login", "-e", "a@b.com", "-p", "Wrong1!pw")
    assert result.exit_code == cli.EXIT_LOGIN_REJECTED
    assert not cred_file.exists()


def test_login_response_without_token(server, cred_file):
    server["handler"] = lambda req: httpx.Response(200, json={"nope": 1})
    result = invoke("login", "-e", "a@b.com", "-p", "Strong1!pw")
    assert result.exit_code == 1
    assert not cred_file.exists()


def test_tasks_list_sends_token_and_filters(server, cred_file):
    Credentials(token="tok-123").save(cred_file)
    server["handler"] = lambda req: httpx.Response(
        200,
        json=[
            {
                "id": 7,
                "name": "Write report",
                "due_date": "2024-01-10T00:00:00Z",
                "status": "To do",
                "created_at": "2024-01-01T00:00:00Z",
            }
        ],
    )
    result = invoke("tasks", "list", "--status", "To do", "--due-date", "2024-01-10")
    assert result.exit_code == 0
    assert "Write report" in result.output

    request = server["requests"][0]
    assert request.headers["Authorization"] == "Bearer tok-123"
    assert request.url.params["status"] == "To do"
    assert request.url.params["due_date"] == "2024-01-10"


def test_tasks_add_requires_login(server, cred_file):
    server["handler"] = lambda req: httpx.Response(500)
    result = invoke("tasks", "add", "Write report")
    assert result.exit_code == 1
    assert server["requests"] == []


def test_tasks_status_and_rm(server, cred_file):
    Credentials(token="tok-123").save(cred_file)

    def handler(req):
        if req.method == "PATCH":
            return httpx.Response(200, json={"id": 7, "status": "Done"})
        return httpx.Response(204)

    server["handler"] = handler

    result = invoke("tasks", "status", "7", "Done")
    assert result.exit_code == 0
    assert server["requests"][-1].url.path == "/tasks/7"
    assert json.loads(server["requests"][-1].content) == {"status": "Done"}

    result = invoke("tasks", "rm", "7")
    assert result.exit_code == 0
    assert server["requests"][-1].method == "DELETE"


def test_saved_credentials_are_owner_only_even_when_overwriting(cred_file):
    cred_file.write_text('{"token": "old"}')
    cred_file.chmod(0o644)

    Credentials(token="new").save(cred_file)
    assert oct(cred_file.stat().st_mode & 0o777) == "0o600"
    assert Credentials.load(cred_file) == Credentials(token="new")


@pytest.mark.parametrize("content", ["{not json", "[]", '{"other": 1}', '{"token": ""}'])
def test_corrupt_credentials_give_clean_error(server, cred_file, content):
    cred_file.write_text(content)
    server["handler"] = lambda req: httpx.Response(200, json=[])

    result = invoke("tasks", "list")
    assert result.exit_code == 1
    assert isinstance(result.exception, SystemExit)
    assert "corrupt credentials file" in result.output
    assert server["requests"] == []
