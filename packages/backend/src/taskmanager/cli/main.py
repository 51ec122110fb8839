"""tm-client — command-line client for the Task Manager API.

Usage:
    tm-client ping                                   # Is the server up?
    tm-client register -e me@example.com -p 'S3cret!pw'
    tm-client login -e me@example.com                # Password from -p or TM_PASSWORD
    tm-client whoami
    tm-client tasks list --status "To do"
    tm-client tasks add "Write report" --due-date 2024-01-10
    tm-client tasks status 42 "Done"
    tm-client tasks rm 42

The server address comes from --address/-a or TM_ADDRESS.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import json
import os
import sys
from typing import Optional

import click
import httpx

from taskmanager.cli.credentials import Credentials, CredentialsError

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

DEFAULT_ADDRESS = "http://localhost:8000"

# Exit code for a login the server rejected
EXIT_LOGIN_REJECTED = 33


def _client(address: str, token: Optional[str] = None) -> httpx.AsyncClient:
    """Build an async HTTP client pointed at the server."""
    headers = {"Authorization": f"Bearer {token}"} if token else None
    return httpx.AsyncClient(base_url=address.rstrip("/"), headers=headers, timeout=30.0)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run(coro):
    """Run an async coroutine from a synchronous click handler.

    Offloads to a thread when a loop is already running (e.g. CliRunner
    inside an async test).
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(asyncio.run, coro).result()


def _fail(message: str, code: int = 1) -> None:
    click.secho(message, fg="red", err=True)
    sys.exit(code)


def _check(resp: httpx.Response, expected: int, code: int = 1) -> None:
    if resp.status_code != expected:
        _fail(
            f"Server responded with {resp.status_code} status and body: {resp.text}",
            code,
        )


def _token() -> str:
    try:
        cred = Credentials.load()
    except CredentialsError as e:
        _fail(f"{e}. Run `tm-client login` again.")
    if cred is None:
        _fail("Not logged in. Run `tm-client login` first.")
    return cred.token


def _print_tasks(tasks: list[dict]) -> None:
    if not tasks:
        click.echo("No tasks found.")
        return
    header = f"{'ID':>6}  {'Status':<12}  {'Due':<10}  Name"
    click.secho(header, bold=True)
    click.echo("-" * len(header))
    for t in tasks:
        due = (t.get("due_date") or "")[:10]
        click.echo(f"{t['id']:>6}  {t['status']:<12}  {due:<10}  {t['name']}")


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version="0.1.0", prog_name="tm-client")
@click.option(
    "--address",
    "-a",
    envvar="TM_ADDRESS",
    default=DEFAULT_ADDRESS,
    show_default=True,
    help="Web application address (or set TM_ADDRESS)",
)
@click.pass_context
def main(ctx: click.Context, address: str):
    """A CLI client for the Task Manager web application."""
    ctx.obj = {"address": address}


@main.command()
@click.pass_obj
def ping(obj: dict):
    """Check if the web application is online."""
    _run(_ping_impl(obj["address"]))


async def _ping_impl(address: str):
    async with _client(address) as c:
        try:
            r = await c.get("/ping")
        except httpx.HTTPError as e:
            _fail(f"failed to reach out server: {e}")
    if r.text == "pong":
        click.secho("Success!", fg="green")
    else:
        _fail(f"error! Server responded with: {r.text}")


@main.command()
@click.option("--email", "-e", required=True, help="New user email")
@click.option(
    "--password",
    "-p",
    envvar="TM_PASSWORD",
    required=True,
    help="New user password (or set TM_PASSWORD)",
)
@click.pass_obj
def register(obj: dict, email: str, password: str):
    """Register a new user."""
    _run(_register_impl(obj["address"], email, password))


async def _register_impl(address: str, email: str, password: str):
    async with _client(address) as c:
        r = await c.post("/auth/register", json={"email": email, "password": password})
    _check(r, 201)
    click.secho("Registration was successful!", fg="green")


@main.command()
@click.option("--email", "-e", required=True, help="User email")
@click.option(
    "--password",
    "-p",
    envvar="TM_PASSWORD",
    required=True,
    help="User password (or set TM_PASSWORD)",
)
@click.pass_obj
def login(obj: dict, email: str, password: str):
    """Log in and store the token in $HOME/.tm-manager/cred.json."""
    _run(_login_impl(obj["address"], email, password))


async def _login_impl(address: str, email: str, password: str):
    async with _client(address) as c:
        r = await c.post("/auth/login", json={"email": email, "password": password})
    _check(r, 200, code=EXIT_LOGIN_REJECTED)

    try:
        cred = Credentials.parse(r.content)
    except ValueError as e:
        _fail(f"Failed to parse token from server response: {e}")
    path = cred.save()
    click.secho("Login was successful!", fg="green")
    click.echo(f"Token saved to {path}")


@main.command()
@click.pass_obj
def whoami(obj: dict):
    """Show the logged-in user."""
    _run(_whoami_impl(obj["address"]))


async def _whoami_impl(address: str):
    async with _client(address, _token()) as c:
        r = await c.get("/auth/whoami")
    _check(r, 200)
    user = r.json()
    click.echo(f"{user['email']} (id {user['id']})")


# ---------------------------------------------------------------------------
# tm-client tasks ...
# ---------------------------------------------------------------------------


@main.group()
def tasks():
    """Manage your tasks."""


@tasks.command("list")
@click.option("--q", "query", help="Only tasks whose name contains this text")
@click.option("--due-date", help="Only tasks due on this day (YYYY-MM-DD)")
@click.option("--status", "status_filter", help="Only tasks with this status")
@click.option("--json", "as_json", is_flag=True, help="Print raw JSON")
@click.pass_obj
def list_tasks(obj: dict, query: Optional[str], due_date: Optional[str],
               status_filter: Optional[str], as_json: bool):
    """List your tasks."""
    _run(_list_impl(obj["address"], query, due_date, status_filter, as_json))


async def _list_impl(address: str, query: Optional[str], due_date: Optional[str],
                     status_filter: Optional[str], as_json: bool):
    params = {}
    if query:
        params["q"] = query
    if due_date:
        params["due_date"] = due_date
    if status_filter:
        params["status"] = status_filter

    async with _client(address, _token()) as c:
        r = await c.get("/tasks/", params=params)
    _check(r, 200)

    if as_json:
        click.echo(json.dumps(r.json(), indent=2))
    else:
        _print_tasks(r.json())


@tasks.command("add")
@click.argument("name")
@click.option("--due-date", help="Due day (YYYY-MM-DD) or ISO datetime")
@click.option("--status", "status_value", help='Initial status (default "To do")')
@click.pass_obj
def add_task(obj: dict, name: str, due_date: Optional[str], status_value: Optional[str]):
    """Create a task."""
    _run(_add_impl(obj["address"], name, due_date, status_value))


async def _add_impl(address: str, name: str, due_date: Optional[str], status_value: Optional[str]):
    body: dict = {"name": name}
    if due_date:
        body["due_date"] = due_date
    if status_value:
        body["status"] = status_value

    async with _client(address, _token()) as c:
        r = await c.post("/tasks/", json=body)
    _check(r, 200)
    task = r.json()
    click.secho(f"Task #{task['id']} created ({task['status']})", fg="green")


@tasks.command("status")
@click.argument("task_id", type=int)
@click.argument("new_status")
@click.pass_obj
def set_status(obj: dict, task_id: int, new_status: str):
    """Move task TASK_ID to NEW_STATUS."""
    _run(_status_impl(obj["address"], task_id, new_status))


async def _status_impl(address: str, task_id: int, new_status: str):
    async with _client(address, _token()) as c:
        r = await c.patch(f"/tasks/{task_id}", json={"status": new_status})
    _check(r, 200)
    click.secho(f"Task #{task_id} is now {r.json()['status']}", fg="green")


@tasks.command("rm")
@click.argument("task_id", type=int)
@click.pass_obj
def remove_task(obj: dict, task_id: int):
    """Delete task TASK_ID."""
    _run(_rm_impl(obj["address"], task_id))


async def _rm_impl(address: str, task_id: int):
    async with _client(address, _token()) as c:
        r = await c.delete(f"/tasks/{task_id}")
    _check(r, 204)
    click.secho(f"Task #{task_id} deleted", fg="green")


if __name__ == "__main__":
    main()
