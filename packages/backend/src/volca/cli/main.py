"""Volca CLI — sign in, keep a session alive, reset and verify accounts.

Usage:
    volca login jane@example.com          # Prompt for password, store session
    volca whoami                          # Show the signed-in user
    volca refresh                         # Mint a new access token
    volca logout                          # Expire the session
    volca reset-request jane@example.com  # Mail a password reset link
    volca reset <token>                   # Set a new password from a link
    volca verify <token>                  # Verify an email address
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import json
import os
import sys
from http.cookies import SimpleCookie
from pathlib import Path
from typing import Optional

import click
import httpx

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

DEFAULT_API_URL = "http://localhost:8000"
REFRESH_COOKIE = "refresh_token"


def _api_url() -> str:
    return os.environ.get("VOLCA_API_URL", DEFAULT_API_URL).rstrip("/")


def _credentials_path() -> Path:
    default = Path.home() / ".volca" / "credentials.json"
    return Path(os.environ.get("VOLCA_CREDENTIALS_FILE", default))


def _client() -> httpx.AsyncClient:
    """Build an async HTTP client pointed at the Volca API."""
    return httpx.AsyncClient(base_url=_api_url(), timeout=30.0)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run(coro):
    """Run an async coroutine from a synchronous Click handler.

    Handles nested event loops (e.g. when invoked via Click CliRunner
    inside an existing async context like tests) by offloading to a thread.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(asyncio.run, coro).result()


def _load_credentials() -> dict:
    path = _credentials_path()
    if not path.exists():
        return {}
    return json.loads(path.read_text())


def _save_credentials(data: dict) -> None:
    path = _credentials_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2))
    path.chmod(0o600)


def _cookie_from(response: httpx.Response, name: str) -> Optional[str]:
    """Read a cookie straight from Set-Cookie headers.

    The refresh cookie is Secure outside local environments, so httpx's
    cookie jar would drop it on plain-http dev servers.
    """
    for header in response.headers.get_list("set-cookie"):
        cookie = SimpleCookie()
        cookie.load(header)
        if name in cookie:
            return cookie[name].value
    return None


def _fail(response: httpx.Response) -> None:
    """Print the API's public error message and exit non-zero."""
    try:
        message = response.json().get("message") or response.text
    except ValueError:
        message = response.text
    click.secho(f"Error ({response.status_code}): {message}", fg="red", err=True)
    sys.exit(1)


def _require_session() -> dict:
    creds = _load_credentials()
    if not creds.get("refresh_token"):
        click.secho("Not logged in. Run: volca login <email>", fg="red", err=True)
        sys.exit(1)
    return creds


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version="0.1.0", prog_name="volca")
def main():
    """Volca — authentication and session management from the terminal."""


@main.command()
@click.argument("email")
@click.password_option(confirmation_prompt=False)
def login(email: str, password: str):
    """Sign in and store the session locally."""
    _run(_login_impl(email, password))


async def _login_impl(email: str, password: str):
    async with _client() as c:
        r = await c.post("/api/v1/auth/login", json={"email": email, "password": password})
    if r.status_code != 200:
        _fail(r)

    body = r.json()
    _save_credentials({
        "email": email,
        "access_token": body["access_token"],
        "refresh_token": _cookie_from(r, REFRESH_COOKIE),
    })
    click.secho(f"Logged in as {email} (token valid {body['expires_in']}s)", fg="green")


@main.command()
def refresh():
    """Mint a new access token from the stored refresh token."""
    _run(_refresh_impl())


async def _refresh_impl():
    creds = _require_session()
    async with _client() as c:
        r = await c.post("/api/v1/auth/refresh", json={"refresh_token": creds["refresh_token"]})
    if r.status_code != 200:
        _fail(r)

    body = r.json()
    creds["access_token"] = body["access_token"]
    _save_credentials(creds)
    click.secho(f"Access token refreshed (valid {body['expires_in']}s)", fg="green")


@main.command()
def logout():
    """Expire the stored session and forget it."""
    _run(_logout_impl())


async def _logout_impl():
    creds = _load_credentials()
    if creds.get("refresh_token"):
        async with _client() as c:
            r = await c.post("/api/v1/auth/logout", json={"refresh_token": creds["refresh_token"]})
        if r.status_code != 204:
            _fail(r)
    _save_credentials({})
    click.echo("Logged out")


@main.command()
def whoami():
    """Show the signed-in user."""
    _run(_whoami_impl())


async def _whoami_impl():
    creds = _require_session()
    async with _client() as c:
        r = await c.get(
            "/api/v1/auth/me",
            headers={"Authorization": f"Bearer {creds.get('access_token', '')}"},
        )
    if r.status_code != 200:
        _fail(r)

    user = r.json()
    verified = "verified" if user.get("verified_at") else "unverified"
    click.echo(f"{user['email']}  {user['id']}  ({verified})")


@main.command("reset-request")
@click.argument("email")
def reset_request(email: str):
    """Ask for a password reset link to be mailed to EMAIL."""
    _run(_reset_request_impl(email))


async def _reset_request_impl(email: str):
    async with _client() as c:
        r = await c.post("/api/v1/auth/reset-password/request", json={"email": email})
    if r.status_code != 204:
        _fail(r)
    click.echo(f"Reset link sent to {email}")


@main.command()
@click.argument("token")
@click.password_option(prompt="New password")
def reset(token: str, password: str):
    """Set a new password using the TOKEN from a reset link."""
    _run(_reset_impl(token, password))


async def _reset_impl(token: str, password: str):
    async with _client() as c:
        r = await c.post("/api/v1/auth/reset-password", json={"password": password, "token": token})
    if r.status_code != 204:
        _fail(r)
    click.secho("Password updated", fg="green")


@main.command()
@click.argument("token")
def verify(token: str):
    """Verify an email address using the TOKEN from a verification link."""
    _run(_verify_impl(token))


async def _verify_impl(token: str):
    async with _client() as c:
        r = await c.post("/api/v1/auth/verify", json={"token": token})
    if r.status_code != 204:
        _fail(r)
    click.secho("Email verified", fg="green")


if __name__ == "__main__":
    main()
