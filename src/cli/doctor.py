"""Doctor command for environment diagnostics."""

from __future__ import annotations

import asyncio

import httpx
import typer
from rich.console import Console
from rich.table import Table

from adapters.http_client import build_async_client
from adapters.token_sources import OidcTokenSource, SessionStore
from core.config import AppSettings, write_user_env_vars

app = typer.Typer(no_args_is_help=True, help="Environment diagnostics and configuration checks.")

_console = Console()


async def _check_http(url: str, settings: AppSettings) -> tuple[bool, str]:
    try:
        async with build_async_client(settings, base_url="") as client:
            response = await client.get(url)
        return response.status_code < 500, f"HTTP {response.status_code}"
    except httpx.HTTPError as exc:
        return False, str(exc) or exc.__class__.__name__


@app.command()
def run() -> None:
    """Run baseline diagnostics and show recommended fixes."""

    settings = AppSettings()
    source = OidcTokenSource(settings, store=SessionStore())

    table = Table(title="Restaurant Review Doctor")
    table.add_column("Check", style="bright_green", no_wrap=True)
    table.add_column("Status", style="white")
    table.add_column("Details", style="dim")

    # Config
    table.add_row("API base_url", "OK", settings.api_base_url)
    table.add_row("OIDC realm", "OK", settings.oidc_realm_url)
    table.add_row("OIDC client", "OK", settings.oidc_client_id)
    if settings.xsrf_cookie_name:
        table.add_row("XSRF", "ENABLED", f"{settings.xsrf_cookie_name} -> {settings.xsrf_header_name}")
    else:
        table.add_row("XSRF", "DISABLED", "Double-submit cookie protection is off")

    # Session
    session = source.session
    if session.is_authenticated:
        table.add_row("Session", "OK", f"Signed in as {session.username or '?'}")
    else:
        table.add_row("Session", "OPTIONAL", "Not signed in -> anonymous reads only")

    # Connectivity (best-effort)
    ok_api, detail_api = asyncio.run(_check_http(f"{settings.api_base_url.rstrip('/')}/restaurants?size=1", settings))
    table.add_row("API connectivity", "OK" if ok_api else "FAIL", detail_api)

    ok_idp, detail_idp = asyncio.run(
        _check_http(f"{settings.oidc_realm_url}/.well-known/openid-configuration", settings)
    )
    table.add_row("Identity provider", "OK" if ok_idp else "FAIL", detail_idp)

    _console.print(table)

    if not ok_idp:
        _console.print(
            "\n[yellow]Note:[/yellow] Without the identity provider, expired sessions cannot be refreshed."
        )


@app.command(name="setup-auth")
def setup_auth() -> None:
    """Interactive API/identity provider setup (stores config in the user config .env)."""

    settings = AppSettings()

    api_url = typer.prompt("API base URL", default=settings.api_base_url, show_default=True).strip()
    authority = typer.prompt("Keycloak URL", default=settings.oidc_authority, show_default=True).strip()
    realm = typer.prompt("Realm", default=settings.oidc_realm, show_default=True).strip()
    client_id = typer.prompt("Client ID", default=settings.oidc_client_id, show_default=True).strip()

    if not api_url or not authority or not realm or not client_id:
        raise typer.BadParameter("api_url, authority, realm and client_id are required")

    env_path = write_user_env_vars(
        {
            "RESTAURANT_REVIEW_API_BASE_URL": api_url,
            "RESTAURANT_REVIEW_OIDC_AUTHORITY": authority,
            "RESTAURANT_REVIEW_OIDC_REALM": realm,
            "RESTAURANT_REVIEW_OIDC_CLIENT_ID": client_id,
        }
    )

    _console.print(f"[green]Saved auth config to:[/green] {env_path}")
