"""CLI principal (Typer).

Por qué una CLI:
- Es el front end mínimo que consume el contrato público del cliente de API:
  busca, muestra, reseña y sube fotos, y pinta lo que el cliente devuelve.
- Toda la lógica (auth, paginación, decodificación) vive en core/adapters.
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any, Awaitable, Callable, Mapping, Optional, TypeVar, get_args

import typer
from pydantic import ValidationError
from rich.console import Console

from adapters.restaurant_api import RestaurantApiClient
from adapters.token_sources import OidcTokenSource, SessionStore, StaticTokenSource
from cli import doctor
from cli.ui_components import (
    build_restaurant_panel,
    build_restaurants_table,
    build_reviews_table,
    format_page_window,
    print_banner,
)
from core.config import AppSettings
from core.domain.errors import ApiError, AuthExpired, ClientError, SchemaMismatch, TransportFailure
from core.domain.models import CreateReviewRequest, ReviewSort, UpdateReviewRequest
from core.interfaces.token_source import TokenSource
from core.logging_setup import configure_logging
from core.services.pagination import SearchCoordinator, SearchFilters
from core.services.photos import upload_photo_url
from core.services.restaurant_forms import build_restaurant_request, build_update_request

T = TypeVar("T")

app = typer.Typer(no_args_is_help=True, help="Discover and review restaurants from the terminal.")
auth_app = typer.Typer(no_args_is_help=True, help="Sign in and out against the identity provider.")
app.add_typer(auth_app, name="auth")
app.add_typer(doctor.app, name="doctor")

_console = Console()

_state: dict[str, object] = {"token": None}


def build_token_source(settings: AppSettings, token: str | None = None) -> TokenSource:
    """Token fijo si se pasa `--token`; si no, la sesión OIDC persistida."""

    if token:
        return StaticTokenSource(token)
    return OidcTokenSource(settings, store=SessionStore())


def _describe(exc: ApiError) -> str:
    if isinstance(exc, AuthExpired):
        return "Session expired or not authorized. Run `auth login` and retry."
    if isinstance(exc, ClientError) and exc.status == 400:
        return f"Invalid request: {exc.message}"
    if isinstance(exc, ClientError):
        return f"API Error: {exc.status}: {exc.message}"
    if isinstance(exc, TransportFailure):
        return f"Could not reach the API: {exc}"
    if isinstance(exc, SchemaMismatch):
        return f"Unexpected response from the API: {exc}"
    return str(exc)


def _run(operation: Callable[[RestaurantApiClient], Awaitable[T]]) -> T:
    settings = AppSettings()
    token_source = build_token_source(settings, _state["token"])  # type: ignore[arg-type]

    async def runner() -> T:
        async with RestaurantApiClient(token_source, settings) as api:
            return await operation(api)

    try:
        return asyncio.run(runner())
    except ApiError as exc:
        _console.print(f"[red]{_describe(exc)}[/red]")
        raise typer.Exit(code=1) from exc


def _load_form(path: Path) -> dict:
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise typer.BadParameter("form file must contain a JSON object")
    return data


def _form_request(builder: Callable[[Mapping[str, Any]], T], path: Path) -> T:
    form = _load_form(path)
    try:
        return builder(form)
    except KeyError as exc:
        raise typer.BadParameter(f"form file is missing required field {exc}") from exc
    except ValidationError as exc:
        raise typer.BadParameter(f"form file is invalid ({exc.error_count()} errors): {exc}") from exc


def _check_sort(value: str) -> str:
    choices = get_args(ReviewSort)
    if value not in choices:
        raise typer.BadParameter(f"sort must be one of: {', '.join(choices)}")
    return value


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging."),
    token: Optional[str] = typer.Option(
        None,
        "--token",
        envvar="RESTAURANT_REVIEW_TOKEN",
        help="Use a fixed bearer token instead of the stored session.",
    ),
) -> None:
    configure_logging("DEBUG" if verbose else AppSettings().log_level)
    _state["token"] = token


@app.command()
def search(
    q: Optional[str] = typer.Option(None, "--q", "-q", help="Free text query."),
    min_rating: Optional[int] = typer.Option(None, "--min-rating", min=1, max=5),
    page: int = typer.Option(1, "--page", "-p", min=1, help="Page number (starts at 1)."),
) -> None:
    """Search restaurants."""

    settings = AppSettings()

    async def op(api: RestaurantApiClient):
        coordinator = SearchCoordinator(api.search_restaurants, page_size=settings.page_size)
        return await coordinator.search(SearchFilters(q=q, min_rating=min_rating), page)

    view = _run(op)
    if view is None:
        return
    print_banner(_console)
    if not view.items:
        _console.print("[yellow]No restaurants found.[/yellow]")
        return
    _console.print(build_restaurants_table(view.items))
    _console.print(format_page_window(view))


@app.command()
def show(restaurant_id: str) -> None:
    """Show a restaurant with hours and photos."""

    restaurant = _run(lambda api: api.get_restaurant(restaurant_id))
    _console.print(build_restaurant_panel(restaurant))


@app.command()
def reviews(
    restaurant_id: str,
    sort: str = typer.Option(
        "datePosted,desc",
        "--sort",
        callback=_check_sort,
        help="datePosted,desc | datePosted,asc | rating,desc | rating,asc",
    ),
    page: int = typer.Option(1, "--page", "-p", min=1),
    size: int = typer.Option(20, "--size", min=1),
) -> None:
    """List reviews of a restaurant."""

    envelope = _run(lambda api: api.list_reviews(restaurant_id, sort=sort, page=page - 1, size=size))
    if not envelope.content:
        _console.print("[yellow]No reviews yet.[/yellow]")
        return
    _console.print(build_reviews_table(envelope.content))


@app.command()
def review(
    restaurant_id: str,
    rating: int = typer.Option(..., "--rating", "-r", min=1, max=5),
    content: str = typer.Option(..., "--content", "-c"),
    photo: list[Path] = typer.Option([], "--photo", exists=True, dir_okay=False, help="Photo to attach (repeatable)."),
    review_id: Optional[str] = typer.Option(None, "--review-id", help="Update this review instead of creating one."),
) -> None:
    """Write (or update) a review, uploading attached photos first."""

    async def op(api: RestaurantApiClient):
        photo_ids = [await upload_photo_url(api, path) for path in photo]
        if review_id:
            request = UpdateReviewRequest(content=content, rating=rating, photo_ids=photo_ids)
            await api.update_review(restaurant_id, review_id, request)
            return review_id
        created = await api.create_review(
            restaurant_id,
            CreateReviewRequest(content=content, rating=rating, photo_ids=photo_ids),
        )
        return created.id

    saved_id = _run(op)
    _console.print(f"[green]Review saved:[/green] {saved_id}")


@app.command()
def create(form: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON file with the restaurant form.")) -> None:
    """Create a restaurant from a JSON form."""

    request = _form_request(build_restaurant_request, form)
    restaurant = _run(lambda api: api.create_restaurant(request))
    _console.print(f"[green]Restaurant created:[/green] {restaurant.id}")


@app.command()
def update(
    restaurant_id: str,
    form: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON file with the restaurant form."),
) -> None:
    """Replace a restaurant's data from a JSON form."""

    request = _form_request(build_update_request, form)
    _run(lambda api: api.update_restaurant(restaurant_id, request))
    _console.print(f"[green]Restaurant updated:[/green] {restaurant_id}")


@app.command()
def delete(
    restaurant_id: str,
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation."),
) -> None:
    """Delete a restaurant."""

    if not yes:
        typer.confirm(f"Delete restaurant {restaurant_id}?", abort=True)
    _run(lambda api: api.delete_restaurant(restaurant_id))
    _console.print(f"[green]Restaurant deleted:[/green] {restaurant_id}")


@app.command(name="upload-photo")
def upload_photo(
    path: Path = typer.Argument(..., exists=True, dir_okay=False),
    caption: Optional[str] = typer.Option(None, "--caption"),
) -> None:
    """Upload a photo and print its URL (use it as a photo id)."""

    photo = _run(lambda api: api.upload_photo(path, caption))
    _console.print(f"[green]Uploaded:[/green] {photo.url}")


@app.command(name="download-photo")
def download_photo(
    filename: str,
    output: Path = typer.Option(Path("."), "--output", "-o", help="Target file or directory."),
) -> None:
    """Download a photo's bytes."""

    content = _run(lambda api: api.fetch_photo(filename))
    target = output / filename if output.is_dir() else output
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(content)
    _console.print(f"[green]Saved:[/green] {target}")


@auth_app.command()
def login(username: str = typer.Option(..., prompt=True)) -> None:
    """Sign in with username and password (direct access grant)."""

    password = typer.prompt("Password", hide_input=True)
    source = OidcTokenSource(AppSettings(), store=SessionStore())
    try:
        session = asyncio.run(source.signin_password(username, password))
    except ApiError as exc:
        _console.print(f"[red]Sign-in failed:[/red] {exc}")
        raise typer.Exit(code=1) from exc
    _console.print(f"[green]Signed in as[/green] {session.username}")


@auth_app.command()
def status() -> None:
    """Show the stored session."""

    session = OidcTokenSource(AppSettings(), store=SessionStore()).session
    if not session.is_authenticated:
        _console.print("[yellow]Not signed in.[/yellow]")
        return
    _console.print(f"Signed in as [cyan]{session.username or '?'}[/cyan]")
    if session.expires_at:
        _console.print(f"Access token expires at {session.expires_at} (epoch)", style="dim")


@auth_app.command()
def logout() -> None:
    """Forget the stored session."""

    OidcTokenSource(AppSettings(), store=SessionStore()).sign_out()
    _console.print("[green]Signed out.[/green]")


def run() -> None:
    app()
