"""Componentes de UI para CLI (Rich).

Por qué separar componentes:
- Evita mezclar lógica de comandos con detalles visuales.
- Permite reutilizar tablas/paneles en múltiples comandos.
"""

from __future__ import annotations

from typing import Sequence

from rich.align import Align
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from core.domain.models import WEEKDAYS, Restaurant, RestaurantSummary, Review
from core.services.pagination import ELLIPSIS, PageView


def print_banner(console: Console) -> None:
    """Imprime el banner de bienvenida."""

    title = Text("Restaurant Review", style="bold cyan")
    subtitle = Text("Búsqueda • Reseñas • Fotos", style="dim")
    body = Align.center(Text.assemble(title, "\n", subtitle), vertical="middle")
    console.print(Panel(body, border_style="cyan", padding=(1, 4)))


def _stars(rating: float | None) -> str:
    if rating is None:
        return "-"
    full = int(round(rating))
    return "★" * full + "☆" * (5 - full) + f" {rating:.1f}"


def build_restaurants_table(restaurants: Sequence[RestaurantSummary]) -> Table:
    table = Table(title="Restaurants")
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Name", style="cyan")
    table.add_column("Cuisine", style="white")
    table.add_column("Rating", style="yellow")
    table.add_column("Reviews", justify="right")
    table.add_column("Address", style="magenta")
    for r in restaurants:
        table.add_row(
            r.id,
            r.name,
            r.cuisine_type or "-",
            _stars(r.average_rating),
            str(r.total_reviews or 0),
            r.address.one_line() if r.address else "-",
        )
    return table


def format_page_window(view: PageView) -> Text:
    """Línea de paginación: `‹ 1 … 4 [5] 6 … 10 ›`."""

    text = Text()
    text.append("‹ " if view.has_previous else "  ", style="bold")
    for item in view.window:
        if item == ELLIPSIS:
            text.append("… ", style="dim")
        elif item == view.current_page:
            text.append(f"[{item}] ", style="bold cyan")
        else:
            text.append(f"{item} ")
    text.append("›" if view.has_next else " ", style="bold")
    return text


def build_restaurant_panel(restaurant: Restaurant) -> Panel:
    body = Text()
    body.append(f"{restaurant.cuisine_type or '-'}  ", style="bold")
    body.append(_stars(restaurant.average_rating) + "\n", style="yellow")
    if restaurant.address:
        body.append(restaurant.address.one_line() + "\n")
    if restaurant.contact_information:
        body.append(restaurant.contact_information + "\n", style="dim")

    body.append("\nHours:\n", style="bold")
    open_days = restaurant.operating_hours.open_days()
    for day in WEEKDAYS:
        hours = open_days.get(day)
        label = f"{hours.open_time}-{hours.close_time}" if hours else "Closed"
        body.append(f"  {day.capitalize():<10} {label}\n")

    if restaurant.photos:
        body.append("\nPhotos:\n", style="bold")
        for photo in restaurant.photos:
            body.append(f"  {photo.url}\n", style="magenta")

    return Panel(body, title=Text(restaurant.name, style="bold cyan"), border_style="cyan")


def build_reviews_table(reviews: Sequence[Review]) -> Table:
    table = Table(title="Reviews")
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Rating", style="yellow")
    table.add_column("Author", style="cyan")
    table.add_column("Posted", style="dim")
    table.add_column("Review", style="white")
    for review in reviews:
        author = review.written_by.username if review.written_by and review.written_by.username else "-"
        posted = review.date_posted.strftime("%Y-%m-%d") if review.date_posted else "-"
        table.add_row(
            review.id,
            _stars(float(review.rating)) if review.rating is not None else "-",
            author,
            posted,
            review.content,
        )
    return table
