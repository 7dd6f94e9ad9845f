"""Atajo para lanzar `restaurant-review` desde un checkout.

Uso: `python -m main search --q ramen`.

Añade `src/` al path (los paquetes `cli`, `core` y `adapters` viven ahí) y
delega en `cli.main.run`, el mismo entrypoint que declara pyproject.toml.
"""

from __future__ import annotations

import sys
from pathlib import Path


def main() -> None:
    src = Path(__file__).resolve().parent / "src"
    if str(src) not in sys.path:
        sys.path.insert(0, str(src))

    from cli.main import run  # noqa: PLC0415

    run()


if __name__ == "__main__":
    main()
