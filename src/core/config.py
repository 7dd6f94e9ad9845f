"""Configuración del Core.

Por qué aquí:
- Centraliza variables de entorno (pydantic-settings) sin contaminar la CLI.
- Permite que adaptadores (HTTP/OIDC) lean config de forma consistente.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def get_user_config_dir() -> Path:
    """Directorio de configuración por usuario (cross-platform, sin dependencias)."""

    if sys.platform.startswith("win"):
        base = Path(os.environ.get("APPDATA", str(Path.home())))
        return base / "restaurant-review"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "restaurant-review"

    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "restaurant-review"
    return Path.home() / ".config" / "restaurant-review"


def get_user_env_file() -> Path:
    return get_user_config_dir() / ".env"


def _parse_env_lines(text: str) -> dict[str, str]:
    data: dict[str, str] = {}
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if key:
            data[key] = value
    return data


def write_user_env_vars(values: dict[str, str]) -> Path:
    """Escribe/actualiza variables en el .env global del usuario."""

    env_path = get_user_env_file()
    env_path.parent.mkdir(parents=True, exist_ok=True)

    existing: dict[str, str] = {}
    if env_path.exists():
        existing = _parse_env_lines(env_path.read_text(encoding="utf-8"))

    existing.update({k: v for k, v in values.items() if v is not None})

    lines = ["# restaurant-review user config (.env)"]
    for key in sorted(existing.keys()):
        lines.append(f"{key}={existing[key]}")
    env_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return env_path


class AppSettings(BaseSettings):
    """Configuración central de la aplicación.

    Por qué pydantic-settings:
    - Tipado + validación en el borde (env vars) sin ensuciar el Core con lógica.
    - Un único contrato de configuración para CLI/adapters.
    """

    model_config = SettingsConfigDict(
        env_prefix="RESTAURANT_REVIEW_",
        extra="ignore",
        case_sensitive=False,
        # Orden: proyecto primero (dev), luego config global de usuario.
        env_file=(".env", str(get_user_env_file())),
        env_file_encoding="utf-8",
    )

    api_base_url: str = Field(
        default="http://localhost:8080/api",
        min_length=8,
        description="Base URL de la API REST (incluye el prefijo /api).",
    )
    http_timeout_seconds: float = Field(
        default=20.0,
        gt=0,
        description="Timeout por request (segundos).",
    )
    user_agent: str = Field(
        default="restaurant-review/0.1 (+https://local)",
        min_length=1,
        description="User-Agent para peticiones a la API.",
    )
    page_size: int = Field(
        default=8,
        ge=1,
        le=100,
        description="Tamaño de página fijo para la búsqueda de restaurantes.",
    )

    token_refresh_margin_seconds: int = Field(
        default=60,
        ge=0,
        le=3600,
        description="Margen antes de la expiración en el que se refresca el token de forma proactiva.",
    )
    with_credentials: bool = Field(
        default=True,
        description="Mantiene un cookie jar para el canal de credenciales HTTP-only.",
    )
    # XSRF double-submit desactivado por defecto; definir el nombre de la cookie lo reactiva.
    xsrf_cookie_name: str | None = Field(
        default=None,
        description="Cookie XSRF a reenviar como header (None = protección XSRF desactivada).",
    )
    xsrf_header_name: str = Field(
        default="X-XSRF-TOKEN",
        min_length=1,
        description="Header en el que se reenvía la cookie XSRF cuando está activa.",
    )

    oidc_authority: str = Field(
        default="http://localhost:9090",
        min_length=8,
        description="Base URL del proveedor de identidad (Keycloak).",
    )
    oidc_realm: str = Field(
        default="restaurant-review",
        min_length=1,
        description="Realm de Keycloak contra el que se autentica.",
    )
    oidc_client_id: str = Field(
        default="restaurant-review-app",
        min_length=1,
        description="Client ID registrado en el proveedor de identidad.",
    )
    oidc_redirect_uri: str = Field(
        default="http://localhost:3000",
        min_length=8,
        description="Redirect URI registrada para el login interactivo.",
    )
    oidc_scope: str = Field(
        default="openid profile email",
        min_length=1,
        description="Scopes solicitados al proveedor de identidad.",
    )

    log_level: str = Field(
        default="WARNING",
        description="Nivel de logging (DEBUG/INFO/WARNING/ERROR).",
    )

    @property
    def oidc_realm_url(self) -> str:
        return f"{self.oidc_authority.rstrip('/')}/realms/{self.oidc_realm}"
