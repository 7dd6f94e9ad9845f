"""Contrato del Token Source.

Por qué Protocol:
- El cliente nunca gestiona credenciales: solo consume una sesión que otro
  componente (OIDC, un token fijo, un fake en tests) mantiene.
- Permite intercambiar el proveedor de identidad sin tocar el pipeline.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from core.domain.models import Session


@runtime_checkable
class TokenSource(Protocol):
    """Sesión del proveedor de identidad expuesta al cliente.

    Reglas de diseño:
    - `session` se relee en cada request; el token puede rotar entre llamadas.
    - `signin_silent` renueva sin interacción y levanta
      `SilentRefreshFailure` si no puede.
    - `signin_redirect` solo *inicia* el login interactivo.
    """

    @property
    def session(self) -> Session:
        ...

    async def signin_silent(self) -> Session:
        """Renueva el token usando la sesión existente."""

        ...

    async def signin_redirect(self) -> None:
        """Inicia el flujo de login interactivo (redirect)."""

        ...
