"""Token Sources concretos.

Por qué un paquete:
- Agrupa las implementaciones de `core.interfaces.token_source.TokenSource`.
- Cada módulo encapsula un proveedor (OIDC/Keycloak, token fijo).
"""

from adapters.token_sources.oidc import OidcTokenSource
from adapters.token_sources.session_store import SessionStore
from adapters.token_sources.static import StaticTokenSource

__all__ = [
    "OidcTokenSource",
    "SessionStore",
    "StaticTokenSource",
]
