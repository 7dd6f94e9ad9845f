"""Descriptor inmutable de un request HTTP.

Por qué inmutable:
- Tras un 401 el pipeline reenvía el *mismo* request con otro token. Si el
  descriptor se mutara en sitio, el replay heredaría headers del primer intento.
- `with_authorization` devuelve una copia; el original queda intacto.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Mapping


def _freeze(mapping: Mapping[str, Any] | None) -> Mapping[str, Any]:
    return MappingProxyType(dict(mapping or {}))


@dataclass(frozen=True)
class RequestDescriptor:
    method: str
    path: str
    params: Mapping[str, Any] = field(default_factory=dict)
    json: Any = None
    files: Mapping[str, Any] | None = None
    data: Mapping[str, Any] | None = None
    headers: Mapping[str, str] = field(default_factory=dict)
    requires_auth: bool = True

    def __post_init__(self) -> None:
        object.__setattr__(self, "method", self.method.upper())
        # Los parámetros None no viajan en el query string.
        object.__setattr__(
            self,
            "params",
            _freeze({k: v for k, v in (self.params or {}).items() if v is not None}),
        )
        object.__setattr__(self, "headers", _freeze(self.headers))
        if self.files is not None:
            object.__setattr__(self, "files", _freeze(self.files))
        if self.data is not None:
            object.__setattr__(self, "data", _freeze(self.data))

    @property
    def authorization(self) -> str | None:
        return self.headers.get("Authorization")

    def with_header(self, name: str, value: str) -> "RequestDescriptor":
        headers = dict(self.headers)
        headers[name] = value
        return replace(self, headers=headers)

    def with_authorization(self, token: str) -> "RequestDescriptor":
        return self.with_header("Authorization", f"Bearer {token}")

    def to_request_kwargs(self) -> dict[str, Any]:
        kwargs: dict[str, Any] = {
            "params": dict(self.params),
            "headers": dict(self.headers),
        }
        if self.json is not None:
            kwargs["json"] = self.json
        if self.files is not None:
            kwargs["files"] = dict(self.files)
        if self.data is not None:
            kwargs["data"] = dict(self.data)
        return kwargs
