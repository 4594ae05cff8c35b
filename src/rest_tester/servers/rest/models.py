"""Value types passed between the stages of a test request."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})


class AuthMode(str, Enum):
    """Credential injection method, in priority order."""

    BASIC = "basic"
    BEARER = "bearer"
    APIKEY = "apikey"
    DYNAMIC = "dynamic"
    NONE = "none"


@dataclass(frozen=True)
class RequestSpec:
    """A validated test request, before configuration is applied."""

    method: str
    endpoint: str
    body: Any = None
    headers: dict[str, str] = field(default_factory=dict)
    host: str | None = None
    options: dict[str, Any] | None = None


@dataclass(frozen=True)
class AuthResult:
    """Headers contributed by the active auth mode."""

    mode: AuthMode
    headers: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class ResolvedRequest:
    """The request exactly as it goes on the wire."""

    url: str
    method: str
    headers: dict[str, str]
    body: Any = None

    @property
    def has_body(self) -> bool:
        return self.method in BODY_METHODS and self.body is not None


@dataclass(frozen=True)
class TransportResult:
    """What came back from the transport for one request."""

    status_code: int
    status_text: str
    headers: dict[str, str]
    body: Any
    elapsed_ms: float
