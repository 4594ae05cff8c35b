"""Credential injection for outbound test requests."""

import asyncio
import base64
import importlib
import importlib.util
import inspect
import logging
import math
import os
import time
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import httpx
import jwt

from .config import RestConfig
from .models import AuthMode, AuthResult

logger = logging.getLogger(__name__)
security_logger = logging.getLogger("rest_tester.security")

DEFAULT_TOKEN_FUNCTION = "get_token"


class TokenAcquisitionError(Exception):
    """The dynamic token provider could not produce a token."""

    code = "TOKEN_ACQUISITION_FAILED"


@dataclass(frozen=True)
class TokenContext:
    """Passed to the token function on every acquisition."""

    client: httpx.AsyncClient
    env: Mapping[str, str]
    options: dict[str, Any] | None = None


TokenFunction = Callable[[TokenContext], "str | Awaitable[str]"]


def jwt_expiry_ms(token: str) -> float | None:
    """Expiry of a JWT-shaped token in epoch milliseconds, if it has one.

    The signature is not checked; the token is only read to schedule refresh.
    """
    try:
        payload = jwt.decode(token, options={"verify_signature": False})
    except jwt.InvalidTokenError:
        return None
    exp = payload.get("exp")
    if isinstance(exp, bool) or not isinstance(exp, int | float):
        return None
    if not math.isfinite(exp):
        return None
    return exp * 1000


def load_token_function(spec: str) -> TokenFunction:
    """Import the token function named by AUTH_TOKEN_MODULE.

    Accepts ``path/to/file.py``, ``package.module`` or either form with a
    ``:function`` suffix; the function defaults to ``get_token``.

    Raises:
        TokenAcquisitionError: If the module or function cannot be loaded
    """
    target, _, attr = spec.partition(":")
    attr = attr or DEFAULT_TOKEN_FUNCTION

    try:
        if target.endswith(".py") or os.sep in target:
            path = Path(target)
            if not path.is_absolute():
                path = Path.cwd() / path
            module_spec = importlib.util.spec_from_file_location(
                f"rest_tester_token_module_{path.stem}", path
            )
            if module_spec is None or module_spec.loader is None:
                raise ImportError(f"cannot load {path}")
            module = importlib.util.module_from_spec(module_spec)
            module_spec.loader.exec_module(module)
        else:
            module = importlib.import_module(target)
    except (ImportError, OSError, SyntaxError) as e:
        raise TokenAcquisitionError(
            f"Failed to load AUTH_TOKEN_MODULE '{target}': {e}"
        ) from e

    fn = getattr(module, attr, None)
    if not callable(fn):
        raise TokenAcquisitionError(
            f"AUTH_TOKEN_MODULE '{target}' must define a callable '{attr}'"
        )
    return fn  # type: ignore[no-any-return]


class TokenProvider:
    """Obtains bearer tokens from a user-supplied function.

    The token for the shared context (no per-request options) is cached
    until 60 seconds before its JWT ``exp``; tokens without an expiry stay
    valid until invalidate(). Concurrent shared-context callers wait on one
    acquisition. Requests carrying options are a separate auth context:
    they always acquire a fresh token and never touch the shared cache.
    """

    REFRESH_SKEW_MS = 60_000

    def __init__(
        self,
        client: httpx.AsyncClient,
        module: str | None = None,
        token_fn: TokenFunction | None = None,
        env: Mapping[str, str] | None = None,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize the provider.

        Args:
            client: HTTP client handed to the token function
            module: AUTH_TOKEN_MODULE value, loaded on first use
            token_fn: Token function to use instead of loading a module
            env: Environment handed to the token function
            clock: Returns the current time in seconds
        """
        if module is None and token_fn is None:
            raise ValueError("TokenProvider needs a module or a token function")
        self._client = client
        self._module = module
        self._token_fn = token_fn
        self._env = env if env is not None else os.environ
        self._clock = clock

        self._token: str | None = None
        self._expires_at_ms: float | None = None
        self._inflight: asyncio.Task[str] | None = None
        self._fn_lock = asyncio.Lock()

    @property
    def client(self) -> httpx.AsyncClient:
        """HTTP client handed to the token function."""
        return self._client

    @client.setter
    def client(self, client: httpx.AsyncClient) -> None:
        self._client = client

    @property
    def token(self) -> str | None:
        return self._token

    @property
    def expires_at_ms(self) -> float | None:
        return self._expires_at_ms

    def invalidate(self) -> None:
        """Forget the cached shared-context token."""
        self._token = None
        self._expires_at_ms = None

    def _cached_token_valid(self) -> bool:
        if not self._token:
            return False
        if self._expires_at_ms is None:
            return True
        now_ms = self._clock() * 1000
        return now_ms < self._expires_at_ms - self.REFRESH_SKEW_MS

    async def get_token(
        self, force_refresh: bool = False, options: dict[str, Any] | None = None
    ) -> str:
        """Return a bearer token for the given auth context.

        Raises:
            TokenAcquisitionError: If the token function fails
        """
        if options:
            return await self._acquire(options)

        if not force_refresh:
            if self._cached_token_valid():
                return self._token  # type: ignore[return-value]
            if self._inflight is not None:
                return await asyncio.shield(self._inflight)

        task = asyncio.ensure_future(self._acquire_shared())
        self._inflight = task
        task.add_done_callback(self._clear_inflight)
        return await asyncio.shield(task)

    def _clear_inflight(self, task: "asyncio.Task[str]") -> None:
        if self._inflight is task:
            self._inflight = None
        # Retrieve so a failure nobody awaited is not reported as unhandled
        if not task.cancelled():
            task.exception()

    async def _acquire_shared(self) -> str:
        token = await self._acquire(None)
        self._token = token
        self._expires_at_ms = jwt_expiry_ms(token)
        return token

    async def _acquire(self, options: dict[str, Any] | None) -> str:
        fn = await self._get_token_fn()
        context = TokenContext(client=self._client, env=self._env, options=options)
        try:
            result = fn(context)
            if inspect.isawaitable(result):
                result = await result
        except TokenAcquisitionError:
            raise
        except Exception as e:
            raise TokenAcquisitionError(f"Token function failed: {e}") from e

        token = str(result).strip() if result is not None else ""
        if not token:
            raise TokenAcquisitionError("Token function returned an empty token")
        return token

    async def _get_token_fn(self) -> TokenFunction:
        if self._token_fn is not None:
            return self._token_fn
        async with self._fn_lock:
            if self._token_fn is None:
                assert self._module is not None
                self._token_fn = load_token_function(self._module)
        return self._token_fn


class AuthResolver:
    """Produces the auth headers for the single configured auth mode."""

    def __init__(self, config: RestConfig, token_provider: TokenProvider | None = None):
        """Initialize the resolver.

        Args:
            config: Credential configuration
            token_provider: Required when the dynamic mode is configured
        """
        self._config = config
        self._token_provider = token_provider
        if config.auth_mode is AuthMode.DYNAMIC and token_provider is None:
            raise ValueError("Dynamic auth configured without a token provider")

    @property
    def mode(self) -> AuthMode:
        return self._config.auth_mode

    @property
    def token_provider(self) -> TokenProvider | None:
        return self._token_provider

    def describe(self) -> str:
        """Human-readable summary of the auth mode, without secrets."""
        mode = self.mode
        if mode is AuthMode.BASIC:
            return f"Basic Auth with username: {self._config.auth_basic_username}"
        if mode is AuthMode.BEARER:
            return "Bearer token authentication configured"
        if mode is AuthMode.APIKEY:
            return f"API Key using header: {self._config.auth_apikey_header_name}"
        if mode is AuthMode.DYNAMIC:
            return "Dynamic Bearer token authentication configured (module)"
        return "No authentication configured"

    async def resolve(self, options: dict[str, Any] | None = None) -> AuthResult:
        """Build the auth headers for one request.

        Args:
            options: Per-request options, forwarded to the dynamic token function

        Raises:
            TokenAcquisitionError: If a dynamic token cannot be obtained
        """
        config = self._config
        mode = self.mode

        if mode is AuthMode.BASIC:
            raw = f"{config.auth_basic_username}:{config.auth_basic_password}"
            encoded = base64.b64encode(raw.encode("utf-8")).decode("ascii")
            headers = {"Authorization": f"Basic {encoded}"}
        elif mode is AuthMode.BEARER:
            headers = {"Authorization": f"Bearer {config.auth_bearer}"}
        elif mode is AuthMode.APIKEY:
            headers = {
                config.auth_apikey_header_name: config.auth_apikey_value  # type: ignore[dict-item]
            }
        elif mode is AuthMode.DYNAMIC:
            assert self._token_provider is not None
            token = await self._token_provider.get_token(options=options)
            headers = {"Authorization": f"Bearer {token}"}
        else:
            headers = {}

        if config.security_logging and mode is not AuthMode.NONE:
            security_logger.info(f"Applied {mode.value} authentication")

        return AuthResult(mode=mode, headers=headers)
