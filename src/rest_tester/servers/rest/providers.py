"""REST tool provider with configuration injection."""

import logging
from collections.abc import Sequence
from typing import Any

import httpx

from rest_tester.api.mcp.providers import BaseToolProvider
from rest_tester.core.mcp.exceptions import InvalidParamsError, MethodNotFoundError

from .auth import AuthResolver, TokenProvider
from .config import RestConfig
from .executor import RequestExecutor, build_client
from .limiter import AdmissionGate
from .models import AuthMode
from .tools import TOOL_NAME, RequestParams, RestRequestTool

logger = logging.getLogger(__name__)


class RestToolProvider(BaseToolProvider):
    """Tool provider for the test_request tool.

    Owns the process-wide pieces every request shares: the HTTP client,
    the admission gate and, with dynamic auth, the token provider.
    """

    def __init__(
        self,
        config: RestConfig,
        client: httpx.AsyncClient | None = None,
        gate: AdmissionGate | None = None,
        token_provider: TokenProvider | None = None,
    ):
        """Initialize with configuration and optional prebuilt collaborators.

        Args:
            config: Runtime configuration
            client: HTTP client to use instead of one built from config
            gate: Admission gate to use instead of one built from config
            token_provider: Token provider for dynamic auth
        """
        self._config = config
        self._client = client or build_client(config)
        self._gate = gate or AdmissionGate(
            max_concurrent=config.max_concurrent_requests,
            max_requests=config.rate_limit_max_requests,
            window_seconds=config.rate_limit_window,
        )
        if token_provider is None and config.auth_mode is AuthMode.DYNAMIC:
            token_provider = TokenProvider(
                self._client,
                module=config.auth_token_module,
                env=config.environ,
            )

        self._auth = AuthResolver(config, token_provider)
        self._executor = RequestExecutor(self._client, config)
        self._test_tool = RestRequestTool(
            config=config,
            executor=self._executor,
            auth=self._auth,
            gate=self._gate,
        )

    @property
    def config(self) -> RestConfig:
        """Access to current configuration."""
        return self._config

    @property
    def test_tool(self) -> RestRequestTool:
        """Access to the test_request tool for direct registration."""
        return self._test_tool

    @property
    def gate(self) -> AdmissionGate:
        return self._gate

    @property
    def auth(self) -> AuthResolver:
        return self._auth

    def get_tools(self) -> Sequence[dict[str, Any]]:
        return [
            {
                "name": TOOL_NAME,
                "description": self._test_tool.describe(),
                "inputSchema": RequestParams.model_json_schema(),
            }
        ]

    async def call_tool(self, name: str, arguments: dict[str, Any]) -> Any:
        if name != TOOL_NAME:
            raise MethodNotFoundError(f"Unknown tool: {name}")

        unknown = sorted(set(arguments) - set(RequestParams.model_fields))
        if unknown:
            raise InvalidParamsError(
                f"Invalid test request: unknown arguments {', '.join(unknown)}"
            )
        # Missing required arguments are reported by parameter validation
        return await self._test_tool.execute(
            **{"method": None, "endpoint": None, **arguments}
        )

    async def startup(self) -> None:
        """Start the admission gate's background sweep.

        A client closed by an earlier shutdown is replaced, so the provider
        can serve again after the server restarts its lifespan.
        """
        if self._client.is_closed:
            self._client = build_client(self._config)
            self._executor.client = self._client
            if self._auth.token_provider is not None:
                self._auth.token_provider.client = self._client
        self._gate.start()
        logger.info(
            f"REST tester ready: base URL {self._config.base_url or 'not configured'}, "
            f"auth {self._auth.mode.value}"
        )

    async def shutdown(self) -> None:
        """Stop background work and close the HTTP client."""
        await self._gate.close()
        await self._executor.aclose()
