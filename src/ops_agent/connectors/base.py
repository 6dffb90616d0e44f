"""
Industrial API Connectors

Endpoint-addressable request/response clients for MES, SCADA, ERP and OA
systems. A connector knows its named endpoints and turns
call(endpoint, params) into an HTTP request; failures are reported in the
returned APICallResult rather than raised.
"""

import base64
import json
import logging
import re
import time
from pathlib import Path
from typing import Any, Literal, Optional

import httpx
from pydantic import BaseModel, Field

from ..errors import ConnectorNotFound

logger = logging.getLogger(__name__)

HTTPMethod = Literal["GET", "POST", "PUT", "DELETE", "PATCH"]
AuthType = Literal["none", "basic", "bearer", "apikey"]

_PATH_PARAM_RE = re.compile(r"\{(\w+)\}")


class ConnectorCredentials(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = Field(default=None, repr=False)
    api_key: Optional[str] = Field(default=None, repr=False)
    token: Optional[str] = Field(default=None, repr=False)


class APIEndpoint(BaseModel):
    """Named operation exposed by a connector."""

    name: str
    description: str = ""
    method: HTTPMethod = "GET"
    path: str


class APIConnectorConfig(BaseModel):
    """Connection settings for one industrial system."""

    name: str
    base_url: str
    auth_type: AuthType = "none"
    credentials: ConnectorCredentials = Field(default_factory=ConnectorCredentials)
    timeout: float = 30.0
    headers: dict[str, str] = Field(default_factory=dict)
    endpoints: list[APIEndpoint] = Field(default_factory=list)


class APICallResult(BaseModel):
    """Outcome of a connector call."""

    success: bool
    data: Any = None
    error: Optional[str] = None
    status_code: Optional[int] = None
    response_time_ms: float = 0.0


class APIConnector:
    """
    HTTP connector for one industrial system.

    Usage:
        >>> connector = APIConnector(config)
        >>> result = await connector.call("query_equipment", {"deviceId": "PLC-7"})
        >>> await connector.close()
    """

    def __init__(
        self,
        config: APIConnectorConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the connector.

        Args:
            config: Connection settings and endpoint catalogue
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.config = config
        self._endpoints = {endpoint.name: endpoint for endpoint in config.endpoints}
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def name(self) -> str:
        return self.config.name

    def get_endpoints(self) -> list[APIEndpoint]:
        return list(self._endpoints.values())

    def _auth_headers(self) -> dict[str, str]:
        creds = self.config.credentials
        auth_type = self.config.auth_type

        if auth_type == "basic" and creds.username is not None:
            raw = f"{creds.username}:{creds.password or ''}".encode()
            return {"Authorization": f"Basic {base64.b64encode(raw).decode()}"}
        if auth_type == "bearer" and creds.token:
            return {"Authorization": f"Bearer {creds.token}"}
        if auth_type == "apikey" and creds.api_key:
            return {"X-API-Key": creds.api_key}
        return {}

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.config.base_url,
                timeout=self.config.timeout,
                headers={**self.config.headers, **self._auth_headers()},
                transport=self._transport,
            )
        return self._client

    @staticmethod
    def _render_path(path: str, params: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        """Substitute {placeholders}; returns the path and the unused params."""
        remaining = dict(params)

        def replace(match: re.Match) -> str:
            key = match.group(1)
            if key not in remaining:
                raise KeyError(key)
            return str(remaining.pop(key))

        return _PATH_PARAM_RE.sub(replace, path), remaining

    async def call(self, endpoint: str, params: Optional[dict[str, Any]] = None) -> APICallResult:
        """
        Invoke a named endpoint.

        GET and DELETE send params as the query string; other methods send
        them as a JSON body.

        Args:
            endpoint: Endpoint name from the connector's catalogue
            params: Request parameters; {placeholders} in the path are filled first

        Returns:
            APICallResult with the decoded response (JSON when possible, text otherwise)
        """
        start = time.perf_counter()

        def elapsed() -> float:
            return (time.perf_counter() - start) * 1000

        spec = self._endpoints.get(endpoint)
        if spec is None:
            return APICallResult(
                success=False,
                error=f"Unknown endpoint '{endpoint}' on connector '{self.name}'",
                response_time_ms=elapsed(),
            )

        try:
            path, remaining = self._render_path(spec.path, params or {})
        except KeyError as e:
            return APICallResult(
                success=False,
                error=f"Missing path parameter {e} for endpoint '{endpoint}'",
                response_time_ms=elapsed(),
            )

        request_kwargs: dict[str, Any] = {}
        if spec.method in ("GET", "DELETE"):
            request_kwargs["params"] = remaining
        else:
            request_kwargs["json"] = remaining

        logger.debug("Calling %s %s on %s", spec.method, path, self.name)

        try:
            response = await self._get_client().request(spec.method, path, **request_kwargs)
        except httpx.HTTPError as e:
            return APICallResult(
                success=False,
                error=f"{type(e).__name__}: {e}",
                response_time_ms=elapsed(),
            )

        try:
            data: Any = response.json()
        except ValueError:
            data = response.text

        if response.is_error:
            return APICallResult(
                success=False,
                data=data,
                error=f"HTTP {response.status_code} from {self.name}/{endpoint}",
                status_code=response.status_code,
                response_time_ms=elapsed(),
            )

        return APICallResult(
            success=True,
            data=data,
            status_code=response.status_code,
            response_time_ms=elapsed(),
        )

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None


class ConnectorRegistry:
    """Name-addressed collection of API connectors."""

    def __init__(self, connectors: Optional[list[APIConnector]] = None):
        self._connectors: dict[str, APIConnector] = {}
        for connector in connectors or []:
            self.register(connector)

    def register(self, connector: APIConnector) -> None:
        self._connectors[connector.name] = connector

    def get(self, name: str) -> Optional[APIConnector]:
        return self._connectors.get(name)

    def require(self, name: str) -> APIConnector:
        """Get a connector or raise ConnectorNotFound."""
        connector = self._connectors.get(name)
        if connector is None:
            raise ConnectorNotFound(name)
        return connector

    def endpoints(self, name: str) -> list[str]:
        return [endpoint.name for endpoint in self.require(name).get_endpoints()]

    async def close(self) -> None:
        for connector in self._connectors.values():
            await connector.close()

    @classmethod
    def from_file(cls, path: Path | str) -> "ConnectorRegistry":
        """
        Load connector definitions from a JSON file.

        The file holds a list of APIConnectorConfig objects.
        """
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
        configs = [APIConnectorConfig.model_validate(item) for item in raw]
        return cls([APIConnector(config) for config in configs])

    # Defined last: the method name shadows the builtin inside the class body.
    def list(self) -> list[str]:
        return list(self._connectors)
