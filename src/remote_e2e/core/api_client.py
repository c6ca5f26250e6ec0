"""API client implementation for the remote E2E service."""

import uuid
from typing import Any, Dict, Mapping, Optional

import httpx
from opentelemetry import trace
from opentelemetry.propagate import inject
from pydantic.alias_generators import to_camel, to_snake

from .constants import DEFAULT_REQUEST_TIMEOUT_S, TRACE_ID_HEADER, USER_AGENT


class UnauthenticatedError(Exception):
    """Raised when the API rejects the configured API key."""

    pass


def keys_to_snake(value: Any) -> Any:
    """Recursively rename mapping keys to snake_case for request bodies."""
    if isinstance(value, Mapping):
        return {to_snake(str(k)): keys_to_snake(v) for k, v in value.items()}
    if isinstance(value, list):
        return [keys_to_snake(v) for v in value]
    return value


def keys_to_camel(value: Any) -> Any:
    """Recursively rename mapping keys to camelCase for responses."""
    if isinstance(value, Mapping):
        return {to_camel(str(k)): keys_to_camel(v) for k, v in value.items()}
    if isinstance(value, list):
        return [keys_to_camel(v) for v in value]
    return value


def _raise_for_unauthenticated(response: httpx.Response):
    """Check if the response indicates an unauthenticated request.
    Raises:
        UnauthenticatedError: If the response status code is 401 or 403.
    """
    if response.status_code == 401:
        raise UnauthenticatedError(
            "Authentication failed. Please check your API key."
        )
    if response.status_code == 403:
        raise UnauthenticatedError(
            "Access forbidden. Please check your API key permissions."
        )


def _raise_for_status_with_details(response: httpx.Response) -> None:
    try:
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        content_type = response.headers.get("content-type", "")
        if "application/json" in content_type:
            try:
                error_info = response.json()
                message = (
                    error_info.get("detail")
                    or error_info.get("error")
                    or error_info.get("message")
                    or str(error_info)
                )
            except Exception:
                message = response.text
        else:
            message = response.text
        raise httpx.HTTPStatusError(
            f"{exc.response.status_code} Error for {exc.request.url}: {message}",
            request=exc.request,
            response=exc.response,
        ) from exc


class APIClient:
    """Client for interacting with the API service over HTTP."""

    def __init__(
        self,
        api_url: str,
        api_key: str,
        trace_id: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the API client.

        Args:
            api_url: The base URL of the API (e.g., https://api.debugg.ai)
            api_key: The API authentication key
            trace_id: Optional trace ID for the CLI process lifecycle (generated if not provided)
            transport: Optional httpx transport, used by tests to stub the service
        """
        self.api_url = api_url.rstrip(
            "/"
        )  # Remove trailing slash for consistent URL building
        self.api_key = api_key
        # Generate or use provided trace ID for CLI process lifecycle
        self.trace_id = trace_id or str(uuid.uuid4())
        self.transport = transport
        # Get tracer for API client operations
        self.tracer = trace.get_tracer(__name__)

    def _get_headers(self) -> Dict[str, str]:
        headers = {
            "Authorization": f"Token {self.api_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": USER_AGENT,
        }

        # Inject OpenTelemetry trace context headers
        trace_headers = {}
        inject(trace_headers)
        headers.update(trace_headers)

        # Add custom trace ID header for process lifecycle tracking
        headers[TRACE_ID_HEADER] = self.trace_id

        return headers

    def _url(self, path: str) -> str:
        return f"{self.api_url}/{path.lstrip('/')}"

    async def _request(
        self,
        method: str,
        path: str,
        *,
        payload: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
        timeout: float = DEFAULT_REQUEST_TIMEOUT_S,
    ) -> httpx.Response:
        with self.tracer.start_as_current_span(
            f"api.{method.lower()}.{path.strip('/').replace('/', '.')}",
            attributes={
                "http.method": method,
                "http.url": self._url(path),
                "remote_e2e.trace_id": self.trace_id,
            },
        ) as span:
            try:
                async with httpx.AsyncClient(transport=self.transport) as client:
                    response = await client.request(
                        method,
                        self._url(path),
                        json=keys_to_snake(payload) if payload is not None else None,
                        params=keys_to_snake(params) if params else None,
                        headers=self._get_headers(),
                        timeout=timeout,
                    )
                    span.set_attribute("http.status_code", response.status_code)
                    _raise_for_unauthenticated(response)
                    _raise_for_status_with_details(response)
                    return response
            except Exception as e:
                span.record_exception(e)
                raise

    async def post(
        self,
        path: str,
        payload: Dict[str, Any],
        timeout: float = DEFAULT_REQUEST_TIMEOUT_S,
    ) -> httpx.Response:
        return await self._request("POST", path, payload=payload, timeout=timeout)

    async def get(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        timeout: float = DEFAULT_REQUEST_TIMEOUT_S,
    ) -> httpx.Response:
        return await self._request("GET", path, params=params, timeout=timeout)

    @staticmethod
    def json_body(response: httpx.Response) -> Any:
        """Decode a response body and rename its keys to camelCase."""
        if not response.content:
            return None
        return keys_to_camel(response.json())
