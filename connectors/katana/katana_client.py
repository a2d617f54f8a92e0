"""Katana MRP HTTP Client.

Low-level HTTP client for Katana API calls.
Handles authentication headers, client-side rate limiting, error
classification and cursor pagination. It never retries: every failure is
classified and raised to the caller.
"""

from typing import Any, Dict, List, Mapping, Optional, Tuple
from dataclasses import dataclass, field
from enum import Enum
import asyncio
import json
import os
import re
import time

import aiohttp
from pydantic import ValidationError

from connectors.katana.katana_auth import KatanaAuthProvider, load_env
from connectors.katana.katana_models import KatanaValidationErrorBody
from connectors.katana.katana_rate_limit import (
    DEFAULT_MIN_INTERVAL,
    RateGate,
    get_default_rate_gate,
)
from core.observability.logging import get_correlation_context, get_logger
from core.observability.metrics import (
    record_error,
    record_fetch_all,
    record_page,
    record_request,
)

logger = get_logger(__name__)

DEFAULT_BASE_URL = "https://api.katanamrp.com/v1"
PAGE_SIZE = 100
ALLOWED_METHODS = ("GET", "POST", "PATCH", "DELETE")


# =============================================================================
# Error Taxonomy
# =============================================================================

class KatanaErrorKind(str, Enum):
    """Classification of an upstream failure."""
    RATE_LIMITED = "rate_limited"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    VALIDATION = "validation"
    UNKNOWN = "unknown"


STATUS_KINDS: Dict[int, KatanaErrorKind] = {
    429: KatanaErrorKind.RATE_LIMITED,
    401: KatanaErrorKind.UNAUTHORIZED,
    403: KatanaErrorKind.FORBIDDEN,
    404: KatanaErrorKind.NOT_FOUND,
    422: KatanaErrorKind.VALIDATION,
}

ERROR_MESSAGES: Dict[KatanaErrorKind, Tuple[str, str]] = {
    KatanaErrorKind.RATE_LIMITED: (
        "Rate limit exceeded. Maximum 5 requests/second, 300/minute.",
        "Please wait before making more requests.",
    ),
    KatanaErrorKind.UNAUTHORIZED: (
        "Invalid API key",
        "Please check your Katana API key in the credentials.",
    ),
    KatanaErrorKind.FORBIDDEN: (
        "Access forbidden",
        "API access requires a Professional or Professional Plus plan. "
        "Please upgrade your Katana subscription.",
    ),
    KatanaErrorKind.NOT_FOUND: (
        "Resource not found",
        "The requested resource does not exist.",
    ),
    KatanaErrorKind.VALIDATION: (
        "Validation error",
        "The provided data was invalid.",
    ),
}


class KatanaApiError(Exception):
    """A classified Katana API failure.

    The original exception (``aiohttp.ClientResponseError`` for HTTP
    failures, the transport exception otherwise) is chained as
    ``__cause__``.

    Attributes:
        kind: Error classification
        message: Short human-readable message
        description: Advisory detail; for validation errors the per-field messages
        status_code: HTTP status, 0 when no response was received
        field_errors: Per-field validation messages (422 only)
        response_body: Raw response text
        context: Correlation context (resource, operation, item) at raise time
    """

    def __init__(
        self,
        kind: KatanaErrorKind,
        message: str,
        description: Optional[str] = None,
        status_code: int = 0,
        field_errors: Optional[Dict[str, List[str]]] = None,
        response_body: str = "",
    ):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.description = description
        self.status_code = status_code
        self.field_errors = field_errors or {}
        self.response_body = response_body
        self.context = get_correlation_context().to_dict()

    def __str__(self) -> str:
        if self.description:
            return f"{self.message}: {self.description}"
        return self.message

    def __repr__(self) -> str:
        return f"KatanaApiError(kind={self.kind.value!r}, status_code={self.status_code}, message={self.message!r})"


def parse_validation_errors(response_body: str) -> Optional[Dict[str, List[str]]]:
    """Extract the per-field messages from a 422 body, None if it has another shape."""
    try:
        parsed = KatanaValidationErrorBody.model_validate_json(response_body)
    except (ValidationError, ValueError):
        return None

    return {
        field_name: [messages] if isinstance(messages, str) else list(messages)
        for field_name, messages in parsed.error.errors.items()
    }


def classify_error(status_code: int, response_body: str = "", reason: str = "") -> KatanaApiError:
    """Map an HTTP failure onto the error taxonomy.

    Args:
        status_code: HTTP status of the failed response
        response_body: Raw response text
        reason: HTTP reason phrase, used for unclassified statuses

    Returns:
        KatanaApiError (not raised)
    """
    kind = STATUS_KINDS.get(status_code, KatanaErrorKind.UNKNOWN)

    if kind == KatanaErrorKind.UNKNOWN:
        message = f"Katana API error {status_code}"
        if reason:
            message = f"{message} {reason}"
        return KatanaApiError(
            kind,
            message,
            description=response_body or None,
            status_code=status_code,
            response_body=response_body,
        )

    message, description = ERROR_MESSAGES[kind]
    field_errors = None

    if kind == KatanaErrorKind.VALIDATION:
        field_errors = parse_validation_errors(response_body)
        if field_errors:
            description = "; ".join(
                f"{field_name}: {', '.join(messages)}"
                for field_name, messages in field_errors.items()
            )

    return KatanaApiError(
        kind,
        message,
        description=description,
        status_code=status_code,
        field_errors=field_errors,
        response_body=response_body,
    )


# =============================================================================
# Configuration
# =============================================================================

@dataclass
class KatanaApiConfig:
    """Configuration for the Katana API client."""
    base_url: str = DEFAULT_BASE_URL
    timeout_seconds: int = 30
    page_size: int = PAGE_SIZE
    min_request_interval: float = DEFAULT_MIN_INTERVAL  # seconds
    default_headers: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_env(cls) -> "KatanaApiConfig":
        """Build the config from optional environment overrides.

        - KATANA_BASE_URL: API base URL
        - KATANA_TIMEOUT_SECONDS: Total request timeout
        - KATANA_MIN_REQUEST_INTERVAL_MS: Minimum spacing between requests
        """
        load_env()
        config = cls()
        if os.getenv("KATANA_BASE_URL"):
            config.base_url = os.getenv("KATANA_BASE_URL")
        if os.getenv("KATANA_TIMEOUT_SECONDS"):
            config.timeout_seconds = int(os.getenv("KATANA_TIMEOUT_SECONDS"))
        if os.getenv("KATANA_MIN_REQUEST_INTERVAL_MS"):
            config.min_request_interval = int(os.getenv("KATANA_MIN_REQUEST_INTERVAL_MS")) / 1000
        return config

    def build_url(self, endpoint: str) -> str:
        """Get the full URL for an endpoint path like ``/sales_orders``."""
        if not endpoint.startswith("/"):
            endpoint = f"/{endpoint}"
        return f"{self.base_url.rstrip('/')}{endpoint}"


def encode_query(query: Mapping[str, Any]) -> List[Tuple[str, str]]:
    """Encode query values the way Katana expects them on the wire.

    Booleans become ``true``/``false``; list values repeat the key.
    """
    params: List[Tuple[str, str]] = []
    for key, value in query.items():
        if value is None:
            continue
        values = value if isinstance(value, (list, tuple)) else [value]
        for item in values:
            if isinstance(item, bool):
                params.append((key, "true" if item else "false"))
            else:
                params.append((key, str(item)))
    return params


def endpoint_template(endpoint: str) -> str:
    """Collapse numeric path segments so metrics group by route."""
    return re.sub(r"/\d+(?=/|$)", "/{id}", endpoint)


# =============================================================================
# Client
# =============================================================================

class KatanaApiClient:
    """HTTP client for the Katana API.

    Provides:
    - Authenticated API calls (``send``)
    - Cursor pagination (``fetch_all``)
    - Client-side rate limiting through a shared RateGate
    - Error classification

    Usage:
        client = KatanaApiClient(KatanaAuthProvider(KatanaAuthConfig.from_env()))
        async with client:
            orders = await client.fetch_all("GET", "/sales_orders", limit=250)
            order = await client.send("GET", f"/sales_orders/{order_id}")
    """

    def __init__(
        self,
        auth_provider: KatanaAuthProvider,
        api_config: Optional[KatanaApiConfig] = None,
        rate_gate: Optional[RateGate] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        """Initialize API client.

        Args:
            auth_provider: Supplies the bearer header
            api_config: API configuration (defaults to the public Katana API)
            rate_gate: Throttle to share; defaults to the process-wide gate
            session: Externally owned aiohttp session; not closed by this client
        """
        self.auth_provider = auth_provider
        self.api_config = api_config or KatanaApiConfig()

        if rate_gate is None:
            if self.api_config.min_request_interval == DEFAULT_MIN_INTERVAL:
                rate_gate = get_default_rate_gate()
            else:
                rate_gate = RateGate(self.api_config.min_request_interval)
        self.rate_gate = rate_gate

        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> "KatanaApiClient":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.disconnect()

    @property
    def is_connected(self) -> bool:
        return self._session is not None and not self._session.closed

    async def connect(self) -> None:
        """Open the HTTP session if one was not injected."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owns_session = True

    async def disconnect(self) -> None:
        """Close the HTTP session if this client opened it."""
        if self._session and self._owns_session:
            await self._session.close()
            self._session = None

    def _get_headers(self) -> Dict[str, str]:
        """Get headers for API requests."""
        headers = dict(self.api_config.default_headers)
        headers.update(self.auth_provider.get_auth_headers())
        return headers

    async def send(
        self,
        method: str,
        endpoint: str,
        body: Optional[Mapping[str, Any]] = None,
        query: Optional[Mapping[str, Any]] = None,
    ) -> Any:
        """Make one authenticated, rate-limited API request.

        Args:
            method: GET, POST, PATCH or DELETE
            endpoint: Path relative to the base URL, e.g. ``/sales_orders/12``
            body: JSON body, attached only when non-empty
            query: Query parameters, attached only when non-empty

        Returns:
            Parsed JSON response: a list, an envelope dict with ``data``, or a
            bare object. Empty responses (e.g. 204) return ``{}``.

        Raises:
            KatanaApiError: Classified upstream or transport failure
            ValueError: Unsupported HTTP method
        """
        method = method.upper()
        if method not in ALLOWED_METHODS:
            raise ValueError(f"Unsupported HTTP method: {method}. Allowed: {ALLOWED_METHODS}")

        if not self.is_connected:
            await self.connect()

        url = self.api_config.build_url(endpoint)
        route = endpoint_template(endpoint)

        request_kwargs: Dict[str, Any] = {}
        if body:
            request_kwargs["json"] = dict(body)
        if query:
            request_kwargs["params"] = encode_query(query)

        await self.rate_gate.acquire()

        timeout = aiohttp.ClientTimeout(total=self.api_config.timeout_seconds)
        started = time.monotonic()

        try:
            async with self._session.request(
                method,
                url,
                headers=self._get_headers(),
                timeout=timeout,
                **request_kwargs,
            ) as response:
                response_text = await response.text()
                duration_ms = (time.monotonic() - started) * 1000
                record_request(method, route, response.status, duration_ms)
                logger.debug(
                    f"{method} {endpoint} -> {response.status} ({duration_ms:.0f}ms)",
                    extra_fields={"method": method, "endpoint": route, "status": response.status,
                                  "duration_ms": round(duration_ms, 1)},
                )

                try:
                    response.raise_for_status()
                except aiohttp.ClientResponseError as exc:
                    error = classify_error(response.status, response_text, response.reason or "")
                    self._log_failure(method, endpoint, error)
                    raise error from exc

        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            record_request(method, route, 0, (time.monotonic() - started) * 1000)
            error = KatanaApiError(
                KatanaErrorKind.UNKNOWN,
                f"Request failed: {type(exc).__name__}",
                description=str(exc) or None,
            )
            self._log_failure(method, endpoint, error)
            raise error from exc

        if not response_text:
            return {}

        try:
            return json.loads(response_text)
        except ValueError as exc:
            error = KatanaApiError(
                KatanaErrorKind.UNKNOWN,
                "Invalid JSON in Katana response",
                status_code=response.status,
                response_body=response_text,
            )
            self._log_failure(method, endpoint, error)
            raise error from exc

    def _log_failure(self, method: str, endpoint: str, error: KatanaApiError) -> None:
        record_error(error.kind.value)
        logger.warning(
            f"{method} {endpoint} failed: {error}",
            extra_fields={"error_kind": error.kind.value, "status": error.status_code},
        )

    async def fetch_all(
        self,
        method: str,
        endpoint: str,
        body: Optional[Mapping[str, Any]] = None,
        query: Optional[Mapping[str, Any]] = None,
        limit: Optional[int] = None,
    ) -> List[Any]:
        """Collect records across pages by following ``pagination.cursor_next``.

        Page size is always ``api_config.page_size``; a ``limit`` key in
        ``query`` is overridden. ``limit`` here caps the total number of
        records returned (0 or None means no cap). Upstream order is kept.

        There is no page ceiling: an upstream that never stops returning a
        cursor keeps this loop running.

        Args:
            method: HTTP method (normally GET)
            endpoint: List endpoint path
            body: Optional JSON body sent with every page
            query: Filters sent with every page
            limit: Maximum number of records to return

        Returns:
            Records in upstream order, truncated to ``limit``
        """
        results: List[Any] = []
        page_query: Dict[str, Any] = dict(query or {})
        page_query["limit"] = self.api_config.page_size
        page_number = 0

        while True:
            response = await self.send(method, endpoint, body, page_query)
            page_number += 1

            records = _page_records(response)
            results.extend(records)
            record_page(len(records))

            cursor = _next_cursor(response)
            logger.debug(
                f"Fetched page {page_number} of {endpoint}: {len(records)} records "
                f"({len(results)} total, more={bool(cursor)})"
            )

            if limit and len(results) >= limit:
                record_fetch_all(truncated=True)
                return results[:limit]

            if not cursor:
                break
            page_query["cursor"] = cursor

        record_fetch_all()
        return results

    async def fetch_page(
        self,
        endpoint: str,
        query: Optional[Mapping[str, Any]] = None,
        limit: int = 50,
    ) -> Any:
        """Fetch a single page of a list endpoint.

        Returns the envelope's ``data`` list when present, otherwise the raw
        response.
        """
        page_query = dict(query or {})
        page_query["limit"] = limit
        response = await self.send("GET", endpoint, query=page_query)
        if isinstance(response, dict) and response.get("data") is not None:
            return response["data"]
        return response

    async def verify_credentials(self) -> bool:
        """Check the API key with a one-record product listing.

        Returns:
            True if the key works, False if Katana rejects it (401/403)

        Raises:
            KatanaApiError: Any other failure
        """
        try:
            await self.send("GET", "/products", query={"limit": 1})
        except KatanaApiError as e:
            if e.kind in (KatanaErrorKind.UNAUTHORIZED, KatanaErrorKind.FORBIDDEN):
                return False
            raise
        return True


def _page_records(response: Any) -> List[Any]:
    """Records of one page: envelope ``data`` list, a bare list, or nothing."""
    if isinstance(response, dict) and isinstance(response.get("data"), list):
        return response["data"]
    if isinstance(response, list):
        return response
    return []


def _next_cursor(response: Any) -> Optional[str]:
    if not isinstance(response, dict):
        return None
    pagination = response.get("pagination")
    if not isinstance(pagination, dict):
        return None
    return pagination.get("cursor_next") or None
