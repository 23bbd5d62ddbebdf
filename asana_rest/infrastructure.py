#!/usr/bin/env python3
"""
Asana REST Client Infrastructure

Shared utilities for every resource module:
- Configuration singleton (environment / .env driven)
- Alert hooks (pluggable)
- Error handling decorator
- Authenticated transport shim and HTTP status classification
- Client singleton management
- Request descriptor serialization and single-item envelope unwrapping
"""

import dataclasses
import inspect
import json
import logging
import os
from datetime import date, datetime
from enum import Enum
from functools import wraps
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Tuple
from urllib.parse import urlencode

import requests
from dotenv import load_dotenv

from .errors import (
    AsanaAuthenticationError,
    AsanaBadRequestError,
    AsanaClientError,
    AsanaDecodeError,
    AsanaHTTPError,
    AsanaNotFoundError,
    AsanaRateLimitError,
    AsanaServerError,
    AsanaTransportError,
    AsanaValidationError,
    ResourceNotFoundError,
)

# Configure logging
logger = logging.getLogger(__name__)

# Load environment variables from .env file
load_dotenv()

# Constants
DEFAULT_BASE_URL = "https://app.asana.com/api/1.0"
REQUEST_TIMEOUT = 30.0

# Server-computed fields that must never be sent back to the API
READ_ONLY_FIELDS = ("num_hearts",)


# ============================================================================
# Configuration
# ============================================================================

class AsanaClientConfig:
    """
    Global configuration for the Asana REST client.

    Values are read from the environment (after loading a .env file):
    - ASANA_ACCESS_TOKEN: personal access token
    - ASANA_BASE_URL: API root, defaults to the public Asana endpoint
    - ASANA_REQUEST_TIMEOUT: per-request timeout in seconds

    Also holds the alert callback used for auth, rate limit and server
    failures.
    """

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._init_defaults()
        return cls._instance

    def _init_defaults(self):
        self.reload()

        # Alert callback: (severity, category, message, context) -> None
        self._alert_callback: Optional[Callable[[str, str, str, Optional[Dict]], None]] = None

    def reload(self):
        """Re-read settings from the environment."""
        self.access_token: Optional[str] = os.environ.get("ASANA_ACCESS_TOKEN") or None
        self.base_url: str = os.environ.get("ASANA_BASE_URL", DEFAULT_BASE_URL).rstrip("/")

        raw_timeout = os.environ.get("ASANA_REQUEST_TIMEOUT")
        try:
            self.timeout = float(raw_timeout) if raw_timeout else REQUEST_TIMEOUT
        except ValueError:
            logger.warning(
                f"Ignoring invalid ASANA_REQUEST_TIMEOUT={raw_timeout!r}, using {REQUEST_TIMEOUT}s"
            )
            self.timeout = REQUEST_TIMEOUT

    def set_alert_callback(self, callback: Callable[[str, str, str, Optional[Dict]], None]):
        """
        Set a callback for raising alerts.

        Args:
            callback: Function that accepts (severity, category, message, context)
                     severity: 'critical', 'urgent', or 'warning'
                     category: Alert category string (e.g., 'auth_failed', 'rate_limit_hit')
                     message: Human-readable alert message
                     context: Optional dict with additional context
        """
        self._alert_callback = callback


def get_config() -> AsanaClientConfig:
    """Get the global client configuration."""
    return AsanaClientConfig()


# ============================================================================
# Alert System
# ============================================================================

def raise_alert(
    severity: str,
    category: str,
    message: str,
    context: Optional[Dict[str, Any]] = None,
) -> None:
    """
    Raise an alert for Asana client issues.

    Uses configured alert callback if available, otherwise logs.

    Args:
        severity: Alert severity - 'critical', 'urgent', or 'warning'
        category: Alert category (e.g., 'auth_failed', 'rate_limit_hit')
        message: Human-readable alert message
        context: Additional context as key-value pairs
    """
    config = get_config()

    if config._alert_callback:
        try:
            config._alert_callback(severity, category, message, context)
            logger.debug(f"Alert dispatched: [{severity}] {category}: {message}")
            return
        except Exception as e:
            logger.warning(f"Alert callback failed: {e}")

    # Fall back to logging
    log_level = {
        "critical": logging.CRITICAL,
        "urgent": logging.ERROR,
        "warning": logging.WARNING,
    }.get(severity, logging.WARNING)

    logger.log(log_level, f"[ALERT-{severity.upper()}] {category}: {message}")


# ============================================================================
# Error Handling Decorator
# ============================================================================

def with_api_error_handling(operation_fmt: str) -> Callable:
    """
    Decorator to report API failures consistently across all operations.

    Validation errors pass through untouched. Any other AsanaClientError is
    logged with the operation label, tagged with it and re-raised.

    Args:
        operation_fmt: Description format string for the operation.
                      Can use {arg_name} placeholders filled from function arguments.

    Example:
        @with_api_error_handling("fetching task {task_gid}")
        def get_task(task_gid: str) -> Task:
            ...
    """
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs):
            # Build operation string from function arguments
            sig = inspect.signature(func)
            bound_args = sig.bind(*args, **kwargs)
            bound_args.apply_defaults()

            try:
                operation = operation_fmt.format(**bound_args.arguments)
            except (KeyError, ValueError, AttributeError):
                operation = operation_fmt

            try:
                return func(*args, **kwargs)
            except AsanaValidationError:
                raise
            except AsanaClientError as e:
                if e.operation is None:
                    e.operation = operation
                logger.warning(f"Failed {operation}: {e}")
                raise

        return wrapper
    return decorator


# ============================================================================
# Transport
# ============================================================================

def _error_message(response: requests.Response) -> str:
    """Best available message: the body if present, else the status text."""
    if not response.content:
        return f"{response.status_code} {response.reason or ''}".strip()

    try:
        error_json = response.json()
    except ValueError:
        return response.text[:500]

    if isinstance(error_json, dict) and error_json.get("errors"):
        return "; ".join(
            e.get("message", str(e)) if isinstance(e, dict) else str(e)
            for e in error_json["errors"]
        )
    return response.text[:500]


def handle_http_error(response: requests.Response, method: str, url: str) -> None:
    """
    Convert a non-2xx response into the matching AsanaHTTPError subclass.

    Also raises alerts for authentication, rate limit and server failures.

    Raises:
        Appropriate AsanaHTTPError subclass
    """
    status = response.status_code
    message = _error_message(response)
    body = response.content or b""
    endpoint = f"{method} {url}"

    if status in (401, 403):
        raise_alert(
            severity="critical",
            category="auth_failed",
            message=f"Asana rejected the access token (HTTP {status})",
            context={"endpoint": endpoint, "http_status": status, "error": message},
        )
        raise AsanaAuthenticationError(status, message, body)

    if status == 404:
        raise AsanaNotFoundError(status, message, body)

    if status == 400:
        raise AsanaBadRequestError(status, message, body)

    if status == 429:
        retry_after = None
        if "Retry-After" in response.headers:
            try:
                retry_after = int(response.headers["Retry-After"])
            except ValueError:
                pass

        raise_alert(
            severity="urgent",
            category="rate_limit_hit",
            message=f"Asana API rate limit exceeded during {endpoint}",
            context={
                "endpoint": endpoint,
                "retry_after_seconds": retry_after,
                "http_status": 429,
            },
        )
        raise AsanaRateLimitError(status, message, body, retry_after=retry_after)

    if status >= 500:
        raise_alert(
            severity="warning",
            category="api_server_error",
            message=f"Asana server error (HTTP {status}) during {endpoint}",
            context={"endpoint": endpoint, "status_code": status, "error": message},
        )
        raise AsanaServerError(status, message, body)

    raise AsanaHTTPError(status, message, body)


class AsanaTransport:
    """
    Authenticated HTTP transport for the Asana REST API.

    One request in, raw body bytes and response headers out. Holds only
    read-only state (session, token, base URL, timeout) so a single
    instance is shared by every call and every pagination worker.
    """

    def __init__(
        self,
        access_token: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = REQUEST_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        if not access_token:
            raise AsanaValidationError("expecting a non-empty access token")

        self._token = access_token
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session = session or requests.Session()
        self._session.headers["Accept"] = "application/json"

    def build_url(self, path: str) -> str:
        """Join a resource path (with optional query string) onto the base URL."""
        if not path.startswith("/"):
            path = "/" + path
        return f"{self.base_url}{path}"

    def authenticated_request(
        self,
        method: str,
        url: str,
        body: Optional[Any] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> Tuple[bytes, Mapping[str, str]]:
        """
        Issue one authenticated request.

        Args:
            method: HTTP method
            url: Absolute URL
            body: Optional request body (str or bytes)
            headers: Optional extra headers

        Returns:
            Tuple of (body_bytes, response_headers)

        Raises:
            AsanaTransportError: If no response was received
            AsanaHTTPError: If the response status is not 2xx
        """
        request_headers = {"Authorization": f"Bearer {self._token}"}
        if headers:
            request_headers.update(headers)

        logger.debug(f"Asana API {method} {url}")

        try:
            resp = self._session.request(
                method=method,
                url=url,
                data=body,
                headers=request_headers,
                timeout=self.timeout,
            )
        except requests.Timeout as e:
            raise AsanaTransportError(f"Request timed out after {self.timeout}s: {method} {url}") from e
        except requests.RequestException as e:
            raise AsanaTransportError(f"Connection error: {e}") from e

        if not 200 <= resp.status_code < 300:
            handle_http_error(resp, method, url)

        return resp.content or b"", resp.headers


# ============================================================================
# Client Singleton
# ============================================================================

class AsanaClientSingleton:
    """Singleton to manage the shared AsanaTransport instance."""

    _instance = None
    _client: Optional[AsanaTransport] = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def get_client(self) -> AsanaTransport:
        """
        Get the shared transport, building it from configuration on first use.

        Raises:
            AsanaValidationError: If no access token is configured
        """
        if self._client is None:
            config = get_config()
            if not config.access_token:
                raise AsanaValidationError(
                    "No Asana token provided. Set ASANA_ACCESS_TOKEN "
                    "(environment or .env file) or pass client= explicitly."
                )
            AsanaClientSingleton._client = AsanaTransport(
                access_token=config.access_token,
                base_url=config.base_url,
                timeout=config.timeout,
            )
        return self._client

    def reset(self) -> None:
        AsanaClientSingleton._client = None


def get_client() -> AsanaTransport:
    """Get the shared, configured Asana transport."""
    return AsanaClientSingleton().get_client()


def reset_client() -> None:
    """Drop the shared transport so the next call rebuilds it from config."""
    AsanaClientSingleton().reset()


# ============================================================================
# Serialization
# ============================================================================

def format_opt_fields(fields: Iterable[str]) -> str:
    """Render a sparse field selection as this.a,this.b,..."""
    return ",".join(f"this.{field}" for field in fields)


def _wire_value(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        if hasattr(value, "to_wire"):
            return value.to_wire()
        return to_wire_dict(value)
    if isinstance(value, (list, tuple)):
        return [_wire_value(v) for v in value]
    if isinstance(value, dict):
        return {k: _wire_value(v) for k, v in value.items()}
    return value


def _is_empty(value: Any) -> bool:
    if value is None or value is False:
        return True
    if isinstance(value, (str, list, tuple, dict)):
        return not value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value == 0
    return False


def to_wire_dict(descriptor: Any, exclude: Iterable[str] = ()) -> Dict[str, Any]:
    """
    Serialize a request descriptor dataclass into its wire dictionary.

    Unset values (None, empty, zero, False) are omitted, fields marked with
    metadata {"wire": False} or named in exclude are skipped, and
    READ_ONLY_FIELDS are always stripped.
    """
    excluded = set(exclude)
    wire: Dict[str, Any] = {}
    for f in dataclasses.fields(descriptor):
        if not f.metadata.get("wire", True) or f.name in excluded:
            continue
        value = getattr(descriptor, f.name)
        if _is_empty(value):
            continue
        wire[f.metadata.get("name", f.name)] = _wire_value(value)

    for field in READ_ONLY_FIELDS:
        wire.pop(field, None)
    return wire


def _form_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return ",".join(_form_value(v) for v in value)
    if isinstance(value, dict):
        return json.dumps(value)
    return str(value)


def encode_query(wire: Mapping[str, Any]) -> str:
    """URL-encode a wire dictionary for a query string or form body."""
    return urlencode([(key, _form_value(value)) for key, value in wire.items()])


def encode_json_body(wire: Mapping[str, Any]) -> str:
    """Wrap a wire dictionary in the {"data": ...} request envelope."""
    return json.dumps({"data": wire})


def load_json(body: bytes) -> Any:
    """Parse a response body, mapping malformed JSON to AsanaDecodeError."""
    try:
        return json.loads(body)
    except (TypeError, ValueError) as e:
        raise AsanaDecodeError(f"malformed JSON response: {e}") from e


def unwrap_single(
    body: bytes,
    from_dict: Callable[[Dict[str, Any]], Any],
    resource: str,
    gid: str = "",
) -> Any:
    """
    Decode a single-item {"data": ...} envelope.

    Raises:
        AsanaDecodeError: If the body is not a JSON object envelope
        ResourceNotFoundError: If the envelope's data is null or empty
    """
    payload = load_json(body)
    if not isinstance(payload, dict):
        raise AsanaDecodeError(f"expecting a JSON object envelope for {resource}")

    data = payload.get("data")
    if not data:
        raise ResourceNotFoundError(resource, gid)
    if not isinstance(data, dict):
        raise AsanaDecodeError(f"expecting a JSON object in data for {resource}")

    try:
        return from_dict(data)
    except (KeyError, TypeError, ValueError) as e:
        raise AsanaDecodeError(f"unexpected {resource} shape: {e}") from e


def require_gid(value: Optional[str], name: str) -> str:
    """Trim an identifier and fail fast if it is blank."""
    if value is None or not isinstance(value, str) or not value.strip():
        raise AsanaValidationError(f"expecting a non-empty {name}")
    return value.strip()
