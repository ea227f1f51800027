"""
HTTP client for the car wash REST API.

Every request goes straight to the API (no cache, no retries). Outcomes are
mapped onto the error taxonomy in `mrcarwash.domains.errors`; a `message`
field in an error body becomes the error text shown to staff.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

import requests

from mrcarwash.domains.errors import (
    ApiError,
    ConflictError,
    DecodeError,
    NotFoundError,
    TransportError,
    ValidationError,
)
from mrcarwash.utils.config import api_base_url, api_timeout
from mrcarwash.utils.logger import get_logger

logger = get_logger()

_MAX_BODY_PREVIEW_CHARS = 500


def path_segment(value: Any) -> str:
    """Quote a key (plate, id) for use as one URL path segment."""
    return quote(str(value), safe="")


def _error_message(response: Any) -> str | None:
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        msg = body.get("message")
        if isinstance(msg, str) and msg.strip():
            return msg.strip()
    return None


def _error_for(method: str, path: str, status: int, message: str | None) -> ApiError:
    text = message or f"{method} {path} failed with HTTP {status}"
    if status >= 500:
        return TransportError(text, status_code=status)
    if status == 404:
        return NotFoundError(text, status_code=status)
    if method == "DELETE" and status in (400, 409, 422):
        # A delete has no fields to validate: a rejection is a constraint.
        return ConflictError(text, status_code=status)
    # Includes 409 on create/update, e.g. a duplicate Cedula or Placa.
    return ValidationError(text, status_code=status)


class ApiClient:
    """
    Thin `requests` wrapper bound to the API base URL.

    Paths are relative to the base URL, e.g. "clientes" or "vehiculos/ABC123".
    """

    def __init__(self, base_url: str | None = None, timeout: float | None = None) -> None:
        self.base_url = (base_url or api_base_url()).rstrip("/")
        self.timeout = timeout if timeout is not None else api_timeout()

    def url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def request(self, method: str, path: str, payload: Any = None) -> Any:
        """
        Send one request and return the decoded JSON body (None when empty).

        Raises:
            TransportError: Network failure, timeout, or HTTP 5xx.
            NotFoundError: HTTP 404.
            ConflictError: A rejected DELETE (HTTP 400, 409 or 422).
            ValidationError: Any other non-2xx answer.
            DecodeError: A 2xx answer whose body is not JSON.
        """
        method = method.upper()
        url = self.url(path)
        kwargs: dict[str, Any] = {
            "headers": {"Accept": "application/json"},
            "timeout": self.timeout,
        }
        if payload is not None:
            kwargs["json"] = payload
            kwargs["headers"]["Content-Type"] = "application/json"
        try:
            r = requests.request(method, url, **kwargs)
        except requests.exceptions.Timeout as e:
            logger.warning("%s %s timed out after %ss", method, path, self.timeout)
            raise TransportError(
                f"{method} {path} timed out after {self.timeout} seconds", original=e
            ) from e
        except requests.RequestException as e:
            logger.warning("%s %s failed: %s", method, path, e)
            raise TransportError(f"Could not reach the API: {e}", original=e) from e

        status = r.status_code
        logger.info("%s %s -> %s", method, path, status)
        if not 200 <= status < 300:
            err = _error_for(method, path, status, _error_message(r))
            logger.warning("%s %s rejected (%s): %s", method, path, status, err)
            raise err

        if not r.content:
            return None
        try:
            return r.json()
        except ValueError as e:
            preview = (r.text or "")[:_MAX_BODY_PREVIEW_CHARS]
            logger.warning("%s %s returned non-JSON body: %s", method, path, preview)
            raise DecodeError(
                f"{method} {path} returned a body that is not JSON", status_code=status, original=e
            ) from e

    def get(self, path: str) -> Any:
        return self.request("GET", path)

    def post(self, path: str, payload: Any) -> Any:
        return self.request("POST", path, payload)

    def put(self, path: str, payload: Any) -> Any:
        return self.request("PUT", path, payload)

    def delete(self, path: str) -> Any:
        return self.request("DELETE", path)
