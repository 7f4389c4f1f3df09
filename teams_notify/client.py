"""Incoming webhook client.

Usage:
    client = WebhookClient()
    client.post("https://outlook.office.com/webhook/...", card.to_dict())
"""

from typing import Any

import requests


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

class WebhookError(Exception):
    """Base exception for all delivery errors."""


class NetworkError(WebhookError):
    """Raised on connection timeout or unreachable endpoint."""


class DeliveryError(WebhookError):
    """Raised when the endpoint answers with a non-2xx status."""

    def __init__(self, message: str, status_code: int) -> None:
        super().__init__(message)
        self.status_code = status_code


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------

class WebhookClient:
    """POSTs JSON payloads to a webhook URL. Requests are never retried."""

    def __init__(self, timeout: float | None = None) -> None:
        self._timeout = timeout
        self._session = requests.Session()

    def post(self, url: str, payload: dict[str, Any]) -> requests.Response:
        """Send *payload* as JSON to *url* and return the response.

        Raises:
            DeliveryError: Any non-2xx response
            NetworkError:  Timeout or connection failure
        """
        try:
            response = self._session.post(url, json=payload, timeout=self._timeout)
        except requests.exceptions.Timeout as exc:
            raise NetworkError(
                f"Request timed out after {self._timeout}s while contacting '{url}'"
            ) from exc
        except requests.exceptions.ConnectionError as exc:
            raise NetworkError(f"Unable to reach webhook at '{url}'") from exc

        if not response.ok:
            raise DeliveryError(
                f"Unexpected response {response.status_code} from {url}: {response.text[:200]}",
                status_code=response.status_code,
            )
        return response
