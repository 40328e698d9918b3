"""
Simple Device API Client

Minimal blocking client for the JSON endpoints exposed by the thermostat and
the ceiling fans. One client per device, each with its own session, so a hung
device cannot affect requests to another one.
"""

import logging
from typing import Any

import requests

from .exceptions import DeviceConnectionError
from .models import DeviceResponse

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10  # seconds


class DeviceClient:
    """Request/response exchange with a single device URL."""

    def __init__(
        self,
        url: str,
        timeout: float = DEFAULT_TIMEOUT,
        read_payload: dict[str, Any] | None = None,
    ):
        """Initialize device client.

        Args:
            url: Device endpoint (e.g., "http://192.168.0.73/tstat")
            timeout: Per-request timeout in seconds
            read_payload: JSON body to POST for a status read. Devices that
                answer a plain GET leave this unset.
        """
        self.url = url
        self.timeout = timeout
        self.read_payload = read_payload
        # Our devices don't seem to care about these, but they are what the
        # device vendors' own examples send
        self.session = requests.Session()
        self.session.headers.update({
            "Content-Type": "application/json",
            "charset": "utf-8",
        })

    def read(self) -> DeviceResponse:
        """Fetch the device's current state.

        Returns:
            Status code and raw body, whatever the status

        Raises:
            DeviceConnectionError: If the request could not be completed
        """
        if self.read_payload is None:
            return self._request("GET")
        return self._request("POST", self.read_payload)

    def write(self, payload: dict[str, Any]) -> DeviceResponse:
        """Send a command to the device.

        Args:
            payload: JSON body, e.g. {"fanSpeed": 2}

        Returns:
            Status code and raw body, whatever the status

        Raises:
            DeviceConnectionError: If the request could not be completed
        """
        return self._request("POST", payload)

    def _request(self, method: str, payload: dict[str, Any] | None = None) -> DeviceResponse:
        try:
            logger.debug(f"{method} {self.url} with data: {payload}")
            response = self.session.request(
                method, self.url, json=payload, timeout=self.timeout
            )
        except requests.exceptions.RequestException as e:
            raise DeviceConnectionError(f"Request to {self.url} failed: {e}")

        logger.debug(f"{self.url} responded {response.status_code}: {response.text}")
        return DeviceResponse(status_code=response.status_code, body=response.text)

    def close(self):
        """Release pooled connections."""
        self.session.close()
