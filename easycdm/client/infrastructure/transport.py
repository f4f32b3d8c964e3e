"""Infrastructure layer: HTTP transport to a license server.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import requests

from easycdm.common.config import Config
from easycdm.common.exceptions import TransportError
from easycdm.common.trust import service_certificate_challenge

if TYPE_CHECKING:
    from collections.abc import Mapping

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {"Content-Type": "application/octet-stream"}


class LicenseTransport:
    """POSTs challenges to a license server and returns the raw response.

    No retries are attempted; callers decide their own retry policy.
    """

    def __init__(
        self,
        url: str,
        headers: Mapping[str, str] | None = None,
        timeout: int | None = None,
    ) -> None:
        self.url = url
        self.headers = {**DEFAULT_HEADERS, **(headers or {})}
        self.timeout = timeout if timeout is not None else Config().REQUEST_TIMEOUT

    def post(self, challenge: bytes) -> bytes:
        """Send ``challenge`` and return the response body."""
        logger.debug("POST %d byte challenge to %s", len(challenge), self.url)
        try:
            r = requests.post(
                self.url, data=challenge, headers=self.headers, timeout=self.timeout
            )
            r.raise_for_status()
        except requests.HTTPError as err:
            status = err.response.status_code if err.response is not None else None
            msg = f"License server returned HTTP {status}"
            raise TransportError(msg, status_code=status) from err
        except requests.RequestException as err:
            msg = f"Could not reach license server at {self.url}: {err}"
            raise TransportError(msg) from err
        return r.content

    def get_service_certificate(self) -> bytes:
        """Ask the server for its service certificate."""
        return self.post(service_certificate_challenge())
