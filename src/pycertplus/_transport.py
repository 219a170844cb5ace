"""HTTP transport with API-key authentication and envelope unwrapping."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any, Protocol

import aiohttp

from pycertplus._constants import API_KEY_HEADER, USER_AGENT
from pycertplus._redact import redact_for_log
from pycertplus.config import CertConfig
from pycertplus.exceptions import CertTransportError

_logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Structural transport interface used by endpoint modules.

    ``request`` returns the ``payload`` member of the response envelope;
    test doubles only need to implement this one coroutine.
    """

    async def request(
        self,
        method: str,
        endpoint: str,
        json_body: Mapping[str, Any] | None = None,
    ) -> Any:
        ...


class HttpTransport:
    """aiohttp transport for the inventory service.

    Every response is a JSON envelope ``{"status_code", "message",
    "payload"}``; anything else is a :class:`CertTransportError`.
    """

    def __init__(self, config: CertConfig, http_session: aiohttp.ClientSession) -> None:
        self._config = config
        self._http = http_session

    def _headers(self) -> dict[str, str]:
        headers: dict[str, str] = {
            "accept": "application/json",
            "content-type": "application/json; charset=UTF-8",
            "user-agent": USER_AGENT,
        }
        if self._config.api_key:
            headers[API_KEY_HEADER] = self._config.api_key
        return headers

    async def request(
        self,
        method: str,
        endpoint: str,
        json_body: Mapping[str, Any] | None = None,
    ) -> Any:
        url = f"{self._config.base_url}{endpoint}"
        body = json.dumps(json_body) if json_body is not None else None
        timeout = aiohttp.ClientTimeout(total=self._config.request_timeout)

        _logger.debug("%s %s", method, url)
        if self._config.api_trace_enabled:
            _logger.debug(
                "Request %s %s headers=%s body=%s",
                method,
                endpoint,
                redact_for_log(self._headers()),
                redact_for_log(json_body),
            )

        try:
            async with self._http.request(
                method,
                url,
                data=body,
                headers=self._headers(),
                timeout=timeout,
            ) as resp:
                text = await resp.text()
                status = resp.status
        except aiohttp.ClientError as exc:
            raise CertTransportError(
                f"Request to {endpoint} failed: {exc}",
                endpoint=endpoint,
            ) from exc
        except TimeoutError as exc:
            raise CertTransportError(
                f"Request to {endpoint} timed out after {self._config.request_timeout}s",
                endpoint=endpoint,
            ) from exc

        if not 200 <= status < 300:
            raise CertTransportError(
                f"HTTP {status} from {endpoint}: {text[:200]}",
                status_code=status,
                endpoint=endpoint,
            )

        try:
            envelope = json.loads(text)
        except json.JSONDecodeError as exc:
            raise CertTransportError(
                f"Invalid JSON from {endpoint}: {text[:200]}",
                status_code=status,
                endpoint=endpoint,
            ) from exc

        if self._config.api_trace_enabled:
            _logger.debug("Response %s %s: %s", method, endpoint, redact_for_log(envelope))

        if not isinstance(envelope, dict) or envelope.get("payload") is None:
            raise CertTransportError(
                f"Missing 'payload' field from {endpoint}",
                status_code=status,
                endpoint=endpoint,
            )

        return envelope["payload"]
