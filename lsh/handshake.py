from __future__ import annotations
from typing import Any, Dict, Optional

import httpx

from shared.config import ClientConfig
from shared.log import get_logger

logger = get_logger(__name__)


class HandshakeError(Exception):
    """Base class for rtm.start failures."""
    pass


class AuthError(HandshakeError):
    """The API answered ok=false; `reason` is its error string."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class HandshakeTransportError(HandshakeError):
    """HTTP, network or response decoding failure."""
    pass


class HandshakeClient:
    """
    Web API client for the one-shot rtm.start exchange.

    Trades a bot token for a single-use WebSocket URL. Blocking; no retries.
    """

    def __init__(self, config: Optional[ClientConfig] = None, transport: Optional[httpx.BaseTransport] = None) -> None:
        self.config = config or ClientConfig()
        self._http = httpx.Client(timeout=self.config.http_timeout, transport=transport)

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "HandshakeClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def post_form(self, method: str, params: Dict[str, str]) -> Dict[str, Any]:
        """POST form-encoded params to an API method and return the decoded body"""
        try:
            response = self._http.post(self.config.rtm_url(method), data=params)
        except httpx.HTTPError as e:
            raise HandshakeTransportError(f"{method} request failed: {e}") from e
        return _decode_response(method, response)

    def post_json(self, method: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """POST a JSON body to an API method and return the decoded body"""
        try:
            response = self._http.post(self.config.rtm_url(method), json=payload)
        except httpx.HTTPError as e:
            raise HandshakeTransportError(f"{method} request failed: {e}") from e
        return _decode_response(method, response)

    def rtm_start(self, token: str) -> str:
        """
        Exchange a token for a WebSocket URL.

        Raises:
            AuthError: the server rejected the token (ok=false)
            HandshakeTransportError: anything else went wrong
        """
        logger.info("Authorize...")
        result = self.post_form("rtm.start", {"token": token})

        ok = result.get("ok")
        if not isinstance(ok, bool):
            raise HandshakeTransportError("rtm.start response has no boolean 'ok' field")
        if not ok:
            reason = result.get("error")
            raise AuthError(reason if isinstance(reason, str) and reason else "unknown_error")

        url = result.get("url")
        if not isinstance(url, str) or not url:
            raise HandshakeTransportError("rtm.start succeeded without a usable url")

        team = result.get("team")
        me = result.get("self")
        if isinstance(team, dict) and isinstance(me, dict):
            logger.debug("Authorized as %s on team %s", me.get("name"), team.get("name"))
        return url


def _decode_response(method: str, response: httpx.Response) -> Dict[str, Any]:
    if response.status_code != 200:
        raise HandshakeTransportError(f"Strange status code from {method}: {response.status_code} {response.reason_phrase}")
    try:
        result = response.json()
    except ValueError as e:
        raise HandshakeTransportError(f"Malformed JSON from {method}: {e}") from e
    if not isinstance(result, dict):
        raise HandshakeTransportError(f"Expected a JSON object from {method}")
    return result
