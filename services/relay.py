"""Client for the external agent reachable over the private network."""
import json
import logging
import subprocess
from typing import Any, Dict, List, Optional

import httpx
from fastapi import Depends

from config import Settings, get_settings
from errors import RelayError

logger = logging.getLogger(__name__)

SECRET_HEADER = "x-dante-secret"
MAX_DETAIL_CHARS = 400


class RelayClient:
    """
    Sends chat text to the agent and returns its reply.

    Two transports are supported. By default the request is sent directly
    with httpx. When a SOCKS5 forward proxy is configured the request is run
    through curl instead, because the tunnel only exposes the private network
    through that proxy when it runs in userspace-networking mode.
    """

    def __init__(
        self,
        url: str,
        secret: str,
        socks5_proxy: Optional[str] = None,
        timeout: float = 120.0,
        transport: Optional[httpx.BaseTransport] = None
    ):
        self.url = url
        self.secret = secret
        self.socks5_proxy = socks5_proxy
        self.timeout = timeout
        self.transport = transport

    @classmethod
    def from_settings(cls, settings: Settings) -> Optional["RelayClient"]:
        """Build a client, or return None when the endpoint or secret is missing."""
        if not settings.relay_configured:
            return None
        return cls(
            url=settings.bot_url,
            secret=settings.shared_secret,
            socks5_proxy=settings.socks5_proxy,
            timeout=settings.bot_timeout,
        )

    def send(self, anon_user_id: str, thread_id: str, text: str) -> Optional[str]:
        """
        Relay one chat message.

        Args:
            anon_user_id: Anonymous identifier of the caller
            thread_id: Thread the message belongs to
            text: Message text

        Returns:
            The reply exactly as the agent sent it (may be None)

        Raises:
            RelayError: transport failure, non-success status or a falsy ok flag
        """
        payload = {"anonUserId": anon_user_id, "threadId": thread_id, "text": text}
        transport = "proxy" if self.socks5_proxy else "direct"
        logger.info(f"Relaying message for thread {thread_id} ({transport})")

        if self.socks5_proxy:
            envelope = self._send_via_proxy(payload)
        else:
            envelope = self._send_direct(payload)

        # A successful envelope without a reply is stored as None, not rejected.
        return envelope.get("reply")

    def _send_direct(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        headers = {"Content-Type": "application/json", SECRET_HEADER: self.secret}
        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                response = client.post(self.url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            logger.error(f"Relay request failed: {e}")
            raise RelayError(f"bot error: {e}") from e

        body = _parse_body(response.text)
        return _check_envelope(response.is_success, body, f"HTTP {response.status_code}")

    def _proxy_args(self, payload: Dict[str, Any]) -> List[str]:
        proxy = self.socks5_proxy
        for scheme in ("http://", "https://"):
            if proxy.startswith(scheme):
                proxy = proxy[len(scheme):]

        return [
            "curl",
            "-sS",
            "--fail-with-body",
            "--socks5-hostname", proxy,
            "--max-time", str(int(self.timeout)),
            "-X", "POST",
            "-H", "Content-Type: application/json",
            "-H", f"{SECRET_HEADER}: {self.secret}",
            "--data-binary", json.dumps(payload),
            self.url,
        ]

    def _send_via_proxy(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        try:
            result = subprocess.run(
                self._proxy_args(payload),
                capture_output=True,
                text=True,
                timeout=self.timeout + 5,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.error(f"Relay proxy request failed: {e}")
            raise RelayError(f"bot error: proxy request failed: {e}") from e

        body = _parse_body(result.stdout)
        if result.returncode != 0:
            fallback = (result.stderr or "").strip() or f"curl exited with {result.returncode}"
            return _check_envelope(False, body, f"proxy request failed: {fallback}")

        if not body and result.stdout.strip():
            raise RelayError(f"bot error: non-json reply: {result.stdout[:MAX_DETAIL_CHARS]}")

        return _check_envelope(True, body, "unknown bot error")


def _parse_body(raw: str) -> Dict[str, Any]:
    """Parse a JSON object body; anything else counts as empty."""
    try:
        body = json.loads(raw)
    except (TypeError, ValueError):
        return {}
    return body if isinstance(body, dict) else {}


def _check_envelope(status_ok: bool, body: Dict[str, Any], fallback: str) -> Dict[str, Any]:
    if status_ok and body.get("ok"):
        return body

    detail = body.get("error") or body.get("message") or fallback
    logger.error(f"Relay returned failure: {detail}")
    raise RelayError(f"bot error: {detail}")


def get_relay_client(settings: Settings = Depends(get_settings)) -> Optional[RelayClient]:
    """Relay client dependency; None when the server is not configured for chat."""
    return RelayClient.from_settings(settings)
