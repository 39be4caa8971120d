"""
Outbound mail delivery.

Used endpoint (HttpMailer):
- POST {MAILER_URL}/send  <- {"template": "...", "to": "...", "data": {...}}

Without MAILER_URL the service falls back to LogMailer, which records the
delivery in the log and sends nothing.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

import httpx

logger = logging.getLogger(__name__)


# Delivery failures are explicit and separable from other runtime errors.
class MailerError(RuntimeError):
    pass


class Mailer(Protocol):
    async def send(self, template: str, to: str, data: dict[str, Any]) -> None: ...

    async def aclose(self) -> None: ...


class HttpMailer:
    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    @classmethod
    def from_url(cls, base_url: str, *, timeout_s: float = 30.0) -> HttpMailer:
        base_url = (base_url or "").strip()
        if not base_url:
            raise MailerError("MAILER_URL is empty.")
        return cls(httpx.AsyncClient(base_url=base_url.rstrip("/"), timeout=timeout_s))

    async def send(self, template: str, to: str, data: dict[str, Any]) -> None:
        try:
            resp = await self._client.post(
                "/send",
                json={"template": template, "to": to, "data": data},
            )
        except httpx.HTTPError as exc:
            raise MailerError(f"Mail delivery request failed: {exc}") from exc

        if resp.status_code >= 300:
            # Avoid dumping huge bodies; include a small snippet.
            body = resp.text[:300]
            raise MailerError(f"Mail delivery failed: {resp.status_code} {body}")

    async def aclose(self) -> None:
        await self._client.aclose()


class LogMailer:
    async def send(self, template: str, to: str, data: dict[str, Any]) -> None:
        # Payloads may carry one-time tokens; only log their keys.
        logger.info("mail_skipped template=%s to=%s keys=%s", template, to, sorted(data))

    async def aclose(self) -> None:
        return None
