from __future__ import annotations

from typing import Any

import httpx

from release_notifier.domain.errors import DeliveryError
from release_notifier.domain.targets import WebhookTarget


# Discord embed limits.
FIELD_VALUE_LIMIT = 1024
DESCRIPTION_LIMIT = 4096


def truncate(value: str, limit: int) -> str:
    if len(value) <= limit:
        return value
    return value[: limit - 1] + "…"


def build_embed_field(name: str, value: str, inline: bool = False) -> dict[str, Any]:
    return {"name": name, "value": truncate(value, FIELD_VALUE_LIMIT), "inline": inline}


def build_message(embed: dict[str, Any], role_id: str | None = None) -> dict[str, Any]:
    payload: dict[str, Any] = {"embeds": [embed]}
    if role_id:
        payload["content"] = f"<@&{role_id}>"
        payload["allowed_mentions"] = {"roles": [role_id]}
    return payload


class DiscordWebhookClient:
    """Posts messages to one resolved webhook target. One attempt per send."""

    def __init__(
        self,
        target: WebhookTarget,
        *,
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.target = target
        self._timeout_seconds = timeout_seconds
        self._transport = transport

    async def send(self, payload: dict[str, Any]) -> None:
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout_seconds,
                transport=self._transport,
            ) as client:
                response = await client.post(self.target.url, json=payload)
        except httpx.HTTPError as exc:
            raise DeliveryError(f"Discord connectivity error: {exc}") from exc

        if response.status_code >= 400:
            raise DeliveryError(
                f"Discord API returned HTTP {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
            )
