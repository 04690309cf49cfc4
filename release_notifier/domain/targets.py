from __future__ import annotations

import re
from dataclasses import dataclass

from release_notifier.domain.errors import FormatError


# Group 1: host, group 2: numeric channel id, group 3: token.
_WEBHOOK_URL_PATTERN = re.compile(r"https://([^/\s]+)/api/webhooks/(\d+)/(\S+)")


@dataclass(frozen=True)
class WebhookTarget:
    host: str
    channel_id: str
    token: str

    @property
    def url(self) -> str:
        return f"https://{self.host}/api/webhooks/{self.channel_id}/{self.token}"

    def __repr__(self) -> str:
        return f"WebhookTarget(host={self.host!r}, channel_id={self.channel_id!r}, token='***')"


def resolve(endpoint_url: str) -> WebhookTarget:
    """Split a configured webhook endpoint URL into its channel id and token."""
    match = _WEBHOOK_URL_PATTERN.fullmatch(endpoint_url.strip())
    if match is None:
        raise FormatError("The provided url is not a webhook url")
    host, channel_id, token = match.groups()
    return WebhookTarget(host=host, channel_id=channel_id, token=token)
