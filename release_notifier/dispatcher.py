"""Formats release entities into webhook messages and delivers them.

``NotificationDispatcher.dispatch`` always completes: delivery failures are
logged, counted and handed to the error reporter, never raised.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from release_notifier.config import CategoryConfig, Settings
from release_notifier.domain.errors import ConfigurationError, DeliveryError, FormatError
from release_notifier.domain.targets import resolve
from release_notifier.models.notifications import (
    Entity,
    LauncherVersion,
    LoaderVersion,
    ModVersion,
    NotificationCategory,
)
from release_notifier.observability import ErrorReporter, incr_metric, log_event
from release_notifier.providers.discord.client import (
    DESCRIPTION_LIMIT,
    DiscordWebhookClient,
    build_embed_field,
    build_message,
    truncate,
)


@dataclass(frozen=True)
class DeliveryChannel:
    config: CategoryConfig
    client: DiscordWebhookClient


def format_mod_version(version: ModVersion) -> dict[str, Any]:
    embed: dict[str, Any] = {
        "title": version.title,
        "url": version.url,
        "description": truncate(version.description, DESCRIPTION_LIMIT),
        "fields": [
            build_embed_field("Author", f"[{version.author_name}]({version.author_url})", inline=True),
            build_embed_field("Version", version.version, inline=True),
            build_embed_field("Changelog", version.changelog),
        ],
        "thumbnail": {"url": version.icon_url},
    }
    if version.initial and version.banner_url:
        embed["image"] = {"url": version.banner_url}
    return embed


def format_launcher_version(version: LauncherVersion, config: CategoryConfig) -> dict[str, Any]:
    embed: dict[str, Any] = {
        "title": config.name,
        "fields": [
            build_embed_field("Version", f"[{version.version}]({version.url})", inline=True),
            build_embed_field("Changelog", version.changelog),
        ],
        "thumbnail": {"url": config.logo_url},
    }
    if config.download_url:
        embed["url"] = config.download_url
    return embed


def format_loader_version(version: LoaderVersion, config: CategoryConfig) -> dict[str, Any]:
    return {
        "title": config.name,
        "fields": [
            build_embed_field("Mod Loader Version", f"[{version.version}]({version.url})", inline=True),
            build_embed_field("Game Version", version.game_version, inline=True),
            build_embed_field("Changelog", version.changelog),
        ],
        "thumbnail": {"url": config.logo_url},
    }


def format_message(category: NotificationCategory, entity: Entity, config: CategoryConfig) -> dict[str, Any]:
    if category is NotificationCategory.MOD and isinstance(entity, ModVersion):
        embed = format_mod_version(entity)
    elif category is NotificationCategory.LAUNCHER and isinstance(entity, LauncherVersion):
        embed = format_launcher_version(entity, config)
    elif category is NotificationCategory.LOADER and isinstance(entity, LoaderVersion):
        embed = format_loader_version(entity, config)
    else:
        raise TypeError(f"{type(entity).__name__} cannot be sent as a {category.value} notification")
    return build_message(embed, role_id=config.role_id)


class NotificationDispatcher:
    def __init__(self, channels: dict[NotificationCategory, DeliveryChannel], reporter: ErrorReporter):
        missing = set(NotificationCategory) - set(channels)
        if missing:
            names = ", ".join(sorted(category.value for category in missing))
            raise ConfigurationError(f"No delivery channel configured for: {names}")
        self._channels = dict(channels)
        self._reporter = reporter

    async def dispatch(
        self,
        category: NotificationCategory,
        entity: Entity,
        *,
        request_id: str | None = None,
    ) -> None:
        channel = self._channels[category]
        try:
            payload = format_message(category, entity, channel.config)
            await channel.client.send(payload)
        except Exception as exc:
            self._report_failure(category, entity, exc, request_id)
            return

        incr_metric("notification_delivery", category=category.value, outcome="sent")
        log_event(
            "notification_sent",
            level=logging.DEBUG,
            request_id=request_id,
            category=category.value,
            version=entity.version,
        )

    def _report_failure(
        self,
        category: NotificationCategory,
        entity: Entity,
        exc: Exception,
        request_id: str | None,
    ) -> None:
        incr_metric("notification_delivery", category=category.value, outcome="failed")
        detail: dict[str, Any] = {"type": type(exc).__name__, "message": str(exc)}
        if isinstance(exc, DeliveryError):
            detail["status_code"] = exc.status_code
        log_event(
            "notification_delivery_failed",
            level=logging.ERROR,
            request_id=request_id,
            category=category.value,
            version=entity.version,
            error=detail,
        )
        self._reporter.capture_exception(exc, category=category.value, request_id=request_id)


def build_dispatcher(
    settings: Settings,
    reporter: ErrorReporter,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> NotificationDispatcher:
    """Resolve every category's webhook target. Any unresolvable URL aborts startup."""
    channels: dict[NotificationCategory, DeliveryChannel] = {}
    for category in NotificationCategory:
        config = settings.category_config(category)
        try:
            target = resolve(config.webhook_url)
        except FormatError as exc:
            raise FormatError(f"Webhook url for {category.value} notifications is invalid: {exc}") from exc
        client = DiscordWebhookClient(
            target,
            timeout_seconds=settings.delivery_timeout_seconds,
            transport=transport,
        )
        channels[category] = DeliveryChannel(config=config, client=client)
        log_event("webhook_target_resolved", category=category.value, channel_id=target.channel_id)
    return NotificationDispatcher(channels, reporter)
