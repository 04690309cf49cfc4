from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal
from urllib.parse import urlparse

from release_notifier.domain.errors import ValidationError
from release_notifier.models.notifications import ENTITY_TYPES, Entity, NotificationCategory


FieldType = Literal["string", "boolean"]
_URL_SCHEMES = {"http", "https", "ftp"}


@dataclass(frozen=True)
class FieldRule:
    """One declarative constraint row: wire key, entity attribute, type and format."""

    key: str
    attr: str
    type: FieldType = "string"
    required: bool = True
    url: bool = False


FIELD_RULES: dict[NotificationCategory, tuple[FieldRule, ...]] = {
    NotificationCategory.MOD: (
        FieldRule("modTitle", "title"),
        FieldRule("modDescription", "description"),
        FieldRule("modBannerUrl", "banner_url", required=False, url=True),
        FieldRule("modIconUrl", "icon_url", url=True),
        FieldRule("modUrl", "url", url=True),
        FieldRule("modAuthorName", "author_name"),
        FieldRule("modAuthorUrl", "author_url", url=True),
        FieldRule("version", "version"),
        FieldRule("changelog", "changelog"),
        FieldRule("initial", "initial", type="boolean"),
    ),
    NotificationCategory.LAUNCHER: (
        FieldRule("version", "version"),
        FieldRule("changelog", "changelog"),
        FieldRule("url", "url", url=True),
    ),
    NotificationCategory.LOADER: (
        FieldRule("version", "version"),
        FieldRule("gameVersion", "game_version"),
        FieldRule("changelog", "changelog"),
        FieldRule("url", "url", url=True),
    ),
}


def is_absolute_url(value: str) -> bool:
    if any(ch.isspace() for ch in value):
        return False
    try:
        parsed = urlparse(value)
        host = parsed.hostname
    except ValueError:
        return False
    return parsed.scheme.lower() in _URL_SCHEMES and bool(host)


def _check_field(rule: FieldRule, payload: dict[str, Any]) -> Any:
    value = payload.get(rule.key)
    if value is None or value == "":
        if rule.required:
            raise ValidationError(rule.key, "required", f"{rule.key} is a required field")
        return None

    expected = str if rule.type == "string" else bool
    if not isinstance(value, expected):
        raise ValidationError(rule.key, "type", f"{rule.key} must be a `{rule.type}` type")

    if rule.url and not is_absolute_url(value):
        raise ValidationError(rule.key, "url", f"{rule.key} must be a valid URL")
    return value


def validate(category: NotificationCategory, payload: Any) -> Entity:
    """Check an untyped request body against the category's field table.

    Stops at the first violation. Keys not named in the table are dropped.
    """
    if not isinstance(payload, dict):
        raise ValidationError("body", "type", "body must be a `object` type")

    values: dict[str, Any] = {}
    for rule in FIELD_RULES[category]:
        value = _check_field(rule, payload)
        if value is not None:
            values[rule.attr] = value
    return ENTITY_TYPES[category](**values)
