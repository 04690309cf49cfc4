from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict


class NotificationCategory(str, Enum):
    MOD = "mod"
    LAUNCHER = "launcher"
    LOADER = "loader"


class _Entity(BaseModel):
    model_config = ConfigDict(frozen=True)


class ModVersion(_Entity):
    title: str
    description: str
    banner_url: str | None = None
    icon_url: str
    url: str
    author_name: str
    author_url: str
    version: str
    changelog: str
    initial: bool


class LauncherVersion(_Entity):
    version: str
    changelog: str
    url: str


class LoaderVersion(_Entity):
    version: str
    game_version: str
    changelog: str
    url: str


Entity = ModVersion | LauncherVersion | LoaderVersion

ENTITY_TYPES: dict[NotificationCategory, type[_Entity]] = {
    NotificationCategory.MOD: ModVersion,
    NotificationCategory.LAUNCHER: LauncherVersion,
    NotificationCategory.LOADER: LoaderVersion,
}
