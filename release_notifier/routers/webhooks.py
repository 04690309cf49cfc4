from __future__ import annotations

import json
from typing import Any

from fastapi import APIRouter, Depends, Request

from release_notifier.auth import require_token
from release_notifier.dispatcher import NotificationDispatcher
from release_notifier.domain.errors import RequestSyntaxError
from release_notifier.domain.validation import validate
from release_notifier.models.notifications import NotificationCategory
from release_notifier.models.responses import SuccessResponse
from release_notifier.observability import incr_metric, log_event


router = APIRouter(prefix="/webhooks", tags=["webhooks"], dependencies=[Depends(require_token)])


def _request_id(request: Request | None) -> str | None:
    if not request:
        return None
    return getattr(getattr(request, "state", None), "request_id", None)


async def _parse_json_body(request: Request) -> Any:
    raw = await request.body()
    # An empty body is an empty object, so the schema names the first missing field.
    if not raw.strip():
        return {}
    try:
        return json.loads(raw)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise RequestSyntaxError(f"Request body is not valid JSON: {exc}") from exc


async def _handle_release(request: Request, category: NotificationCategory) -> SuccessResponse:
    request_id = _request_id(request)
    payload = await _parse_json_body(request)
    entity = validate(category, payload)

    dispatcher: NotificationDispatcher = request.app.state.dispatcher
    await dispatcher.dispatch(category, entity, request_id=request_id)

    incr_metric("release_notifications", category=category.value, outcome="accepted")
    log_event(
        "release_notification_accepted",
        request_id=request_id,
        category=category.value,
        version=entity.version,
    )
    return SuccessResponse()


@router.post("/mod/version", response_model=SuccessResponse)
async def post_mod_version(request: Request):
    return await _handle_release(request, NotificationCategory.MOD)


@router.post("/launcher/version", response_model=SuccessResponse)
async def post_launcher_version(request: Request):
    return await _handle_release(request, NotificationCategory.LAUNCHER)


@router.post("/loader/version", response_model=SuccessResponse)
async def post_loader_version(request: Request):
    return await _handle_release(request, NotificationCategory.LOADER)
