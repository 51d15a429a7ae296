from __future__ import annotations

import logging

from fastapi import APIRouter, Request
from fastapi.responses import Response

from ..deps import form_value, get_settings, get_store, open_handle, session_id
from ..responses import api_result
from ..services.directory import DirectoryService
from ..services.oplog import OperationLog
from ..session import create_session, new_session_id


router = APIRouter()
log = logging.getLogger(__name__)


def set_session_cookie(request: Request, resp: Response, sid: str) -> None:
    """Set the signed session cookie (one place for every auth flow)."""
    env = get_settings(request)
    resp.set_cookie(
        key=env.session_cookie_name,
        value=create_session(sid),
        httponly=True,
        secure=env.cookie_secure,
        samesite="lax",
        max_age=env.session_max_age_seconds,
    )


@router.post("/ticket")
async def login(request: Request):
    username = (await form_value(request, "username")).strip()
    password = await form_value(request, "password")
    ip = request.client.host if request.client else ""

    store = get_store(request)
    previous = session_id(request)
    if previous:
        await store.remove(previous)

    handle = open_handle(request)
    result = await DirectoryService(handle).authenticate(username, password)
    if not result.ok:
        await handle.close()
        log.info("Login failed for %r from %s", username, ip)
        return api_result(result)

    sid = new_session_id()
    await store.put(sid, handle)
    log.info("Login ok for %r from %s", username, ip)
    resp = api_result(result)
    set_session_cookie(request, resp, sid)
    return resp


@router.delete("/ticket")
async def logout(request: Request):
    sid = session_id(request)
    if sid:
        await get_store(request).remove(sid)
    resp = api_result(OperationLog("logout"))
    resp.delete_cookie(get_settings(request).session_cookie_name)
    return resp
