from __future__ import annotations

import logging
from typing import AsyncIterator

from fastapi import Depends, Request

from .env_settings import EnvSettings
from .ldap.handle import DirectoryHandle
from .ldap.models import Credential
from .services.directory import DirectoryService
from .services.sessions import SessionStore
from .session import read_session

log = logging.getLogger(__name__)


def get_settings(request: Request) -> EnvSettings:
    return request.app.state.env


def get_store(request: Request) -> SessionStore:
    return request.app.state.sessions


def session_id(request: Request) -> str | None:
    env = get_settings(request)
    token = request.cookies.get(env.session_cookie_name, "")
    return read_session(token, env.session_max_age_seconds) if token else None


def open_handle(request: Request) -> DirectoryHandle:
    return request.app.state.handle_factory()


async def get_handle(request: Request) -> AsyncIterator[DirectoryHandle]:
    """The session's handle, or a fresh one closed when the request ends."""
    sid = session_id(request)
    if sid:
        handle = await get_store(request).get(sid)
        if handle is not None:
            yield handle
            return
    handle = open_handle(request)
    try:
        yield handle
    finally:
        await handle.close()


def get_service(handle: DirectoryHandle = Depends(get_handle)) -> DirectoryService:
    return DirectoryService(handle)


async def form_value(request: Request, name: str) -> str:
    """Form field, falling back to the query string (GET and DELETE clients)."""
    form = await request.form()
    value = form.get(name)
    if value is None:
        value = request.query_params.get(name)
    return str(value or "")


async def get_credential(request: Request, handle: DirectoryHandle = Depends(get_handle)) -> Credential:
    binduser = await form_value(request, "binduser")
    bindpass = await form_value(request, "bindpass")
    return handle.credential(binduser, bindpass)
