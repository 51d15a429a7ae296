from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request

from ..deps import get_credential, get_service
from ..ldap.errors import NotFoundError
from ..ldap.models import Credential, UserAttributes
from ..responses import api_result
from ..services.directory import DirectoryService


router = APIRouter()
log = logging.getLogger(__name__)


async def _user_attributes(request: Request) -> UserAttributes:
    form = await request.form()

    def pick(name: str) -> str | None:
        value = form.get(name)
        return None if value is None else str(value)

    return UserAttributes(
        cn=pick("usercn"),
        sn=pick("usersn"),
        user_password=pick("userpassword"),
        mail=pick("usermail"),
    )


@router.get("/users")
async def list_users(
    service: DirectoryService = Depends(get_service),
    bind: Credential = Depends(get_credential),
):
    return api_result(await service.list_users(bind))


@router.post("/users/{userid}")
async def upsert_user(
    userid: str,
    request: Request,
    service: DirectoryService = Depends(get_service),
    bind: Credential = Depends(get_credential),
):
    """Create the user if it does not exist, otherwise update the given fields."""
    attrs = await _user_attributes(request)
    found = await service.fetch_user(bind, userid)
    if found.ok and found.payload.get("user") is not None:
        result = await service.update_user(bind, userid, attrs)
    elif isinstance(found.error, NotFoundError) or found.ok:
        log.info("Creating user %s", userid)
        result = await service.create_user(bind, userid, attrs)
    else:
        return api_result(found)
    return api_result(result)


@router.get("/users/{userid}")
async def get_user(
    userid: str,
    service: DirectoryService = Depends(get_service),
    bind: Credential = Depends(get_credential),
):
    return api_result(await service.fetch_user(bind, userid))


@router.delete("/users/{userid}")
async def delete_user(
    userid: str,
    service: DirectoryService = Depends(get_service),
    bind: Credential = Depends(get_credential),
):
    result = await service.delete_user(bind, userid)
    log.info("Delete user %s: ok=%s", userid, result.ok)
    return api_result(result)
