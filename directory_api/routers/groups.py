from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request

from ..deps import get_credential, get_handle, get_service
from ..ldap.errors import NotFoundError
from ..ldap.handle import DirectoryHandle
from ..ldap.models import Credential, GroupAttributes
from ..responses import api_result
from ..services.directory import DirectoryService


router = APIRouter()
log = logging.getLogger(__name__)


async def _group_attributes(request: Request, handle: DirectoryHandle) -> GroupAttributes:
    """`member` fields may be uids or full DNs; uids are mapped under people."""
    form = await request.form()
    members = []
    for raw in form.getlist("member"):
        value = str(raw).strip()
        if value:
            members.append(value if "=" in value else handle.user_dn(value))
    return GroupAttributes(members=members or None)


@router.get("/groups")
async def list_groups(
    service: DirectoryService = Depends(get_service),
    bind: Credential = Depends(get_credential),
):
    return api_result(await service.list_groups(bind))


@router.post("/groups/{groupid}")
async def upsert_group(
    groupid: str,
    request: Request,
    handle: DirectoryHandle = Depends(get_handle),
    service: DirectoryService = Depends(get_service),
    bind: Credential = Depends(get_credential),
):
    """Create the group if it does not exist; an existing group is left as is."""
    found = await service.fetch_group(bind, groupid)
    if found.ok and found.payload.get("group") is not None:
        return api_result(found)
    if not (found.ok or isinstance(found.error, NotFoundError)):
        return api_result(found)

    attrs = await _group_attributes(request, handle)
    log.info("Creating group %s", groupid)
    return api_result(await service.create_group(bind, groupid, attrs))


@router.get("/groups/{groupid}")
async def get_group(
    groupid: str,
    service: DirectoryService = Depends(get_service),
    bind: Credential = Depends(get_credential),
):
    return api_result(await service.fetch_group(bind, groupid))


@router.delete("/groups/{groupid}")
async def delete_group(
    groupid: str,
    service: DirectoryService = Depends(get_service),
    bind: Credential = Depends(get_credential),
):
    return api_result(await service.delete_group(bind, groupid))


@router.post("/groups/{groupid}/members/{userid}")
async def add_member(
    groupid: str,
    userid: str,
    service: DirectoryService = Depends(get_service),
    bind: Credential = Depends(get_credential),
):
    return api_result(await service.add_user_to_group(bind, userid, groupid))


@router.delete("/groups/{groupid}/members/{userid}")
async def remove_member(
    groupid: str,
    userid: str,
    service: DirectoryService = Depends(get_service),
    bind: Credential = Depends(get_credential),
):
    return api_result(await service.remove_user_from_group(bind, userid, groupid))
