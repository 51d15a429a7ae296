from __future__ import annotations

import logging
from typing import Any

from ..ldap.errors import NotFoundError, ValidationError
from ..ldap.handle import DirectoryHandle
from ..ldap.models import (
    Credential,
    GroupAttributes,
    ModifyChange,
    SearchEntry,
    UserAttributes,
)
from ..ldap.utils import equality_filter
from .membership import MEMBER, plan_add, plan_initial_members, plan_remove, real_members
from .oplog import OperationLog

log = logging.getLogger(__name__)

USER_ATTRIBUTES = ["uid", "cn", "sn", "mail", "memberOf"]
GROUP_ATTRIBUTES = ["cn", "member"]


def user_to_dict(entry: SearchEntry) -> dict[str, Any]:
    return {
        "dn": entry.dn,
        "uid": entry.first("uid"),
        "cn": entry.first("cn"),
        "sn": entry.first("sn"),
        "mail": entry.first("mail"),
        "memberOf": entry.values("memberOf"),
    }


def group_to_dict(entry: SearchEntry) -> dict[str, Any]:
    return {
        "dn": entry.dn,
        "gid": entry.first("cn"),
        "members": real_members(entry.values(MEMBER)),
    }


class DirectoryService:
    """User and group actions expressed as ordered directory calls.

    Each public method runs one logical action under the handle's lock and
    returns its `OperationLog`. Nothing here raises on directory failures.
    """

    def __init__(self, handle: DirectoryHandle) -> None:
        self.handle = handle
        self.conn = handle.conn

    async def _bind(self, oplog: OperationLog, bind: Credential) -> bool:
        return oplog.push(await self.conn.bind(bind.dn, bind.password)).ok

    async def _apply(self, oplog: OperationLog, dn: str, changes: list[ModifyChange]) -> bool:
        """Apply dependent changes in order; stop at the first rejected one."""
        for change in changes:
            if not oplog.push(await self.conn.modify(dn, change)).ok:
                return False
        return True

    async def _group_members(self, oplog: OperationLog, gid: str) -> list[str] | None:
        """Current `member` values of a group, or None if it cannot be read."""
        dn = self.handle.group_dn(gid)
        res = await self.conn.search(dn, scope="base", attributes=[MEMBER])
        if not res.ok:
            if isinstance(res.error, NotFoundError):
                err = NotFoundError(f"{gid} does not exist", code=res.error.code, name=res.error.name)
                oplog.push(type(res)(res.op, False, err, res.entries))
            else:
                oplog.push(res)
            return None
        oplog.push(res)
        if not res.entries:
            oplog.fail(f"lookup {dn}", NotFoundError(f"{gid} does not exist"))
            return None
        return res.entries[0].values(MEMBER)

    # ---- session ----

    async def authenticate(self, uid: str, password: str) -> OperationLog:
        oplog = OperationLog("authenticate")
        if not uid or not password:
            oplog.fail("bind", ValidationError("uid and password are required"))
            return oplog
        async with self.handle.lock:
            # Same rule as request credentials: a value with "=" is a full DN.
            dn = self.handle.credential(uid, password).dn
            if oplog.push(await self.conn.bind(dn, password)).ok:
                oplog.attach("dn", dn)
        return oplog

    # ---- users ----

    async def create_user(self, bind: Credential, uid: str, attrs: UserAttributes) -> OperationLog:
        oplog = OperationLog("create_user")
        required = (("cn", attrs.cn), ("sn", attrs.sn), ("userPassword", attrs.user_password))
        missing = [name for name, value in required if not value]
        if not uid:
            missing.insert(0, "uid")
        if missing:
            oplog.fail("validate", ValidationError("missing required attribute(s): " + ", ".join(missing)))
            return oplog

        dn = self.handle.user_dn(uid)
        entry: dict[str, Any] = {
            "objectClass": ["inetOrgPerson"],
            "uid": uid,
            "cn": attrs.cn,
            "sn": attrs.sn,
            "userPassword": attrs.user_password,
        }
        if attrs.mail:
            entry["mail"] = attrs.mail

        async with self.handle.lock:
            if not await self._bind(oplog, bind):
                return oplog
            oplog.push(await self.conn.add(dn, entry))
        return oplog

    async def fetch_user(self, bind: Credential, uid: str) -> OperationLog:
        oplog = OperationLog("fetch_user")
        async with self.handle.lock:
            if not await self._bind(oplog, bind):
                return oplog
            res = oplog.push(
                await self.conn.search(self.handle.user_dn(uid), scope="base", attributes=USER_ATTRIBUTES)
            )
        if res.ok:
            oplog.attach("user", user_to_dict(res.entries[0]) if res.entries else None)
        return oplog

    async def update_user(self, bind: Credential, uid: str, attrs: UserAttributes) -> OperationLog:
        oplog = OperationLog("update_user")
        fields = (
            ("cn", attrs.cn),
            ("sn", attrs.sn),
            ("userPassword", attrs.user_password),
            ("mail", attrs.mail),
        )
        changes = [ModifyChange("replace", name, (value,)) for name, value in fields if value]
        if not changes:
            return oplog

        dn = self.handle.user_dn(uid)
        async with self.handle.lock:
            if not await self._bind(oplog, bind):
                return oplog
            # Independent attributes: a rejected one does not stop the rest.
            for change in changes:
                oplog.push(await self.conn.modify(dn, change))
        return oplog

    async def delete_user(self, bind: Credential, uid: str) -> OperationLog:
        """Delete a user entry and drop it from every group that lists it."""
        oplog = OperationLog("delete_user")
        dn = self.handle.user_dn(uid)
        async with self.handle.lock:
            if not await self._bind(oplog, bind):
                return oplog
            oplog.push(await self.conn.delete(dn))

            res = oplog.push(
                await self.conn.search(
                    self.handle.groupsdn,
                    scope="one",
                    search_filter=equality_filter(MEMBER, dn),
                    attributes=[MEMBER],
                )
            )
            if not res.ok:
                log.warning("delete_user %s: group lookup failed, membership cleanup skipped", uid)
                return oplog

            for group in res.entries:
                await self._apply(oplog, group.dn, plan_remove(group.values(MEMBER), dn))
        if not oplog.ok:
            log.info("delete_user %s finished with %d error(s)", uid, len(oplog.errors))
        return oplog

    async def list_users(self, bind: Credential) -> OperationLog:
        oplog = OperationLog("list_users")
        async with self.handle.lock:
            if not await self._bind(oplog, bind):
                return oplog
            res = oplog.push(
                await self.conn.search(
                    self.handle.peopledn,
                    scope="one",
                    search_filter="(objectClass=inetOrgPerson)",
                    attributes=USER_ATTRIBUTES,
                )
            )
        if res.ok:
            oplog.attach("users", [user_to_dict(e) for e in res.entries])
        return oplog

    # ---- groups ----

    async def create_group(self, bind: Credential, gid: str, attrs: GroupAttributes | None = None) -> OperationLog:
        oplog = OperationLog("create_group")
        if not gid:
            oplog.fail("validate", ValidationError("missing required attribute(s): cn"))
            return oplog

        members = plan_initial_members(attrs.members if attrs else None)
        entry = {"objectClass": ["groupOfNames"], "cn": gid, MEMBER: members}
        async with self.handle.lock:
            if not await self._bind(oplog, bind):
                return oplog
            oplog.push(await self.conn.add(self.handle.group_dn(gid), entry))
        return oplog

    async def fetch_group(self, bind: Credential, gid: str) -> OperationLog:
        oplog = OperationLog("fetch_group")
        async with self.handle.lock:
            if not await self._bind(oplog, bind):
                return oplog
            res = oplog.push(
                await self.conn.search(self.handle.group_dn(gid), scope="base", attributes=GROUP_ATTRIBUTES)
            )
        if res.ok:
            oplog.attach("group", group_to_dict(res.entries[0]) if res.entries else None)
        return oplog

    async def delete_group(self, bind: Credential, gid: str) -> OperationLog:
        oplog = OperationLog("delete_group")
        async with self.handle.lock:
            if not await self._bind(oplog, bind):
                return oplog
            oplog.push(await self.conn.delete(self.handle.group_dn(gid)))
        return oplog

    async def list_groups(self, bind: Credential) -> OperationLog:
        oplog = OperationLog("list_groups")
        async with self.handle.lock:
            if not await self._bind(oplog, bind):
                return oplog
            res = oplog.push(
                await self.conn.search(
                    self.handle.groupsdn,
                    scope="one",
                    search_filter="(objectClass=groupOfNames)",
                    attributes=GROUP_ATTRIBUTES,
                )
            )
        if res.ok:
            oplog.attach("groups", [group_to_dict(e) for e in res.entries])
        return oplog

    # ---- membership ----

    async def add_user_to_group(self, bind: Credential, uid: str, gid: str) -> OperationLog:
        oplog = OperationLog("add_user_to_group")
        async with self.handle.lock:
            if not await self._bind(oplog, bind):
                return oplog
            current = await self._group_members(oplog, gid)
            if current is None:
                return oplog
            user_dn = self.handle.user_dn(uid)
            await self._apply(oplog, self.handle.group_dn(gid), plan_add(current, user_dn))
        return oplog

    async def remove_user_from_group(
        self,
        bind: Credential,
        uid: str,
        gid: str,
        members: list[str] | None = None,
    ) -> OperationLog:
        """Remove a user from a group.

        `members` is the group's current member list when the caller already
        has it; otherwise it is read first.
        """
        oplog = OperationLog("remove_user_from_group")
        async with self.handle.lock:
            if not await self._bind(oplog, bind):
                return oplog
            current = members
            if current is None:
                current = await self._group_members(oplog, gid)
                if current is None:
                    return oplog
            user_dn = self.handle.user_dn(uid)
            await self._apply(oplog, self.handle.group_dn(gid), plan_remove(current, user_dn))
        return oplog
