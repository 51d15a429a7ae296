from __future__ import annotations

import asyncio

from .client import LDAPConnection
from .models import Credential, LDAPConfig
from .utils import child_dn


class DirectoryHandle:
    """One directory connection plus the DNs derived from the base DN.

    A handle belongs to a single session (or a single request when there is
    no session). `lock` serializes whole logical actions issued on it.
    """

    def __init__(self, conn: LDAPConnection, base_dn: str) -> None:
        self.conn = conn
        self.base_dn = base_dn
        self.peopledn = f"ou=people,{base_dn}"
        self.groupsdn = f"ou=groups,{base_dn}"
        self.lock = asyncio.Lock()

    @classmethod
    def open(cls, cfg: LDAPConfig) -> "DirectoryHandle":
        return cls(LDAPConnection.from_config(cfg), cfg.base_dn)

    def user_dn(self, uid: str) -> str:
        return child_dn("uid", uid, self.peopledn)

    def group_dn(self, gid: str) -> str:
        return child_dn("cn", gid, self.groupsdn)

    def credential(self, binduser: str, password: str) -> Credential:
        """Credential for a uid under `peopledn`, or for a full DN as given."""
        u = (binduser or "").strip()
        if "=" in u:
            return Credential(dn=u, password=password)
        return Credential(dn=self.user_dn(u), password=password)

    @property
    def closed(self) -> bool:
        return self.conn.closed

    @property
    def usable(self) -> bool:
        return not (self.conn.closed or self.conn.abandoned)

    async def close(self) -> None:
        await self.conn.close()
