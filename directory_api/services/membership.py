"""Membership planning for groupOfNames entries.

`member` is mandatory in groupOfNames, so a group with no users holds exactly
one placeholder value, the empty string. These functions decide which modify
requests express a membership change without ever presenting the server with
an empty `member` attribute. They do no I/O.
"""

from __future__ import annotations

from typing import Iterable

from ..ldap.models import ModifyChange

MEMBER = "member"
SENTINEL = ""


def same_dn(a: str, b: str) -> bool:
    """Loose DN comparison: case and spacing around RDN separators are ignored."""
    return _norm(a) == _norm(b)


def _norm(dn: str) -> str:
    return ",".join(part.strip() for part in dn.split(",")).lower()


def real_members(values: Iterable[str]) -> list[str]:
    return [v for v in values if v != SENTINEL]


def is_empty(values: Iterable[str]) -> bool:
    return not real_members(values)


def plan_add(current: Iterable[str], user_dn: str) -> list[ModifyChange]:
    """Changes that add `user_dn`; the placeholder goes only after the user is in."""
    current = list(current)
    changes = [ModifyChange("add", MEMBER, (user_dn,))]
    if SENTINEL in current:
        changes.append(ModifyChange("delete", MEMBER, (SENTINEL,)))
    return changes


def plan_remove(current: Iterable[str], user_dn: str) -> list[ModifyChange]:
    """Changes that remove `user_dn`.

    Removing the last real member replaces the attribute with the placeholder
    in one request. A user that is not listed gets a plain delete, which the
    server rejects (noSuchAttribute) without touching the entry.
    """
    members = real_members(current)
    others = [m for m in members if not same_dn(m, user_dn)]
    if len(others) < len(members) and is_empty(others):
        return [ModifyChange("replace", MEMBER, (SENTINEL,))]
    return [ModifyChange("delete", MEMBER, (user_dn,))]


def plan_initial_members(members: Iterable[str] | None) -> list[str]:
    given = real_members(members or [])
    return given if given else [SENTINEL]
