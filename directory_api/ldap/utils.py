from __future__ import annotations

from ldap3.utils.dn import escape_rdn


def escape_ldap_filter_value(value: str) -> str:
    """RFC 4515 escaping for LDAP filter values."""
    out: list[str] = []
    for ch in value:
        if ch == "\\":
            out.append("\\5c")
        elif ch == "*":
            out.append("\\2a")
        elif ch == "(":
            out.append("\\28")
        elif ch == ")":
            out.append("\\29")
        elif ch == "\x00":
            out.append("\\00")
        else:
            out.append(ch)
    return "".join(out)


def child_dn(attr: str, value: str, parent: str) -> str:
    """Build `attr=value,parent` with the RDN value escaped (RFC 4514)."""
    return f"{attr}={escape_rdn(value)},{parent}"


def equality_filter(attr: str, value: str) -> str:
    return f"({attr}={escape_ldap_filter_value(value)})"
