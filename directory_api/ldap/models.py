from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Literal

from .errors import DirectoryError

if TYPE_CHECKING:
    from ..env_settings import EnvSettings

Scope = Literal["base", "one", "sub"]
ModifyOperation = Literal["add", "delete", "replace"]


@dataclass
class LDAPConfig:
    url: str
    base_dn: str
    starttls: bool = False
    tls_validate: bool = False
    ca_cert_file: str = ""
    connect_timeout: float = 5.0
    receive_timeout: float = 10.0
    operation_timeout: float = 15.0

    @property
    def use_ssl(self) -> bool:
        return self.url.lower().startswith("ldaps://")

    @classmethod
    def from_env(cls, env: "EnvSettings") -> "LDAPConfig":
        return cls(
            url=env.ldap_url,
            base_dn=env.ldap_base_dn,
            starttls=env.ldap_starttls,
            tls_validate=env.ldap_tls_validate,
            ca_cert_file=env.ldap_ca_cert_file,
            connect_timeout=env.ldap_connect_timeout,
            receive_timeout=env.ldap_receive_timeout,
            operation_timeout=env.ldap_operation_timeout,
        )


@dataclass(frozen=True)
class Credential:
    dn: str
    password: str = field(repr=False)


@dataclass(frozen=True)
class UserAttributes:
    """Optional inetOrgPerson fields; `None` means absent, "" means present but empty."""

    cn: str | None = None
    sn: str | None = None
    user_password: str | None = field(default=None, repr=False)
    mail: str | None = None


@dataclass(frozen=True)
class GroupAttributes:
    members: list[str] | None = None


@dataclass(frozen=True)
class ModifyChange:
    operation: ModifyOperation
    attribute: str
    values: tuple[str, ...]

    def describe(self) -> str:
        return f"{self.operation} {self.attribute}"


@dataclass(frozen=True)
class OpResult:
    """Outcome of one primitive call (or one synthetic precondition step)."""

    op: str
    ok: bool
    error: DirectoryError | None = None

    def to_dict(self) -> dict:
        return {"op": self.op, "ok": self.ok, "error": self.error.to_dict() if self.error else None}


@dataclass(frozen=True)
class SearchEntry:
    dn: str
    attributes: dict[str, list[str]] = field(default_factory=dict, hash=False)

    def values(self, name: str) -> list[str]:
        """Attribute values by case-insensitive name, in server order."""
        wanted = name.lower()
        for key, vals in self.attributes.items():
            if key.lower() == wanted:
                return list(vals)
        return []

    def first(self, name: str, default: str = "") -> str:
        values = self.values(name)
        return values[0] if values else default

    def to_dict(self) -> dict:
        return {"dn": self.dn, "attributes": {k: list(v) for k, v in self.attributes.items()}}


@dataclass(frozen=True)
class SearchResult(OpResult):
    entries: tuple[SearchEntry, ...] = ()
