from __future__ import annotations

import asyncio
import logging
import ssl
from typing import Any, Callable, Iterable

from ldap3 import (
    Server,
    Connection,
    ALL,
    BASE,
    LEVEL,
    SUBTREE,
    SIMPLE,
    Tls,
    MODIFY_ADD,
    MODIFY_DELETE,
    MODIFY_REPLACE,
)
from ldap3.core.exceptions import (
    LDAPException,
    LDAPCommunicationError,
    LDAPStartTLSError,
    LDAPResponseTimeoutError,
)

from . import errors
from .models import LDAPConfig, ModifyChange, OpResult, Scope, SearchEntry, SearchResult

log = logging.getLogger(__name__)

_SCOPES = {"base": BASE, "one": LEVEL, "sub": SUBTREE}
_MODIFY_OPS = {"add": MODIFY_ADD, "delete": MODIFY_DELETE, "replace": MODIFY_REPLACE}

_TRANSPORT_EXCEPTIONS = (LDAPCommunicationError, LDAPStartTLSError, LDAPResponseTimeoutError, OSError)


def _decode(value: Any) -> str:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="replace")
    return str(value)


def _entry_from_response(item: dict) -> SearchEntry:
    # raw_attributes always holds lists of bytes, in server order, even for
    # attributes the schema declares single-valued.
    raw = item.get("raw_attributes") or item.get("attributes") or {}
    attributes: dict[str, list[str]] = {}
    for name, values in raw.items():
        if not isinstance(values, (list, tuple)):
            values = [values]
        attributes[name] = [_decode(v) for v in values]
    return SearchEntry(dn=str(item.get("dn", "")), attributes=attributes)


class LDAPConnection:
    """Asynchronous, never-raising wrapper around one `ldap3.Connection`.

    The underlying client is synchronous; each request runs in a worker thread
    while the connection lock is held, so at most one request is in flight on
    the socket. Every method resolves to an `OpResult` (or `SearchResult`).
    Only `asyncio.CancelledError` escapes, so callers keep control of
    cancellation.
    """

    def __init__(self, conn: Connection, *, starttls: bool = False, timeout: float | None = None) -> None:
        self._conn = conn
        self._starttls = starttls
        self._timeout = timeout
        self._lock = asyncio.Lock()
        self._abandoned = False
        self._closed = False

    @classmethod
    def from_config(cls, cfg: LDAPConfig) -> "LDAPConnection":
        tls_kwargs: dict[str, Any] = {
            "validate": ssl.CERT_REQUIRED if cfg.tls_validate else ssl.CERT_NONE,
        }
        if cfg.tls_validate and cfg.ca_cert_file:
            tls_kwargs["ca_certs_file"] = cfg.ca_cert_file

        server = Server(
            cfg.url,
            use_ssl=cfg.use_ssl,
            get_info=ALL,
            tls=Tls(**tls_kwargs),
            connect_timeout=cfg.connect_timeout,
        )
        conn = Connection(
            server,
            auto_bind=False,
            receive_timeout=cfg.receive_timeout,
            raise_exceptions=False,
        )
        return cls(conn, starttls=cfg.starttls, timeout=cfg.operation_timeout)

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def abandoned(self) -> bool:
        """True after a request timed out or was cancelled; the socket is unusable."""
        return self._abandoned

    async def _call(self, label: str, fn: Callable[[], Any], timeout: float | None) -> tuple[Any, errors.DirectoryError | None]:
        """Run one blocking ldap3 request; return (value, error)."""
        limit = self._timeout if timeout is None else timeout
        async with self._lock:
            # Checked under the lock: a request queued behind a timed-out one
            # must not reach the socket.
            if self._closed:
                return None, errors.TransportError("connection is closed", code=errors.SERVER_DOWN, name="serverDown")
            if self._abandoned:
                return None, errors.TransportError(
                    "connection abandoned after an unfinished request",
                    code=errors.SERVER_DOWN,
                    name="serverDown",
                )
            try:
                if limit:
                    value = await asyncio.wait_for(asyncio.to_thread(fn), limit)
                else:
                    value = await asyncio.to_thread(fn)
                return value, None
            except asyncio.TimeoutError:
                self._abandoned = True
                log.warning("LDAP %s timed out after %ss; connection abandoned", label, limit)
                return None, errors.timeout_error(limit)
            except asyncio.CancelledError:
                # The worker thread may still be talking to the server.
                self._abandoned = True
                raise
            except _TRANSPORT_EXCEPTIONS as e:
                log.warning("LDAP %s failed at transport level: %s", label, e)
                return None, errors.transport_error(e)
            except LDAPException as e:
                log.debug("LDAP %s refused by client: %s", label, e)
                return None, errors.client_error(e)

    def _result(self) -> dict:
        return dict(self._conn.result or {})

    async def bind(self, dn: str, password: str, *, timeout: float | None = None) -> OpResult:
        op = f"bind {dn}"

        def run() -> tuple[bool, dict]:
            if self._conn.closed:
                self._conn.open()
                if self._starttls:
                    self._conn.start_tls()
            self._conn.user = dn
            self._conn.password = password
            self._conn.authentication = SIMPLE
            ok = bool(self._conn.bind())
            return ok, self._result()

        value, err = await self._call(op, run, timeout)
        if err is not None:
            if not isinstance(err, errors.TransportError):
                err = errors.BindError(err.message, code=err.code, name=err.name)
            return OpResult(op, False, err)
        ok, res = value
        if not ok:
            return OpResult(op, False, errors.from_result(res, operation="bind"))
        return OpResult(op, True)

    async def add(self, dn: str, attributes: dict[str, Any], *, timeout: float | None = None) -> OpResult:
        op = f"add {dn}"

        def run() -> tuple[bool, dict]:
            ok = bool(self._conn.add(dn, attributes=attributes))
            return ok, self._result()

        return self._simple(op, await self._call(op, run, timeout), "add")

    async def modify(self, dn: str, change: ModifyChange, *, timeout: float | None = None) -> OpResult:
        op = f"modify {dn} {change.describe()}"
        changes = {change.attribute: [(_MODIFY_OPS[change.operation], list(change.values))]}

        def run() -> tuple[bool, dict]:
            ok = bool(self._conn.modify(dn, changes))
            return ok, self._result()

        return self._simple(op, await self._call(op, run, timeout), "modify")

    async def delete(self, dn: str, *, timeout: float | None = None) -> OpResult:
        op = f"del {dn}"

        def run() -> tuple[bool, dict]:
            ok = bool(self._conn.delete(dn))
            return ok, self._result()

        return self._simple(op, await self._call(op, run, timeout), "delete")

    async def search(
        self,
        base: str,
        *,
        scope: Scope = "base",
        search_filter: str = "(objectClass=*)",
        attributes: Iterable[str] | None = None,
        timeout: float | None = None,
    ) -> SearchResult:
        op = f"search {base}"
        attrs = list(attributes) if attributes is not None else ["*"]

        def run() -> tuple[dict, list]:
            self._conn.search(
                search_base=base,
                search_filter=search_filter,
                search_scope=_SCOPES[scope],
                attributes=attrs,
            )
            return self._result(), list(self._conn.response or [])

        value, err = await self._call(op, run, timeout)
        if err is not None:
            return SearchResult(op, False, err)
        res, response = value
        entries = tuple(
            _entry_from_response(item) for item in response if item.get("type") == "searchResEntry"
        )
        # ldap3 reports False for a successful search with no entries, so the
        # terminal result code decides.
        if not res:
            return SearchResult(op, False, errors.from_result(None), entries)
        if res.get("result") != 0:
            return SearchResult(op, False, errors.from_result(res, operation="search"), entries)
        return SearchResult(op, True, None, entries)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._abandoned:
            # Do not wait on the lock held by a stuck request.
            try:
                await asyncio.to_thread(self._conn.unbind)
            except (LDAPException, OSError) as e:
                log.debug("LDAP unbind after abandon failed: %s", e)
            return
        async with self._lock:
            try:
                await asyncio.to_thread(self._conn.unbind)
            except (LDAPException, OSError) as e:
                log.debug("LDAP unbind failed: %s", e)

    @staticmethod
    def _simple(op: str, outcome: tuple[Any, errors.DirectoryError | None], operation: str) -> OpResult:
        value, err = outcome
        if err is not None:
            return OpResult(op, False, err)
        ok, res = value
        if not ok:
            return OpResult(op, False, errors.from_result(res, operation=operation))
        return OpResult(op, True)
