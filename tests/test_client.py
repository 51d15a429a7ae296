"""
Tests for the asynchronous ldap3 connection wrapper
"""
import asyncio
import time
from unittest.mock import MagicMock, patch

import pytest
from ldap3 import MODIFY_ADD
from ldap3.core.exceptions import LDAPAttributeError, LDAPPasswordIsMandatoryError, LDAPSocketOpenError

from directory_api.ldap import errors
from directory_api.ldap.client import LDAPConnection
from directory_api.ldap.models import LDAPConfig, ModifyChange

OK = {"result": 0, "description": "success", "message": ""}


@pytest.fixture
def ldap3_conn():
    conn = MagicMock()
    conn.closed = False
    conn.result = dict(OK)
    conn.response = []
    return conn


class TestFromConfig:

    def test_ldaps_url_enables_ssl(self):
        cfg = LDAPConfig(url="ldaps://dc.example.org", base_dn="dc=example,dc=org", operation_timeout=3)
        with patch("directory_api.ldap.client.Server") as server, patch("directory_api.ldap.client.Connection") as conn:
            wrapper = LDAPConnection.from_config(cfg)

        assert server.call_args.kwargs["use_ssl"] is True
        assert conn.call_args.kwargs["raise_exceptions"] is False
        assert conn.call_args.kwargs["auto_bind"] is False
        assert wrapper.closed is False


class TestBind:

    async def test_success(self, ldap3_conn):
        ldap3_conn.bind.return_value = True
        res = await LDAPConnection(ldap3_conn).bind("cn=admin,dc=example,dc=org", "secret")
        assert res.ok
        assert res.op == "bind cn=admin,dc=example,dc=org"
        assert ldap3_conn.user == "cn=admin,dc=example,dc=org"

    async def test_opens_and_starts_tls_when_closed(self, ldap3_conn):
        ldap3_conn.closed = True
        ldap3_conn.bind.return_value = True
        await LDAPConnection(ldap3_conn, starttls=True).bind("cn=a", "pw")
        ldap3_conn.open.assert_called_once()
        ldap3_conn.start_tls.assert_called_once()

    async def test_rejected(self, ldap3_conn):
        ldap3_conn.bind.return_value = False
        ldap3_conn.result = {"result": 49, "description": "invalidCredentials", "message": "bad"}
        res = await LDAPConnection(ldap3_conn).bind("cn=a", "pw")
        assert not res.ok
        assert isinstance(res.error, errors.BindError)
        assert res.error.to_dict() == {"code": 49, "name": "invalidCredentials", "message": "bad"}

    async def test_client_refusal_is_bind_error(self, ldap3_conn):
        ldap3_conn.bind.side_effect = LDAPPasswordIsMandatoryError("password is mandatory")
        res = await LDAPConnection(ldap3_conn).bind("cn=a", "")
        assert isinstance(res.error, errors.BindError)


class TestPrimitives:

    async def test_add_already_exists(self, ldap3_conn):
        ldap3_conn.add.return_value = False
        ldap3_conn.result = {"result": 68, "description": "entryAlreadyExists", "message": ""}
        res = await LDAPConnection(ldap3_conn).add("uid=a,ou=people", {"uid": "a"})
        assert isinstance(res.error, errors.AlreadyExistsError)
        assert res.error.code == 68

    async def test_modify_builds_single_change(self, ldap3_conn):
        ldap3_conn.modify.return_value = True
        res = await LDAPConnection(ldap3_conn).modify("cn=g", ModifyChange("add", "member", ("uid=a",)))
        assert res.ok
        assert res.op == "modify cn=g add member"
        ldap3_conn.modify.assert_called_once_with("cn=g", {"member": [(MODIFY_ADD, ["uid=a"])]})

    async def test_modify_constraint_violation(self, ldap3_conn):
        ldap3_conn.modify.return_value = False
        ldap3_conn.result = {"result": 65, "description": "objectClassViolation", "message": ""}
        res = await LDAPConnection(ldap3_conn).modify("cn=g", ModifyChange("delete", "member", ("uid=a",)))
        assert isinstance(res.error, errors.ConstraintViolation)

    async def test_delete_missing(self, ldap3_conn):
        ldap3_conn.delete.return_value = False
        ldap3_conn.result = {"result": 32, "description": "noSuchObject", "message": ""}
        res = await LDAPConnection(ldap3_conn).delete("uid=x")
        assert res.op == "del uid=x"
        assert isinstance(res.error, errors.NotFoundError)

    async def test_client_side_refusal(self, ldap3_conn):
        ldap3_conn.add.side_effect = LDAPAttributeError("invalid attribute type bogus")
        res = await LDAPConnection(ldap3_conn).add("uid=a", {"bogus": "x"})
        assert not res.ok
        assert res.error.name == "LDAPAttributeError"
        assert res.error.code is None


class TestSearch:

    async def test_entries_in_server_order(self, ldap3_conn):
        ldap3_conn.search.return_value = True
        ldap3_conn.response = [
            {"type": "searchResEntry", "dn": "cn=g", "raw_attributes": {"member": [b"uid=b", b"uid=a"]}},
            {"type": "searchResRef", "uri": ["ldap://elsewhere"]},
            {"type": "searchResEntry", "dn": "cn=h", "raw_attributes": {"member": [b""]}},
        ]
        res = await LDAPConnection(ldap3_conn).search("ou=groups", scope="one", attributes=["member"])
        assert res.ok
        assert [e.dn for e in res.entries] == ["cn=g", "cn=h"]
        assert res.entries[0].values("MEMBER") == ["uid=b", "uid=a"]
        assert res.entries[1].values("member") == [""]

    async def test_zero_entries_is_success(self, ldap3_conn):
        ldap3_conn.search.return_value = False
        res = await LDAPConnection(ldap3_conn).search("cn=g")
        assert res.ok
        assert res.entries == ()

    async def test_missing_result(self, ldap3_conn):
        ldap3_conn.result = None
        res = await LDAPConnection(ldap3_conn).search("cn=g")
        assert isinstance(res.error, errors.NoResultError)
        assert res.error.code == errors.NO_RESULT

    async def test_no_such_object(self, ldap3_conn):
        ldap3_conn.search.return_value = False
        ldap3_conn.result = {"result": 32, "description": "noSuchObject", "message": ""}
        res = await LDAPConnection(ldap3_conn).search("cn=g")
        assert isinstance(res.error, errors.NotFoundError)


class TestTransport:

    async def test_socket_error_is_transport_error(self, ldap3_conn, caplog):
        ldap3_conn.add.side_effect = LDAPSocketOpenError("unable to open socket")
        res = await LDAPConnection(ldap3_conn).add("uid=a", {})
        assert isinstance(res.error, errors.TransportError)
        assert res.error.code == errors.SERVER_DOWN
        assert "transport" in caplog.text

    async def test_timeout_abandons_connection(self, ldap3_conn):
        ldap3_conn.search.side_effect = lambda **kwargs: time.sleep(0.3)
        conn = LDAPConnection(ldap3_conn, timeout=0.05)

        res = await conn.search("cn=g")
        assert isinstance(res.error, errors.TransportError)
        assert res.error.code == errors.TIMEOUT

        after = await conn.add("uid=a", {})
        assert isinstance(after.error, errors.TransportError)
        ldap3_conn.add.assert_not_called()

    async def test_cancellation_propagates(self, ldap3_conn):
        ldap3_conn.search.side_effect = lambda **kwargs: time.sleep(0.3)
        conn = LDAPConnection(ldap3_conn)

        task = asyncio.create_task(conn.search("cn=g"))
        await asyncio.sleep(0.05)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        after = await conn.delete("cn=g")
        assert isinstance(after.error, errors.TransportError)
        ldap3_conn.delete.assert_not_called()


class TestClose:

    async def test_close_is_idempotent(self, ldap3_conn):
        conn = LDAPConnection(ldap3_conn)
        await conn.close()
        await conn.close()
        ldap3_conn.unbind.assert_called_once()
        assert conn.closed

    async def test_calls_after_close_fail(self, ldap3_conn):
        conn = LDAPConnection(ldap3_conn)
        await conn.close()
        res = await conn.bind("cn=a", "pw")
        assert isinstance(res.error, errors.TransportError)
