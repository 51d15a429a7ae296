"""
Tests for result classification
"""
import pytest

from directory_api.ldap import errors


class TestFromResult:

    @pytest.mark.parametrize(
        "code, cls",
        [
            (32, errors.NotFoundError),
            (68, errors.AlreadyExistsError),
            (65, errors.ConstraintViolation),
            (16, errors.ConstraintViolation),
            (19, errors.ConstraintViolation),
            (50, errors.InsufficientAccessError),
            (51, errors.TransportError),
            (52, errors.TransportError),
            (80, errors.DirectoryError),
        ],
    )
    def test_classification(self, code, cls):
        err = errors.from_result({"result": code, "description": "x", "message": "m"})
        assert type(err) is cls
        assert err.code == code

    def test_bind_failures_are_bind_errors(self):
        err = errors.from_result({"result": 50, "description": "insufficientAccessRights"}, operation="bind")
        assert isinstance(err, errors.BindError)
        assert err.status_code == 401

    def test_busy_bind_is_still_transport(self):
        err = errors.from_result({"result": 51, "description": "busy"}, operation="bind")
        assert isinstance(err, errors.TransportError)

    def test_missing_result(self):
        err = errors.from_result(None)
        assert isinstance(err, errors.NoResultError)
        assert isinstance(err, errors.TransportError)
        assert err.to_dict() == {"code": 82, "name": "noResult", "message": "no result received from server"}


class TestHelpers:

    def test_transport_error(self):
        err = errors.transport_error(OSError("connection refused"))
        assert err.to_dict() == {"code": 81, "name": "serverDown", "message": "connection refused"}

    def test_timeout_error(self):
        assert errors.timeout_error(2.5).message == "no response within 2.5s"

    def test_validation_error_has_no_code(self):
        err = errors.ValidationError("cn is required")
        assert err.code is None
        assert err.status_code == 400
        assert str(err) == "cn is required"

    def test_equality_by_value(self):
        a = errors.NotFoundError("x", code=32, name="noSuchObject")
        b = errors.NotFoundError("x", code=32, name="noSuchObject")
        assert a == b
        assert a != errors.DirectoryError("x", code=32, name="noSuchObject")
