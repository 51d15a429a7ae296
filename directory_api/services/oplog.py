from __future__ import annotations

from typing import Any, TypeVar

from ..ldap.errors import DirectoryError
from ..ldap.models import OpResult

R = TypeVar("R", bound=OpResult)


class OperationLog:
    """Ordered record of the primitive calls made for one logical action.

    `ok` starts true and turns false for good on the first failed push.
    Every failure is kept in `errors`, not only the first one, so a caller can
    tell which of several independent steps went wrong.
    """

    def __init__(self, op: str) -> None:
        self.op = op
        self._ok = True
        self._subops: list[OpResult] = []
        self._errors: list[DirectoryError] = []
        self._payload: dict[str, Any] = {}

    def push(self, result: R) -> R:
        self._subops.append(result)
        if not result.ok:
            self._ok = False
            if result.error is not None:
                self._errors.append(result.error)
        return result

    def fail(self, op: str, error: DirectoryError) -> OpResult:
        """Record a failed step that needed no remote call."""
        return self.push(OpResult(op, False, error))

    def attach(self, key: str, value: Any) -> None:
        self._payload[key] = value

    @property
    def ok(self) -> bool:
        return self._ok

    @property
    def subops(self) -> tuple[OpResult, ...]:
        return tuple(self._subops)

    @property
    def errors(self) -> tuple[DirectoryError, ...]:
        return tuple(self._errors)

    @property
    def error(self) -> DirectoryError | None:
        return self._errors[0] if self._errors else None

    @property
    def payload(self) -> dict[str, Any]:
        return dict(self._payload)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "op": self.op,
            "ok": self.ok,
            "error": self.error.to_dict() if self.error else None,
            "errors": [e.to_dict() for e in self._errors],
            "subops": [r.to_dict() for r in self._subops],
        }
        out.update(self._payload)
        return out

    def __repr__(self) -> str:
        return f"OperationLog(op={self.op!r}, ok={self.ok}, subops={len(self._subops)})"
