from __future__ import annotations

from fastapi import status
from fastapi.responses import JSONResponse

from .services.oplog import OperationLog


def status_for(oplog: OperationLog) -> int:
    """HTTP status for an action: 200 when ok, else the first error's class status."""
    if oplog.ok:
        return status.HTTP_200_OK
    err = oplog.error
    return err.status_code if err is not None else status.HTTP_400_BAD_REQUEST


def api_result(oplog: OperationLog) -> JSONResponse:
    """Unified JSON shape for every endpoint.

    Format:
      {"ok": bool, "error": {...} | null, "errors": [...], "subops": [...], <payload>}
    """
    body = oplog.to_dict()
    body.pop("op", None)
    return JSONResponse(body, status_code=status_for(oplog))
