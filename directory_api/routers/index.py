from __future__ import annotations

from fastapi import APIRouter

from .. import __version__


router = APIRouter()


@router.get("/version")
def version():
    return {"version": __version__}


@router.get("/health")
def health():
    return {"status": "ok"}
