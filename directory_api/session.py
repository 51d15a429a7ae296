from __future__ import annotations

import secrets
from typing import Any, Dict

from itsdangerous import URLSafeTimedSerializer, BadSignature, SignatureExpired

from .env_settings import get_env


def _serializer() -> URLSafeTimedSerializer:
    s = get_env()
    return URLSafeTimedSerializer(s.secret_key, salt="directory-api-session")


def new_session_id() -> str:
    return secrets.token_urlsafe(24)


def create_session(sid: str) -> str:
    return _serializer().dumps({"sid": sid})


def read_session(token: str, max_age_seconds: int) -> str | None:
    """Session id carried by a signed cookie, or None if it is invalid or expired."""
    try:
        data: Dict[str, Any] = _serializer().loads(token, max_age=max_age_seconds)
    except (BadSignature, SignatureExpired):
        return None
    if not isinstance(data, dict):
        return None
    sid = data.get("sid")
    return sid if isinstance(sid, str) and sid else None
