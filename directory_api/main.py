from __future__ import annotations

import logging
from typing import Callable

from fastapi import FastAPI

from . import __version__
from .env_settings import EnvSettings, get_env
from .ldap.handle import DirectoryHandle
from .ldap.models import LDAPConfig
from .log_config import setup_logging
from .routers import auth, groups, index, users
from .services.sessions import InMemorySessionStore, SessionStore

log = logging.getLogger(__name__)


def create_app(
    env: EnvSettings | None = None,
    *,
    store: SessionStore | None = None,
    handle_factory: Callable[[], DirectoryHandle] | None = None,
) -> FastAPI:
    """Build the application. `store` and `handle_factory` are injectable for tests."""
    env = env or get_env()
    app = FastAPI(title="Directory API", version=__version__)

    if handle_factory is None:
        cfg = LDAPConfig.from_env(env)

        def handle_factory() -> DirectoryHandle:
            return DirectoryHandle.open(cfg)

    app.state.env = env
    app.state.sessions = store if store is not None else InMemorySessionStore(env.session_max_age_seconds)
    app.state.handle_factory = handle_factory

    app.include_router(index.router)
    app.include_router(auth.router)
    app.include_router(users.router)
    app.include_router(groups.router)

    @app.on_event("startup")
    async def _startup():
        setup_logging(level=env.log_level, log_dir=env.log_dir, retention_days=env.log_retention_days)
        log.info("Directory API %s serving %s (base %s)", __version__, env.ldap_url, env.ldap_base_dn)

    @app.on_event("shutdown")
    async def _shutdown():
        close_all = getattr(app.state.sessions, "close_all", None)
        if close_all is not None:
            await close_all()

    return app
