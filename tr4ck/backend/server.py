"""HTTP backend persisting the tracker document.

Routes:
    GET  /health      liveness check against the database
    GET  /api/state   {"state": <document> | null}
    PUT  /api/state   {"state": <document>} -> {"ok": true}
    POST /api/login   plain credential check against LOGIN_USER/LOGIN_PASS
"""

from __future__ import annotations

import logging
import sys
from typing import Any

from fastapi import FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError

from .auth import credentials_match
from .config import ConfigError, Settings, configure_logging, load_from_env
from .store import StateStore

logger = logging.getLogger(__name__)


class StatePayload(BaseModel):
    state: Any = None


class LoginPayload(BaseModel):
    username: str = ""
    password: str = ""


def _error(status: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status, content={"error": message})


def create_app(settings: Settings | None = None, store: StateStore | None = None) -> FastAPI:
    """Build the app. The database must be reachable or this raises."""
    settings = settings or load_from_env()
    if store is None:
        store = StateStore.from_url(settings.require_database_url())
    store.init_db()

    app = FastAPI(title="TR4CK API", version="1.0")
    app.state.store = store

    @app.get("/health")
    def health() -> Any:
        try:
            store.ping()
        except SQLAlchemyError as exc:
            logger.warning("Health check failed: %s", exc)
            return JSONResponse(status_code=500, content={"ok": False})
        return {"ok": True}

    @app.post("/api/login")
    def login(payload: LoginPayload) -> Any:
        """Check credentials against LOGIN_USER/LOGIN_PASS.

        Configuring either one enables the route; an unset one matches anything,
        as in the local sign-in gate.
        """
        if not settings.auth_required:
            return _error(500, "Login not configured.")
        if credentials_match(
            settings.login_user, settings.login_pass, payload.username, payload.password
        ):
            return {"ok": True}
        return _error(401, "Invalid credentials.")

    @app.get("/api/state")
    def get_state() -> Any:
        try:
            data = store.get()
        except SQLAlchemyError:
            logger.exception("Failed to load state")
            return _error(500, "Failed to load state.")
        return {"state": data}

    @app.put("/api/state")
    def put_state(payload: StatePayload) -> Any:
        state = payload.state
        if (
            not isinstance(state, dict)
            or not isinstance(state.get("profile"), dict)
            or not isinstance(state.get("projects"), list)
        ):
            return _error(400, "Invalid state payload.")
        try:
            store.put(state)
        except SQLAlchemyError:
            logger.exception("Failed to save state")
            return _error(500, "Failed to save state.")
        return {"ok": True}

    return app


def main() -> None:
    import uvicorn

    settings = load_from_env()
    configure_logging(settings.log_level)
    try:
        app = create_app(settings)
    except ConfigError as exc:
        logger.error("%s", exc)
        sys.exit(1)
    except SQLAlchemyError:
        logger.exception("Failed to initialize database.")
        sys.exit(1)
    logger.info("API listening on %s", settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
