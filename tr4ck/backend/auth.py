"""Local sign-in gate with a timed lockout.

This is a display gate, not a security boundary: the configured username and
password are compared in plain text and the authenticated flag is stored as a
boolean next to the lock deadline.
"""

from __future__ import annotations

import enum
import json
import logging
import math
import os
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 5
LOCKOUT_SECONDS = 30.0

AUTH_KEY = "tr4ck-auth-v1"
AUTH_LOCK_KEY = "tr4ck-auth-lock-v1"

INVALID_MESSAGE = "Invalid credentials. Try again."
LOCKED_MESSAGE = "Too many attempts. Try again shortly."


class AuthState(str, enum.Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"
    LOCKED_OUT = "locked-out"


@dataclass(frozen=True)
class AuthResult:
    ok: bool
    state: AuthState
    message: str | None = None


class FlagStore:
    """Tiny JSON-file key/value store for the gate's persisted flags."""

    def __init__(self, path: str | None) -> None:
        self.path = path
        self._memory: dict[str, Any] = {}

    def _read(self) -> dict[str, Any]:
        if not self.path:
            return dict(self._memory)
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable auth flags at %s: %s", self.path, exc)
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: dict[str, Any]) -> None:
        if not self.path:
            self._memory = data
            return
        folder = os.path.dirname(self.path)
        if folder:
            os.makedirs(folder, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(data, f)

    def get(self, key: str, default: Any = None) -> Any:
        return self._read().get(key, default)

    def set(self, key: str, value: Any) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def remove(self, key: str) -> None:
        data = self._read()
        if key in data:
            del data[key]
            self._write(data)


def credentials_match(expected_user: str, expected_pass: str, username: str, password: str) -> bool:
    """An empty expected value matches anything."""
    user_ok = username == expected_user if expected_user else True
    pass_ok = password == expected_pass if expected_pass else True
    return user_ok and pass_ok


class AuthGate:
    """State machine: unauthenticated -> authenticated, with a lockout after
    `MAX_ATTEMPTS` consecutive failures.
    """

    def __init__(
        self,
        expected_user: str = "",
        expected_pass: str = "",
        flags: FlagStore | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.expected_user = expected_user or ""
        self.expected_pass = expected_pass or ""
        self.flags = flags or FlagStore(None)
        self.clock = clock
        self.failed_attempts = 0
        if not self.required:
            self._authed = True
        else:
            self._authed = bool(self.flags.get(AUTH_KEY, False))

    @property
    def required(self) -> bool:
        return bool(self.expected_user or self.expected_pass)

    @property
    def lock_until(self) -> float:
        try:
            return float(self.flags.get(AUTH_LOCK_KEY, 0) or 0)
        except (TypeError, ValueError):
            return 0.0

    @property
    def state(self) -> AuthState:
        if self._authed:
            return AuthState.AUTHENTICATED
        if self.clock() < self.lock_until:
            return AuthState.LOCKED_OUT
        return AuthState.UNAUTHENTICATED

    @property
    def is_authenticated(self) -> bool:
        return self._authed

    def remaining_seconds(self) -> int:
        remaining = self.lock_until - self.clock()
        return math.ceil(remaining) if remaining > 0 else 0

    def submit(self, username: str, password: str) -> AuthResult:
        now = self.clock()
        if now < self.lock_until:
            return AuthResult(False, AuthState.LOCKED_OUT, LOCKED_MESSAGE)
        if credentials_match(self.expected_user, self.expected_pass, username, password):
            self.failed_attempts = 0
            self.flags.remove(AUTH_LOCK_KEY)
            self._set_authed(True)
            return AuthResult(True, AuthState.AUTHENTICATED)
        self.failed_attempts += 1
        if self.failed_attempts >= MAX_ATTEMPTS:
            self.flags.set(AUTH_LOCK_KEY, now + LOCKOUT_SECONDS)
            self.failed_attempts = 0
            logger.warning("Sign-in locked for %ss after repeated failures", int(LOCKOUT_SECONDS))
            return AuthResult(False, AuthState.LOCKED_OUT, LOCKED_MESSAGE)
        return AuthResult(False, AuthState.UNAUTHENTICATED, INVALID_MESSAGE)

    def log_out(self) -> None:
        if not self.required:
            return
        self._set_authed(False)

    def _set_authed(self, value: bool) -> None:
        self._authed = value
        self.flags.set(AUTH_KEY, value)
