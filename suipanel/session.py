"""Login state kept in the user's session."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

LOGIN_USER_KEY = "LOGIN_USER"


@dataclass
class SessionOptions:
    """Cookie attributes of the session."""

    path: str = "/"
    domain: str = ""
    max_age: int = 0
    secure: bool = False
    http_only: bool = False


@dataclass
class Session:
    """Session values together with the cookie options to save them with."""

    values: dict[str, Any] = field(default_factory=dict)
    options: SessionOptions = field(default_factory=SessionOptions)

    def set_login_user(self, username: str, max_age: int) -> None:
        """Log ``username`` in; ``max_age`` is in minutes, 0 for a browser session."""
        self.values[LOGIN_USER_KEY] = username
        self.options = SessionOptions(path="/", secure=False, max_age=max_age * 60 if max_age > 0 else 0)

    def get_login_user(self) -> str:
        value = self.values.get(LOGIN_USER_KEY)
        return value if isinstance(value, str) else ""

    def is_login(self) -> bool:
        return self.get_login_user() != ""

    def clear(self) -> None:
        """Drop all values and expire the cookie."""
        self.values.clear()
        self.options = SessionOptions(path="/", max_age=-1)