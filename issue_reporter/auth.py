"""Mock admin login. This is a demo gate, not a security boundary."""

from __future__ import annotations

import hmac
import json
from typing import Dict, Optional

from issue_reporter import config
from issue_reporter.storage import KeyValueStorage


class AuthGuard:
    def __init__(
        self,
        storage: KeyValueStorage,
        username: str = config.ADMIN_USERNAME,
        password: str = config.ADMIN_PASSWORD,
        key: str = config.SESSION_KEY,
    ):
        self.storage = storage
        self.username = username
        self.password = password
        self.key = key

    def check_credentials(self, username: str, password: str) -> bool:
        user_ok = hmac.compare_digest((username or "").encode(), self.username.encode())
        password_ok = hmac.compare_digest((password or "").encode(), self.password.encode())
        return user_ok and password_ok

    def login(self, username: str, password: str) -> bool:
        if not self.check_credentials(username, password):
            return False
        user = {"username": self.username, "role": "admin"}
        self.storage.set_item(self.key, json.dumps(user))
        return True

    def logout(self):
        self.storage.remove_item(self.key)

    def current_user(self) -> Optional[Dict[str, str]]:
        raw = self.storage.get_item(self.key)
        if not raw:
            return None
        try:
            user = json.loads(raw)
        except ValueError as e:
            print("Ignoring corrupt admin session:", e)
            return None
        if not isinstance(user, dict) or not user.get("username"):
            return None
        return user

    @property
    def is_authenticated(self) -> bool:
        return self.current_user() is not None
