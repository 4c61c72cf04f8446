"""Single sign-on callback URLs for helpdesk services."""

import hashlib
import hmac
import time
import uuid
from typing import Optional
from urllib.parse import urlencode

import jwt

from accountkit import messages
from accountkit.config import Settings, get_settings
from accountkit.errors import ServiceError
from accountkit.services.base import SSOSigner


class HelpdeskSigner(SSOSigner):
    """Signs login callbacks for Freshdesk (HMAC-MD5) and Zendesk (JWT)."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    @staticmethod
    def _display_name(user: dict) -> str:
        return user.get("username") or user["email"]

    def sign_freshdesk(self, user: dict, timestamp: Optional[int] = None) -> str:
        url, key = self.settings.freshdesk_url, self.settings.freshdesk_key
        if not (url and key):
            raise ServiceError.rejected(messages.SERVICE_NOT_CONFIGURED)

        timestamp = timestamp or int(time.time())
        name = self._display_name(user)
        email = user["email"]
        digest = hmac.new(
            key.encode(),
            f"{name}{key}{email}{timestamp}".encode(),
            hashlib.md5,
        ).hexdigest()
        query = urlencode({"name": name, "email": email, "timestamp": timestamp, "hash": digest})
        return f"{url.rstrip('/')}/login/sso?{query}"

    def sign_zendesk(self, user: dict) -> str:
        url, key = self.settings.zendesk_url, self.settings.zendesk_key
        if not (url and key):
            raise ServiceError.rejected(messages.SERVICE_NOT_CONFIGURED)

        payload = {
            "iat": int(time.time()),
            "jti": str(uuid.uuid4()),
            "name": self._display_name(user),
            "email": user["email"],
        }
        token = jwt.encode(payload, key, algorithm="HS256")
        return f"{url.rstrip('/')}/access/jwt?{urlencode({'jwt': token})}"
