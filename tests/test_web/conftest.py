"""Fixtures for the web layer: signed Mini App ``initData``."""

from __future__ import annotations

import hashlib
import hmac
import json
from urllib.parse import urlencode

import pytest

BOT_TOKEN = "123456:TEST-TOKEN"


def _sign(
    user: dict | None = None,
    *,
    token: str = BOT_TOKEN,
    auth_date: int,
    tamper: bool = False,
) -> str:
    """Sign ``initData`` the way Telegram does."""
    fields = {
        "auth_date": str(auth_date),
        "query_id": "AAHdF6IQAAAAAN0XohDhrOrc",
        "user": json.dumps(user or {"id": 42, "first_name": "Alice"}),
    }
    check = "\n".join(f"{key}={fields[key]}" for key in sorted(fields))
    secret = hmac.new(b"WebAppData", token.encode(), hashlib.sha256).digest()
    fields["hash"] = hmac.new(secret, check.encode(), hashlib.sha256).hexdigest()
    if tamper:
        fields["user"] = json.dumps({"id": 1, "first_name": "Mallory"})
    return urlencode(fields)


@pytest.fixture
def bot_token() -> str:
    return BOT_TOKEN


@pytest.fixture
def sign_init_data():
    return _sign
