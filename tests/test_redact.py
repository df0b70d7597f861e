from __future__ import annotations

import json

from pyplace._api.subscriptions import build_connection_init
from pyplace._redact import redact_for_log


def test_redact_for_log_redacts_sensitive_keys() -> None:
    payload = {
        "grant_type": "password",
        "username": "someone",
        "password": "pw",
        "access_token": "abc",
        "nested": {"Authorization": "Bearer xyz", "oauth_secret": "s3"},
    }

    redacted = redact_for_log(payload)
    assert redacted["username"] == "someone"
    assert redacted["password"] == "<redacted>"
    assert redacted["access_token"] == "<redacted>"
    assert redacted["nested"]["Authorization"] == "<redacted>"
    assert redacted["nested"]["oauth_secret"] == "<redacted>"


def test_redact_for_log_hides_bearer_values() -> None:
    assert redact_for_log("Bearer abc.def") == "Bearer <redacted>"
    assert redact_for_log(["bearer abc", "plain"]) == ["Bearer <redacted>", "plain"]


def test_connection_init_is_redacted_once_decoded() -> None:
    message = json.loads(build_connection_init("secret-token"))

    assert "secret-token" not in json.dumps(redact_for_log(message))


def test_redact_for_log_truncates_long_strings() -> None:
    long_value = "x" * 600
    redacted = redact_for_log({"value": long_value}, max_string=10)
    assert redacted["value"].startswith("x" * 10)
    assert "<truncated>" in redacted["value"]


def test_redact_for_log_keeps_non_secret_values() -> None:
    reply = {"token_type": "bearer", "expires_in": 3600, "scope": ("*",)}

    assert redact_for_log(reply) == {"token_type": "bearer", "expires_in": 3600, "scope": ["*"]}
