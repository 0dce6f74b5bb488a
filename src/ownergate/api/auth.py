"""Webhook authentication: GitHub HMAC signature verification."""

from __future__ import annotations

import hashlib
import hmac
import os


def auth_required() -> bool:
    return os.environ.get("OWNERGATE_AUTH_REQUIRED", "1") == "1"


def verify_github_signature(secret: str, body: bytes, signature: str) -> bool:
    expected = "sha256=" + hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected, signature)
