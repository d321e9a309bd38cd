"""Identifier helpers."""

from __future__ import annotations

import secrets

OBJECT_ID_HEX_LENGTH = 24


def generate_object_id() -> str:
    """Return a random 24-character hex identifier for feeds and connections."""
    return secrets.token_hex(OBJECT_ID_HEX_LENGTH // 2)
