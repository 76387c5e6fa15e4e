"""Helpers for working with Supabase access tokens."""

from __future__ import annotations

import base64
import json
from typing import Any, Dict, Optional

from fastapi import HTTPException

ADMIN_ROLES = {"authenticated", "service_role"}


def extract_bearer_token(header_value: Optional[str]) -> str:
    """Return the token of an ``Authorization: Bearer <token>`` header."""

    scheme, _, token = (header_value or "").strip().partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token or " " in token:
        raise HTTPException(status_code=401, detail="Authentication required.")
    return token


def decode_access_token(access_token: str) -> Dict[str, Any]:
    """Return the decoded JWT payload for a Supabase access token.

    The signature is not verified here; PostgREST checks it on every query.
    """

    if not access_token:
        raise HTTPException(status_code=401, detail="Authentication required.")

    try:
        payload_segment = access_token.split(".")[1]
        padding = "=" * (-len(payload_segment) % 4)
        decoded = base64.urlsafe_b64decode((payload_segment + padding).encode("ascii"))
        payload = json.loads(decoded.decode("utf-8"))
    except (IndexError, ValueError, UnicodeDecodeError) as exc:
        raise HTTPException(status_code=401, detail="Invalid access token.") from exc
    if not isinstance(payload, dict):
        raise HTTPException(status_code=401, detail="Invalid access token.")
    return payload


def require_admin_role(access_token: str) -> Dict[str, Any]:
    """Reject anonymous tokens before admin-only work starts."""

    payload = decode_access_token(access_token)
    if payload.get("role") not in ADMIN_ROLES:
        raise HTTPException(status_code=403, detail="Admin access required.")
    return payload


__all__ = ["decode_access_token", "extract_bearer_token", "require_admin_role"]
