"""PostgREST access to the content tables and mapping of its failures."""

from __future__ import annotations

import logging
from typing import Dict, Optional

from fastapi import HTTPException
from postgrest import APIError as PostgrestAPIError
from postgrest import SyncPostgrestClient

from app.config.supabase_client import SUPABASE_ANON_KEY, SUPABASE_URL

logger = logging.getLogger(__name__)

# SQL states raised when row level security rejects the caller.
PERMISSION_DENIED_CODES = {"42501", "PGRST301", "PGRST302"}
NOT_FOUND_CODES = {"PGRST116", "PGRST205"}


def create_postgrest_client(
    access_token: str,
    *,
    prefer: Optional[str] = None,
    api_key: Optional[str] = None,
) -> SyncPostgrestClient:
    """Open a client on ``/rest/v1`` acting as the owner of ``access_token``."""

    apikey = api_key or SUPABASE_ANON_KEY
    if not SUPABASE_URL or not apikey:
        raise HTTPException(status_code=500, detail="Supabase is not configured.")

    headers: Dict[str, str] = {"apikey": apikey, "Accept": "application/json"}
    if prefer:
        headers["Prefer"] = prefer
    client = SyncPostgrestClient(f"{SUPABASE_URL.rstrip('/')}/rest/v1", headers=headers)
    client.auth(access_token)
    return client


def postgrest_status(exc: PostgrestAPIError) -> int:
    """Translate a PostgREST error code into the HTTP status we answer with."""

    code = str(exc.code or "").strip()
    if code in PERMISSION_DENIED_CODES:
        return 403
    if code in NOT_FOUND_CODES:
        return 404
    if code.isdigit() and 100 <= int(code) < 600:
        return int(code)
    return 502


def raise_postgrest_error(exc: PostgrestAPIError, *, context: str) -> None:
    status_code = postgrest_status(exc)
    logger.error("Supabase %s failed (%s): %s", context, exc.code, exc.message)
    if status_code == 401:
        raise HTTPException(status_code=401, detail="Supabase session expired.") from exc
    if status_code == 403:
        raise HTTPException(status_code=403, detail="Not allowed to change this content.") from exc
    if status_code == 404:
        raise HTTPException(status_code=404, detail="Content not found.") from exc
    raise HTTPException(status_code=502, detail=f"Could not {context}.") from exc


__all__ = ["create_postgrest_client", "postgrest_status", "raise_postgrest_error"]
