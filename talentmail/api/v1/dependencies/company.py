"""Company scoping dependency.

Authentication is handled upstream; this layer trusts the company header
that the gateway sets after authorizing the caller.
"""

from __future__ import annotations

import re

from fastapi import HTTPException, Request

from talentmail.core.config import get_settings

_COMPANY_ID_MAX_LENGTH = 64
_COMPANY_ID_RE = re.compile(r"^[a-zA-Z0-9_-]{1," + str(_COMPANY_ID_MAX_LENGTH) + r"}$")


def is_valid_company_id_format(value: str) -> bool:
    """Return True for CUID/UUID-style ids (alphanumeric, hyphen, underscore)."""
    return bool(_COMPANY_ID_RE.fullmatch(value))


async def get_company_id(request: Request) -> str:
    """Resolve the company id from the configured header."""
    name = get_settings().company_header_name
    value = request.headers.get(name)
    if not value:
        raise HTTPException(
            status_code=400,
            detail=f"Missing required header: {name}",
        )
    if not is_valid_company_id_format(value):
        raise HTTPException(
            status_code=400,
            detail="Invalid company ID format (use alphanumeric, hyphen, underscore; max 64 characters)",
        )
    return value
