"""FastAPI authentication dependency."""

import secrets

from fastapi import HTTPException, Request


async def verify_api_key(request: Request) -> None:
    """Check the X-API-Key header against APP_API_KEY.

    Raises:
        HTTPException: 401 if the key is missing or does not match.
    """
    expected_key = request.app.state.config.get_string_val("APP_API_KEY")
    provided_key = request.headers.get("X-API-Key") or ""
    if not provided_key or not secrets.compare_digest(provided_key, expected_key):
        raise HTTPException(status_code=401, detail="Invalid or missing API key.")
