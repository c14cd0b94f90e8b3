"""API key authentication for the task pane HTTP bridge.

Validates the X-API-Key header against the configured bridge keys.
"""

import hmac

from fastapi import HTTPException, Security
from fastapi.security import APIKeyHeader

from wordgpt_client.config.settings import get_settings

api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


async def verify_bridge_key(api_key: str | None = Security(api_key_header)) -> str:
    """FastAPI dependency returning the accepted key."""
    if api_key is None:
        raise HTTPException(status_code=401, detail="Missing API key")

    match = False
    for valid_key in get_settings().bridge_keys_list:
        # Always compare against every key to keep timing constant
        if hmac.compare_digest(api_key, valid_key):
            match = True

    if not match:
        raise HTTPException(status_code=403, detail="Invalid API key")
    return api_key
