"""
Best Bike Paths Backend - Request Dependencies
===============================================

What:  FastAPI dependencies resolving the caller's identity.
How:   Authentication happens upstream; the gateway forwards the verified
       user id in the `X-User-ID` header. This service trusts that header and
       does no session handling of its own.

    get_current_user_id   → str, 401 UNAUTHORIZED when missing
    get_optional_user_id  → Optional[str], for endpoints open to anonymous
                            callers (path search and detail)
"""

from typing import Optional

from fastapi import Header

from bbp.exceptions import UnauthorizedError

USER_ID_HEADER = "X-User-ID"


async def get_optional_user_id(
    x_user_id: Optional[str] = Header(default=None, alias=USER_ID_HEADER),
) -> Optional[str]:
    if x_user_id is None or not x_user_id.strip():
        return None
    return x_user_id.strip()


async def get_current_user_id(
    x_user_id: Optional[str] = Header(default=None, alias=USER_ID_HEADER),
) -> str:
    user_id = await get_optional_user_id(x_user_id)
    if user_id is None:
        raise UnauthorizedError()
    return user_id
