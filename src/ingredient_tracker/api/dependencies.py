"""Request-scoped dependencies shared by the routers."""

from fastapi import Header, HTTPException, status


async def require_owner_id(x_user_id: int | None = Header(default=None)) -> int:
    """Read the caller identity set by the upstream gateway."""
    if x_user_id is None or x_user_id <= 0:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing or invalid X-User-Id header",
        )
    return x_user_id
