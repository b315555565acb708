"""
Upload size guard.
"""

from fastapi import HTTPException

from src.api.config import get_api_settings


def ensure_upload_size(content: bytes, what: str = "Upload") -> bytes:
    """
    Reject bodies above API_MAX_UPLOAD_SIZE.

    Raises:
        HTTPException: 413 if content is too large
    """
    limit = get_api_settings().MAX_UPLOAD_SIZE
    if len(content) > limit:
        raise HTTPException(
            status_code=413,
            detail=f"{what} is {len(content)} bytes, limit is {limit}",
        )
    return content
