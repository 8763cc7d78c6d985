from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, HTTPException
from fastapi.responses import Response

from ..photo import PhotoFetchError, fetch_photo

router = APIRouter(tags=["photo"])


@router.get("/photo")
def photo_proxy(url: Optional[str] = None) -> Response:
    """Fetch a member photo server-side (share pages, redirects, CORS-hostile hosts)."""

    if not url:
        raise HTTPException(status_code=400, detail="url parameter required")

    try:
        fetched = fetch_photo(url)
    except PhotoFetchError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)

    return Response(
        content=fetched.content,
        media_type=fetched.content_type or None,
        headers={"Cache-Control": "public, max-age=86400"},
    )
