"""Server-side fetching of member photos.

Photo URLs often point at share pages (Immich shared links, cloud drives) rather
than at the image itself, or at hosts that refuse cross-origin requests. We fetch
them here, following redirects and digging the real image URL out of HTML pages.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urljoin, urlsplit

import requests

log = logging.getLogger(__name__)

MAX_REDIRECTS = 5
TIMEOUT_SECONDS = 10

_HEADERS = {"User-Agent": "Mozilla/5.0", "Accept": "image/*,*/*"}
_REDIRECT_CODES = frozenset({301, 302, 303, 307, 308})

_OG_IMAGE_RE = re.compile(
    r"""<meta[^>]+property=["']og:image["'][^>]+content=["']([^"']+)["']""",
    re.IGNORECASE,
)
_IMMICH_ASSET_RE = re.compile(r"assets/([a-f0-9-]+)", re.IGNORECASE)


class PhotoFetchError(Exception):
    def __init__(self, status_code: int, detail: str) -> None:
        super().__init__(detail)
        self.status_code = status_code
        self.detail = detail


@dataclass
class FetchedPhoto:
    content: bytes
    content_type: str
    url: str


def _image_url_from_html(body: str, page_url: str) -> Optional[str]:
    m = _OG_IMAGE_RE.search(body)
    if m:
        return urljoin(page_url, m.group(1))

    m = _IMMICH_ASSET_RE.search(body)
    if m:
        parts = urlsplit(page_url)
        return f"{parts.scheme}://{parts.netloc}/api/assets/{m.group(1)}/thumbnail?size=preview"

    return None


def fetch_photo(url: str) -> FetchedPhoto:
    """Fetch the image behind *url*.

    Redirects and HTML indirections share one hop budget of ``MAX_REDIRECTS``.
    Raises PhotoFetchError carrying the HTTP status the proxy should answer with.
    """

    target = url
    for _hop in range(MAX_REDIRECTS + 1):
        try:
            resp = requests.get(target, headers=_HEADERS, timeout=TIMEOUT_SECONDS, allow_redirects=False)
        except requests.Timeout:
            log.warning("Photo fetch timed out: %s", target)
            raise PhotoFetchError(504, "Timeout fetching image")
        except requests.RequestException as e:
            log.warning("Photo fetch failed for %s: %s", target, e)
            raise PhotoFetchError(502, "Failed to fetch image")

        location = resp.headers.get("location")
        if resp.status_code in _REDIRECT_CODES and location:
            target = urljoin(target, location)
            continue

        if 300 <= resp.status_code < 400:
            log.warning("Photo upstream sent %d without a location for %s", resp.status_code, target)
            raise PhotoFetchError(502, "Upstream redirect without location")

        if resp.status_code != 200:
            log.warning("Photo upstream answered %d for %s", resp.status_code, target)
            raise PhotoFetchError(resp.status_code, "Upstream error")

        content_type = resp.headers.get("content-type", "")
        if "text/html" in content_type:
            next_url = _image_url_from_html(resp.text, target)
            if next_url is None:
                raise PhotoFetchError(404, "No image found at URL")
            target = next_url
            continue

        return FetchedPhoto(content=resp.content, content_type=content_type, url=target)

    raise PhotoFetchError(502, "Too many redirects")
